"""Exception taxonomy for decoding, repository, and simulation failures."""


class TdxBacktestError(Exception):
    """Base exception for all package-specific errors."""


class ConfigError(TdxBacktestError, ValueError):
    """Raised when settings or trade configuration are invalid."""


class UnsupportedFormatError(TdxBacktestError):
    """Raised when a file extension has no known record layout."""

    def __init__(self, extension: str) -> None:
        super().__init__(f"Unsupported file extension '{extension}'")
        self.extension = extension


class UnsupportedOperationError(TdxBacktestError):
    """Raised for operations the backing store does not support."""


class AssetNotFoundError(TdxBacktestError, FileNotFoundError):
    """Raised when no backing file exists for an asset name."""


class EmptyAssetError(TdxBacktestError):
    """Raised when an asset has no observations."""


class StreamLengthMismatchError(TdxBacktestError):
    """Raised when paired streams end at different positions."""


class SimulationError(TdxBacktestError):
    """Raised when a simulator is used outside its single-run lifecycle."""


class RecordDecodeError(TdxBacktestError, OSError):
    """Raised when a bar record is truncated or cannot be decoded."""
