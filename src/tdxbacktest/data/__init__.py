"""TDX binary data decoding and asset repository."""

from .base import AssetRepository
from .tdx_reader import read_tdx_file, resolve_bar_format
from .tdx_repository import TdxFileRepository

__all__ = [
    "AssetRepository",
    "TdxFileRepository",
    "read_tdx_file",
    "resolve_bar_format",
]
