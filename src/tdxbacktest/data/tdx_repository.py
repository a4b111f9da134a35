"""Repository over a directory of TDX binary bar files."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime
from pathlib import Path

import pandas as pd

from tdxbacktest.data.tdx_reader import read_tdx_file
from tdxbacktest.domain.models import Observation
from tdxbacktest.errors import AssetNotFoundError, EmptyAssetError, UnsupportedOperationError
from tdxbacktest.stream.pipeline import Stream, filter_stream, map_stream, tail

logger = logging.getLogger(__name__)

OHLCV_COLUMNS = ["open", "high", "low", "close", "volume"]


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


class TdxFileRepository:
    """Read-only asset repository backed by one file per asset."""

    def __init__(self, base_dir: str | Path, extension: str = ".day") -> None:
        self.base_dir = Path(base_dir)
        self.extension = extension

    def assets(self) -> list[str]:
        names: list[str] = []
        for entry in self.base_dir.iterdir():
            stem = entry.name[: -len(self.extension)]
            if entry.is_file() and entry.name.endswith(self.extension) and stem:
                names.append(stem)
        return sorted(names)

    def get(self, name: str) -> Stream[Observation]:
        path = self._resolve_path(name)
        if not path.is_file():
            raise AssetNotFoundError(f"No {self.extension} file for {name} under {self.base_dir}")
        bars = read_tdx_file(path)
        return map_stream(bars, Observation.from_bar, name=f"observations:{name}")

    def get_since(self, name: str, since: date | datetime) -> Stream[Observation]:
        cutoff = _as_datetime(since)
        return filter_stream(
            self.get(name),
            lambda observation: observation.date >= cutoff,
            name=f"since:{name}",
        )

    def last_date(self, name: str) -> datetime:
        with tail(self.get(name), 1, name=f"last:{name}") as last:
            observations = last.collect()
        if not observations:
            raise EmptyAssetError(f"{name}: asset has no observations")
        return observations[-1].date

    def append(self, name: str, observations: Iterable[Observation]) -> None:
        if isinstance(observations, Stream):
            observations.close()
        raise UnsupportedOperationError(
            f"{name}: TDX files are read-only historical dumps and cannot be appended"
        )

    def get_bars(self, name: str) -> pd.DataFrame:
        with self.get(name) as observations:
            rows = observations.collect()
        frame = pd.DataFrame(
            [
                {
                    "date": row.date,
                    "open": row.open,
                    "high": row.high,
                    "low": row.low,
                    "close": row.close,
                    "volume": row.volume,
                }
                for row in rows
            ],
            columns=["date", *OHLCV_COLUMNS],
        )
        frame.index = pd.to_datetime(frame.pop("date"))
        frame.index.name = "date"
        logger.debug("Loaded %d bars for %s", len(frame), name)
        return frame.astype(float)

    def _resolve_path(self, name: str) -> Path:
        return self.base_dir / f"{name}{self.extension}"
