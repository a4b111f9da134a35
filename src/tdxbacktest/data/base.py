"""Asset repository contract."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from typing import Protocol

import pandas as pd

from tdxbacktest.domain.models import Observation
from tdxbacktest.stream.pipeline import Stream


class AssetRepository(Protocol):
    """Interface for observation retrieval by asset name."""

    def assets(self) -> list[str]:
        """Return the names of all stored assets."""

    def get(self, name: str) -> Stream[Observation]:
        """Return every observation for an asset in stored order."""

    def get_since(self, name: str, since: date | datetime) -> Stream[Observation]:
        """Return observations dated on or after `since`."""

    def last_date(self, name: str) -> datetime:
        """Return the date of the most recent observation."""

    def append(self, name: str, observations: Iterable[Observation]) -> None:
        """Store additional observations for an asset."""

    def get_bars(self, name: str) -> pd.DataFrame:
        """Return OHLCV observations with a datetime index."""
