"""Fixed-layout 32-byte price bar records."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar

RECORD_SIZE = 32
PRICE_SCALE = 100.0


def unpack_minute_date(packed: int, minutes: int) -> datetime:
    """Decode the packed year/month/day word and minutes-since-midnight word."""
    year = packed // 2048 + 2004
    month = (packed % 2048) // 100
    day = (packed % 2048) % 100
    return datetime(year, month, day, minutes // 60, minutes % 60)


def unpack_day_date(value: int) -> datetime:
    """Decode a YYYYMMDD integer."""
    return datetime(value // 10000, value // 100 % 100, value % 100)


@dataclass(frozen=True)
class Bar:
    """One decoded price/volume record for a fixed time bucket."""

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    amount: float
    volume: float

    layout: ClassVar[struct.Struct]

    @classmethod
    def from_record(cls, record: bytes) -> Bar:
        raise NotImplementedError


@dataclass(frozen=True)
class DayBar(Bar):
    """Daily bar with integer-hundredths prices."""

    layout: ClassVar[struct.Struct] = struct.Struct("<IIIIIfII")

    @classmethod
    def from_record(cls, record: bytes) -> DayBar:
        date, open_, high, low, close, amount, volume, _ = cls.layout.unpack(record)
        return cls(
            timestamp=unpack_day_date(date),
            open=open_ / PRICE_SCALE,
            high=high / PRICE_SCALE,
            low=low / PRICE_SCALE,
            close=close / PRICE_SCALE,
            amount=float(amount),
            volume=float(volume),
        )


@dataclass(frozen=True)
class FiveMinuteBar(Bar):
    """Five-minute bar with a packed date and integer-hundredths prices."""

    layout: ClassVar[struct.Struct] = struct.Struct("<HHIIIIfII")

    @classmethod
    def from_record(cls, record: bytes) -> FiveMinuteBar:
        date, minutes, open_, high, low, close, amount, volume, _ = cls.layout.unpack(record)
        return cls(
            timestamp=unpack_minute_date(date, minutes),
            open=open_ / PRICE_SCALE,
            high=high / PRICE_SCALE,
            low=low / PRICE_SCALE,
            close=close / PRICE_SCALE,
            amount=float(amount),
            volume=float(volume),
        )


@dataclass(frozen=True)
class MinuteBar(Bar):
    """Minute-bucket bar (1 or 5 minutes) with float32 prices."""

    layout: ClassVar[struct.Struct] = struct.Struct("<HHfffffII")

    @classmethod
    def from_record(cls, record: bytes) -> MinuteBar:
        date, minutes, open_, high, low, close, amount, volume, _ = cls.layout.unpack(record)
        return cls(
            timestamp=unpack_minute_date(date, minutes),
            open=float(open_),
            high=float(high),
            low=float(low),
            close=float(close),
            amount=float(amount),
            volume=float(volume),
        )


BAR_FORMATS: dict[str, type[Bar]] = {
    ".day": DayBar,
    ".5": FiveMinuteBar,
    ".lc5": MinuteBar,
    ".lc1": MinuteBar,
}
