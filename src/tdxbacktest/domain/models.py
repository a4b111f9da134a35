"""Core observation, action, and simulation models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum

from tdxbacktest.domain.bars import Bar
from tdxbacktest.errors import ConfigError


class Action(StrEnum):
    """Strategy decision for one observation."""

    BUY = "buy"
    HOLD = "hold"
    SELL = "sell"


@dataclass(frozen=True)
class Observation:
    """Normalized snapshot of one bar."""

    date: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    @classmethod
    def from_bar(cls, bar: Bar) -> Observation:
        return cls(
            date=bar.timestamp,
            open=float(bar.open),
            high=float(bar.high),
            low=float(bar.low),
            close=float(bar.close),
            volume=float(bar.volume),
        )


@dataclass(frozen=True)
class TradeConfig:
    """Starting balance and minimum tradable share increment."""

    starting_balance: float = 10000.0
    min_tradable_size: float = 100.0

    def __post_init__(self) -> None:
        if self.starting_balance <= 0:
            raise ConfigError("starting_balance must be positive")
        if self.min_tradable_size <= 0:
            raise ConfigError("min_tradable_size must be positive")


DEFAULT_TRADE_CONFIG = TradeConfig()


@dataclass
class SimulationState:
    """Mutable state owned by a single simulator run."""

    cash_balance: float
    shares_held: float = 0.0
    buy_count: int = 0
    sell_count: int = 0
    total_fees_paid: float = 0.0
    last_buy_date: date | None = None

    @property
    def is_long(self) -> bool:
        return self.shares_held > 0

    def equity(self, price: float) -> float:
        """Cash plus holdings marked at `price`."""
        return self.cash_balance + self.shares_held * price
