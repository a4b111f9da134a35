"""Domain models for bars, observations, and simulation state."""

from .bars import BAR_FORMATS, RECORD_SIZE, Bar, DayBar, FiveMinuteBar, MinuteBar
from .models import (
    DEFAULT_TRADE_CONFIG,
    Action,
    Observation,
    SimulationState,
    TradeConfig,
)

__all__ = [
    "Action",
    "BAR_FORMATS",
    "Bar",
    "DEFAULT_TRADE_CONFIG",
    "DayBar",
    "FiveMinuteBar",
    "MinuteBar",
    "Observation",
    "RECORD_SIZE",
    "SimulationState",
    "TradeConfig",
]
