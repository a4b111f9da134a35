"""Streaming TDX bar decoding and lot-aware backtest simulation."""

from .data import TdxFileRepository, read_tdx_file
from .domain import Action, Observation, TradeConfig
from .execution import AStockCommissionFee, BacktestSimulator, outcome
from .stream import Stream

__all__ = [
    "AStockCommissionFee",
    "Action",
    "BacktestSimulator",
    "Observation",
    "Stream",
    "TdxFileRepository",
    "TradeConfig",
    "outcome",
    "read_tdx_file",
]
