"""Commission models, lot sizing, and backtest simulation."""

from .commission import (
    DEFAULT_COMMISSION_FEE,
    AStockCommissionFee,
    CommissionFee,
    ZeroCommissionFee,
)
from .simulator import BacktestSimulator, fractional_outcome, outcome, value_outcome
from .sizing import largest_affordable_size

__all__ = [
    "AStockCommissionFee",
    "BacktestSimulator",
    "CommissionFee",
    "DEFAULT_COMMISSION_FEE",
    "ZeroCommissionFee",
    "fractional_outcome",
    "largest_affordable_size",
    "outcome",
    "value_outcome",
]
