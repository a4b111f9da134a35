"""Trading fee models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from tdxbacktest.domain.models import Action
from tdxbacktest.errors import ConfigError


class CommissionFee(ABC):
    """Pure fee calculation for one trade."""

    @abstractmethod
    def calculate(self, price: float, size: float, action: Action | str) -> float:
        """Return the total fee for trading `size` shares at `price`."""

    def max_affordable_size(self, price: float, balance: float) -> float:
        """Upper bound on the share count `balance` can pay for, fees included."""
        if price <= 0:
            return 0.0
        return max(balance, 0.0) / price


@dataclass(frozen=True)
class AStockCommissionFee(CommissionFee):
    """Proportional commission with a floor, slippage, and sell-side stamp duty."""

    commission_rate: float = 0.0003
    min_commission: float = 5.0
    slippage_rate: float = 0.001
    stamp_duty_rate: float = 0.0005

    def __post_init__(self) -> None:
        for field_name in ("commission_rate", "min_commission", "slippage_rate", "stamp_duty_rate"):
            if getattr(self, field_name) < 0:
                raise ConfigError(f"{field_name} must not be negative")

    def calculate(self, price: float, size: float, action: Action | str) -> float:
        notional = price * size
        commission = max(notional * self.commission_rate, self.min_commission)
        slippage = notional * self.slippage_rate
        stamp_duty = notional * self.stamp_duty_rate if action == Action.SELL else 0.0
        return commission + slippage + stamp_duty

    def max_affordable_size(self, price: float, balance: float) -> float:
        # fee >= min_commission + slippage and fee >= (commission + slippage) rates
        if price <= 0:
            return 0.0
        floor_bound = (balance - self.min_commission) / (price * (1.0 + self.slippage_rate))
        rate_bound = balance / (price * (1.0 + self.commission_rate + self.slippage_rate))
        return max(0.0, min(floor_bound, rate_bound))


class ZeroCommissionFee(CommissionFee):
    """Fee model that never charges anything."""

    def calculate(self, price: float, size: float, action: Action | str) -> float:
        return 0.0


DEFAULT_COMMISSION_FEE = AStockCommissionFee()
