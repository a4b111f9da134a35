"""Whole-lot position sizing under quantity-dependent fees."""

from __future__ import annotations

import math

from tdxbacktest.domain.models import Action
from tdxbacktest.execution.commission import CommissionFee


def largest_affordable_size(
    balance: float,
    price: float,
    lot_size: float,
    fee: CommissionFee,
    action: Action = Action.BUY,
) -> tuple[float, float]:
    """Return `(qty, fee)` for the largest whole-lot purchase `balance` covers.

    The fee depends on quantity, so candidates are tried one lot at a time
    from the fee model's upper bound downwards. Returns `(0.0, 0.0)` when not
    even one lot is affordable.
    """
    if balance <= 0 or price <= 0 or lot_size <= 0:
        return 0.0, 0.0
    max_lots = math.floor(balance / price / lot_size)
    # bound plus one lot: float rounding can put an exact fit just above the bound
    bound_lots = math.floor(fee.max_affordable_size(price, balance) / lot_size) + 1
    lots = min(max_lots, bound_lots)
    while lots >= 1:
        qty = lots * lot_size
        cost_fee = fee.calculate(price, qty, action)
        if price * qty + cost_fee <= balance:
            return qty, cost_fee
        lots -= 1
    return 0.0, 0.0
