"""Single-position backtest simulation over paired price and action streams."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from typing import Any

import pandas as pd

from tdxbacktest.domain.models import (
    DEFAULT_TRADE_CONFIG,
    Action,
    Observation,
    SimulationState,
    TradeConfig,
)
from tdxbacktest.errors import SimulationError
from tdxbacktest.execution.commission import (
    DEFAULT_COMMISSION_FEE,
    CommissionFee,
    ZeroCommissionFee,
)
from tdxbacktest.execution.sizing import largest_affordable_size
from tdxbacktest.logging.logger import HumanLogger
from tdxbacktest.stream.pipeline import Stream, zip_fold


def _as_stream(items: Iterable[Any], name: str) -> Stream[Any]:
    if isinstance(items, Stream):
        return items
    return Stream.from_iterable(items, name=name)


def _calendar_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


class BacktestSimulator:
    """Replays actions against observations, fully in cash or fully invested.

    One instance is one run. Each step returns the return on the starting
    balance with holdings marked at that step's close, whether or not a
    trade happened.
    """

    def __init__(
        self,
        trade_config: TradeConfig = DEFAULT_TRADE_CONFIG,
        commission: CommissionFee = DEFAULT_COMMISSION_FEE,
        logger: HumanLogger | None = None,
    ) -> None:
        self.trade_config = trade_config
        self.commission = commission
        self.logger = logger
        self.state = SimulationState(cash_balance=trade_config.starting_balance)
        self.last_price: float | None = None
        self._started = False

    def run(
        self,
        observations: Iterable[Observation],
        actions: Iterable[Action],
    ) -> Stream[float]:
        """Return the lazily computed return series for aligned inputs."""
        self._start()
        return zip_fold(
            _as_stream(observations, "observations"),
            _as_stream(actions, "actions"),
            self.step,
            name="outcome",
        )

    def equity_curve(
        self,
        observations: Iterable[Observation],
        actions: Iterable[Action],
    ) -> pd.Series:
        """Run to completion and return the return series indexed by date."""
        self._start()

        def dated_step(observation: Observation, action: Action) -> tuple[datetime, float]:
            return observation.date, self.step(observation, action)

        with zip_fold(
            _as_stream(observations, "observations"),
            _as_stream(actions, "actions"),
            dated_step,
            name="equity_curve",
        ) as steps:
            rows = steps.collect()
        self.log_summary()
        index = pd.DatetimeIndex([when for when, _ in rows], name="date")
        return pd.Series([value for _, value in rows], index=index, name="return", dtype=float)

    def step(self, observation: Observation, action: Action | str) -> float:
        """Apply one action at the observation's close."""
        price = float(observation.close)
        decision = Action(action)
        if decision is Action.BUY:
            self._buy(price, observation.date)
        elif decision is Action.SELL:
            self._sell(price, observation.date)
        self.last_price = price
        return self.normalized_return(price)

    def normalized_return(self, price: float) -> float:
        starting = self.trade_config.starting_balance
        return (self.state.equity(price) - starting) / starting

    def log_summary(self) -> None:
        if self.logger is None:
            return
        price = self.last_price if self.last_price is not None else 0.0
        self.logger.run_summary(
            starting_balance=self.trade_config.starting_balance,
            equity=self.state.equity(price),
            buy_count=self.state.buy_count,
            sell_count=self.state.sell_count,
            total_fees=self.state.total_fees_paid,
        )

    def _start(self) -> None:
        if self._started:
            raise SimulationError("BacktestSimulator is single-run; create a new instance")
        self._started = True

    def _buy(self, price: float, when: date | datetime) -> None:
        state = self.state
        if state.is_long:
            self._skip("buy while holding", when)
            return
        qty, fee = largest_affordable_size(
            balance=state.cash_balance,
            price=price,
            lot_size=self.trade_config.min_tradable_size,
            fee=self.commission,
        )
        if qty <= 0:
            self._skip("no affordable lot", when)
            return
        state.cash_balance -= price * qty + fee
        state.shares_held += qty
        state.buy_count += 1
        state.total_fees_paid += fee
        state.last_buy_date = _calendar_date(when)
        if self.logger is not None:
            self.logger.trade(Action.BUY, when, price, qty, fee)

    def _sell(self, price: float, when: date | datetime) -> None:
        state = self.state
        if not state.is_long:
            self._skip("sell while flat", when)
            return
        if state.last_buy_date == _calendar_date(when):
            self._skip("same-day sell", when)
            return
        qty = state.shares_held
        fee = self.commission.calculate(price, qty, Action.SELL)
        state.cash_balance += price * qty - fee
        state.shares_held = 0.0
        state.sell_count += 1
        state.total_fees_paid += fee
        if self.logger is not None:
            self.logger.trade(Action.SELL, when, price, qty, fee)

    def _skip(self, reason: str, when: date | datetime) -> None:
        if self.logger is not None:
            self.logger.trade_skipped(reason, when)


def outcome(
    observations: Iterable[Observation],
    actions: Iterable[Action],
    trade_config: TradeConfig = DEFAULT_TRADE_CONFIG,
    commission: CommissionFee = DEFAULT_COMMISSION_FEE,
) -> Stream[float]:
    """Return series of a fresh simulator run."""
    return BacktestSimulator(trade_config=trade_config, commission=commission).run(
        observations, actions
    )


def fractional_outcome(values: Iterable[float], actions: Iterable[Action]) -> Stream[float]:
    """All-in variant: a balance of 1.0 buys fractional shares, no fees or lots."""
    balance = 1.0
    shares = 0.0

    def reduce(value: float, action: Action) -> float:
        nonlocal balance, shares
        price = float(value)
        decision = Action(action)
        if balance > 0 and decision is Action.BUY:
            shares = balance / price
            balance = 0.0
        elif shares > 0 and decision is Action.SELL:
            balance = shares * price
            shares = 0.0
        return balance + shares * price - 1.0

    return zip_fold(
        _as_stream(values, "values"),
        _as_stream(actions, "actions"),
        reduce,
        name="fractional_outcome",
    )


def value_outcome(
    values: Iterable[float],
    actions: Iterable[Action],
    trade_config: TradeConfig = DEFAULT_TRADE_CONFIG,
    commission: CommissionFee | None = None,
) -> Stream[float]:
    """Whole-lot variant over plain prices; commission-free unless a model is given.

    Values carry no dates, so sells are never blocked as same-day round trips.
    """
    fee_model = commission if commission is not None else ZeroCommissionFee()
    state = SimulationState(cash_balance=trade_config.starting_balance)
    starting = trade_config.starting_balance

    def reduce(value: float, action: Action) -> float:
        price = float(value)
        decision = Action(action)
        if decision is Action.BUY and not state.is_long:
            qty, fee = largest_affordable_size(
                balance=state.cash_balance,
                price=price,
                lot_size=trade_config.min_tradable_size,
                fee=fee_model,
            )
            if qty > 0:
                state.cash_balance -= price * qty + fee
                state.shares_held += qty
                state.buy_count += 1
                state.total_fees_paid += fee
        elif decision is Action.SELL and state.is_long:
            fee = fee_model.calculate(price, state.shares_held, Action.SELL)
            state.cash_balance += price * state.shares_held - fee
            state.shares_held = 0.0
            state.sell_count += 1
            state.total_fees_paid += fee
        return (state.equity(price) - starting) / starting

    return zip_fold(
        _as_stream(values, "values"),
        _as_stream(actions, "actions"),
        reduce,
        name="value_outcome",
    )
