"""Concise human-readable run logger."""

from __future__ import annotations

import logging
from datetime import date, datetime


class HumanLogger:
    """Console logger with fixed line types."""

    def __init__(self, level: str = "INFO") -> None:
        self._logger = logging.getLogger("tdxbacktest")
        self._logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        self._logger.propagate = False
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s | %(message)s", "%Y-%m-%d %H:%M:%S")
            handler.setFormatter(formatter)
            self._logger.addHandler(handler)

    def trade(
        self,
        side: str,
        when: date | datetime,
        price: float,
        qty: float,
        fee: float,
    ) -> None:
        self._logger.info(
            "trade | %s | %s | qty %s | price $%s | fee $%s",
            self._short_date(when),
            side.strip().lower(),
            self._format_qty(qty),
            f"{price:,.3f}",
            f"{fee:,.2f}",
        )

    def trade_skipped(self, reason: str, when: date | datetime) -> None:
        self._logger.debug("skip | %s | %s", self._short_date(when), reason)

    def run_summary(
        self,
        starting_balance: float,
        equity: float,
        buy_count: int,
        sell_count: int,
        total_fees: float,
    ) -> None:
        pnl = equity - starting_balance
        pnl_pct = pnl / starting_balance if starting_balance else 0.0
        self._logger.info(
            "summary | start $%s | end $%s | pnl %s | pnl%% %s | buys %d | sells %d | fees $%s",
            f"{starting_balance:,.2f}",
            f"{equity:,.2f}",
            f"{pnl:+,.2f}",
            f"{pnl_pct * 100.0:+,.3f}%",
            buy_count,
            sell_count,
            f"{total_fees:,.2f}",
        )

    def assets(self, base_dir: str, names: list[str]) -> None:
        self._logger.info("assets | %s | %d found", base_dir, len(names))

    def error(self, message: str) -> None:
        self._logger.error("error | %s", message)

    @staticmethod
    def _format_qty(value: float, precision: int = 4) -> str:
        normalized = 0.0 if abs(float(value)) < 1e-9 else float(value)
        text = f"{normalized:.{max(0, precision)}f}".rstrip("0").rstrip(".")
        if text in {"", "-0"}:
            return "0"
        return text

    @staticmethod
    def _short_date(value: date | datetime) -> str:
        if isinstance(value, datetime):
            if value.hour or value.minute:
                return value.strftime("%Y-%m-%d %H:%M")
            return value.strftime("%Y-%m-%d")
        return value.isoformat()
