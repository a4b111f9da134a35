"""Environment and CLI runtime configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Self

from dotenv import load_dotenv

from tdxbacktest.domain.bars import BAR_FORMATS
from tdxbacktest.domain.models import TradeConfig
from tdxbacktest.errors import ConfigError
from tdxbacktest.execution.commission import AStockCommissionFee


def parse_float(value: str | None, default: float, *, field_name: str) -> float:
    """Parse an optional float from an env string."""
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"{field_name} must be a number, got '{value}'") from exc


def normalize_extension(value: str | None, default: str = ".day") -> str:
    """Lower-case an extension and make sure it starts with a dot."""
    candidate = (value or default).strip().lower()
    if not candidate.startswith("."):
        candidate = f".{candidate}"
    return candidate


@dataclass(frozen=True)
class Settings:
    """Immutable runtime settings."""

    data_dir: str = "vipdoc"
    extension: str = ".day"
    starting_balance: float = 10000.0
    min_tradable_size: float = 100.0
    commission_rate: float = 0.0003
    min_commission: float = 5.0
    slippage_rate: float = 0.001
    stamp_duty_rate: float = 0.0005
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Self:
        """Create settings from environment variables."""
        load_dotenv()
        defaults = cls()
        raw = cls(
            data_dir=str(os.getenv("TDX_DATA_DIR", defaults.data_dir)).strip(),
            extension=normalize_extension(os.getenv("TDX_EXTENSION"), defaults.extension),
            starting_balance=parse_float(
                os.getenv("STARTING_BALANCE"),
                defaults.starting_balance,
                field_name="starting_balance",
            ),
            min_tradable_size=parse_float(
                os.getenv("MIN_TRADABLE_SIZE"),
                defaults.min_tradable_size,
                field_name="min_tradable_size",
            ),
            commission_rate=parse_float(
                os.getenv("COMMISSION_RATE"),
                defaults.commission_rate,
                field_name="commission_rate",
            ),
            min_commission=parse_float(
                os.getenv("MIN_COMMISSION"),
                defaults.min_commission,
                field_name="min_commission",
            ),
            slippage_rate=parse_float(
                os.getenv("SLIPPAGE_RATE"),
                defaults.slippage_rate,
                field_name="slippage_rate",
            ),
            stamp_duty_rate=parse_float(
                os.getenv("STAMP_DUTY_RATE"),
                defaults.stamp_duty_rate,
                field_name="stamp_duty_rate",
            ),
            log_level=str(os.getenv("LOG_LEVEL", defaults.log_level)).strip().upper(),
        )
        return raw.validate()

    def with_overrides(self, **kwargs: object) -> Self:
        """Return a new settings object with updated values."""
        overrides = dict(kwargs)
        extension = overrides.get("extension")
        if isinstance(extension, str):
            overrides["extension"] = normalize_extension(extension)
        updated = replace(self, **overrides)
        return updated.validate()

    def trade_config(self) -> TradeConfig:
        return TradeConfig(
            starting_balance=self.starting_balance,
            min_tradable_size=self.min_tradable_size,
        )

    def commission_fee(self) -> AStockCommissionFee:
        return AStockCommissionFee(
            commission_rate=self.commission_rate,
            min_commission=self.min_commission,
            slippage_rate=self.slippage_rate,
            stamp_duty_rate=self.stamp_duty_rate,
        )

    def validate(self) -> Self:
        """Validate settings fields."""
        if not self.data_dir:
            raise ConfigError("data_dir must not be empty")
        if self.extension not in BAR_FORMATS:
            supported = ", ".join(sorted(BAR_FORMATS))
            raise ConfigError(f"extension must be one of {supported}")
        if self.starting_balance <= 0:
            raise ConfigError("starting_balance must be positive")
        if self.min_tradable_size <= 0:
            raise ConfigError("min_tradable_size must be positive")
        for field_name in ("commission_rate", "min_commission", "slippage_rate", "stamp_duty_rate"):
            if getattr(self, field_name) < 0:
                raise ConfigError(f"{field_name} must not be negative")
        return self
