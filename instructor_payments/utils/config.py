"""Environment-driven settings for the payment engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default)
    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a decimal number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    log_level: str
    default_retention_percent: Decimal
    penalty_allowed_points: int
    penalty_per_point_discount_percent: Decimal
    penalty_max_discount_percent: Decimal
    cover_bonus_rate: Decimal
    branding_bonus_rate: Decimal
    theme_ride_bonus_rate: Decimal
    back_to_back_window_minutes: int


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings once per process; tests call ``cache_clear`` to reload."""
    return Settings(
        log_level=os.getenv("PAYMENTS_LOG_LEVEL", "INFO"),
        default_retention_percent=_env_decimal("PAYMENTS_DEFAULT_RETENTION_PERCENT", "0.08"),
        penalty_allowed_points=_env_int("PAYMENTS_PENALTY_ALLOWED_POINTS", 10),
        penalty_per_point_discount_percent=_env_decimal(
            "PAYMENTS_PENALTY_PER_POINT_DISCOUNT_PERCENT", "0.02"
        ),
        penalty_max_discount_percent=_env_decimal(
            "PAYMENTS_PENALTY_MAX_DISCOUNT_PERCENT", "0.10"
        ),
        cover_bonus_rate=_env_decimal("PAYMENTS_COVER_BONUS_RATE", "30"),
        branding_bonus_rate=_env_decimal("PAYMENTS_BRANDING_BONUS_RATE", "50"),
        theme_ride_bonus_rate=_env_decimal("PAYMENTS_THEME_RIDE_BONUS_RATE", "40"),
        back_to_back_window_minutes=_env_int("PAYMENTS_BACK_TO_BACK_WINDOW_MINUTES", 60),
    )
