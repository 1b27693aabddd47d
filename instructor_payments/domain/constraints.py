"""Domain-level configuration and record validation rules."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from instructor_payments.domain.errors import ConfigurationError, InvalidInputError
from instructor_payments.domain.models import (
    ClassRecord,
    Formula,
    PaymentParameters,
    Penalty,
)
from instructor_payments.utils.config import Settings, get_settings


@dataclass(frozen=True)
class EngineConfig:
    default_retention_percent: Decimal = Decimal("0.08")
    penalty_allowed_points: int = 10
    penalty_per_point_discount_percent: Decimal = Decimal("0.02")
    penalty_max_discount_percent: Decimal = Decimal("0.10")
    cover_bonus_rate: Decimal = Decimal("30")
    branding_bonus_rate: Decimal = Decimal("50")
    theme_ride_bonus_rate: Decimal = Decimal("40")
    back_to_back_window_minutes: int = 60


@dataclass(frozen=True)
class PenaltyDiscountRules:
    allowed_points: int
    per_point_discount_percent: Decimal
    max_discount_percent: Decimal


def engine_config_from_settings(settings: Optional[Settings] = None) -> EngineConfig:
    resolved = settings or get_settings()
    config = EngineConfig(
        default_retention_percent=resolved.default_retention_percent,
        penalty_allowed_points=resolved.penalty_allowed_points,
        penalty_per_point_discount_percent=resolved.penalty_per_point_discount_percent,
        penalty_max_discount_percent=resolved.penalty_max_discount_percent,
        cover_bonus_rate=resolved.cover_bonus_rate,
        branding_bonus_rate=resolved.branding_bonus_rate,
        theme_ride_bonus_rate=resolved.theme_ride_bonus_rate,
        back_to_back_window_minutes=resolved.back_to_back_window_minutes,
    )
    validate_engine_config(config)
    return config


def _validate_fraction(name: str, value: Decimal) -> None:
    if not Decimal("0") <= value <= Decimal("1"):
        raise ValueError(f"{name} must be between 0 and 1")


def validate_engine_config(config: EngineConfig) -> None:
    _validate_fraction("default_retention_percent", config.default_retention_percent)
    _validate_fraction(
        "penalty_per_point_discount_percent",
        config.penalty_per_point_discount_percent,
    )
    _validate_fraction("penalty_max_discount_percent", config.penalty_max_discount_percent)
    if config.penalty_allowed_points < 0:
        raise ValueError("penalty_allowed_points must be >= 0")
    if config.cover_bonus_rate < 0:
        raise ValueError("cover_bonus_rate must be >= 0")
    if config.branding_bonus_rate < 0:
        raise ValueError("branding_bonus_rate must be >= 0")
    if config.theme_ride_bonus_rate < 0:
        raise ValueError("theme_ride_bonus_rate must be >= 0")
    if config.back_to_back_window_minutes <= 0:
        raise ValueError("back_to_back_window_minutes must be > 0")


def validate_class_record(record: ClassRecord) -> None:
    if record.spots < 0:
        raise InvalidInputError(f"class {record.class_id}: spots cannot be negative")
    for name in ("total_reservations", "paid_reservations", "waiting_list", "complimentary"):
        if getattr(record, name) < 0:
            raise InvalidInputError(f"class {record.class_id}: {name} cannot be negative")
    if record.week_number < 0:
        raise InvalidInputError(f"class {record.class_id}: week_number cannot be negative")


def validate_penalty(penalty: Penalty) -> None:
    if penalty.points < 0:
        raise InvalidInputError(f"penalty {penalty.penalty_id}: points cannot be negative")


def validate_discount_rules(label: str, rules: PenaltyDiscountRules) -> None:
    if rules.allowed_points < 0:
        raise InvalidInputError(f"{label}: allowed_points cannot be negative")
    for name in ("per_point_discount_percent", "max_discount_percent"):
        if not Decimal("0") <= getattr(rules, name) <= Decimal("1"):
            raise InvalidInputError(f"{label}: {name} must be between 0 and 1")


def validate_payment_parameters(label: str, parameters: PaymentParameters) -> None:
    for name in ("fixed_quota", "guaranteed_minimum", "full_house_tariff", "maximum", "bonus"):
        if getattr(parameters, name) < 0:
            raise ConfigurationError(f"{label}: {name} cannot be negative")
    if not parameters.tiers and parameters.full_house_tariff <= 0:
        raise ConfigurationError(f"{label}: tariff table is empty and has no full house tariff")
    for tier in parameters.tiers:
        if tier.reservations < 0 or tier.tariff < 0:
            raise ConfigurationError(f"{label}: tariff tiers cannot be negative")
    if parameters.retention_percent is not None and not (
        Decimal("0") <= parameters.retention_percent <= Decimal("1")
    ):
        raise ConfigurationError(f"{label}: retention_percent must be between 0 and 1")


def validate_formula(formula: Formula) -> None:
    """Check ladder/table consistency once, at load time."""
    label = f"formula ({formula.discipline_id}, {formula.period_id})"
    seen = set()
    for requirement in formula.requirements:
        if requirement.category in seen:
            raise ConfigurationError(
                f"{label}: category {requirement.category.value} appears twice in the ladder"
            )
        seen.add(requirement.category)
        if requirement.category not in formula.parameters:
            raise ConfigurationError(
                f"{label}: category {requirement.category.value} has no payment parameters"
            )
    for category, parameters in formula.parameters.items():
        validate_payment_parameters(f"{label} [{category.value}]", parameters)
