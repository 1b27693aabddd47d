"""Penalty points to capped percentage discount."""

from __future__ import annotations

from collections import Counter
from decimal import Decimal
from typing import Optional, Sequence

from instructor_payments.domain.constraints import (
    EngineConfig,
    PenaltyDiscountRules,
    validate_discount_rules,
    validate_penalty,
)
from instructor_payments.domain.models import (
    Penalty,
    PenaltyDiscount,
    PenaltyType,
    Period,
    quantize_money,
    to_decimal,
)


def resolve_discount_rules(period: Optional[Period], config: EngineConfig) -> PenaltyDiscountRules:
    """Period overrides win over the engine defaults, field by field."""
    allowed = config.penalty_allowed_points
    per_point = config.penalty_per_point_discount_percent
    maximum = config.penalty_max_discount_percent
    if period is not None:
        if period.allowed_points is not None:
            allowed = period.allowed_points
        if period.per_point_discount_percent is not None:
            per_point = to_decimal(period.per_point_discount_percent)
        if period.max_discount_percent is not None:
            maximum = to_decimal(period.max_discount_percent)
    rules = PenaltyDiscountRules(
        allowed_points=allowed,
        per_point_discount_percent=per_point,
        max_discount_percent=maximum,
    )
    if period is not None:
        validate_discount_rules(f"period {period.period_id}", rules)
    return rules


def discount_percent_for(total_points: int, rules: PenaltyDiscountRules) -> Decimal:
    excess = max(0, total_points - rules.allowed_points)
    return min(rules.max_discount_percent, excess * rules.per_point_discount_percent)


def calculate_penalty_discount(
    penalties: Sequence[Penalty],
    pre_retention_total: Decimal,
    rules: PenaltyDiscountRules,
) -> PenaltyDiscount:
    for penalty in penalties:
        validate_penalty(penalty)
    active = [penalty for penalty in penalties if penalty.active]

    points_by_type: Counter[PenaltyType] = Counter()
    for penalty in active:
        points_by_type[penalty.penalty_type] += penalty.points
    total_points = sum(points_by_type.values())

    excess = max(0, total_points - rules.allowed_points)
    percent = discount_percent_for(total_points, rules)
    base = to_decimal(pre_retention_total)
    amount = quantize_money(base * percent) if base > 0 else Decimal("0.00")

    return PenaltyDiscount(
        total_points=total_points,
        allowed_points=rules.allowed_points,
        excess_points=excess,
        discount_percent=percent,
        base_amount=base,
        amount=amount,
        points_by_type=tuple(
            sorted(points_by_type.items(), key=lambda item: item[0].value)
        ),
    )
