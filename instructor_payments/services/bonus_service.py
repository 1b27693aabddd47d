"""Cover, branding, theme ride and workshop credits."""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from instructor_payments.domain.constraints import EngineConfig
from instructor_payments.domain.errors import InvalidInputError
from instructor_payments.domain.models import (
    BonusBreakdown,
    Branding,
    Cover,
    ThemeRide,
    Workshop,
    quantize_money,
    to_decimal,
)


def aggregate_bonuses(
    covers: Sequence[Cover],
    brandings: Sequence[Branding],
    theme_rides: Sequence[ThemeRide],
    workshops: Sequence[Workshop],
    config: EngineConfig,
) -> BonusBreakdown:
    cover_count = sum(1 for cover in covers if cover.bonus_applies)

    workshop_total = Decimal("0")
    for workshop in workshops:
        payment = to_decimal(workshop.payment)
        if payment < 0:
            raise InvalidInputError(
                f"workshop {workshop.workshop_id}: payment cannot be negative"
            )
        workshop_total += payment

    return BonusBreakdown(
        cover_count=cover_count,
        cover=quantize_money(cover_count * to_decimal(config.cover_bonus_rate)),
        branding_count=len(brandings),
        branding=quantize_money(len(brandings) * to_decimal(config.branding_bonus_rate)),
        theme_ride_count=len(theme_rides),
        theme_ride=quantize_money(len(theme_rides) * to_decimal(config.theme_ride_bonus_rate)),
        workshop_count=len(workshops),
        workshop=quantize_money(workshop_total),
    )
