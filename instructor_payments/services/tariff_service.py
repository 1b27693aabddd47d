"""Per-reservation tariff lookup over an occupancy tier table."""

from __future__ import annotations

from instructor_payments.domain.errors import ConfigurationError, InvalidInputError
from instructor_payments.domain.models import (
    PaymentParameters,
    TariffResolution,
    TariffSource,
    to_decimal,
)
from instructor_payments.utils.logger import get_logger


logger = get_logger(__name__)


def is_full_house(reservations: int, capacity: int) -> bool:
    return capacity > 0 and reservations >= capacity


def resolve_tariff(
    parameters: PaymentParameters,
    reservations: int,
    capacity: int,
) -> TariffResolution:
    """Pick the tariff for a class.

    Full house wins over every tier. Otherwise the smallest tier whose
    threshold still covers ``reservations`` applies, and an uncovered count
    falls back to the full-house tariff.
    """
    if reservations < 0 or capacity < 0:
        raise InvalidInputError("reservations and capacity must be >= 0")

    full_house_tariff = to_decimal(parameters.full_house_tariff)
    if is_full_house(reservations, capacity):
        return TariffResolution(tariff=full_house_tariff, source=TariffSource.FULL_HOUSE)

    sorted_tiers = sorted(parameters.tiers, key=lambda tier: tier.reservations)
    for index, tier in enumerate(sorted_tiers):
        if tier.reservations >= reservations:
            return TariffResolution(
                tariff=to_decimal(tier.tariff),
                source=TariffSource.TIER,
                tier_index=index,
                tier_threshold=tier.reservations,
            )

    if not sorted_tiers and full_house_tariff <= 0:
        raise ConfigurationError("tariff table is empty and no full house tariff is configured")

    logger.warning(
        "No tier covers reservations, using full house tariff | reservations=%s | tiers=%s",
        reservations,
        len(sorted_tiers),
    )
    return TariffResolution(tariff=full_house_tariff, source=TariffSource.FALLBACK)
