"""Payment for a single class: tariff, quota, clamps and versus split."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from instructor_payments.domain.constraints import validate_class_record
from instructor_payments.domain.errors import VersusSplitError
from instructor_payments.domain.models import (
    ClassPaymentResult,
    ClassRecord,
    InstructorCategory,
    PaymentParameters,
    TariffSource,
    quantize_money,
    to_decimal,
)
from instructor_payments.services.tariff_service import resolve_tariff
from instructor_payments.utils.logger import get_logger


logger = get_logger(__name__)

FULL_HOUSE_MARKER = "full house"


def is_full_house_by_cover(record: ClassRecord) -> bool:
    return bool(record.special_text) and FULL_HOUSE_MARKER in record.special_text.lower()


def versus_divisor(record: ClassRecord) -> int:
    if not record.is_versus:
        return 1
    if record.versus_number is None or record.versus_number <= 0:
        raise VersusSplitError(
            f"class {record.class_id}: versus class needs a positive versus_number, "
            f"got {record.versus_number!r}"
        )
    return record.versus_number


def occupancy_percent(reservations: int, spots: int) -> Decimal:
    if spots <= 0:
        return Decimal("0")
    ratio = Decimal(reservations) * Decimal("100") / Decimal(spots)
    return ratio.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def calculate_class_payment(
    record: ClassRecord,
    parameters: PaymentParameters,
    category: InstructorCategory,
) -> ClassPaymentResult:
    validate_class_record(record)
    divisor = versus_divisor(record)

    by_cover = is_full_house_by_cover(record)
    reservations = record.spots if by_cover else record.total_reservations

    resolution = resolve_tariff(parameters, reservations=reservations, capacity=record.spots)
    raw_amount = resolution.tariff * Decimal(reservations)
    amount = raw_amount

    fixed_quota = to_decimal(parameters.fixed_quota)
    quota_applied = Decimal("0")
    if fixed_quota > 0:
        amount += fixed_quota
        quota_applied = fixed_quota

    minimum = to_decimal(parameters.guaranteed_minimum)
    minimum_applied = False
    if minimum > 0 and amount < minimum:
        amount = minimum
        minimum_applied = True

    maximum = to_decimal(parameters.maximum)
    maximum_applied = False
    if maximum > 0 and amount > maximum:
        amount = maximum
        maximum_applied = True

    undivided = quantize_money(amount)
    final_amount = quantize_money(amount / Decimal(divisor)) if divisor > 1 else undivided

    logger.debug(
        (
            "Class payment | class_id=%s | category=%s | reservations=%s/%s | "
            "tariff=%s (%s) | amount=%s | versus_divisor=%s"
        ),
        record.class_id,
        category.value,
        reservations,
        record.spots,
        resolution.tariff,
        resolution.source.value,
        final_amount,
        divisor,
    )
    return ClassPaymentResult(
        class_id=record.class_id,
        discipline_id=record.discipline_id,
        category=category,
        starts_at=record.starts_at,
        studio=record.studio,
        spots=record.spots,
        reservations=reservations,
        occupancy_percent=occupancy_percent(reservations, record.spots),
        tariff=resolution.tariff,
        tariff_source=resolution.source,
        tier_index=resolution.tier_index,
        raw_amount=raw_amount,
        fixed_quota_applied=quota_applied,
        minimum_applied=minimum_applied,
        maximum_applied=maximum_applied,
        undivided_amount=undivided,
        versus_divisor=divisor,
        amount=final_amount,
        is_full_house=resolution.source == TariffSource.FULL_HOUSE,
        is_full_house_by_cover=by_cover,
    )
