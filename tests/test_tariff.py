from __future__ import annotations

from decimal import Decimal

import pytest

from instructor_payments.domain.errors import ConfigurationError, InvalidInputError
from instructor_payments.domain.models import PaymentParameters, TariffSource, TariffTier
from instructor_payments.services.tariff_service import is_full_house, resolve_tariff


def _parameters(tiers, full_house_tariff="9.50") -> PaymentParameters:
    return PaymentParameters(
        fixed_quota=Decimal("0"),
        guaranteed_minimum=Decimal("0"),
        tiers=tuple(TariffTier(reservations=limit, tariff=Decimal(rate)) for limit, rate in tiers),
        full_house_tariff=Decimal(full_house_tariff),
        maximum=Decimal("0"),
    )


# Deliberately unsorted to check the resolver sorts by threshold.
STANDARD_TIERS = [(30, "7.00"), (10, "4.00"), (20, "5.50")]


def test_full_house_takes_precedence_over_tiers() -> None:
    parameters = _parameters([(100, "1.00")])
    resolution = resolve_tariff(parameters, reservations=40, capacity=40)
    assert resolution.source == TariffSource.FULL_HOUSE
    assert resolution.tariff == Decimal("9.50")


@pytest.mark.parametrize("tiers", [[], [(5, "1.00")], STANDARD_TIERS, [(999, "0.10")]])
def test_full_house_ignores_tier_contents(tiers) -> None:
    resolution = resolve_tariff(_parameters(tiers), reservations=25, capacity=25)
    assert resolution.tariff == Decimal("9.50")


def test_overbooked_class_is_full_house() -> None:
    assert is_full_house(reservations=52, capacity=50)
    resolution = resolve_tariff(_parameters(STANDARD_TIERS), reservations=52, capacity=50)
    assert resolution.source == TariffSource.FULL_HOUSE


def test_zero_capacity_is_never_full_house() -> None:
    assert not is_full_house(reservations=0, capacity=0)
    resolution = resolve_tariff(_parameters(STANDARD_TIERS), reservations=0, capacity=0)
    assert resolution.source == TariffSource.TIER
    assert resolution.tariff == Decimal("4.00")


def test_smallest_covering_tier_wins() -> None:
    parameters = _parameters(STANDARD_TIERS)
    assert resolve_tariff(parameters, reservations=10, capacity=50).tariff == Decimal("4.00")
    assert resolve_tariff(parameters, reservations=11, capacity=50).tariff == Decimal("5.50")
    resolution = resolve_tariff(parameters, reservations=21, capacity=50)
    assert resolution.tariff == Decimal("7.00")
    assert resolution.tier_index == 2
    assert resolution.tier_threshold == 30


def test_uncovered_reservations_fall_back_to_full_house_tariff() -> None:
    resolution = resolve_tariff(_parameters(STANDARD_TIERS), reservations=45, capacity=50)
    assert resolution.source == TariffSource.FALLBACK
    assert resolution.tariff == Decimal("9.50")


def test_empty_tier_list_falls_back_to_full_house_tariff() -> None:
    resolution = resolve_tariff(_parameters([]), reservations=3, capacity=50)
    assert resolution.source == TariffSource.FALLBACK
    assert resolution.tariff == Decimal("9.50")


def test_empty_table_without_full_house_tariff_raises() -> None:
    with pytest.raises(ConfigurationError):
        resolve_tariff(_parameters([], full_house_tariff="0"), reservations=3, capacity=50)


def test_negative_reservations_raise() -> None:
    with pytest.raises(InvalidInputError):
        resolve_tariff(_parameters(STANDARD_TIERS), reservations=-1, capacity=50)


def test_tier_index_is_monotonic_below_capacity() -> None:
    parameters = _parameters(STANDARD_TIERS)
    previous = -1
    for reservations in range(0, 31):
        resolution = resolve_tariff(parameters, reservations=reservations, capacity=50)
        assert resolution.tier_index is not None
        assert resolution.tier_index >= previous
        previous = resolution.tier_index
