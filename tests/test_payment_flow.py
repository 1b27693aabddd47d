from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

import pytest

from instructor_payments.domain.errors import ConfigurationError, InvalidInputError
from instructor_payments.domain.models import (
    Adjustment,
    AdjustmentType,
    CategoryRequirement,
    ClassRecord,
    Cover,
    Discipline,
    Formula,
    InstructorCategory,
    PaymentParameters,
    PaymentStatus,
    Penalty,
    Period,
    TariffTier,
)
from instructor_payments.engine import create_engine
from instructor_payments.repository.snapshot_repository import RecordSnapshot
from instructor_payments.services.payment_service import plan_recalculation
from instructor_payments.utils.config import get_settings


def _parameters(**overrides) -> PaymentParameters:
    defaults = {
        "fixed_quota": Decimal("0"),
        "guaranteed_minimum": Decimal("0"),
        "tiers": (TariffTier(reservations=50, tariff=Decimal("25")),),
        "full_house_tariff": Decimal("30"),
        "maximum": Decimal("0"),
    }
    defaults.update(overrides)
    return PaymentParameters(**defaults)


def _formula(discipline_id: str, **parameter_overrides) -> Formula:
    return Formula(
        discipline_id=discipline_id,
        period_id="p-1",
        requirements=(CategoryRequirement(category=InstructorCategory.INSTRUCTOR),),
        parameters={InstructorCategory.INSTRUCTOR: _parameters(**parameter_overrides)},
    )


def _class(class_id: str, discipline_id: str = "d-cycle", reservations: int = 40) -> ClassRecord:
    return ClassRecord(
        class_id=class_id,
        instructor_id="i-1",
        discipline_id=discipline_id,
        period_id="p-1",
        starts_at=datetime(2025, 3, 3, 9, 0),
        week_number=1,
        studio="Reducto",
        spots=50,
        total_reservations=reservations,
    )


def _snapshot(**overrides) -> RecordSnapshot:
    defaults = {
        "periods": (
            Period(
                period_id="p-1",
                number=3,
                year=2025,
                start_date=date(2025, 3, 1),
                end_date=date(2025, 3, 31),
            ),
        ),
        "disciplines": (
            Discipline(discipline_id="d-cycle", name="Cycling"),
            Discipline(discipline_id="d-barre", name="Barre"),
        ),
        "formulas": (_formula("d-cycle"),),
        # 40 reservations at 25 -> 1000.00 base.
        "classes": (_class("c-1"),),
    }
    defaults.update(overrides)
    return RecordSnapshot(**defaults)


def test_retention_on_plain_base() -> None:
    breakdown = create_engine(_snapshot()).compute_payment("i-1", "p-1")
    assert breakdown.base_amount == Decimal("1000.00")
    assert breakdown.bonus_total == Decimal("0")
    assert breakdown.penalty.amount == Decimal("0")
    assert breakdown.retention_percent == Decimal("0.08")
    assert breakdown.retention_amount == Decimal("80.00")
    assert breakdown.final_payment == Decimal("920.00")
    assert breakdown.status == PaymentStatus.PENDING
    assert breakdown.warnings == ()


def test_missing_formula_aborts_payment() -> None:
    snapshot = _snapshot(classes=(_class("c-1"), _class("c-2", discipline_id="d-barre")))
    engine = create_engine(snapshot)
    with pytest.raises(ConfigurationError, match="d-barre"):
        engine.compute_payment("i-1", "p-1")


def test_missing_payment_row_for_category_aborts_payment() -> None:
    formula = Formula(
        discipline_id="d-cycle",
        period_id="p-1",
        requirements=(),
        parameters={InstructorCategory.AMBASSADOR: _parameters()},
    )
    engine = create_engine(_snapshot(formulas=(formula,)))
    with pytest.raises(ConfigurationError, match="INSTRUCTOR"):
        engine.compute_payment("i-1", "p-1")


def test_repeated_computation_is_identical() -> None:
    engine = create_engine(_snapshot())
    assert engine.compute_payment("i-1", "p-1") == engine.compute_payment("i-1", "p-1")


def test_percentage_adjustment_applies_to_base() -> None:
    engine = create_engine(_snapshot())
    breakdown = engine.compute_payment(
        "i-1",
        "p-1",
        adjustment=Adjustment(value=Decimal("0.10"), adjustment_type=AdjustmentType.PERCENTAGE),
    )
    assert breakdown.adjustment_amount == Decimal("100.00")
    assert breakdown.adjusted_base == Decimal("1100.00")
    assert breakdown.retention_amount == Decimal("88.00")
    assert breakdown.final_payment == Decimal("1012.00")


def test_bonus_and_penalty_order() -> None:
    snapshot = _snapshot(
        covers=(Cover(cover_id="cv-1", instructor_id="i-1", period_id="p-1", bonus_applies=True),),
        penalties=(
            Penalty(penalty_id="pn-1", instructor_id="i-1", period_id="p-1", points=15),
        ),
    )
    breakdown = create_engine(snapshot).compute_payment("i-1", "p-1")
    # 1000 + 30 cover, minus 10% of 1030, then 8% retention.
    assert breakdown.bonus_total == Decimal("30.00")
    assert breakdown.penalty.amount == Decimal("103.00")
    assert breakdown.pre_retention == Decimal("927.00")
    assert breakdown.retention_amount == Decimal("74.16")
    assert breakdown.final_payment == Decimal("852.84")


def test_negative_pre_retention_withholds_nothing() -> None:
    breakdown = create_engine(_snapshot()).compute_payment(
        "i-1",
        "p-1",
        adjustment=Adjustment(value=Decimal("-2000")),
    )
    assert breakdown.pre_retention == Decimal("-1000.00")
    assert breakdown.retention_amount == Decimal("0.00")
    assert breakdown.final_payment == Decimal("-1000.00")


def test_instructor_without_classes_gets_zero_base() -> None:
    breakdown = create_engine(_snapshot(classes=())).compute_payment("i-1", "p-1")
    assert breakdown.class_payments == ()
    assert breakdown.categories == ()
    assert breakdown.final_payment == Decimal("0.00")


def test_categories_reported_per_discipline() -> None:
    snapshot = _snapshot(
        formulas=(_formula("d-cycle"), _formula("d-barre")),
        classes=(_class("c-1"), _class("c-2", discipline_id="d-barre", reservations=20)),
    )
    breakdown = create_engine(snapshot).compute_payment("i-1", "p-1")
    assert [item.discipline_id for item in breakdown.categories] == ["d-barre", "d-cycle"]
    assert breakdown.base_amount == Decimal("1500.00")


def test_conflicting_retention_overrides_use_largest() -> None:
    snapshot = _snapshot(
        formulas=(
            _formula("d-cycle", retention_percent=Decimal("0.05")),
            _formula("d-barre", retention_percent=Decimal("0.10")),
        ),
        classes=(_class("c-1"), _class("c-2", discipline_id="d-barre")),
    )
    breakdown = create_engine(snapshot).compute_payment("i-1", "p-1")
    assert breakdown.retention_percent == Decimal("0.10")
    assert breakdown.retention_amount == Decimal("200.00")
    assert len(breakdown.warnings) == 1
    assert "conflicting retention" in breakdown.warnings[0]


def test_settings_control_default_retention() -> None:
    settings = replace(get_settings(), default_retention_percent=Decimal("0.05"))
    breakdown = create_engine(_snapshot(), settings=settings).compute_payment("i-1", "p-1")
    assert breakdown.retention_amount == Decimal("50.00")


def test_env_override_is_read_after_cache_clear(monkeypatch) -> None:
    monkeypatch.setenv("PAYMENTS_DEFAULT_RETENTION_PERCENT", "0.1")
    get_settings.cache_clear()
    try:
        breakdown = create_engine(_snapshot()).compute_payment("i-1", "p-1")
    finally:
        get_settings.cache_clear()
    assert breakdown.retention_amount == Decimal("100.00")


@pytest.mark.parametrize(
    "status",
    [PaymentStatus.APPROVED, PaymentStatus.PAID, PaymentStatus.CANCELLED],
)
def test_recalculation_leaves_settled_payments(status: PaymentStatus) -> None:
    engine = create_engine(_snapshot())
    existing = replace(engine.compute_payment("i-1", "p-1"), status=status)
    assert engine.recalculate("i-1", "p-1", existing) is existing


def test_recalculation_keeps_pending_adjustment() -> None:
    engine = create_engine(_snapshot())
    adjustment = Adjustment(value=Decimal("50"))
    existing = engine.compute_payment("i-1", "p-1", adjustment=adjustment)
    refreshed = engine.recalculate("i-1", "p-1", existing)
    assert refreshed.adjustment == adjustment
    assert refreshed.adjusted_base == Decimal("1050.00")


def test_plan_for_new_payment() -> None:
    plan = plan_recalculation(None)
    assert plan.recalculate
    assert plan.adjustment == Adjustment()


def test_breakdown_serializes_for_display() -> None:
    payload = create_engine(_snapshot()).compute_payment("i-1", "p-1").to_dict()
    assert payload["final_payment"] == "920.00"
    assert payload["status"] == "PENDING"
    assert payload["categories"] == {"d-cycle": "INSTRUCTOR"}
    assert payload["classes"][0]["amount"] == "1000.00"


def test_whole_percent_period_discount_aborts_payment() -> None:
    period = replace(
        _snapshot().periods[0],
        per_point_discount_percent=Decimal("2"),
        max_discount_percent=Decimal("10"),
    )
    snapshot = _snapshot(
        periods=(period,),
        penalties=(
            Penalty(penalty_id="pn-1", instructor_id="i-1", period_id="p-1", points=15),
        ),
    )
    with pytest.raises(InvalidInputError, match="period p-1"):
        create_engine(snapshot).compute_payment("i-1", "p-1")


def test_snapshot_and_breakdown_hash_by_value() -> None:
    assert hash(_snapshot()) == hash(_snapshot())
    assert _formula("d-cycle") == _formula("d-cycle")
    assert len({_formula("d-cycle"), _formula("d-cycle"), _formula("d-barre")}) == 2
    engine = create_engine(_snapshot())
    first = engine.compute_payment("i-1", "p-1")
    assert hash(first) == hash(engine.compute_payment("i-1", "p-1"))
