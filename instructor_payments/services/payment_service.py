"""Payment assembly and the per-instructor, per-period payment workflow."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from instructor_payments.domain.constraints import (
    EngineConfig,
    PenaltyDiscountRules,
    engine_config_from_settings,
)
from instructor_payments.domain.errors import ConfigurationError
from instructor_payments.domain.models import (
    Adjustment,
    AdjustmentType,
    BonusBreakdown,
    CategoryAssignment,
    ClassPaymentResult,
    ClassRecord,
    PaymentBreakdown,
    PaymentParameters,
    PaymentStatus,
    Penalty,
    quantize_money,
    to_decimal,
)
from instructor_payments.repository.snapshot_repository import SnapshotRepository
from instructor_payments.services.bonus_service import aggregate_bonuses
from instructor_payments.services.category_service import CategoryService
from instructor_payments.services.class_payment_service import calculate_class_payment
from instructor_payments.services.penalty_service import (
    calculate_penalty_discount,
    resolve_discount_rules,
)
from instructor_payments.utils.config import Settings, get_settings
from instructor_payments.utils.logger import get_logger


logger = get_logger(__name__)

FROZEN_STATUSES = frozenset({PaymentStatus.APPROVED, PaymentStatus.PAID, PaymentStatus.CANCELLED})


@dataclass(frozen=True)
class RecalculationPlan:
    recalculate: bool
    adjustment: Adjustment
    reason: str


def plan_recalculation(existing: Optional[PaymentBreakdown]) -> RecalculationPlan:
    """Decide whether a stored payment may be replaced by a fresh computation."""
    if existing is None:
        return RecalculationPlan(recalculate=True, adjustment=Adjustment(), reason="new payment")
    if existing.status in FROZEN_STATUSES:
        return RecalculationPlan(
            recalculate=False,
            adjustment=existing.adjustment,
            reason=f"payment is {existing.status.value}",
        )
    return RecalculationPlan(
        recalculate=True,
        adjustment=existing.adjustment,
        reason="pending payment recalculated, adjustment preserved",
    )


def adjustment_amount_for(base_amount: Decimal, adjustment: Adjustment) -> Decimal:
    value = to_decimal(adjustment.value)
    if adjustment.adjustment_type == AdjustmentType.PERCENTAGE:
        return quantize_money(base_amount * value)
    return quantize_money(value)


def resolve_retention_percent(
    parameters: Sequence[PaymentParameters],
    config: EngineConfig,
) -> tuple[Decimal, Optional[str]]:
    """Row override when present, else the default; the largest override wins a conflict."""
    overrides = sorted(
        {
            to_decimal(item.retention_percent)
            for item in parameters
            if item.retention_percent is not None
        }
    )
    if not overrides:
        return to_decimal(config.default_retention_percent), None
    if len(overrides) > 1:
        warning = (
            "conflicting retention overrides "
            f"{[str(value) for value in overrides]}, applying {overrides[-1]}"
        )
        return overrides[-1], warning
    return overrides[0], None


def assemble_payment(
    *,
    instructor_id: str,
    period_id: str,
    class_payments: Sequence[ClassPaymentResult],
    categories: Sequence[CategoryAssignment],
    adjustment: Adjustment,
    bonuses: BonusBreakdown,
    penalties: Sequence[Penalty],
    discount_rules: PenaltyDiscountRules,
    retention_percent: Decimal,
    warnings: Sequence[str] = (),
) -> PaymentBreakdown:
    base_amount = quantize_money(sum((item.amount for item in class_payments), Decimal("0")))
    adjustment_amount = adjustment_amount_for(base_amount, adjustment)
    adjusted_base = base_amount + adjustment_amount
    bonus_total = bonuses.total

    penalty = calculate_penalty_discount(
        penalties,
        pre_retention_total=adjusted_base + bonus_total,
        rules=discount_rules,
    )
    pre_retention = adjusted_base + bonus_total - penalty.amount
    retention_amount = (
        quantize_money(pre_retention * retention_percent) if pre_retention > 0 else Decimal("0.00")
    )
    final_payment = pre_retention - retention_amount

    return PaymentBreakdown(
        instructor_id=instructor_id,
        period_id=period_id,
        class_payments=tuple(class_payments),
        categories=tuple(categories),
        base_amount=base_amount,
        adjustment=adjustment,
        adjustment_amount=adjustment_amount,
        adjusted_base=adjusted_base,
        bonuses=bonuses,
        penalty=penalty,
        pre_retention=pre_retention,
        retention_percent=retention_percent,
        retention_amount=retention_amount,
        final_payment=final_payment,
        status=PaymentStatus.PENDING,
        warnings=tuple(warnings),
    )


class PaymentCalculationService:
    """Runs categories, class payments, bonuses and discounts for one instructor."""

    def __init__(
        self,
        repository: SnapshotRepository,
        settings: Optional[Settings] = None,
        config: Optional[EngineConfig] = None,
        category_service: Optional[CategoryService] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._config = config or engine_config_from_settings(self._settings)
        self._repository = repository
        self._category_service = category_service or CategoryService(
            repository=self._repository,
            settings=self._settings,
            config=self._config,
        )

    @property
    def category_service(self) -> CategoryService:
        return self._category_service

    def _group_by_discipline(self, classes: Sequence[ClassRecord]) -> dict[str, list[ClassRecord]]:
        grouped: dict[str, list[ClassRecord]] = defaultdict(list)
        for record in sorted(classes, key=lambda item: (item.starts_at, item.class_id)):
            grouped[record.discipline_id].append(record)
        return dict(sorted(grouped.items()))

    def compute_payment(
        self,
        instructor_id: str,
        period_id: str,
        adjustment: Optional[Adjustment] = None,
    ) -> PaymentBreakdown:
        classes = self._repository.list_classes(instructor_id=instructor_id, period_id=period_id)
        class_payments: list[ClassPaymentResult] = []
        assignments: list[CategoryAssignment] = []
        rows_used: list[PaymentParameters] = []

        for discipline_id, discipline_classes in self._group_by_discipline(classes).items():
            formula = self._repository.get_formula(discipline_id, period_id)
            if formula is None:
                raise ConfigurationError(
                    f"no formula for discipline {discipline_id} in period {period_id}"
                )
            assignment = self._category_service.assign_category(
                instructor_id,
                discipline_id,
                period_id,
                classes=discipline_classes,
            )
            parameters = formula.parameters_for(assignment.category)
            if parameters is None:
                raise ConfigurationError(
                    f"formula ({discipline_id}, {period_id}) has no payment parameters "
                    f"for category {assignment.category.value}"
                )
            assignments.append(assignment)
            rows_used.append(parameters)
            for record in discipline_classes:
                class_payments.append(
                    calculate_class_payment(record, parameters, assignment.category)
                )

        bonuses = aggregate_bonuses(
            covers=self._repository.list_covers(instructor_id, period_id),
            brandings=self._repository.list_brandings(instructor_id, period_id),
            theme_rides=self._repository.list_theme_rides(instructor_id, period_id),
            workshops=self._repository.list_workshops(instructor_id, period_id),
            config=self._config,
        )
        discount_rules = resolve_discount_rules(
            self._repository.get_period(period_id),
            self._config,
        )
        retention_percent, retention_warning = resolve_retention_percent(rows_used, self._config)
        warnings = []
        if retention_warning is not None:
            logger.warning(
                "Retention override conflict | instructor_id=%s | period_id=%s | %s",
                instructor_id,
                period_id,
                retention_warning,
            )
            warnings.append(retention_warning)

        breakdown = assemble_payment(
            instructor_id=instructor_id,
            period_id=period_id,
            class_payments=class_payments,
            categories=assignments,
            adjustment=adjustment or Adjustment(),
            bonuses=bonuses,
            penalties=self._repository.list_penalties(instructor_id, period_id),
            discount_rules=discount_rules,
            retention_percent=retention_percent,
            warnings=warnings,
        )
        logger.info(
            (
                "Payment computed | instructor_id=%s | period_id=%s | classes=%s | "
                "base=%s | bonus=%s | penalty=%s | retention=%s | final=%s"
            ),
            instructor_id,
            period_id,
            len(class_payments),
            breakdown.base_amount,
            breakdown.bonus_total,
            breakdown.penalty.amount,
            breakdown.retention_amount,
            breakdown.final_payment,
        )
        return breakdown

    def recalculate(
        self,
        instructor_id: str,
        period_id: str,
        existing: Optional[PaymentBreakdown] = None,
    ) -> PaymentBreakdown:
        """Recompute unless the stored payment is already approved, paid or cancelled."""
        plan = plan_recalculation(existing)
        if not plan.recalculate and existing is not None:
            logger.info(
                "Recalculation skipped | instructor_id=%s | period_id=%s | reason=%s",
                instructor_id,
                period_id,
                plan.reason,
            )
            return existing
        return self.compute_payment(instructor_id, period_id, adjustment=plan.adjustment)
