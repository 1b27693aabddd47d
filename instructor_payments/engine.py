"""Engine wiring: one repository, one config, both collaborator-facing operations."""

from __future__ import annotations

from typing import Optional

from instructor_payments.domain.constraints import EngineConfig, engine_config_from_settings
from instructor_payments.domain.models import (
    Adjustment,
    CategoryEvaluation,
    InstructorCategory,
    PaymentBreakdown,
)
from instructor_payments.repository.snapshot_repository import RecordSnapshot, SnapshotRepository
from instructor_payments.services.category_service import CategoryService
from instructor_payments.services.payment_service import PaymentCalculationService
from instructor_payments.utils.config import Settings, get_settings
from instructor_payments.utils.logger import get_logger


logger = get_logger(__name__)


class PaymentEngine:
    """Facade exposing ``determine_category`` and ``compute_payment``."""

    def __init__(
        self,
        category_service: CategoryService,
        payment_service: PaymentCalculationService,
    ) -> None:
        self._category_service = category_service
        self._payment_service = payment_service

    def determine_category(
        self,
        instructor_id: str,
        discipline_id: str,
        period_id: str,
    ) -> InstructorCategory:
        return self._category_service.determine_category(instructor_id, discipline_id, period_id)

    def explain_category(
        self,
        instructor_id: str,
        discipline_id: str,
        period_id: str,
    ) -> tuple[CategoryEvaluation, ...]:
        return self._category_service.explain_category(instructor_id, discipline_id, period_id)

    def compute_payment(
        self,
        instructor_id: str,
        period_id: str,
        adjustment: Optional[Adjustment] = None,
    ) -> PaymentBreakdown:
        return self._payment_service.compute_payment(instructor_id, period_id, adjustment)

    def recalculate(
        self,
        instructor_id: str,
        period_id: str,
        existing: Optional[PaymentBreakdown] = None,
    ) -> PaymentBreakdown:
        return self._payment_service.recalculate(instructor_id, period_id, existing)


def create_engine(
    snapshot: RecordSnapshot,
    settings: Optional[Settings] = None,
    config: Optional[EngineConfig] = None,
) -> PaymentEngine:
    """Build the engine over an already-fetched snapshot.

    Formulas are validated while the repository indexes the snapshot, so a
    broken ladder fails here rather than halfway through a payment.
    """
    resolved_settings = settings or get_settings()
    resolved_config = config or engine_config_from_settings(resolved_settings)

    repository = SnapshotRepository(snapshot)
    category_service = CategoryService(
        repository=repository,
        settings=resolved_settings,
        config=resolved_config,
    )
    payment_service = PaymentCalculationService(
        repository=repository,
        settings=resolved_settings,
        config=resolved_config,
        category_service=category_service,
    )
    logger.debug("Payment engine created | classes=%s", len(snapshot.classes))
    return PaymentEngine(category_service=category_service, payment_service=payment_service)
