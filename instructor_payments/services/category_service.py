"""Category ladder evaluation and per-discipline category determination."""

from __future__ import annotations

from typing import Optional, Sequence

from instructor_payments.domain.constraints import EngineConfig, engine_config_from_settings
from instructor_payments.domain.errors import ConfigurationError
from instructor_payments.domain.models import (
    BASE_CATEGORY,
    CategoryAssignment,
    CategoryEvaluation,
    CategoryRequirement,
    CategorySource,
    ClassRecord,
    CriterionResult,
    DisciplineMetrics,
    InstructorCategory,
)
from instructor_payments.repository.snapshot_repository import SnapshotRepository
from instructor_payments.services.metrics_service import aggregate_metrics
from instructor_payments.utils.config import Settings, get_settings
from instructor_payments.utils.logger import get_logger


logger = get_logger(__name__)


def _at_least(key: str, current, required) -> CriterionResult:
    return CriterionResult(key=key, current=current, required=required, met=current >= required)


def _required_flag(key: str, current: bool, required: bool) -> CriterionResult:
    return CriterionResult(key=key, current=current, required=required, met=current or not required)


def _optional_minimum(key: str, current, required) -> Optional[CriterionResult]:
    if required is None:
        return None
    met = current is not None and current >= required
    return CriterionResult(key=key, current=current, required=required, met=met)


def evaluate_criteria(
    requirement: CategoryRequirement,
    metrics: DisciplineMetrics,
) -> tuple[CriterionResult, ...]:
    """One result per declared threshold of ``requirement``."""
    criteria = [
        _at_least("occupancy", metrics.average_occupancy, requirement.occupancy),
        _at_least("classes_per_week", metrics.classes_per_week, requirement.classes_per_week),
        _at_least("venues", metrics.venues, requirement.venues),
        _at_least("back_to_backs", metrics.back_to_backs, requirement.back_to_backs),
        _at_least("off_peak_classes", metrics.off_peak_classes, requirement.off_peak_classes),
        _required_flag(
            "event_participation",
            metrics.event_participation,
            requirement.event_participation,
        ),
        _required_flag("guidelines", metrics.meets_guidelines, requirement.guidelines),
    ]
    optional = (
        _optional_minimum(
            "minimum_seniority_months",
            metrics.seniority_months,
            requirement.minimum_seniority_months,
        ),
        _optional_minimum(
            "minimum_evaluation",
            metrics.average_evaluation,
            requirement.minimum_evaluation,
        ),
        _optional_minimum(
            "minimum_trainings",
            metrics.completed_trainings,
            requirement.minimum_trainings,
        ),
    )
    criteria.extend(item for item in optional if item is not None)
    return tuple(criteria)


def evaluate_all_categories(
    ladder: Sequence[CategoryRequirement],
    metrics: DisciplineMetrics,
) -> tuple[CategoryEvaluation, ...]:
    return tuple(
        CategoryEvaluation(
            category=requirement.category,
            criteria=evaluate_criteria(requirement, metrics),
        )
        for requirement in ladder
    )


def determine_category_from_metrics(
    ladder: Sequence[CategoryRequirement],
    metrics: DisciplineMetrics,
) -> InstructorCategory:
    """First tier, strictest first, whose every threshold is met; else the base tier."""
    for requirement in ladder:
        if all(criterion.met for criterion in evaluate_criteria(requirement, metrics)):
            return requirement.category
    return BASE_CATEGORY


class CategoryService:
    """Resolves an instructor's category per discipline and period."""

    def __init__(
        self,
        repository: SnapshotRepository,
        settings: Optional[Settings] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._config = config or engine_config_from_settings(self._settings)
        self._repository = repository

    def compute_metrics(
        self,
        instructor_id: str,
        discipline_id: str,
        period_id: str,
        classes: Optional[Sequence[ClassRecord]] = None,
    ) -> DisciplineMetrics:
        if classes is None:
            classes = self._repository.list_classes(
                instructor_id=instructor_id,
                period_id=period_id,
                discipline_id=discipline_id,
            )
        discipline = self._repository.get_discipline(discipline_id)
        return aggregate_metrics(
            classes,
            discipline_name=discipline.name if discipline else discipline_id,
            config=self._config,
            schedule=self._repository.off_peak_schedule,
            events=self._repository.list_events(instructor_id, period_id),
            guideline_checks=self._repository.list_guideline_checks(instructor_id, period_id),
            profile=self._repository.get_profile(instructor_id),
        )

    def assign_category(
        self,
        instructor_id: str,
        discipline_id: str,
        period_id: str,
        classes: Optional[Sequence[ClassRecord]] = None,
    ) -> CategoryAssignment:
        manual = self._repository.get_manual_category(instructor_id, discipline_id, period_id)
        if manual is not None:
            logger.info(
                "Manual category applied | instructor_id=%s | discipline_id=%s | category=%s",
                instructor_id,
                discipline_id,
                manual.value,
            )
            return CategoryAssignment(
                discipline_id=discipline_id,
                category=manual,
                source=CategorySource.MANUAL,
            )

        formula = self._repository.get_formula(discipline_id, period_id)
        if formula is None:
            raise ConfigurationError(
                f"no formula for discipline {discipline_id} in period {period_id}"
            )

        metrics = self.compute_metrics(instructor_id, discipline_id, period_id, classes)
        category = determine_category_from_metrics(formula.requirements, metrics)
        logger.info(
            (
                "Category determined | instructor_id=%s | discipline_id=%s | category=%s | "
                "occupancy=%.2f | classes_per_week=%.2f | venues=%s"
            ),
            instructor_id,
            discipline_id,
            category.value,
            metrics.average_occupancy,
            metrics.classes_per_week,
            metrics.venues,
        )
        return CategoryAssignment(
            discipline_id=discipline_id,
            category=category,
            source=CategorySource.COMPUTED,
            metrics=metrics,
        )

    def determine_category(
        self,
        instructor_id: str,
        discipline_id: str,
        period_id: str,
    ) -> InstructorCategory:
        return self.assign_category(instructor_id, discipline_id, period_id).category

    def explain_category(
        self,
        instructor_id: str,
        discipline_id: str,
        period_id: str,
    ) -> tuple[CategoryEvaluation, ...]:
        """Criterion-by-criterion results for every tier of the ladder."""
        formula = self._repository.get_formula(discipline_id, period_id)
        if formula is None:
            raise ConfigurationError(
                f"no formula for discipline {discipline_id} in period {period_id}"
            )
        metrics = self.compute_metrics(instructor_id, discipline_id, period_id)
        return evaluate_all_categories(formula.requirements, metrics)
