"""Domain models for instructor payment and category computation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Optional, Union


MONEY_QUANTUM = Decimal("0.01")

Numeric = Union[Decimal, int, float, str]


def to_decimal(value: Numeric) -> Decimal:
    """Coerce ints, floats and strings without inheriting binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents, half up."""
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


class InstructorCategory(str, Enum):
    SENIOR_AMBASSADOR = "SENIOR_AMBASSADOR"
    AMBASSADOR = "AMBASSADOR"
    JUNIOR_AMBASSADOR = "JUNIOR_AMBASSADOR"
    INSTRUCTOR = "INSTRUCTOR"


BASE_CATEGORY = InstructorCategory.INSTRUCTOR

CATEGORY_PRIORITY: tuple[InstructorCategory, ...] = (
    InstructorCategory.SENIOR_AMBASSADOR,
    InstructorCategory.AMBASSADOR,
    InstructorCategory.JUNIOR_AMBASSADOR,
    InstructorCategory.INSTRUCTOR,
)


class AdjustmentType(str, Enum):
    FIXED = "FIXED"
    PERCENTAGE = "PERCENTAGE"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class PenaltyType(str, Enum):
    CANCELLATION_FIXED = "CANCELLATION_FIXED"
    CANCELLATION_OUT_OF_TIME = "CANCELLATION_OUT_OF_TIME"
    CANCEL_LESS_24HRS = "CANCEL_LESS_24HRS"
    COVER_OF_COVER = "COVER_OF_COVER"
    LATE_EXIT = "LATE_EXIT"
    LATE_ARRIVAL = "LATE_ARRIVAL"
    CUSTOM = "CUSTOM"


class TariffSource(str, Enum):
    FULL_HOUSE = "FULL_HOUSE"
    TIER = "TIER"
    FALLBACK = "FALLBACK"


class CategorySource(str, Enum):
    MANUAL = "MANUAL"
    COMPUTED = "COMPUTED"


@dataclass(frozen=True)
class Period:
    period_id: str
    number: int
    year: int
    start_date: date
    end_date: date
    payment_date: Optional[date] = None
    allowed_points: Optional[int] = None
    per_point_discount_percent: Optional[Decimal] = None
    max_discount_percent: Optional[Decimal] = None


@dataclass(frozen=True)
class Discipline:
    discipline_id: str
    name: str


@dataclass(frozen=True)
class TariffTier:
    reservations: int
    tariff: Decimal


@dataclass(frozen=True)
class PaymentParameters:
    fixed_quota: Decimal
    guaranteed_minimum: Decimal
    tiers: tuple[TariffTier, ...]
    full_house_tariff: Decimal
    maximum: Decimal
    bonus: Decimal = Decimal("0")
    retention_percent: Optional[Decimal] = None
    back_to_back_adjustment: Optional[Decimal] = None


@dataclass(frozen=True)
class CategoryRequirement:
    """Thresholds an instructor must meet to hold ``category``."""

    category: InstructorCategory
    occupancy: float = 0.0
    classes_per_week: float = 0.0
    venues: int = 0
    back_to_backs: int = 0
    off_peak_classes: int = 0
    event_participation: bool = False
    guidelines: bool = False
    minimum_seniority_months: Optional[int] = None
    minimum_evaluation: Optional[float] = None
    minimum_trainings: Optional[int] = None


@dataclass(frozen=True)
class Formula:
    discipline_id: str
    period_id: str
    requirements: tuple[CategoryRequirement, ...]
    parameters: dict[InstructorCategory, PaymentParameters]

    def parameters_for(self, category: InstructorCategory) -> Optional[PaymentParameters]:
        return self.parameters.get(category)

    def __hash__(self) -> int:
        return hash(
            (
                self.discipline_id,
                self.period_id,
                self.requirements,
                tuple(sorted(self.parameters.items(), key=lambda item: item[0].value)),
            )
        )


@dataclass(frozen=True)
class ClassRecord:
    class_id: str
    instructor_id: str
    discipline_id: str
    period_id: str
    starts_at: datetime
    week_number: int
    studio: str
    spots: int
    total_reservations: int
    paid_reservations: int = 0
    waiting_list: int = 0
    complimentary: int = 0
    is_versus: bool = False
    versus_number: Optional[int] = None
    special_text: Optional[str] = None


@dataclass(frozen=True)
class Penalty:
    penalty_id: str
    instructor_id: str
    period_id: str
    points: int
    active: bool = True
    discipline_id: Optional[str] = None
    penalty_type: PenaltyType = PenaltyType.CUSTOM
    applied_at: Optional[datetime] = None


@dataclass(frozen=True)
class Cover:
    cover_id: str
    instructor_id: str
    period_id: str
    bonus_applies: bool


@dataclass(frozen=True)
class Branding:
    branding_id: str
    instructor_id: str
    period_id: str


@dataclass(frozen=True)
class ThemeRide:
    theme_ride_id: str
    instructor_id: str
    period_id: str


@dataclass(frozen=True)
class Workshop:
    workshop_id: str
    instructor_id: str
    period_id: str
    payment: Decimal


@dataclass(frozen=True)
class ManualCategory:
    instructor_id: str
    discipline_id: str
    period_id: str
    category: InstructorCategory


@dataclass(frozen=True)
class EventParticipation:
    instructor_id: str
    period_id: str
    event_name: str = ""


@dataclass(frozen=True)
class GuidelineCheck:
    instructor_id: str
    period_id: str
    compliant: bool


@dataclass(frozen=True)
class InstructorProfile:
    instructor_id: str
    seniority_months: Optional[int] = None
    average_evaluation: Optional[float] = None
    completed_trainings: Optional[int] = None


@dataclass(frozen=True)
class Adjustment:
    value: Decimal = Decimal("0")
    adjustment_type: AdjustmentType = AdjustmentType.FIXED


@dataclass(frozen=True)
class TariffResolution:
    tariff: Decimal
    source: TariffSource
    tier_index: Optional[int] = None
    tier_threshold: Optional[int] = None


@dataclass(frozen=True)
class ClassPaymentResult:
    class_id: str
    discipline_id: str
    category: InstructorCategory
    starts_at: datetime
    studio: str
    spots: int
    reservations: int
    occupancy_percent: Decimal
    tariff: Decimal
    tariff_source: TariffSource
    tier_index: Optional[int]
    raw_amount: Decimal
    fixed_quota_applied: Decimal
    minimum_applied: bool
    maximum_applied: bool
    undivided_amount: Decimal
    versus_divisor: int
    amount: Decimal
    is_full_house: bool
    is_full_house_by_cover: bool


@dataclass(frozen=True)
class DisciplineMetrics:
    class_count: int
    total_reservations: int
    total_spots: int
    average_occupancy: float
    classes_per_week: float
    venues: int
    back_to_backs: int
    off_peak_classes: int
    event_participation: bool
    meets_guidelines: bool
    seniority_months: Optional[int] = None
    average_evaluation: Optional[float] = None
    completed_trainings: Optional[int] = None


@dataclass(frozen=True)
class CriterionResult:
    key: str
    current: Any
    required: Any
    met: bool


@dataclass(frozen=True)
class CategoryEvaluation:
    category: InstructorCategory
    criteria: tuple[CriterionResult, ...]

    @property
    def all_met(self) -> bool:
        return all(criterion.met for criterion in self.criteria)


@dataclass(frozen=True)
class CategoryAssignment:
    discipline_id: str
    category: InstructorCategory
    source: CategorySource
    metrics: Optional[DisciplineMetrics] = None


@dataclass(frozen=True)
class BonusBreakdown:
    cover_count: int
    cover: Decimal
    branding_count: int
    branding: Decimal
    theme_ride_count: int
    theme_ride: Decimal
    workshop_count: int
    workshop: Decimal

    @property
    def total(self) -> Decimal:
        return self.cover + self.branding + self.theme_ride + self.workshop


@dataclass(frozen=True)
class PenaltyDiscount:
    total_points: int
    allowed_points: int
    excess_points: int
    discount_percent: Decimal
    base_amount: Decimal
    amount: Decimal
    points_by_type: tuple[tuple[PenaltyType, int], ...] = ()


@dataclass(frozen=True)
class PaymentBreakdown:
    instructor_id: str
    period_id: str
    class_payments: tuple[ClassPaymentResult, ...]
    categories: tuple[CategoryAssignment, ...]
    base_amount: Decimal
    adjustment: Adjustment
    adjustment_amount: Decimal
    adjusted_base: Decimal
    bonuses: BonusBreakdown
    penalty: PenaltyDiscount
    pre_retention: Decimal
    retention_percent: Decimal
    retention_amount: Decimal
    final_payment: Decimal
    status: PaymentStatus = PaymentStatus.PENDING
    warnings: tuple[str, ...] = field(default=())

    @property
    def bonus_total(self) -> Decimal:
        return self.bonuses.total

    def to_dict(self) -> dict[str, Any]:
        """Flatten to the shape the payment detail view renders."""
        return {
            "instructor_id": self.instructor_id,
            "period_id": self.period_id,
            "status": self.status.value,
            "base_amount": str(self.base_amount),
            "adjustment": str(self.adjustment.value),
            "adjustment_type": self.adjustment.adjustment_type.value,
            "adjustment_amount": str(self.adjustment_amount),
            "adjusted_base": str(self.adjusted_base),
            "cover": str(self.bonuses.cover),
            "branding": str(self.bonuses.branding),
            "theme_ride": str(self.bonuses.theme_ride),
            "workshop": str(self.bonuses.workshop),
            "bonus": str(self.bonus_total),
            "penalty_points": self.penalty.total_points,
            "penalty_percent": str(self.penalty.discount_percent),
            "penalty": str(self.penalty.amount),
            "pre_retention": str(self.pre_retention),
            "retention_percent": str(self.retention_percent),
            "retention": str(self.retention_amount),
            "final_payment": str(self.final_payment),
            "categories": {
                assignment.discipline_id: assignment.category.value
                for assignment in self.categories
            },
            "classes": [
                {
                    "class_id": item.class_id,
                    "discipline_id": item.discipline_id,
                    "category": item.category.value,
                    "reservations": item.reservations,
                    "spots": item.spots,
                    "occupancy_percent": str(item.occupancy_percent),
                    "tariff": str(item.tariff),
                    "tariff_source": item.tariff_source.value,
                    "versus_divisor": item.versus_divisor,
                    "amount": str(item.amount),
                }
                for item in self.class_payments
            ],
            "warnings": list(self.warnings),
        }
