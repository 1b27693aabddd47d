"""Validate JSON-shaped formula configuration into typed ``Formula`` records."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, Mapping, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from instructor_payments.domain.constraints import validate_formula
from instructor_payments.domain.errors import ConfigurationError
from instructor_payments.domain.models import (
    CATEGORY_PRIORITY,
    CategoryRequirement,
    Formula,
    InstructorCategory,
    PaymentParameters,
    TariffTier,
)
from instructor_payments.utils.logger import get_logger


logger = get_logger(__name__)

CATEGORY_KEY_ALIASES: dict[str, InstructorCategory] = {
    "EMBAJADOR_SENIOR": InstructorCategory.SENIOR_AMBASSADOR,
    "EMBAJADOR": InstructorCategory.AMBASSADOR,
    "EMBAJADOR_JUNIOR": InstructorCategory.JUNIOR_AMBASSADOR,
}


def _coerce_decimal(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Decimal(str(value))
    return value


Money = Annotated[Decimal, BeforeValidator(_coerce_decimal)]


def parse_category(key: str) -> InstructorCategory:
    normalized = key.strip().upper()
    if normalized in CATEGORY_KEY_ALIASES:
        return CATEGORY_KEY_ALIASES[normalized]
    try:
        return InstructorCategory(normalized)
    except ValueError as exc:
        raise ConfigurationError(f"unknown instructor category {key!r}") from exc


class TariffTierPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    tariff: Money = Field(validation_alias=AliasChoices("tariff", "tarifa"), ge=0)
    number_of_reservations: int = Field(
        validation_alias=AliasChoices("numberOfReservations", "numeroReservas"),
        ge=0,
    )


class PaymentParametersPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    fixed_quota: Money = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("fixedQuota", "cuotaFija"),
        ge=0,
    )
    guaranteed_minimum: Money = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("guaranteedMinimum", "minimoGarantizado"),
        ge=0,
    )
    tariffs: list[TariffTierPayload] = Field(
        default_factory=list,
        validation_alias=AliasChoices("tariffs", "tarifas"),
    )
    full_house_tariff: Money = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("fullHouseTariff", "tarifaFullHouse"),
        ge=0,
    )
    maximum: Money = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("maximum", "maximo"),
        ge=0,
    )
    bonus: Money = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("bonus", "bono"),
        ge=0,
    )
    retention_percentage: Optional[Money] = Field(
        default=None,
        validation_alias=AliasChoices("retentionPercentage", "retencionPorcentaje"),
        ge=0,
    )
    adjustment_for_double_shift: Optional[Money] = Field(
        default=None,
        validation_alias=AliasChoices("adjustmentForDoubleShift", "ajustePorDobleteo"),
    )

    @field_validator("retention_percentage")
    @classmethod
    def normalize_retention(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        # The console stores whole percents (8) as well as fractions (0.08).
        if value is None:
            return None
        if value > 1:
            value = value / Decimal("100")
        if value > 1:
            raise ValueError("retentionPercentage must be at most 100")
        return value


class CategoryRequirementPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    occupancy: float = Field(
        default=0.0,
        validation_alias=AliasChoices("occupancy", "ocupacion"),
        ge=0.0,
    )
    classes: float = Field(default=0.0, validation_alias=AliasChoices("classes", "clases"), ge=0.0)
    locations_in_lima: int = Field(
        default=0,
        validation_alias=AliasChoices("locationsInLima", "localesEnLima"),
        ge=0,
    )
    double_shifts: int = Field(
        default=0,
        validation_alias=AliasChoices("doubleShifts", "dobleteos"),
        ge=0,
    )
    non_prime_hours: int = Field(
        default=0,
        validation_alias=AliasChoices("nonPrimeHours", "horariosNoPrime"),
        ge=0,
    )
    event_participation: bool = Field(
        default=False,
        validation_alias=AliasChoices("eventParticipation", "participacionEventos"),
    )
    guidelines: bool = Field(
        default=False,
        validation_alias=AliasChoices("guidelines", "lineamientos"),
    )
    minimum_seniority: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("minimumSeniority", "antiguedadMinima"),
        ge=0,
    )
    average_evaluation: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("averageEvaluation", "evaluacionPromedio"),
        ge=0.0,
    )
    completed_trainings: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("completedTrainings", "capacitacionesCompletadas"),
        ge=0,
    )


class FormulaPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    discipline_id: str = Field(alias="disciplineId", min_length=1)
    period_id: str = Field(alias="periodId", min_length=1)
    category_requirements: dict[str, CategoryRequirementPayload] = Field(
        default_factory=dict,
        alias="categoryRequirements",
    )
    payment_parameters: dict[str, PaymentParametersPayload] = Field(alias="paymentParameters")


def _to_requirement(
    category: InstructorCategory,
    payload: CategoryRequirementPayload,
) -> CategoryRequirement:
    return CategoryRequirement(
        category=category,
        occupancy=payload.occupancy,
        classes_per_week=payload.classes,
        venues=payload.locations_in_lima,
        back_to_backs=payload.double_shifts,
        off_peak_classes=payload.non_prime_hours,
        event_participation=payload.event_participation,
        guidelines=payload.guidelines,
        minimum_seniority_months=payload.minimum_seniority,
        minimum_evaluation=payload.average_evaluation,
        minimum_trainings=payload.completed_trainings,
    )


def _to_parameters(payload: PaymentParametersPayload) -> PaymentParameters:
    return PaymentParameters(
        fixed_quota=payload.fixed_quota,
        guaranteed_minimum=payload.guaranteed_minimum,
        tiers=tuple(
            TariffTier(reservations=tier.number_of_reservations, tariff=tier.tariff)
            for tier in payload.tariffs
        ),
        full_house_tariff=payload.full_house_tariff,
        maximum=payload.maximum,
        bonus=payload.bonus,
        retention_percent=payload.retention_percentage,
        back_to_back_adjustment=payload.adjustment_for_double_shift,
    )


def _keyed_by_category(items: Mapping[str, Any], label: str) -> dict[InstructorCategory, Any]:
    keyed: dict[InstructorCategory, Any] = {}
    for key, value in items.items():
        category = parse_category(key)
        if category in keyed:
            raise ConfigurationError(f"{label}: category {category.value} is declared twice")
        keyed[category] = value
    return keyed


def load_formula(payload: Mapping[str, Any]) -> Formula:
    """Validate a stored formula document and return the typed ``Formula``.

    The requirement ladder is ordered strictest first regardless of the key
    order in the document.
    """
    try:
        parsed = FormulaPayload.model_validate(payload)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid formula document: {exc}") from exc

    label = f"formula ({parsed.discipline_id}, {parsed.period_id})"
    requirements = _keyed_by_category(parsed.category_requirements, label)
    parameters = _keyed_by_category(parsed.payment_parameters, label)

    formula = Formula(
        discipline_id=parsed.discipline_id,
        period_id=parsed.period_id,
        requirements=tuple(
            _to_requirement(category, requirements[category])
            for category in CATEGORY_PRIORITY
            if category in requirements
        ),
        parameters={
            category: _to_parameters(parameters[category])
            for category in CATEGORY_PRIORITY
            if category in parameters
        },
    )
    validate_formula(formula)
    logger.debug(
        "Formula loaded | discipline_id=%s | period_id=%s | tiers=%s",
        formula.discipline_id,
        formula.period_id,
        [requirement.category.value for requirement in formula.requirements],
    )
    return formula
