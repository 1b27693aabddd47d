"""Read-only lookups over collaborator-supplied record snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from instructor_payments.domain.constraints import validate_formula
from instructor_payments.domain.errors import ConfigurationError
from instructor_payments.domain.models import (
    Branding,
    ClassRecord,
    Cover,
    Discipline,
    EventParticipation,
    Formula,
    GuidelineCheck,
    InstructorCategory,
    InstructorProfile,
    ManualCategory,
    Penalty,
    Period,
    ThemeRide,
    Workshop,
)
from instructor_payments.domain.schedule import OffPeakSchedule
from instructor_payments.utils.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class RecordSnapshot:
    """Everything the engine may read, fetched up front by the caller."""

    periods: tuple[Period, ...] = ()
    disciplines: tuple[Discipline, ...] = ()
    formulas: tuple[Formula, ...] = ()
    classes: tuple[ClassRecord, ...] = ()
    penalties: tuple[Penalty, ...] = ()
    covers: tuple[Cover, ...] = ()
    brandings: tuple[Branding, ...] = ()
    theme_rides: tuple[ThemeRide, ...] = ()
    workshops: tuple[Workshop, ...] = ()
    manual_categories: tuple[ManualCategory, ...] = ()
    events: tuple[EventParticipation, ...] = ()
    guideline_checks: tuple[GuidelineCheck, ...] = ()
    profiles: tuple[InstructorProfile, ...] = ()
    off_peak_schedule: OffPeakSchedule = field(default_factory=OffPeakSchedule)


class SnapshotRepository:
    """Indexes a snapshot so services stay storage-agnostic."""

    def __init__(self, snapshot: RecordSnapshot) -> None:
        self._snapshot = snapshot
        self._periods = {period.period_id: period for period in snapshot.periods}
        self._disciplines = {
            discipline.discipline_id: discipline for discipline in snapshot.disciplines
        }
        self._formulas: dict[tuple[str, str], Formula] = {}
        for formula in snapshot.formulas:
            key = (formula.discipline_id, formula.period_id)
            if key in self._formulas:
                raise ConfigurationError(
                    f"duplicate formula for discipline {key[0]} in period {key[1]}"
                )
            validate_formula(formula)
            self._formulas[key] = formula
        self._profiles = {profile.instructor_id: profile for profile in snapshot.profiles}
        self._manual_categories = {
            (item.instructor_id, item.discipline_id, item.period_id): item.category
            for item in snapshot.manual_categories
        }
        logger.debug(
            "Snapshot indexed | periods=%s | formulas=%s | classes=%s",
            len(self._periods),
            len(self._formulas),
            len(snapshot.classes),
        )

    @property
    def off_peak_schedule(self) -> OffPeakSchedule:
        return self._snapshot.off_peak_schedule

    def get_period(self, period_id: str) -> Optional[Period]:
        return self._periods.get(period_id)

    def get_discipline(self, discipline_id: str) -> Optional[Discipline]:
        return self._disciplines.get(discipline_id)

    def get_formula(self, discipline_id: str, period_id: str) -> Optional[Formula]:
        return self._formulas.get((discipline_id, period_id))

    def get_manual_category(
        self,
        instructor_id: str,
        discipline_id: str,
        period_id: str,
    ) -> Optional[InstructorCategory]:
        return self._manual_categories.get((instructor_id, discipline_id, period_id))

    def get_profile(self, instructor_id: str) -> Optional[InstructorProfile]:
        return self._profiles.get(instructor_id)

    def list_classes(
        self,
        instructor_id: str,
        period_id: str,
        discipline_id: Optional[str] = None,
    ) -> list[ClassRecord]:
        return [
            record
            for record in self._snapshot.classes
            if record.instructor_id == instructor_id
            and record.period_id == period_id
            and (discipline_id is None or record.discipline_id == discipline_id)
        ]

    def list_penalties(self, instructor_id: str, period_id: str) -> list[Penalty]:
        return [
            penalty
            for penalty in self._snapshot.penalties
            if penalty.instructor_id == instructor_id and penalty.period_id == period_id
        ]

    def list_covers(self, instructor_id: str, period_id: str) -> list[Cover]:
        return [
            cover
            for cover in self._snapshot.covers
            if cover.instructor_id == instructor_id and cover.period_id == period_id
        ]

    def list_brandings(self, instructor_id: str, period_id: str) -> list[Branding]:
        return [
            branding
            for branding in self._snapshot.brandings
            if branding.instructor_id == instructor_id and branding.period_id == period_id
        ]

    def list_theme_rides(self, instructor_id: str, period_id: str) -> list[ThemeRide]:
        return [
            ride
            for ride in self._snapshot.theme_rides
            if ride.instructor_id == instructor_id and ride.period_id == period_id
        ]

    def list_workshops(self, instructor_id: str, period_id: str) -> list[Workshop]:
        return [
            workshop
            for workshop in self._snapshot.workshops
            if workshop.instructor_id == instructor_id and workshop.period_id == period_id
        ]

    def list_events(self, instructor_id: str, period_id: str) -> list[EventParticipation]:
        return [
            event
            for event in self._snapshot.events
            if event.instructor_id == instructor_id and event.period_id == period_id
        ]

    def list_guideline_checks(self, instructor_id: str, period_id: str) -> list[GuidelineCheck]:
        return [
            check
            for check in self._snapshot.guideline_checks
            if check.instructor_id == instructor_id and check.period_id == period_id
        ]
