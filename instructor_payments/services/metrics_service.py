"""Performance metrics per instructor, discipline and period."""

from __future__ import annotations

from typing import Optional, Sequence

import pandas as pd

from instructor_payments.domain.constraints import EngineConfig, validate_class_record
from instructor_payments.domain.models import (
    ClassRecord,
    DisciplineMetrics,
    EventParticipation,
    GuidelineCheck,
    InstructorProfile,
)
from instructor_payments.domain.schedule import OffPeakSchedule


def _build_class_frame(classes: Sequence[ClassRecord]) -> pd.DataFrame:
    frame = pd.DataFrame(
        [
            {
                "class_id": record.class_id,
                "starts_at": pd.Timestamp(record.starts_at),
                "week_number": record.week_number,
                "studio": (record.studio or "").strip(),
                "spots": record.spots,
                "reservations": record.total_reservations,
            }
            for record in classes
        ]
    )
    return frame.sort_values(by=["starts_at", "class_id"], kind="mergesort").reset_index(drop=True)


def count_back_to_backs(frame: pd.DataFrame, window_minutes: int) -> int:
    """Count consecutive same-day classes starting within ``window_minutes``."""
    if len(frame) <= 1:
        return 0
    gaps = frame.groupby(frame["starts_at"].dt.date, sort=False)["starts_at"].diff().dropna()
    window = pd.Timedelta(minutes=window_minutes)
    return int(((gaps >= pd.Timedelta(0)) & (gaps <= window)).sum())


def count_off_peak_classes(
    classes: Sequence[ClassRecord],
    discipline_name: str,
    schedule: OffPeakSchedule,
) -> int:
    if not schedule.applies_to(discipline_name):
        return 0
    return sum(
        1
        for record in classes
        if schedule.is_off_peak(record.studio or "", record.starts_at.strftime("%H:%M"))
    )


def aggregate_metrics(
    classes: Sequence[ClassRecord],
    *,
    discipline_name: str,
    config: EngineConfig,
    schedule: Optional[OffPeakSchedule] = None,
    events: Sequence[EventParticipation] = (),
    guideline_checks: Sequence[GuidelineCheck] = (),
    profile: Optional[InstructorProfile] = None,
) -> DisciplineMetrics:
    for record in classes:
        validate_class_record(record)

    event_participation = len(events) > 0
    meets_guidelines = all(check.compliant for check in guideline_checks)
    seniority = profile.seniority_months if profile else None
    evaluation = profile.average_evaluation if profile else None
    trainings = profile.completed_trainings if profile else None

    if not classes:
        return DisciplineMetrics(
            class_count=0,
            total_reservations=0,
            total_spots=0,
            average_occupancy=0.0,
            classes_per_week=0.0,
            venues=0,
            back_to_backs=0,
            off_peak_classes=0,
            event_participation=event_participation,
            meets_guidelines=meets_guidelines,
            seniority_months=seniority,
            average_evaluation=evaluation,
            completed_trainings=trainings,
        )

    frame = _build_class_frame(classes)
    total_reservations = int(frame["reservations"].sum())
    total_spots = int(frame["spots"].sum())
    average_occupancy = (
        round(total_reservations * 100.0 / total_spots, 2) if total_spots > 0 else 0.0
    )
    week_count = int(frame["week_number"].nunique())
    classes_per_week = round(len(frame) / week_count, 2) if week_count else 0.0
    venues = int(frame.loc[frame["studio"] != "", "studio"].nunique())

    return DisciplineMetrics(
        class_count=len(frame),
        total_reservations=total_reservations,
        total_spots=total_spots,
        average_occupancy=average_occupancy,
        classes_per_week=classes_per_week,
        venues=venues,
        back_to_backs=count_back_to_backs(frame, config.back_to_back_window_minutes),
        off_peak_classes=count_off_peak_classes(
            classes,
            discipline_name,
            schedule or OffPeakSchedule(),
        ),
        event_participation=event_participation,
        meets_guidelines=meets_guidelines,
        seniority_months=seniority,
        average_evaluation=evaluation,
        completed_trainings=trainings,
    )
