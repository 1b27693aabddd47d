"""Off-peak slot classification by studio and start time."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Mapping, Optional


_TIME_PATTERN = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?\s*([aApP][mM])?\s*$")


def normalize_start_time(value: str) -> str:
    """Return ``HH:MM`` for 24-hour or ``h:mm am/pm`` inputs."""
    match = _TIME_PATTERN.match(value)
    if match is None:
        raise ValueError(f"start time {value!r} must follow HH:MM or h:mm am/pm")
    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    meridiem = (match.group(3) or "").lower()
    if meridiem == "pm" and hour < 12:
        hour += 12
    elif meridiem == "am" and hour == 12:
        hour = 0
    if not 0 <= hour <= 23 or not 0 <= minute <= 59:
        raise ValueError(f"start time {value!r} is out of range")
    return f"{hour:02d}:{minute:02d}"


@dataclass(frozen=True)
class OffPeakSchedule:
    """Studio name fragment -> start times that count as off-peak.

    ``disciplines`` limits classification to the named disciplines; ``None``
    applies the schedule to every discipline.
    """

    slots: Mapping[str, frozenset[str]] = field(default_factory=dict)
    disciplines: Optional[frozenset[str]] = None

    @classmethod
    def from_mapping(
        cls,
        slots: Mapping[str, list[str]],
        disciplines: Optional[list[str]] = None,
    ) -> "OffPeakSchedule":
        return cls(
            slots={
                studio: frozenset(normalize_start_time(item) for item in times)
                for studio, times in slots.items()
            },
            disciplines=frozenset(disciplines) if disciplines is not None else None,
        )

    def __hash__(self) -> int:
        return hash((frozenset(self.slots.items()), self.disciplines))

    def applies_to(self, discipline_name: str) -> bool:
        return self.disciplines is None or discipline_name in self.disciplines

    def is_off_peak(self, studio: str, start_time: str) -> bool:
        normalized = normalize_start_time(start_time)
        studio_key = studio.lower()
        for configured_studio, times in self.slots.items():
            if configured_studio.lower() in studio_key and normalized in times:
                return True
        return False
