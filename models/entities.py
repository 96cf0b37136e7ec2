"""Domain models for the availability engine."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional

import pytz

from models.exceptions import InvalidConfiguration, UnsupportedPolicy

MINUTES_PER_DAY = 1440


class SchedulingPolicy(str, Enum):
    """How per-participant slot sets are combined."""
    SINGLE = "SINGLE"
    COLLECTIVE = "COLLECTIVE"
    ROUND_ROBIN = "ROUND_ROBIN"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SchedulingPolicy":
        """
        Map an event type's scheduling type onto a policy.

        ``None`` means a 1-on-1 event type and maps to SINGLE.
        """
        if value is None:
            return cls.SINGLE
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise UnsupportedPolicy(f"Unsupported scheduling policy: {value!r}") from None


def validate_timezone(name: str) -> None:
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise InvalidConfiguration(f"Unknown timezone: {name!r}") from None


@dataclass(frozen=True)
class WorkingHours:
    """One weekly working-hours rule, in the participant's local time."""
    allowed_weekdays: frozenset  # Python weekdays, Monday=0
    day_start_minute: int
    day_end_minute: int
    timezone: str

    def __post_init__(self):
        weekdays = frozenset(self.allowed_weekdays)
        object.__setattr__(self, "allowed_weekdays", weekdays)

        if any(not isinstance(d, int) or not 0 <= d <= 6 for d in weekdays):
            raise InvalidConfiguration(f"Weekdays must be in 0..6, got {sorted(weekdays)}")
        if not 0 <= self.day_start_minute < MINUTES_PER_DAY:
            raise InvalidConfiguration(
                f"day_start_minute must be in [0, {MINUTES_PER_DAY}), got {self.day_start_minute}"
            )
        if not self.day_start_minute < self.day_end_minute <= MINUTES_PER_DAY:
            raise InvalidConfiguration(
                f"day_end_minute must be in ({self.day_start_minute}, {MINUTES_PER_DAY}], "
                f"got {self.day_end_minute}"
            )
        validate_timezone(self.timezone)

    @property
    def tzinfo(self):
        return pytz.timezone(self.timezone)


@dataclass(frozen=True)
class BusyInterval:
    """A half-open busy period from an external calendar."""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise InvalidConfiguration("Busy intervals must be timezone-aware")
        if not self.start < self.end:
            raise InvalidConfiguration(
                f"Busy interval start must precede end: {self.start} >= {self.end}"
            )


@dataclass
class ParticipantAvailability:
    """Everything fetched for one participant in one computation."""
    participant_id: str
    timezone: str
    working_hours: list[WorkingHours]
    busy: list[BusyInterval] = field(default_factory=list)

    def __post_init__(self):
        validate_timezone(self.timezone)


@dataclass
class TimeSlot:
    """A bookable start instant and the participants offering it."""
    time: datetime
    contributors: list[str] = field(default_factory=list)

    def add_contributor(self, participant_id: str) -> None:
        if participant_id not in self.contributors:
            self.contributors.append(participant_id)


@dataclass
class ComputationRequest:
    """A single unit of work for the engine."""
    event_duration_minutes: int
    target_date: date
    participants: list[str]
    policy: SchedulingPolicy = SchedulingPolicy.SINGLE
    minimum_notice_minutes: int = 0
    buffer_minutes: int = 0
    event_type_id: Optional[int] = None


@dataclass(frozen=True)
class ParticipantError:
    """A participant whose availability could not be computed."""
    participant_id: str
    kind: str
    message: str


@dataclass
class AvailabilityResult:
    """Ordered slots plus the participants that failed."""
    slots: list[TimeSlot]
    errors: list[ParticipantError] = field(default_factory=list)

    @property
    def failed_participants(self) -> list[str]:
        return [e.participant_id for e in self.errors]
