from datetime import date, datetime, timedelta

import pytz

from models.entities import BusyInterval, ParticipantAvailability, WorkingHours

MONDAY = date(2026, 10, 26)
WEEKDAYS = frozenset(range(5))


def utc(hour: int, minute: int = 0, day: date = MONDAY) -> datetime:
    return pytz.UTC.localize(datetime(day.year, day.month, day.day, hour, minute))


def busy(start: datetime, minutes: int) -> BusyInterval:
    return BusyInterval(start=start, end=start + timedelta(minutes=minutes))


def office_hours(timezone: str = "UTC", start: int = 9 * 60, end: int = 17 * 60) -> WorkingHours:
    return WorkingHours(
        allowed_weekdays=WEEKDAYS,
        day_start_minute=start,
        day_end_minute=end,
        timezone=timezone
    )


def participant(participant_id: str, busy_intervals=(), hours=None) -> ParticipantAvailability:
    rules = hours or [office_hours()]
    return ParticipantAvailability(
        participant_id=participant_id,
        timezone=rules[0].timezone,
        working_hours=list(rules),
        busy=list(busy_intervals)
    )


