"""Candidate start times from a participant's working hours."""

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

import pytz

from models.entities import WorkingHours
from models.exceptions import InvalidConfiguration

logger = logging.getLogger(__name__)


def validate_lengths(
    duration_minutes: int,
    minimum_notice_minutes: int,
    buffer_minutes: int = 0
) -> None:
    """Reject non-positive durations and negative notice or buffer."""
    if duration_minutes <= 0:
        raise InvalidConfiguration(f"Event duration must be positive, got {duration_minutes}")
    if minimum_notice_minutes < 0:
        raise InvalidConfiguration(
            f"Minimum notice must not be negative, got {minimum_notice_minutes}"
        )
    if buffer_minutes < 0:
        raise InvalidConfiguration(f"Buffer must not be negative, got {buffer_minutes}")


def _to_utc(tz, target_date: date, minute_of_day: int) -> Optional[datetime]:
    """
    Wall-clock minute of day in ``tz`` as a UTC instant.

    Returns None for a local time skipped by a DST change. Ambiguous times
    resolve to standard time.
    """
    naive = datetime.combine(target_date, time.min) + timedelta(minutes=minute_of_day)
    local = tz.normalize(tz.localize(naive))
    if local.replace(tzinfo=None) != naive:
        return None
    return local.astimezone(pytz.UTC)


def generate_candidate_times(
    target_date: date,
    working_hours: WorkingHours,
    duration_minutes: int,
    minimum_notice_minutes: int,
    now: datetime,
    buffer_minutes: int = 0
) -> list[datetime]:
    """
    Generate candidate slot starts for one day under one working-hours rule.

    Args:
        target_date: Calendar day in the participant's timezone
        working_hours: Rule giving allowed weekdays and the daily window
        duration_minutes: Event length; also the step between starts
        minimum_notice_minutes: Starts earlier than now + notice are dropped
        now: Current instant (timezone-aware)
        buffer_minutes: Extra gap inserted after each slot

    Returns:
        Ascending list of UTC instants
    """
    validate_lengths(duration_minutes, minimum_notice_minutes, buffer_minutes)

    if target_date.weekday() not in working_hours.allowed_weekdays:
        return []

    tz = working_hours.tzinfo
    earliest = now + timedelta(minutes=minimum_notice_minutes)
    step = duration_minutes + buffer_minutes
    last_start = working_hours.day_end_minute - duration_minutes

    times = []
    for minute in range(working_hours.day_start_minute, last_start + 1, step):
        instant = _to_utc(tz, target_date, minute)
        if instant is None or instant < earliest:
            continue
        times.append(instant)

    return times


def generate_for_schedule(
    target_date: date,
    rules: Iterable[WorkingHours],
    duration_minutes: int,
    minimum_notice_minutes: int,
    now: datetime,
    buffer_minutes: int = 0
) -> list[datetime]:
    """Union of candidate starts across several working-hours rules."""
    validate_lengths(duration_minutes, minimum_notice_minutes, buffer_minutes)

    seen = set()
    for rule in rules:
        seen.update(generate_candidate_times(
            target_date,
            rule,
            duration_minutes,
            minimum_notice_minutes,
            now,
            buffer_minutes
        ))

    times = sorted(seen)
    logger.debug("Generated %d candidate times for %s", len(times), target_date)
    return times
