"""Remove candidate slots that collide with busy intervals."""

from datetime import datetime, timedelta
from typing import Iterable, Sequence

from models.entities import BusyInterval


def conflicts_with(slot_start: datetime, duration_minutes: int, busy: BusyInterval) -> bool:
    """
    Check one slot against one busy interval.

    The slot conflicts when it starts inside [start, end), ends strictly
    inside (start, end), or the busy period starts strictly inside it.
    """
    slot_end = slot_start + timedelta(minutes=duration_minutes)

    if busy.start <= slot_start < busy.end:
        return True
    if busy.start < slot_end < busy.end:
        return True
    if slot_start < busy.start < slot_end:
        return True
    return False


def filter_busy_times(
    candidates: Iterable[datetime],
    busy_intervals: Sequence[BusyInterval],
    duration_minutes: int
) -> list[datetime]:
    """Return the candidates free of every busy interval, order preserved."""
    return [
        candidate for candidate in candidates
        if not any(conflicts_with(candidate, duration_minutes, busy) for busy in busy_intervals)
    ]
