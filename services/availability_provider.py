"""Sources of per-participant availability."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from models.entities import ParticipantAvailability
from models.exceptions import ProviderError


class AvailabilityProvider(ABC):
    """Fetches working hours, busy intervals and timezone for a participant."""

    @abstractmethod
    async def fetch(
        self,
        participant_id: str,
        date_from: datetime,
        date_to: datetime,
        event_type_id: Optional[int] = None
    ) -> ParticipantAvailability:
        """
        Fetch one participant's availability for a date range.

        Busy intervals returned must cover every interval that overlaps
        [date_from, date_to). Raises ProviderError on any lookup failure.
        """


class InMemoryAvailabilityProvider(AvailabilityProvider):
    """Provider backed by a dict of preloaded availability."""

    def __init__(self, availabilities: Optional[dict[str, ParticipantAvailability]] = None):
        """Initialize with availability keyed by participant id."""
        self._availabilities: dict[str, ParticipantAvailability] = dict(availabilities or {})

    def add(self, availability: ParticipantAvailability) -> None:
        self._availabilities[availability.participant_id] = availability

    async def fetch(
        self,
        participant_id: str,
        date_from: datetime,
        date_to: datetime,
        event_type_id: Optional[int] = None
    ) -> ParticipantAvailability:
        stored = self._availabilities.get(participant_id)
        if stored is None:
            raise ProviderError(f"Unknown participant: {participant_id}")

        # Only intervals overlapping the requested range
        busy = [b for b in stored.busy if b.start < date_to and b.end > date_from]
        return ParticipantAvailability(
            participant_id=stored.participant_id,
            timezone=stored.timezone,
            working_hours=list(stored.working_hours),
            busy=busy
        )
