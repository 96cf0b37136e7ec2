"""Core availability computation."""

import asyncio
import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, Optional

import pytz

from models.entities import (
    AvailabilityResult,
    ComputationRequest,
    ParticipantError,
    SchedulingPolicy,
)
from models.exceptions import InvalidConfiguration, ProviderError, SchedulingError
from services.availability_client import AvailabilityApiClient
from services.availability_provider import AvailabilityProvider
from services.busy_filter import filter_busy_times
from services.config import Settings
from services.pooling import pool_slots, sort_slots
from services.working_hours import generate_for_schedule, validate_lengths

logger = logging.getLogger(__name__)

# Widest UTC offset in the tz database; the fetch window must cover the
# target date in every organizer timezone.
MAX_UTC_OFFSET = timedelta(hours=14)


def fetch_window(target_date: date) -> tuple[datetime, datetime]:
    """Date range requested from the provider for a target date."""
    day_start = pytz.UTC.localize(datetime.combine(target_date, time.min))
    return day_start - MAX_UTC_OFFSET, day_start + timedelta(days=1) + MAX_UTC_OFFSET


def _utc_now() -> datetime:
    return datetime.now(pytz.UTC)


class SchedulingEngine:
    """Engine for computing bookable slots across participants."""

    def __init__(
        self,
        provider: AvailabilityProvider,
        fetch_timeout_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = _utc_now
    ):
        """
        Initialize scheduling engine.

        Args:
            provider: Source of per-participant availability
            fetch_timeout_seconds: Per-participant fetch timeout (None disables it)
            clock: Returns the current timezone-aware instant
        """
        self.provider = provider
        self.fetch_timeout_seconds = fetch_timeout_seconds
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "SchedulingEngine":
        """Engine backed by the HTTP availability API."""
        return cls(
            AvailabilityApiClient(settings),
            fetch_timeout_seconds=settings.fetch_timeout_seconds
        )

    def effective_policy(self, request: ComputationRequest) -> SchedulingPolicy:
        """
        Validate a request and resolve the policy it runs under.

        Raises InvalidConfiguration or UnsupportedPolicy before anything
        is fetched.
        """
        validate_lengths(
            request.event_duration_minutes,
            request.minimum_notice_minutes,
            request.buffer_minutes
        )
        if not request.participants:
            raise InvalidConfiguration("At least one participant is required")
        if len(set(request.participants)) != len(request.participants):
            raise InvalidConfiguration(f"Duplicate participants: {request.participants}")

        policy = SchedulingPolicy.parse(request.policy)

        if len(request.participants) == 1:
            return SchedulingPolicy.SINGLE
        if policy is SchedulingPolicy.SINGLE:
            raise InvalidConfiguration(
                f"Single policy needs exactly one participant, got {len(request.participants)}"
            )
        return policy

    async def _fetch(self, request: ComputationRequest, participant_id: str,
                     date_from: datetime, date_to: datetime):
        fetch = self.provider.fetch(participant_id, date_from, date_to, request.event_type_id)
        try:
            if self.fetch_timeout_seconds is None:
                return await fetch
            return await asyncio.wait_for(fetch, timeout=self.fetch_timeout_seconds)
        except asyncio.TimeoutError:
            if self.fetch_timeout_seconds is None:
                message = f"Availability fetch for {participant_id} timed out"
            else:
                message = (
                    f"Availability fetch for {participant_id} timed out after "
                    f"{self.fetch_timeout_seconds}s"
                )
            raise ProviderError(message) from None

    async def _participant_times(
        self,
        request: ComputationRequest,
        participant_id: str,
        now: datetime,
        date_from: datetime,
        date_to: datetime
    ) -> tuple[list[datetime], Optional[ParticipantError]]:
        """Fetch and filter one participant; failures become an empty contribution."""
        try:
            availability = await self._fetch(request, participant_id, date_from, date_to)
            candidates = generate_for_schedule(
                request.target_date,
                availability.working_hours,
                request.event_duration_minutes,
                request.minimum_notice_minutes,
                now,
                request.buffer_minutes
            )
            times = filter_busy_times(
                candidates,
                availability.busy,
                request.event_duration_minutes
            )
        except SchedulingError as e:
            logger.warning("Availability for %s failed: %s", participant_id, e)
            return [], ParticipantError(participant_id=participant_id, kind=e.kind, message=str(e))

        logger.debug(
            "%s: %d candidates, %d free after busy filter",
            participant_id,
            len(candidates),
            len(times)
        )
        return times, None

    async def compute(self, request: ComputationRequest) -> AvailabilityResult:
        """
        Compute the ordered bookable slots for a request.

        Every participant is fetched concurrently and all fetches settle
        before pooling. Cancelling this coroutine cancels the fetches still
        in flight and yields no result.

        Returns:
            AvailabilityResult with slots ascending by time and one error per
            failed participant, in participant order
        """
        policy = self.effective_policy(request)
        now = self.clock()
        date_from, date_to = fetch_window(request.target_date)

        outcomes = await asyncio.gather(*(
            self._participant_times(request, participant_id, now, date_from, date_to)
            for participant_id in request.participants
        ))

        per_participant = {}
        errors = []
        for participant_id, (times, error) in zip(request.participants, outcomes):
            per_participant[participant_id] = times
            if error is not None:
                errors.append(error)

        slots = sort_slots(pool_slots(per_participant, policy))

        logger.info(
            "Computed %d slots for %s (%s, %d participants, %d failed)",
            len(slots),
            request.target_date,
            policy.value,
            len(request.participants),
            len(errors)
        )
        return AvailabilityResult(slots=slots, errors=errors)


def compute_availability(
    request: ComputationRequest,
    provider: AvailabilityProvider,
    fetch_timeout_seconds: Optional[float] = None,
    clock: Callable[[], datetime] = _utc_now
) -> AvailabilityResult:
    """Run the engine to completion from synchronous code."""
    engine = SchedulingEngine(provider, fetch_timeout_seconds=fetch_timeout_seconds, clock=clock)
    return asyncio.run(engine.compute(request))
