"""HTTP availability provider for the per-user availability API."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from models.entities import BusyInterval, ParticipantAvailability, WorkingHours
from models.exceptions import InvalidConfiguration, ProviderError
from services.availability_provider import AvailabilityProvider
from services.config import Settings

logger = logging.getLogger(__name__)


def _parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing Z means UTC."""
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        raise ValueError(f"Timestamp without offset: {value!r}")
    return parsed


def _to_python_weekday(day: int) -> int:
    """API weekdays are Sunday=0; Python's are Monday=0."""
    day = int(day)
    if not 0 <= day <= 6:
        raise ValueError(f"Weekday must be in 0..6, got {day}")
    return (day - 1) % 7


def parse_availability(participant_id: str, payload: Dict[str, Any]) -> ParticipantAvailability:
    """
    Map an availability API response onto ParticipantAvailability.

    Expected payload:
        {
            "busy": [{"start": "...", "end": "..."}],
            "timeZone": "Europe/London",
            "workingHours": [{"days": [1, 2, 3], "startTime": 540, "endTime": 1020}]
        }
    """
    try:
        timezone = payload["timeZone"]
        working_hours = [
            WorkingHours(
                allowed_weekdays=frozenset(_to_python_weekday(d) for d in rule.get("days", [])),
                day_start_minute=int(rule["startTime"]),
                day_end_minute=int(rule["endTime"]),
                timezone=rule.get("timeZone") or timezone
            )
            for rule in payload.get("workingHours") or []
        ]
        busy = [
            BusyInterval(start=_parse_instant(b["start"]), end=_parse_instant(b["end"]))
            for b in payload.get("busy") or []
        ]
        return ParticipantAvailability(
            participant_id=participant_id,
            timezone=timezone,
            working_hours=working_hours,
            busy=busy
        )
    except (KeyError, TypeError, ValueError, InvalidConfiguration) as e:
        raise ProviderError(f"Malformed availability for {participant_id}: {e}") from e


class AvailabilityApiClient(AvailabilityProvider):
    """Client for the per-user availability endpoint."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the availability API client.

        Args:
            settings: Base URL, token and timeout (defaults to Settings.from_env())
            http: Preconfigured async client (created from settings if omitted)
        """
        self.settings = settings or Settings.from_env()
        self.http = http or httpx.AsyncClient(
            base_url=self.settings.api_base_url,
            timeout=self.settings.fetch_timeout_seconds
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "AvailabilityApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.settings.api_token:
            headers["Authorization"] = f"Bearer {self.settings.api_token}"
        return headers

    async def fetch(
        self,
        participant_id: str,
        date_from: datetime,
        date_to: datetime,
        event_type_id: Optional[int] = None
    ) -> ParticipantAvailability:
        params: Dict[str, Any] = {
            "dateFrom": date_from.isoformat(),
            "dateTo": date_to.isoformat(),
        }
        if event_type_id is not None:
            params["eventTypeId"] = event_type_id

        path = f"/api/availability/{quote(participant_id, safe='')}"
        try:
            response = await self.http.get(path, params=params, headers=self._get_headers())
        except httpx.TimeoutException as e:
            raise ProviderError(f"Availability request for {participant_id} timed out") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Availability request for {participant_id} failed: {e}") from e

        if response.status_code == 404:
            raise ProviderError(f"Unknown participant: {participant_id}")
        if response.status_code >= 400:
            raise ProviderError(
                f"Availability request for {participant_id} returned {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderError(f"Invalid JSON in availability for {participant_id}") from e
        if not isinstance(payload, dict):
            raise ProviderError(f"Malformed availability for {participant_id}: expected an object")

        availability = parse_availability(participant_id, payload)
        logger.debug(
            "Fetched availability for %s: %d rules, %d busy intervals",
            participant_id,
            len(availability.working_hours),
            len(availability.busy)
        )
        return availability

