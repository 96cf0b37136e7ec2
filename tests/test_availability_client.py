import httpx
import pytest
import respx

from models.entities import ComputationRequest, SchedulingPolicy
from models.exceptions import ProviderError
from services.availability_client import AvailabilityApiClient, parse_availability
from services.config import Settings
from services.scheduling_engine import SchedulingEngine, fetch_window
from tests.helpers import MONDAY, utc

BASE_URL = "https://cal.test"

PAYLOAD = {
    "busy": [{"start": "2026-10-26T10:00:00Z", "end": "2026-10-26T10:30:00.000Z"}],
    "timeZone": "UTC",
    "workingHours": [{"days": [1, 2, 3, 4, 5], "startTime": 540, "endTime": 1020}],
}


def make_client(token=None):
    return AvailabilityApiClient(Settings(api_base_url=BASE_URL, api_token=token))


def test_parse_converts_sunday_based_days():
    availability = parse_availability("alice", {
        "busy": [],
        "timeZone": "Europe/Paris",
        "workingHours": [{"days": [0, 1, 6], "startTime": 0, "endTime": 60}],
    })

    rule = availability.working_hours[0]
    assert rule.allowed_weekdays == frozenset({6, 0, 5})
    assert rule.timezone == "Europe/Paris"
    assert availability.timezone == "Europe/Paris"


def test_parse_reads_busy_timestamps():
    availability = parse_availability("alice", PAYLOAD)

    assert availability.busy[0].start == utc(10, 0)
    assert availability.busy[0].end == utc(10, 30)


@pytest.mark.parametrize(
    "payload",
    [
        {"busy": [], "workingHours": []},
        {"busy": [], "timeZone": "UTC", "workingHours": [{"days": [1], "startTime": 600, "endTime": 540}]},
        {"busy": [{"start": "2026-10-26T10:00:00"}], "timeZone": "UTC", "workingHours": []},
        {"busy": [{"start": "2026-10-26T10:00:00", "end": "2026-10-26T11:00:00"}],
         "timeZone": "UTC", "workingHours": []},
        {"busy": [], "timeZone": "Nowhere/Special", "workingHours": [{"days": [1], "startTime": 0, "endTime": 60}]},
        {"busy": [], "timeZone": "Nowhere/Special", "workingHours": []},
        {"busy": [], "timeZone": "UTC", "workingHours": [{"days": [7], "startTime": 0, "endTime": 60}]},
        {"busy": [], "timeZone": "UTC", "workingHours": [{"days": [1, -1], "startTime": 0, "endTime": 60}]},
    ],
)
def test_parse_rejects_malformed_payloads(payload):
    with pytest.raises(ProviderError):
        parse_availability("alice", payload)


@pytest.mark.asyncio
@respx.mock
async def test_fetch_sends_range_and_event_type():
    route = respx.get(f"{BASE_URL}/api/availability/alice").respond(200, json=PAYLOAD)
    client = make_client(token="svc")
    date_from, date_to = fetch_window(MONDAY)

    availability = await client.fetch("alice", date_from, date_to, event_type_id=7)
    await client.aclose()

    request = route.calls.last.request
    assert request.url.params["dateFrom"] == date_from.isoformat()
    assert request.url.params["dateTo"] == date_to.isoformat()
    assert request.url.params["eventTypeId"] == "7"
    assert request.headers["Authorization"] == "Bearer svc"
    assert availability.participant_id == "alice"
    assert len(availability.working_hours) == 1


@pytest.mark.asyncio
@respx.mock
async def test_fetch_omits_event_type_when_absent():
    route = respx.get(f"{BASE_URL}/api/availability/alice").respond(200, json=PAYLOAD)
    async with make_client() as client:
        await client.fetch("alice", utc(0, 0), utc(23, 59))

    request = route.calls.last.request
    assert "eventTypeId" not in request.url.params
    assert "Authorization" not in request.headers


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [404, 500, 503])
async def test_fetch_error_status_raises_provider_error(status):
    with respx.mock:
        respx.get(f"{BASE_URL}/api/availability/alice").respond(status, json={"message": "nope"})
        async with make_client() as client:
            with pytest.raises(ProviderError):
                await client.fetch("alice", utc(0, 0), utc(23, 59))


@pytest.mark.asyncio
@respx.mock
async def test_fetch_transport_error_raises_provider_error():
    respx.get(f"{BASE_URL}/api/availability/alice").mock(side_effect=httpx.ConnectTimeout("slow"))
    async with make_client() as client:
        with pytest.raises(ProviderError, match="timed out"):
            await client.fetch("alice", utc(0, 0), utc(23, 59))


@pytest.mark.asyncio
@respx.mock
async def test_fetch_invalid_json_raises_provider_error():
    respx.get(f"{BASE_URL}/api/availability/alice").respond(200, text="<html>")
    async with make_client() as client:
        with pytest.raises(ProviderError):
            await client.fetch("alice", utc(0, 0), utc(23, 59))


@pytest.mark.asyncio
@respx.mock
async def test_engine_over_http_round_robin(now):
    respx.get(f"{BASE_URL}/api/availability/alice").respond(200, json=PAYLOAD)
    respx.get(f"{BASE_URL}/api/availability/bob").respond(500)

    async with make_client() as client:
        engine = SchedulingEngine(client, fetch_timeout_seconds=1.0, clock=lambda: now)
        result = await engine.compute(ComputationRequest(
            event_duration_minutes=30,
            target_date=MONDAY,
            participants=["alice", "bob"],
            policy=SchedulingPolicy.ROUND_ROBIN
        ))

    times = [s.time for s in result.slots]
    assert len(times) == 15
    assert utc(10, 0) not in times
    assert all(s.contributors == ["alice"] for s in result.slots)
    assert result.failed_participants == ["bob"]


@pytest.mark.asyncio
async def test_engine_from_settings_uses_http_client():
    engine = SchedulingEngine.from_settings(Settings(api_base_url=BASE_URL, fetch_timeout_seconds=3.0))

    assert isinstance(engine.provider, AvailabilityApiClient)
    assert engine.fetch_timeout_seconds == 3.0
    assert str(engine.provider.http.base_url).rstrip("/") == BASE_URL
    await engine.provider.aclose()
