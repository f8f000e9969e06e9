"""
Shared fixtures for the flightsearch test suite.

The backend is never contacted: poll/search clients are AsyncMocks with
scripted side effects and sleeping is replaced by a recorder, so the retry
and waiting timings are asserted without actually waiting.
"""
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from flightsearch.models.poll import FlightLeg, FlightResult, PollPage
from flightsearch.models.search import SearchHandle, SearchRequest
from flightsearch.services.orchestrator import PollOrchestrator, PollPolicy


# ---------------------------------------------------------------------------
# Poll results
# ---------------------------------------------------------------------------

def _make_result(result_id: str, stops: int = 0, price: float = 100.0, duration: int = 120) -> FlightResult:
    leg = FlightLeg(
        departure_time_airport=1_780_000_000,
        arrive_time_airport=1_780_000_000 + duration * 60,
        duration=duration,
        origin_code="DEL",
        destination_code="BOM",
        stop_count=stops,
    )
    return FlightResult(
        id=result_id,
        total_duration=duration,
        min_price=price,
        max_price=price,
        legs=(leg,),
    )


def _make_page(ids, count: int, cache: bool = True, next: str | None = None) -> PollPage:
    return PollPage(
        count=count,
        cache=cache,
        next=next,
        results=tuple(_make_result(i) for i in ids),
    )


@pytest.fixture
def make_result():
    """Factory: FlightResult with one leg DEL→BOM."""
    return _make_result


@pytest.fixture
def make_page():
    """Factory: PollPage whose results have the given ids."""
    return _make_page


def ids(start: int, stop: int) -> list[str]:
    return [f"r{i}" for i in range(start, stop)]


@pytest.fixture
def result_ids():
    """ids(0, 3) → ["r0", "r1", "r2"]."""
    return ids


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

@pytest.fixture
def departure():
    return date(2026, 6, 1)


@pytest.fixture
def one_way(departure):
    return SearchRequest.one_way("DEL", "BOM", departure)


@pytest.fixture
def handle():
    return SearchHandle(search_id="abc123", currency="INR", language="en-GB")


@pytest.fixture
def search_client(handle):
    client = MagicMock()
    client.create = AsyncMock(return_value=handle)
    return client


@pytest.fixture
def poll_client():
    """PollClient mock: set poll.side_effect to script the pages."""
    client = MagicMock()
    client.poll = AsyncMock()
    return client


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

@pytest.fixture
def sleeps():
    """Delays passed to the orchestrator's sleep, in call order."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)
    return _sleep


@pytest.fixture
def policy():
    return PollPolicy()


@pytest.fixture
def orchestrator(poll_client, policy, fake_sleep):
    return PollOrchestrator(poll_client, policy=policy, sleep=fake_sleep)
