"""
Tests for SearchSession: start / filters / trip type / preview / stop-class
visibility / destination cache.

Search and poll clients are AsyncMocks (conftest); the orchestrator uses the
recording sleep so nothing actually waits.
"""
import asyncio
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from flightsearch.errors import NetworkError, ValidationError
from flightsearch.models.explore import ExploreDestination, ExploreLocation
from flightsearch.models.filters import FilterSpec, QuickFilter, StopClass
from flightsearch.models.poll import PollPage
from flightsearch.models.search import SearchHandle, SearchLeg, SearchRequest, TripType
from flightsearch.services.destination_cache import InMemoryDestinationCache
from flightsearch.services.orchestrator import OrchestratorState, PollOrchestrator
from flightsearch.services.session import SearchSession


@pytest.fixture
def explore_client():
    client = MagicMock()
    client.destinations = AsyncMock(return_value=[
        ExploreDestination(
            price=4500,
            location=ExploreLocation(entity_id="27539733", name="Mumbai", iata="BOM"),
            is_direct=True,
        ),
    ])
    return client


@pytest.fixture
async def session(search_client, poll_client, explore_client, policy, fake_sleep):
    s = SearchSession(
        search_client,
        poll_client,
        explore_client=explore_client,
        destination_cache=InMemoryDestinationCache(ttl_seconds=60),
        orchestrator=PollOrchestrator(poll_client, policy=policy, sleep=fake_sleep),
    )
    yield s
    s.close()
    await asyncio.sleep(0)


@pytest.fixture
def pages(poll_client, make_page, result_ids):
    """Every poll answers with 8 of 42 results."""
    poll_client.poll.side_effect = lambda *args: make_page(result_ids(0, 8), count=42)
    return poll_client


# ---------------------------------------------------------------------------
# start()
# ---------------------------------------------------------------------------

class TestStart:

    async def test_start_creates_search_and_polls_page_one(self, session, search_client, pages, one_way, handle):
        returned = await session.start(one_way)
        snap = await session.orchestrator.wait()

        search_client.create.assert_awaited_once_with(one_way)
        assert returned == handle
        assert pages.poll.await_args.args == (handle, 1, 8, {})
        assert snap.accumulated.loaded_count == 8
        assert session.snapshot().search_id == "abc123"

    async def test_same_origin_and_destination_rejected(self, session, search_client, departure):
        with pytest.raises(ValidationError):
            await session.start(SearchRequest.one_way("DEL", "del", departure))
        search_client.create.assert_not_awaited()

    async def test_return_before_outbound_rejected(self, session, search_client, departure):
        request = SearchRequest.round_trip("DEL", "BOM", departure, date(2026, 5, 30))
        with pytest.raises(ValidationError):
            await session.start(request)
        search_client.create.assert_not_awaited()

    async def test_multi_city_needs_two_legs(self, session, departure):
        with pytest.raises(ValidationError):
            await session.start(SearchRequest.multi_city([SearchLeg("DEL", "BOM", departure)]))

    async def test_failed_create_leaves_session_idle(self, session, search_client, pages, one_way):
        await session.start(one_way)
        await session.orchestrator.wait()
        search_client.create.side_effect = NetworkError("ConnectError")

        with pytest.raises(NetworkError):
            await session.start(one_way)

        snap = session.snapshot()
        assert session.handle is None
        assert snap.orchestrator.state == OrchestratorState.IDLE
        assert snap.visible_results == ()

    async def test_new_search_resets_filters(self, session, pages, one_way):
        await session.start(one_way)
        session.apply_filter(FilterSpec(price_max=5000))
        await session.orchestrator.wait()

        await session.start(one_way)
        await session.orchestrator.wait()

        assert session.filter_spec.is_empty
        assert pages.poll.await_args.args[3] == {}

    async def test_superseded_start_is_not_polled(self, session, search_client, pages, one_way, departure):
        gate = asyncio.Event()

        async def create(request):
            if request.destination == "BOM":
                await gate.wait()
                return SearchHandle(search_id="old")
            return SearchHandle(search_id="new")

        search_client.create.side_effect = create

        slow = asyncio.create_task(session.start(one_way))
        await asyncio.sleep(0)
        await session.start(SearchRequest.one_way("DEL", "GOI", departure))
        gate.set()
        late = await slow
        await session.orchestrator.wait()

        assert late.search_id == "old"
        assert session.handle.search_id == "new"
        assert {c.args[0].search_id for c in pages.poll.await_args_list} == {"new"}


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

class TestFilters:

    async def test_apply_filter_restarts_from_page_one(self, session, pages, one_way, handle):
        await session.start(one_way)
        await session.orchestrator.wait()
        session.load_more()
        await session.orchestrator.wait()

        session.apply_filter(FilterSpec(stop_count_max=0))
        snap = await session.orchestrator.wait()

        assert pages.poll.await_args.args == (handle, 1, 8, {"stop_count_max": 0})
        assert snap.accumulated.page == 1
        assert snap.accumulated.loaded_count == 8

    async def test_filter_before_search_is_not_sent(self, session, pages):
        session.apply_filter(FilterSpec(price_max=5000))

        assert session.filter_spec.price_max == 5000
        pages.poll.assert_not_awaited()

    async def test_quick_filter_keeps_sheet_constraints(self, session, pages, one_way):
        await session.start(one_way)
        session.apply_filter(FilterSpec(price_max=5000))
        session.apply_quick_filter(QuickFilter.CHEAPEST)
        await session.orchestrator.wait()

        assert pages.poll.await_args.args[3] == {"price_max": 5000, "sort_by": "price", "sort_order": "asc"}

    async def test_clear_filters(self, session, pages, one_way):
        await session.start(one_way)
        session.apply_filter(FilterSpec(price_max=5000))
        session.clear_filters()
        await session.orchestrator.wait()

        assert session.filter_spec.is_empty
        assert pages.poll.await_args.args[3] == {}

    async def test_stop_classes_hide_results_client_side(self, session, poll_client, make_result, one_way):
        poll_client.poll.side_effect = lambda *args: PollPage(
            count=3,
            cache=True,
            results=(make_result("direct", stops=0), make_result("one", stops=1), make_result("two", stops=2)),
        )
        await session.start(one_way)
        session.apply_filter(FilterSpec(stop_classes=frozenset({StopClass.DIRECT, StopClass.MULTI_STOP})))
        await session.orchestrator.wait()

        snap = session.snapshot()
        # no stop_count_max can express "direct or 2+", nothing goes on the wire
        assert poll_client.poll.await_args.args[3] == {}
        assert snap.orchestrator.accumulated.loaded_count == 3
        assert [r.id for r in snap.visible_results] == ["direct", "two"]

    async def test_preview_count_does_not_touch_results(self, session, poll_client, make_page, one_way, handle):
        poll_client.poll.side_effect = [make_page(["a", "b"], count=40)]
        await session.start(one_way)
        await session.orchestrator.wait()

        poll_client.poll.side_effect = [make_page(["x"], count=17)]
        count = await session.preview_count(FilterSpec(stop_count_max=0))

        assert count == 17
        assert poll_client.poll.await_args.args == (handle, 1, 1, {"stop_count_max": 0})
        assert [r.id for r in session.snapshot().visible_results] == ["a", "b"]

    async def test_preview_without_search(self, session):
        with pytest.raises(ValidationError):
            await session.preview_count(FilterSpec())


# ---------------------------------------------------------------------------
# Trip type
# ---------------------------------------------------------------------------

class TestTripType:

    def _requested(self, search_client) -> SearchRequest:
        return search_client.create.await_args.args[0]

    async def test_one_way_to_round_trip_proposes_a_week(self, session, search_client, pages, one_way):
        await session.start(one_way)
        await session.change_trip_type(TripType.ROUND_TRIP)

        request = self._requested(search_client)
        assert request.trip_type == TripType.ROUND_TRIP
        assert request.legs[1] == SearchLeg("BOM", "DEL", date(2026, 6, 8))

    async def test_return_date_remembered_across_toggles(self, session, search_client, pages, departure):
        await session.start(SearchRequest.round_trip("DEL", "BOM", departure, date(2026, 6, 20)))

        await session.change_trip_type(TripType.ONE_WAY)
        assert self._requested(search_client).legs == (SearchLeg("DEL", "BOM", departure),)

        await session.change_trip_type(TripType.ROUND_TRIP)
        assert self._requested(search_client).return_date == date(2026, 6, 20)

    async def test_round_trip_to_multi_city_keeps_legs(self, session, search_client, pages, departure):
        await session.start(SearchRequest.round_trip("DEL", "BOM", departure, date(2026, 6, 5)))
        await session.change_trip_type(TripType.MULTI_CITY)

        request = self._requested(search_client)
        assert request.trip_type == TripType.MULTI_CITY
        assert len(request.legs) == 2

    async def test_one_way_to_multi_city_needs_legs(self, session, pages, one_way, departure):
        await session.start(one_way)

        with pytest.raises(ValidationError):
            await session.change_trip_type(TripType.MULTI_CITY)

        legs = [SearchLeg("DEL", "BOM", departure), SearchLeg("BOM", "GOI", date(2026, 6, 4))]
        await session.change_trip_type(TripType.MULTI_CITY, legs)
        assert session.request.destination == "GOI"

    async def test_change_clears_results(self, session, search_client, poll_client, make_page, one_way):
        poll_client.poll.side_effect = [make_page(["a"], count=5)]
        await session.start(one_way)
        await session.orchestrator.wait()

        gate = asyncio.Event()

        async def slow_create(request):
            await gate.wait()
            return SearchHandle(search_id="rt")

        search_client.create.side_effect = slow_create
        pending = asyncio.create_task(session.change_trip_type(TripType.ROUND_TRIP))
        await asyncio.sleep(0)

        assert session.snapshot().visible_results == ()
        gate.set()
        poll_client.poll.side_effect = [make_page(["b"], count=1)]
        await pending
        await session.orchestrator.wait()

        assert session.handle.search_id == "rt"

    async def test_same_type_is_a_noop(self, session, search_client, pages, one_way, handle):
        await session.start(one_way)

        assert await session.change_trip_type(TripType.ONE_WAY) == handle
        search_client.create.assert_awaited_once()

    async def test_change_before_start(self, session):
        with pytest.raises(ValidationError):
            await session.change_trip_type(TripType.ROUND_TRIP)


# ---------------------------------------------------------------------------
# close() and destinations
# ---------------------------------------------------------------------------

class TestCloseAndDestinations:

    async def test_close_stops_polling(self, session, pages, one_way):
        await session.start(one_way)
        session.close()

        assert session.snapshot().orchestrator.state == OrchestratorState.STOPPED
        assert session.load_more() is False

    async def test_destinations_are_cached(self, session, explore_client):
        first = await session.destinations("del")
        second = await session.destinations("DEL")

        assert first == second
        assert first[0].id == "27539733"
        explore_client.destinations.assert_awaited_once_with("del", "country", None)

    async def test_invalidate_forces_refetch(self, session, explore_client):
        await session.destinations("DEL")
        await session.invalidate_destinations()
        await session.destinations("DEL")

        assert explore_client.destinations.await_count == 2

    async def test_destinations_without_explore_client(self, search_client, poll_client):
        bare = SearchSession(search_client, poll_client, destination_cache=InMemoryDestinationCache())
        with pytest.raises(RuntimeError):
            await bare.destinations("DEL")
