"""
SearchSession: one logical search as the user sees it.

Owns the current SearchRequest, the SearchHandle issued by the backend, the
applied FilterSpec and the PollOrchestrator that fills the results.

    start(request)           validate, create the search job, poll from page 1
    apply_filter(spec)       server-side filters are not cumulative: restart at page 1
    change_trip_type(type)   rebuild the legs (keeping picked dates) and start again
    load_more()              next page, if the continuation rule allows it
    preview_count(spec)      how many results a filter would give, without applying it
    snapshot()               read-only view for the consumer

The destination listing of the explore screen goes through the injected
DestinationCache (invalidate_destinations() drops it).
"""
import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta

from flightsearch.errors import ValidationError
from flightsearch.models.explore import ExploreDestination
from flightsearch.models.filters import FilterSpec, QuickFilter
from flightsearch.models.poll import FlightResult
from flightsearch.models.search import SearchHandle, SearchLeg, SearchRequest, TripType
from flightsearch.services import filter_codec
from flightsearch.services.clients.explore import ExploreClient
from flightsearch.services.clients.poll import PollClient
from flightsearch.services.clients.search import SearchClient
from flightsearch.services.destination_cache import (
    DestinationCache,
    InMemoryDestinationCache,
    cache_key,
    cached_destinations,
)
from flightsearch.services.orchestrator import OrchestratorSnapshot, PollOrchestrator, PollPolicy

logger = logging.getLogger(__name__)

# Return date proposed when a one-way search becomes a round trip
_DEFAULT_STAY = timedelta(days=7)


@dataclass(frozen=True)
class SessionSnapshot:
    search_id: str | None
    request: SearchRequest | None
    filter_spec: FilterSpec
    orchestrator: OrchestratorSnapshot
    # accumulated results after the client-side stop filter
    visible_results: tuple[FlightResult, ...]


class SearchSession:

    def __init__(
        self,
        search_client: SearchClient,
        poll_client: PollClient,
        explore_client: ExploreClient | None = None,
        destination_cache: DestinationCache | None = None,
        policy: PollPolicy | None = None,
        orchestrator: PollOrchestrator | None = None,
    ) -> None:
        self._search_client = search_client
        self._poll_client = poll_client
        self._explore_client = explore_client
        self._destination_cache = destination_cache or InMemoryDestinationCache()
        self.orchestrator = orchestrator or PollOrchestrator(poll_client, policy=policy)

        self._request: SearchRequest | None = None
        self._handle: SearchHandle | None = None
        self._filter = FilterSpec()
        self._starts = 0
        self._remembered_return: date | None = None

    @property
    def request(self) -> SearchRequest | None:
        return self._request

    @property
    def handle(self) -> SearchHandle | None:
        return self._handle

    @property
    def filter_spec(self) -> FilterSpec:
        return self._filter

    @property
    def is_round_trip(self) -> bool:
        return self._request is not None and self._request.trip_type == TripType.ROUND_TRIP

    # ------------------------------------------------------------------
    # Search lifecycle
    # ------------------------------------------------------------------

    async def start(self, request: SearchRequest) -> SearchHandle:
        """
        Create the search job and start polling it.

        Raises:
            ValidationError: request invariants broken (nothing is sent).
            NetworkError / ServerError / DecodeError: the search call failed.
        """
        request.validate()

        self._starts += 1
        start_id = self._starts
        # whatever the previous search was doing is abandoned right now
        self.orchestrator.reset()
        self._handle = None
        self._request = request
        if request.return_date is not None:
            self._remembered_return = request.return_date

        handle = await self._search_client.create(request)
        if start_id != self._starts:
            logger.info("Search %s superseded by a newer start(), not polling it", handle.search_id)
            return handle

        self._handle = handle
        # a new search starts unfiltered
        self._filter = FilterSpec()
        self.orchestrator.begin(handle, round_trip=self.is_round_trip)
        return handle

    def apply_filter(self, spec: FilterSpec) -> None:
        self._filter = spec
        if self._handle is None:
            logger.warning("Filter set before any search started, it will be dropped by start()")
            return
        self.orchestrator.begin(self._handle, spec, round_trip=self.is_round_trip)

    def apply_quick_filter(self, option: QuickFilter) -> None:
        self.apply_filter(self._filter.with_quick_filter(option))

    def clear_filters(self) -> None:
        self.apply_filter(FilterSpec())

    def load_more(self) -> bool:
        return self.orchestrator.load_more()

    async def change_trip_type(
        self, new_type: TripType, legs: list[SearchLeg] | None = None
    ) -> SearchHandle | None:
        """Switch trip type and search again; no-op when the type does not change."""
        if self._request is None:
            raise ValidationError("no search to change the trip type of")
        if new_type == self._request.trip_type:
            return self._handle

        request = self._retyped(self._request, new_type, legs)
        logger.info("Trip type %s → %s", self._request.trip_type.value, new_type.value)
        return await self.start(request)

    def _retyped(self, current: SearchRequest, new_type: TripType, legs: list[SearchLeg] | None) -> SearchRequest:
        first = current.legs[0]
        if current.return_date is not None:
            self._remembered_return = current.return_date

        if new_type == TripType.ONE_WAY:
            new_legs = (first,)
        elif new_type == TripType.ROUND_TRIP:
            if current.trip_type == TripType.MULTI_CITY:
                return_on = current.legs[-1].date
            elif self._remembered_return is not None and self._remembered_return >= first.date:
                return_on = self._remembered_return
            else:
                return_on = first.date + _DEFAULT_STAY
            new_legs = (first, first.reversed(return_on))
        elif legs:
            new_legs = tuple(legs)
        elif current.trip_type == TripType.ROUND_TRIP:
            new_legs = current.legs
        else:
            raise ValidationError("multi-city search needs at least 2 legs")

        return replace(current, legs=new_legs, trip_type=new_type)

    async def preview_count(self, spec: FilterSpec) -> int:
        """Declared result count for spec, leaving the current results untouched."""
        if self._handle is None:
            raise ValidationError("no search to preview filters against")
        page = await self._poll_client.poll(
            self._handle, 1, 1, filter_codec.encode(spec, round_trip=self.is_round_trip)
        )
        return page.count

    def close(self) -> None:
        self.orchestrator.cancel()

    def snapshot(self) -> SessionSnapshot:
        orch = self.orchestrator.snapshot()
        classes = self._filter.stop_classes
        visible = tuple(
            r for r in orch.accumulated.results if filter_codec.matches_stop_classes(r, classes)
        )
        return SessionSnapshot(
            search_id=self._handle.search_id if self._handle else None,
            request=self._request,
            filter_spec=self._filter,
            orchestrator=orch,
            visible_results=visible,
        )

    # ------------------------------------------------------------------
    # Explore destinations
    # ------------------------------------------------------------------

    async def destinations(
        self, departure: str, arrival_type: str = "country", arrival_id: str | None = None
    ) -> list[ExploreDestination]:
        if self._explore_client is None:
            raise RuntimeError("SearchSession has no ExploreClient")
        return await cached_destinations(
            self._destination_cache, self._explore_client, departure, arrival_type, arrival_id
        )

    async def invalidate_destinations(
        self, departure: str | None = None, arrival_type: str = "country", arrival_id: str | None = None
    ) -> None:
        key = cache_key(departure, arrival_type, arrival_id) if departure else None
        await self._destination_cache.invalidate(key)
