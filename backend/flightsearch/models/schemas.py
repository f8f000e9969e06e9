from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

from flightsearch.errors import ValidationError
from flightsearch.models.filters import FilterSpec, LegTimeWindow, SortKey, SortOrder, StopClass, TimeWindow
from flightsearch.models.poll import FlightResult
from flightsearch.models.search import CabinClass, Passengers, SearchLeg, SearchRequest, TripType
from flightsearch.services.orchestrator import Failure
from flightsearch.services.session import SessionSnapshot


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

class LegIn(BaseModel):
    origin: str = Field(min_length=3, max_length=3)
    destination: str = Field(min_length=3, max_length=3)
    date: date

    def to_leg(self) -> SearchLeg:
        return SearchLeg(self.origin.upper(), self.destination.upper(), self.date)


class SearchIn(BaseModel):
    trip_type: TripType = TripType.ONE_WAY
    # one-way / round-trip
    origin: str | None = None
    destination: str | None = None
    departure_date: date | None = None
    return_date: date | None = None
    # multi-city
    legs: list[LegIn] | None = None

    adults: int = 1
    children_ages: list[int | None] = []
    cabin_class: CabinClass = CabinClass.ECONOMY

    # restart the search of an existing session instead of opening a new one
    session_key: str | None = None

    def to_request(self) -> SearchRequest:
        passengers = Passengers(adults=self.adults, children_ages=tuple(self.children_ages))
        extra = {"passengers": passengers, "cabin_class": self.cabin_class}

        if self.trip_type == TripType.MULTI_CITY:
            return SearchRequest.multi_city([leg.to_leg() for leg in self.legs or []], **extra)

        if not self.origin or not self.destination or self.departure_date is None:
            raise ValidationError("origin, destination and departure_date are required")
        origin, destination = self.origin.upper(), self.destination.upper()
        if self.trip_type == TripType.ROUND_TRIP:
            if self.return_date is None:
                raise ValidationError("round-trip search needs both outbound and return dates")
            return SearchRequest.round_trip(origin, destination, self.departure_date, self.return_date, **extra)
        return SearchRequest.one_way(origin, destination, self.departure_date, **extra)


class TripTypeIn(BaseModel):
    trip_type: TripType
    # required only when switching to multi-city from a one-way search
    legs: list[LegIn] | None = None


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

class TimeWindowIn(BaseModel):
    # seconds from midnight
    min: int | None = Field(None, ge=0, le=86400)
    max: int | None = Field(None, ge=0, le=86400)


class LegTimeWindowIn(BaseModel):
    departure: TimeWindowIn | None = None
    arrival: TimeWindowIn | None = None


class FilterIn(BaseModel):
    sort_by: SortKey | None = None
    sort_order: SortOrder | None = None
    stop_count_max: int | None = Field(None, ge=0)
    duration_max: int | None = Field(None, ge=0)
    price_min: int | None = Field(None, ge=0)
    price_max: int | None = Field(None, ge=0)
    time_windows: list[LegTimeWindowIn] | None = None
    airlines_include: list[str] | None = None
    airlines_exclude: list[str] | None = None
    agencies_include: list[str] | None = None
    agencies_exclude: list[str] | None = None
    stop_classes: list[StopClass] | None = None

    def to_spec(self) -> FilterSpec:
        def window(w: TimeWindowIn | None) -> TimeWindow | None:
            return TimeWindow(min=w.min, max=w.max) if w else None

        def codes(values: list[str] | None) -> frozenset[str] | None:
            return frozenset(v.upper() for v in values) if values else None

        return FilterSpec(
            sort_by=self.sort_by,
            sort_order=self.sort_order,
            stop_count_max=self.stop_count_max,
            duration_max=self.duration_max,
            price_min=self.price_min,
            price_max=self.price_max,
            time_windows=tuple(
                LegTimeWindow(departure=window(tw.departure), arrival=window(tw.arrival))
                for tw in self.time_windows
            ) if self.time_windows else None,
            airlines_include=codes(self.airlines_include),
            airlines_exclude=codes(self.airlines_exclude),
            # agency codes are case-sensitive on the backend
            agencies_include=frozenset(self.agencies_include) if self.agencies_include else None,
            agencies_exclude=frozenset(self.agencies_exclude) if self.agencies_exclude else None,
            stop_classes=frozenset(self.stop_classes) if self.stop_classes else None,
        )


class PreviewOut(BaseModel):
    count: int


# ---------------------------------------------------------------------------
# Session view
# ---------------------------------------------------------------------------

class OutcomeOut(BaseModel):
    status: Literal["success", "failure"]
    kind: str | None = None
    message: str | None = None


class SessionOut(BaseModel):
    session_key: str
    search_id: str | None
    trip_type: TripType | None
    state: str
    generation: int
    has_more: bool
    loading_more: bool
    page: int
    loaded_count: int
    declared_total: int
    cache_complete: bool
    outcome: OutcomeOut | None = None
    results: list[FlightResult]

    @classmethod
    def from_snapshot(cls, session_key: str, snap: SessionSnapshot) -> "SessionOut":
        orch = snap.orchestrator
        acc = orch.accumulated
        outcome = None
        if isinstance(orch.outcome, Failure):
            outcome = OutcomeOut(status="failure", kind=orch.outcome.kind.value, message=orch.outcome.message)
        elif orch.outcome is not None:
            outcome = OutcomeOut(status="success")

        return cls(
            session_key=session_key,
            search_id=snap.search_id,
            trip_type=snap.request.trip_type if snap.request else None,
            state=orch.state.value,
            generation=orch.generation,
            has_more=orch.has_more,
            loading_more=orch.loading_more,
            page=acc.page,
            loaded_count=acc.loaded_count,
            declared_total=acc.declared_total,
            cache_complete=acc.cache_complete,
            outcome=outcome,
            results=list(snap.visible_results),
        )
