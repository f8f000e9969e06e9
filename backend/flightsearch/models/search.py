"""
Search request model: what the user asked for, before the backend assigns a
search_id.

SearchRequest.validate() enforces the trip-type invariants and must be called
before anything goes on the wire (SearchSession.start does it).
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from pydantic import BaseModel

from flightsearch.errors import ValidationError


class TripType(str, Enum):
    ONE_WAY = "one_way"
    ROUND_TRIP = "round_trip"
    MULTI_CITY = "multi_city"


class CabinClass(str, Enum):
    ECONOMY = "economy"
    PREMIUM_ECONOMY = "premium_economy"
    BUSINESS = "business"
    FIRST = "first"


@dataclass(frozen=True)
class SearchLeg:
    """A single origin → destination → date triple."""
    origin: str       # IATA code (e.g. "DEL")
    destination: str  # IATA code (e.g. "BOM")
    date: date

    def reversed(self, on: date) -> "SearchLeg":
        return SearchLeg(origin=self.destination, destination=self.origin, date=on)

    def to_wire(self) -> dict:
        return {"origin": self.origin, "destination": self.destination, "date": self.date.isoformat()}


@dataclass(frozen=True)
class Passengers:
    adults: int = 1
    # one entry per child, None = age not picked yet
    children_ages: tuple[int | None, ...] = ()

    @property
    def known_children_ages(self) -> list[int]:
        return [age for age in self.children_ages if age is not None]


@dataclass(frozen=True)
class SearchRequest:
    legs: tuple[SearchLeg, ...]
    trip_type: TripType
    passengers: Passengers = field(default_factory=Passengers)
    cabin_class: CabinClass = CabinClass.ECONOMY

    @classmethod
    def one_way(cls, origin: str, destination: str, departure: date, **kwargs) -> "SearchRequest":
        return cls(legs=(SearchLeg(origin, destination, departure),), trip_type=TripType.ONE_WAY, **kwargs)

    @classmethod
    def round_trip(
        cls, origin: str, destination: str, departure: date, return_date: date, **kwargs
    ) -> "SearchRequest":
        outbound = SearchLeg(origin, destination, departure)
        return cls(legs=(outbound, outbound.reversed(return_date)), trip_type=TripType.ROUND_TRIP, **kwargs)

    @classmethod
    def multi_city(cls, legs: list[SearchLeg], **kwargs) -> "SearchRequest":
        return cls(legs=tuple(legs), trip_type=TripType.MULTI_CITY, **kwargs)

    @property
    def origin(self) -> str:
        return self.legs[0].origin if self.legs else ""

    @property
    def destination(self) -> str:
        if not self.legs:
            return ""
        if self.trip_type == TripType.MULTI_CITY:
            return self.legs[-1].destination
        return self.legs[0].destination

    @property
    def departure_date(self) -> date | None:
        return self.legs[0].date if self.legs else None

    @property
    def return_date(self) -> date | None:
        if self.trip_type == TripType.ROUND_TRIP and len(self.legs) == 2:
            return self.legs[1].date
        return None

    def validate(self) -> None:
        """Raise ValidationError if the request breaks a trip-type invariant."""
        if not self.legs:
            raise ValidationError("a search needs at least one leg")

        if self.trip_type == TripType.ONE_WAY and len(self.legs) != 1:
            raise ValidationError(f"one-way search needs exactly 1 leg, got {len(self.legs)}")
        if self.trip_type == TripType.ROUND_TRIP:
            if len(self.legs) != 2:
                raise ValidationError("round-trip search needs both outbound and return dates")
            if self.legs[1].date < self.legs[0].date:
                raise ValidationError("return date must not be before the outbound date")
        if self.trip_type == TripType.MULTI_CITY and len(self.legs) < 2:
            raise ValidationError(f"multi-city search needs at least 2 legs, got {len(self.legs)}")

        for i, leg in enumerate(self.legs, start=1):
            if not leg.origin or not leg.destination:
                raise ValidationError(f"leg {i}: origin and destination are required")
            if leg.origin.upper() == leg.destination.upper():
                raise ValidationError(f"leg {i}: origin and destination must differ ({leg.origin})")

        if self.passengers.adults < 1:
            raise ValidationError("at least one adult is required")

    def to_wire(self) -> dict:
        """Body of POST /api/search/."""
        return {
            "legs": [leg.to_wire() for leg in self.legs],
            "cabin_class": self.cabin_class.value.lower(),
            "adults": self.passengers.adults,
            "children_ages": self.passengers.known_children_ages,
        }


# ---------------------------------------------------------------------------
# POST /api/search/ answer
# ---------------------------------------------------------------------------

class CurrencyInfo(BaseModel):
    code: str
    symbol: str
    thousands_separator: str = ","
    decimal_separator: str = "."
    symbol_on_left: bool = True
    space_between_amount_and_symbol: bool = False
    decimal_digits: int = 2

    model_config = {"frozen": True}


class SearchHandle(BaseModel):
    """Opaque search job id issued by the backend; immutable once issued."""
    search_id: str
    language: str = ""
    currency: str = ""
    mode: int = 0
    currency_info: CurrencyInfo | None = None

    model_config = {"frozen": True}
