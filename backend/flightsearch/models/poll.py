"""
POST /api/poll/ response model.

The backend mixes snake_case and camelCase keys (top level and results are
snake_case, legs/segments/providers mostly camelCase): aliases keep the wire
spelling, attribute names stay pythonic. populate_by_name lets tests and the
API build models with either spelling.

Results are frozen: the accumulator appends them, never mutates them.
"""
from pydantic import BaseModel, Field

_FROZEN = {"frozen": True, "populate_by_name": True}


class FlightSegment(BaseModel):
    id: str
    departure_time_airport: int = Field(alias="departureTimeAirport")
    arrive_time_airport: int = Field(alias="arriveTimeAirport")
    duration: int
    flight_number: str = Field(alias="flightNumber")
    airline_name: str = Field("", alias="airlineName")
    airline_iata: str = Field("", alias="airlineIata")
    airline_logo: str = Field("", alias="airlineLogo")
    origin: str = ""
    origin_code: str = Field(alias="originCode")
    destination: str = ""
    destination_code: str = Field(alias="destinationCode")
    arrival_day_difference: int = 0
    wifi: bool = False
    cabin_class: str | None = Field(None, alias="cabinClass")
    aircraft: str | None = None

    model_config = _FROZEN


class FlightLeg(BaseModel):
    departure_time_airport: int = Field(alias="departureTimeAirport")
    arrive_time_airport: int = Field(alias="arriveTimeAirport")
    duration: int
    origin: str = ""
    origin_code: str = Field(alias="originCode")
    destination: str = ""
    destination_code: str = Field(alias="destinationCode")
    stop_count: int = Field(0, alias="stopCount")
    segments: tuple[FlightSegment, ...] = ()

    model_config = _FROZEN


class SplitProvider(BaseModel):
    name: str
    image_url: str = Field("", alias="imageURL")
    price: float
    deeplink: str = ""
    rating: float | None = None
    rating_count: int | None = Field(None, alias="ratingCount")
    fare_family: str | None = Field(None, alias="fareFamily")

    model_config = _FROZEN


class ProviderOffer(BaseModel):
    is_split: bool = Field(False, alias="isSplit")
    transfer_type: str = Field("", alias="transferType")
    price: float
    split_providers: tuple[SplitProvider, ...] = Field((), alias="splitProviders")

    model_config = _FROZEN


class FlightResult(BaseModel):
    id: str
    total_duration: int
    min_price: float
    max_price: float
    legs: tuple[FlightLeg, ...]
    providers: tuple[ProviderOffer, ...] = ()
    is_best: bool = False
    is_cheapest: bool = False
    is_fastest: bool = False

    model_config = _FROZEN

    @property
    def max_stops(self) -> int:
        return max((leg.stop_count for leg in self.legs), default=0)


class AirlineFacet(BaseModel):
    airline_name: str = Field(alias="airlineName")
    airline_iata: str = Field(alias="airlineIata")
    airline_logo: str = Field("", alias="airlineLogo")

    model_config = _FROZEN


class AgencyFacet(BaseModel):
    code: str
    name: str
    image: str = ""

    model_config = _FROZEN


class FlightSummary(BaseModel):
    price: float
    duration: int

    model_config = _FROZEN


class PollPage(BaseModel):
    count: int
    next: str | None = None
    previous: str | None = None
    cache: bool
    passenger_count: int = 1
    min_duration: int = 0
    max_duration: int = 0
    min_price: float = 0
    max_price: float = 0
    airlines: tuple[AirlineFacet, ...] = ()
    agencies: tuple[AgencyFacet, ...] = ()
    cheapest_flight: FlightSummary | None = None
    best_flight: FlightSummary | None = None
    fastest_flight: FlightSummary | None = None
    results: tuple[FlightResult, ...]

    model_config = _FROZEN
