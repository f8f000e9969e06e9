from pydantic import BaseModel, Field

_WIRE = {"frozen": True, "populate_by_name": True}


# ---------------------------------------------------------------------------
# GET /api/explore/
# ---------------------------------------------------------------------------

class ExploreLocation(BaseModel):
    entity_id: str = Field(alias="entityId")
    name: str
    iata: str

    model_config = _WIRE


class ExploreDestination(BaseModel):
    price: int
    location: ExploreLocation
    is_direct: bool = False

    model_config = _WIRE

    @property
    def id(self) -> str:
        return self.location.entity_id


# ---------------------------------------------------------------------------
# GET /api/autocomplete
# ---------------------------------------------------------------------------

class Coordinates(BaseModel):
    # the backend sends them as strings
    latitude: str
    longitude: str


class AutocompleteResult(BaseModel):
    iata_code: str = Field(alias="iataCode")
    airport_name: str = Field("", alias="airportName")
    type: str = ""
    display_name: str = Field("", alias="displayName")
    city_name: str = Field("", alias="cityName")
    country_name: str = Field("", alias="countryName")
    country_code: str = Field("", alias="countryCode")
    image_url: str = Field("", alias="imageUrl")
    coordinates: Coordinates | None = None

    model_config = _WIRE
