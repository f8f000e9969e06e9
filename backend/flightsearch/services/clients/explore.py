"""
ExploreClient: destination listing and airport autocomplete.

These are collaborators of the search core, not part of it:
    GET /api/explore/       ?country, currency, departure, language, arrival_type[, arrival_id]
    GET /api/autocomplete   ?search, country, language
"""
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from flightsearch.config import settings
from flightsearch.errors import DecodeError
from flightsearch.models.explore import AutocompleteResult, ExploreDestination
from flightsearch.services.clients.base import BackendClient

_EXPLORE_PATH = "/api/explore/"
_AUTOCOMPLETE_PATH = "/api/autocomplete"

_DESTINATIONS = TypeAdapter(list[ExploreDestination])
_AUTOCOMPLETE = TypeAdapter(list[AutocompleteResult])


class ExploreClient(BackendClient):

    async def destinations(
        self,
        departure: str,
        arrival_type: str = "country",
        arrival_id: str | None = None,
    ) -> list[ExploreDestination]:
        params = {
            "country": self.country,
            "currency": settings.currency,
            "departure": departure,
            "language": settings.language,
            "arrival_type": arrival_type,
        }
        if arrival_id:
            params["arrival_id"] = arrival_id

        data = await self._request("GET", _EXPLORE_PATH, params=params)
        return self._decode_list(_DESTINATIONS, data, "explore")

    async def autocomplete(self, query: str) -> list[AutocompleteResult]:
        params = {"search": query, "country": self.country, "language": settings.language}
        data = await self._request("GET", _AUTOCOMPLETE_PATH, params=params)
        return self._decode_list(_AUTOCOMPLETE, data, "autocomplete")

    @staticmethod
    def _decode_list(adapter: TypeAdapter, data: dict, what: str) -> list:
        try:
            return adapter.validate_python(data.get("data", []))
        except (PydanticValidationError, AttributeError) as exc:
            raise DecodeError(f"{what}: unexpected payload shape") from exc
