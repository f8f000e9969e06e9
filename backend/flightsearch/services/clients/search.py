"""
SearchClient: creates a search job on the backend.

POST /api/search/
    query:  user_id, currency, language, app_code
    header: country
    body:   {legs: [{origin, destination, date}], cabin_class, adults, children_ages}
    answer: {search_id, language, currency, mode, currency_info}
"""
import logging

from flightsearch.config import settings
from flightsearch.models.search import SearchHandle, SearchRequest
from flightsearch.services.clients.base import BackendClient

logger = logging.getLogger(__name__)

_SEARCH_PATH = "/api/search/"


class SearchClient(BackendClient):

    async def create(self, request: SearchRequest) -> SearchHandle:
        params = {
            "user_id": settings.user_id,
            "currency": settings.currency,
            "language": settings.language,
            "app_code": settings.app_code,
        }
        data = await self._request(
            "POST",
            _SEARCH_PATH,
            params=params,
            json=request.to_wire(),
            headers={"country": self.country},
        )
        handle = self._decode(SearchHandle, data, "search")
        logger.info(
            "Search %s %s→%s (%d legs): search_id=%s",
            request.trip_type.value, request.origin, request.destination,
            len(request.legs), handle.search_id,
        )
        return handle
