"""
PollClient: one poll of a search job.

POST /api/poll/?search_id=…&page=…&limit=…
    header: country
    body:   filter payload built by FilterCodec ({} when no filter)

Single request, no retry: the orchestrator owns the retry policy.
"""
import logging

from flightsearch.models.poll import PollPage
from flightsearch.models.search import SearchHandle
from flightsearch.services.clients.base import BackendClient

logger = logging.getLogger(__name__)

_POLL_PATH = "/api/poll/"


class PollClient(BackendClient):

    async def poll(
        self,
        handle: SearchHandle,
        page: int,
        page_size: int,
        filter_payload: dict | None = None,
    ) -> PollPage:
        params = {
            "search_id": handle.search_id,
            "page": str(page),
            "limit": str(page_size),
        }
        data = await self._request(
            "POST",
            _POLL_PATH,
            params=params,
            json=filter_payload or {},
            headers={"country": self.country},
        )
        result = self._decode(PollPage, data, "poll")
        logger.debug(
            "Poll %s page=%d limit=%d: %d results, count=%d, cache=%s",
            handle.search_id, page, page_size, len(result.results), result.count, result.cache,
        )
        return result
