"""
In-process store of SearchSessions for the HTTP API.

The transport clients and the destination cache are shared by every
session; each session has its own orchestrator. Sessions are keyed by an
opaque hex key handed back to the caller on creation. A session nobody
has touched for session_idle_ttl_seconds is closed and dropped the next
time the registry is used.
"""
import logging
import time
import uuid

from flightsearch.config import settings
from flightsearch.services.clients.explore import ExploreClient
from flightsearch.services.clients.poll import PollClient
from flightsearch.services.clients.search import SearchClient
from flightsearch.services.destination_cache import DestinationCache, build_destination_cache
from flightsearch.services.orchestrator import PollPolicy
from flightsearch.services.session import SearchSession

logger = logging.getLogger(__name__)


class SessionNotFound(KeyError):
    pass


class SessionRegistry:

    def __init__(
        self,
        search_client: SearchClient | None = None,
        poll_client: PollClient | None = None,
        explore_client: ExploreClient | None = None,
        destination_cache: DestinationCache | None = None,
        policy: PollPolicy | None = None,
        idle_ttl_seconds: float | None = None,
    ) -> None:
        self.search_client = search_client or SearchClient()
        self.poll_client = poll_client or PollClient()
        self.explore_client = explore_client or ExploreClient()
        self.destination_cache = destination_cache or build_destination_cache()
        self.policy = policy or PollPolicy.from_settings()
        self.idle_ttl_seconds = settings.session_idle_ttl_seconds if idle_ttl_seconds is None else idle_ttl_seconds
        self._sessions: dict[str, SearchSession] = {}
        # key → monotonic time of the last create/get
        self._last_used: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> tuple[str, SearchSession]:
        self.evict_idle()
        key = uuid.uuid4().hex
        session = SearchSession(
            self.search_client,
            self.poll_client,
            explore_client=self.explore_client,
            destination_cache=self.destination_cache,
            policy=self.policy,
        )
        self._sessions[key] = session
        self._last_used[key] = time.monotonic()
        logger.debug("Session %s created (%d open)", key, len(self._sessions))
        return key, session

    def get(self, key: str) -> SearchSession:
        self.evict_idle()
        try:
            session = self._sessions[key]
        except KeyError:
            raise SessionNotFound(key) from None
        self._last_used[key] = time.monotonic()
        return session

    def get_or_create(self, key: str | None) -> tuple[str, SearchSession]:
        """Reuse the session under key (its start() abandons the running search) or open a new one."""
        self.evict_idle()
        if key is not None and key in self._sessions:
            return key, self.get(key)
        return self.create()

    def close(self, key: str) -> None:
        session = self._sessions.pop(key, None)
        if session is None:
            raise SessionNotFound(key)
        self._last_used.pop(key, None)
        session.close()
        logger.debug("Session %s closed (%d open)", key, len(self._sessions))

    def evict_idle(self) -> int:
        """Close sessions idle for longer than idle_ttl_seconds. Returns how many were dropped."""
        if not self.idle_ttl_seconds:
            return 0
        cutoff = time.monotonic() - self.idle_ttl_seconds
        expired = [key for key, used in self._last_used.items() if used < cutoff]
        for key in expired:
            self._last_used.pop(key)
            self._sessions.pop(key).close()
        if expired:
            logger.info("Evicted %d idle session(s), %d open", len(expired), len(self._sessions))
        return len(expired)

    async def aclose(self) -> None:
        """Stop every session and release the shared clients. Called on shutdown."""
        for session in self._sessions.values():
            session.close()
        self._sessions.clear()
        self._last_used.clear()
        await self.search_client.aclose()
        await self.poll_client.aclose()
        await self.explore_client.aclose()
        await self.destination_cache.aclose()
