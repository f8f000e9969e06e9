"""
PollOrchestrator: drives search → poll → retry → paginate → stop.

States:
    IDLE → POLLING → (ACCUMULATING | WAITING_BACKEND) → STOPPED | FAILED

Flow for one search (one "generation"):
  1. begin(handle): reset the accumulator, poll page 1 with a small page
     (fast first paint).
  2. After each merge:
       cache == false                    → WAITING_BACKEND, wait, re-poll the same page
       cache == true, loaded < count     → ACCUMULATING, has_more (load_more() fetches page+1)
       cache == true, loaded >= count    → STOPPED (Success)
  3. Retryable errors (404, 5xx, network) are retried here with backoff
     (1s, 2s, 4s); a 404 that outlives the retries means "no more data".
     Anything else ends in FAILED with a Failure outcome.

Only one poll task runs at a time. begin(), cancel() and every restart bump
the generation: the running task is cancelled and any response that still
arrives for an older generation is discarded, never merged.

The consumer never sees exceptions: it reads snapshot() or iterates events().
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable

from flightsearch.config import Settings, settings
from flightsearch.errors import DecodeError, ErrorKind, NetworkError, ServerError
from flightsearch.models.filters import FilterSpec
from flightsearch.models.poll import PollPage
from flightsearch.models.search import SearchHandle
from flightsearch.services import filter_codec
from flightsearch.services.accumulator import AccumulatedState, ResultAccumulator
from flightsearch.services.clients.poll import PollClient

logger = logging.getLogger(__name__)


class OrchestratorState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    ACCUMULATING = "accumulating"
    WAITING_BACKEND = "waiting_backend"
    STOPPED = "stopped"
    FAILED = "failed"


_TERMINAL = (OrchestratorState.STOPPED, OrchestratorState.FAILED)


@dataclass(frozen=True)
class Success:
    state: AccumulatedState


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class OrchestratorSnapshot:
    state: OrchestratorState
    accumulated: AccumulatedState
    has_more: bool
    loading_more: bool
    generation: int
    outcome: Success | Failure | None = None


@dataclass(frozen=True)
class PollPolicy:
    initial_page_size: int = 8
    page_size: int = 20
    backend_poll_interval: float = 2.0
    max_backend_waits: int = 60
    retry_delays: tuple[float, ...] = (1.0, 2.0, 4.0)
    load_more_timeout: float = 15.0
    auto_paginate: bool = False
    page_two_fast_retry: bool = True
    page_two_retry_delay: float = 0.5
    page_two_retry_page_size: int = 15
    events_queue_size: int = 64

    @classmethod
    def from_settings(cls, s: Settings = settings) -> "PollPolicy":
        return cls(
            initial_page_size=s.initial_page_size,
            page_size=s.page_size,
            backend_poll_interval=s.backend_poll_interval_seconds,
            max_backend_waits=s.max_backend_waits,
            retry_delays=tuple(s.retry_delays_seconds),
            load_more_timeout=s.load_more_timeout_seconds,
            auto_paginate=s.auto_paginate,
            page_two_fast_retry=s.page_two_fast_retry,
            page_two_retry_delay=s.page_two_retry_delay_seconds,
            page_two_retry_page_size=s.page_two_retry_page_size,
            events_queue_size=s.events_queue_size,
        )


def should_continue(cache_complete: bool, loaded: int, declared: int) -> bool:
    """
    Continuation rule: keep polling while the backend is still computing
    (whatever is loaded) or while fewer results are loaded than declared.
    """
    return not cache_complete or loaded < declared


class PollOrchestrator:

    def __init__(
        self,
        poll_client: PollClient,
        policy: PollPolicy | None = None,
        accumulator: ResultAccumulator | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._client = poll_client
        self._policy = policy or PollPolicy.from_settings()
        self._acc = accumulator or ResultAccumulator()
        self._sleep = sleep or asyncio.sleep

        self._state = OrchestratorState.IDLE
        self._generation = 0
        self._handle: SearchHandle | None = None
        self._filter_payload: dict = {}
        self._page = 1
        self._has_more = False
        self._loading_more = False
        self._outcome: Success | Failure | None = None

        self._task: asyncio.Task | None = None
        self._safety_timer: asyncio.TimerHandle | None = None
        self._subscribers: list[asyncio.Queue] = []

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def is_polling(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def policy(self) -> PollPolicy:
        return self._policy

    def snapshot(self) -> OrchestratorSnapshot:
        return OrchestratorSnapshot(
            state=self._state,
            accumulated=self._acc.state(),
            has_more=self._has_more,
            loading_more=self._loading_more,
            generation=self._generation,
            outcome=self._outcome,
        )

    async def events(self) -> AsyncIterator[OrchestratorSnapshot]:
        """Current snapshot, then one snapshot per transition or merge."""
        queue: asyncio.Queue[OrchestratorSnapshot] = asyncio.Queue(maxsize=self._policy.events_queue_size)
        self._subscribers.append(queue)
        try:
            yield self.snapshot()
            while True:
                yield await queue.get()
        finally:
            self._subscribers.remove(queue)

    async def wait(self) -> OrchestratorSnapshot:
        """Wait for the running poll task (if any) and return the snapshot."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})
        return self.snapshot()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def begin(self, handle: SearchHandle, filter_spec: FilterSpec | None = None, round_trip: bool = False) -> None:
        """(Re)start polling handle from page 1 with an empty accumulator."""
        self._invalidate()
        self._handle = handle
        self._filter_payload = filter_codec.encode(filter_spec, round_trip=round_trip)
        self._acc.reset()
        self._page = 1
        self._has_more = True
        self._outcome = None

        logger.info(
            "Polling %s (generation %d, filter keys: %s)",
            handle.search_id, self._generation, sorted(self._filter_payload) or "none",
        )
        self._set_state(OrchestratorState.POLLING)
        self._task = self._spawn(self._run(self._generation, 1, self._policy.initial_page_size))

    def load_more(self) -> bool:
        """Fetch the next page. Returns False (no-op) when nothing can be loaded now."""
        if self._handle is None or self.is_polling or self._state in _TERMINAL or not self._has_more:
            return False

        acc = self._acc.state()
        if not should_continue(acc.cache_complete, acc.loaded_count, acc.declared_total):
            self._has_more = False
            return False

        self._loading_more = True
        self._arm_safety_timer(self._generation)
        self._task = self._spawn(self._run(self._generation, self._page + 1, self._policy.page_size))
        self._publish()
        return True

    def reset(self) -> None:
        """Back to IDLE with nothing loaded (a new search is about to start)."""
        self._invalidate()
        self._handle = None
        self._filter_payload = {}
        self._acc.reset()
        self._page = 1
        self._has_more = False
        self._outcome = None
        self._set_state(OrchestratorState.IDLE)

    def cancel(self) -> None:
        """Abandon the current search: pending retries are dropped, late responses ignored."""
        if self._state in (OrchestratorState.IDLE, *_TERMINAL) and not self.is_polling:
            return
        self._invalidate()
        self._has_more = False
        logger.info("Polling cancelled (generation %d)", self._generation)
        self._finish(OrchestratorState.STOPPED, Success(self._acc.state()))

    # ------------------------------------------------------------------
    # Poll loop
    # ------------------------------------------------------------------

    async def _run(self, generation: int, page: int, page_size: int) -> None:
        try:
            await self._drive(generation, page, page_size)
        except asyncio.CancelledError:
            logger.debug("Poll task for generation %d cancelled", generation)
            raise
        except Exception as exc:
            logger.exception("Poll task for generation %d crashed", generation)
            if self._is_current(generation):
                self._has_more = False
                self._finish(OrchestratorState.FAILED, Failure(ErrorKind.INTERNAL, f"{type(exc).__name__}: {exc}"))
        finally:
            if self._is_current(generation) and self._loading_more:
                self._loading_more = False
                self._cancel_safety_timer()
                self._publish()

    async def _drive(self, generation: int, page: int, page_size: int) -> None:
        backend_waits = 0
        while True:
            self._set_state(OrchestratorState.POLLING)
            result = await self._fetch(generation, page, page_size)
            if not self._is_current(generation):
                logger.debug("Discarding page %d of superseded generation %d", page, generation)
                return

            if isinstance(result, Failure):
                self._finish(OrchestratorState.FAILED, result)
                return
            if result is None:
                # 404 after every retry: the backend has nothing beyond this page
                self._has_more = False
                self._finish(OrchestratorState.STOPPED, Success(self._acc.state()))
                return

            # the cursor only moves on success
            self._page = page
            self._acc.set_page(page)
            acc = self._acc.merge(result)
            self._set_state(OrchestratorState.ACCUMULATING)

            if not result.cache:
                backend_waits += 1
                if backend_waits > self._policy.max_backend_waits:
                    self._has_more = False
                    self._finish(OrchestratorState.FAILED, Failure(
                        ErrorKind.SERVER,
                        f"backend still computing after {self._policy.max_backend_waits} polls",
                    ))
                    return
                self._has_more = True
                self._set_state(OrchestratorState.WAITING_BACKEND)
                await self._sleep(self._policy.backend_poll_interval)
                if not self._is_current(generation):
                    return
                continue

            if not should_continue(acc.cache_complete, acc.loaded_count, acc.declared_total):
                self._has_more = False
                logger.info("Search %s complete: %d/%d results", self._handle.search_id,
                            acc.loaded_count, acc.declared_total)
                self._finish(OrchestratorState.STOPPED, Success(acc))
                return

            if not result.results and self._policy.auto_paginate:
                # only this loop advances pages here, stop instead of walking empty pages
                logger.warning(
                    "Search %s: page %d empty with %d/%d loaded, treating as exhausted",
                    self._handle.search_id, page, acc.loaded_count, acc.declared_total,
                )
                self._has_more = False
                self._finish(OrchestratorState.STOPPED, Success(acc))
                return

            self._has_more = True
            if not self._policy.auto_paginate:
                return
            page, page_size, backend_waits = page + 1, self._policy.page_size, 0

    async def _fetch(self, generation: int, page: int, page_size: int) -> PollPage | Failure | None:
        """
        Poll one page, retrying transient errors.

        Returns the page, a Failure, or None when a 404 survived every retry.
        """
        delays = self._policy.retry_delays
        size = page_size
        attempt = 0
        while True:
            try:
                return await self._client.poll(self._handle, page, size, self._filter_payload)
            except (NetworkError, ServerError, DecodeError) as exc:
                retryable = isinstance(exc, NetworkError) or (isinstance(exc, ServerError) and exc.is_retryable)
                if not retryable:
                    logger.warning("Poll %s page %d: %s (not retried)", self._handle.search_id, page, exc.message)
                    return Failure(exc.kind, exc.message)

                if attempt >= len(delays):
                    if isinstance(exc, ServerError) and exc.is_not_found:
                        logger.info("Poll %s page %d: still 404 after %d retries, no more data",
                                    self._handle.search_id, page, attempt)
                        return None
                    logger.warning("Poll %s page %d: %s after %d retries",
                                   self._handle.search_id, page, exc.message, attempt)
                    return Failure(exc.kind, f"page {page}: {exc.message} (after {attempt} retries)")

                # Workaround: page 2 fails often right after search creation.
                # First retry comes sooner and asks for a smaller page.
                if page == 2 and attempt == 0 and self._policy.page_two_fast_retry:
                    delay = self._policy.page_two_retry_delay
                    size = min(size, self._policy.page_two_retry_page_size)
                else:
                    delay = delays[attempt]
                attempt += 1

                logger.warning(
                    "Poll %s page %d: %s (retry %d/%d in %.1fs)",
                    self._handle.search_id, page, exc.message, attempt, len(delays), delay,
                )
                await self._sleep(delay)
                if not self._is_current(generation):
                    return None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _spawn(self, coro) -> asyncio.Task:
        return asyncio.get_running_loop().create_task(coro)

    def _invalidate(self) -> None:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._cancel_safety_timer()
        self._loading_more = False

    def _arm_safety_timer(self, generation: int) -> None:
        self._cancel_safety_timer()
        loop = asyncio.get_running_loop()
        self._safety_timer = loop.call_later(self._policy.load_more_timeout, self._on_load_more_timeout, generation)

    def _cancel_safety_timer(self) -> None:
        if self._safety_timer is not None:
            self._safety_timer.cancel()
            self._safety_timer = None

    def _on_load_more_timeout(self, generation: int) -> None:
        # only the flag is cleared: the request itself keeps running
        self._safety_timer = None
        if self._is_current(generation) and self._loading_more:
            logger.warning("Load more still pending after %.0fs, clearing loading flag",
                           self._policy.load_more_timeout)
            self._loading_more = False
            self._publish()

    def _set_state(self, state: OrchestratorState) -> None:
        self._state = state
        self._publish()

    def _finish(self, state: OrchestratorState, outcome: Success | Failure) -> None:
        self._outcome = outcome
        self._set_state(state)

    def _publish(self) -> None:
        if not self._subscribers:
            return
        snap = self.snapshot()
        for queue in self._subscribers:
            # a slow reader only needs the latest snapshots
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(snap)
