"""
ResultAccumulator: merges poll pages into one deduplicated, ordered list.

    merge(page)  append results whose id was never seen, in arrival order;
                 count and cache always come from the latest page
    reset()      back to empty (new search, new filter, trip type change)

Merging the same page twice changes nothing. Within one search the loaded
count never decreases.
"""
from dataclasses import dataclass

from flightsearch.models.poll import FlightResult, PollPage


@dataclass(frozen=True)
class AccumulatedState:
    results: tuple[FlightResult, ...] = ()
    declared_total: int = 0
    cache_complete: bool = False
    page: int = 1

    @property
    def loaded_count(self) -> int:
        return len(self.results)


class ResultAccumulator:

    def __init__(self) -> None:
        self._results: list[FlightResult] = []
        self._seen: set[str] = set()
        self._declared_total = 0
        self._cache_complete = False
        self._page = 1

    @property
    def loaded_count(self) -> int:
        return len(self._results)

    def merge(self, page: PollPage) -> AccumulatedState:
        for result in page.results:
            if result.id in self._seen:
                continue
            self._seen.add(result.id)
            self._results.append(result)

        # latest page's metadata wins
        self._declared_total = page.count
        self._cache_complete = page.cache
        return self.state()

    def set_page(self, page: int) -> None:
        self._page = page

    def reset(self) -> None:
        self._results = []
        self._seen = set()
        self._declared_total = 0
        self._cache_complete = False
        self._page = 1

    def state(self) -> AccumulatedState:
        return AccumulatedState(
            results=tuple(self._results),
            declared_total=self._declared_total,
            cache_complete=self._cache_complete,
            page=self._page,
        )
