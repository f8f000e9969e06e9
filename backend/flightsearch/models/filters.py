"""
Filter model applied to a poll.

Every field defaults to None = "not set by the caller". The FilterCodec
serialises only set fields: the backend treats presence as meaningful
(an explicit "best" sort is rejected with a 400).
"""
from dataclasses import dataclass, replace
from enum import Enum


class SortKey(str, Enum):
    BEST = "best"
    PRICE = "price"
    DURATION = "duration"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class StopClass(str, Enum):
    DIRECT = "direct"
    ONE_STOP = "one_stop"
    MULTI_STOP = "multi_stop"

    @classmethod
    def of(cls, stops: int) -> "StopClass":
        if stops <= 0:
            return cls.DIRECT
        if stops == 1:
            return cls.ONE_STOP
        return cls.MULTI_STOP


class QuickFilter(str, Enum):
    ALL = "all"
    BEST = "best"
    CHEAPEST = "cheapest"
    FASTEST = "fastest"
    DIRECT = "direct"


@dataclass(frozen=True)
class TimeWindow:
    """Time-of-day range in seconds from midnight (either bound optional)."""
    min: int | None = None
    max: int | None = None

    @classmethod
    def hours(cls, start: float, end: float) -> "TimeWindow":
        return cls(min=int(start * 3600), max=int(end * 3600))


@dataclass(frozen=True)
class LegTimeWindow:
    departure: TimeWindow | None = None
    arrival: TimeWindow | None = None


@dataclass(frozen=True)
class FilterSpec:
    sort_by: SortKey | None = None
    sort_order: SortOrder | None = None
    stop_count_max: int | None = None
    duration_max: int | None = None          # minutes
    price_min: int | None = None
    price_max: int | None = None
    time_windows: tuple[LegTimeWindow, ...] | None = None
    airlines_include: frozenset[str] | None = None
    airlines_exclude: frozenset[str] | None = None
    agencies_include: frozenset[str] | None = None
    agencies_exclude: frozenset[str] | None = None
    # client-side only, see services.filter_codec.stop_count_limit
    stop_classes: frozenset[StopClass] | None = None

    @property
    def is_empty(self) -> bool:
        return self == FilterSpec()

    def with_quick_filter(self, option: QuickFilter) -> "FilterSpec":
        """Derive the FilterSpec behind one of the quick filter tabs."""
        if option in (QuickFilter.ALL, QuickFilter.BEST):
            return replace(self, sort_by=None, sort_order=None)

        # the sort / direct tabs keep only these constraints from the sheet
        kept = FilterSpec(
            airlines_include=self.airlines_include,
            price_min=self.price_min,
            price_max=self.price_max,
            duration_max=self.duration_max,
            time_windows=self.time_windows,
        )
        if option == QuickFilter.CHEAPEST:
            return replace(kept, sort_by=SortKey.PRICE, sort_order=SortOrder.ASC,
                           stop_count_max=self.stop_count_max)
        if option == QuickFilter.FASTEST:
            return replace(kept, sort_by=SortKey.DURATION, sort_order=SortOrder.ASC,
                           stop_count_max=self.stop_count_max)
        return replace(kept, stop_count_max=0)
