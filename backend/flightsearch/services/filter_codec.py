"""
FilterCodec: FilterSpec → body of POST /api/poll/.

Only fields explicitly set by the caller are emitted; the backend treats the
presence of a key as meaningful. In particular "best" is the backend's
default ordering and must never be sent: an explicit sort_by="best" is
answered with HTTP 400.

Stop classes (direct / 1 stop / 2+ stops) cannot all be expressed with the
API's single stop_count_max, so the codec sends the tightest limit the API
understands and matches_stop_classes() filters the rest on the client.
"""
from flightsearch.models.filters import FilterSpec, LegTimeWindow, SortKey, SortOrder, StopClass, TimeWindow
from flightsearch.models.poll import FlightResult

# Sort keys the poll endpoint accepts
_WIRE_SORT_KEYS = (SortKey.PRICE, SortKey.DURATION)


def _window(window: TimeWindow | None) -> dict:
    if window is None:
        return {}
    out = {}
    if window.min is not None:
        out["min"] = window.min
    if window.max is not None:
        out["max"] = window.max
    return out


def _range(leg: LegTimeWindow) -> dict:
    out = {}
    arrival = _window(leg.arrival)
    if arrival:
        out["arrival"] = arrival
    departure = _window(leg.departure)
    if departure:
        out["departure"] = departure
    return out


def stop_count_limit(classes: frozenset[StopClass] | None) -> int | None:
    """Tightest stop_count_max the API can apply for the selected classes."""
    if not classes or len(classes) == len(StopClass):
        return None
    if StopClass.MULTI_STOP in classes:
        return None
    if classes == {StopClass.DIRECT}:
        return 0
    # {one_stop} or {direct, one_stop}: direct ones are dropped client-side if needed
    return 1


def matches_stop_classes(result: FlightResult, classes: frozenset[StopClass] | None) -> bool:
    if not classes or len(classes) == len(StopClass):
        return True
    return StopClass.of(result.max_stops) in classes


def encode(spec: FilterSpec | None, round_trip: bool = False) -> dict:
    """
    Build the minimal poll payload for spec.

    round_trip: when a single time window is configured it is repeated for
    the return leg (outbound and return share the same window).
    """
    if spec is None:
        return {}

    payload: dict = {}

    if spec.duration_max is not None and spec.duration_max > 0:
        payload["duration_max"] = spec.duration_max

    stop_count_max = spec.stop_count_max
    if stop_count_max is None:
        stop_count_max = stop_count_limit(spec.stop_classes)
    if stop_count_max is not None:
        payload["stop_count_max"] = stop_count_max

    if spec.time_windows:
        # positional: the backend matches ranges to legs by index
        ranges = [_range(leg) for leg in spec.time_windows]
        while ranges and not ranges[-1]:
            ranges.pop()
        # TODO: drop the duplication once the filter sheet edits the return leg separately
        if round_trip and len(ranges) == 1:
            ranges.append(dict(ranges[0]))
        if ranges:
            payload["arrival_departure_ranges"] = ranges

    if spec.airlines_exclude:
        payload["iata_codes_exclude"] = sorted(spec.airlines_exclude)
    if spec.airlines_include:
        payload["iata_codes_include"] = sorted(spec.airlines_include)

    if spec.sort_by in _WIRE_SORT_KEYS:
        payload["sort_by"] = spec.sort_by.value
        payload["sort_order"] = (spec.sort_order or SortOrder.ASC).value

    if spec.agencies_exclude:
        payload["agency_exclude"] = sorted(spec.agencies_exclude)
    if spec.agencies_include:
        payload["agency_include"] = sorted(spec.agencies_include)

    if spec.price_min is not None and spec.price_min > 0:
        payload["price_min"] = spec.price_min
    if spec.price_max is not None and spec.price_max > 0:
        payload["price_max"] = spec.price_max

    return payload
