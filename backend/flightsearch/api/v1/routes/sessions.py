"""
Search session endpoints.

POST   /api/v1/sessions                           start a search (201)
GET    /api/v1/sessions/{key}                     current snapshot
POST   /api/v1/sessions/{key}/filters             apply a filter (restarts at page 1)
DELETE /api/v1/sessions/{key}/filters             clear filters
POST   /api/v1/sessions/{key}/filters/preview     result count for a filter, not applied
POST   /api/v1/sessions/{key}/quick-filter/{opt}  all | best | cheapest | fastest | direct
POST   /api/v1/sessions/{key}/more                load the next page
POST   /api/v1/sessions/{key}/trip-type           switch trip type and search again
DELETE /api/v1/sessions/{key}                     stop polling and forget the session (204)

Polling runs in the background: every endpoint answers with the snapshot
at that moment, GET again to see progress.
"""
import logging

from fastapi import APIRouter, Response

from flightsearch.api.v1.deps import RegistryDep, SessionDep, http_error
from flightsearch.errors import SearchError
from flightsearch.models.filters import QuickFilter
from flightsearch.models.schemas import FilterIn, PreviewOut, SearchIn, SessionOut, TripTypeIn

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=SessionOut, status_code=201)
async def start_search(registry: RegistryDep, body: SearchIn) -> SessionOut:
    #Validation area -------------------------------------------
    try:
        request = body.to_request()
        request.validate()
    except SearchError as exc:
        raise http_error(exc)
    #Validation area -------------------------------------------

    key, session = registry.get_or_create(body.session_key)
    try:
        await session.start(request)
    except SearchError as exc:
        if key != body.session_key:
            registry.close(key)
        raise http_error(exc)

    return SessionOut.from_snapshot(key, session.snapshot())


@router.get("/{session_key}", response_model=SessionOut)
async def get_snapshot(session_key: str, session: SessionDep) -> SessionOut:
    return SessionOut.from_snapshot(session_key, session.snapshot())


@router.post("/{session_key}/filters", response_model=SessionOut)
async def apply_filter(session_key: str, session: SessionDep, body: FilterIn) -> SessionOut:
    session.apply_filter(body.to_spec())
    return SessionOut.from_snapshot(session_key, session.snapshot())


@router.delete("/{session_key}/filters", response_model=SessionOut)
async def clear_filters(session_key: str, session: SessionDep) -> SessionOut:
    session.clear_filters()
    return SessionOut.from_snapshot(session_key, session.snapshot())


@router.post("/{session_key}/filters/preview", response_model=PreviewOut)
async def preview_filter(session_key: str, session: SessionDep, body: FilterIn) -> PreviewOut:
    try:
        count = await session.preview_count(body.to_spec())
    except SearchError as exc:
        raise http_error(exc)
    return PreviewOut(count=count)


@router.post("/{session_key}/quick-filter/{option}", response_model=SessionOut)
async def apply_quick_filter(session_key: str, option: QuickFilter, session: SessionDep) -> SessionOut:
    session.apply_quick_filter(option)
    return SessionOut.from_snapshot(session_key, session.snapshot())


@router.post("/{session_key}/more", response_model=SessionOut)
async def load_more(session_key: str, session: SessionDep) -> SessionOut:
    if not session.load_more():
        logger.debug("Session %s: load more ignored", session_key)
    return SessionOut.from_snapshot(session_key, session.snapshot())


@router.post("/{session_key}/trip-type", response_model=SessionOut)
async def change_trip_type(session_key: str, session: SessionDep, body: TripTypeIn) -> SessionOut:
    legs = [leg.to_leg() for leg in body.legs] if body.legs else None
    try:
        await session.change_trip_type(body.trip_type, legs)
    except SearchError as exc:
        raise http_error(exc)
    return SessionOut.from_snapshot(session_key, session.snapshot())


@router.delete("/{session_key}", status_code=204)
async def close_session(session_key: str, registry: RegistryDep, session: SessionDep) -> Response:
    registry.close(session_key)
    return Response(status_code=204)
