"""Shared route dependencies and SearchError → HTTP status mapping."""
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from flightsearch.errors import ErrorKind, SearchError
from flightsearch.services.registry import SessionNotFound, SessionRegistry
from flightsearch.services.session import SearchSession

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.SERVER: 502,
    ErrorKind.DECODE: 502,
    ErrorKind.NETWORK: 503,
}


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


RegistryDep = Annotated[SessionRegistry, Depends(get_registry)]


def get_session(session_key: str, registry: RegistryDep) -> SearchSession:
    try:
        return registry.get(session_key)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail=f"Unknown session {session_key}")


SessionDep = Annotated[SearchSession, Depends(get_session)]


def http_error(exc: SearchError) -> HTTPException:
    return HTTPException(status_code=_STATUS_BY_KIND.get(exc.kind, 500), detail=exc.message)
