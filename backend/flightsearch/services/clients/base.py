"""
Backend transport layer, shared by SearchClient, PollClient and ExploreClient.

One httpx.AsyncClient per client object (injected in tests with an
httpx.MockTransport). _request() performs exactly one HTTP call and maps
failures to the errors in flightsearch.errors:

    httpx.TransportError (connect, read timeout, ...)  → NetworkError
    status >= 400                                      → ServerError(status, body)
    body not JSON / not matching the pydantic model    → DecodeError

No retry happens here: retry policy belongs to the PollOrchestrator.
"""
import logging
from typing import TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from flightsearch.config import settings
from flightsearch.errors import DecodeError, NetworkError, ServerError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class BackendClient:

    def __init__(
        self,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        country: str | None = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.country = country or settings.country
        self._http = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json: dict | None = None,
        headers: dict | None = None,
    ) -> dict:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            resp = await self._http.request(method, url, params=params, json=json, headers=headers)
        except httpx.TransportError as exc:
            logger.warning("%s %s: %s: %s", method, path, type(exc).__name__, exc)
            raise NetworkError(f"{type(exc).__name__}: {exc}") from exc

        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "%s %s: HTTP %d: %s",
                method, path, exc.response.status_code, exc.response.text[:300],
            )
            raise ServerError(exc.response.status_code, exc.response.text) from exc

        try:
            return resp.json()
        except ValueError as exc:
            raise DecodeError(f"{method} {path}: expected JSON, got {resp.text[:200]!r}") from exc

    @staticmethod
    def _decode(model: type[ModelT], data: dict, what: str) -> ModelT:
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            logger.warning("%s: unexpected payload shape (%d errors)", what, exc.error_count())
            raise DecodeError(f"{what}: {exc.error_count()} field errors") from exc
