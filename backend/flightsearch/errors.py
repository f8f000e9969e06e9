"""
Error hierarchy shared by the transport clients, the orchestrator and the API.

Transport code (services/clients) raises these; only the PollOrchestrator
decides whether an error is retried, mapped to "no more data" or surfaced
as a Failure outcome.

    ValidationError  bad request, caught before any network call
    NetworkError     connectivity / timeout        retryable
    ServerError      non-2xx with body             404 and 5xx retryable
    DecodeError      payload shape mismatch        never retried
"""
from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NETWORK = "network"
    SERVER = "server"
    DECODE = "decode"
    INTERNAL = "internal"


class SearchError(Exception):
    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(SearchError):
    kind = ErrorKind.VALIDATION


class NetworkError(SearchError):
    kind = ErrorKind.NETWORK


class DecodeError(SearchError):
    kind = ErrorKind.DECODE


class ServerError(SearchError):
    kind = ErrorKind.SERVER

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"HTTP {status_code}: {body[:300]}" if body else f"HTTP {status_code}")
        self.status_code = status_code
        self.body = body

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_retryable(self) -> bool:
        # 404 is common right after search creation, before the job exists
        return self.status_code == 404 or self.status_code >= 500
