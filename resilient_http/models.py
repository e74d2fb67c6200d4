"""Error taxonomy and per-attempt outcome model."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import httpx


class HTTPClientError(Exception):
    """Base exception for HTTP client errors."""
    pass


class TransportError(HTTPClientError):
    """Error during HTTP transport (connection, timeout, DNS, TLS, etc.)."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class UnexpectedStatusError(HTTPClientError):
    """Response carried a status code >= 400."""

    def __init__(self, status_code: int, url: str | None = None):
        super().__init__(f"unexpected status code {status_code}")
        self.status_code = status_code
        self.url = url


class Cancelled(HTTPClientError):
    """A context was explicitly cancelled."""

    def __init__(self, message: str = "context canceled"):
        super().__init__(message)


class DeadlineExceeded(Cancelled):
    """A context's deadline elapsed."""

    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)


class CancellationError(HTTPClientError):
    """Request gave up because its context was cancelled or timed out."""

    def __init__(self, cause: Cancelled):
        super().__init__(f"request cancelled or timed out: {cause}")
        self.cause = cause


class RetriesExhaustedError(HTTPClientError):
    """Every attempt failed with a retryable error."""

    def __init__(self, attempts: int, last_error: Exception | None = None):
        message = f"failed after {attempts} attempts"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class OutcomeKind(Enum):
    """Classification of a single request attempt."""

    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass
class AttemptOutcome:
    """Result of one attempt inside the retry loop.

    Attributes:
        kind: How the attempt was classified.
        response: The successful response (SUCCESS only).
        error: The failure (RETRYABLE or FATAL only).
    """

    kind: OutcomeKind
    response: httpx.Response | None = None
    error: HTTPClientError | None = None

    @classmethod
    def success(cls, response: httpx.Response) -> "AttemptOutcome":
        return cls(OutcomeKind.SUCCESS, response=response)

    @classmethod
    def retryable(cls, error: HTTPClientError) -> "AttemptOutcome":
        return cls(OutcomeKind.RETRYABLE, error=error)

    @classmethod
    def fatal(cls, error: CancellationError) -> "AttemptOutcome":
        return cls(OutcomeKind.FATAL, error=error)

    @property
    def succeeded(self) -> bool:
        """Check if the attempt produced a usable response."""
        return self.kind is OutcomeKind.SUCCESS
