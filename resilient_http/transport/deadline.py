"""Overall request timeout enforced around a transport.

httpx timeouts apply per phase, so a response that keeps trickling bytes
never trips any of them. ``DeadlineTransport`` bounds the whole exchange,
from sending the request to reading the last body chunk, by wall time.
"""

from __future__ import annotations

import time
from typing import Any, AsyncIterator, Iterator

import httpx

TIMEOUT_PHASES = ("connect", "read", "write", "pool")

_MISSING = object()


def bounded_timeouts(timeout: dict[str, Any] | None, limit: float) -> dict[str, Any]:
    """Copy of an httpx timeout extension with every phase capped at ``limit``.

    Args:
        timeout: The request's ``extensions["timeout"]`` value, if any.
        limit: Upper bound in seconds; negative values count as zero.

    Returns:
        A new dict; ``timeout`` itself is never modified.
    """
    limit = max(limit, 0.0)
    bounded = dict(timeout or {})
    for phase in TIMEOUT_PHASES:
        current = bounded.get(phase)
        bounded[phase] = limit if current is None else min(current, limit)
    return bounded


def save_timeouts(request: httpx.Request) -> Any:
    """Snapshot the request's timeout extension for ``restore_timeouts``."""
    return request.extensions.get("timeout", _MISSING)


def restore_timeouts(request: httpx.Request, saved: Any) -> None:
    """Put back a timeout extension captured by ``save_timeouts``."""
    if saved is _MISSING:
        request.extensions.pop("timeout", None)
    else:
        request.extensions["timeout"] = saved


def _expired(request: httpx.Request, timeout: float) -> httpx.ReadTimeout:
    return httpx.ReadTimeout(
        f"request exceeded overall timeout of {timeout}s", request=request
    )


class _DeadlineStream(httpx.SyncByteStream):
    """Response body that fails once the exchange deadline has passed."""

    def __init__(
        self,
        stream: httpx.SyncByteStream,
        request: httpx.Request,
        deadline: float,
        timeout: float,
    ) -> None:
        self._stream = stream
        self._request = request
        self._deadline = deadline
        self._timeout = timeout

    def __iter__(self) -> Iterator[bytes]:
        for chunk in self._stream:
            if time.monotonic() >= self._deadline:
                raise _expired(self._request, self._timeout)
            yield chunk

    def close(self) -> None:
        self._stream.close()


class _AsyncDeadlineStream(httpx.AsyncByteStream):
    """Async response body that fails once the exchange deadline has passed."""

    def __init__(
        self,
        stream: httpx.AsyncByteStream,
        request: httpx.Request,
        deadline: float,
        timeout: float,
    ) -> None:
        self._stream = stream
        self._request = request
        self._deadline = deadline
        self._timeout = timeout

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self._stream:
            if time.monotonic() >= self._deadline:
                raise _expired(self._request, self._timeout)
            yield chunk

    async def aclose(self) -> None:
        await self._stream.aclose()


class DeadlineTransport(httpx.BaseTransport):
    """Wraps a transport so each exchange finishes within ``timeout`` seconds.

    Phase timeouts are capped at ``timeout`` while the request is sent and
    the headers are received; the caller's timeout extension is put back
    afterwards. Body chunks that arrive after the deadline raise
    ``httpx.ReadTimeout``.
    """

    def __init__(self, transport: httpx.BaseTransport, timeout: float) -> None:
        self._transport = transport
        self._timeout = timeout

    @property
    def inner(self) -> httpx.BaseTransport:
        """The wrapped transport."""
        return self._transport

    @property
    def timeout(self) -> float:
        """Overall timeout in seconds."""
        return self._timeout

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        deadline = time.monotonic() + self._timeout
        saved = save_timeouts(request)
        request.extensions["timeout"] = bounded_timeouts(
            request.extensions.get("timeout"), self._timeout
        )
        try:
            response = self._transport.handle_request(request)
        finally:
            restore_timeouts(request, saved)

        response.stream = _DeadlineStream(response.stream, request, deadline, self._timeout)
        return response

    def close(self) -> None:
        self._transport.close()


class AsyncDeadlineTransport(httpx.AsyncBaseTransport):
    """Async version of ``DeadlineTransport``."""

    def __init__(self, transport: httpx.AsyncBaseTransport, timeout: float) -> None:
        self._transport = transport
        self._timeout = timeout

    @property
    def inner(self) -> httpx.AsyncBaseTransport:
        """The wrapped transport."""
        return self._transport

    @property
    def timeout(self) -> float:
        """Overall timeout in seconds."""
        return self._timeout

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        deadline = time.monotonic() + self._timeout
        saved = save_timeouts(request)
        request.extensions["timeout"] = bounded_timeouts(
            request.extensions.get("timeout"), self._timeout
        )
        try:
            response = await self._transport.handle_async_request(request)
        finally:
            restore_timeouts(request, saved)

        response.stream = _AsyncDeadlineStream(
            response.stream, request, deadline, self._timeout
        )
        return response

    async def aclose(self) -> None:
        await self._transport.aclose()
