"""Retry executor with bounded exponential backoff and cancellation.

Every attempt is classified as a success (status < 400), a retryable
failure (transport error or status >= 400) or a fatal cancellation. Retryable
failures are followed by a backoff wait that the request's context can
interrupt. Attempts are strictly sequential.

Basic usage:

    from resilient_http import do_with_retry, new_client

    client = new_client()
    request = client.build_request("GET", "https://example.com/health")
    response = do_with_retry(client, request)

    # Custom policy and a deadline
    from resilient_http import RetryExecutor, RetryPolicy, with_context
    from resilient_http.context import timeout_context

    executor = RetryExecutor(RetryPolicy(max_attempts=3, base_delay=0.1))
    with_context(request, timeout_context(5.0))
    response = executor.execute(client, request)
"""

from __future__ import annotations

from typing import Any

import httpx

from ._logging import get_logger
from .config import DEFAULT_RETRY_POLICY, RetryPolicy
from .context import Context, context_of
from .models import (
    AttemptOutcome,
    CancellationError,
    HTTPClientError,
    OutcomeKind,
    RetriesExhaustedError,
    TransportError,
    UnexpectedStatusError,
)
from .transport.deadline import bounded_timeouts, restore_timeouts, save_timeouts

logger = get_logger(__name__)


def _bound_to_context(request: httpx.Request, ctx: Context, saved: Any) -> None:
    """Cap the request's httpx timeouts at the context's remaining time.

    Each attempt starts again from ``saved``, the caller's own timeouts.
    """
    remaining = ctx.remaining()
    if remaining is None:
        return
    restore_timeouts(request, saved)
    request.extensions["timeout"] = bounded_timeouts(
        request.extensions.get("timeout"), remaining
    )


def _transport_failure(error: httpx.HTTPError) -> AttemptOutcome:
    message = str(error) or type(error).__name__
    return AttemptOutcome.retryable(TransportError(message, original_error=error))


def _classify_response(response: httpx.Response, request: httpx.Request) -> AttemptOutcome:
    if response.status_code < 400:
        return AttemptOutcome.success(response)
    return AttemptOutcome.retryable(
        UnexpectedStatusError(response.status_code, url=str(request.url))
    )


def _check_context(outcome: AttemptOutcome, ctx: Context) -> AttemptOutcome:
    """Turn a failed outcome into a fatal one once the context is done."""
    if outcome.succeeded:
        return outcome
    cause = ctx.err()
    if cause is not None:
        return AttemptOutcome.fatal(CancellationError(cause))
    return outcome


class RetryExecutor:
    """Runs a request against a client with bounded automatic retry.

    The executor never mutates the client. While it runs, each attempt's
    timeout extension is capped at the remaining time of the attached
    context, if any; the caller's timeouts are restored before returning.

    Args:
        policy: Attempt limit and backoff schedule. Defaults to
                ``DEFAULT_RETRY_POLICY`` (5 attempts, 0.5s base, 3s cap).
    """

    def __init__(self, policy: RetryPolicy | None = None) -> None:
        self._policy = policy or DEFAULT_RETRY_POLICY

    @property
    def policy(self) -> RetryPolicy:
        """The policy bound to this executor."""
        return self._policy

    # -------------------------------------------------------------------------
    # Sync
    # -------------------------------------------------------------------------

    def execute(
        self,
        client: httpx.Client,
        request: httpx.Request,
        stream: bool = False,
    ) -> httpx.Response:
        """Send ``request`` through ``client``, retrying on failure.

        Args:
            client: Client used to send each attempt.
            request: Prepared request, reused across attempts.
            stream: Return the successful response unread, as with
                    ``client.send(..., stream=True)``.

        Returns:
            The first response with a status code below 400.

        Raises:
            CancellationError: The request's context was cancelled or its
                               deadline elapsed.
            RetriesExhaustedError: Every attempt failed.
        """
        saved = save_timeouts(request)
        try:
            return self._run(client, request, saved, stream)
        finally:
            restore_timeouts(request, saved)

    def _run(
        self,
        client: httpx.Client,
        request: httpx.Request,
        saved: Any,
        stream: bool,
    ) -> httpx.Response:
        ctx = context_of(request)
        last_error: HTTPClientError | None = None

        for attempt in range(self._policy.max_attempts):
            outcome = self._attempt(client, request, ctx, saved, stream)
            if outcome.succeeded:
                self._log_success(request, attempt)
                return outcome.response
            if outcome.kind is OutcomeKind.FATAL:
                raise self._cancelled(request, outcome.error, attempt)

            last_error = outcome.error
            if attempt == self._policy.max_attempts - 1:
                break

            delay = self._policy.delay_for(attempt)
            self._log_retry(request, attempt, delay, last_error)
            if ctx.wait(delay):
                raise self._cancelled(request, CancellationError(ctx.err()), attempt)

        raise self._exhausted(request, last_error)

    def _attempt(
        self,
        client: httpx.Client,
        request: httpx.Request,
        ctx: Context,
        saved: Any,
        stream: bool,
    ) -> AttemptOutcome:
        cause = ctx.err()
        if cause is not None:
            return AttemptOutcome.fatal(CancellationError(cause))

        _bound_to_context(request, ctx, saved)
        try:
            response = client.send(request, stream=stream)
        except httpx.HTTPError as e:
            return _check_context(_transport_failure(e), ctx)

        outcome = _classify_response(response, request)
        if not outcome.succeeded:
            response.close()
        return _check_context(outcome, ctx)

    # -------------------------------------------------------------------------
    # Async
    # -------------------------------------------------------------------------

    async def execute_async(
        self,
        client: httpx.AsyncClient,
        request: httpx.Request,
        stream: bool = False,
    ) -> httpx.Response:
        """Asynchronous version of ``execute``.

        Task cancellation (``asyncio.CancelledError``) propagates unchanged;
        the request's context is observed exactly as in ``execute``.
        """
        saved = save_timeouts(request)
        try:
            return await self._run_async(client, request, saved, stream)
        finally:
            restore_timeouts(request, saved)

    async def _run_async(
        self,
        client: httpx.AsyncClient,
        request: httpx.Request,
        saved: Any,
        stream: bool,
    ) -> httpx.Response:
        ctx = context_of(request)
        last_error: HTTPClientError | None = None

        for attempt in range(self._policy.max_attempts):
            outcome = await self._attempt_async(client, request, ctx, saved, stream)
            if outcome.succeeded:
                self._log_success(request, attempt)
                return outcome.response
            if outcome.kind is OutcomeKind.FATAL:
                raise self._cancelled(request, outcome.error, attempt)

            last_error = outcome.error
            if attempt == self._policy.max_attempts - 1:
                break

            delay = self._policy.delay_for(attempt)
            self._log_retry(request, attempt, delay, last_error)
            if await ctx.wait_async(delay):
                raise self._cancelled(request, CancellationError(ctx.err()), attempt)

        raise self._exhausted(request, last_error)

    async def _attempt_async(
        self,
        client: httpx.AsyncClient,
        request: httpx.Request,
        ctx: Context,
        saved: Any,
        stream: bool,
    ) -> AttemptOutcome:
        cause = ctx.err()
        if cause is not None:
            return AttemptOutcome.fatal(CancellationError(cause))

        _bound_to_context(request, ctx, saved)
        try:
            response = await client.send(request, stream=stream)
        except httpx.HTTPError as e:
            return _check_context(_transport_failure(e), ctx)

        outcome = _classify_response(response, request)
        if not outcome.succeeded:
            await response.aclose()
        return _check_context(outcome, ctx)

    # -------------------------------------------------------------------------
    # Terminal states
    # -------------------------------------------------------------------------

    def _cancelled(
        self,
        request: httpx.Request,
        error: CancellationError,
        attempt: int,
    ) -> CancellationError:
        logger.info(
            "HTTP request cancelled",
            method=request.method,
            url=str(request.url),
            attempt=attempt + 1,
            reason=str(error.cause),
        )
        error.__cause__ = error.cause
        return error

    def _exhausted(
        self,
        request: httpx.Request,
        last_error: HTTPClientError | None,
    ) -> RetriesExhaustedError:
        logger.error(
            "HTTP request failed after all retries",
            method=request.method,
            url=str(request.url),
            attempts=self._policy.max_attempts,
            error=str(last_error),
        )
        error = RetriesExhaustedError(self._policy.max_attempts, last_error)
        error.__cause__ = last_error
        return error

    def _log_retry(
        self,
        request: httpx.Request,
        attempt: int,
        delay: float,
        error: HTTPClientError | None,
    ) -> None:
        logger.warning(
            "HTTP request failed, retrying",
            method=request.method,
            url=str(request.url),
            attempt=attempt + 1,
            max_attempts=self._policy.max_attempts,
            delay=delay,
            error=str(error),
        )

    def _log_success(self, request: httpx.Request, attempt: int) -> None:
        if attempt > 0:
            logger.info(
                "HTTP request succeeded after retries",
                method=request.method,
                url=str(request.url),
                attempts=attempt + 1,
            )


def do_with_retry(
    client: httpx.Client,
    request: httpx.Request,
    policy: RetryPolicy | None = None,
    stream: bool = False,
) -> httpx.Response:
    """Send ``request`` with automatic retry. See ``RetryExecutor.execute``."""
    return RetryExecutor(policy).execute(client, request, stream=stream)


async def do_with_retry_async(
    client: httpx.AsyncClient,
    request: httpx.Request,
    policy: RetryPolicy | None = None,
    stream: bool = False,
) -> httpx.Response:
    """Send ``request`` with automatic retry. See ``RetryExecutor.execute_async``."""
    return await RetryExecutor(policy).execute_async(client, request, stream=stream)
