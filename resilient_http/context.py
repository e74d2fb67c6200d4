"""Cancellation and deadline tokens attached to outbound requests.

A ``Context`` carries an optional deadline and can be cancelled from any
thread. Contexts form a tree: a child inherits the earlier of its own and
its parent's deadline, and is cancelled when the parent is.

Basic usage:

    from resilient_http import do_with_retry, new_client, with_context
    from resilient_http.context import timeout_context

    client = new_client()
    request = client.build_request("GET", "https://example.com")
    with_context(request, timeout_context(10.0))
    response = do_with_retry(client, request)
"""

from __future__ import annotations

import asyncio
import threading
import time

import httpx

from .models import Cancelled, DeadlineExceeded

CONTEXT_EXTENSION = "resilient_http.context"


class Context:
    """Cancellation signal with an optional monotonic deadline."""

    def __init__(
        self,
        deadline: float | None = None,
        parent: Context | None = None,
        cancellable: bool = True,
    ) -> None:
        """Initialize context.

        Args:
            deadline: Absolute ``time.monotonic()`` value after which the
                      context is done, or None for no deadline.
            parent: Context whose cancellation and deadline are inherited.
            cancellable: Whether ``cancel()`` has any effect.
        """
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)

        self._deadline = deadline
        self._cancellable = cancellable
        self._err: Cancelled | None = None
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: set[Context] = set()
        self._waiters: set[tuple[asyncio.AbstractEventLoop, asyncio.Event]] = set()
        self._parent: Context | None = None

        # The background context never finishes, so children need no link to it.
        if parent is not None and parent._cancellable:
            self._parent = parent
            parent._add_child(self)

    @property
    def deadline(self) -> float | None:
        """Absolute monotonic deadline, if any."""
        return self._deadline

    @property
    def done(self) -> bool:
        """Whether the context has been cancelled or has expired."""
        return self.err() is not None

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return self._deadline - time.monotonic()

    def err(self) -> Cancelled | None:
        """Return why the context is done, or None while it is still live."""
        if self._err is not None:
            return self._err
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._finish(DeadlineExceeded())
        return self._err

    def cancel(self) -> None:
        """Cancel the context and all of its children."""
        if self._cancellable:
            self._finish(Cancelled())

    def wait(self, timeout: float) -> bool:
        """Block for up to ``timeout`` seconds.

        Returns:
            True if the context finished before the timeout elapsed,
            False if the full timeout passed while it stayed live.
        """
        end = time.monotonic() + timeout
        while True:
            if self.err() is not None:
                return True
            left = end - time.monotonic()
            if left <= 0:
                return False
            remaining = self.remaining()
            if remaining is not None:
                left = min(left, max(remaining, 0.0))
            self._event.wait(left)

    async def wait_async(self, timeout: float) -> bool:
        """Asynchronous version of ``wait``.

        ``cancel()`` may be called from another thread; the waiting task is
        woken through its event loop.
        """
        loop = asyncio.get_running_loop()
        event = asyncio.Event()
        waiter = (loop, event)
        with self._lock:
            if self._err is None:
                self._waiters.add(waiter)
            else:
                event.set()

        end = time.monotonic() + timeout
        try:
            while True:
                if self.err() is not None:
                    return True
                left = end - time.monotonic()
                if left <= 0:
                    return False
                remaining = self.remaining()
                if remaining is not None:
                    left = min(left, max(remaining, 0.0))
                try:
                    await asyncio.wait_for(event.wait(), timeout=left)
                except asyncio.TimeoutError:
                    pass
        finally:
            with self._lock:
                self._waiters.discard(waiter)

    def _add_child(self, child: Context) -> None:
        now = time.monotonic()
        with self._lock:
            err = self._err
            if err is None:
                # Drop children whose deadline passed without err() being called.
                expired = [
                    c for c in self._children
                    if c._deadline is not None and c._deadline <= now
                ]
                self._children.add(child)
        if err is not None:
            child._finish(err)
            return
        for stale in expired:
            stale.err()

    def _remove_child(self, child: Context) -> None:
        with self._lock:
            self._children.discard(child)

    def _finish(self, err: Cancelled) -> None:
        with self._lock:
            if self._err is not None:
                return
            self._err = err
            children = list(self._children)
            waiters = list(self._waiters)
            self._children.clear()
            self._waiters.clear()

        self._event.set()
        for loop, event in waiters:
            if not loop.is_closed():
                loop.call_soon_threadsafe(event.set)
        for child in children:
            child._finish(err)
        if self._parent is not None:
            self._parent._remove_child(self)
            self._parent = None

    def __repr__(self) -> str:
        state = "live" if self._err is None else type(self._err).__name__
        return f"Context(deadline={self._deadline!r}, state={state})"


_BACKGROUND = Context(cancellable=False)


def background() -> Context:
    """Root context that is never cancelled and has no deadline."""
    return _BACKGROUND


def with_cancel(parent: Context | None = None) -> Context:
    """New cancellable context, optionally derived from ``parent``."""
    return Context(parent=parent)


def with_deadline(deadline: float, parent: Context | None = None) -> Context:
    """New context that expires at the monotonic time ``deadline``."""
    return Context(deadline=deadline, parent=parent)


def timeout_context(timeout: float, parent: Context | None = None) -> Context:
    """New context that expires ``timeout`` seconds from now."""
    return with_deadline(time.monotonic() + timeout, parent=parent)


def with_context(request: httpx.Request, ctx: Context) -> httpx.Request:
    """Attach ``ctx`` to ``request`` and return the request."""
    request.extensions[CONTEXT_EXTENSION] = ctx
    return request


def context_of(request: httpx.Request) -> Context:
    """Context attached to ``request``, or the background context."""
    ctx = request.extensions.get(CONTEXT_EXTENSION)
    if ctx is None:
        return _BACKGROUND
    return ctx
