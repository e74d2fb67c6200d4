"""Named configuration options for the client builder.

Each option is a pure function from one ``ClientConfig`` to the next.
Options are applied in order, so the last one touching a field wins.

    client = new_client(
        with_timeout(5.0),
        with_max_idle_conns(20),
        with_dialer(connect_timeout=2.0, keep_alive=30.0),
    )
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable

from .config import ClientConfig
from .transport.proxy import ProxyFunc

Option = Callable[[ClientConfig], ClientConfig]


def with_timeout(timeout: float) -> Option:
    """Set the overall request timeout in seconds."""
    return lambda config: replace(config, timeout=timeout)


def with_tls_handshake_timeout(timeout: float) -> Option:
    """Set the TLS handshake timeout in seconds."""
    return lambda config: replace(config, tls_handshake_timeout=timeout)


def with_response_header_timeout(timeout: float) -> Option:
    """Set how long to wait for response headers, in seconds."""
    return lambda config: replace(config, response_header_timeout=timeout)


def with_idle_conn_timeout(timeout: float) -> Option:
    """Set how long idle pooled connections are kept, in seconds."""
    return lambda config: replace(config, idle_conn_timeout=timeout)


def with_max_idle_conns(n: int) -> Option:
    """Set the maximum number of idle connections across all hosts."""
    return lambda config: replace(config, max_idle_conns=n)


def with_max_idle_conns_per_host(n: int) -> Option:
    """Set the maximum number of idle connections per host."""
    return lambda config: replace(config, max_idle_conns_per_host=n)


def with_http2_disabled() -> Option:
    """Stop attempting HTTP/2."""
    return lambda config: replace(config, http2=False)


def with_transport(transport: Any) -> Option:
    """Install a custom httpx transport.

    The transport is used as-is; transport-targeted settings (pool sizes,
    TLS and dialer timeouts, HTTP/2, proxy) are not applied to it. The
    client-level timeout and redirect settings still apply.
    """
    return lambda config: replace(config, transport=transport)


def with_expect_continue_timeout(timeout: float) -> Option:
    """Set the expect-continue timeout in seconds."""
    return lambda config: replace(config, expect_continue_timeout=timeout)


def with_proxy(proxy: ProxyFunc | None) -> Option:
    """Set the proxy resolver. ``None`` disables proxying."""
    return lambda config: replace(config, proxy=proxy)


def with_dialer_timeout(timeout: float) -> Option:
    """Set the TCP connect timeout, keeping the current keep-alive."""
    return lambda config: replace(
        config, dialer=replace(config.dialer, connect_timeout=timeout)
    )


def with_dialer_keep_alive(keep_alive: float) -> Option:
    """Set the TCP keep-alive interval, keeping the current connect timeout."""
    return lambda config: replace(
        config, dialer=replace(config.dialer, keep_alive=keep_alive)
    )


def with_dialer(
    connect_timeout: float | None = None,
    keep_alive: float | None = None,
) -> Option:
    """Set dialer connect timeout and keep-alive together.

    Fields passed as None keep their current value.
    """

    def apply(config: ClientConfig) -> ClientConfig:
        changes: dict[str, float] = {}
        if connect_timeout is not None:
            changes["connect_timeout"] = connect_timeout
        if keep_alive is not None:
            changes["keep_alive"] = keep_alive
        return replace(config, dialer=replace(config.dialer, **changes))

    return apply


def with_follow_redirects(follow: bool) -> Option:
    """Enable or disable following redirects."""
    return lambda config: replace(config, follow_redirects=follow)


def with_max_redirects(n: int) -> Option:
    """Set the maximum number of redirects to follow."""
    return lambda config: replace(config, max_redirects=n)
