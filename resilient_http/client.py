"""Client builder producing httpx clients with production-safe defaults."""

from __future__ import annotations

import httpx

from ._logging import get_logger
from .config import ClientConfig
from .options import Option
from .transport import (
    AsyncDeadlineTransport,
    AsyncProxyRoutingTransport,
    DeadlineTransport,
    ProxyRoutingTransport,
    socket_options,
)

logger = get_logger(__name__)


def build_config(*options: Option) -> ClientConfig:
    """Resolve ``options`` on top of the default configuration.

    Args:
        *options: Option functions, applied in order.

    Returns:
        The resolved, validated configuration.
    """
    config = ClientConfig()
    for option in options:
        config = option(config)
    return config


def build_timeout(config: ClientConfig) -> httpx.Timeout:
    """Map config timeouts onto httpx's per-phase timeouts.

    httpx's connect phase covers both the TCP dial and the TLS handshake.
    No phase may exceed the overall timeout.
    """
    connect = config.dialer.connect_timeout + config.tls_handshake_timeout
    return httpx.Timeout(
        config.timeout,
        connect=min(connect, config.timeout),
        read=min(config.response_header_timeout, config.timeout),
    )


def build_limits(config: ClientConfig) -> httpx.Limits:
    """Map idle-pool settings onto httpx connection limits."""
    return httpx.Limits(
        max_connections=None,
        max_keepalive_connections=config.max_idle_conns,
        keepalive_expiry=config.idle_conn_timeout,
    )


def _custom_transport(config: ClientConfig, expected: type) -> object:
    """Validate and return the custom transport from ``config``."""
    transport = config.transport
    if not isinstance(transport, expected):
        raise TypeError(
            f"transport must be an instance of {expected.__name__}, "
            f"got {type(transport).__name__}"
        )

    overrides = config.transport_overrides()
    if overrides:
        logger.warning(
            "Custom transport installed, transport settings not applied",
            transport=type(transport).__name__,
            fields=sorted(overrides),
        )
    return transport


def build_transport(config: ClientConfig) -> httpx.BaseTransport:
    """Build the sync transport described by ``config``.

    The result is wrapped in a ``DeadlineTransport`` so every exchange,
    body included, finishes within ``config.timeout``.

    Raises:
        TypeError: If a custom transport is installed that is not an
                   ``httpx.BaseTransport``.
    """
    return DeadlineTransport(_base_transport(config), config.timeout)


def _base_transport(config: ClientConfig) -> httpx.BaseTransport:
    if config.transport is not None:
        return _custom_transport(config, httpx.BaseTransport)

    def factory(proxy: str | None) -> httpx.BaseTransport:
        return httpx.HTTPTransport(
            http2=config.http2,
            limits=build_limits(config),
            proxy=proxy,
            socket_options=socket_options(config.dialer),
        )

    if config.proxy is None:
        return factory(None)
    return ProxyRoutingTransport(config.proxy, factory)


def build_async_transport(config: ClientConfig) -> httpx.AsyncBaseTransport:
    """Build the async transport described by ``config``.

    Wrapped in an ``AsyncDeadlineTransport``, like ``build_transport``.

    Raises:
        TypeError: If a custom transport is installed that is not an
                   ``httpx.AsyncBaseTransport``.
    """
    return AsyncDeadlineTransport(_base_async_transport(config), config.timeout)


def _base_async_transport(config: ClientConfig) -> httpx.AsyncBaseTransport:
    if config.transport is not None:
        return _custom_transport(config, httpx.AsyncBaseTransport)

    def factory(proxy: str | None) -> httpx.AsyncBaseTransport:
        return httpx.AsyncHTTPTransport(
            http2=config.http2,
            limits=build_limits(config),
            proxy=proxy,
            socket_options=socket_options(config.dialer),
        )

    if config.proxy is None:
        return factory(None)
    return AsyncProxyRoutingTransport(config.proxy, factory)


def new_client(*options: Option) -> httpx.Client:
    """Create a sync HTTP client from the defaults and ``options``.

    Example:
        client = new_client(with_timeout(5.0), with_http2_disabled())
        response = client.get("https://example.com")
    """
    config = build_config(*options)
    return httpx.Client(
        transport=build_transport(config),
        timeout=build_timeout(config),
        follow_redirects=config.follow_redirects,
        max_redirects=config.max_redirects,
    )


def new_async_client(*options: Option) -> httpx.AsyncClient:
    """Create an async HTTP client from the defaults and ``options``."""
    config = build_config(*options)
    return httpx.AsyncClient(
        transport=build_async_transport(config),
        timeout=build_timeout(config),
        follow_redirects=config.follow_redirects,
        max_redirects=config.max_redirects,
    )
