"""Per-request proxy resolution for httpx transports.

httpx binds a proxy to a transport at construction time. The routing
transports here ask a resolver function for the proxy of each request and
dispatch to one pooled transport per distinct proxy URL.
"""

from __future__ import annotations

import ipaddress
import threading
import urllib.request
from typing import Callable

import httpx

ProxyFunc = Callable[[httpx.Request], "str | None"]


def _is_loopback(host: str) -> bool:
    if host == "localhost" or host.endswith(".localhost"):
        return True
    try:
        return ipaddress.ip_address(host.strip("[]")).is_loopback
    except ValueError:
        return False


def proxy_from_environment(request: httpx.Request) -> str | None:
    """Resolve the proxy for ``request`` from the process environment.

    Uses ``HTTP_PROXY`` / ``HTTPS_PROXY`` (and lowercase forms) keyed by the
    request scheme, honours ``NO_PROXY``, and never proxies loopback hosts.

    Args:
        request: The outgoing request.

    Returns:
        Proxy URL, or None for a direct connection.
    """
    host = request.url.host
    if not host or _is_loopback(host):
        return None

    proxies = urllib.request.getproxies_environment()
    if not proxies:
        return None
    if urllib.request.proxy_bypass_environment(host, proxies):
        return None
    return proxies.get(request.url.scheme)


class ProxyRoutingTransport(httpx.BaseTransport):
    """Sync transport choosing a proxy for every request.

    Args:
        resolver: Returns the proxy URL for a request, or None for direct.
        factory: Builds the underlying transport for a proxy URL (None
                 means direct).
    """

    def __init__(
        self,
        resolver: ProxyFunc,
        factory: Callable[[str | None], httpx.BaseTransport],
    ) -> None:
        self._resolver = resolver
        self._factory = factory
        self._transports: dict[str | None, httpx.BaseTransport] = {}
        self._lock = threading.Lock()

    @property
    def resolver(self) -> ProxyFunc:
        return self._resolver

    def transport_for(self, proxy: str | None) -> httpx.BaseTransport:
        """Get or create the transport for ``proxy``."""
        with self._lock:
            transport = self._transports.get(proxy)
            if transport is None:
                transport = self._factory(proxy)
                self._transports[proxy] = transport
            return transport

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        proxy = self._resolver(request)
        return self.transport_for(str(proxy) if proxy else None).handle_request(request)

    def close(self) -> None:
        with self._lock:
            transports = list(self._transports.values())
            self._transports.clear()
        for transport in transports:
            transport.close()


class AsyncProxyRoutingTransport(httpx.AsyncBaseTransport):
    """Async counterpart of ``ProxyRoutingTransport``."""

    def __init__(
        self,
        resolver: ProxyFunc,
        factory: Callable[[str | None], httpx.AsyncBaseTransport],
    ) -> None:
        self._resolver = resolver
        self._factory = factory
        self._transports: dict[str | None, httpx.AsyncBaseTransport] = {}
        self._lock = threading.Lock()

    @property
    def resolver(self) -> ProxyFunc:
        return self._resolver

    def transport_for(self, proxy: str | None) -> httpx.AsyncBaseTransport:
        """Get or create the transport for ``proxy``."""
        with self._lock:
            transport = self._transports.get(proxy)
            if transport is None:
                transport = self._factory(proxy)
                self._transports[proxy] = transport
            return transport

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        proxy = self._resolver(request)
        transport = self.transport_for(str(proxy) if proxy else None)
        return await transport.handle_async_request(request)

    async def aclose(self) -> None:
        with self._lock:
            transports = list(self._transports.values())
            self._transports.clear()
        for transport in transports:
            await transport.aclose()
