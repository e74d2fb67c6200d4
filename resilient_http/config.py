"""Configuration dataclasses for the client builder and the retry executor."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any

from .transport.proxy import ProxyFunc, proxy_from_environment

# Defaults
DEFAULT_TIMEOUT = 15.0
DEFAULT_TLS_HANDSHAKE_TIMEOUT = 5.0
DEFAULT_DIAL_TIMEOUT = 5.0
DEFAULT_KEEP_ALIVE = 15.0
DEFAULT_IDLE_CONN_TIMEOUT = 90.0
DEFAULT_MAX_IDLE_CONNS = 100
DEFAULT_EXPECT_CONTINUE_TIMEOUT = 1.0


@dataclass(frozen=True)
class DialerConfig:
    """Settings used when opening new TCP connections.

    Attributes:
        connect_timeout: Maximum time to establish a TCP connection, in seconds.
        keep_alive: Interval between TCP keep-alive probes, in seconds.
    """

    connect_timeout: float = DEFAULT_DIAL_TIMEOUT
    keep_alive: float = DEFAULT_KEEP_ALIVE

    def __post_init__(self) -> None:
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be > 0")
        if self.keep_alive <= 0:
            raise ValueError("keep_alive must be > 0")


@dataclass(frozen=True)
class ClientConfig:
    """Resolved transport and client settings.

    Built once per logical client and never mutated afterwards; options
    produce new instances through ``dataclasses.replace``.

    Attributes:
        timeout: Overall request timeout in seconds.
        tls_handshake_timeout: Time allowed for the TLS handshake, in seconds.
        response_header_timeout: Time to wait for the response once the
                                 request has been written, in seconds.
        idle_conn_timeout: How long an idle pooled connection is kept, in seconds.
        max_idle_conns: Maximum number of idle connections across all hosts.
        max_idle_conns_per_host: Maximum idle connections per host. httpx has
                                 no per-host pool cap, so this is informational.
        http2: Whether to attempt HTTP/2.
        proxy: Function resolving the proxy URL for a request, or None for
               direct connections.
        expect_continue_timeout: Time to wait for a 100-continue response.
                                 httpx never sends ``Expect: 100-continue``,
                                 so this is informational.
        dialer: TCP connect timeout and keep-alive settings.
        transport: Custom transport installed verbatim. When set, the
                   transport-targeted fields above are not applied.
        follow_redirects: Whether to follow HTTP redirects.
        max_redirects: Maximum number of redirects to follow.
    """

    # Timeouts
    timeout: float = DEFAULT_TIMEOUT
    tls_handshake_timeout: float = DEFAULT_TLS_HANDSHAKE_TIMEOUT
    response_header_timeout: float = DEFAULT_TIMEOUT
    idle_conn_timeout: float = DEFAULT_IDLE_CONN_TIMEOUT
    expect_continue_timeout: float = DEFAULT_EXPECT_CONTINUE_TIMEOUT

    # Connection pool
    max_idle_conns: int = DEFAULT_MAX_IDLE_CONNS
    max_idle_conns_per_host: int = DEFAULT_MAX_IDLE_CONNS

    # Protocol and routing
    http2: bool = True
    proxy: ProxyFunc | None = proxy_from_environment
    dialer: DialerConfig = field(default_factory=DialerConfig)
    transport: Any = None

    # Redirects
    follow_redirects: bool = True
    max_redirects: int = 10

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.tls_handshake_timeout <= 0:
            raise ValueError("tls_handshake_timeout must be > 0")
        if self.response_header_timeout <= 0:
            raise ValueError("response_header_timeout must be > 0")
        if self.idle_conn_timeout <= 0:
            raise ValueError("idle_conn_timeout must be > 0")
        if self.expect_continue_timeout < 0:
            raise ValueError("expect_continue_timeout must be >= 0")
        if self.max_idle_conns < 1:
            raise ValueError("max_idle_conns must be >= 1")
        if self.max_idle_conns_per_host < 1:
            raise ValueError("max_idle_conns_per_host must be >= 1")
        if self.max_redirects < 0:
            raise ValueError("max_redirects must be >= 0")

    def transport_overrides(self) -> list[str]:
        """Names of transport-targeted fields that differ from their defaults."""
        defaults = ClientConfig()
        return [
            f.name
            for f in fields(self)
            if f.name in TRANSPORT_FIELDS
            and getattr(self, f.name) != getattr(defaults, f.name)
        ]


# Fields applied to the default transport and ignored by a custom one.
TRANSPORT_FIELDS = frozenset({
    "tls_handshake_timeout",
    "response_header_timeout",
    "idle_conn_timeout",
    "expect_continue_timeout",
    "max_idle_conns",
    "max_idle_conns_per_host",
    "http2",
    "proxy",
    "dialer",
})


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt limit and backoff schedule for the retry executor.

    Attributes:
        max_attempts: Total number of attempts, including the first one.
        base_delay: Delay before the first retry, in seconds.
        max_delay: Upper bound for any single delay, in seconds.
        multiplier: Growth factor applied per attempt.
    """

    max_attempts: int = 5
    base_delay: float = 0.5
    max_delay: float = 3.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        """Validate policy values."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the 0-based ``attempt`` failed."""
        if attempt < 0:
            raise ValueError("attempt must be >= 0")
        try:
            delay = self.base_delay * self.multiplier ** attempt
        except OverflowError:
            return self.max_delay
        return min(delay, self.max_delay)

    def delays(self) -> list[float]:
        """Every inter-attempt delay, in order."""
        return [self.delay_for(i) for i in range(self.max_attempts - 1)]

    @property
    def max_total_delay(self) -> float:
        """Upper bound on time spent sleeping across one call."""
        return (self.max_attempts - 1) * self.max_delay


DEFAULT_RETRY_POLICY = RetryPolicy()
