"""HTTP client builder and retry executor for outbound requests.

This package provides:

- An httpx client builder with production-safe defaults (connect, TLS,
  response and idle timeouts, pooled keep-alive connections, HTTP/2,
  proxy resolved from the environment) customised by ordered options
- A retry executor with bounded exponential backoff that treats transport
  errors and 4xx/5xx responses as retryable
- Cancellation and deadline contexts observed by the executor, including
  during backoff waits

Basic usage:

    from resilient_http import do_with_retry, new_client, with_timeout

    client = new_client(with_timeout(10.0))
    request = client.build_request("GET", "https://example.com")
    response = do_with_retry(client, request)

    # Async
    from resilient_http import do_with_retry_async, new_async_client

    async with new_async_client() as client:
        request = client.build_request("GET", "https://example.com")
        response = await do_with_retry_async(client, request)

    # Deadline shared by all attempts
    from resilient_http import context, with_context

    with_context(request, context.timeout_context(5.0))
    response = do_with_retry(client, request)
"""

from . import context
from ._logging import configure_logging, get_logger
from .client import (
    build_async_transport,
    build_config,
    build_limits,
    build_timeout,
    build_transport,
    new_async_client,
    new_client,
)
from .config import (
    DEFAULT_RETRY_POLICY,
    ClientConfig,
    DialerConfig,
    RetryPolicy,
)
from .context import Context, context_of, with_context
from .models import (
    AttemptOutcome,
    Cancelled,
    CancellationError,
    DeadlineExceeded,
    HTTPClientError,
    OutcomeKind,
    RetriesExhaustedError,
    TransportError,
    UnexpectedStatusError,
)
from .options import (
    Option,
    with_dialer,
    with_dialer_keep_alive,
    with_dialer_timeout,
    with_expect_continue_timeout,
    with_follow_redirects,
    with_http2_disabled,
    with_idle_conn_timeout,
    with_max_idle_conns,
    with_max_idle_conns_per_host,
    with_max_redirects,
    with_proxy,
    with_response_header_timeout,
    with_timeout,
    with_tls_handshake_timeout,
    with_transport,
)
from .retry import RetryExecutor, do_with_retry, do_with_retry_async
from .transport import proxy_from_environment

__version__ = "0.1.0"

__all__ = [
    # Builder
    "new_client",
    "new_async_client",
    "build_config",
    "build_timeout",
    "build_limits",
    "build_transport",
    "build_async_transport",
    # Configuration
    "ClientConfig",
    "DialerConfig",
    "RetryPolicy",
    "DEFAULT_RETRY_POLICY",
    # Options
    "Option",
    "with_timeout",
    "with_tls_handshake_timeout",
    "with_response_header_timeout",
    "with_idle_conn_timeout",
    "with_max_idle_conns",
    "with_max_idle_conns_per_host",
    "with_http2_disabled",
    "with_transport",
    "with_expect_continue_timeout",
    "with_proxy",
    "with_dialer_timeout",
    "with_dialer_keep_alive",
    "with_dialer",
    "with_follow_redirects",
    "with_max_redirects",
    "proxy_from_environment",
    # Retry
    "RetryExecutor",
    "do_with_retry",
    "do_with_retry_async",
    # Cancellation
    "context",
    "Context",
    "context_of",
    "with_context",
    # Models
    "AttemptOutcome",
    "OutcomeKind",
    # Exceptions
    "HTTPClientError",
    "TransportError",
    "UnexpectedStatusError",
    "CancellationError",
    "RetriesExhaustedError",
    "Cancelled",
    "DeadlineExceeded",
    # Logging
    "configure_logging",
    "get_logger",
    # Version
    "__version__",
]
