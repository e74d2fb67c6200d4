"""Transport-layer helpers: overall deadline, proxy routing and dialer socket options."""

from .deadline import (
    AsyncDeadlineTransport,
    DeadlineTransport,
    bounded_timeouts,
    restore_timeouts,
    save_timeouts,
)
from .dialer import socket_options
from .proxy import (
    AsyncProxyRoutingTransport,
    ProxyFunc,
    ProxyRoutingTransport,
    proxy_from_environment,
)

__all__ = [
    "AsyncDeadlineTransport",
    "AsyncProxyRoutingTransport",
    "DeadlineTransport",
    "ProxyFunc",
    "ProxyRoutingTransport",
    "bounded_timeouts",
    "proxy_from_environment",
    "restore_timeouts",
    "save_timeouts",
    "socket_options",
]
