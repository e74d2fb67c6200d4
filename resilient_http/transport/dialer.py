"""Socket options applied when the transport dials new connections."""

from __future__ import annotations

import socket
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import DialerConfig

SocketOption = tuple[int, int, int]


def socket_options(dialer: DialerConfig) -> list[SocketOption]:
    """TCP keep-alive options for ``dialer``.

    Enables ``SO_KEEPALIVE`` and, where the platform exposes them, sets the
    idle time and probe interval to ``dialer.keep_alive`` (whole seconds,
    at least 1).

    Args:
        dialer: Dialer settings.

    Returns:
        Options in the ``(level, option, value)`` form httpx accepts.
    """
    interval = max(1, int(dialer.keep_alive))
    options: list[SocketOption] = [(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)]

    # Linux names the idle time TCP_KEEPIDLE, macOS names it TCP_KEEPALIVE.
    idle = getattr(socket, "TCP_KEEPIDLE", None) or getattr(socket, "TCP_KEEPALIVE", None)
    if idle is not None:
        options.append((socket.IPPROTO_TCP, idle, interval))
    if hasattr(socket, "TCP_KEEPINTVL"):
        options.append((socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, interval))
    return options
