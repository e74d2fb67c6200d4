"""Shared test fixtures and configuration."""

import os
import socket
import threading
from typing import Callable, Generator

import httpx
import pytest
import structlog

from resilient_http import RetryPolicy, new_client, with_transport


class Endpoint:
    """Scripted mock endpoint that counts the requests it receives.

    Each script item is either a status code or an httpx exception class to
    raise. Once the script runs out, ``default`` is used for every request.
    """

    def __init__(self, *script: int | type[Exception], default: int | type[Exception] = 200):
        self._script = list(script)
        self._default = default
        self.calls = 0
        self.responses: list[httpx.Response] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        item = self._script.pop(0) if self._script else self._default
        if isinstance(item, type) and issubclass(item, Exception):
            raise item(f"simulated {item.__name__}", request=request)
        response = httpx.Response(item, content=b"payload")
        self.responses.append(response)
        return response


# ============== Policy Fixtures ==============

@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Five attempts with millisecond-scale delays."""
    return RetryPolicy(max_attempts=5, base_delay=0.01, max_delay=0.03)


@pytest.fixture
def slow_policy() -> RetryPolicy:
    """Policy whose delays are far longer than any test should wait."""
    return RetryPolicy(max_attempts=5, base_delay=5.0, max_delay=30.0)


# ============== Client Fixtures ==============

@pytest.fixture
def make_client() -> Generator[Callable[..., httpx.Client], None, None]:
    """Factory for sync clients backed by a mock endpoint."""
    clients: list[httpx.Client] = []

    def factory(endpoint: Callable[[httpx.Request], httpx.Response], *options) -> httpx.Client:
        client = new_client(with_transport(httpx.MockTransport(endpoint)), *options)
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.close()


# ============== Server Fixtures ==============

@pytest.fixture
def slow_body_server() -> Generator[str, None, None]:
    """Local HTTP server that sends a 10-byte body one byte every 0.3s."""
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    listener.bind(("127.0.0.1", 0))
    listener.listen()
    listener.settimeout(0.2)
    stop = threading.Event()

    def drip(conn: socket.socket) -> None:
        conn.recv(65536)
        conn.sendall(b"HTTP/1.1 200 OK\r\nContent-Length: 10\r\nConnection: close\r\n\r\n")
        for _ in range(10):
            if stop.wait(0.3):
                return
            conn.sendall(b"x")

    def serve() -> None:
        while not stop.is_set():
            try:
                conn, _ = listener.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            with conn:
                try:
                    drip(conn)
                except OSError:
                    pass  # client hung up

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    host, port = listener.getsockname()

    yield f"http://{host}:{port}/"

    stop.set()
    thread.join(timeout=5)
    listener.close()


# ============== Environment Fixtures ==============

@pytest.fixture
def clean_proxy_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every *_proxy variable from the environment."""
    for name in list(os.environ):
        if name.lower().endswith("_proxy"):
            monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def reset_structlog() -> Generator[None, None, None]:
    """Restore structlog defaults after a test reconfigures it."""
    yield
    structlog.reset_defaults()
