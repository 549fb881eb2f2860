"""Shared test fixtures."""

from __future__ import annotations

import socket
import threading
import time
from collections.abc import Callable, Generator

import httpx
import pytest

from svcwatch.services.registry import ServiceSpec


def make_spec(name: str = "svc", **overrides) -> ServiceSpec:
    fields = {
        "url": f"http://{name}.test/health",
        "method": "GET",
        "check_interval": 60.0,
        "timeout": 1.0,
        "expected_status": 200,
    }
    fields.update(overrides)
    return ServiceSpec(name=name, **fields)


def wait_for(predicate: Callable[[], bool], timeout: float = 3.0, interval: float = 0.01) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def mock_client() -> Generator[Callable[..., httpx.Client], None, None]:
    """Factory for clients whose responses come from a handler function."""
    clients: list[httpx.Client] = []

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _make
    for c in clients:
        c.close()


@pytest.fixture
def silent_server() -> Generator[str, None, None]:
    """A TCP server that accepts connections and never answers."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    server.bind(("127.0.0.1", 0))
    server.listen(16)
    server.settimeout(0.1)
    port = server.getsockname()[1]
    held: list[socket.socket] = []
    done = threading.Event()

    def _accept() -> None:
        while not done.is_set():
            try:
                conn, _ = server.accept()
            except (socket.timeout, OSError):
                continue
            held.append(conn)

    thread = threading.Thread(target=_accept, daemon=True)
    thread.start()

    yield f"http://127.0.0.1:{port}/health"

    done.set()
    thread.join(timeout=2)
    for conn in held:
        conn.close()
    server.close()


@pytest.fixture
def trickle_server() -> Generator[str, None, None]:
    """A TCP server that sends its response headers one byte every 0.1s."""
    payload = b"HTTP/1.1 200 OK\r\nContent-Length: 0\r\nX-Padding: " + b"x" * 200 + b"\r\n\r\n"
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    server.bind(("127.0.0.1", 0))
    server.listen(16)
    server.settimeout(0.1)
    port = server.getsockname()[1]
    done = threading.Event()
    workers: list[threading.Thread] = []

    def _trickle(conn: socket.socket) -> None:
        with conn:
            for i in range(len(payload)):
                if done.wait(0.1):
                    return
                try:
                    conn.sendall(payload[i:i + 1])
                except OSError:
                    return

    def _accept() -> None:
        while not done.is_set():
            try:
                conn, _ = server.accept()
            except (socket.timeout, OSError):
                continue
            worker = threading.Thread(target=_trickle, args=(conn,), daemon=True)
            workers.append(worker)
            worker.start()

    thread = threading.Thread(target=_accept, daemon=True)
    thread.start()

    yield f"http://127.0.0.1:{port}/health"

    done.set()
    thread.join(timeout=2)
    for worker in workers:
        worker.join(timeout=2)
    server.close()
