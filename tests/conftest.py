"""pytest fixtures shared by the socket-level tests."""
import socket
import threading
import time
from typing import Iterator, List, Tuple

import pytest

from calc_client_server.server.server import CalcServer


def read_message(reader) -> List[str]:
    """Read one serialized response (status line and headers, without the blank line)."""
    lines: List[str] = []
    while True:
        line = reader.readline()
        if not line or line == "\n":
            return lines
        lines.append(line.rstrip("\n"))


@pytest.fixture
def running_server() -> Iterator[Tuple[CalcServer, Tuple[str, int]]]:
    """Start a server on a free loopback port in a background thread."""
    server = CalcServer(host="127.0.0.1", port=0, workers=4, read_timeout=5.0, poll_interval=0.05)
    host, port = server.bind()
    thread = threading.Thread(target=server.start, daemon=True)
    thread.start()
    yield server, (host, port)
    server.stop()
    thread.join(timeout=5)


@pytest.fixture
def connect(running_server):
    """Factory opening client sockets to the running server; all are closed at teardown."""
    _, address = running_server
    opened: List[socket.socket] = []

    def _connect() -> socket.socket:
        sock = socket.create_connection(address, timeout=5)
        opened.append(sock)
        return sock

    yield _connect
    for sock in opened:
        sock.close()


def wait_for(predicate, timeout: float = 5.0) -> bool:
    """Poll ``predicate`` until it returns True or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
