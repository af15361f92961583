"""Test class CalcServer against real loopback connections."""
import socket
import threading
from typing import Dict, List

from pydantic import ValidationError
import pytest

from calc_client_server.common.response import Response
from calc_client_server.server.server import CalcServer, default_workers

from conftest import read_message, wait_for


def ask(sock: socket.socket, reader, line: str) -> Response:
    sock.sendall(f"{line}\n".encode("utf-8"))
    return Response.parse(read_message(reader))


def test_server_defaults() -> None:
    """Defaults: all interfaces, port 9999, 20s idle timeout, at least two workers."""
    server = CalcServer()
    assert str(server.host) == "0.0.0.0"
    assert server.port == 9999
    assert server.read_timeout == 20.0
    assert server.workers == default_workers() >= 2
    assert server.address is None


@pytest.mark.parametrize(
    "options",
    [
        {"host": "not-an-ip"},
        {"port": 70000},
        {"port": -1},
        {"read_timeout": 0},
        {"workers": 0},
        {"workers": 1},
    ],
)
def test_server_invalid_config(options: Dict) -> None:
    """Invalid settings raise a ValidationError."""
    with pytest.raises(ValidationError):
        CalcServer(**options)


def test_bind_reuses_address() -> None:
    """The listening socket has SO_REUSEADDR set and reports its real port."""
    server = CalcServer(host="127.0.0.1", port=0)
    host, port = server.bind()
    try:
        assert host == "127.0.0.1"
        assert port > 0
        assert server._sock.getsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR) != 0
    finally:
        server._sock.close()


@pytest.mark.parametrize(
    "line,status,headers",
    [
        ("ADD 10 20", "CALC/1.0 200 OK", ["Type: ANSWER", "Value: 30"]),
        ("10 / 0", "CALC/1.0 422 InvalidOperation", ["Type: ERROR", "Error-Code: DIV_BY_ZERO"]),
        ("7 * 0.5", "CALC/1.0 200 OK", ["Value: 3.5"]),
        ("foo 1 2", "CALC/1.0 400 BadRequest", ["Error-Code: INVALID_NUMBER"]),
        ("1 2 3 4", "CALC/1.0 400 BadRequest", ["Error-Code: TOO_MANY_ARGS"]),
        ("ADD 1", "CALC/1.0 400 BadRequest", ["Error-Code: BAD_FORMAT"]),
    ],
)
def test_scenarios(connect, line: str, status: str, headers: List[str]) -> None:
    """Wire-level responses for the documented request scenarios."""
    sock = connect()
    reader = sock.makefile("r", encoding="utf-8", newline="\n")
    sock.sendall(f"{line}\n".encode())
    message = read_message(reader)

    assert message[0] == status
    assert message[1].startswith("Id: ")
    for header in headers:
        assert header in message


def test_connection_stays_open_after_errors(connect) -> None:
    """Errors are answered in-band and the next request on the same connection works."""
    sock = connect()
    reader = sock.makefile("r", encoding="utf-8", newline="\n")
    assert ask(sock, reader, "10 / 0").error_code == "DIV_BY_ZERO"
    assert ask(sock, reader, "garbage").error_code == "BAD_FORMAT"
    assert ask(sock, reader, "SUB 1 3").value == "-2"


@pytest.mark.parametrize("bye", ["bye", "BYE", "ByE"])
def test_bye_closes_without_response(connect, bye: str) -> None:
    """bye yields zero bytes and the server closes its end."""
    sock = connect()
    sock.sendall(f"{bye}\n".encode())
    assert sock.recv(1024) == b""


def test_idle_connection_is_dropped() -> None:
    """A connection that stays silent past the read timeout is closed by the server."""
    server = CalcServer(host="127.0.0.1", port=0, workers=2, read_timeout=0.2, poll_interval=0.05)
    address = server.bind()
    thread = threading.Thread(target=server.start, daemon=True)
    thread.start()
    try:
        with socket.create_connection(address, timeout=5) as sock:
            assert sock.recv(1024) == b""
    finally:
        server.stop()
        thread.join(timeout=5)


def test_more_connections_than_workers(connect) -> None:
    """Connections beyond the pool size are queued and served once a worker frees up."""
    # The fixture server has 4 workers; hold all of them with idle connections
    held = [connect() for _ in range(4)]
    for sock in held:
        sock.sendall(b"ADD 0 0\n")
        sock.recv(4096)

    waiting = connect()
    waiting.sendall(b"MUL 6 7\n")
    held[0].sendall(b"bye\n")

    reader = waiting.makefile("r", encoding="utf-8", newline="\n")
    assert Response.parse(read_message(reader)).value == "42"


def test_concurrent_connections_do_not_cross_talk(connect) -> None:
    """Two clients sending 100 sequential requests each get 100 ordered answers."""
    results: Dict[int, List[Response]] = {}
    errors: List[BaseException] = []

    def client(offset: int) -> None:
        try:
            sock = connect()
            reader = sock.makefile("r", encoding="utf-8", newline="\n")
            results[offset] = [ask(sock, reader, f"{offset} + {i}") for i in range(100)]
            sock.sendall(b"bye\n")
        except BaseException as exc:
            errors.append(exc)

    threads = [threading.Thread(target=client, args=(offset,)) for offset in (1000, 2000)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert not errors
    for offset in (1000, 2000):
        responses = results[offset]
        assert len(responses) == 100
        assert [r.value for r in responses] == [str(offset + i) for i in range(100)]
        assert all(r.status == 200 for r in responses)
    all_ids = [r.id for rs in results.values() for r in rs]
    assert len(set(all_ids)) == 200


def test_stop_ends_accept_loop() -> None:
    """stop makes start return and closes the listening socket."""
    server = CalcServer(host="127.0.0.1", port=0, workers=2, poll_interval=0.05)
    server.bind()
    thread = threading.Thread(target=server.start, daemon=True)
    thread.start()
    assert wait_for(lambda: server._pool is not None)

    server.stop()
    thread.join(timeout=5)
    assert not thread.is_alive()
    assert server.address is None
