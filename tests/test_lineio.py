import socket

import pytest

from inpkit.lineio import (
    open_tcp_client,
    open_tcp_server,
    read_line,
    resolve_host,
    write_all,
)


@pytest.fixture
def pair():
    left, right = socket.socketpair()
    yield left, right
    left.close()
    right.close()


def test_read_line_keeps_newline(pair):
    writer, reader = pair
    writer.sendall(b"abc\ndef\n")
    assert read_line(reader) == b"abc\n"
    assert read_line(reader) == b"def\n"


def test_read_line_returns_partial_at_eof(pair):
    writer, reader = pair
    writer.sendall(b"tail")
    writer.shutdown(socket.SHUT_WR)
    assert read_line(reader) == b"tail"
    assert read_line(reader) == b""


def test_read_line_respects_maxlen(pair):
    writer, reader = pair
    writer.sendall(b"abcdef\n")
    first = read_line(reader, 3)
    assert len(first) == 2
    assert first + read_line(reader) == b"abcdef\n"


def test_write_all_reports_length(pair):
    writer, reader = pair
    payload = b"x" * 5000 + b"\n"
    assert write_all(writer, payload) == len(payload)
    received = b""
    while len(received) < len(payload):
        received += reader.recv(65536)
    assert received == payload


def test_resolve_host_numeric():
    assert resolve_host("127.0.0.1") == "127.0.0.1"


def test_resolve_host_unknown():
    assert resolve_host("no-such-host.invalid") is None


def test_tcp_roundtrip():
    with open_tcp_server(0, "127.0.0.1") as server:
        port = server.getsockname()[1]
        with open_tcp_client(port, "127.0.0.1") as client:
            conn, _ = server.accept()
            with conn:
                assert write_all(client, b"ping\n") == 5
                assert read_line(conn) == b"ping\n"
                write_all(conn, b"pong\n")
                assert read_line(client) == b"pong\n"


def test_client_refused_on_closed_port():
    server = open_tcp_server(0, "127.0.0.1")
    port = server.getsockname()[1]
    server.close()
    with pytest.raises(ConnectionRefusedError):
        open_tcp_client(port, "127.0.0.1")