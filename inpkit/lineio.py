"""Line-oriented socket helpers and small TCP setup shortcuts."""

from __future__ import annotations

import socket

MAXLINE = 2000
BACKLOG = 1024


def read_line(sock: socket.socket, maxlen: int = MAXLINE) -> bytes:
    """Read one line from *sock*, byte by byte.

    At most ``maxlen - 1`` bytes are read. The newline, when reached, is kept.
    At end of stream whatever was read so far is returned, which may be empty.
    Errors from the socket propagate as :class:`OSError`.
    """
    line = bytearray()
    while len(line) < maxlen - 1:
        byte = sock.recv(1)
        if not byte:
            break
        line += byte
        if byte == b"\n":
            break
    return bytes(line)


def write_all(sock: socket.socket, data: bytes) -> int:
    """Send every byte of *data* and return how many were sent."""
    sock.sendall(data)
    return len(data)


def resolve_host(host: str) -> str | None:
    """Return the first IPv4 address of *host* in dotted form, or None."""
    try:
        return socket.gethostbyname(host)
    except OSError:
        return None


def open_tcp_server(port: int, address: str = "0.0.0.0") -> socket.socket:
    """Create a TCP socket bound to *address*:*port* and listening."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((address, port))
        sock.listen(BACKLOG)
    except OSError:
        sock.close()
        raise
    return sock


def open_tcp_client(port: int, ip: str) -> socket.socket:
    """Create a TCP socket connected to *ip*:*port*."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.connect((ip, port))
    except OSError:
        sock.close()
        raise
    return sock