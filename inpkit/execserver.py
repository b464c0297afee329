"""TCP server that runs a command for each client, wired to its socket."""

from __future__ import annotations

import argparse
import socket
import subprocess
import sys
import threading
from collections.abc import Sequence

from inpkit.lineio import open_tcp_server


def handle_connection(
    conn: socket.socket, address: tuple, command: Sequence[str]
) -> subprocess.Popen:
    """Start *command* with its standard streams attached to *conn*."""
    print(f"New connection from {address[0]}:{address[1]}", flush=True)
    return subprocess.Popen(list(command), stdin=conn, stdout=conn, stderr=conn)


def _reap(process: subprocess.Popen) -> None:
    process.wait()
    print(f"child {process.pid} terminated", flush=True)


def serve(port: int, command: Sequence[str]) -> None:
    """Accept clients on *port* forever, running *command* for each."""
    with open_tcp_server(port) as listener:
        while True:
            conn, address = listener.accept()
            with conn:
                try:
                    process = handle_connection(conn, address, command)
                except OSError as exc:
                    print(f"{command[0]}: {exc.strerror or exc}", file=sys.stderr)
                    continue
            threading.Thread(target=_reap, args=(process,), daemon=True).start()


def main(argv: list[str] | None = None) -> int:
    """Run the server: ``execserver PORT COMMAND [ARGS...]``."""
    parser = argparse.ArgumentParser(prog="execserver", description=main.__doc__)
    parser.add_argument("port", type=int)
    parser.add_argument("command", nargs=argparse.REMAINDER)
    args = parser.parse_args(argv)
    if not args.command:
        parser.error("a command to run is required")
    try:
        serve(args.port, args.command)
    except KeyboardInterrupt:
        pass
    return 0