"""Single-threaded IRC daemon built on a selector loop."""

from __future__ import annotations

import argparse
import logging
import selectors
import socket
import sys
import threading

from inpkit.ircd.state import IrcState, Response
from inpkit.lineio import MAXLINE, read_line

log = logging.getLogger(__name__)

POLL_INTERVAL = 0.1
REGISTRATION_TIMEOUT = 10.0


def _decode(data: bytes) -> str:
    return data.decode("utf-8", "replace")


class IrcServer:
    """Accept IRC clients and feed their commands to an :class:`IrcState`."""

    def __init__(self, port: int, address: str = "0.0.0.0",
                 state: IrcState | None = None) -> None:
        self.state = state if state is not None else IrcState()
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            listener.bind((address, port))
            listener.listen(socket.SOMAXCONN)
        except OSError:
            listener.close()
            raise
        self._listener = listener
        self.server_address = listener.getsockname()
        self._connections: dict[int, socket.socket] = {}
        self._selector = selectors.DefaultSelector()
        self._selector.register(listener, selectors.EVENT_READ, None)
        self._shutdown = threading.Event()
        self._lock = threading.Lock()
        self._serving = False
        self._closed = False

    def __enter__(self) -> IrcServer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def serve_forever(self) -> None:
        """Handle connections and commands until :meth:`close` is called."""
        with self._lock:
            if self._closed:
                return
            self._serving = True
        try:
            while not self._shutdown.is_set():
                for key, _ in self._selector.select(timeout=POLL_INTERVAL):
                    if key.data is None:
                        self._accept()
                    else:
                        self._receive(key.data)
        finally:
            with self._lock:
                self._serving = False
            self._close_all()

    def close(self) -> None:
        """Stop serving and close every socket."""
        self._shutdown.set()
        with self._lock:
            serving = self._serving
        if not serving:
            self._close_all()

    # internals

    def _close_all(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        for conn in self._connections.values():
            conn.close()
        self._connections.clear()
        self._selector.close()
        self._listener.close()

    def _accept(self) -> None:
        conn, address = self._listener.accept()
        try:
            uid = self.state.add_user(address)
        except RuntimeError:
            print("too many clients", file=sys.stderr)
            conn.close()
            return
        self._connections[uid] = conn
        self._register(uid, conn)
        print("A client has connected", flush=True)

    def _register(self, uid: int, conn: socket.socket) -> None:
        """Read the NICK and USER lines a new client sends first."""
        conn.settimeout(REGISTRATION_TIMEOUT)
        try:
            for _ in range(2):
                line = read_line(conn, MAXLINE)
                if not line:
                    break
                self._dispatch(self.state.handle(uid, _decode(line)))
        except OSError as exc:
            log.debug("registration of %d interrupted: %s", uid, exc)
        conn.settimeout(None)
        self._selector.register(conn, selectors.EVENT_READ, uid)

    def _receive(self, uid: int) -> None:
        conn = self._connections.get(uid)
        if conn is None:
            return
        try:
            data = conn.recv(MAXLINE)
        except OSError:
            data = b""
        if not data:
            self._disconnect(uid)
            return
        text = _decode(data)
        log.debug("from %d: %r", uid, text)
        response = self.state.handle(uid, text)
        self._dispatch(response)
        if response.close:
            self._disconnect(uid)

    def _dispatch(self, response: Response) -> None:
        for target, text in response.messages:
            conn = self._connections.get(target)
            if conn is None:
                continue
            try:
                conn.sendall(text.encode("utf-8"))
            except OSError as exc:
                log.debug("send to %d failed: %s", target, exc)

    def _disconnect(self, uid: int) -> None:
        print("A client has disconnected", flush=True)
        conn = self._connections.pop(uid, None)
        if conn is not None:
            try:
                self._selector.unregister(conn)
            except (KeyError, ValueError):
                pass
            conn.close()
        self.state.remove_user(uid)


def main(argv: list[str] | None = None) -> int:
    """Run the daemon: ``ircd PORT``."""
    parser = argparse.ArgumentParser(prog="ircd", description=main.__doc__)
    parser.add_argument("port", type=int)
    args = parser.parse_args(argv)
    server = IrcServer(args.port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        server.close()
    return 0