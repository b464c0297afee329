"""UDP DNS server answering from local zones and forwarding the rest."""

from __future__ import annotations

import argparse
import logging
import socket
import threading
from pathlib import Path

from inpkit.dnsd.resolver import Resolver
from inpkit.dnsd.wire import parse_question
from inpkit.dnsd.zone import RecordClass, RecordType, load_config

log = logging.getLogger(__name__)

BUFFER_SIZE = 1024
DNS_PORT = 53
POLL_INTERVAL = 0.1
FORWARD_TIMEOUT = 5.0


def _name_of(enum_type, value: int) -> str:
    try:
        return enum_type(value).name
    except ValueError:
        return ""


class DnsServer:
    """Serve DNS queries over UDP for the zones named in a configuration file."""

    def __init__(self, config_path: str | Path, port: int, address: str = "0.0.0.0",
                 forward_port: int = DNS_PORT,
                 timeout: float = FORWARD_TIMEOUT) -> None:
        self.forward_ip, zones = load_config(config_path)
        self.forward_port = forward_port
        self.timeout = timeout
        self.resolver = Resolver(zones)
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        try:
            sock.bind((address, port))
        except OSError:
            sock.close()
            raise
        sock.settimeout(POLL_INTERVAL)
        self._sock = sock
        self.server_address = sock.getsockname()
        self._shutdown = threading.Event()
        print("Server start...", flush=True)

    def __enter__(self) -> DnsServer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def forward(self, packet: bytes) -> bytes:
        """Send *packet* to the forwarding server and return its reply."""
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as upstream:
            upstream.settimeout(self.timeout)
            upstream.sendto(packet, (self.forward_ip, self.forward_port))
            reply, _ = upstream.recvfrom(BUFFER_SIZE)
        return reply

    def handle(self, packet: bytes) -> bytes | None:
        """Return the response to *packet*, or None if there is nothing to send."""
        try:
            question = parse_question(packet)
            response = self.resolver.resolve(packet)
        except ValueError as exc:
            log.warning("dropping malformed query: %s", exc)
            return None
        print(
            f"query received, the query name is {question.name}, "
            f"the type is {_name_of(RecordType, question.qtype)}, "
            f"and the class is {_name_of(RecordClass, question.qclass)}",
            flush=True,
        )
        if response is not None:
            return response
        print("query name not found in zone, send query to foreign dns at: "
              f"{self.forward_ip}", flush=True)
        try:
            return self.forward(packet)
        except OSError as exc:
            log.warning("forwarding to %s failed: %s", self.forward_ip, exc)
            return None

    def serve_forever(self) -> None:
        """Answer queries until :meth:`close` is called."""
        while not self._shutdown.is_set():
            try:
                packet, client = self._sock.recvfrom(BUFFER_SIZE)
            except socket.timeout:
                continue
            except OSError:
                if self._shutdown.is_set():
                    return
                raise
            response = self.handle(packet)
            if response is None:
                continue
            try:
                self._sock.sendto(response, client)
            except OSError as exc:
                log.warning("reply to %s failed: %s", client, exc)

    def close(self) -> None:
        """Stop serving and release the socket."""
        self._shutdown.set()
        self._sock.close()


def main(argv: list[str] | None = None) -> int:
    """Run the server: ``dnsd PORT [--config FILE] [--summary]``."""
    parser = argparse.ArgumentParser(prog="dnsd", description=main.__doc__)
    parser.add_argument("port", type=int)
    parser.add_argument("--config", default="config.txt")
    parser.add_argument("--summary", action="store_true",
                        help="print the loaded zones before serving")
    args = parser.parse_args(argv)
    server = DnsServer(args.config, args.port)
    if args.summary:
        for zone in server.resolver.zones.values():
            print(zone.describe(), end="")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.close()
    return 0