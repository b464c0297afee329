"""Small TCP clients: a byte-counting challenge and a rate-limited sender."""

from __future__ import annotations

import argparse
import signal
import sys
import time
from dataclasses import dataclass

from inpkit.lineio import open_tcp_client, resolve_host, write_all

CHALLENGE_MAXLINE = 5_000_000
BUFFER_SIZE = 200_000
BYTES_PER_SECOND = 960_000
TICK = 0.001
TICKS_PER_SECOND = 1000
DEFAULT_FLOOD_PORT = 10003


@dataclass(frozen=True)
class ThroughputReport:
    """How much was sent, over how long, and when sending ended."""

    finished_at: float
    bytes_sent: int
    elapsed: float

    @property
    def megabits_per_second(self) -> float:
        if self.elapsed <= 0:
            return 0.0
        return 8.0 * (self.bytes_sent / 1_000_000.0) / self.elapsed

    @property
    def megabytes_per_second(self) -> float:
        if self.elapsed <= 0:
            return 0.0
        return (self.bytes_sent / 1_000_000.0) / self.elapsed

    def format(self) -> str:
        """One-line summary with timestamp, byte count and rates."""
        seconds, micros = divmod(int(round(self.finished_at * 1_000_000)), 1_000_000)
        return (
            f"{seconds}.{micros:06d} {self.bytes_sent} bytes sent in "
            f"{self.elapsed:.6f}s ({self.megabits_per_second:.6f} Mbps; "
            f"{self.megabytes_per_second:.6f} MBps)"
        )


def _resolve(host: str) -> str:
    ip = resolve_host(host)
    if ip is None:
        raise OSError(f"cannot resolve host {host!r}")
    return ip


def _show(line: bytes) -> None:
    print(line.decode("utf-8", "replace").rstrip("\r\n"))


def count_challenge(host: str, port: int) -> int:
    """Play the byte-counting challenge and return the count that was answered.

    The server greets with two lines, waits for ``GO``, then sends a begin
    marker, one data line, an end marker and a question; the client answers
    with the length of the data line, newline included.
    """
    ip = _resolve(host)
    with open_tcp_client(port, ip) as sock, sock.makefile("rb") as reader:
        def next_line() -> bytes:
            return reader.readline(CHALLENGE_MAXLINE - 1)

        _show(next_line())
        _show(next_line())
        write_all(sock, b"GO\n")
        _show(next_line())
        count = len(next_line())
        print(count)
        next_line()
        _show(next_line())
        print(f"Bytes of data received: {count}")
        write_all(sock, f"{count}\n".encode())
        _show(next_line())
    return count


def send_at_rate(host: str, port: int, rate: float,
                 duration: float | None = None) -> ThroughputReport:
    """Send zero bytes at ``rate`` times the base rate until stopped.

    Sending stops after *duration* seconds, or on KeyboardInterrupt when no
    duration is given. Only bytes of completed one-second rounds are counted.
    """
    ip = _resolve(host)
    per_second = int(BYTES_PER_SECOND * rate)
    chunk = bytes(BUFFER_SIZE)
    sent = 0
    this_second = 0
    tick = 0
    with open_tcp_client(port, ip) as sock:
        started = time.monotonic()
        deadline = None if duration is None else started + duration
        try:
            while deadline is None or time.monotonic() < deadline:
                tick += 1
                if tick == TICKS_PER_SECOND:
                    tick = 0
                    while this_second < per_second - BUFFER_SIZE:
                        this_second += write_all(sock, chunk)
                    if this_second < per_second:
                        this_second += write_all(sock, chunk[:per_second - this_second])
                    sent += this_second
                    this_second = 0
                elif this_second < per_second - BUFFER_SIZE:
                    this_second += write_all(sock, chunk)
                time.sleep(TICK)
        except KeyboardInterrupt:
            pass
        elapsed = time.monotonic() - started
    return ThroughputReport(finished_at=time.time(), bytes_sent=sent, elapsed=elapsed)


def challenge_main(argv: list[str] | None = None) -> int:
    """Run the challenge client: ``challenge HOST PORT``."""
    parser = argparse.ArgumentParser(prog="challenge", description=challenge_main.__doc__)
    parser.add_argument("host")
    parser.add_argument("port", type=int)
    args = parser.parse_args(argv)
    count_challenge(args.host, args.port)
    return 0


def _interrupt(signum, frame) -> None:
    raise KeyboardInterrupt


def flood_main(argv: list[str] | None = None) -> int:
    """Send at a fixed rate until interrupted: ``flood RATE [--host H] [--port P]``."""
    parser = argparse.ArgumentParser(prog="flood", description=flood_main.__doc__)
    parser.add_argument("rate", type=float)
    parser.add_argument("--host", default="localhost")
    parser.add_argument("--port", type=int, default=DEFAULT_FLOOD_PORT)
    parser.add_argument("--duration", type=float, default=None)
    args = parser.parse_args(argv)
    previous = signal.signal(signal.SIGTERM, _interrupt)
    try:
        report = send_at_rate(args.host, args.port, args.rate, args.duration)
    finally:
        signal.signal(signal.SIGTERM, previous)
    print("\n" + report.format(), file=sys.stderr)
    return 0