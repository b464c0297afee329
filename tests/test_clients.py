import socket
import threading

import pytest

from inpkit import clients
from inpkit.clients import (
    ThroughputReport,
    challenge_main,
    count_challenge,
    send_at_rate,
)

DATA_LINE = b"abcdefghijklmnop\n"


def _challenge_server(received):
    listener = socket.create_server(("127.0.0.1", 0))
    port = listener.getsockname()[1]

    def run():
        with listener:
            conn, _ = listener.accept()
            with conn, conn.makefile("rb") as reader:
                conn.sendall(b"==== Welcome ====\n")
                conn.sendall(b"Send GO when ready\n")
                received.append(reader.readline())
                conn.sendall(b"==== BEGIN DATA ====\n")
                conn.sendall(DATA_LINE)
                conn.sendall(b"==== END DATA ====\n")
                conn.sendall(b"How many bytes?\n")
                received.append(reader.readline())
                conn.sendall(b"OK\n")

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return port, thread


def _sink_server(totals):
    listener = socket.create_server(("127.0.0.1", 0))
    port = listener.getsockname()[1]

    def run():
        with listener:
            conn, _ = listener.accept()
            total = 0
            with conn:
                while True:
                    data = conn.recv(65536)
                    if not data:
                        break
                    total += len(data)
            totals.append(total)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return port, thread


def test_count_challenge_answers_data_length():
    received = []
    port, thread = _challenge_server(received)
    count = count_challenge("127.0.0.1", port)
    thread.join(timeout=5)
    assert count == len(DATA_LINE)
    assert received == [b"GO\n", f"{len(DATA_LINE)}\n".encode()]


def test_challenge_main_prints_count(capsys):
    received = []
    port, thread = _challenge_server(received)
    assert challenge_main(["127.0.0.1", str(port)]) == 0
    thread.join(timeout=5)
    out = capsys.readouterr().out
    assert f"Bytes of data received: {len(DATA_LINE)}" in out
    assert "OK" in out.splitlines()


def test_count_challenge_refused():
    probe = socket.create_server(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    with pytest.raises(OSError):
        count_challenge("127.0.0.1", port)


def test_send_at_rate_sends_and_reports():
    totals = []
    port, thread = _sink_server(totals)
    report = send_at_rate("127.0.0.1", port, 0.5, duration=0.3)
    thread.join(timeout=5)
    assert totals[0] >= clients.BUFFER_SIZE
    assert totals[0] >= report.bytes_sent
    assert report.elapsed >= 0.3


def test_report_format():
    report = ThroughputReport(finished_at=12.25, bytes_sent=2_000_000, elapsed=2.0)
    assert report.format() == (
        "12.250000 2000000 bytes sent in 2.000000s (8.000000 Mbps; 1.000000 MBps)"
    )


def test_report_zero_elapsed_has_zero_rates():
    report = ThroughputReport(finished_at=3.0, bytes_sent=500, elapsed=0.0)
    assert report.megabits_per_second == 0.0
    assert report.megabytes_per_second == 0.0
    assert report.format().endswith("(0.000000 Mbps; 0.000000 MBps)")


def test_report_rates_are_consistent():
    report = ThroughputReport(finished_at=1.0, bytes_sent=3_000_000, elapsed=1.5)
    assert report.megabits_per_second == pytest.approx(8 * report.megabytes_per_second)