import ipaddress
import socket
import struct
import threading

import pytest

from inpkit.dnsd.server import DnsServer, main
from inpkit.dnsd.wire import HEADER_SIZE, encode_name
from inpkit.dnsd.zone import RecordClass, RecordType


def make_query(name, qtype, ident=0x4242):
    header = struct.pack("!6H", ident, 0x0100, 1, 0, 0, 0)
    return header + encode_name(name) + struct.pack("!HH", qtype, RecordClass.IN)


@pytest.fixture
def config(tmp_path):
    zone_file = tmp_path / "example.org.zone"
    zone_file.write_text(
        "example.org.\n"
        "@,3600,IN,SOA,ns.example.org. admin.example.org. 2021 3600 300 86400 60\n"
        "@,3600,IN,NS,ns.example.org.\n"
        "ns,3600,IN,A,140.113.1.2\n"
        "www,3600,IN,A,140.113.1.4\n"
    )
    path = tmp_path / "config.txt"
    path.write_text("127.0.0.1\nexample.org.,example.org.zone\n")
    return path


@pytest.fixture
def upstream():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(5)
    yield sock
    sock.close()


def test_handle_local_answer(config, upstream):
    with DnsServer(config, 0, "127.0.0.1", forward_port=upstream.getsockname()[1]) as server:
        response = server.handle(make_query("www.example.org.", RecordType.A))
    ident, flags, _, ancount, nscount, arcount = struct.unpack("!6H", response[:HEADER_SIZE])
    assert (ident, flags) == (0x4242, 0x8580)
    assert (ancount, nscount, arcount) == (1, 1, 0)
    assert ipaddress.IPv4Address("140.113.1.4").packed in response


def test_handle_forwards_unknown_names(config, upstream):
    query = make_query("www.other.net.", RecordType.A)

    def reply_once():
        data, peer = upstream.recvfrom(1024)
        upstream.sendto(b"reply:" + data, peer)

    thread = threading.Thread(target=reply_once)
    thread.start()
    with DnsServer(config, 0, "127.0.0.1", forward_port=upstream.getsockname()[1]) as server:
        assert server.forward_ip == "127.0.0.1"
        response = server.handle(query)
    thread.join(5)
    assert response == b"reply:" + query


def test_handle_forward_timeout(config, upstream):
    with DnsServer(config, 0, "127.0.0.1", forward_port=upstream.getsockname()[1],
                   timeout=0.2) as server:
        assert server.handle(make_query("www.other.net.", RecordType.A)) is None


def test_forward_timeout_raises(config, upstream):
    with DnsServer(config, 0, "127.0.0.1", forward_port=upstream.getsockname()[1],
                   timeout=0.2) as server:
        with pytest.raises(OSError):
            server.forward(make_query("www.other.net.", RecordType.A))


def test_handle_malformed_packet(config, upstream):
    with DnsServer(config, 0, "127.0.0.1", forward_port=upstream.getsockname()[1]) as server:
        assert server.handle(b"\x01") is None


def test_serve_forever_round_trip(config, upstream):
    server = DnsServer(config, 0, "127.0.0.1", forward_port=upstream.getsockname()[1])
    thread = threading.Thread(target=server.serve_forever)
    thread.start()
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as client:
            client.settimeout(5)
            query = make_query("nope.example.org.", RecordType.A)
            client.sendto(query, server.server_address)
            response, _ = client.recvfrom(1024)
    finally:
        server.close()
        thread.join(5)
    assert not thread.is_alive()
    assert response[HEADER_SIZE:len(query)] == query[HEADER_SIZE:]
    assert struct.unpack("!3H", response[6:12]) == (0, 1, 0)


def test_main_requires_port():
    with pytest.raises(SystemExit):
        main([])