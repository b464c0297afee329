import socket
import threading

import pytest

from inpkit.ircd.server import IrcServer

REGISTRATION_LINES = 13


@pytest.fixture
def server():
    srv = IrcServer(0, "127.0.0.1")
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    yield srv
    srv.close()
    thread.join(timeout=5)


class _Client:
    def __init__(self, address):
        self.sock = socket.create_connection(address, timeout=5)
        self.reader = self.sock.makefile("rb")

    def send(self, line):
        self.sock.sendall(line.encode() + b"\r\n")

    def read(self):
        return self.reader.readline().decode()

    def read_many(self, count):
        return [self.read() for _ in range(count)]

    def close(self):
        self.reader.close()
        self.sock.close()


def _register(srv, nick):
    client = _Client(srv.server_address)
    client.send(f"NICK {nick}")
    client.send(f"USER {nick} host server :Real Name")
    return client, client.read_many(REGISTRATION_LINES)


def test_registration_sends_welcome(server):
    client, lines = _register(server, "alice")
    try:
        assert lines[0] == ":mircd 001 alice :Welcome to the minimized IRC daemon!\r\n"
        assert lines[-1] == ":mircd 376 alice :End of message of the day\r\n"
        assert all(line.startswith(":mircd ") for line in lines)
    finally:
        client.close()


def test_ping_answers_pong(server):
    client, _ = _register(server, "alice")
    try:
        client.send("PING tok")
        assert client.read() == "PONG tok\r\n"
    finally:
        client.close()


def test_unknown_command(server):
    client, _ = _register(server, "alice")
    try:
        client.send("FOO")
        assert client.read() == ":mircd 421 alice FOO :Unknown command\r\n"
    finally:
        client.close()


def test_quit_closes_connection_and_frees_nick(server):
    client, _ = _register(server, "alice")
    client.send("QUIT")
    assert client.read() == ""
    client.close()

    again, lines = _register(server, "alice")
    try:
        assert lines[0] == ":mircd 001 alice :Welcome to the minimized IRC daemon!\r\n"
        assert lines[1] == ":mircd 251 alice :There are 1 users and 0 invisible on 1 server\r\n"
    finally:
        again.close()


def test_privmsg_relayed_to_channel_members(server):
    alice, _ = _register(server, "alice")
    bob, _ = _register(server, "bob")
    try:
        alice.send("JOIN #c")
        alice_join = alice.read_many(4)
        assert alice_join[0] == ":alice JOIN #c\r\n"

        bob.send("JOIN #c")
        bob_join = bob.read_many(5)
        assert bob_join[0] == ":bob JOIN #c\r\n"
        assert alice.read() == ":bob JOIN #c\r\n"

        alice.send("PRIVMSG #c :hi there")
        assert bob.read() == ":alice PRIVMSG #c :hi there\r\n"
    finally:
        alice.close()
        bob.close()


def test_close_before_serving_releases_port():
    srv = IrcServer(0, "127.0.0.1")
    address = srv.server_address
    srv.close()
    with pytest.raises(ConnectionRefusedError):
        socket.create_connection(address, timeout=2)