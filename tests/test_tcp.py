import socket
import struct

import pytest

from lrcd.config import RelayConfig
from lrcd.eventlog import MemoryEventLog
from lrcd.service import RelayService


class _Client:
    def __init__(self, address) -> None:
        self.sock = socket.create_connection(address, timeout=5)
        self.reader = self.sock.makefile("r", encoding="utf-8", newline="\n")

    def read_line(self) -> str:
        return self.reader.readline().rstrip("\n")

    def send(self, data: str) -> None:
        self.sock.sendall(data.encode("utf-8"))

    def send_bytes(self, data: bytes) -> None:
        self.sock.sendall(data)

    def reset(self) -> None:
        # Zero linger turns close() into a TCP RST.
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
        self.close()

    def close(self) -> None:
        self.reader.close()
        self.sock.close()


@pytest.fixture
def running():
    svc = RelayService(
        RelayConfig(host="127.0.0.1", port=0, operator_password="pw", chat_log_path=None, server_log_path=None),
        chat_log=MemoryEventLog(),
        server_log=MemoryEventLog(),
    )
    svc.start()
    try:
        yield svc
    finally:
        svc.stop()


def test_scenario_over_tcp(running) -> None:
    a = _Client(running.address)
    assert a.read_line() == "Welcome, Guest1! You are connected to the chat server."
    b = _Client(running.address)
    assert b.read_line() == "Welcome, Guest2! You are connected to the chat server."
    assert a.read_line() == "Guest2 has joined the chat."

    # Two logical lines in one write, one with CRLF.
    a.send("hello\r\n\n  \nsecond\n")
    assert b.read_line() == "Guest1: hello"
    assert b.read_line() == "Guest1: second"

    b.send("/w Guest1 hi\n")
    assert a.read_line() == "(whisper) Guest2: hi"
    assert b.read_line() == "(whisper to Guest1) Guest2: hi"

    a.close()
    assert b.read_line() == "Guest1 has left the chat."
    b.send("/clientlist\n")
    assert b.read_line() == "Connected clients (1): Guest2"
    b.close()


def test_kick_closes_socket(running) -> None:
    op = _Client(running.address)
    op.read_line()
    target = _Client(running.address)
    target.read_line()
    op.read_line()

    op.send("/kick Guest2 pw\n")
    assert target.read_line() == "You have been kicked from the chat by an administrator."
    assert target.read_line() == ""
    assert op.read_line() == "Guest2 has left the chat."
    op.close()
    target.close()


def test_shutdown_notice(running) -> None:
    a = _Client(running.address)
    a.read_line()
    running.stop()
    assert a.read_line() == "Server is shutting down. Goodbye!"
    assert a.read_line() == ""
    a.close()


def _pair(running):
    a = _Client(running.address)
    a.read_line()
    b = _Client(running.address)
    b.read_line()
    assert a.read_line() == "Guest2 has joined the chat."
    return a, b


def test_invalid_utf8_is_replaced(running) -> None:
    a, b = _pair(running)
    a.send_bytes(b"bad \xff\xfe bytes\n")
    assert b.read_line() == "Guest1: bad �� bytes"
    a.close()
    b.close()


def test_partial_line_at_eof_is_relayed(running) -> None:
    a, b = _pair(running)
    a.send("no newline here")
    a.sock.shutdown(socket.SHUT_WR)
    assert b.read_line() == "Guest1: no newline here"
    assert b.read_line() == "Guest1 has left the chat."
    assert running.chat_log.events[-1] == "Guest1 ended"
    a.close()
    b.close()


def test_peer_reset_counts_as_disconnect(running) -> None:
    a, b = _pair(running)
    a.reset()
    assert b.read_line() == "Guest1 has left the chat."

    events = running.chat_log.events
    assert events[-2].startswith("Guest1 error: ")
    assert events[-1] == "Guest1 disconnected"
    assert running.names.names() == ["Guest2"]
    b.close()
