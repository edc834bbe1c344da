from __future__ import annotations

import codecs
import logging
import queue
import socket
import threading
from collections.abc import Iterator
from typing import Protocol

from .constants import LINE_TERMINATOR, RECV_CHUNK_BYTES
from .util import split_lines

# Marks the end of a connection's outbound queue.
_CLOSE = object()


class ConnectionClosed(OSError):
    """Raised when writing to a connection that is already closing."""


class LineConnection(Protocol):
    """What the relay needs from a client connection."""

    peer: str

    def send_line(self, text: str) -> None: ...

    def close(self) -> None: ...


class TcpConnection:
    """
    A line-oriented TCP client connection.

    Outbound lines go through an unbounded queue drained by a writer thread, so
    ``send_line`` never blocks the caller. A slow reader lets its queue grow;
    there is no backpressure.

    ``close`` is graceful: lines queued before it are flushed, then the socket
    is shut down, which also ends :meth:`read_lines` on the reader thread.
    """

    def __init__(self, sock: socket.socket, address: tuple | None = None) -> None:
        self.sock = sock
        self.log = logging.getLogger("lrcd.connection")
        if address is None:
            try:
                address = sock.getpeername()
            except OSError:
                address = None
        self.peer = f"{address[0]}:{address[1]}" if address else "-"

        self._outbox: queue.Queue[object] = queue.Queue()
        self._closing = threading.Event()
        self._closed = threading.Event()
        self._writer = threading.Thread(
            target=self._write_loop, name=f"lrcd-writer-{self.peer}", daemon=True
        )
        self._writer.start()

    def send_line(self, text: str) -> None:
        if self._closing.is_set():
            raise ConnectionClosed(f"connection {self.peer} is closing")
        self._outbox.put(text + LINE_TERMINATOR)

    def close(self) -> None:
        if self._closing.is_set():
            return
        self._closing.set()
        self._outbox.put(_CLOSE)

    def wait_closed(self, timeout: float | None = None) -> bool:
        return self._closed.wait(timeout)

    def read_lines(self) -> Iterator[str]:
        """Yield decoded inbound lines until EOF. Socket errors propagate."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        buffer = ""
        while True:
            try:
                chunk = self.sock.recv(RECV_CHUNK_BYTES)
            except OSError:
                if self._closing.is_set():
                    # Shut down locally (kick or server stop).
                    return
                raise
            if not chunk:
                break

            buffer += decoder.decode(chunk)
            lines, buffer = split_lines(buffer)
            yield from lines

        tail = (buffer + decoder.decode(b"", final=True)).rstrip("\r")
        if tail:
            yield tail

    def _write_loop(self) -> None:
        try:
            while True:
                item = self._outbox.get()
                if item is _CLOSE:
                    break
                try:
                    self.sock.sendall(str(item).encode("utf-8"))
                except OSError as e:
                    self.log.debug("Write failed peer=%s err=%s", self.peer, e)
                    self._closing.set()
                    break
        finally:
            self._shutdown_socket()
            self._closed.set()

    def _shutdown_socket(self) -> None:
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        try:
            self.sock.close()
        except OSError:
            pass
