import pytest

from lrcd.config import RelayConfig
from lrcd.connection import ConnectionClosed
from lrcd.eventlog import MemoryEventLog
from lrcd.service import RelayService

OPERATOR_PASSWORD = "op-secret"


class FakeConnection:
    """Collects lines the relay sends instead of writing to a socket."""

    def __init__(self, peer: str = "test") -> None:
        self.peer = peer
        self.lines: list[str] = []
        self.closed = False

    def send_line(self, text: str) -> None:
        if self.closed:
            raise ConnectionClosed("closed")
        self.lines.append(text)

    def close(self) -> None:
        self.closed = True

    def take(self) -> list[str]:
        out, self.lines = self.lines, []
        return out


@pytest.fixture
def service() -> RelayService:
    cfg = RelayConfig(
        operator_password=OPERATOR_PASSWORD,
        chat_log_path=None,
        server_log_path=None,
    )
    return RelayService(cfg, chat_log=MemoryEventLog(), server_log=MemoryEventLog())


@pytest.fixture
def connect(service):
    def _connect():
        conn = FakeConnection()
        session = service.on_connect(conn)
        return session, conn

    return _connect
