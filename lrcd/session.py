from __future__ import annotations

import enum
import itertools
import logging
from dataclasses import dataclass
from typing import Any

from .connection import LineConnection
from .names import NameDirectory


class SessionState(enum.Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(eq=False)
class Session:
    """One live client connection and its current display name."""

    session_id: int
    connection: LineConnection
    name: str
    state: SessionState = SessionState.CONNECTING

    @property
    def active(self) -> bool:
        return self.state is SessionState.ACTIVE


class SessionManager:
    """
    Owns the set of live sessions.

    This class is responsible for:
    - Session creation with a freshly allocated guest name
    - Keeping the name directory consistent with the live set
    - Session removal on disconnect

    It never performs I/O. All methods must be called with the service state
    lock held.
    """

    def __init__(self, names: NameDirectory) -> None:
        self.names = names
        self.log = logging.getLogger("lrcd.session")
        self.sessions: dict[int, Session] = {}
        self._ids = itertools.count(1)

    def register(self, connection: LineConnection) -> Session:
        name = self.names.allocate_guest_name()
        session = Session(session_id=next(self._ids), connection=connection, name=name)
        self.names.claim(name, session)
        self.sessions[session.session_id] = session
        session.state = SessionState.ACTIVE

        self.log.info(
            "Session created id=%s name=%s peer=%s",
            session.session_id,
            name,
            getattr(connection, "peer", "-"),
        )
        return session

    def deregister(self, session: Session) -> bool:
        """Remove ``session`` from the live set. The caller releases its name first."""
        removed = self.sessions.pop(session.session_id, None)
        if removed is None:
            return False
        self.log.info("Session removed id=%s name=%s", session.session_id, session.name)
        return True

    def rename(self, session: Session, new_name: str) -> str:
        """Rename ``session``; returns the old name. Raises RenameError on refusal."""
        old = session.name
        self.names.rename(old, new_name)
        session.name = new_name
        return old

    def all_sessions(self) -> list[Session]:
        """Live sessions in connect order."""
        return list(self.sessions.values())

    def clear_all(self) -> list[Session]:
        """Forget every session and name. Returns the sessions for teardown."""
        sessions = list(self.sessions.values())
        self.sessions.clear()
        self.names.clear()
        return sessions

    def get_stats(self) -> dict[str, Any]:
        return {
            "total": len(self.sessions),
            "names": len(self.names),
        }

    def __len__(self) -> int:
        return len(self.sessions)

    def __contains__(self, session: object) -> bool:
        return isinstance(session, Session) and self.sessions.get(session.session_id) is session
