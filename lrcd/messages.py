"""Line delivery to sessions."""

from __future__ import annotations

import logging

from .session import Session, SessionManager


class Broadcaster:
    """
    Delivers text lines to one session or to every live session.

    Delivery is best-effort: a connection that is already closing or fails to
    accept the line is skipped and the failure is only logged. Must be called
    with the service state lock held so recipients see lines in routing order.
    """

    def __init__(self, sessions: SessionManager) -> None:
        self.sessions = sessions
        self.log = logging.getLogger("lrcd.hub")

    def send_to(self, session: Session, text: str) -> None:
        try:
            session.connection.send_line(text)
        except OSError as e:
            self.log.debug(
                "Send failed id=%s name=%s err=%s", session.session_id, session.name, e
            )
        except Exception:
            self.log.debug(
                "Send failed id=%s name=%s",
                session.session_id,
                session.name,
                exc_info=True,
            )

    def broadcast(self, text: str, exclude: Session | None = None) -> None:
        """Send ``text`` to every live session except ``exclude``."""
        for session in self.sessions.all_sessions():
            if session is exclude:
                continue
            self.send_to(session, text)
