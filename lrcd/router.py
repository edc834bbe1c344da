from __future__ import annotations

import logging

from .commands import Chat, CommandHandler, parse_line
from .eventlog import EventSink
from .messages import Broadcaster
from .session import Session


class MessageRouter:
    """
    Routes inbound lines for the relay.

    This class is responsible for:
    - Ignoring blank lines and trimming the rest
    - Classifying each line as chat or a slash command
    - Relaying chat to every other session and recording it in the transcript
    - Handing commands to the CommandHandler
    """

    def __init__(
        self,
        broadcaster: Broadcaster,
        commands: CommandHandler,
        chat_log: EventSink,
    ) -> None:
        self.broadcaster = broadcaster
        self.commands = commands
        self.chat_log = chat_log
        self.log = logging.getLogger("lrcd.router")

    def route_line(self, session: Session, raw: str) -> None:
        """
        Main entry point for one inbound line.

        This method should be called with the state lock held.
        """
        if not session.active:
            return

        line = raw.strip()
        if not line:
            return

        command = parse_line(line)
        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug(
                "RX id=%s name=%s kind=%s chars=%s",
                session.session_id,
                session.name,
                type(command).__name__,
                len(line),
            )

        if isinstance(command, Chat):
            wire = f"{session.name}: {command.text}"
            self.chat_log.record(wire)
            self.broadcaster.broadcast(wire, exclude=session)
            return

        self.commands.handle(session, command)
