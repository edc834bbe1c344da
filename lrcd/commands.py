"""Command parsing and handling for relay slash commands."""

from __future__ import annotations

import hmac
import logging
from collections.abc import Callable
from dataclasses import dataclass

from .constants import (
    CMD_CLIENTLIST,
    CMD_KICK,
    CMD_USERNAME,
    CMD_WHISPER,
    CMD_WHISPER_LONG,
    MSG_KICKED,
    MSG_RENAME_OK,
    MSG_RENAMED,
    MSG_UNKNOWN_COMMAND,
    USAGE_KICK,
    USAGE_USERNAME,
    USAGE_WHISPER,
)
from .eventlog import EventSink
from .messages import Broadcaster
from .names import RenameError
from .session import Session, SessionManager


@dataclass(frozen=True)
class Chat:
    text: str


@dataclass(frozen=True)
class Whisper:
    target: str
    text: str


@dataclass(frozen=True)
class Rename:
    name: str


@dataclass(frozen=True)
class Kick:
    target: str
    password: str


@dataclass(frozen=True)
class ListClients:
    pass


@dataclass(frozen=True)
class Unknown:
    name: str


@dataclass(frozen=True)
class BadUsage:
    command: str
    usage: str


Command = Chat | Whisper | Rename | Kick | ListClients | Unknown | BadUsage


def parse_line(line: str) -> Command:
    """Classify one trimmed line as chat or a slash command."""
    if not line.startswith("/"):
        return Chat(line)

    parts = line.split()
    cmd = parts[0].lower()
    args = parts[1:]

    if cmd in (CMD_WHISPER, CMD_WHISPER_LONG):
        if len(args) < 2:
            return BadUsage(CMD_WHISPER, USAGE_WHISPER)
        return Whisper(args[0], " ".join(args[1:]).strip())

    if cmd == CMD_USERNAME:
        if len(args) != 1:
            return BadUsage(CMD_USERNAME, USAGE_USERNAME)
        return Rename(args[0])

    if cmd == CMD_KICK:
        if len(args) != 2:
            return BadUsage(CMD_KICK, USAGE_KICK)
        return Kick(args[0], args[1])

    if cmd == CMD_CLIENTLIST:
        return ListClients()

    return Unknown(cmd)


class CommandHandler:
    """
    Executes parsed commands on behalf of a session.

    Every outcome is written to the audit sink as
    ``<actor> <command> OK|ERROR: <detail>``; failures are answered to the
    invoking session only. Must be called with the service state lock held.
    """

    def __init__(
        self,
        sessions: SessionManager,
        broadcaster: Broadcaster,
        audit: EventSink,
        *,
        operator_password: str | None,
        disconnect: Callable[[Session, str], None],
    ) -> None:
        self.sessions = sessions
        self.broadcaster = broadcaster
        self.audit = audit
        self.operator_password = operator_password
        self.disconnect = disconnect
        self.log = logging.getLogger("lrcd.commands")

    def handle(self, session: Session, command: Command) -> None:
        if isinstance(command, Whisper):
            self.handle_whisper(session, command)
        elif isinstance(command, Rename):
            self.handle_rename(session, command)
        elif isinstance(command, Kick):
            self.handle_kick(session, command)
        elif isinstance(command, ListClients):
            self.handle_client_list(session)
        elif isinstance(command, BadUsage):
            self._fail(session, command.command, command.usage)
        elif isinstance(command, Unknown):
            self.broadcaster.send_to(
                session, MSG_UNKNOWN_COMMAND.format(command=command.name)
            )
            self._record(session.name, command.name, False, "unknown command")
        else:
            raise TypeError(f"not a command: {command!r}")

    def handle_whisper(self, session: Session, command: Whisper) -> None:
        sender = session.name
        target = self.sessions.names.lookup(command.target)
        if target is None:
            self._fail(session, CMD_WHISPER, f"No such user: {command.target}")
            return
        if target is session:
            self._fail(session, CMD_WHISPER, "You cannot whisper to yourself")
            return
        if not command.text:
            self._fail(session, CMD_WHISPER, "Whisper message cannot be empty")
            return

        self.broadcaster.send_to(target, f"(whisper) {sender}: {command.text}")
        self.broadcaster.send_to(
            session, f"(whisper to {target.name}) {sender}: {command.text}"
        )
        self._record(sender, CMD_WHISPER, True, f"-> {target.name}: {command.text}")

    def handle_rename(self, session: Session, command: Rename) -> None:
        try:
            old = self.sessions.rename(session, command.name)
        except RenameError as e:
            self._fail(session, CMD_USERNAME, str(e))
            return

        new = session.name
        self.broadcaster.broadcast(MSG_RENAMED.format(old=old, new=new), exclude=session)
        self.broadcaster.send_to(session, MSG_RENAME_OK.format(new=new))
        self._record(old, CMD_USERNAME, True, f"-> {new}")
        self.log.info("Rename id=%s %s -> %s", session.session_id, old, new)

    def handle_kick(self, session: Session, command: Kick) -> None:
        actor = session.name
        if not self.operator_password:
            self.log.warning("Kick refused by=%s: no operator password configured", actor)
            self._fail(session, CMD_KICK, "Kick is disabled on this server")
            return
        if not hmac.compare_digest(
            command.password.encode("utf-8"), self.operator_password.encode("utf-8")
        ):
            self.log.warning("Kick refused by=%s: incorrect admin password", actor)
            self._fail(session, CMD_KICK, "Incorrect admin password")
            return

        target = self.sessions.names.lookup(command.target)
        if target is None:
            self._fail(session, CMD_KICK, f"No such user: {command.target}")
            return
        if target is session:
            self._fail(session, CMD_KICK, "You cannot kick yourself")
            return

        kicked = target.name
        self.broadcaster.send_to(target, MSG_KICKED)
        self.disconnect(target, "kicked")
        self._record(actor, CMD_KICK, True, f"-> {kicked}")
        self.log.info("Kick by=%s target=%s", actor, kicked)

    def handle_client_list(self, session: Session) -> None:
        names = self.sessions.names.names()
        self.broadcaster.send_to(
            session, f"Connected clients ({len(names)}): {', '.join(names)}"
        )
        self._record(session.name, CMD_CLIENTLIST, True, f"({len(names)} users)")

    def _fail(self, session: Session, command: str, message: str) -> None:
        self.broadcaster.send_to(session, message)
        self._record(session.name, command, False, message)

    def _record(self, actor: str, command: str, ok: bool, detail: str) -> None:
        self.audit.record(f"{actor} {command} {'OK' if ok else 'ERROR'}: {detail}")
