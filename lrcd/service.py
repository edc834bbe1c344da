from __future__ import annotations

import logging
import signal
import socket
import threading
import time

from .commands import CommandHandler
from .config import RelayConfig
from .connection import LineConnection, TcpConnection
from .constants import MSG_JOINED, MSG_LEFT, MSG_SHUTDOWN, MSG_WELCOME
from .eventlog import EventSink, open_event_log
from .messages import Broadcaster
from .names import NameDirectory
from .router import MessageRouter
from .session import Session, SessionManager, SessionState


class RelayService:
    def __init__(
        self,
        config: RelayConfig,
        *,
        chat_log: EventSink | None = None,
        server_log: EventSink | None = None,
    ) -> None:
        self.config = config
        self.log = logging.getLogger("lrcd.hub")

        # Sessions, names and every routing step are touched from one reader
        # thread per connection. Guard all of it with a single re-entrant lock so
        # the directory and the live set change together.
        self._state_lock = threading.RLock()

        self._shutdown = threading.Event()

        self.chat_log = chat_log if chat_log is not None else open_event_log(config.chat_log_path)
        self.server_log = (
            server_log if server_log is not None else open_event_log(config.server_log_path)
        )

        self.names = NameDirectory()
        self.session_manager = SessionManager(self.names)
        self.broadcaster = Broadcaster(self.session_manager)
        self.command_handler = CommandHandler(
            self.session_manager,
            self.broadcaster,
            self.server_log,
            operator_password=config.operator_password,
            disconnect=self.kick,
        )
        self.router = MessageRouter(self.broadcaster, self.command_handler, self.chat_log)

        self._listener: socket.socket | None = None
        self._accept_thread: threading.Thread | None = None
        self._connections: set[TcpConnection] = set()

        self._started_monotonic: float | None = None

    @property
    def address(self) -> tuple[str, int] | None:
        """The bound listening address, once started."""
        if self._listener is None:
            return None
        host, port = self._listener.getsockname()[:2]
        return host, port

    # Session lifecycle

    def on_connect(self, connection: LineConnection) -> Session | None:
        """Register and announce a new connection. Returns None once shutdown has begun."""
        with self._state_lock:
            if self._shutdown.is_set():
                connection.close()
                return None
            session = self.session_manager.register(connection)
            self.chat_log.record(f"{session.name} connected")
            self.broadcaster.send_to(session, MSG_WELCOME.format(name=session.name))
            self.broadcaster.broadcast(MSG_JOINED.format(name=session.name), exclude=session)
        return session

    def on_line(self, session: Session, line: str) -> None:
        with self._state_lock:
            self.router.route_line(session, line)

    def on_error(self, session: Session, exc: BaseException) -> None:
        with self._state_lock:
            if not session.active:
                return
            self.chat_log.record(f"{session.name} error: {exc}")
        self.log.warning("Connection error id=%s name=%s err=%s", session.session_id, session.name, exc)

    def terminate(self, session: Session, reason: str = "disconnected") -> bool:
        """
        Remove ``session`` and announce its departure.

        Runs at most once per session; returns False when the session was
        already closing or closed.
        """
        with self._state_lock:
            if session.state is not SessionState.ACTIVE:
                return False
            session.state = SessionState.CLOSING

            name = session.name
            if self.names.lookup(name) is session:
                self.names.release(name)
            self.session_manager.deregister(session)

            self.chat_log.record(f"{name} {reason}")
            self.broadcaster.broadcast(MSG_LEFT.format(name=name), exclude=session)
            session.state = SessionState.CLOSED

        self.log.info("Session closed id=%s name=%s reason=%s", session.session_id, name, reason)
        return True

    def kick(self, session: Session, reason: str = "kicked") -> None:
        """Terminate ``session`` and close its connection once queued lines flush."""
        self.terminate(session, reason)
        try:
            session.connection.close()
        except OSError:
            self.log.debug("Close failed id=%s", session.session_id, exc_info=True)

    # Network

    def start(self) -> None:
        """Bind the listening socket and start accepting. Bind errors propagate."""
        if self._started_monotonic is None:
            self._started_monotonic = time.monotonic()

        listener = socket.create_server((self.config.host, int(self.config.port)))
        # Poll so stop() can end the accept loop without relying on close() waking accept().
        listener.settimeout(0.5)
        self._listener = listener

        self._accept_thread = threading.Thread(
            target=self._accept_loop, name="lrcd-accept", daemon=True
        )
        self._accept_thread.start()

        host, port = self.address or ("-", 0)
        self.log.info("Relay listening host=%s port=%s", host, port)
        self.log.info(
            "Transcripts chat_log=%s server_log=%s",
            self.config.chat_log_path or "(disabled)",
            self.config.server_log_path or "(disabled)",
        )
        if not self.config.operator_password:
            self.log.warning("No operator password configured; /kick is disabled")

    def _accept_loop(self) -> None:
        while not self._shutdown.is_set():
            listener = self._listener
            if listener is None:
                break
            try:
                sock, addr = listener.accept()
            except TimeoutError:
                continue
            except OSError:
                if self._shutdown.is_set():
                    break
                self.log.exception("Accept failed")
                time.sleep(0.25)
                continue

            sock.settimeout(None)
            connection = TcpConnection(sock, addr)
            with self._state_lock:
                self._connections.add(connection)
            threading.Thread(
                target=self._serve_connection,
                args=(connection,),
                name=f"lrcd-reader-{connection.peer}",
                daemon=True,
            ).start()

    def _serve_connection(self, connection: TcpConnection) -> None:
        self.log.info("Connection accepted peer=%s", connection.peer)
        session = self.on_connect(connection)
        if session is None:
            with self._state_lock:
                self._connections.discard(connection)
            return
        reason = "ended"
        try:
            for line in connection.read_lines():
                self.on_line(session, line)
                if not session.active:
                    break
        except OSError as e:
            self.on_error(session, e)
            reason = "disconnected"
        except Exception:
            self.log.exception("Unexpected error id=%s name=%s", session.session_id, session.name)
            reason = "disconnected"
        finally:
            self.terminate(session, reason)
            connection.close()
            with self._state_lock:
                self._connections.discard(connection)

    def run_forever(self) -> None:
        if self._listener is None:
            self.start()

        signal.signal(signal.SIGINT, lambda *_: self.stop())
        signal.signal(signal.SIGTERM, lambda *_: self.stop())

        while not self._shutdown.is_set():
            time.sleep(0.25)

    def stop(self, *, flush_timeout: float = 2.0) -> None:
        if self._shutdown.is_set():
            return
        self._shutdown.set()

        with self._state_lock:
            stats = self.session_manager.get_stats()
            started = self._started_monotonic
            self.log.info(
                "Shutting down sessions=%s names=%s uptime_s=%.1f",
                stats["total"],
                stats["names"],
                (time.monotonic() - started) if started is not None else 0.0,
            )
            for session in self.session_manager.all_sessions():
                self.broadcaster.send_to(session, MSG_SHUTDOWN)
            sessions = self.session_manager.clear_all()
            for session in sessions:
                session.state = SessionState.CLOSED
            connections = list(self._connections)

        for session in sessions:
            try:
                session.connection.close()
            except OSError:
                pass

        deadline = time.monotonic() + flush_timeout
        for connection in connections:
            connection.wait_closed(max(0.0, deadline - time.monotonic()))

        listener, self._listener = self._listener, None
        if listener is not None:
            try:
                listener.close()
            except OSError:
                pass
        if self._accept_thread is not None:
            self._accept_thread.join(timeout=1.0)
