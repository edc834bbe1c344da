"""Append-only event sinks for the chat transcript and the command audit trail."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Protocol

from .util import expand_path, iso_timestamp


def format_record(text: str) -> str:
    return f"[{iso_timestamp()}] {text}\n"


class EventSink(Protocol):
    def record(self, event: str) -> None: ...


class NullEventLog:
    """Sink used when a transcript path is not configured."""

    def record(self, event: str) -> None:
        return None


class MemoryEventLog:
    """Keeps records in memory (without timestamps); used by tests and tooling."""

    def __init__(self) -> None:
        self.events: list[str] = []

    def record(self, event: str) -> None:
        self.events.append(event)


class FileEventLog:
    """
    Appends ``[<timestamp>] <text>`` lines to a file.

    Writes are fire-and-forget: an I/O failure is reported through logging and
    never raised to the caller, so the relay keeps running when the disk does not.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(expand_path(str(path)))
        self.log = logging.getLogger("lrcd.eventlog")
        self._write_lock = threading.Lock()

    def record(self, event: str) -> None:
        line = format_record(event)
        try:
            with self._write_lock:
                if not self.path.parent.exists():
                    self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line)
        except OSError as e:
            self.log.warning("log error path=%s err=%s", self.path, e)


def open_event_log(path: str | None) -> EventSink:
    if not path or not str(path).strip():
        return NullEventLog()
    return FileEventLog(path)
