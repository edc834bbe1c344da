from __future__ import annotations

import os
from datetime import datetime, timezone


def expand_path(p: str) -> str:
    return os.path.expanduser(os.path.expandvars(p))


def iso_timestamp(now: datetime | None = None) -> str:
    """UTC timestamp in ISO-8601 with millisecond precision and a Z suffix."""
    ts = now or datetime.now(timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def split_lines(buffer: str) -> tuple[list[str], str]:
    """Split buffered text into complete lines and the unterminated remainder.

    CR is tolerated (``\\r\\n`` and lone ``\\r`` both count as ``\\n``).
    """
    text = buffer.replace("\r\n", "\n")
    # A trailing CR may be the first half of a CRLF split across reads.
    held = ""
    if text.endswith("\r"):
        text, held = text[:-1], "\r"
    text = text.replace("\r", "\n")
    *lines, rest = text.split("\n")
    return lines, rest + held
