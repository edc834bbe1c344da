from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any

from .config import RelayConfig

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def parse_level(value: Any, default: int = logging.INFO) -> int:
    """Accept a level name (any case, ``WARN`` included) or a number."""
    if value is None:
        return default
    if isinstance(value, int):
        return value
    text = str(value).strip().upper()
    if not text:
        return default
    if text == "WARN":
        text = "WARNING"

    named = logging.getLevelNamesMapping().get(text)
    if named is not None:
        return named
    try:
        return int(text)
    except ValueError:
        return default


def _optional(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value)
    return s if s.strip() else None


def _file_handler(path: str) -> logging.Handler:
    p = Path(os.path.expanduser(path))
    p.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(p, encoding="utf-8")
    try:
        os.chmod(p, 0o600)
    except OSError:
        pass
    return handler


def build_handlers(cfg: RelayConfig, *, override_file: str | None = None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if cfg.log_console:
        handlers.append(logging.StreamHandler(sys.stderr))

    # An explicit empty override disables file logging even if the config sets one.
    log_file = _optional(override_file) if override_file is not None else _optional(cfg.log_file)
    if log_file:
        handlers.append(_file_handler(log_file))

    formatter = logging.Formatter(
        fmt=_optional(cfg.log_format) or DEFAULT_FORMAT,
        datefmt=_optional(cfg.log_datefmt),
    )
    for h in handlers:
        h.setFormatter(formatter)
    return handlers


def configure_logging(
    cfg: RelayConfig,
    *,
    override_level: str | None = None,
    override_file: str | None = None,
) -> None:
    """Install lrcd's handlers on the root logger.

    Calling it again replaces the handlers from the previous call.
    """
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    for h in build_handlers(cfg, override_file=override_file):
        root.addHandler(h)
    root.setLevel(parse_level(override_level or cfg.log_level))

    logging.captureWarnings(True)
