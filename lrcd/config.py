from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, replace
from typing import Any

from .constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    ENV_ADMIN_PASSWORD,
    ENV_CHAT_LOG,
    ENV_HOST,
    ENV_LOG_LEVEL,
    ENV_PORT,
    ENV_SERVER_LOG,
)
from .paths import default_chat_log_path, default_server_log_path


@dataclass(frozen=True)
class RelayConfig:
    config_path: str | None = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    # No default secret: /kick stays disabled until an operator sets one.
    operator_password: str | None = None
    chat_log_path: str | None = field(default_factory=lambda: str(default_chat_log_path()))
    server_log_path: str | None = field(default_factory=lambda: str(default_server_log_path()))
    log_level: str = "INFO"
    log_console: bool = True
    log_file: str | None = None
    log_format: str = "%(asctime)s %(levelname)s %(name)s[%(threadName)s]: %(message)s"
    log_datefmt: str | None = None


def parse_port(value: Any) -> int:
    try:
        port = int(str(value).strip())
    except ValueError as e:
        raise ValueError(f"invalid port {value!r}") from e
    if not 0 <= port <= 65535:
        raise ValueError(f"port out of range: {port}")
    return port


def load_toml(path: str) -> dict:
    import tomllib

    with open(path, "rb") as f:
        data = tomllib.load(f)
    return data if isinstance(data, dict) else {}


def apply_config_data(base: RelayConfig, data: dict) -> RelayConfig:
    relay = data.get("relay") if isinstance(data, dict) else None
    if isinstance(relay, dict):
        data = {**data, **relay}

    log_table = data.get("logging") if isinstance(data, dict) else None
    if isinstance(log_table, dict):
        mapped: dict[str, object] = {}
        if "level" in log_table:
            mapped["log_level"] = log_table.get("level")
        if "console" in log_table:
            mapped["log_console"] = log_table.get("console")
        if "file" in log_table:
            mapped["log_file"] = log_table.get("file")
        if "format" in log_table:
            mapped["log_format"] = log_table.get("format")
        if "datefmt" in log_table:
            mapped["log_datefmt"] = log_table.get("datefmt")
        data = {**data, **mapped}

    allowed = set(asdict(base).keys())
    # This identifies where the file came from; do not let the file override it.
    allowed.discard("config_path")
    updates = {k: v for k, v in data.items() if k in allowed}

    if "port" in updates:
        updates["port"] = parse_port(updates["port"])
    for key in (
        "operator_password",
        "chat_log_path",
        "server_log_path",
        "log_file",
        "log_datefmt",
    ):
        if key in updates and updates[key] == "":
            updates[key] = None

    return replace(base, **updates) if updates else base


def apply_env(base: RelayConfig, environ: Mapping[str, str] | None = None) -> RelayConfig:
    """Overlay the environment variables the relay honours, each independently."""
    env = os.environ if environ is None else environ
    updates: dict[str, Any] = {}

    if env.get(ENV_PORT):
        updates["port"] = parse_port(env[ENV_PORT])
    if env.get(ENV_HOST):
        updates["host"] = env[ENV_HOST]
    if env.get(ENV_ADMIN_PASSWORD):
        updates["operator_password"] = env[ENV_ADMIN_PASSWORD]
    if env.get(ENV_CHAT_LOG):
        updates["chat_log_path"] = env[ENV_CHAT_LOG]
    if env.get(ENV_SERVER_LOG):
        updates["server_log_path"] = env[ENV_SERVER_LOG]
    if env.get(ENV_LOG_LEVEL):
        updates["log_level"] = env[ENV_LOG_LEVEL]

    return replace(base, **updates) if updates else base


def render_default_config(cfg: RelayConfig) -> str:
    """Render a commented TOML config file mirroring ``cfg``."""
    import tomlkit

    doc = tomlkit.document()
    doc.add(tomlkit.comment("lrcd configuration (TOML)"))
    doc.add(tomlkit.comment("Environment variables and command line flags override these values."))
    doc.add(tomlkit.nl())

    relay = tomlkit.table()
    relay.add("host", cfg.host)
    relay.add("port", cfg.port)
    relay.add(tomlkit.nl())
    relay.add(tomlkit.comment("Secret required by /kick. Leave empty to disable /kick."))
    relay.add(tomlkit.comment("Prefer the ADMIN_PASSWORD environment variable."))
    relay.add("operator_password", cfg.operator_password or "")
    relay.add(tomlkit.nl())
    relay.add(tomlkit.comment("Append-only transcripts. Empty disables the sink."))
    relay.add("chat_log_path", cfg.chat_log_path or "")
    relay.add("server_log_path", cfg.server_log_path or "")
    doc.add("relay", relay)

    logging_table = tomlkit.table()
    logging_table.add("level", cfg.log_level)
    logging_table.add("console", cfg.log_console)
    logging_table.add(tomlkit.comment("Optional file path for daemon logs (empty disables)."))
    logging_table.add("file", cfg.log_file or "")
    logging_table.add("format", cfg.log_format)
    logging_table.add("datefmt", cfg.log_datefmt or "")
    doc.add("logging", logging_table)

    return tomlkit.dumps(doc)
