from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path

from .config import (
    RelayConfig,
    apply_config_data,
    apply_env,
    load_toml,
    parse_port,
    render_default_config,
)
from .logging_config import configure_logging
from .paths import default_config_path, ensure_private_dir
from .service import RelayService


def _write_default_config(config_path: str, cfg: RelayConfig) -> None:
    cfg_dir = os.path.dirname(config_path)
    if cfg_dir:
        ensure_private_dir(Path(cfg_dir))

    with open(config_path, "w", encoding="utf-8") as f:
        f.write(render_default_config(cfg))
    try:
        os.chmod(config_path, 0o600)
    except OSError:
        pass


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="lrcd", description="Run a line relay chat daemon")

    p.add_argument(
        "port",
        nargs="?",
        default=None,
        help="TCP port to listen on (default: $PORT or 3000)",
    )
    p.add_argument("--host", default=None, help="Address to bind (default: 0.0.0.0)")
    p.add_argument(
        "--config",
        default=str(default_config_path()),
        help="Path to a TOML config file (optional)",
    )
    p.add_argument(
        "--init-config",
        action="store_true",
        help="Write a default config file to --config and exit",
    )
    p.add_argument(
        "--chat-log",
        default=None,
        help="Chat transcript path override (empty disables)",
    )
    p.add_argument(
        "--server-log",
        default=None,
        help="Command audit log path override (empty disables)",
    )

    p.add_argument(
        "--log-level",
        default=None,
        help="Logging level override (DEBUG, INFO, WARNING, ERROR). Default comes from config.",
    )
    p.add_argument(
        "--log-file",
        default=None,
        help="Log file path override (empty disables file logging). Default comes from config.",
    )

    return p


def build_config(args: argparse.Namespace, environ=None) -> RelayConfig:
    """Defaults, then the config file, then the environment, then flags."""
    config_path = str(args.config)
    cfg = RelayConfig(config_path=config_path)

    if config_path and os.path.exists(config_path):
        cfg = apply_config_data(cfg, load_toml(config_path))

    cfg = apply_env(cfg, environ)

    if args.port is not None:
        cfg = replace(cfg, port=parse_port(args.port))
    if args.host is not None:
        cfg = replace(cfg, host=str(args.host))
    if args.chat_log is not None:
        cfg = replace(cfg, chat_log_path=str(args.chat_log) or None)
    if args.server_log is not None:
        cfg = replace(cfg, server_log_path=str(args.server_log) or None)
    if args.log_level is not None:
        cfg = replace(cfg, log_level=str(args.log_level))
    if args.log_file is not None:
        cfg = replace(cfg, log_file=str(args.log_file) if str(args.log_file) else None)

    return cfg


def main(argv: list[str] | None = None) -> None:
    args = _build_arg_parser().parse_args(sys.argv[1:] if argv is None else argv)

    try:
        cfg = build_config(args)
    except (OSError, ValueError) as e:
        print(f"lrcd: configuration error: {e}", file=sys.stderr)
        raise SystemExit(2)

    if args.init_config:
        if os.path.exists(str(args.config)):
            print(f"lrcd: {args.config} already exists", file=sys.stderr)
            raise SystemExit(1)
        _write_default_config(str(args.config), cfg)
        print(f"Wrote default config to {args.config}", file=sys.stderr)
        raise SystemExit(0)

    configure_logging(cfg, override_level=args.log_level, override_file=args.log_file)

    svc = RelayService(cfg)
    try:
        svc.start()
    except OSError as e:
        logging.getLogger("lrcd.hub").error(
            "Cannot listen on %s:%s: %s", cfg.host, cfg.port, e
        )
        raise SystemExit(1)
    svc.run_forever()


if __name__ == "__main__":
    main()
