"""Minimal terminal client: prints every line from the relay and forwards stdin."""

from __future__ import annotations

import argparse
import os
import socket
import sys
import threading

from .config import parse_port
from .connection import TcpConnection
from .constants import DEFAULT_PORT


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="lrc", description="Connect to an lrcd relay")
    p.add_argument(
        "host",
        nargs="?",
        default=os.environ.get("HOST", "127.0.0.1"),
        help="Relay host (default: $HOST or 127.0.0.1)",
    )
    p.add_argument(
        "port",
        nargs="?",
        default=os.environ.get("PORT", str(DEFAULT_PORT)),
        help="Relay port (default: $PORT or 3000)",
    )
    return p


def _pump_stdin(connection: TcpConnection) -> None:
    for line in sys.stdin:
        text = line.rstrip("\r\n")
        try:
            connection.send_line(text)
        except OSError:
            break
    connection.close()


def main(argv: list[str] | None = None) -> None:
    args = _build_arg_parser().parse_args(sys.argv[1:] if argv is None else argv)
    try:
        port = parse_port(args.port)
    except ValueError as e:
        print(f"lrc: {e}", file=sys.stderr)
        raise SystemExit(2)

    try:
        sock = socket.create_connection((args.host, port))
    except OSError as e:
        print(f"[client] error: {e}", file=sys.stderr)
        raise SystemExit(1)

    connection = TcpConnection(sock, (args.host, port))
    print(f"[client] connected to {args.host}:{port}")

    threading.Thread(target=_pump_stdin, args=(connection,), name="lrc-stdin", daemon=True).start()

    try:
        for line in connection.read_lines():
            print(line, flush=True)
        print("[client] server ended the connection")
    except OSError as e:
        print(f"[client] error: {e}", file=sys.stderr)
    except KeyboardInterrupt:
        print("\n[client] disconnecting...")
    finally:
        connection.close()
        connection.wait_closed(1.0)
        print("[client] connection closed")


if __name__ == "__main__":
    main()
