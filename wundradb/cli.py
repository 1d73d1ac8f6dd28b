"""Interactive client: sends each typed line to the server and prints the reply."""

from __future__ import annotations

import argparse
import socket
import sys
from typing import Iterable, List, Optional

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3306
PROMPT = "wundradb> "


def _port(text: str) -> int:
    try:
        number = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {text!r}") from None
    if not 0 <= number <= 0xFFFF:
        raise argparse.ArgumentTypeError(f"port out of range: {number}")
    return number


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="wundradb-cli")
    parser.add_argument("-H", "--host", default=DEFAULT_HOST, help="Host to connect to")
    parser.add_argument("-p", "--port", type=_port, default=DEFAULT_PORT, help="Port to connect to")
    return parser.parse_args(argv)


def read_response(lines: Iterable[str]) -> str:
    """Collect one server reply; the closing status line keeps no newline."""
    parts = []
    for raw in lines:
        line = raw.rstrip("\n").rstrip("\r")
        head = line.lstrip()
        if head.startswith("Query OK") or head.startswith("Error"):
            parts.append(line)
            break
        parts.append(line + "\n")
    return "".join(parts)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    print(f"Connecting to WundraDB at {args.host}:{args.port}...")
    try:
        import readline  # noqa: F401  (line editing for input())
    except ImportError:
        pass

    try:
        sock = socket.create_connection((args.host, args.port))
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    with sock, sock.makefile("r", encoding="utf-8", newline="") as incoming:
        while True:
            try:
                line = input(PROMPT)
            except (EOFError, KeyboardInterrupt):
                print("Exiting...")
                sock.sendall(b"exit\n")
                break
            trimmed = line.strip()
            if trimmed.lower() in ("exit", "quit"):
                sock.sendall(b"exit\n")
                break
            sock.sendall(trimmed.encode("utf-8") + b"\n")
            sys.stdout.write(read_response(incoming))
            sys.stdout.flush()
    return 0