"""TCP server that runs one SQL statement per line and writes back the result."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import time
from typing import List, Optional, Union

from wundradb.database import Database
from wundradb.engine import SqlError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3306
DEFAULT_DATA_DIR = "data"


def _format_elapsed(seconds: float) -> str:
    for scale, unit in ((1.0, "s"), (1e-3, "ms"), (1e-6, "µs")):
        if seconds >= scale:
            return f"{seconds / scale:.2f}{unit}"
    return f"{seconds * 1e9:.2f}ns"


async def handle_client(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    database: Database,
    lock: asyncio.Lock,
) -> None:
    """Serve one connection until it ends or the client says exit or quit."""
    try:
        writer.write(b"")
        await writer.drain()
        while True:
            try:
                raw = await reader.readline()
            except (OSError, ValueError):
                break
            if not raw:
                break
            try:
                sql = raw.decode("utf-8").strip()
            except UnicodeDecodeError:
                break
            if sql.lower() in ("exit", "quit"):
                writer.write(b"Goodbye!\n")
                await writer.drain()
                break

            logger.info("Received: %s", sql)
            async with lock:
                start = time.perf_counter()
                try:
                    result = database.execute_sql(sql)
                    elapsed = _format_elapsed(time.perf_counter() - start)
                    response = f"{result}\nQuery OK Query OK ({elapsed})\n"
                except (SqlError, OSError, ValueError, TypeError) as exc:
                    response = f"Error Error: {exc}\n"
            writer.write(response.encode("utf-8"))
            await writer.drain()
    finally:
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()


async def serve(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    data_dir: Union[str, os.PathLike] = DEFAULT_DATA_DIR,
) -> None:
    """Open the database and accept clients until cancelled."""
    database = Database(data_dir)
    lock = asyncio.Lock()

    async def on_connect(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        logger.info("New connection from %s", writer.get_extra_info("peername"))
        try:
            await handle_client(reader, writer, database, lock)
        except (OSError, ConnectionError) as exc:
            logger.error("Client error: %r", exc)

    server = await asyncio.start_server(on_connect, host, port)
    logger.info("WundraDB server listening on %s:%s", host, port)
    async with server:
        await server.serve_forever()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="wundradb-server")
    parser.add_argument("--host", default=DEFAULT_HOST, help="address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    parser.add_argument("--data-dir", default=DEFAULT_DATA_DIR, help="database directory")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    try:
        asyncio.run(serve(args.host, args.port, args.data_dir))
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        logger.error("Server failed: %s", exc)
        return 1
    return 0