"""Run a query and print each record as a JSON line.

Usage:
    python -m sqlrecord "SELECT * FROM users WHERE id > ?" 10
    python -m sqlrecord --driver sqlite --url app.db "SELECT name FROM users"

Connection settings come from SQLRECORD_* environment variables unless
overridden on the command line.
"""

import argparse
import asyncio
import json
import logging
import sys
from contextlib import aclosing

from sqlrecord.client import Client
from sqlrecord.config import get_log_level, load_options
from sqlrecord.errors import SQLRecordError
from sqlrecord.records import Scalar


def _jsonable(value: Scalar) -> object:
    if isinstance(value, bytes):
        return value.hex()
    return value


async def run(args: argparse.Namespace) -> int:
    """Connect, run the query and stream records to stdout."""
    options = load_options()
    updates = {}
    if args.driver:
        updates["driver_name"] = args.driver
    if args.url:
        updates["open_url"] = args.url
    options = options.model_copy(update=updates)

    client = await Client.connect(options)
    try:
        cursor = await client.finds(args.query, *args.args, timeout=args.timeout)
        async with aclosing(cursor.records()) as records:
            async for record in records:
                print(json.dumps({k: _jsonable(v) for k, v in record.items()}))
    finally:
        await client.close()
    return 0


def main() -> None:
    """Parse arguments and run the query."""
    parser = argparse.ArgumentParser(description="Run a query and print records as JSON lines")
    parser.add_argument("query", help="SQL text with ? placeholders")
    parser.add_argument("args", nargs="*", help="Positional query arguments")
    parser.add_argument("--driver", default=None, help="Driver name (default: SQLRECORD_DRIVER)")
    parser.add_argument(
        "--url", default=None, help="Connection URL (default: SQLRECORD_DATABASE_URL)"
    )
    parser.add_argument("--timeout", type=float, default=None, help="Query timeout in seconds")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, get_log_level().upper(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    try:
        sys.exit(asyncio.run(run(args)))
    except SQLRecordError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
