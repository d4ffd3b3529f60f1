"""Interface for ``python -m kv_facade``."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from argparse import ArgumentParser, Namespace
from typing import TYPE_CHECKING

from ._version import version
from .client import RemoteKVClient
from .config import StoreConfig
from .errors import StoreError, classify_failures
from .logs import configure_logging


if TYPE_CHECKING:
    from collections.abc import Sequence

    from .backends import Backend


__all__ = ["main"]


def _build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="kv_facade")
    _ = parser.add_argument("-v", "--version", action="version", version=version)
    _ = parser.add_argument("--url", help="store URL, e.g. redis://localhost:6379/0")
    _ = parser.add_argument("--config", help="YAML or JSON store config file")
    _ = parser.add_argument("--dev", action="store_true", help="log every store operation")

    commands = parser.add_subparsers(dest="command", required=True)
    _ = commands.add_parser("ping", help="connect and disconnect")
    ttl = commands.add_parser("ttl", help="print the remaining TTL of a key")
    _ = ttl.add_argument("key")
    keys = commands.add_parser("keys", help="print decoded records under a prefix")
    _ = keys.add_argument("prefix")
    return parser


def _load_config(options: Namespace) -> StoreConfig:
    config = StoreConfig.from_file(options.config) if options.config else StoreConfig()
    if options.url:
        config = config.model_copy(update={"url": options.url})
    return config


async def _run(client: RemoteKVClient, options: Namespace) -> None:
    async with client:
        if options.command == "ttl":
            print(await client.get_time_to_live(options.key))
        elif options.command == "keys":
            print(json.dumps(await client.get_by_prefix(options.prefix)))
        else:
            print("PONG")


def main(args: Sequence[str] | None = None, *, backend: Backend | None = None) -> int:
    """Argument parser for the CLI."""
    options = _build_parser().parse_args(args)
    if options.dev:
        _ = configure_logging(logging.INFO)

    try:
        with classify_failures("Invalid store configuration"):
            config = _load_config(options)
        client = RemoteKVClient(config, dev=options.dev, backend=backend)
        asyncio.run(_run(client, options))
    except StoreError as error:
        detail = f": {error.cause}" if error.cause is not None else ""
        print(f"{error.status_code} {error.message}{detail}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
