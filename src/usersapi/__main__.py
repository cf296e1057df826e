"""
=============================================================================
COMMAND LINE ENTRY POINT
=============================================================================

    usersapi                              # users.db on 127.0.0.1:8080
    usersapi --port 3000 --host 0.0.0.0
    usersapi --database /var/lib/users.db --workers 32
    usersapi --memory --log-level DEBUG   # throwaway in-process store
    python -m usersapi --log-format json

Flags override USERSAPI_* environment variables, which override defaults.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .app import create_app
from .config import LOG_FORMATS, LOG_LEVELS, ServerConfig
from .errors import StoreError
from .store.memory import InMemoryUserStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="usersapi",
        description="User CRUD service over HTTP/1.1 backed by SQLite",
    )
    parser.add_argument("--host", "-H", help="Address to bind (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 8080)")
    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Maximum worker threads (default: 16)",
    )

    storage = parser.add_mutually_exclusive_group()
    storage.add_argument("--database", "-d", help="SQLite database file (default: users.db)")
    storage.add_argument(
        "--memory",
        action="store_true",
        help="Keep users in memory only; everything is lost on exit",
    )

    parser.add_argument("--log-level", "-l", type=str.upper, choices=LOG_LEVELS)
    parser.add_argument("--log-format", choices=LOG_FORMATS)
    parser.add_argument("--version", "-v", action="version", version=f"usersapi {__version__}")
    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Overlay command line flags on the environment configuration."""
    config = ServerConfig.from_env()

    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.max_workers = args.workers
        config.min_workers = min(config.min_workers, max(args.workers, 1))
    if args.database:
        config.database = args.database
    if args.memory:
        config.database = ":memory:"
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format

    return config


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        config.validate()
    except ValueError as e:
        parser.error(str(e))

    store = InMemoryUserStore() if args.memory else None

    try:
        app = create_app(config, store=store)
    except StoreError as e:
        print(f"usersapi: {e.message}", file=sys.stderr)
        return 1

    try:
        app.run()
    except OSError as e:
        print(f"usersapi: cannot listen on {config.host}:{config.port}: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
