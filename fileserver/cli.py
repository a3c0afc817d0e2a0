#!/usr/bin/env python3
"""
Command-line entry point for the file server.

Usage: fileserver PORT [--root DIR] [--host ADDR] [--workers N]
"""

import argparse
import logging
import sys
from typing import List, Optional

from .core.acceptor import run
from .core.config import DEFAULT_TIMEOUT, MAX_WORKERS, ListenerConfig, validate_port
from .core.server_utils import ServerStartupError, configure_logging


def port_type(value: str) -> int:
    """argparse type for the listen port."""
    try:
        return validate_port(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fileserver",
        description="Serve files from a directory over HTTP/1.1",
    )

    parser.add_argument(
        "port",
        type=port_type,
        help="Port to listen on (1024-65535)",
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Address to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--root",
        default=".",
        help="Directory to serve files from (default: current directory)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=MAX_WORKERS,
        help=f"Maximum concurrent request handlers (default: {MAX_WORKERS})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"Per-connection socket timeout in seconds, 0 disables (default: {DEFAULT_TIMEOUT})",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        default="text",
        choices=["text", "json"],
        help="Log output format (default: text)",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logger = configure_logging(
        level=getattr(logging, args.log_level), log_format=args.log_format
    )

    try:
        config = ListenerConfig(
            port=args.port,
            host=args.host,
            root=args.root,
            max_workers=args.workers,
            timeout=args.timeout or None,
        )
    except ValueError as e:
        parser.error(str(e))

    try:
        run(config)
    except ServerStartupError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
