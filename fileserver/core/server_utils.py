"""
Utility functions for file server configuration and operation.

This module provides core functionality for:
- Logging setup with stdout/stderr routing and optional JSON output
- The diagnostic sink shared by all request handler threads
- Socket configuration for the listening socket
- Server error types

Request and response traces go to stdout, faults go to stderr.
"""

import sys
import socket
import logging
import threading
from typing import Iterable, Optional

from pythonjsonlogger.json import JsonFormatter


LOGGER_NAME = "fileserver"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
JSON_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
BLOCK_BEGIN = "---------- Begin {} ----------"
BLOCK_END = "---------- End {} ----------"


class ServerConfigError(Exception):
    """Custom exception for server configuration errors"""

    pass


class ServerStartupError(ServerConfigError):
    """Raised when the listening socket cannot be bound"""

    pass


class _BelowLevelFilter(logging.Filter):
    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


def configure_logging(level=logging.INFO, log_format="text", stdout=None, stderr=None):
    """Configure logging for the file server.

    Args:
        level: Logging level (default: INFO)
        log_format: "text" for human-readable lines, "json" for JSON records
        stdout: Stream for traces (default: sys.stdout)
        stderr: Stream for warnings and errors (default: sys.stderr)

    Returns:
        Configured logger instance

    Calling this again replaces the handlers installed by a previous call.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_format == "json":
        formatter = JsonFormatter(JSON_LOG_FORMAT, datefmt=DATE_FORMAT)
    elif log_format == "text":
        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    else:
        raise ServerConfigError(f"Unknown log format: {log_format}")

    # Traces below WARNING go to stdout
    out_handler = logging.StreamHandler(stdout or sys.stdout)
    out_handler.setFormatter(formatter)
    out_handler.addFilter(_BelowLevelFilter(logging.WARNING))
    logger.addHandler(out_handler)

    # Faults go to stderr
    err_handler = logging.StreamHandler(stderr or sys.stderr)
    err_handler.setFormatter(formatter)
    err_handler.setLevel(logging.WARNING)
    logger.addHandler(err_handler)

    return logger


default_logger = logging.getLogger(LOGGER_NAME)


class DiagnosticSink:
    """Destination for the server's human-readable diagnostics.

    Single-line events are logged straight through. Multi-line blocks
    (request header dumps, response header dumps) are emitted as a single
    record while holding one lock shared by every handler thread, so no other
    record can land between a block's begin and end lines.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or default_logger
        self._block_lock = threading.Lock()

    def block(self, title: str, lines: Iterable[str]) -> None:
        """Emit a contiguous begin/lines/end block as one log record."""
        text = "\n".join(
            [BLOCK_BEGIN.format(title)] + list(lines) + [BLOCK_END.format(title)]
        )
        with self._block_lock:
            self.logger.info("%s", text)

    def info(self, msg: str, *args) -> None:
        self.logger.info(msg, *args)

    def warning(self, msg: str, *args) -> None:
        self.logger.warning(msg, *args)

    def error(self, msg: str, *args, exc_info=False) -> None:
        self.logger.error(msg, *args, exc_info=exc_info)


def configure_socket_opts(sock: socket.socket) -> None:
    """Configure options on the listening socket.

    Args:
        sock: Socket instance to configure

    Raises:
        ServerConfigError: If address reuse cannot be enabled

    Enables address reuse so a restarted server can rebind a port still in
    TIME_WAIT. TCP_NODELAY is applied where the platform offers it; a failure
    there is logged and ignored.
    """
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    except OSError as e:
        default_logger.error(f"Failed to configure socket options: {e}")
        raise ServerConfigError("Socket configuration failed") from e

    if hasattr(socket, "TCP_NODELAY"):
        try:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        except OSError as e:
            default_logger.warning(f"Failed to set TCP_NODELAY: {e}")


def peer_label(address) -> str:
    """Format a peer address tuple as host:port."""
    if isinstance(address, tuple) and len(address) >= 2:
        return f"{address[0]}:{address[1]}"
    return str(address)
