"""
Listener configuration for the file server.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

MIN_PORT = 1024
MAX_PORT = 65535
MAX_WORKERS = 30  # Concurrently executing request handlers
DEFAULT_TIMEOUT = 30.0  # Per-connection socket deadline in seconds
DEFAULT_BACKLOG = 128


def validate_port(port) -> int:
    """Return port as an int, raising ValueError outside [1024, 65535]."""
    if isinstance(port, bool):
        raise ValueError("Port must be an integer")
    if isinstance(port, str):
        try:
            port = int(port.strip(), 10)
        except ValueError:
            raise ValueError(f"Port must be an integer, got {port!r}") from None
    if not isinstance(port, int):
        raise ValueError("Port must be an integer")
    if port < MIN_PORT or port > MAX_PORT:
        raise ValueError(f"Port number must be between {MIN_PORT} and {MAX_PORT}")
    return port


@dataclass(frozen=True)
class ListenerConfig:
    """Validated, immutable settings for one server process.

    Attributes:
        port: TCP port to listen on, in [1024, 65535]
        host: Address to bind to (all interfaces by default)
        root: Served root directory, defaults to the working directory
        max_workers: Maximum number of concurrently executing handlers
        timeout: Socket read/write deadline per connection, None disables it
        backlog: Listen backlog for the accepting socket
    """
    port: int
    host: str = "0.0.0.0"
    root: str = field(default_factory=os.getcwd)
    max_workers: int = MAX_WORKERS
    timeout: Optional[float] = DEFAULT_TIMEOUT
    backlog: int = DEFAULT_BACKLOG

    def __post_init__(self):
        object.__setattr__(self, "port", validate_port(self.port))
        object.__setattr__(self, "root", os.path.abspath(self.root))

        if not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise ValueError("Worker count must be at least 1")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("Timeout must be positive")
        if not isinstance(self.backlog, int) or self.backlog < 1:
            raise ValueError("Backlog must be at least 1")
        if not os.path.isdir(self.root):
            raise ValueError(f"Served root is not a directory: {self.root}")
