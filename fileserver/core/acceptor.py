"""
Connection acceptor: the listening socket and the bounded worker pool.

Accepting never waits on pool capacity. Connections submitted while every
worker is busy wait in the executor's queue until a worker frees up.
"""

"""
Copyright 2026 Chris Bunting
File: acceptor.py | Purpose: Listening socket and bounded worker pool
@author Chris Bunting | @version 1.0.0

CHANGELOG:
2026-10-18 - Chris Bunting: Initial implementation
"""

import selectors
import socket
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from .config import ListenerConfig
from .request_handler import RequestHandler
from .server_utils import (
    DiagnosticSink, ServerStartupError, configure_socket_opts, default_logger
)


class ConnectionAcceptor:
    """Accepts TCP connections and dispatches each to a RequestHandler.

    Attributes:
        config: Validated listener settings
        handler: Callable run on a worker thread for every connection
        poll_interval: Seconds between checks for a shutdown request
    """

    def __init__(self, config: ListenerConfig,
                 handler: Optional[RequestHandler] = None,
                 sink: Optional[DiagnosticSink] = None,
                 poll_interval: float = 0.5):
        self.config = config
        self.sink = sink or DiagnosticSink()
        self.handler = handler or RequestHandler(
            config.root, timeout=config.timeout, sink=self.sink
        )
        self.poll_interval = poll_interval
        self.sock: Optional[socket.socket] = None
        self._pool: Optional[ThreadPoolExecutor] = None
        self._shutdown_event = threading.Event()
        self._stopped = threading.Event()

    @property
    def server_address(self):
        return self.sock.getsockname() if self.sock else None

    def bind(self) -> None:
        """Bind and listen on the configured address.

        Raises:
            ServerStartupError: If the port cannot be bound
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            configure_socket_opts(sock)
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except Exception as e:
            sock.close()
            raise ServerStartupError(
                f"Couldn't start server on {self.config.host}:{self.config.port}: {e}"
            ) from e
        self.sock = sock
        self.sink.info("Listening for connections on port %d", self.config.port)

    def run(self) -> None:
        """Bind, then accept connections until shutdown() is called."""
        if self.sock is None:
            self.bind()
        self.serve_forever()

    def serve_forever(self) -> None:
        self._stopped.clear()
        self._pool = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="fileserver-worker",
        )
        try:
            with selectors.DefaultSelector() as selector:
                selector.register(self.sock, selectors.EVENT_READ)
                while not self._shutdown_event.is_set():
                    if selector.select(self.poll_interval):
                        self._accept_once()
        finally:
            self._pool.shutdown(wait=True)
            self.sock.close()
            self._stopped.set()

    def _accept_once(self) -> None:
        try:
            connection, address = self.sock.accept()
        except OSError as e:
            # A single failed accept is not fatal
            self.sink.error("Error while accepting connection: %s", e)
            return

        try:
            self._pool.submit(self.handler, connection, address)
        except RuntimeError as e:
            # Pool already shut down
            self.sink.error("Error while dispatching connection: %s", e)
            connection.close()

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop accepting and wait for in-flight handlers to finish."""
        self._shutdown_event.set()
        if self._pool is not None:
            self._stopped.wait(timeout)

    def __enter__(self) -> "ConnectionAcceptor":
        return self

    def __exit__(self, *args) -> None:
        if self._pool is not None:
            self.shutdown()
        elif self.sock is not None:
            self.sock.close()


def run(config: ListenerConfig, sink: Optional[DiagnosticSink] = None) -> None:
    """Serve config.root on config.port until the process is terminated."""
    acceptor = ConnectionAcceptor(config, sink=sink)
    try:
        acceptor.run()
    except KeyboardInterrupt:
        default_logger.info("Received interrupt, shutting down...")
        acceptor.shutdown()
