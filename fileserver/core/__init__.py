"""
Core server components
"""

from .acceptor import ConnectionAcceptor, run
from .config import ListenerConfig
from .request_handler import RequestHandler
from .server_utils import DiagnosticSink, configure_logging

# Expose public interface
__all__ = [
    "ConnectionAcceptor",
    "run",
    "ListenerConfig",
    "RequestHandler",
    "DiagnosticSink",
    "configure_logging",
]
