from .core import (
    ConnectionAcceptor, ListenerConfig, RequestHandler, DiagnosticSink,
    configure_logging, run
)
from .core.content_types import content_type
from .core.path_resolver import resolve

__version__ = '1.0.0'

__all__ = [
    # Core components
    'ConnectionAcceptor',
    'ListenerConfig',
    'RequestHandler',
    'DiagnosticSink',
    'configure_logging',
    'run',

    # Lookup helpers
    'content_type',
    'resolve',
]
