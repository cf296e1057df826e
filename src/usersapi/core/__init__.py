"""
=============================================================================
CORE NETWORKING
=============================================================================

    socket_server.py  - listening socket and accept loop
    connection.py     - per-client buffered request reader/response writer
    thread_pool.py    - worker threads that process connections

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLarge
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",
]
