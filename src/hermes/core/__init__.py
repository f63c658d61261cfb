"""
Networking and concurrency: the listening socket, per-client connections
and the worker thread pool.
"""

from .connection import Connection, RequestTooLarge
from .socket_server import SocketServer
from .thread_pool import Task, ThreadPool

__all__ = [
    "Connection",
    "RequestTooLarge",
    "SocketServer",
    "Task",
    "ThreadPool",
]
