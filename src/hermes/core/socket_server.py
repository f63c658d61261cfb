"""
Listening socket and accept loop.

``serve(on_connection)`` binds, listens and hands each accepted client to
``on_connection`` as a Connection. ``accept()`` wakes up once a second so
a ``shutdown()`` from another thread is noticed. When serving on the main
thread, SIGINT and SIGTERM call ``shutdown()`` too; elsewhere Python does
not allow installing signal handlers.
"""

from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Tuple
import logging
import signal
import socket
import threading

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:

    def __init__(self, config: ServerConfig):
        self.config = config
        self._bound: Optional[Tuple[str, int]] = None
        self._ready = threading.Event()
        self._stopping = threading.Event()

    @property
    def address(self) -> Tuple[str, int]:
        """The bound address once listening (port 0 resolved), else the configured one."""
        return self._bound or (self.config.host, self.config.port)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._ready.wait(timeout)

    def shutdown(self) -> None:
        self._stopping.set()

    def serve(self, on_connection: Callable[[Connection], None]) -> None:
        """
        Accept until ``shutdown()``.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._stopping.clear()
        listener = socket.create_server(
            (self.config.host, self.config.port),
            backlog=self.config.backlog,
        )
        listener.settimeout(1.0)

        with listener, self._signal_handlers():
            self._bound = listener.getsockname()[:2]
            self._ready.set()
            logger.info(f"Listening on {self._bound[0]}:{self._bound[1]}")

            try:
                while not self._stopping.is_set():
                    try:
                        client, address = listener.accept()
                    except socket.timeout:
                        continue
                    on_connection(Connection(
                        client,
                        address[:2],
                        buffer_size=self.config.buffer_size,
                        timeout=self.config.timeout,
                        keep_alive_timeout=self.config.keep_alive_timeout,
                        max_request_size=self.config.max_request_size,
                    ))
            finally:
                self._ready.clear()

        logger.info("Listener closed")

    @contextmanager
    def _signal_handlers(self) -> Iterator[None]:
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        previous = {
            sig: signal.signal(sig, self._on_signal)
            for sig in (signal.SIGINT, signal.SIGTERM)
        }
        try:
            yield
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    def _on_signal(self, signum, frame) -> None:
        logger.info(f"Received {signal.Signals(signum).name}, shutting down")
        self.shutdown()
