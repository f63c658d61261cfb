"""
=============================================================================
CLIENT CONNECTION
=============================================================================

``read_request()`` returns the bytes of exactly one request. TCP delivers
arbitrary chunks, so it buffers in two steps:

    1. until the blank line that ends the headers
    2. until Content-Length bytes of body follow it

Anything received past that point belongs to the next pipelined request
and stays in the buffer.

The first request must arrive within ``timeout`` or TimeoutError is
raised. Later requests on a kept-alive connection get
``keep_alive_timeout``, after which the connection just ends.

=============================================================================
"""

from typing import Optional, Tuple
import logging
import re
import socket
import uuid


logger = logging.getLogger(__name__)


HEADER_END = b"\r\n\r\n"
_CONTENT_LENGTH = re.compile(rb"\r\ncontent-length:[ \t]*(\d+)", re.IGNORECASE)


class RequestTooLarge(Exception):
    """More than ``max_request_size`` bytes arrived without a full request."""


def declared_length(head: bytes) -> int:
    """Content-Length named in a raw header block, 0 when absent or unreadable."""
    match = _CONTENT_LENGTH.search(head)
    return int(match.group(1)) if match else 0


class Connection:
    """Buffered request reader over one client socket; closes on context exit."""

    def __init__(
        self,
        sock: socket.socket,
        address: Tuple[str, int],
        buffer_size: int = 8192,
        timeout: Optional[float] = 30.0,
        keep_alive_timeout: float = 5.0,
        max_request_size: int = 1024 * 1024,
    ):
        self.socket = sock
        self.address = address
        self.id = uuid.uuid4().hex[:8]
        self.buffer_size = buffer_size
        self.timeout = timeout
        self.keep_alive_timeout = keep_alive_timeout
        self.max_request_size = max_request_size
        self.requests_handled = 0
        self.closed = False
        self._pending = bytearray()

    def read_request(self) -> Optional[bytes]:
        """
        Returns:
            One request's bytes, or None when the peer closed the connection
            or a kept-alive connection stayed idle.

        Raises:
            TimeoutError: The first request did not arrive within ``timeout``.
            RequestTooLarge: The buffer grew past ``max_request_size``.
        """
        first = self.requests_handled == 0
        self.socket.settimeout(self.timeout if first else self.keep_alive_timeout)

        try:
            while HEADER_END not in self._pending:
                if not self._fill():
                    return None

            body_start = self._pending.index(HEADER_END) + len(HEADER_END)
            end = body_start + declared_length(bytes(self._pending[:body_start]))
            # A short body is passed on as is; the parser rejects it.
            while len(self._pending) < end and self._fill():
                pass

        except socket.timeout:
            if not first:
                logger.debug(f"[{self.id}] idle keep-alive connection expired")
                return None
            raise TimeoutError(f"no request within {self.timeout}s") from None

        request = bytes(self._pending[:end])
        del self._pending[:end]
        self.requests_handled += 1
        return request

    def _fill(self) -> bool:
        """Receive one chunk. False once the peer has closed or reset."""
        try:
            chunk = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return False

        self._pending += chunk
        if len(self._pending) > self.max_request_size:
            raise RequestTooLarge(f"over {self.max_request_size} bytes without a complete request")
        return bool(chunk)

    def send(self, data: bytes) -> bool:
        """False when the peer is gone."""
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] send failed: {e}")
            return False
        return True

    def close(self) -> None:
        """Half-close, drain briefly so the reply is not reset, then release."""
        if self.closed:
            return
        self.closed = True

        try:
            self.socket.shutdown(socket.SHUT_WR)
            self.socket.settimeout(0.5)
            while self.socket.recv(self.buffer_size):
                pass
        except OSError:
            pass
        finally:
            self.socket.close()

        logger.debug(f"[{self.id}] closed after {self.requests_handled} request(s)")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
