"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

The connection hands the parser exactly one message; the parser turns it
into an HTTPRequest or raises HTTPParseError carrying the status to reply
with.

    POST /post HTTP/1.1                      ← method, target, version
    Host: localhost:3000                     ← names folded to lower case
    Content-Length: 58
                                             ← blank line
    {"summary": "s", "contents": "c", ...}   ← body, kept as bytes

=============================================================================
"""

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple
from urllib.parse import unquote, urlsplit

if TYPE_CHECKING:
    from .router import RouteMatch


METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"})
VERSIONS = ("HTTP/1.0", "HTTP/1.1")


class HTTPParseError(Exception):
    """Bytes that cannot be served, and the status to answer them with."""

    def __init__(self, message: str, status: HTTPStatus = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status = status


@dataclass
class HTTPRequest:
    """
    One parsed request.

    ``route`` is None until a Router matches the request. Handlers that
    read path parameters treat a missing route as a wiring fault.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    route: Optional["RouteMatch"] = field(default=None, repr=False)
    client_address: Tuple[str, int] = ("", 0)

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """HTTP/1.1 stays open unless told to close; HTTP/1.0 the reverse."""
        token = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.0":
            return token == "keep-alive"
        return token != "close"


class RequestParser:
    """Parses one complete HTTP/1.x message at a time."""

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(self, data: bytes, client_address: Tuple[str, int] = ("", 0)) -> HTTPRequest:
        """
        Raises:
            HTTPParseError: 400 for malformed input, 405 for an unknown
                method, 413 above ``max_request_size``, 505 for protocol
                versions other than HTTP/1.0 and HTTP/1.1.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"request of {len(data)} bytes exceeds {self.max_request_size}",
                HTTPStatus.REQUEST_ENTITY_TOO_LARGE,
            )

        head, blank, rest = data.partition(b"\r\n\r\n")
        if not blank:
            raise HTTPParseError("request has no blank line after its headers")

        request_line, *header_lines = head.decode("latin-1").split("\r\n")
        method, path, version = self._request_line(request_line)
        headers = self._headers(header_lines)

        length = self._content_length(headers)
        if len(rest) < length:
            raise HTTPParseError(f"body has {len(rest)} bytes, Content-Length says {length}")

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=rest[:length],
            client_address=client_address,
        )

    @staticmethod
    def _request_line(line: str) -> Tuple[str, str, str]:
        parts = line.split(" ")
        if len(parts) != 3 or not all(parts):
            raise HTTPParseError(f"malformed request line {line!r}")

        method, target, version = parts
        if method not in METHODS:
            raise HTTPParseError(f"unsupported method {method!r}", HTTPStatus.METHOD_NOT_ALLOWED)
        if version not in VERSIONS:
            raise HTTPParseError(
                f"unsupported protocol {version!r}",
                HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
            )

        return method, unquote(urlsplit(target).path) or "/", version

    @staticmethod
    def _headers(lines: List[str]) -> Dict[str, str]:
        """
        Repeated names are joined with ``", "``. A line starting with
        whitespace continues the previous header. Lines without a colon are
        dropped.
        """
        headers: Dict[str, str] = {}
        last: Optional[str] = None

        for line in lines:
            if line[:1] in (" ", "\t"):
                if last is not None:
                    headers[last] += " " + line.strip()
                continue

            name, colon, value = line.partition(":")
            if not colon:
                continue

            last = name.strip().lower()
            value = value.strip()
            headers[last] = f"{headers[last]}, {value}" if last in headers else value

        return headers

    @staticmethod
    def _content_length(headers: Dict[str, str]) -> int:
        raw = headers.get("content-length", "0")
        if not raw.isdigit():
            raise HTTPParseError(f"bad Content-Length {raw!r}")
        return int(raw)
