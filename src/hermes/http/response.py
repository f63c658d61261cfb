"""
=============================================================================
HTTP RESPONSES
=============================================================================

Handlers return an HTTPResponse, usually assembled with ResponseBuilder:

    (ResponseBuilder()
        .status(HTTPStatus.CREATED)
        .header("Location", f"/post/{post.uuid}")
        .body(payload)
        .build())

The server writes it with ``to_bytes()``, which supplies Content-Length,
Date and Server unless the response already carries them.

=============================================================================
"""

from dataclasses import dataclass, field
from email.utils import formatdate
from http import HTTPStatus
from typing import Any, Dict, List, Union
import json


JSON_CONTENT_TYPE = "application/json"


@dataclass
class HTTPResponse:
    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def to_bytes(self, server_name: str = "Hermes/1.0") -> bytes:
        """Status line, headers, blank line, body."""
        headers = {
            "Content-Length": str(len(self.body)),
            "Date": formatdate(usegmt=True),
            "Server": server_name,
            **self.headers,
        }
        lines = [f"HTTP/1.1 {self.status.value} {self.status.phrase}"]
        lines += [f"{name}: {value}" for name, value in headers.items()]
        return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + self.body


class ResponseBuilder:
    """Fluent HTTPResponse construction; every setter returns the builder."""

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body = b""

    def status(self, status: Union[HTTPStatus, int]) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Raw body; text is encoded as UTF-8."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        self._body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        return self.header("Content-Type", JSON_CONTENT_TYPE)

    def close_connection(self) -> "ResponseBuilder":
        return self.header("Connection", "close")

    def build(self) -> HTTPResponse:
        return HTTPResponse(self._status, dict(self._headers), self._body)


def error_response(status: HTTPStatus, message: str) -> HTTPResponse:
    """``status`` with the bare description text as the body."""
    return ResponseBuilder().status(status).body(message).build()


def not_found(message: str) -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).json({"error": message}).build()


def method_not_allowed(allowed: List[str]) -> HTTPResponse:
    """405 plus the Allow header listing what the path does accept."""
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed))
        .json({"error": "Method Not Allowed", "allowed": allowed})
        .build())
