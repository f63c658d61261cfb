"""
pytest configuration and fixtures.
"""

import http.client
import json
import threading
from datetime import datetime, timezone
from typing import Generator, Optional
from uuid import UUID

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hermes import Author, HTTPServer, Post, ServerConfig, Store, create_app


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /feed?limit=10 HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a post payload."""
    body = b'{"summary": "s", "contents": "c", "author_handle": "me"}'
    return (
        b"POST /post HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def author() -> Author:
    return Author("Mathieu")


@pytest.fixture
def post(author: Author) -> Post:
    """A post with a fixed id and timestamp."""
    return Post.new(
        "First post",
        "This is the first post ever",
        author,
        date_time=datetime(2024, 1, 1, 12, 30, tzinfo=timezone.utc),
        uuid=UUID("6f1c2a9e-4b7d-4c1e-9a53-2d8f0b6e7c41"),
    )


@pytest.fixture
def store() -> Store:
    """An empty store."""
    return Store()


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=0.5,
        log_level="WARNING",
        seed=False,
    )


class TestServer:
    """Runs a server in a background thread for integration tests."""

    __test__ = False

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self) -> None:
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self) -> None:
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def request(self, method: str, path: str, body: Optional[bytes] = None):
        """
        Send one request on a fresh connection.

        Returns:
            (status, headers dict, raw body bytes)
        """
        conn = http.client.HTTPConnection("127.0.0.1", self.port, timeout=5.0)
        try:
            headers = {"Connection": "close"}
            if body is not None:
                headers["Content-Type"] = "application/json"
            conn.request(method, path, body=body, headers=headers)
            response = conn.getresponse()
            return response.status, dict(response.getheaders()), response.read()
        finally:
            conn.close()

    def get_json(self, path: str):
        status, _, body = self.request("GET", path)
        return status, json.loads(body)


@pytest.fixture
def test_server(config: ServerConfig, store: Store) -> Generator[TestServer, None, None]:
    """The feed app, serving ``store`` on a free port."""
    test_srv = TestServer(create_app(config, store=store))
    test_srv.start()

    yield test_srv

    test_srv.stop()
