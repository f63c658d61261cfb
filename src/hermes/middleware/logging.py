"""
=============================================================================
ACCESS LOG
=============================================================================

One line per request on the ``hermes.access`` logger:

    text:  127.0.0.1 "POST /post" 201 143B 0.41ms id=a1b2c3d4
    json:  {"request_id": "a1b2c3d4", "method": "POST", "path": "/post", ...}

The id is returned to the client in an ``X-Request-ID`` header so a report
can be matched to its log line. Register this middleware first so its
timing covers every other layer.

=============================================================================
"""

import json
import logging
import time
import uuid

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


access_logger = logging.getLogger("hermes.access")


class LoggingMiddleware(Middleware):
    """Access logging in ``"text"`` or ``"json"`` format."""

    def __init__(self, log_format: str = "text"):
        self.log_format = log_format

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        started = time.perf_counter()

        try:
            response = next(request)
        except Exception:
            access_logger.exception(f"id={request_id} {request.method} {request.path} failed")
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        access_logger.info(self._line(request, response, request_id, elapsed_ms))
        return response

    def _line(
        self,
        request: HTTPRequest,
        response: HTTPResponse,
        request_id: str,
        elapsed_ms: float,
    ) -> str:
        if self.log_format == "json":
            return json.dumps({
                "request_id": request_id,
                "client": request.client_address[0] or None,
                "method": request.method,
                "path": request.path,
                "status": int(response.status),
                "bytes": len(response.body),
                "duration_ms": round(elapsed_ms, 2),
                "user_agent": request.user_agent or None,
            })

        client = request.client_address[0] or "-"
        return (
            f'{client} "{request.method} {request.path}" {int(response.status)} '
            f"{len(response.body)}B {elapsed_ms:.2f}ms id={request_id}"
        )
