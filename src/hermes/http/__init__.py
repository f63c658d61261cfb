"""
HTTP protocol layer: request parsing, response building and URL routing.
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    JSON_CONTENT_TYPE,
    error_response,
    not_found,
    method_not_allowed,
)
from .router import Router, Route, RouteMatch, Handler

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "HTTPResponse",
    "ResponseBuilder",
    "JSON_CONTENT_TYPE",
    "error_response",
    "not_found",
    "method_not_allowed",
    "Router",
    "Route",
    "RouteMatch",
    "Handler",
]
