"""
Marks every response leaving the pipeline as JSON.

Handlers and the router leave Content-Type alone; this layer sets it after
they return, overwriting anything already there.
"""

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, JSON_CONTENT_TYPE


class JSONContentTypeMiddleware(Middleware):

    def __init__(self, content_type: str = JSON_CONTENT_TYPE):
        self.content_type = content_type

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        response = next(request)
        response.headers["Content-Type"] = self.content_type
        return response
