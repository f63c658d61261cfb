"""
Middleware around the router.

A middleware is called with the request and ``next``, the rest of the
chain. ``MiddlewarePipeline.wrap`` nests them so the first one added is the
outermost layer:

    LoggingMiddleware( JSONContentTypeMiddleware( router.handle ) )
"""

from abc import ABC, abstractmethod
from functools import partial
from typing import Callable, List

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Answer ``request``, normally by delegating to ``next``."""


class MiddlewarePipeline:
    """Middleware in registration order."""

    def __init__(self):
        self._layers: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._layers.append(middleware)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        for middleware in reversed(self._layers):
            handler = partial(middleware, next=handler)
        return handler

    def __len__(self) -> int:
        return len(self._layers)
