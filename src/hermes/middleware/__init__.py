"""
Layers run around the router: access logging and JSON Content-Type.
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .content_type import JSONContentTypeMiddleware
from .logging import LoggingMiddleware

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "JSONContentTypeMiddleware",
    "LoggingMiddleware",
]
