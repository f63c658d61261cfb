"""
=============================================================================
HERMES - a chronological feed of short posts over HTTP/JSON
=============================================================================

    GET  /feed        → 200  [post, post, ...]   (oldest first)
    POST /post        → 201  post                 (server assigns uuid + time)
    GET  /post/:id    → 200  post  | 400 bad id | 404 unknown

Posts live in memory for the lifetime of the process, in a lock-guarded
Store shared by every request handler. The HTTP/1.1 server underneath is
built on the standard library: sockets, a worker thread pool, a request
parser, a router and a middleware pipeline.

    from hermes import create_app, ServerConfig

    create_app(ServerConfig(port=3000)).run()

=============================================================================
"""

from .app import create_app, seed_store
from .config import ServerConfig
from .errors import ClientError, HandlerError, NotFoundError, ServerError
from .handlers import FeedHandler, Handler, Handlers, MakePostHandler, PostHandler
from .model import Author, PayloadError, Post, PostPayload
from .server import HTTPServer
from .store import Store

__version__ = "1.0.0"

__all__ = [
    "create_app",
    "seed_store",
    "ServerConfig",
    "HTTPServer",
    "Store",
    "Author",
    "Post",
    "PostPayload",
    "PayloadError",
    "Handler",
    "Handlers",
    "FeedHandler",
    "MakePostHandler",
    "PostHandler",
    "HandlerError",
    "ClientError",
    "NotFoundError",
    "ServerError",
]
