"""
=============================================================================
APPLICATION WIRING
=============================================================================

Builds the feed service out of its parts:

    Store(seed posts)
        │ shared by
        ▼
    Handlers ── feed ───────► GET  /feed
             ── make_post ──► POST /post
             ── post ───────► GET  /post/:id

    middleware:  LoggingMiddleware  →  JSONContentTypeMiddleware  →  router

=============================================================================
"""

from typing import Optional

from .config import ServerConfig
from .handlers import Handlers
from .middleware import JSONContentTypeMiddleware, LoggingMiddleware
from .model import Author, Post
from .server import HTTPServer
from .store import Store


LAUNCH_AUTHOR = Author("Mathieu")

LAUNCH_POSTS = (
    ("First post", "This is the first post ever"),
    ("Hermes is now online", "Today marks the day that Hermes is online!"),
)


def seed_store(store: Store, author: Author = LAUNCH_AUTHOR) -> Store:
    """Add the launch posts to ``store`` and return it."""
    for summary, contents in LAUNCH_POSTS:
        store.add(Post.new(summary, contents, author))
    return store


def create_app(
    config: Optional[ServerConfig] = None,
    store: Optional[Store] = None,
) -> HTTPServer:
    """
    Build a ready-to-run feed server.

    Args:
        config: Server settings, defaults to ``ServerConfig()``.
        store: Store to serve. When omitted a new one is created and,
            if ``config.seed`` is set, filled with the launch posts.

    Returns:
        An HTTPServer with routes and middleware registered; call
        ``run()`` to serve.
    """
    config = config or ServerConfig()

    if store is None:
        store = Store()
        if config.seed:
            seed_store(store)

    server = HTTPServer(config)
    server.use(LoggingMiddleware(log_format=config.log_format))
    server.use(JSONContentTypeMiddleware())

    handlers = Handlers(store)
    server.router.add("GET", "/feed", handlers.feed, name="feed")
    server.router.add("POST", "/post", handlers.make_post, name="make_post")
    server.router.add("GET", "/post/:id", handlers.post, name="post")

    return server
