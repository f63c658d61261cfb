"""
=============================================================================
FEED REQUEST HANDLERS
=============================================================================

Three stateless handlers that share one Store:

    ┌──────────────────────────────────────────────────────────────────────┐
    │  GET  /feed      FeedHandler       store.all()         → 200 [...]  │
    │  POST /post      MakePostHandler   store.add(post)     → 201 {...}  │
    │  GET  /post/:id  PostHandler       store.find_by_id()  → 200 {...}  │
    └──────────────────────────────────────────────────────────────────────┘

=============================================================================
ERROR SHORT-CIRCUITING
=============================================================================

The helpers below either return a value or raise a HandlerError tagged with
the status to answer with. A handler's ``handle()`` is therefore written
as a straight line:

    def handle(self, request):
        raw_id = path_param(request, "id")       # 500 / 400
        post_id = parse_uuid(raw_id)             # 400
        post = self.store.find_by_id(post_id)    # 404
        return ...                               # 200

and ``Handler.__call__`` converts whatever was raised into the response.
Error bodies are the plain description text.

The Content-Type header is not set here; JSONContentTypeMiddleware stamps
it on every response after the handler returns.

=============================================================================
"""

from abc import ABC, abstractmethod
from http import HTTPStatus
from typing import Any
import json
import logging
import uuid

from .errors import ClientError, HandlerError, NotFoundError, ServerError
from .http.request import HTTPRequest
from .http.response import HTTPResponse, ResponseBuilder, error_response
from .model import PayloadError, PostPayload
from .store import Store


logger = logging.getLogger(__name__)


# =============================================================================
# HELPERS
# =============================================================================

def encode_json(data: Any) -> bytes:
    """
    Serialise ``data`` to JSON bytes.

    Raises:
        ServerError: If ``data`` cannot be encoded.
    """
    try:
        return json.dumps(data, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise ServerError(f"failed to encode response: {e}") from e


def read_body(request: HTTPRequest) -> str:
    """
    The request body as text.

    Raises:
        ServerError: If the body is not valid UTF-8 and cannot be read.
    """
    try:
        return request.body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ServerError(f"failed to read request body: {e}") from e


def path_param(request: HTTPRequest, name: str) -> str:
    """
    A path parameter captured by the router.

    Raises:
        ServerError: If the request never went through a router.
        ClientError: If the router did not capture ``name``.
    """
    if request.route is None:
        raise ServerError("no router context available for this request")

    value = request.route.get(name)
    if not value:
        raise ClientError(f"missing path parameter '{name}'")
    return value


def parse_uuid(value: str) -> uuid.UUID:
    """
    Raises:
        ClientError: If ``value`` is not a valid UUID.
    """
    try:
        return uuid.UUID(value)
    except ValueError as e:
        raise ClientError(f"invalid post id {value!r}: {e}") from e


# =============================================================================
# HANDLERS
# =============================================================================

class Handler(ABC):
    """
    Base class for route handlers.

    Instances are callables (``handler(request) -> response``) and can be
    registered on a Router directly. Subclasses implement ``handle()`` and
    raise HandlerError subclasses for failures.
    """

    def __init__(self, store: Store):
        self.store = store

    @abstractmethod
    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Produce the response for ``request``."""

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        try:
            return self.handle(request)
        except HandlerError as e:
            if e.status >= 500:
                logger.error(f"{self.name} {request.method} {request.path}: {e.message}")
            else:
                logger.warning(f"{self.name} {request.method} {request.path}: {e.message}")
            return error_response(e.status, e.message)
        except Exception:
            logger.exception(f"{self.name} {request.method} {request.path} failed")
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error")

    @property
    def name(self) -> str:
        return self.__class__.__name__


class FeedHandler(Handler):
    """Every post, oldest first, as a JSON array."""

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        posts = self.store.all()
        payload = encode_json([post.to_dict() for post in posts])
        return ResponseBuilder().status(HTTPStatus.OK).body(payload).build()


class MakePostHandler(Handler):
    """
    Create a post from the request body.

    The server assigns the uuid and timestamp; client-supplied values for
    those fields are ignored. Answers 201 with the stored post and a
    Location header pointing at it.
    """

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        text = read_body(request)

        try:
            payload = PostPayload.from_json(text)
        except PayloadError as e:
            raise ClientError(str(e)) from e

        post = payload.to_post()
        self.store.add(post)
        logger.info(f"Created post {post.uuid} by {post.author_handle!r}")

        # The body is the stored post, with the server-assigned uuid and
        # date_time, not an echo of the request payload.
        return (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .header("Location", f"/post/{post.uuid}")
            .body(encode_json(post.to_dict()))
            .build())


class PostHandler(Handler):
    """A single post looked up by the ``:id`` path parameter."""

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        post_id = parse_uuid(path_param(request, "id"))

        post = self.store.find_by_id(post_id)
        if post is None:
            raise NotFoundError(f"no post with id {post_id}")

        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .body(encode_json(post.to_dict()))
            .build())


class Handlers:
    """The three feed handlers, all bound to the same store."""

    def __init__(self, store: Store):
        self.store = store
        self.feed = FeedHandler(store)
        self.make_post = MakePostHandler(store)
        self.post = PostHandler(store)
