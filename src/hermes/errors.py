"""
Errors raised inside request handlers.

Each class carries the HTTP status it maps to. Handlers raise them from
small helper functions and ``Handler.__call__`` turns them into responses,
so none of them ever escapes the handler boundary.

    HandlerError (500)
    ├── ClientError   (400)  malformed or missing input
    ├── NotFoundError (404)  valid input, nothing matches
    └── ServerError   (500)  encode failure, unreadable body, no router context
"""

from http import HTTPStatus


class HandlerError(Exception):
    """Base class: a failure that should become an HTTP error response."""

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str = ""):
        super().__init__(message or self.status.phrase)
        self.message = message or self.status.phrase


class ClientError(HandlerError):
    status = HTTPStatus.BAD_REQUEST


class NotFoundError(HandlerError):
    status = HTTPStatus.NOT_FOUND


class ServerError(HandlerError):
    status = HTTPStatus.INTERNAL_SERVER_ERROR
