"""
=============================================================================
FEED DATA MODEL
=============================================================================

Immutable value types for the feed and their JSON wire form.

    Author("Mathieu")
         │  handle copied onto the post, the Author itself is not kept
         ▼
    Post(summary, contents, author_handle, date_time, uuid)
         │
         ▼  to_dict() / from_dict()
    {"summary": "First post",
     "contents": "This is the first post ever",
     "author_handle": "Mathieu",
     "date_time": "2026-10-19T09:00:00Z",
     "uuid": "6f1c2a9e-..."}

Both types are frozen dataclasses: once a post is in the store nothing can
change it, so handing one to a caller never exposes shared mutable state.

=============================================================================
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import json
import uuid as uuid_module


class PayloadError(ValueError):
    """A request body that does not describe a post."""


@dataclass(frozen=True)
class Author:
    """Who wrote a post. Only the handle matters; it is not unique."""

    handle: str


@dataclass(frozen=True)
class Post:
    """
    One entry in the feed.

    ``uuid`` and ``date_time`` are fixed when the post is created and never
    change afterwards. ``date_time`` is always timezone-aware UTC.
    """

    summary: str
    contents: str
    author_handle: str
    date_time: datetime
    uuid: uuid_module.UUID

    @classmethod
    def new(
        cls,
        summary: str,
        contents: str,
        author: Author,
        date_time: Optional[datetime] = None,
        uuid: Optional[uuid_module.UUID] = None,
    ) -> "Post":
        """
        Create a post by ``author``.

        Args:
            summary: One-line headline.
            contents: Body text, may be empty.
            author: The author; only the handle is kept.
            date_time: Creation time, defaults to now (UTC).
            uuid: Identifier, defaults to a fresh random UUID.
        """
        return cls(
            summary=summary,
            contents=contents,
            author_handle=author.handle,
            date_time=to_utc(date_time) if date_time is not None else datetime.now(timezone.utc),
            uuid=uuid if uuid is not None else uuid_module.uuid4(),
        )

    def to_dict(self) -> Dict[str, Any]:
        """The JSON-ready wire form."""
        return {
            "summary": self.summary,
            "contents": self.contents,
            "author_handle": self.author_handle,
            "date_time": format_timestamp(self.date_time),
            "uuid": str(self.uuid),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Post":
        """
        Rebuild a post from its wire form.

        Raises:
            PayloadError: If a field is missing or has the wrong type.
        """
        if not isinstance(data, dict):
            raise PayloadError(f"expected a JSON object, got {_json_type(data)}")

        fields = {
            name: _require_str(data, name)
            for name in ("summary", "contents", "author_handle", "date_time", "uuid")
        }
        return cls(
            summary=fields["summary"],
            contents=fields["contents"],
            author_handle=fields["author_handle"],
            date_time=parse_timestamp(fields["date_time"]),
            uuid=_decode_uuid(fields["uuid"]),
        )


@dataclass(frozen=True)
class PostPayload:
    """
    What a client may submit to create a post.

    Only ``summary``, ``contents`` and ``author_handle`` come from the
    client. The server assigns the identifier and timestamp, so any
    ``uuid`` or ``date_time`` in the body is ignored.
    """

    summary: str
    contents: str
    author_handle: str

    @classmethod
    def from_json(cls, text: str) -> "PostPayload":
        """
        Decode a create-post request body.

        Raises:
            PayloadError: If ``text`` is not JSON, not an object, or lacks
                the required string fields.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise PayloadError(f"invalid JSON: {e}") from e
        except RecursionError as e:
            raise PayloadError("invalid JSON: nested too deeply") from e

        if not isinstance(data, dict):
            raise PayloadError(f"expected a JSON object, got {_json_type(data)}")

        contents = data.get("contents", "")
        if not isinstance(contents, str):
            raise PayloadError(f"field 'contents' must be a string, got {_json_type(contents)}")

        return cls(
            summary=_require_str(data, "summary"),
            contents=contents,
            author_handle=_require_str(data, "author_handle"),
        )

    def to_post(
        self,
        date_time: Optional[datetime] = None,
        uuid: Optional[uuid_module.UUID] = None,
    ) -> Post:
        """Stamp the payload with a server-side id and creation time."""
        return Post.new(
            self.summary,
            self.contents,
            Author(self.author_handle),
            date_time=date_time,
            uuid=uuid,
        )


# =============================================================================
# FIELD CODECS
# =============================================================================

def to_utc(value: datetime) -> datetime:
    """Normalise to aware UTC; naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with a ``Z`` suffix: ``2024-01-01T00:00:00Z``."""
    return to_utc(value).isoformat().replace("+00:00", "Z")


def parse_timestamp(text: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into aware UTC.

    Raises:
        PayloadError: If ``text`` is not a valid timestamp.
    """
    candidate = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return to_utc(datetime.fromisoformat(candidate))
    except ValueError as e:
        raise PayloadError(f"invalid timestamp {text!r}: {e}") from e


def _decode_uuid(text: str) -> uuid_module.UUID:
    """
    Parse a UUID string.

    Raises:
        PayloadError: If ``text`` is not a valid UUID.
    """
    try:
        return uuid_module.UUID(text)
    except (ValueError, TypeError, AttributeError) as e:
        raise PayloadError(f"invalid UUID {text!r}: {e}") from e


def _require_str(data: Dict[str, Any], name: str) -> str:
    if name not in data:
        raise PayloadError(f"missing field '{name}'")
    value = data[name]
    if not isinstance(value, str):
        raise PayloadError(f"field '{name}' must be a string, got {_json_type(value)}")
    return value


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"
