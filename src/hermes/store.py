"""
=============================================================================
POST STORE
=============================================================================

The one piece of shared mutable state in the service: an append-only list
of posts behind a single lock.

    worker 1 ── add(post) ─────┐
    worker 2 ── all() ─────────┼──► [ Lock ] ──► _posts: [p0, p1, p2, ...]
    worker 3 ── find_by_id(x) ─┘                  oldest ─────────► newest

Every operation takes the lock with a ``with`` block, so it is released on
every exit path, exceptions included. Readers get a tuple copy, never the
list itself, so nothing outside the store can touch the sequence without
going through the lock.

Lookup by id is a linear scan, O(n) in the size of the feed.

=============================================================================
"""

from typing import Iterable, Optional, Tuple
import logging
import threading
import uuid

from .model import Post


logger = logging.getLogger(__name__)


class Store:
    """
    Thread-safe, insertion-ordered, in-memory collection of posts.

    One instance is created at startup and shared by every handler.
    Nothing is persisted; the feed starts over when the process restarts.
    """

    def __init__(self, posts: Iterable[Post] = ()):
        self._lock = threading.Lock()
        self._posts: list[Post] = list(posts)

    def add(self, post: Post) -> None:
        """
        Append ``post`` to the end of the feed.

        No validation is done and duplicate ids are not rejected.
        """
        with self._lock:
            self._posts.append(post)
            count = len(self._posts)
        logger.debug(f"Stored post {post.uuid} ({count} total)")

    def all(self) -> Tuple[Post, ...]:
        """Snapshot of every post, oldest first."""
        with self._lock:
            return tuple(self._posts)

    def find_by_id(self, post_id: uuid.UUID) -> Optional[Post]:
        """The first post whose uuid equals ``post_id``, or None."""
        with self._lock:
            return next((post for post in self._posts if post.uuid == post_id), None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._posts)

    def __repr__(self) -> str:
        return f"Store(posts={len(self)})"
