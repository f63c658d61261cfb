"""
=============================================================================
URL ROUTER
=============================================================================

    GET  /feed       → handlers.feed
    POST /post       → handlers.make_post
    GET  /post/:id   → handlers.post      "/post/6f1c..."  →  {"id": "6f1c..."}

A ``:name`` segment captures one path segment. The first route whose
method and pattern both match wins and is attached to the request as
``request.route``. A path matched only under other methods gets 405 with
an Allow header; a path matched by nothing gets 404.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
import logging
import re

from .request import HTTPRequest
from .response import HTTPResponse, method_not_allowed, not_found


logger = logging.getLogger(__name__)


# Plain functions, bound methods and Handler instances all qualify.
Handler = Callable[[HTTPRequest], HTTPResponse]


def compile_pattern(pattern: str) -> re.Pattern:
    """``/post/:id`` becomes ``^/post/(?P<id>[^/]+)$``."""
    segments = [
        f"(?P<{segment[1:]}>[^/]+)" if segment.startswith(":") else re.escape(segment)
        for segment in pattern.strip("/").split("/")
        if segment
    ]
    return re.compile("^/" + "/".join(segments) + "$")


def _normalize(path: str) -> str:
    return "/" + path.strip("/")


@dataclass
class Route:
    method: str
    pattern: str
    handler: Handler
    name: Optional[str] = None
    regex: re.Pattern = field(init=False, repr=False)

    def __post_init__(self):
        self.method = self.method.upper()
        self.regex = compile_pattern(self.pattern)


@dataclass
class RouteMatch:
    """The matched route and the path parameters it captured."""

    route: Route
    params: Dict[str, str]

    def get(self, name: str) -> Optional[str]:
        return self.params.get(name)


class Router:
    """Ordered route table."""

    def __init__(self):
        self._routes: List[Route] = []

    def add(self, method: str, pattern: str, handler: Handler, name: Optional[str] = None) -> Route:
        route = Route(method, pattern, handler, name)
        self._routes.append(route)
        logger.debug(f"Route {route.method} {route.pattern} -> {name or handler!r}")
        return route

    def routes(self) -> List[Route]:
        return list(self._routes)

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        path = _normalize(path)
        for route in self._routes:
            if route.method != method:
                continue
            found = route.regex.match(path)
            if found:
                return RouteMatch(route, found.groupdict())
        return None

    def allowed_methods(self, path: str) -> List[str]:
        path = _normalize(path)
        return sorted({route.method for route in self._routes if route.regex.match(path)})

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Call the matching handler with ``request.route`` set, or answer 404/405."""
        match = self.match(request.method, request.path)
        if match is None:
            allowed = self.allowed_methods(request.path)
            if allowed:
                return method_not_allowed(allowed)
            return not_found(f"no route for {request.path}")

        request.route = match
        return match.route.handler(request)
