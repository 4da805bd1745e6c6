"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) to a handler using a declarative route table.

=============================================================================
ROUTING TABLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   POST   /users        → create                                     │
    │   GET    /users/:id    → read one                                   │
    │   GET    /users        → list all                                   │
    │   PUT    /users/:id    → update                                     │
    │   DELETE /users/:id    → delete                                     │
    │   (anything else)      → 404 "404 not found"                        │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SPECIFICITY, NOT REGISTRATION ORDER
=============================================================================

Prefix matching on raw request text ("starts with GET /users") makes the
table order load-bearing: "GET /users/7" also starts with "GET /users", so
the single-user rule has to be listed first or every read turns into a
list. Here each pattern compiles to an anchored regex and candidates are
tried most specific first:

    Pattern          Regex                         Key (segments, static)
    /users/:id       ^/users/(?P<id>[^/]*)$        (2, 1)
    /users           ^/users$                      (1, 1)

    1. More segments wins.
    2. Same segment count: more static segments wins
       (/users/me beats /users/:id).
    3. Still tied: registration order.

Anchored patterns never overlap across segment counts anyway, so the
outcome doesn't depend on the order routes were added in. "/users/" has two
segments as written and lands on /users/:id with id "".

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
import re

from .request import HTTPRequest
from .response import HTTPResponse


Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """
    A registered route.

        Route(
            path="/users/:id",
            method="GET",
            handler=get_user,
            name="get_user",
        )
    """

    path: str
    method: str
    handler: Handler
    name: Optional[str] = None

    # Internal: compiled regex, parameter names, and sort key
    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)
    _specificity: tuple = field(default=(0, 0), repr=False)


@dataclass
class RouteMatch:
    """A successful match: the route plus its extracted path parameters."""
    route: Route
    params: Dict[str, str]


class Router:
    """
    Method + path router with :param captures.

        router = Router()
        router.add_route("/users/:id", get_user, "GET", name="get_user")

        match = router.match("GET", "/users/7")
        match.params            # {"id": "7"}
    """

    def __init__(self):
        self._routes: List[Route] = []

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: str,
        name: Optional[str] = None,
    ) -> Route:
        """
        Register a route.

        Args:
            path: URL pattern (e.g. /users/:id)
            handler: Callable taking an HTTPRequest, returning an HTTPResponse
            method: HTTP method
            name: Optional route name

        Returns:
            The registered Route.
        """
        pattern, param_names, specificity = self._compile_pattern(path)

        route = Route(
            path=path,
            method=method.upper(),
            handler=handler,
            name=name,
            _pattern=pattern,
            _param_names=param_names,
            _specificity=specificity,
        )

        self._routes.append(route)
        # Stable sort: ties keep registration order
        self._routes.sort(key=lambda r: r._specificity, reverse=True)

        return route

    def _compile_pattern(self, path: str) -> tuple[re.Pattern, List[str], tuple]:
        """
        Compile "/users/:id" into ^/users/(?P<id>[^/]*)$.

        A parameter may capture an empty segment, so "/users/" reaches the
        id handlers instead of falling through to not-found.

        Returns:
            (compiled regex, parameter names, specificity key)
        """
        param_names: List[str] = []
        regex_parts = ["^"]
        static_count = 0

        segments = [s for s in path.split("/") if s]
        for segment in segments:
            regex_parts.append("/")

            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]*)")
            else:
                static_count += 1
                regex_parts.append(re.escape(segment))

        if not segments:
            regex_parts.append("/")

        regex_parts.append("$")
        pattern = re.compile("".join(regex_parts))

        return pattern, param_names, (len(segments), static_count)

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the most specific route for method and path.

        Paths are matched as sent. "/users/" is not "/users": it matches
        /users/:id with an empty id, which the handler rejects.

        Returns:
            RouteMatch if found, None otherwise.
        """
        method = method.upper()

        for route in self._routes:
            if route.method != method:
                continue

            match = route._pattern.match(path)
            if match:
                return RouteMatch(route=route, params=match.groupdict())

        return None

    def routes(self) -> List[Route]:
        """All routes, in matching order."""
        return list(self._routes)

    def describe(self) -> str:
        """
        One line per route, for the startup log:

            GET      /users/:id
            PUT      /users/:id
            ...
        """
        return "\n".join(f"  {route.method:8} {route.path}" for route in self._routes)
