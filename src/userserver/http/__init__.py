"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

The pieces between raw bytes and application handlers:

    bytes ──► RequestParser ──► HTTPRequest ──► Router ──► handler
                                                              │
    bytes ◄── HTTPResponse.to_bytes() ◄── ResponseBuilder ◄───┘

=============================================================================
"""

from .request import (
    HTTPRequest,
    RequestParser,
    extract_path_id,
    parse_user_id,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    not_found,
    route_not_found,
    internal_error,
    error_response,
)
from .router import Router, Route, RouteMatch
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "extract_path_id",
    "parse_user_id",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "not_found",
    "route_not_found",
    "internal_error",
    "error_response",

    # Routing
    "Router",
    "Route",
    "RouteMatch",

    # Status codes
    "HTTPStatus",
]
