"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Turns a domain outcome into the bytes written back on the socket.

=============================================================================
RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   HTTP/1.1 200 OK\r\n                       ← STATUS LINE           │
    │   Content-Type: application/json\r\n        ← HEADERS               │
    │   Content-Length: 44\r\n                                            │
    │   Connection: close\r\n                                             │
    │   Server: userserver/1.0\r\n                                        │
    │   \r\n                                      ← BLANK LINE            │
    │   {"id":1,"name":"Alice","email":"alice@x.com"}   ← BODY            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
OUTCOME → RESPONSE
=============================================================================

    ┌───────────────────────────────┬────────┬──────────────────────────┐
    │  Outcome                      │ Status │  Body                    │
    ├───────────────────────────────┼────────┼──────────────────────────┤
    │  created / updated / deleted  │  200   │  "User created" etc.     │
    │  one user / list of users     │  200   │  JSON                    │
    │  NotFoundError                │  404   │  "User not found"        │
    │  no route                     │  404   │  "404 not found"         │
    │  any other error              │  500   │  "Internal error"        │
    └───────────────────────────────┴────────┴──────────────────────────┘

Every connection carries exactly one request, so every response says
Connection: close.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Union

from ..errors import NotFoundError
from ..models import dump_json
from .status_codes import HTTPStatus


JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"

USER_CREATED = "User created"
USER_UPDATED = "User updated"
USER_DELETED = "User deleted"
USER_NOT_FOUND = "User not found"
ROUTE_NOT_FOUND = "404 not found"
INTERNAL_ERROR = "Internal error"


@dataclass
class HTTPResponse:
    """
    A response ready to be serialized.

    Use ResponseBuilder or the helpers at the bottom of this module
    rather than building one by hand.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {self.status.value} {self.status.phrase}"

    @property
    def text(self) -> str:
        """Body decoded as UTF-8 (handy in logs and tests)."""
        return self.body.decode("utf-8", errors="replace")

    def to_bytes(self, server_name: str = "userserver/1.0") -> bytes:
        """
        Serialize for socket.sendall().

        Content-Length, Connection and Server are filled in unless the
        caller already set them.
        """
        response_headers = dict(self.headers)
        response_headers.setdefault("Content-Length", str(len(self.body)))
        response_headers.setdefault("Connection", "close")
        response_headers.setdefault("Server", server_name)

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .json({"id": 1, "name": "Alice", "email": "alice@x.com"})
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: Union[HTTPStatus, int]) -> "ResponseBuilder":
        self._status = HTTPStatus.from_code(int(status))
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def text(self, text: str) -> "ResponseBuilder":
        """Literal string body (confirmation and error messages)."""
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = TEXT_CONTENT_TYPE
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        """
        JSON body with compact separators.

        User records arrive here as dicts in id/name/email order, so the
        wire form is {"id":1,"name":"Alice","email":"alice@x.com"}.
        """
        self._body = dump_json(data).encode("utf-8")
        self._headers["Content-Type"] = JSON_CONTENT_TYPE
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(body: Union[str, dict, list]) -> HTTPResponse:
    """
    200 OK.

    str → literal text body; dict/list → JSON body.
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)
    if isinstance(body, str):
        builder.text(body)
    else:
        builder.json(body)
    return builder.build()


def not_found(message: str = USER_NOT_FOUND) -> HTTPResponse:
    """404 for a user id with no row."""
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).text(message).build()


def route_not_found() -> HTTPResponse:
    """404 for a request no route accepts."""
    return not_found(ROUTE_NOT_FOUND)


def internal_error(message: str = INTERNAL_ERROR) -> HTTPResponse:
    """
    500 Internal Server Error.

    The body stays generic: details go to the log, not to the client.
    """
    return ResponseBuilder().status(HTTPStatus.INTERNAL_SERVER_ERROR).text(message).build()


def error_response(error: Exception) -> HTTPResponse:
    """
    Map any exception onto the response the client receives.

    NotFoundError is the only 404; everything else is a generic 500.
    """
    if isinstance(error, NotFoundError):
        return not_found()
    return internal_error()
