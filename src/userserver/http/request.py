"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes read from one connection into an HTTPRequest.

=============================================================================
REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     USER API REQUEST                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   PUT /users/7 HTTP/1.1\r\n                 ← REQUEST LINE          │
    │   ─┬─ ───┬─── ────┬───                                              │
    │  Method Target  Version                                             │
    │                                                                      │
    │   Host: localhost:3000\r\n                  ← HEADER LINES          │
    │   Content-Type: application/json\r\n                                │
    │   Content-Length: 38\r\n                                            │
    │   \r\n                                      ← BLANK LINE            │
    │   {"name":"Bob","email":"bob@x.com"}        ← BODY                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PARSER STATES
=============================================================================

The parser walks the header section as a small state machine:

    REQUEST_LINE ──► HEADERS ──(blank line)──► BODY
                        │
                        └──(end of data, no blank line)──► done, empty body

- REQUEST_LINE: "METHOD SP TARGET [SP VERSION]". A missing version is
  tolerated (HTTP/1.0 assumed); anything else malformed is a ParseError.
- HEADERS: "Name: value" lines, names lower-cased. Lines without a colon
  are skipped (lenient parsing).
- BODY: everything after the first blank line, truncated to
  Content-Length when that header is present.

A request without any blank line still routes: its body is simply empty,
which JSON decoding rejects later on the routes that need a body.

=============================================================================
PATH ID EXTRACTION
=============================================================================

    "GET /users/123 HTTP/1.1"
         split("/")      → ["GET ", "users", "123 HTTP", "1.1"]
         field [2]       → "123 HTTP"
         split()[0]      → "123"

extract_path_id() never raises; parse_user_id() turns the token into an
int or raises ParseError. A bad id is a 500, never a 404.

=============================================================================
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict

from ..errors import ParseError


# Optional sign, ASCII digits only
USER_ID_PATTERN = re.compile(r"[+-]?[0-9]+")


class ParseState(Enum):
    """Where the parser is within the request text."""
    REQUEST_LINE = "request_line"
    HEADERS = "headers"
    BODY = "body"


@dataclass
class HTTPRequest:
    """
    A parsed request.

    Attributes:
        method: Upper-case method (GET, POST, ...).
        path: Target path without the query string (e.g. /users/7).
        version: HTTP version from the request line.
        headers: Header names lower-cased.
        body: Raw body bytes.
        path_params: Filled in by the router (e.g. {"id": "7"}).
        client_address: (ip, port) of the peer.
        raw: The decoded request text exactly as read.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    path_params: Dict[str, str] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)
    raw: str = ""

    @property
    def request_line(self) -> str:
        """First line of the raw request, or a rebuilt one if raw is empty."""
        if self.raw:
            return self.raw.split("\r\n", 1)[0]
        return f"{self.method} {self.path} {self.version}"


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

    Usage:
        parser = RequestParser(max_request_size=1024 * 1024)
        request = parser.parse(raw_bytes, ("127.0.0.1", 50123))
    """

    # METHOD SP TARGET [SP HTTP/x.y]
    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) +(\S+)(?: +(HTTP/\d\.\d))? *$")
    HEADER_PATTERN = re.compile(r"^([^:\s][^:]*):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw request bytes.

        Args:
            data: Bytes read from the connection.
            client_address: Peer (ip, port), kept for logging.

        Returns:
            The parsed HTTPRequest.

        Raises:
            ParseError: Oversized, empty, or malformed request line.
        """
        if len(data) > self.max_request_size:
            raise ParseError(f"Request too large: {len(data)} bytes")

        text = data.decode("utf-8", errors="replace")
        if not text.strip():
            raise ParseError("Empty request")

        state = ParseState.REQUEST_LINE
        method = target = version = ""
        headers: Dict[str, str] = {}
        body = b""

        # Walk the header section line by line. The body is sliced out of
        # the original bytes so multi-byte characters survive untouched.
        offset = 0
        while state is not ParseState.BODY:
            line_end = data.find(b"\r\n", offset)
            if line_end == -1:
                line = data[offset:].decode("utf-8", errors="replace")
                next_offset = len(data)
            else:
                line = data[offset:line_end].decode("utf-8", errors="replace")
                next_offset = line_end + 2

            if state is ParseState.REQUEST_LINE:
                method, target, version = self._parse_request_line(line)
                state = ParseState.HEADERS
            elif line == "":
                if line_end != -1:
                    body = data[next_offset:]
                state = ParseState.BODY
            else:
                self._parse_header(line, headers)

            if line_end == -1:
                break
            offset = next_offset

        content_length = headers.get("content-length")
        if content_length is not None and content_length.isdigit():
            body = body[:int(content_length)]

        return HTTPRequest(
            method=method,
            path=_split_path(target),
            version=version,
            headers=headers,
            body=body,
            client_address=client_address,
            raw=text,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        """Split "METHOD TARGET [VERSION]"; version defaults to HTTP/1.0."""
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise ParseError(f"Invalid request line: {line[:100]!r}")

        method, target, version = match.groups()
        return method, target, version or "HTTP/1.0"

    def _parse_header(self, line: str, headers: Dict[str, str]) -> None:
        match = self.HEADER_PATTERN.match(line)
        if not match:
            return  # Skip malformed header lines

        name, value = match.groups()
        name = name.strip().lower()
        value = value.strip()

        # Repeated headers are combined, per RFC 7230
        if name in headers:
            headers[name] += ", " + value
        else:
            headers[name] = value


def _split_path(target: str) -> str:
    """Drop the query string and fragment: "/users?x=1" → "/users"."""
    return target.split("?", 1)[0].split("#", 1)[0] or "/"


def extract_path_id(text: str) -> str:
    """
    Pull the identifier token out of "METHOD /users/<token> ...".

    Splits on "/", takes field 2, then the first whitespace-separated
    token of that field. Returns "" whenever a step yields nothing; it
    never raises, so callers must handle empty and non-numeric tokens.

    Examples:
        >>> extract_path_id("GET /users/123 HTTP/1.1")
        '123'
        >>> extract_path_id("GET /users")
        ''
    """
    fields = text.split("/")
    if len(fields) < 3:
        return ""

    tokens = fields[2].split()
    return tokens[0] if tokens else ""


def parse_user_id(token: str) -> int:
    """
    Parse an id token as an integer.

    Raises:
        ParseError: If the token is empty or not a base-10 integer.
    """
    if not USER_ID_PATTERN.fullmatch(token):
        raise ParseError(f"Invalid user id: {token!r}")
    return int(token)
