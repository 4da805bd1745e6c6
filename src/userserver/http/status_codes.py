"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The user protocol only ever answers with three statuses:

    ┌────────┬───────────────────────────┬──────────────────────────────┐
    │  Code  │  Phrase                   │  Used for                    │
    ├────────┼───────────────────────────┼──────────────────────────────┤
    │  200   │  OK                       │  every successful action     │
    │  404   │  Not Found                │  no such user / no route     │
    │  500   │  Internal Server Error    │  everything else             │
    └────────┴───────────────────────────┴──────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Status codes produced by the server.

    IntEnum, so HTTPStatus.OK == 200 and f"{status}" works in status lines.
    """

    OK = 200
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _PHRASES[self]

    @classmethod
    def from_code(cls, code: int) -> "HTTPStatus":
        """Map any integer code onto the three we produce (unknown -> 500)."""
        try:
            return cls(code)
        except ValueError:
            return cls.INTERNAL_SERVER_ERROR

    def __str__(self) -> str:
        return str(self.value)


_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
