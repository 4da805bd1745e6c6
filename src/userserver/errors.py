"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Every failure a request can run into is one of four kinds:

    ┌──────────────────────┬──────────────────────────────────┬────────┐
    │  Exception           │  Raised when                     │ Status │
    ├──────────────────────┼──────────────────────────────────┼────────┤
    │  ParseError          │  bad id token, bad/absent body,  │  500   │
    │                      │  bad request line, too large     │        │
    │  StoreConnectionError│  the database can't be reached   │  500   │
    │  QueryError          │  the database rejected/failed a  │  500   │
    │                      │  statement                       │        │
    │  NotFoundError       │  zero rows matched or affected   │  404   │
    └──────────────────────┴──────────────────────────────────┴────────┘

Only NotFoundError reaches the client as a 404. Everything else collapses
to a generic 500, client mistakes included. That conflation is the
protocol's documented behavior.

Each exception carries the status code it should be answered with, so
the dispatcher can turn any of them into a response in one place.

=============================================================================
"""

from typing import Optional


class UserServiceError(Exception):
    """
    Base class for every request-scoped failure.

    Attributes:
        status_code: HTTP status the dispatcher answers with.
    """

    status_code = 500

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class ParseError(UserServiceError):
    """Malformed or absent id token, request line, or request body."""


class StoreConnectionError(UserServiceError):
    """The relational store could not be reached."""


class QueryError(UserServiceError):
    """The store rejected or failed a statement."""


class NotFoundError(UserServiceError):
    """The store reported zero matching or affected rows."""

    status_code = 404
