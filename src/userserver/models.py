"""
The User resource.

A User is the only entity this server knows about:

    User(id=None, name="Alice", email="alice@x.com")   before persistence
    User(id=1,    name="Alice", email="alice@x.com")   read back from the store

The id is assigned by the store and never taken from a client payload.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional

from .errors import ParseError


@dataclass
class User:
    """
    A user record.

    Attributes:
        id: Store-assigned identity (None until persisted).
        name: Non-empty display name.
        email: Non-empty email address.
    """

    id: Optional[int]
    name: str
    email: str

    def to_dict(self) -> dict:
        """Key order matches the wire format: id, name, email."""
        return {"id": self.id, "name": self.name, "email": self.email}

    @classmethod
    def from_payload(cls, payload: Any) -> "User":
        """
        Build a User from a decoded JSON payload.

        Any "id" key in the payload is ignored: the store always assigns
        its own. Name and email must both be non-empty strings.

        Raises:
            ParseError: If the payload is not an object or a field is
                        missing, empty, or not a string.
        """
        if not isinstance(payload, dict):
            raise ParseError("User payload must be a JSON object")

        fields = {}
        for key in ("name", "email"):
            value = payload.get(key)
            if not isinstance(value, str) or not value:
                raise ParseError(f"'{key}' must be a non-empty string")
            fields[key] = value

        return cls(id=None, **fields)

    @classmethod
    def from_json(cls, body: bytes) -> "User":
        """
        Decode a request body into a User.

        An empty body, invalid UTF-8, or invalid JSON are all ParseErrors.
        """
        if not body:
            raise ParseError("Empty request body")

        try:
            payload = json.loads(body.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(f"Invalid JSON body: {e}")

        return cls.from_payload(payload)


def dump_json(data: Any) -> str:
    """Serialize to compact JSON: {"id":1,"name":"Alice","email":"alice@x.com"}."""
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)
