"""
=============================================================================
USER HANDLERS
=============================================================================

The five actions of the route table, each a thin adapter between an
HTTPRequest and one UserStore call:

    ┌──────────────────────┬──────────────┬──────────────────────────────┐
    │  Route               │  Store call  │  200 body                    │
    ├──────────────────────┼──────────────┼──────────────────────────────┤
    │  POST   /users       │  create      │  "User created"              │
    │  GET    /users/:id   │  get_by_id   │  {"id":..,"name":..,...}     │
    │  GET    /users       │  list_all    │  [{...}, {...}]              │
    │  PUT    /users/:id   │  update_by_id│  "User updated"              │
    │  DELETE /users/:id   │  delete_by_id│  "User deleted"              │
    └──────────────────────┴──────────────┴──────────────────────────────┘

Handlers only produce success responses. ParseError, NotFoundError and
store errors propagate to the dispatcher, which maps them to 404/500.

=============================================================================
"""

import logging

from ..http.request import HTTPRequest, extract_path_id, parse_user_id
from ..http.response import (
    HTTPResponse,
    USER_CREATED,
    USER_DELETED,
    USER_UPDATED,
    ok,
)
from ..http.router import Router
from ..models import User
from ..store import UserStore


logger = logging.getLogger(__name__)


class UserHandlers:
    """
    Request handlers bound to one UserStore.

    Usage:
        handlers = UserHandlers(store)
        handlers.register(router)
    """

    def __init__(self, store: UserStore):
        self.store = store

    def register(self, router: Router) -> Router:
        """Add the user routes to a router."""
        router.add_route("/users", self.create, "POST", name="create_user")
        router.add_route("/users/:id", self.get, "GET", name="get_user")
        router.add_route("/users", self.list, "GET", name="list_users")
        router.add_route("/users/:id", self.update, "PUT", name="update_user")
        router.add_route("/users/:id", self.delete, "DELETE", name="delete_user")
        return router

    @staticmethod
    def _user_id(request: HTTPRequest) -> int:
        """
        The numeric id addressed by the request.

        Taken from the router's capture when there is one, otherwise from
        the request line itself. An empty or non-numeric token is a
        ParseError, never a not-found.
        """
        token = request.path_params.get("id")
        if token is None:
            token = extract_path_id(request.request_line)
        return parse_user_id(token)

    # =========================================================================
    # ACTIONS
    # =========================================================================

    def create(self, request: HTTPRequest) -> HTTPResponse:
        user = User.from_json(request.body)
        user_id = self.store.create(user.name, user.email)
        logger.info(f"User {user_id} created")
        return ok(USER_CREATED)

    def get(self, request: HTTPRequest) -> HTTPResponse:
        user = self.store.get_by_id(self._user_id(request))
        return ok(user.to_dict())

    def list(self, request: HTTPRequest) -> HTTPResponse:
        return ok([user.to_dict() for user in self.store.list_all()])

    def update(self, request: HTTPRequest) -> HTTPResponse:
        user_id = self._user_id(request)
        user = User.from_json(request.body)
        self.store.update_by_id(user_id, user.name, user.email)
        logger.info(f"User {user_id} updated")
        return ok(USER_UPDATED)

    def delete(self, request: HTTPRequest) -> HTTPResponse:
        user_id = self._user_id(request)
        self.store.delete_by_id(user_id)
        logger.info(f"User {user_id} deleted")
        return ok(USER_DELETED)
