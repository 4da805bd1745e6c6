"""
Unit tests for URL router.
"""

import pytest

from userserver.http.router import Router
from userserver.http.request import HTTPRequest
from userserver.http.response import HTTPResponse, ResponseBuilder


def dummy_handler(request: HTTPRequest) -> HTTPResponse:
    """Dummy handler for testing."""
    return ResponseBuilder().json({"path": request.path}).build()


def user_routes(order):
    """Router with the user table registered in the given order."""
    table = {
        "create": ("/users", "POST"),
        "get": ("/users/:id", "GET"),
        "list": ("/users", "GET"),
        "update": ("/users/:id", "PUT"),
        "delete": ("/users/:id", "DELETE"),
    }
    router = Router()
    for name in order:
        path, method = table[name]
        router.add_route(path, dummy_handler, method, name=name)
    return router


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        """Test adding routes."""
        router = Router()
        route = router.add_route("/users", dummy_handler, method="get")

        assert route.method == "GET"
        assert router.routes() == [route]

    def test_match_with_method(self):
        """Test method-based routing."""
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")
        router.add_route("/users", dummy_handler, method="POST")

        assert router.match("GET", "/users").route.method == "GET"
        assert router.match("POST", "/users").route.method == "POST"

    def test_match_dynamic_params(self):
        """Test dynamic path parameters."""
        router = Router()
        router.add_route("/users/:id", dummy_handler, method="GET")

        match = router.match("GET", "/users/123")
        assert match is not None
        assert match.params == {"id": "123"}

    def test_param_captures_non_numeric_token(self):
        """The router doesn't validate ids; handlers do."""
        router = Router()
        router.add_route("/users/:id", dummy_handler, method="GET")

        assert router.match("GET", "/users/abc").params == {"id": "abc"}

    def test_no_match(self):
        """Test when no route matches."""
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")

        assert router.match("GET", "/posts") is None
        assert router.match("POST", "/users") is None  # Wrong method
        assert router.match("GET", "/users/1/orders") is None

    @pytest.mark.parametrize("method,name", [
        ("GET", "get"),
        ("PUT", "update"),
        ("DELETE", "delete"),
    ])
    def test_empty_id_segment_reaches_id_route(self, method, name):
        """A bare /users/ is an id-addressed request with an empty id, not a list."""
        match = user_routes(["create", "get", "list", "update", "delete"]).match(method, "/users/")

        assert match.route.name == name
        assert match.params == {"id": ""}

    def test_trailing_slash_not_stripped(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")

        assert router.match("GET", "/users/") is None

    @pytest.mark.parametrize("order", [
        ["create", "get", "list", "update", "delete"],
        ["list", "get", "create", "delete", "update"],
        ["delete", "update", "list", "create", "get"],
    ])
    def test_registration_order_does_not_matter(self, order):
        """GET /users/<id> never falls through to list-all."""
        router = user_routes(order)

        assert router.match("GET", "/users/7").route.name == "get"
        assert router.match("GET", "/users").route.name == "list"
        assert router.match("POST", "/users").route.name == "create"
        assert router.match("PUT", "/users/7").route.name == "update"
        assert router.match("DELETE", "/users/7").route.name == "delete"

    def test_static_segment_beats_param(self):
        """/users/me is more specific than /users/:id."""
        router = Router()
        router.add_route("/users/:id", dummy_handler, method="GET", name="by_id")
        router.add_route("/users/me", dummy_handler, method="GET", name="me")

        assert router.match("GET", "/users/me").route.name == "me"
        assert router.match("GET", "/users/5").route.name == "by_id"


class TestRouterDescribe:
    """Tests for the startup route listing."""

    def test_describe_lists_routes(self):
        router = user_routes(["create", "get"])
        text = router.describe()

        assert "POST" in text
        assert "/users/:id" in text
