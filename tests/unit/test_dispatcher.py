"""
Unit tests for the dispatcher and the connection it drives.

Uses socket.socketpair() so no listening socket is involved.
"""

import json
import socket

import pytest

from userserver.core.connection import Connection, ConnectionState
from userserver.dispatcher import Dispatcher
from userserver.handlers import UserHandlers
from userserver.http import HTTPStatus, RequestParser, Router
from userserver.store import UserStore


@pytest.fixture
def router(store: UserStore) -> Router:
    return UserHandlers(store).register(Router())


@pytest.fixture
def dispatcher(router: Router) -> Dispatcher:
    return Dispatcher(router, RequestParser(max_request_size=4096))


def exchange(dispatcher: Dispatcher, raw: bytes, close_write: bool = True, **conn_kwargs):
    """Push raw bytes through a connection; return (response, conn, bytes on the wire)."""
    client, server = socket.socketpair()
    conn = Connection(socket=server, address=("127.0.0.1", 50000), **conn_kwargs)

    try:
        client.sendall(raw)
        if close_write:
            client.shutdown(socket.SHUT_WR)

        response = dispatcher.dispatch(conn)

        chunks = []
        while True:
            chunk = client.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    finally:
        client.close()

    return response, conn, b"".join(chunks)


class TestDispatch:
    """Tests for Dispatcher.dispatch()."""

    def test_create(self, dispatcher, store, sample_post_request):
        response, conn, wire = exchange(dispatcher, sample_post_request)

        assert response.status == HTTPStatus.OK
        assert wire.startswith(b"HTTP/1.1 200 OK\r\n")
        assert wire.endswith(b"\r\n\r\nUser created")
        assert conn.state == ConnectionState.CLOSED
        assert [u.name for u in store.list_all()] == ["Alice"]

    def test_get(self, dispatcher, store):
        user_id = store.create("Alice", "alice@x.com")

        response, _, wire = exchange(dispatcher, f"GET /users/{user_id} HTTP/1.1\r\n\r\n".encode())

        assert response.status == HTTPStatus.OK
        body = wire.partition(b"\r\n\r\n")[2]
        assert json.loads(body) == {"id": user_id, "name": "Alice", "email": "alice@x.com"}

    def test_get_missing_is_404(self, dispatcher):
        response, _, _ = exchange(dispatcher, b"GET /users/999 HTTP/1.1\r\n\r\n")

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.text == "User not found"

    def test_non_numeric_id_is_500(self, dispatcher):
        response, _, _ = exchange(dispatcher, b"GET /users/abc HTTP/1.1\r\n\r\n")

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.text == "Internal error"

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
    def test_empty_id_is_500(self, dispatcher, store, method):
        """/users/ carries an empty id, which is a parse failure."""
        store.create("Alice", "alice@x.com")
        body = b'{"name":"A","email":"a@x.com"}' if method == "PUT" else b""

        response, _, _ = exchange(dispatcher, f"{method} /users/ HTTP/1.1\r\n\r\n".encode() + body)

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.text == "Internal error"
        assert [u.name for u in store.list_all()] == ["Alice"]

    def test_unknown_route(self, dispatcher):
        response, _, _ = exchange(dispatcher, b"PATCH /users/1 HTTP/1.1\r\n\r\n")

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.text == "404 not found"

    def test_bad_request_line_is_500(self, dispatcher):
        response, _, _ = exchange(dispatcher, b"hello there\r\n\r\n")
        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_bad_body_is_500(self, dispatcher, store):
        response, _, _ = exchange(dispatcher, b"POST /users HTTP/1.1\r\n\r\n{oops")

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert store.list_all() == []

    def test_oversized_request_is_500(self, dispatcher):
        raw = b"POST /users HTTP/1.1\r\n\r\n" + b"x" * 10_000
        response, _, _ = exchange(dispatcher, raw, buffer_size=512, max_request_size=2048)

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_body_read_across_many_recv_calls(self, dispatcher, store):
        """A body larger than one recv() still arrives whole."""
        name = "N" * 3000
        body = json.dumps({"name": name, "email": "n@x.com"}).encode()
        raw = f"POST /users HTTP/1.1\r\nContent-Length: {len(body)}\r\n\r\n".encode() + body

        dispatcher.parser = RequestParser(max_request_size=8192)
        response, _, _ = exchange(
            dispatcher, raw, close_write=False, buffer_size=64, max_request_size=8192
        )

        assert response.status == HTTPStatus.OK
        assert store.list_all()[0].name == name

    def test_peer_closed_without_data(self, dispatcher):
        """Nothing read means nothing sent."""
        response, conn, wire = exchange(dispatcher, b"")

        assert response is None
        assert wire == b""
        assert conn.state == ConnectionState.CLOSED

    def test_read_timeout_sends_nothing(self, dispatcher):
        response, _, wire = exchange(
            dispatcher, b"GET /users HTTP/1.1\r\n", close_write=False, timeout=0.2
        )

        assert response is None
        assert wire == b""

    def test_handler_crash_is_500(self):
        def broken(request):
            raise RuntimeError("boom")

        router = Router()
        router.add_route("/users", broken, "GET")

        response, _, _ = exchange(Dispatcher(router), b"GET /users HTTP/1.1\r\n\r\n")

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.text == "Internal error"

    def test_access_log(self, dispatcher, caplog):
        with caplog.at_level("INFO", logger="userserver.access"):
            exchange(dispatcher, b"GET /users HTTP/1.1\r\n\r\n")

        assert '"GET /users" 200' in caplog.text


class TestReject:
    """Tests for Dispatcher.reject()."""

    def test_reject_sends_500(self):
        client, server = socket.socketpair()
        conn = Connection(socket=server, address=("127.0.0.1", 50000))

        Dispatcher(Router()).reject(conn)
        wire = client.recv(4096)
        client.close()

        assert wire.startswith(b"HTTP/1.1 500 Internal Server Error\r\n")
        assert conn.state == ConnectionState.CLOSED


class TestHandlersWithoutRouting:
    """Handlers fall back to the request line when no route captured an id."""

    def test_id_from_request_line(self, store):
        user_id = store.create("Alice", "alice@x.com")
        handlers = UserHandlers(store)
        request = RequestParser().parse(f"GET /users/{user_id} HTTP/1.1\r\n\r\n".encode())

        response = handlers.get(request)

        assert response.status == HTTPStatus.OK
        assert json.loads(response.body)["name"] == "Alice"
