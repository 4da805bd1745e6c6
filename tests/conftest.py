"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Callable, Generator, List, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from userserver import ServerConfig, UserServer, UserStore


@pytest.fixture
def sample_get_request() -> bytes:
    """GET for a single user."""
    return (
        b"GET /users/7 HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"User-Agent: pytest\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """POST with a JSON user body."""
    body = b'{"name":"Alice","email":"alice@x.com"}'
    return (
        b"POST /users HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
        + body
    )


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """File-backed SQLite database, fresh per test."""
    return f"sqlite:///{tmp_path / 'users.db'}"


@pytest.fixture
def store(database_url: str) -> Generator[UserStore, None, None]:
    """A UserStore with the schema already created."""
    user_store = UserStore.from_url(database_url)
    user_store.create_schema()
    yield user_store
    user_store.dispose()


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class RawClient:
    """
    Minimal socket client: one request per connection, read until the
    server closes.
    """

    def __init__(self, port: int, host: str = "127.0.0.1"):
        self.host = host
        self.port = port

    def send(self, raw: bytes, timeout: float = 5.0) -> bytes:
        with socket.create_connection((self.host, self.port), timeout=timeout) as s:
            s.sendall(raw)
            s.shutdown(socket.SHUT_WR)

            chunks = []
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def request(self, method: str, path: str, body: bytes = b"") -> Tuple[int, str]:
        """Send a well-formed request; return (status code, body text)."""
        raw = f"{method} {path} HTTP/1.1\r\nHost: localhost\r\n".encode()
        if body:
            raw += f"Content-Length: {len(body)}\r\n".encode()
        raw += b"\r\n" + body
        return self.exchange(raw)

    def exchange(self, raw: bytes) -> Tuple[int, str]:
        """Send raw bytes as-is; return (status code, body text)."""
        return parse_response(self.send(raw))


def parse_response(data: bytes) -> Tuple[int, str]:
    """Split a raw response into (status code, body text)."""
    head, _, body = data.partition(b"\r\n\r\n")
    status_line = head.split(b"\r\n", 1)[0].decode()
    return int(status_line.split(" ")[1]), body.decode("utf-8")


class TestServer:
    """Runs a UserServer in a background thread."""

    __test__ = False

    def __init__(self, server: UserServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def make_server(database_url: str) -> Generator[Callable[..., TestServer], None, None]:
    """Factory for running servers; extra kwargs go to ServerConfig."""
    started: List[TestServer] = []

    def factory(**overrides) -> TestServer:
        config = ServerConfig(
            host="127.0.0.1",
            port=0,
            database_url=database_url,
            log_level="WARNING",
            timeout=5.0,
        )
        for name, value in overrides.items():
            setattr(config, name, value)

        test_srv = TestServer(UserServer(config))
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield factory

    for test_srv in started:
        test_srv.stop()


@pytest.fixture
def running_server(make_server) -> TestServer:
    """Sequential server on an OS-assigned port."""
    return make_server()


@pytest.fixture
def client(running_server: TestServer) -> RawClient:
    return RawClient(running_server.port)


@pytest.fixture
def client_for() -> Callable[[TestServer], RawClient]:
    """Build a RawClient for any server started with make_server."""
    return lambda test_srv: RawClient(test_srv.port)
