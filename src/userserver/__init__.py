"""
=============================================================================
USERSERVER - User CRUD Service Over a Raw TCP Socket
=============================================================================

A single resource, User {id, name, email}, served with a small
HTTP/1.1-shaped protocol straight from a socket and stored in a relational
database through SQLAlchemy.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    userserver/
    ├── __main__.py        CLI entry point (python -m userserver)
    ├── config.py          ServerConfig: env + CLI configuration
    ├── errors.py          ParseError / StoreConnectionError / QueryError /
    │                      NotFoundError
    ├── models.py          User dataclass and JSON helpers
    ├── dispatcher.py      Per-connection state machine
    ├── server.py          UserServer: wiring and lifecycle
    ├── core/
    │   ├── connection.py  Buffered, bounded socket reads
    │   ├── socket_server.py  Accept loop and signals
    │   └── thread_pool.py Optional bounded worker pool
    ├── http/
    │   ├── request.py     Request parser, path-id extraction
    │   ├── response.py    Responses and error mapping
    │   ├── router.py      Specificity-ordered route table
    │   └── status_codes.py  200 / 404 / 500
    ├── handlers/
    │   └── users.py       The five CRUD actions
    └── store/
        ├── database.py    users table, engine, schema bootstrap
        └── user_store.py  UserStore CRUD

=============================================================================
QUICK START
=============================================================================

    from userserver import ServerConfig, UserServer

    server = UserServer(ServerConfig(database_url="sqlite:///users.db"))
    server.bootstrap()
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .errors import (
    NotFoundError,
    ParseError,
    QueryError,
    StoreConnectionError,
    UserServiceError,
)
from .models import User
from .server import UserServer
from .store import UserStore

__all__ = [
    "__version__",
    "ServerConfig",
    "UserServer",
    "UserStore",
    "User",
    "UserServiceError",
    "ParseError",
    "StoreConnectionError",
    "QueryError",
    "NotFoundError",
]
