"""
=============================================================================
DATABASE ENGINE & SCHEMA
=============================================================================

Everything the store needs from SQLAlchemy before it can run a statement:

- the `users` table definition (SQLAlchemy Core, no ORM)
- engine creation with a sized connection pool
- one-time schema bootstrap

=============================================================================
CONNECTION POOLING
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request ──► checkout ──► one statement ──► checkin                │
    │                  │                               ▲                   │
    │                  ▼                               │                   │
    │            ┌───────────────────────────────────────┐                │
    │            │  QueuePool   [conn] [conn] [conn] ...  │                │
    │            └───────────────────────────────────────┘                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A connection is held for exactly one operation and returned before the
operation returns. Nothing is cached between requests, so the pool only
bounds how many connections exist at once. With a worker pool, size it to
at least the number of workers or requests queue on checkout.

=============================================================================
"""

import logging

from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine
from sqlalchemy.engine import Engine, make_url


logger = logging.getLogger(__name__)


metadata = MetaData()

users_table = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("email", String, nullable=False),
    # SQLite otherwise recycles the highest rowid after a delete
    sqlite_autoincrement=True,
)


def create_store_engine(
    database_url: str,
    pool_size: int = 5,
    max_overflow: int = 0,
    pool_timeout: float = 30.0,
) -> Engine:
    """
    Create the SQLAlchemy engine for the store.

    In-memory SQLite keeps SQLAlchemy's default single-connection pool
    (pool sizing arguments don't apply to it). Every other URL gets a
    QueuePool sized from the arguments, with pre-ping so a connection the
    database dropped is replaced instead of failing a request.

    Args:
        database_url: SQLAlchemy URL, e.g. postgresql://u:p@db:5432/users
        pool_size: Connections kept open in the pool.
        max_overflow: Extra connections allowed under burst.
        pool_timeout: Seconds to wait for a free connection.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        engine = create_engine(url)
    else:
        engine = create_engine(
            url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_pre_ping=True,
        )

    logger.info(f"Store engine created for {url.render_as_string(hide_password=True)}")
    return engine


def create_schema(engine: Engine) -> None:
    """
    Create the users table if it doesn't exist.

    Runs once at process start. The table is never altered afterwards.
    """
    metadata.create_all(engine, checkfirst=True)
    logger.info("Schema ready: users")
