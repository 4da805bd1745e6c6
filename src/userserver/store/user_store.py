"""
=============================================================================
USER STORE
=============================================================================

CRUD over the `users` table.

=============================================================================
OPERATIONS
=============================================================================

    ┌───────────────────────────────┬──────────────┬────────────────────────┐
    │  Operation                    │  Returns     │  Raises                │
    ├───────────────────────────────┼──────────────┼────────────────────────┤
    │  create(name, email)          │  new id      │  Connection / Query    │
    │  get_by_id(id)                │  User        │  NotFound / Conn / Q   │
    │  list_all()                   │  list[User]  │  Connection / Query    │
    │  update_by_id(id, name, email)│  None        │  NotFound / Conn / Q   │
    │  delete_by_id(id)             │  None        │  NotFound / Conn / Q   │
    └───────────────────────────────┴──────────────┴────────────────────────┘

Each call checks one connection out of the pool, runs one statement in its
own transaction (or one query plus iteration for list_all), and checks the
connection back in before returning.

Statements are SQLAlchemy Core constructs, so values always travel as bound
parameters. No SQL is ever built from strings.

=============================================================================
FAILURE MAPPING
=============================================================================

    engine.connect() fails         → StoreConnectionError
    statement/commit fails         → QueryError
    statement ran, zero rows       → NotFoundError

Keeping "zero rows" apart from "the database broke" is what lets the
dispatcher answer 404 for one and 500 for the other.

=============================================================================
"""

import logging
from contextlib import contextmanager
from typing import Iterator, List

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotFoundError, QueryError, StoreConnectionError
from ..models import User
from .database import create_schema, create_store_engine, users_table


logger = logging.getLogger(__name__)


class UserStore:
    """
    Durable owner of User records.

    Usage:
        store = UserStore.from_url("sqlite:///users.db")
        store.create_schema()

        user_id = store.create("Alice", "alice@x.com")
        store.get_by_id(user_id)    # User(id=1, name='Alice', ...)
    """

    def __init__(self, engine: Engine):
        self._engine = engine

    @classmethod
    def from_url(
        cls,
        database_url: str,
        pool_size: int = 5,
        max_overflow: int = 0,
        pool_timeout: float = 30.0,
    ) -> "UserStore":
        """Create a store with its own pooled engine."""
        return cls(create_store_engine(database_url, pool_size, max_overflow, pool_timeout))

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_schema(self) -> None:
        """Bootstrap the users table (idempotent)."""
        create_schema(self._engine)

    def dispose(self) -> None:
        """Close every pooled connection."""
        self._engine.dispose()

    # =========================================================================
    # CONNECTION SCOPE
    # =========================================================================

    @contextmanager
    def _connection(self, operation: str) -> Iterator[Connection]:
        """
        One pooled connection and one transaction for one operation.

        Commits on success, rolls back on any exception, and always returns
        the connection to the pool.
        """
        try:
            conn = self._engine.connect()
        except SQLAlchemyError as e:
            logger.error(f"{operation}: store unreachable: {e}")
            raise StoreConnectionError(f"Unable to connect to store: {e}") from e

        try:
            with conn.begin():
                yield conn
        except SQLAlchemyError as e:
            logger.error(f"{operation}: query failed: {type(e).__name__}: {e}")
            raise QueryError(f"{operation} failed: {e}") from e
        finally:
            conn.close()

    # =========================================================================
    # CRUD
    # =========================================================================

    def create(self, name: str, email: str) -> int:
        """Insert a user and return the id the store assigned."""
        with self._connection("create") as conn:
            result = conn.execute(insert(users_table).values(name=name, email=email))
            user_id = result.inserted_primary_key[0]

        logger.debug(f"Created user {user_id}")
        return user_id

    def get_by_id(self, user_id: int) -> User:
        """
        Fetch one user.

        Raises:
            NotFoundError: No row has this id.
        """
        with self._connection("get_by_id") as conn:
            row = conn.execute(
                select(users_table).where(users_table.c.id == user_id)
            ).first()

            if row is None:
                raise NotFoundError(f"User {user_id} not found")

        return User(id=row.id, name=row.name, email=row.email)

    def list_all(self) -> List[User]:
        """
        Every user, in the store's natural scan order.

        No ORDER BY: callers must not rely on ascending ids.
        """
        with self._connection("list_all") as conn:
            return [
                User(id=row.id, name=row.name, email=row.email)
                for row in conn.execute(select(users_table))
            ]

    def update_by_id(self, user_id: int, name: str, email: str) -> None:
        """
        Replace name and email of one user. The id never changes.

        Raises:
            NotFoundError: Zero rows were affected.
        """
        with self._connection("update_by_id") as conn:
            result = conn.execute(
                update(users_table)
                .where(users_table.c.id == user_id)
                .values(name=name, email=email)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"User {user_id} not found")

        logger.debug(f"Updated user {user_id}")

    def delete_by_id(self, user_id: int) -> None:
        """
        Delete one user. Its id is retired for good.

        Raises:
            NotFoundError: Zero rows were affected (including a repeat delete).
        """
        with self._connection("delete_by_id") as conn:
            result = conn.execute(
                delete(users_table).where(users_table.c.id == user_id)
            )
            if result.rowcount == 0:
                raise NotFoundError(f"User {user_id} not found")

        logger.debug(f"Deleted user {user_id}")
