"""
Persistence layer: the users table and the store that owns it.
"""

from .database import create_schema, create_store_engine, metadata, users_table
from .user_store import UserStore

__all__ = [
    "UserStore",
    "create_store_engine",
    "create_schema",
    "metadata",
    "users_table",
]
