"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the user server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m userserver --port 4000                          │
    │                                                                      │
    │   2. Environment variables (and a .env file, via python-dotenv)    │
    │      └── DATABASE_URL=postgresql://... python -m userserver        │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The store location is deployment-specific, so it is never baked into the
code. It is resolved once at startup, and a missing DATABASE_URL is a
startup failure, not a failure on the first request.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


@dataclass
class ServerConfig:
    """
    Configuration for the user server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, max_request_size, timeout

    CONCURRENCY
    - workers, queue_size

    STORE
    - database_url, pool_size, max_overflow, pool_timeout

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Bind address. All interfaces by default."""

    port: int = 3000
    """Listening port. 0 lets the OS pick a free one (tests use this)."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 1024
    """
    Bytes requested per recv() call.
    A request is read in as many chunks as it needs, up to max_request_size.
    """

    max_request_size: int = 1024 * 1024  # 1 MB
    """
    Ceiling on request line + headers + body, in bytes.
    Anything larger is rejected as a parse failure.
    """

    timeout: Optional[float] = None
    """
    Client socket timeout in seconds.
    None = block until the client sends (the baseline behavior).
    A float is a hardening option: stalled clients are dropped.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 0
    """
    Worker threads for request handling.
    0 = sequential: each connection is fully handled before the next
    accept(). N > 0 = bounded pool of N threads.
    """

    queue_size: int = 64
    """Connections that may wait for a worker before new ones are refused."""

    # ─────────────────────────────────────────────────────────────────────
    # STORE
    # ─────────────────────────────────────────────────────────────────────

    database_url: Optional[str] = None
    """SQLAlchemy URL of the store, e.g. postgresql://user:pw@db:5432/users."""

    pool_size: int = 5
    """Connections kept in the store pool. Size it to at least `workers`."""

    max_overflow: int = 0
    """Extra connections allowed beyond pool_size under burst."""

    pool_timeout: float = 30.0
    """Seconds to wait for a pooled connection before giving up."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    server_name: str = "userserver/1.0"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        DATABASE_URL           Store URL (required)
        HTTP_HOST              Bind address (default: 0.0.0.0)
        HTTP_PORT              Port (default: 3000)
        HTTP_WORKERS           Worker threads, 0 = sequential (default: 0)
        HTTP_TIMEOUT           Client socket timeout seconds (default: none)
        HTTP_BUFFER_SIZE       recv() chunk size (default: 1024)
        HTTP_MAX_REQUEST_SIZE  Request size ceiling (default: 1048576)
        HTTP_LOG_LEVEL         Logging level (default: INFO)
        DB_POOL_SIZE           Store pool size (default: 5)
        DB_MAX_OVERFLOW        Store pool overflow (default: 0)
        DB_POOL_TIMEOUT        Store pool checkout timeout (default: 30)

        A .env file in the working directory is loaded first; variables
        already set in the environment win.

        =====================================================================
        """
        load_dotenv()

        timeout = os.getenv("HTTP_TIMEOUT")
        return cls(
            host=os.getenv("HTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTP_PORT", "3000")),
            workers=int(os.getenv("HTTP_WORKERS", "0")),
            timeout=float(timeout) if timeout else None,
            buffer_size=int(os.getenv("HTTP_BUFFER_SIZE", "1024")),
            max_request_size=int(os.getenv("HTTP_MAX_REQUEST_SIZE", str(1024 * 1024))),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            database_url=os.getenv("DATABASE_URL"),
            pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
            max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "0")),
            pool_timeout=float(os.getenv("DB_POOL_TIMEOUT", "30")),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Fail fast: a server that can't reach its store or can't bind is
        reported at startup, not hours later on the first request.
        """
        if not self.database_url:
            raise ValueError("DATABASE_URL is not set. Point it at the user store.")

        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.buffer_size < 64:
            raise ValueError("buffer_size must be >= 64")

        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")

        if self.workers < 0:
            raise ValueError("workers must be >= 0")

        if self.pool_size < 1:
            raise ValueError("pool_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
