"""
=============================================================================
USER SERVER
=============================================================================

Wires the components together and runs them.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   ServerConfig                                                      │
    │       │                                                              │
    │       ├──► UserStore (SQLAlchemy engine + pool)                     │
    │       │        └──► UserHandlers ──► Router                         │
    │       │                                 │                            │
    │       ├──► RequestParser ───────────────┤                            │
    │       │                                 ▼                            │
    │       │                            Dispatcher                        │
    │       │                                 ▲                            │
    │       ├──► ThreadPool (workers > 0) ────┤                            │
    │       │                                 │                            │
    │       └──► SocketServer ── accept ──────┘                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
STARTUP AND SHUTDOWN
=============================================================================

    bootstrap()  create the users table if missing; any failure here is
                 fatal ("Error setting database") and nothing is served
    run()        logging, worker pool, accept loop (blocks)
    SIGINT/TERM  stop accepting → drain workers → dispose the engine

=============================================================================
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from .config import ServerConfig
from .core import Connection, SocketServer, ThreadPool
from .dispatcher import Dispatcher
from .errors import StoreConnectionError
from .handlers import UserHandlers
from .http import RequestParser, Router
from .store import UserStore


logger = logging.getLogger(__name__)


class UserServer:
    """
    The User CRUD server.

    Usage:
        config = ServerConfig.from_env()
        server = UserServer(config)
        server.bootstrap()
        server.run()          # Blocks until SIGINT/SIGTERM
    """

    def __init__(self, config: ServerConfig, store: Optional[UserStore] = None):
        """
        Args:
            config: Validated on construction.
            store: Pre-built store (tests); built from config.database_url
                   otherwise.
        """
        self.config = config
        self.config.validate()

        self.store = store or UserStore.from_url(
            self.config.database_url,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_timeout=self.config.pool_timeout,
        )

        self.router = UserHandlers(self.store).register(Router())
        self.dispatcher = Dispatcher(
            self.router,
            RequestParser(max_request_size=self.config.max_request_size),
            server_name=self.config.server_name,
        )

        self._socket_server = SocketServer(self.config)
        self._thread_pool: Optional[ThreadPool] = None
        if self.config.workers > 0:
            self._thread_pool = ThreadPool(
                workers=self.config.workers,
                queue_size=self.config.queue_size,
            )

        self._bootstrapped = False

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port) once listening."""
        return self._socket_server.address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def bootstrap(self) -> None:
        """
        Create the users table if it doesn't exist.

        Raises:
            StoreConnectionError: The store couldn't be reached or the
                                  schema couldn't be created.
        """
        try:
            self.store.create_schema()
        except SQLAlchemyError as e:
            logger.error(f"Error setting database: {e}")
            raise StoreConnectionError(f"Error setting database: {e}") from e

        self._bootstrapped = True

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start serving (blocking).

        Args:
            host: Override config host.
            port: Override config port.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self.setup_logging()

        if not self._bootstrapped:
            self.bootstrap()

        if self._thread_pool:
            self._thread_pool.start()

        mode = f"{self.config.workers} workers" if self._thread_pool else "sequential"
        logger.info(f"Starting {self.config.server_name} on {self.config.host}:{self.config.port} ({mode})")
        logger.info(f"Routes:\n{self.router.describe()}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self) -> None:
        """Ask the accept loop to exit; run() then finishes shutdown."""
        self._socket_server.shutdown()

    def setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("userserver").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")

        if self._thread_pool:
            self._thread_pool.shutdown(wait=True, timeout=30.0)

        self.store.dispose()
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Called by the accept loop for every connection.

        Sequential mode handles it right here, so the next accept() waits.
        Pool mode queues it; a full queue gets a 500 and is closed.
        """
        if self._thread_pool is None:
            self.dispatcher.dispatch(conn)
            return

        if not self._thread_pool.submit(self.dispatcher.dispatch, args=(conn,)):
            logger.warning(f"[{conn.id}] Worker queue full, rejecting connection")
            self.dispatcher.reject(conn)
