"""
=============================================================================
USER SERVER CLI ENTRY POINT
=============================================================================

    # Store location from the environment (or a .env file)
    DATABASE_URL=postgresql://app:secret@db:5432/users python -m userserver

    # Explicit store, custom port
    python -m userserver --database-url sqlite:///users.db --port 4000

    # Bounded worker pool instead of sequential handling
    python -m userserver --workers 8

    # Drop clients that stall for more than 10 seconds
    python -m userserver --timeout 10

Environment first, then command-line flags on top. Startup fails with exit
status 1 if the configuration is invalid or the schema can't be created.

=============================================================================
"""

import argparse
import sys

from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .config import ServerConfig
from .errors import UserServiceError
from .server import UserServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="userserver",
        description="User CRUD service over a raw TCP socket",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m userserver                                  # Config from env
  python -m userserver --database-url sqlite:///u.db    # Explicit store
  python -m userserver --port 4000 --workers 8          # Port + worker pool
        """
    )

    # Every default is None so unset flags leave the env/config value alone

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: HTTP_HOST or 0.0.0.0)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: HTTP_PORT or 3000)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Worker threads, 0 = sequential (default: HTTP_WORKERS or 0)"
    )

    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL of the user store (default: DATABASE_URL)"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Client socket timeout in seconds (default: HTTP_TIMEOUT or none)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: HTTP_LOG_LEVEL or INFO)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"userserver {__version__}"
    )

    return parser


def load_config(argv=None) -> ServerConfig:
    """Environment config with command-line overrides applied."""
    args = build_parser().parse_args(argv)
    config = ServerConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "workers": args.workers,
        "database_url": args.database_url,
        "timeout": args.timeout,
        "log_level": args.log_level,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    return config


def main(argv=None):
    try:
        config = load_config(argv)
        server = UserServer(config)
        server.setup_logging()
        server.bootstrap()
    except (ValueError, SQLAlchemyError, UserServiceError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    server.run()


if __name__ == "__main__":
    main()
