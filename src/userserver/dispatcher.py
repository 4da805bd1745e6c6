"""
=============================================================================
REQUEST DISPATCHER
=============================================================================

Drives one connection from accepted socket to closed socket.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   AWAITING_REQUEST ── read_request() ──────────────┐                │
    │         │                                 read failed / no bytes   │
    │         ▼                                          │                │
    │      PARSED ──── RequestParser.parse()             │                │
    │         │                                          │                │
    │         ▼                                          │                │
    │      ROUTED ──── Router.match()                    │                │
    │         │                                          │                │
    │         ▼                                          │                │
    │     EXECUTED ─── handler(request)                  │                │
    │         │                                          │                │
    │         ▼                                          │                │
    │     RESPONDED ── sendall(response)                 │                │
    │         │                                          │                │
    │         ▼                                          ▼                │
    │      CLOSED  ◄──────────────────────────── (no response sent)       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Any failure after bytes have been read (bad request line, bad id, bad body,
store unreachable, query failed, zero rows, handler bug) becomes exactly
one response via error_response(). Only a failed read closes silently.
Whatever happens, the connection is closed before dispatch() returns.

=============================================================================
"""

import logging
import time
from typing import Optional

from .core.connection import Connection, ConnectionState
from .errors import ParseError, UserServiceError
from .http.request import HTTPRequest, RequestParser
from .http.response import HTTPResponse, error_response, internal_error, route_not_found
from .http.router import Router


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("userserver.access")


class Dispatcher:
    """
    Per-connection request pipeline.

    Usage:
        dispatcher = Dispatcher(router, RequestParser())
        dispatcher.dispatch(conn)   # reads, routes, responds, closes
    """

    def __init__(
        self,
        router: Router,
        parser: Optional[RequestParser] = None,
        server_name: str = "userserver/1.0",
    ):
        self.router = router
        self.parser = parser or RequestParser()
        self.server_name = server_name

    def dispatch(self, conn: Connection) -> Optional[HTTPResponse]:
        """
        Handle the single request on a connection.

        Returns:
            The response sent, or None if nothing could be read.
        """
        start_time = time.time()
        request: Optional[HTTPRequest] = None

        with conn:
            try:
                raw_request = conn.read_request()
            except ParseError as e:
                # Oversized: bytes did arrive, so the client gets an answer
                logger.warning(f"[{conn.id}] {e}")
                response = error_response(e)
                self._send(conn, request, response, start_time)
                return response
            except OSError as e:
                logger.warning(f"[{conn.id}] Read failed: {type(e).__name__}: {e}")
                return None

            if raw_request is None:
                logger.warning(f"[{conn.id}] Client closed before sending a request")
                return None

            try:
                request = self.parser.parse(raw_request, conn.address)
                conn.state = ConnectionState.PARSED

                match = self.router.match(request.method, request.path)
                conn.state = ConnectionState.ROUTED

                if match is None:
                    response = route_not_found()
                else:
                    request.path_params = match.params
                    response = match.route.handler(request)
                conn.state = ConnectionState.EXECUTED

            except UserServiceError as e:
                logger.warning(f"[{conn.id}] {type(e).__name__}: {e}")
                response = error_response(e)
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error: {e}")
                response = internal_error()

            self._send(conn, request, response, start_time)
            return response

    def reject(self, conn: Connection) -> None:
        """Answer 500 without reading and close (used when overloaded)."""
        with conn:
            self._send(conn, None, internal_error(), time.time())

    def _send(
        self,
        conn: Connection,
        request: Optional[HTTPRequest],
        response: HTTPResponse,
        start_time: float,
    ) -> None:
        data = response.to_bytes(self.server_name)
        sent = conn.send_response(data)

        elapsed_ms = (time.time() - start_time) * 1000
        target = f"{request.method} {request.path}" if request else "-"
        access_logger.info(
            f'{conn.client_ip} "{target}" {response.status.value} '
            f'{len(response.body) if sent else 0} {elapsed_ms:.1f}ms'
        )
