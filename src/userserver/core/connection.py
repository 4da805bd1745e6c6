"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

One accepted client socket, carrying exactly one request and one response.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

A single recv() returns whatever the kernel has buffered so far, which can
be half a request line or the whole request plus body. A server that treats
one recv() as "the request" silently truncates anything bigger than its
buffer. So read_request() loops:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   while no \r\n\r\n in buffer:       ← headers not complete yet     │
    │       recv(buffer_size) → buffer                                    │
    │                                                                      │
    │   content_length = Content-Length header (0 if absent/bad)          │
    │                                                                      │
    │   while body bytes < content_length: ← body not complete yet        │
    │       recv(buffer_size) → buffer                                    │
    │                                                                      │
    │   buffer > max_request_size at any point → ParseError               │
    │   peer closes early → return what arrived (parser decides)          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
LIFECYCLE
=============================================================================

    AWAITING_REQUEST ─► PARSED ─► ROUTED ─► EXECUTED ─► RESPONDED ─► CLOSED
            │              │         │          │
            └──────────────┴─────────┴──────────┴──── any failure ──► CLOSED
                                                     (error response first,
                                                      unless the read failed)

The dispatcher advances the state; the connection only enforces that
close() runs exactly once.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..errors import ParseError


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Where a connection is in its single request/response exchange."""

    AWAITING_REQUEST = "awaiting_request"
    PARSED = "parsed"
    ROUTED = "routed"
    EXECUTED = "executed"
    RESPONDED = "responded"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used to prefix log lines.
        state: Current lifecycle state.
        created_at: Timestamp when the connection was accepted.
        buffer_size: Bytes requested per recv().
        timeout: Socket timeout in seconds (None = blocking).
        max_request_size: Ceiling on the whole request in bytes.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.AWAITING_REQUEST
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 1024
    timeout: Optional[float] = None
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since accept()."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request from the socket.

        Returns:
            The request bytes, or None if the peer closed without sending
            anything.

        Raises:
            ParseError: The request grew past max_request_size.
            socket.timeout: A timeout is configured and the client stalled.
            OSError: The socket failed in some other way.
        """
        while b"\r\n\r\n" not in self._buffer:
            chunk = self._recv()
            if not chunk:
                # Peer closed before the header block finished
                return self._buffer or None
            self._append(chunk)

        header_end = self._buffer.find(b"\r\n\r\n")
        body_start = header_end + 4
        content_length = self._parse_content_length(self._buffer[:header_end])

        while len(self._buffer) - body_start < content_length:
            chunk = self._recv()
            if not chunk:
                break
            self._append(chunk)

        data, self._buffer = self._buffer, b""
        logger.debug(f"[{self.id}] Read {len(data)} bytes")
        return data

    def _append(self, chunk: bytes) -> None:
        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise ParseError(
                f"Request too large: more than {self.max_request_size} bytes"
            )

    def _recv(self) -> bytes:
        """recv() that treats a reset from the peer as end of stream."""
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _parse_content_length(self, headers: bytes) -> int:
        """
        Content-Length from the raw header block, 0 if absent or not a number.

        This runs before the request is parsed, so it scans the lines itself.
        """
        header_str = headers.decode("latin-1").lower()
        for line in header_str.split("\r\n")[1:]:
            name, sep, value = line.partition(":")
            if sep and name.strip() == "content-length":
                value = value.strip()
                return int(value) if value.isdigit() else 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Write the whole response with sendall().

        Returns:
            True if sent, False if the client was already gone.
        """
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

        self.state = ConnectionState.RESPONDED
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully. Safe to call more than once.

        shutdown(SHUT_WR) sends FIN so the client sees end of response,
        any unread bytes are drained briefly, then the descriptor is released.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
