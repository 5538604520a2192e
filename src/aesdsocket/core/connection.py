"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one accepted client socket with the two primitives the
record protocol needs: "read the next chunk" and "send these bytes, all of
them".

=============================================================================
CONNECTION LIFECYCLE
=============================================================================

    ┌─────────┐  accept()   ┌─────────┐  delimiter  ┌───────────┐
    │  (none) │────────────►│ READING │────────────►│ APPENDING │
    └─────────┘             └────┬────┘             └─────┬─────┘
                                 ▲                        │ store.append()
                                 │                        ▼
                                 │                  ┌────────────┐
                                 └──────────────────│ RESPONDING │
                                   next record or   └────────────┘
                                   next chunk          store.read_all()

    Any state ──► CLOSED   (peer closed, error, or shutdown requested)

=============================================================================
BLOCKING CALLS AND THE SHUTDOWN LATCH
=============================================================================

Every socket call blocks for at most ``poll_interval`` seconds. When it
times out (or is interrupted by a signal) the latch is checked:

    latch clear  → retry the same call
    latch set    → stop: read_chunk() returns b"", send_all() raises
                   ShutdownRequested

A timeout is never treated as an idle client. An unresponsive client keeps
the connection open for as long as it likes.
=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..errors import ShutdownRequested
from .signals import ShutdownLatch


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """
    Connection lifecycle states, used for logging and debugging.
    """
    NEW = "new"                # Just accepted, nothing read yet
    READING = "reading"        # Waiting for the next chunk from the client
    APPENDING = "appending"    # Writing a complete record to the log
    RESPONDING = "responding"  # Streaming the whole log back
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        latch: Shutdown latch consulted around every blocking call.
        id: Unique connection identifier (for logging).
        state: Current connection state.
        records_handled: Complete records received on this connection.
        bytes_received: Total bytes read from the client.
        bytes_sent: Total bytes written to the client.
    """

    # Required parameters
    socket: socket.socket
    address: tuple
    latch: ShutdownLatch

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    records_handled: int = 0
    bytes_received: int = 0
    bytes_sent: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 1024
    poll_interval: Optional[float] = 0.5

    def __post_init__(self):
        """Switch the socket to timeout mode so loops can poll the latch."""
        self.socket.settimeout(self.poll_interval)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        if isinstance(self.address, tuple) and self.address:
            return str(self.address[0])
        return str(self.address) or "unknown"

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_chunk(self) -> bytes:
        """
        Read the next chunk of at most ``buffer_size`` bytes.

        Returns:
            The received bytes. Empty bytes mean the connection is over:
            either the peer closed it or shutdown was requested.

        Raises:
            OSError: On any other socket error (for example a reset).
        """
        self.state = ConnectionState.READING

        while not self.latch.is_set():
            try:
                data = self.socket.recv(self.buffer_size)
            except (socket.timeout, InterruptedError):
                continue

            self.bytes_received += len(data)
            return data

        return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_all(self, data: bytes) -> None:
        """
        Send every byte of ``data``.

        socket.sendall() cannot be used here: on timeout it does not report
        how much was already sent, so a retry would duplicate bytes. send()
        returns the count and the loop resends only the remainder.

        Raises:
            ShutdownRequested: If the latch trips while the send is blocked.
            OSError: If the client disconnected or another socket error
                occurred.
        """
        view = memoryview(data)
        while view:
            try:
                sent = self.socket.send(view)
            except (socket.timeout, InterruptedError):
                if self.latch.is_set():
                    raise ShutdownRequested()
                continue
            view = view[sent:]
            self.bytes_sent += sent

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """Close the client socket. Safe to call more than once."""
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.close()
        except OSError as e:
            logger.error(f"[{self.id}] close() failed: {e}")

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Connection closed after {self.records_handled} records "
            f"({self.bytes_received} bytes in, {self.bytes_sent} bytes out) in {self.age:.2f}s"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
