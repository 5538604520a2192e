"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The low-level networking pieces of the record-log server:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  • Creates, binds and listens on the TCP socket (setup phase)       │
    │  • Runs the accept() loop, one client at a time                     │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ Hands off each client
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  • Wraps a client socket: read a chunk, send everything             │
    │  • Tracks state (READING → APPENDING → RESPONDING → CLOSED)         │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ Bytes
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                         RECORD BUFFER                                │
    │  • Accumulates the stream, splits it on the delimiter               │
    └─────────────────────────────────────────────────────────────────────┘

All three consult the SHUTDOWN LATCH, the flag set by SIGINT/SIGTERM.
=============================================================================
"""

from .signals import ShutdownLatch, shutdown_latch
from .record_buffer import RecordBuffer
from .connection import Connection, ConnectionState
from .socket_server import SocketServer

__all__ = [
    "ShutdownLatch",    # Cooperative shutdown flag
    "shutdown_latch",   # The process-wide instance
    "RecordBuffer",     # Splits the byte stream into records
    "Connection",       # Wrapper for client socket - handles I/O
    "ConnectionState",  # Enum for connection lifecycle states
    "SocketServer",     # Listening socket + serial accept loop
]
