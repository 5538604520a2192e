"""
=============================================================================
AESDSOCKET - Append-and-Echo Record Log Server
=============================================================================

A small TCP service that collects newline-terminated records from clients
into an append-only log file and, after every record, sends the whole log
back to the client.

=============================================================================
PROTOCOL
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Client sends any bytes. Each "\n" ends one RECORD.                │
    │                                                                      │
    │   For every complete record the server:                             │
    │     1. appends it to /var/tmp/aesdsocketdata                        │
    │     2. sends the ENTIRE file back over the same connection          │
    │                                                                      │
    │   The log is shared by every connection served during one run      │
    │   and deleted when the server stops.                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    $ printf 'hello\n' | nc localhost 9000
    hello
    $ printf 'world\n' | nc localhost 9000
    hello
    world

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    aesdsocket/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m aesdsocket)
    ├── server.py            # RecordLogServer: setup, serve, cleanup
    ├── config.py            # ServerConfig dataclass
    ├── errors.py            # SetupError, StoreError, ShutdownRequested
    ├── log_config.py        # Console + syslog logging
    ├── core/                # Low-level components
    │   ├── signals.py       # Shutdown latch (SIGINT/SIGTERM)
    │   ├── socket_server.py # Listening socket + accept loop
    │   ├── connection.py    # Client socket wrapper
    │   └── record_buffer.py # Splits the stream into records
    ├── handlers/
    │   └── record_echo.py   # Append-and-echo protocol
    └── storage/
        └── log_store.py     # Append-only log file

=============================================================================
QUICK START
=============================================================================

    from aesdsocket import RecordLogServer, ServerConfig

    server = RecordLogServer(ServerConfig(port=9000))
    raise SystemExit(server.run())   # Ctrl+C to stop

=============================================================================
"""

__version__ = "1.0.0"

from .server import RecordLogServer
from .config import ServerConfig

__all__ = ["RecordLogServer", "ServerConfig", "__version__"]
