"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the record-log socket server.

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
    │      └── python -m aesdsocket --port 9001                          │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── AESD_PORT=9001 python -m aesdsocket                       │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The defaults reproduce the classic deployment: every interface, port 9000,
a backlog of 10 and the data file at /var/tmp/aesdsocketdata.
=============================================================================
"""

import logging
import os
from dataclasses import dataclass


DEFAULT_DATA_FILE = "/var/tmp/aesdsocketdata"

_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass
class ServerConfig:
    """
    Configuration for the record-log server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, poll_interval

    STORAGE
    - data_file, read_chunk_size, delimiter

    LOGGING
    - log_level, syslog, syslog_address

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces (default)
    - "127.0.0.1" - Localhost only (tests, development)
    """

    port: int = 9000
    """
    The TCP port to listen on. 0 lets the OS pick a free port.
    """

    backlog: int = 10
    """
    Depth of the kernel queue of connections waiting for accept().
    Connections are served one at a time, so a short queue is enough.
    """

    buffer_size: int = 1024
    """
    Maximum number of bytes requested from the client socket per recv().
    """

    poll_interval: float = 0.5
    """
    Timeout in seconds for every blocking socket call.

    A timeout never ends a connection. It only gives the loops a chance to
    look at the shutdown latch, because Python transparently restarts a
    system call interrupted by a signal whose handler returns normally.
    """

    # ─────────────────────────────────────────────────────────────────────
    # STORAGE
    # ─────────────────────────────────────────────────────────────────────

    data_file: str = DEFAULT_DATA_FILE
    """
    Path of the append-only log. Created on first record, removed on exit.
    """

    read_chunk_size: int = 1024
    """
    Chunk size used when streaming the log back to a client.
    """

    delimiter: bytes = b"\n"
    """
    The single byte that terminates a record.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    syslog: bool = True
    """
    Also send log records to the system logger.
    """

    syslog_address: str = "/dev/log"
    """
    Unix socket of the local syslog daemon.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        AESD_HOST             Bind address (default: 0.0.0.0)
        AESD_PORT             Listening port (default: 9000)
        AESD_BACKLOG          Listen backlog (default: 10)
        AESD_BUFFER_SIZE      recv() size (default: 1024)
        AESD_READ_CHUNK_SIZE  Read-back chunk size (default: 1024)
        AESD_DATA_FILE        Log path (default: /var/tmp/aesdsocketdata)
        AESD_POLL_INTERVAL    Latch poll interval in seconds (default: 0.5)
        AESD_LOG_LEVEL        Logging level (default: INFO)
        AESD_SYSLOG           "0", "false", "no" or "off" disables syslog
        AESD_SYSLOG_ADDRESS   Syslog socket (default: /dev/log)

        =====================================================================
        """
        return cls(
            host=os.getenv("AESD_HOST", "0.0.0.0"),
            port=int(os.getenv("AESD_PORT", "9000")),
            backlog=int(os.getenv("AESD_BACKLOG", "10")),
            buffer_size=int(os.getenv("AESD_BUFFER_SIZE", "1024")),
            read_chunk_size=int(os.getenv("AESD_READ_CHUNK_SIZE", "1024")),
            data_file=os.getenv("AESD_DATA_FILE", DEFAULT_DATA_FILE),
            poll_interval=float(os.getenv("AESD_POLL_INTERVAL", "0.5")),
            log_level=os.getenv("AESD_LOG_LEVEL", "INFO"),
            syslog=os.getenv("AESD_SYSLOG", "1").strip().lower() not in _FALSE_VALUES,
            syslog_address=os.getenv("AESD_SYSLOG_ADDRESS", "/dev/log"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a bad value fails before any socket or
        file is touched.

        Raises:
            ValueError: If a value is out of range.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.read_chunk_size < 1:
            raise ValueError("read_chunk_size must be >= 1")

        if len(self.delimiter) != 1:
            raise ValueError(f"delimiter must be a single byte, got {self.delimiter!r}")

        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")
