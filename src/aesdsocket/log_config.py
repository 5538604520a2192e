"""
=============================================================================
LOGGING CONFIGURATION
=============================================================================

Every module logs through ``logging.getLogger(__name__)``, so all records
flow through the ``aesdsocket`` logger tree. This module attaches the
handlers once, at process startup:

    ┌──────────────────┐
    │ aesdsocket.*     │──┬──► StreamHandler (stderr, via basicConfig)
    │ loggers          │  │
    └──────────────────┘  └──► SysLogHandler  (/dev/log, facility USER)

The system log is where an operator looks for "Accepted connection from"
and "Closed connection from" lines, so it is enabled by default. Containers
and CI machines often have no syslog daemon; in that case the server keeps
running with console logging only.
=============================================================================
"""

import logging
import logging.handlers
import os
from typing import Optional

from .config import ServerConfig


logger = logging.getLogger(__name__)


def configure_logging(config: ServerConfig) -> logging.Logger:
    """
    Configure console and syslog output for the ``aesdsocket`` package.

    Args:
        config: Server configuration (log_level, syslog, syslog_address).

    Returns:
        The package logger.
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    package_logger = logging.getLogger("aesdsocket")
    package_logger.setLevel(level)

    if config.syslog:
        handler = _make_syslog_handler(config.syslog_address)
        if handler is not None:
            handler.setLevel(level)
            package_logger.addHandler(handler)

    return package_logger


def syslog_ident() -> str:
    """Syslog ident with the process id, like openlog(..., LOG_PID, ...)."""
    return f"aesdsocket[{os.getpid()}]: "


def _make_syslog_handler(address: str) -> Optional[logging.Handler]:
    """Create a SysLogHandler, or None if the syslog socket is unreachable."""
    try:
        handler = logging.handlers.SysLogHandler(
            address=address,
            facility=logging.handlers.SysLogHandler.LOG_USER,
        )
    except OSError as e:
        logger.warning(f"Syslog unavailable at {address}: {e}; logging to console only")
        return None

    # Python 3.11+ swallows the connect error and leaves a closed socket behind
    try:
        sock = getattr(handler, "socket", None)
        if sock is None:
            raise OSError(f"not connected to {address}")
        sock.getpeername()
    except OSError as e:
        handler.close()
        logger.warning(f"Syslog unavailable at {address}: {e}; logging to console only")
        return None

    # Syslog adds its own timestamp and host
    handler.ident = syslog_ident()
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler
