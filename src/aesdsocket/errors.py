"""
=============================================================================
ERROR TAXONOMY
=============================================================================

The server distinguishes two tiers of failure:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   FATAL (setup phase)                                                │
    │   └── SetupError                                                     │
    │       socket(), setsockopt(), bind(), listen(), signal registration │
    │       → logged, resources released, process exits with code 1       │
    │                                                                      │
    │   PER-CONNECTION                                                     │
    │   └── StoreError, socket OSError                                     │
    │       → logged, only the current connection is closed               │
    │       → the accept loop keeps serving the next client               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

ShutdownRequested is not a failure at all: it is raised from deep inside a
blocking write when the shutdown latch is observed, so the handler can
unwind without finishing the current response.

Clients never see an error payload. When something goes wrong the socket
is simply closed.
=============================================================================
"""

from typing import Optional


class SetupError(Exception):
    """
    A setup-phase failure that prevents the server from running.

    Attributes:
        step: Which setup step failed ("socket", "setsockopt", "bind", ...).
    """

    def __init__(self, step: str, message: str):
        self.step = step
        super().__init__(f"{step}() failed: {message}")


class StoreError(OSError):
    """I/O failure while appending to or reading back the persistent log."""

    def __init__(self, operation: str, path: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.path = path
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{operation}(\"{path}\") failed{detail}")


class ShutdownRequested(Exception):
    """Raised to unwind a connection when the shutdown latch has been tripped."""
