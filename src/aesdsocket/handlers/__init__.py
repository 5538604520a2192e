"""
Connection handlers.

A handler is any callable taking a Connection and serving it to
completion. The socket server calls it once per accepted client and closes
the socket when it returns.

    ┌──────────────┐   Connection   ┌───────────────────┐
    │ SocketServer │───────────────►│ RecordEchoHandler │
    └──────────────┘                └───────────────────┘
"""

from .record_echo import RecordEchoHandler

__all__ = ["RecordEchoHandler"]
