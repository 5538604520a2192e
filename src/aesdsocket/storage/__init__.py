"""
Persistent storage for received records.

The only store is LogStore: one append-only file that accumulates every
record for the lifetime of the process and is deleted on shutdown.
"""

from .log_store import LogStore

__all__ = ["LogStore"]
