"""
=============================================================================
PERSISTENT LOG STORE
=============================================================================

An append-only byte store backed by one file at a fixed path.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      /var/tmp/aesdsocketdata                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │  record 1\n record 2\n record 3\n ...            ◄── append() here  │
    └─────────────────────────────────────────────────────────────────────┘
          ▲
          └── read_all() streams from the start, in bounded chunks

INVARIANT: the file holds the concatenation, in receipt order, of every
record appended since the file last did not exist.

The file is opened and closed around every operation, exactly like the
classic implementation: nothing is cached, so what a client receives is
always what is on disk.

=============================================================================
SHORT WRITES
=============================================================================

A raw (unbuffered) file write may accept fewer bytes than requested.
append() keeps writing the remaining slice until every byte is on disk:

    data     = b"hello world\n"
    write()  → 5         remaining = b" world\n"
    write()  → 7         remaining = b""          done

=============================================================================
CONCURRENCY
=============================================================================

There is no locking here. The acceptor serves one connection at a time, so
store access is serialized by construction. Serving clients concurrently
would need a writer lock around append() + read_all() to keep each echo
consistent with its record.
=============================================================================
"""

import logging
import os
from typing import Callable

from ..errors import StoreError


logger = logging.getLogger(__name__)

Sink = Callable[[bytes], object]


class LogStore:
    """
    Append-only byte log stored in a single file.

    Usage:
        store = LogStore("/var/tmp/aesdsocketdata")
        store.append(b"hello\\n")
        store.read_all(client.send_all)
        store.remove()
    """

    def __init__(self, path: str, read_chunk_size: int = 1024, mode: int = 0o644):
        self.path = path
        self.read_chunk_size = read_chunk_size
        self.mode = mode

    def __repr__(self) -> str:
        return f"LogStore({self.path!r})"

    @property
    def exists(self) -> bool:
        return os.path.exists(self.path)

    @property
    def size(self) -> int:
        """Current size in bytes (0 if the file does not exist)."""
        try:
            return os.path.getsize(self.path)
        except FileNotFoundError:
            return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def append(self, data: bytes) -> None:
        """
        Append a byte span, creating the file if needed.

        Raises:
            StoreError: If open, write or close fails.
        """
        try:
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, self.mode)
        except OSError as e:
            raise StoreError("open", self.path, e) from e

        view = memoryview(data)
        try:
            while view:
                try:
                    written = os.write(fd, view)
                except InterruptedError:
                    continue
                view = view[written:]
        except OSError as e:
            os.close(fd)
            raise StoreError("write", self.path, e) from e

        try:
            os.close(fd)
        except OSError as e:
            raise StoreError("close", self.path, e) from e

    # =========================================================================
    # READING
    # =========================================================================

    def read_all(self, sink: Sink) -> int:
        """
        Stream the whole log to ``sink`` in chunks.

        Errors raised by the sink (for example a socket error while sending
        the chunk to a client) propagate unchanged; only failures of the
        file itself become StoreError.

        Args:
            sink: Called with each chunk, in order.

        Returns:
            Number of bytes streamed.

        Raises:
            StoreError: If open, read or close fails.
        """
        try:
            fd = os.open(self.path, os.O_RDONLY)
        except OSError as e:
            raise StoreError("open", self.path, e) from e

        total = 0
        try:
            while True:
                try:
                    chunk = os.read(fd, self.read_chunk_size)
                except InterruptedError:
                    continue
                except OSError as e:
                    raise StoreError("read", self.path, e) from e
                if not chunk:
                    break
                sink(chunk)
                total += len(chunk)
        except BaseException:
            os.close(fd)
            raise

        try:
            os.close(fd)
        except OSError as e:
            raise StoreError("close", self.path, e) from e

        return total

    def contents(self) -> bytes:
        """Return the whole log (empty if the file does not exist)."""
        chunks = []
        try:
            self.read_all(chunks.append)
        except StoreError as e:
            if isinstance(e.__cause__, FileNotFoundError):
                return b""
            raise
        return b"".join(chunks)

    # =========================================================================
    # CLEANUP
    # =========================================================================

    def remove(self) -> bool:
        """
        Delete the log file. A file that does not exist counts as success.

        Returns:
            True if a file was deleted, False if there was nothing to delete.

        Raises:
            StoreError: If the file exists but cannot be removed.
        """
        try:
            os.remove(self.path)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StoreError("remove", self.path, e) from e
        logger.debug(f"Removed {self.path}")
        return True
