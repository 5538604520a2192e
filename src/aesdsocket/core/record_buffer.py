"""
=============================================================================
RECORD BUFFER
=============================================================================

TCP is a byte stream, not a message protocol. A client that sends

    send("hello\nwor")
    send("ld\n")

may be read by the server as one chunk, as two, or as eleven. Records are
recovered by buffering the stream and splitting it on the delimiter:

    recv() → b"hel"            buffer = b"hel"            records = []
    recv() → b"lo\nwor"        buffer = b"hello\nwor"     records = [b"hello\n"]
                               buffer = b"wor"            (suffix kept)
    recv() → b"ld\n"           buffer = b"world\n"        records = [b"world\n"]
                               buffer = b""

INVARIANT: between calls the buffer holds exactly the bytes received on
this connection that have not been terminated by a delimiter yet.
=============================================================================
"""

from typing import List


class RecordBuffer:
    """
    Growable byte buffer that accumulates one connection's input.

    Owned by a single handler invocation; whatever is left when the
    connection ends is discarded, never stored.
    """

    def __init__(self, delimiter: bytes = b"\n"):
        if len(delimiter) != 1:
            raise ValueError(f"delimiter must be a single byte, got {delimiter!r}")
        self.delimiter = delimiter
        self._data = bytearray()

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"RecordBuffer(pending={len(self._data)} bytes)"

    @property
    def pending(self) -> bytes:
        """Copy of the unterminated suffix."""
        return bytes(self._data)

    def append(self, chunk: bytes) -> None:
        """Grow the buffer by a freshly received chunk."""
        self._data += chunk

    def pop_records(self) -> List[bytes]:
        """
        Extract every complete record, delimiter included, in order.

        The buffer shrinks to the bytes after the last delimiter found.
        A chunk may hold zero, one or many delimiters, and a record may
        have been assembled from several chunks.
        """
        records = []
        start = 0
        while True:
            end = self._data.find(self.delimiter, start)
            if end == -1:
                break
            records.append(bytes(self._data[start:end + 1]))
            start = end + 1

        if start:
            del self._data[:start]
        return records

    def clear(self) -> int:
        """Discard the unterminated suffix. Returns the number of bytes dropped."""
        dropped = len(self._data)
        self._data.clear()
        return dropped
