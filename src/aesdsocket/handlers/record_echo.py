"""
=============================================================================
RECORD ECHO HANDLER
=============================================================================

Drives one connection from accept() to close: split the incoming byte
stream into records, append each record to the log, and after every record
send the ENTIRE log back.

    Client                               Server
      │   "hello\nwor"                     │
      │ ─────────────────────────────────► │  append "hello\n"
      │                      "hello\n"     │
      │ ◄───────────────────────────────── │  echo whole log
      │   "ld\n"                           │
      │ ─────────────────────────────────► │  append "world\n"
      │             "hello\nworld\n"       │
      │ ◄───────────────────────────────── │  echo whole log
      │   FIN                              │
      │ ─────────────────────────────────► │  CLOSED

=============================================================================
FAILURE POLICY
=============================================================================

A failure only ever ends the current connection:

- store error on append or read-back  → log, close, skip remaining records
- socket error on read or send        → log, close
- shutdown requested                  → close quietly

Bytes that never saw a delimiter are dropped when the connection ends.
=============================================================================
"""

import logging

from ..core.connection import Connection, ConnectionState
from ..core.record_buffer import RecordBuffer
from ..errors import ShutdownRequested, StoreError
from ..storage import LogStore


logger = logging.getLogger(__name__)


class RecordEchoHandler:
    """
    Connection handler implementing the append-and-echo protocol.

    Usage:
        handler = RecordEchoHandler(LogStore(path))
        server.serve(handler.handle)
    """

    def __init__(self, store: LogStore, delimiter: bytes = b"\n"):
        self.store = store
        self.delimiter = delimiter

    def handle(self, conn: Connection) -> None:
        """
        Serve ``conn`` until the peer closes, an error occurs, or shutdown
        is requested. Never raises for per-connection failures.
        """
        buffer = RecordBuffer(self.delimiter)

        try:
            while not conn.latch.is_set():
                chunk = conn.read_chunk()
                if not chunk:
                    break

                buffer.append(chunk)

                for record in buffer.pop_records():
                    if not self._process_record(conn, record):
                        return
        except ShutdownRequested:
            logger.debug(f"[{conn.id}] Shutdown requested mid-response")
        except OSError as e:
            logger.error(f"[{conn.id}] Connection error from {conn.client_ip}: {e}")
        finally:
            dropped = buffer.clear()
            if dropped:
                logger.debug(f"[{conn.id}] Discarding {dropped} unterminated bytes")

    def _process_record(self, conn: Connection, record: bytes) -> bool:
        """
        Append one record and echo the whole log.

        Returns:
            False if the connection must be closed.
        """
        conn.state = ConnectionState.APPENDING
        try:
            self.store.append(record)
        except StoreError as e:
            logger.error(f"[{conn.id}] {e}")
            return False

        conn.records_handled += 1

        conn.state = ConnectionState.RESPONDING
        try:
            self.store.read_all(conn.send_all)
        except StoreError as e:
            logger.error(f"[{conn.id}] {e}")
            return False

        return True
