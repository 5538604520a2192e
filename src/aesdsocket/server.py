"""
=============================================================================
RECORD LOG SERVER
=============================================================================

Top-level orchestration: wire the socket server, the handler and the store
together, run until a shutdown signal, and clean up on every exit path.

=============================================================================
LIFECYCLE
=============================================================================

    run()
      │
      ├──► SETUP (fatal on failure → exit code 1)
      │       ├── SocketServer.open()   socket / SO_REUSEADDR / bind / listen
      │       └── latch.install()       SIGINT + SIGTERM
      │
      ├──► SERVE (until the latch trips)
      │       └── accept → handle → close → accept → ...
      │
      └──► CLEANUP (always)
              ├── restore signal handlers
              ├── close listening socket
              └── remove the data file (missing file is fine)

Resources are acquired through an ExitStack, so whatever was acquired
before a failure is released in reverse order, and nothing that was never
acquired is touched.
=============================================================================
"""

import logging
from contextlib import ExitStack
from typing import Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, ShutdownLatch, shutdown_latch
from .errors import SetupError, StoreError
from .handlers import RecordEchoHandler
from .storage import LogStore


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SETUP_FAILED = 1


class RecordLogServer:
    """
    Append-and-echo TCP server backed by a persistent log file.

    Usage:
        server = RecordLogServer(ServerConfig(port=9000))
        exit_code = server.run()   # blocks until SIGINT/SIGTERM
    """

    def __init__(self, config: Optional[ServerConfig] = None, latch: Optional[ShutdownLatch] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self.latch = latch if latch is not None else shutdown_latch
        self.store = LogStore(self.config.data_file, read_chunk_size=self.config.read_chunk_size)
        self.handler = RecordEchoHandler(self.store, delimiter=self.config.delimiter)
        self._socket_server: Optional[SocketServer] = None

    @property
    def is_running(self) -> bool:
        return self._socket_server is not None and self._socket_server.is_open

    @property
    def address(self) -> Tuple[str, int]:
        """The listening address; the real port once the socket is bound."""
        if self._socket_server is None:
            return (self.config.host, self.config.port)
        return self._socket_server.address

    def run(self, install_signals: bool = True) -> int:
        """
        Start the server (blocking).

        Args:
            install_signals: Register SIGINT/SIGTERM handlers. Only possible
                from the main thread; embedders and tests that trip the
                latch themselves pass False.

        Returns:
            EXIT_OK after an orderly shutdown, EXIT_SETUP_FAILED if setup
            failed.
        """
        exit_code = EXIT_OK

        try:
            with ExitStack() as stack:
                try:
                    self._socket_server = stack.enter_context(SocketServer(self.config, self.latch))
                    if install_signals:
                        stack.enter_context(self.latch.installed())
                except SetupError as e:
                    logger.error(str(e))
                    exit_code = EXIT_SETUP_FAILED
                else:
                    self._socket_server.serve(self.handler.handle)
                    if self.latch.is_set():
                        logger.info("Caught signal, exiting")
        finally:
            self._socket_server = None
            self._remove_store()

        return exit_code

    def shutdown(self) -> None:
        """Request shutdown; takes effect at the next poll point."""
        self.latch.trip()

    def _remove_store(self) -> None:
        try:
            self.store.remove()
        except StoreError as e:
            logger.error(str(e))
