"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

This module owns the listening socket: the setup phase that creates it and
the accept loop that hands each client to a connection handler.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a TCP socket
    2. setsockopt  SO_REUSEADDR, so a restart does not hit TIME_WAIT
    3. bind()      Associate the socket with HOST:PORT
    4. listen()    Let the OS queue up to `backlog` pending connections
    5. accept()    Wait for a client, returns a NEW socket for it
    6. close()     Release the listening socket

Steps 1-4 are the SETUP PHASE. Each one can fail, and each failure is
fatal: the socket is closed and SetupError is raised. Nothing is retried.

=============================================================================
SERIAL SERVICE
=============================================================================

Connections are served ONE AT A TIME. The handler runs to completion in
the accept loop itself, so the next accept() only happens after the
previous client is fully drained:

    accept ─► handle client 1 ─► close ─► accept ─► handle client 2 ─► ...

This is what makes the unlocked log store safe. While one client is being
served, others wait in the kernel's backlog queue.
=============================================================================
"""

import socket
import logging
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from ..errors import SetupError
from .connection import Connection
from .signals import ShutdownLatch


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Listening socket plus serial accept loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    open()            Setup phase (raises SetupError)                 │
    │        ├──► socket()       Create TCP socket                         │
    │        ├──► setsockopt()   SO_REUSEADDR                              │
    │        ├──► bind()         Bind to HOST:PORT                         │
    │        └──► listen()       Start the accept queue                    │
    │                                                                      │
    │    serve(handler)    Accept loop (blocks until the latch trips)      │
    │        └──► while not latch.is_set():                                │
    │                accept()      Wait for a client (poll timeout)        │
    │                Connection()  Wrap client socket                      │
    │                handler(conn) Serve it to completion                  │
    │                conn.close()                                          │
    │                                                                      │
    │    close()           Release the listening socket                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        with SocketServer(config, latch) as server:
            server.serve(handler.handle)
    """

    def __init__(self, config: ServerConfig, latch: ShutdownLatch):
        self.config = config
        self.latch = latch
        self._socket: Optional[socket.socket] = None

    @property
    def is_open(self) -> bool:
        return self._socket is not None

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the real port when 0 was requested."""
        if self._socket is None:
            return (self.config.host, self.config.port)
        return self._socket.getsockname()[:2]

    # =========================================================================
    # SETUP PHASE
    # =========================================================================

    def open(self) -> "SocketServer":
        """
        Create, configure, bind and listen.

        Raises:
            SetupError: If any step fails. The socket is closed first.
        """
        host, port = self.config.host, self.config.port

        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            raise SetupError("socket", str(e)) from e

        try:
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            except OSError as e:
                raise SetupError("setsockopt", f"SO_REUSEADDR: {e}") from e

            try:
                sock.bind((host, port))
            except OSError as e:
                raise SetupError("bind", f"{host}:{port}: {e}") from e

            try:
                sock.listen(self.config.backlog)
            except OSError as e:
                raise SetupError("listen", str(e)) from e
        except SetupError:
            sock.close()
            raise

        # accept() returns after at most poll_interval to re-check the latch
        sock.settimeout(self.config.poll_interval)

        self._socket = sock
        bound_host, bound_port = self.address
        logger.info(f"Listening on {bound_host}:{bound_port} (backlog {self.config.backlog})")
        return self

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def serve(self, connection_handler: Callable[[Connection], None]) -> None:
        """
        Accept and serve clients one at a time until the latch trips.

        Args:
            connection_handler: Called with each accepted Connection; the
                socket is closed when it returns.
        """
        if self._socket is None:
            raise RuntimeError("serve() called before open()")

        while not self.latch.is_set():
            try:
                client_socket, client_address = self._socket.accept()
            except (socket.timeout, InterruptedError):
                # Normal: gives the loop condition a chance to see the latch
                continue
            except OSError as e:
                if self.latch.is_set():
                    break
                logger.error(f"accept() failed: {e}")
                continue

            conn = Connection(
                socket=client_socket,
                address=client_address,
                latch=self.latch,
                buffer_size=self.config.buffer_size,
                poll_interval=self.config.poll_interval,
            )

            logger.info(f"Accepted connection from {conn.client_ip}")
            try:
                connection_handler(conn)
            finally:
                logger.info(f"Closed connection from {conn.client_ip}")
                conn.close()

    # =========================================================================
    # CLEANUP
    # =========================================================================

    def close(self) -> None:
        """Close the listening socket. Idempotent."""
        if self._socket is None:
            return
        try:
            self._socket.close()
        except OSError as e:
            logger.error(f"close(listening socket) failed: {e}")
        self._socket = None
        logger.debug("Listening socket closed")

    def __enter__(self) -> "SocketServer":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
