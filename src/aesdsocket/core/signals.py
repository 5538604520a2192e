"""
=============================================================================
SHUTDOWN SIGNAL LATCH
=============================================================================

When you press Ctrl+C or run `kill`, the OS sends a SIGNAL to the process.
The server catches SIGINT and SIGTERM and turns them into a single boolean:
the shutdown latch.

SIGINT (2):   Sent when user presses Ctrl+C
SIGTERM (15): Sent by systemd stop, docker stop, kill

=============================================================================
LIFECYCLE OF THE FLAG
=============================================================================

    process start          signal arrives             process exit
         │                       │                          │
         ▼                       ▼                          ▼
    ─────●───────────────────────●──────────────────────────●────
       False                   True  (never reset)

- WRITTEN only by the signal handler (or trip() from code and tests).
- READ by every loop before and after each blocking call.

The handler does nothing but assign an attribute. No logging, no I/O, no
locks: it may run between any two bytecodes of the main thread, including
in the middle of a logging call that already holds the handler lock.

=============================================================================
WHY POLLING?
=============================================================================

Since Python 3.5 (PEP 475) a system call interrupted by a signal is retried
automatically when the Python-level handler returns normally. A bare
blocking accept() or recv() would therefore never notice the flag. Every
blocking socket call uses a short timeout instead:

    while not latch.is_set():
        try:
            accept()          # returns after at most poll_interval
        except socket.timeout:
            continue          # re-check the flag, block again

=============================================================================
"""

import signal
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Sequence

from ..errors import SetupError


DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownLatch:
    """
    Cooperative shutdown flag set by SIGINT/SIGTERM.

    Usage:
        latch = ShutdownLatch()
        with latch.installed():
            while not latch.is_set():
                ...  # one bounded blocking call
    """

    def __init__(self):
        self._set = False
        self._original_handlers: Dict[int, object] = {}

    def is_set(self) -> bool:
        """Check whether shutdown has been requested."""
        return self._set

    def trip(self) -> None:
        """Request shutdown. Idempotent; the flag is never cleared."""
        self._set = True

    def _handle_signal(self, signum, frame):
        # Runs at arbitrary interruption points: assignment only.
        self._set = True

    @property
    def installed_signals(self) -> Sequence[int]:
        return tuple(self._original_handlers)

    def install(self, signals: Sequence[int] = DEFAULT_SIGNALS) -> None:
        """
        Register the latch as handler for the given signals.

        Original handlers are saved so restore() can put them back, which
        matters when the server is embedded in a larger application.

        Raises:
            SetupError: If a handler cannot be registered. signal.signal()
                raises ValueError outside the main thread.
        """
        if threading.current_thread() is not threading.main_thread():
            raise SetupError("sigaction", "signal handlers can only be installed from the main thread")

        for signum in signals:
            try:
                previous = signal.signal(signum, self._handle_signal)
            except (OSError, ValueError) as e:
                self.restore()
                name = signal.Signals(signum).name
                raise SetupError("sigaction", f"{name}: {e}") from e
            self._original_handlers.setdefault(signum, previous)

    def restore(self) -> None:
        """Restore original signal handlers."""
        for signum, handler in self._original_handlers.items():
            signal.signal(signum, handler)
        self._original_handlers.clear()

    @contextmanager
    def installed(self, signals: Sequence[int] = DEFAULT_SIGNALS) -> Iterator["ShutdownLatch"]:
        """Install handlers for the duration of a ``with`` block."""
        self.install(signals)
        try:
            yield self
        finally:
            self.restore()


# The process-wide latch used by the command-line entry point.
shutdown_latch = ShutdownLatch()
