"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from aesdsocket import RecordLogServer, ServerConfig
from aesdsocket.core import ShutdownLatch


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    """Path of the log file; does not exist yet."""
    return tmp_path / "aesdsocketdata"


@pytest.fixture
def latch() -> ShutdownLatch:
    """A fresh latch, never installed as a signal handler."""
    return ShutdownLatch()


@pytest.fixture
def config(free_port: int, data_file: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=free_port,
        data_file=str(data_file),
        poll_interval=0.05,
        log_level="DEBUG",
        syslog=False,
    )


def recv_exactly(sock: socket.socket, size: int, timeout: float = 5.0) -> bytes:
    """Read exactly ``size`` bytes or fail the test."""
    sock.settimeout(timeout)
    data = b""
    while len(data) < size:
        chunk = sock.recv(size - len(data))
        if not chunk:
            break
        data += chunk
    return data


def recv_until_closed(sock: socket.socket, timeout: float = 5.0) -> bytes:
    """Read until the peer closes the connection."""
    sock.settimeout(timeout)
    data = b""
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return data
        data += chunk


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: RecordLogServer, port: int):
        self.server = server
        self.port = port
        self.exit_code: Optional[int] = None
        self._thread: threading.Thread = None

    def _run(self):
        self.exit_code = self.server.run(install_signals=False)

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

        # Wait for server to be ready
        for _ in range(50):  # 5 seconds max
            if self.server.is_running:
                return
            time.sleep(0.1)

        raise RuntimeError("Server failed to start")

    def connect(self) -> socket.socket:
        return socket.create_connection(('127.0.0.1', self.port), timeout=5.0)

    def stop(self):
        """Stop the server and wait for cleanup."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    @property
    def stopped(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()


@pytest.fixture
def test_server(config: ServerConfig, latch: ShutdownLatch) -> Generator[TestServer, None, None]:
    """Create and start a test server."""
    test_srv = TestServer(RecordLogServer(config, latch=latch), config.port)
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture(name="recv_exactly")
def recv_exactly_fixture():
    return recv_exactly


@pytest.fixture(name="recv_until_closed")
def recv_until_closed_fixture():
    return recv_until_closed
