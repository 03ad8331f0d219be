"""
pytest configuration and fixtures.
"""

import socket
import threading
from datetime import datetime
from typing import Callable, Generator, List, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from timeserver import TimeServer, ServerConfig, local_now


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        accept_poll_interval=0.05,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def read_all(sock: socket.socket, timeout: float = 5.0) -> bytes:
    """Read from a client socket until the server closes it."""
    sock.settimeout(timeout)
    chunks = []
    while True:
        data = sock.recv(1024)
        if not data:
            break
        chunks.append(data)
    return b"".join(chunks)


class ServerHarness:
    """Runs a TimeServer in a background thread."""

    def __init__(self, server: TimeServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.port

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_listening(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def connect(self) -> socket.socket:
        return socket.create_connection(('127.0.0.1', self.port), timeout=5.0)

    def fetch_line(self) -> bytes:
        """Connect, read everything until EOF, close."""
        with self.connect() as client:
            return read_all(client)

    def stop(self):
        """Stop the server and wait for its thread."""
        self.server.stop()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    @property
    def thread_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


class GateClock:
    """
    Clock that can be told to block on its next reading.

    Lets a test hold the server in the middle of serving one client.
    """

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self._armed = False

    def arm(self):
        self._armed = True

    def __call__(self) -> datetime:
        if self._armed:
            self._armed = False
            self.entered.set()
            self.release.wait(timeout=5.0)
        return local_now()


@pytest.fixture
def make_server(config: ServerConfig) -> Generator[Callable[..., ServerHarness], None, None]:
    """Factory that starts servers in background threads and stops them afterwards."""
    harnesses: List[ServerHarness] = []

    def factory(clock=None, **overrides) -> ServerHarness:
        cfg = ServerConfig(**{**config.__dict__, **overrides})
        harness = ServerHarness(TimeServer(cfg, clock=clock))
        harness.start()
        harnesses.append(harness)
        return harness

    yield factory

    for harness in harnesses:
        harness.stop()


@pytest.fixture
def running_server(make_server) -> ServerHarness:
    """A time server with the default (UTC) format on an ephemeral port."""
    return make_server()
