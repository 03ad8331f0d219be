"""
=============================================================================
TIME SERVER
=============================================================================

Ties the pieces together: a SocketServer that accepts connections, a
clock that says what time it is, and a format that turns that time into
the single line each client receives.

=============================================================================
WHAT HAPPENS PER CONNECTION
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept()                    ← blocks until a client connects      │
    │      │                                                               │
    │      ▼                                                               │
    │   now = clock()               ← sampled fresh, never reused         │
    │      │                                                               │
    │      ├──► log  "Connection accepted from 127.0.0.1 at               │
    │      │          2021-08-16 18:27:51 (EDT)"                           │
    │      │                                                               │
    │      ├──► send "2021-08-16T22:27:51z\n"                              │
    │      │         (client already gone? log it and carry on)            │
    │      │                                                               │
    │      └──► close()             ← always                               │
    │                                                                      │
    │   back to accept()                                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The server never reads what the client sends.

=============================================================================
SERVER STATES
=============================================================================

    STOPPED ──start()──► LISTENING ◄──────► SERVING
       ▲                     │      accept /  close
       └──── stop() ─────────┘

Under `python -m timeserver` the loop runs until Ctrl+C / SIGTERM.
Tests call stop() from another thread instead.

=============================================================================
"""

import logging
import sys
import threading
from enum import Enum
from typing import Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection
from .formats import Clock, format_timestamp, local_now


logger = logging.getLogger(__name__)


class ServerState(Enum):
    """Where the server is in its lifecycle."""
    STOPPED = "stopped"      # No listening socket
    LISTENING = "listening"  # Bound, waiting in accept()
    SERVING = "serving"      # Between accept() returning and close()


class TimeServer:
    """
    Sequential TCP time server.

    Every client gets exactly one line, the current time, and is then
    disconnected. Clients are served strictly one after another.

    Example:
        server = TimeServer(ServerConfig(host="127.0.0.1", port=0))
        server.start()
        print(server.address)      # ('127.0.0.1', 54321)
        server.serve_forever()     # Blocks until server.stop()

    Or, for the command line:
        TimeServer().run()         # 0.0.0.0:8086, until Ctrl+C
    """

    def __init__(self, config: Optional[ServerConfig] = None, clock: Optional[Clock] = None):
        """
        Initialize the time server.

        Args:
            config: Server configuration. Defaults to ServerConfig().
            clock: Zero-argument callable returning the current datetime.
                   Tests pass a fixed clock; the default is local_now.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._clock: Clock = clock or local_now
        self._socket_server = SocketServer(self.config)

        self._state = ServerState.STOPPED
        self._state_lock = threading.Lock()
        self._connections_served = 0

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the real port even if 0 was requested."""
        return self._socket_server.address

    @property
    def port(self) -> int:
        return self.address[1]

    @property
    def connections_served(self) -> int:
        """How many connections have been accepted so far."""
        return self._connections_served

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, port: Optional[int] = None) -> Tuple[str, int]:
        """
        Bind and begin listening.

        Args:
            port: Port to listen on. Defaults to config.port (8086).

        Returns:
            The bound (host, port).

        Raises:
            BindError: Port in use, privileged, or bad address. Fatal.
        """
        init_time = self._clock()
        logger.info(f"Initialization time is {format_timestamp(init_time, self.config.log_timestamp_format)}")

        host, bound_port = self._socket_server.open(port)
        self._set_state(ServerState.LISTENING)

        logger.info(f"Server is now listening on port {bound_port}")
        return host, bound_port

    def serve_forever(self):
        """
        Run the accept loop until stop() is called.

        Raises:
            AcceptError: accept() failed unexpectedly. Fatal.
        """
        try:
            self._socket_server.serve(self._handle_connection)
        finally:
            self._set_state(ServerState.STOPPED)

    def run(self, port: Optional[int] = None):
        """
        Configure logging, start, and serve until stopped (blocking).

        Ctrl+C without signal handlers installed ends the loop quietly.
        The listening socket is released however this method exits.
        """
        self._setup_logging()

        try:
            self.start(port)
            self.serve_forever()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self.close()

    def stop(self):
        """
        Stop accepting connections.

        The current connection (if any) is finished first. Safe to call
        from any thread and more than once.
        """
        self._socket_server.shutdown()

    def close(self):
        """Release the listening socket immediately."""
        self._socket_server.close()
        self._set_state(ServerState.STOPPED)

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until start() has bound the socket. False on timeout."""
        return self._socket_server.wait_until_listening(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is released. False on timeout."""
        return self._socket_server.wait_for_shutdown(timeout)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _set_state(self, state: ServerState):
        with self._state_lock:
            self._state = state

    def _setup_logging(self):
        """Configure logging based on config. Operator output goes to stdout."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            stream=sys.stdout,
        )

        logging.getLogger("timeserver").setLevel(level)

    def _handle_connection(self, conn: Connection):
        """
        Serve one client: sample the clock, log, write one line, close.

        Called inline by the accept loop, so nothing else is accepted
        until this returns.
        """
        self._set_state(ServerState.SERVING)
        try:
            now = self._clock()
            self._connections_served += 1

            logger.info(
                f"Connection accepted from {conn.client_ip} "
                f"at {format_timestamp(now, self.config.log_timestamp_format)}"
            )

            if not conn.send_line(format_timestamp(now, self.config.timestamp_format)):
                logger.info(f"[{conn.id}] Client {conn.client_ip} left before the timestamp was sent")
        finally:
            conn.close()
            self._set_state(ServerState.LISTENING)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. start()         bind + listen, log the startup lines
# 2. serve_forever() sequential accept loop, one line per client
# 3. stop()          flag checked between iterations
# 4. run()           all of the above plus logging setup, for the CLI
#
# EXERCISE:
# Serving clients one at a time is a known limitation. Handing each
# Connection to its own thread in _handle_connection is the classic next
# step; every thread would own its connection exclusively.
# =============================================================================
