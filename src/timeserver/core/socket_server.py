"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

This module owns the listening socket: it creates it, binds it, runs the
accept loop and releases it again. What to DO with each connection is
somebody else's job (see server.py).

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a socket file descriptor
    2. bind()      Associate the socket with an IP:PORT
                   └─ Fails if the port is taken or privileged
    3. listen()    Mark socket as a "listening" socket
                   └─ OS starts queueing completed handshakes (backlog)
    4. accept()    Take ONE connection off the queue
                   └─ BLOCKS until a client connects
                   └─ Returns a NEW socket just for that client
    5. close()     Release the listening socket

=============================================================================
ONE CLIENT AT A TIME
=============================================================================

The handler runs INLINE in the accept loop. While it runs, nobody calls
accept(), so a second client that connects meanwhile sits in the
kernel's backlog queue:

    ┌──────────────┐     accept()     ┌──────────────┐
    │ Backlog      │ ───────────────► │ handler(conn)│ ──► close
    │ [c2] [c3]    │                  │   c1         │
    └──────────────┘ ◄─── next ────── └──────────────┘

c2's connect() already succeeded (the kernel finished the handshake),
it just receives nothing until c1 is closed. No threads, no locks.

=============================================================================
STOPPING THE LOOP
=============================================================================

accept() with no timeout blocks forever, which makes a clean stop
impossible from inside the process. We give the listening socket a short
timeout instead and check a flag every time it fires:

    while running:
        try:
            accept()          # Blocks for accept_poll_interval max
        except timeout:
            continue          # Check running flag, loop again

Clients never notice the timeout; it only bounds how long shutdown()
takes to be honoured.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from ..errors import AcceptError, BindError
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    Manages the listening socket and the sequential accept loop.

    Usage:
        def handle_connection(conn: Connection):
            conn.send_line("hello")

        server = SocketServer(config)
        server.open()
        server.serve(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Initialize the socket server.

        Args:
            config: Server configuration (host, port, backlog, ...).

        Note: This does NOT create the socket. That happens in open().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None

        self._running = False

        # Set once the socket is listening / once it has been released
        self._listening_event = threading.Event()
        self._shutdown_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        """Check if the accept loop should keep going."""
        return self._running

    @property
    def is_open(self) -> bool:
        """Check if the listening socket exists."""
        return self._socket is not None

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address actually bound.

        Differs from the configured one when port 0 was requested:
        the OS picks a free port and getsockname() reveals it.
        """
        if self._bound_address is not None:
            return self._bound_address
        return self.config.address

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        try:
            # SO_REUSEADDR: restart immediately even if the old socket is
            # still in TIME_WAIT. It does NOT allow two live listeners on
            # the same port, so "Address already in use" is still reported.
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

            # The line is tiny; send it now instead of waiting for more data
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

            sock.settimeout(self.config.accept_poll_interval)
        except OSError:
            sock.close()
            raise

        return sock

    def open(self, port: Optional[int] = None) -> Tuple[str, int]:
        """
        Bind and listen.

        Args:
            port: Port to bind. Defaults to config.port.

        Returns:
            The bound (host, port).

        Raises:
            BindError: The address is in use, privileged, or invalid.
                       Fatal; there is no retry.
        """
        if self._socket is not None:
            raise RuntimeError("Socket server is already open")

        host = self.config.host
        port = self.config.port if port is None else port

        sock: Optional[socket.socket] = None

        try:
            # socket() itself can fail too (EMFILE, EAFNOSUPPORT, ...)
            sock = self._create_socket()
            sock.bind((host, port))
            sock.listen(self.config.backlog)
        except OSError as e:
            if sock is not None:
                sock.close()
            logger.error(f"Failed to bind to {host}:{port}: {e}")
            raise BindError(host, port, e.strerror or str(e)) from e

        self._socket = sock
        self._bound_address = sock.getsockname()[:2]
        self._running = True
        self._shutdown_event.clear()
        self._listening_event.set()

        logger.debug(f"Socket bound to {self._bound_address[0]}:{self._bound_address[1]}")
        return self._bound_address

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers that call shutdown().

        The loop then finishes the current connection, releases the
        socket and returns normally.
        """
        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def serve(self, connection_handler: Callable[[Connection], None]):
        """
        Run the accept loop until shutdown() is called.

        The listening socket is released on every way out of this
        method: normal shutdown, AcceptError, or an exception from the
        handler.

        Args:
            connection_handler: Called once per connection, inline.
                                The connection is closed afterwards
                                whatever the handler did.

        Raises:
            AcceptError: accept() failed while the server was running.
        """
        if self._socket is None:
            raise RuntimeError("Socket server is not open; call open() first")

        if self.config.handle_signals:
            self._setup_signals()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            sock = self._socket
            if sock is None:
                break  # close() ran on another thread

            try:
                client_socket, client_address = sock.accept()
            except socket.timeout:
                continue
            except ConnectionAbortedError as e:
                # Client reset while still in the backlog (BSD/macOS report it here)
                logger.warning(f"Connection aborted before accept: {e}")
                continue
            except OSError as e:
                if not self._running:
                    break  # Socket closed under us by shutdown
                logger.error(f"Accept error: {e}")
                raise AcceptError(f"accept() failed: {e}") from e

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            with Connection(socket=client_socket, address=client_address) as conn:
                connection_handler(conn)

    def shutdown(self):
        """
        Ask the accept loop to stop.

        Safe to call from another thread, from a signal handler, or
        more than once.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        """Restore signal handlers and release the listening socket."""
        self._restore_signals()
        self.close()

    def close(self):
        """Release the listening socket (idempotent)."""
        self._running = False

        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None
            logger.info("Socket server stopped")

        self._listening_event.clear()
        self._shutdown_event.set()

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Wait until open() has succeeded. Returns False on timeout."""
        return self._listening_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Wait until the listening socket has been released. Returns False on timeout."""
        return self._shutdown_event.wait(timeout)
