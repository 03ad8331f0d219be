"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

One accepted client, from accept() to close().

A time server connection is about as simple as TCP gets:

    Server                                Client
       │                                     │
       │ ◄──────────── SYN ──────────────── │   connect()
       │ ───────────── SYN-ACK ───────────► │
       │ ◄──────────── ACK ──────────────── │   (accept() returns)
       │                                     │
       │ ── "2021-08-16T23:25:39z\n" ─────► │   send_line()
       │ ───────────── FIN ───────────────► │   close()
       │                                     │

We never read from the client. Whatever it sends is ignored.

=============================================================================
THE EARLY-HANGUP PROBLEM
=============================================================================

Nothing stops a client from connecting and hanging up straight away
(a port scanner does exactly this). By the time we write, the socket may
already be dead:

    sendall() → BrokenPipeError       (peer closed, we wrote anyway)
    sendall() → ConnectionResetError  (peer sent RST)

Both are subclasses of ConnectionError. For a time server this is NOT
an error worth stopping for: log it, close our end, move on to the next
client. send_line() therefore reports failure with a return value
instead of raising.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    OPEN ──────► WRITING ──────► CLOSED
      │                            ▲
      └────────────────────────────┘   (close() without a write)

=============================================================================
"""

import socket
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field


logger = logging.getLogger(__name__)


LINE_TERMINATOR = "\n"


class ConnectionState(Enum):
    """Connection lifecycle states."""
    OPEN = "open"          # Just accepted, nothing written yet
    WRITING = "writing"    # Sending the timestamp line
    CLOSED = "closed"      # Socket released


@dataclass
class Connection:
    """
    Represents one accepted client connection.

    The accept loop owns the connection for exactly one iteration:
    create it, write one line, close it. It is never shared.

    Attributes:
        socket: The client socket returned by accept().
        address: Client's (ip, port) tuple.
        id: Short identifier for log lines.
        state: Current connection state.
        bytes_sent: Bytes successfully handed to the kernel.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.OPEN
    bytes_sent: int = 0

    # A slow or stalled client must not wedge the single accept loop.
    write_timeout: float = 5.0

    def __post_init__(self):
        self.socket.settimeout(self.write_timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def client_port(self) -> int:
        """Get the client port."""
        return self.address[1]

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    def send_line(self, text: str) -> bool:
        """
        Send one line of text, followed by the line terminator.

        Writing is best-effort: if the client is already gone the error
        is logged and swallowed.

        Args:
            text: The line to send, without a terminator.

        Returns:
            True if the whole line was sent, False if the client was gone.
        """
        if self.is_closed:
            logger.warning(f"[{self.id}] Write on closed connection ignored")
            return False

        self.state = ConnectionState.WRITING
        data = (text + LINE_TERMINATOR).encode("utf-8")

        try:
            # sendall() loops until every byte is written (or it fails)
            self.socket.sendall(data)
        except OSError as e:
            # ConnectionError covers BrokenPipeError and ConnectionResetError;
            # OSError covers the rest (timeouts, ENOTCONN, ...)
            logger.warning(f"[{self.id}] Send to {self.client_ip} failed: {e}")
            return False

        self.bytes_sent += len(data)
        return True

    def close(self):
        """
        Close the connection.

        Always releases the socket, even after a failed write.
        Calling close() twice is harmless.
        """
        if self.is_closed:
            return

        try:
            # Sends FIN: "no more data from us"
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.bytes_sent} bytes")

    def __enter__(self):
        """
        Context manager entry.

            with Connection(sock, addr) as conn:
                conn.send_line(stamp)
            # Connection closed here, even if send_line() raised
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
