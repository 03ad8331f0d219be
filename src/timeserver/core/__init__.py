"""
=============================================================================
CORE NETWORKING COMPONENTS
=============================================================================

The transport layer of the time server:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer                        Connection                    │
    │   ────────────                        ──────────                    │
    │   - Owns the listening socket         - Owns ONE client socket      │
    │   - bind() / listen()                 - send_line()                 │
    │   - Sequential accept loop            - close()                     │
    │   - Stop flag + signal handlers                                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Nothing here knows about clocks or timestamp formats. SocketServer hands
each Connection to a callback and closes it afterwards.
=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, LINE_TERMINATOR

__all__ = [
    "SocketServer",     # Listening socket + accept loop
    "Connection",       # One accepted client
    "ConnectionState",  # Connection lifecycle states
    "LINE_TERMINATOR",  # What ends the timestamp line
]
