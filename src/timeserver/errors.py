"""
=============================================================================
TIME SERVER ERRORS
=============================================================================

Only a handful of things can go wrong in a server this small, and they
fall into two groups:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ERROR TAXONOMY                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   FATAL (stop the server, exit non-zero)                            │
    │   ├── BindError     bind()/listen() failed                          │
    │   │                 - Address already in use                        │
    │   │                 - Permission denied (ports < 1024)              │
    │   │                 - Invalid address                               │
    │   └── AcceptError   accept() failed for an unexpected reason        │
    │                                                                      │
    │   RECOVERABLE (log it, close the connection, keep going)            │
    │   └── ConnectionError / OSError while writing the timestamp         │
    │       - The client hung up before we wrote anything                 │
    │       - Handled inside Connection.send_line(), never raised here   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

There is no retry for fatal errors. The port is a fixed precondition:
if we cannot have it, there is nothing sensible left to do.
=============================================================================
"""

from typing import Optional


class TimeServerError(Exception):
    """Base class for errors raised by the time server."""


class BindError(TimeServerError):
    """
    Raised when the listening socket cannot be bound or put in listen mode.

    The original OSError is chained as __cause__, so the traceback still
    shows the errno ("Address already in use", "Permission denied", ...).
    """

    def __init__(self, host: str, port: int, reason: Optional[str] = None):
        message = f"Failed to bind to {host}:{port}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.host = host
        self.port = port


class AcceptError(TimeServerError):
    """Raised when accept() fails while the server is still running."""
