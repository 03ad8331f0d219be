"""
=============================================================================
TIMESERVER - A Minimal Sequential TCP Time Server
=============================================================================

Connect, get the time, get disconnected:

    $ nc localhost 8086
    2021-08-16T23:25:39z

This is the smallest useful network server there is, which makes it a
good place to see the socket lifecycle without anything else in the way.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    timeserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m timeserver)
    ├── server.py            # TimeServer: clock + format + accept loop
    ├── config.py            # ServerConfig dataclass
    ├── formats.py           # Timestamp line formats (variants A/B/C)
    ├── errors.py            # BindError, AcceptError
    └── core/                # Transport layer
        ├── socket_server.py # Listening socket and accept loop
        └── connection.py    # One accepted client

=============================================================================
QUICK START
=============================================================================

    from timeserver import TimeServer, ServerConfig, TimestampFormat

    server = TimeServer(ServerConfig(
        host="127.0.0.1",
        timestamp_format=TimestampFormat.LOCAL,
    ))
    server.run()   # Blocks; Ctrl+C to stop

=============================================================================
"""

__version__ = "1.0.0"

from .server import TimeServer, ServerState
from .config import ServerConfig, DEFAULT_PORT
from .errors import TimeServerError, BindError, AcceptError
from .formats import TimestampFormat, format_timestamp, parse_timestamp, local_now

__all__ = [
    "TimeServer",
    "ServerState",
    "ServerConfig",
    "DEFAULT_PORT",
    "TimeServerError",
    "BindError",
    "AcceptError",
    "TimestampFormat",
    "format_timestamp",
    "parse_timestamp",
    "local_now",
    "__version__",
]
