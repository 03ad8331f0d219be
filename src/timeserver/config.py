"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the time server.

The tutorial programs this server grew out of hardcode everything:

    server = TCPServer.new 8086     ← port is a literal

That is fine for a ten-line script, but it makes testing painful: every
test run would fight over port 8086. Here the port is a VALUE with a
default of 8086, so tests can pass a free port (or 0) instead.

=============================================================================
WHAT IS (AND IS NOT) CONFIGURABLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     CONFIGURATION SOURCES                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Code                                                           │
    │      └── ServerConfig(port=0, timestamp_format=TimestampFormat.UTC) │
    │                                                                      │
    │   2. Environment variables (output format and logging only)        │
    │      └── TIMESERVER_FORMAT=local-zone python -m timeserver          │
    │      └── TIMESERVER_LOG_LEVEL=DEBUG python -m timeserver            │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The host and port are deliberately NOT read from the environment or the
command line. A time server on a well-known port is the whole point.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass

from .formats import TimestampFormat


DEFAULT_PORT = 8086


@dataclass
class ServerConfig:
    """
    Configuration for the time server.

    Development / tests:
        ServerConfig(
            host="127.0.0.1",    # Localhost only
            port=0,              # Let the OS pick a free port
            log_level="DEBUG",
        )

    Default:
        ServerConfig()           # 0.0.0.0:8086, UTC timestamps
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces
    - "127.0.0.1" - Localhost only
    """

    port: int = DEFAULT_PORT
    """
    The TCP port to listen on.
    - 8086 - The time server's well-known port
    - 0 - Ephemeral port picked by the OS (tests)
    Ports below 1024 need root on Unix.
    """

    backlog: int = 5
    """
    Maximum number of completed handshakes the OS queues for us.
    While one client is being served, the next ones wait here.
    """

    accept_poll_interval: float = 0.5
    """
    How long accept() blocks before we re-check the stop flag, in seconds.
    Clients never see this; it only bounds how long stop() takes.
    """

    # ─────────────────────────────────────────────────────────────────────
    # OUTPUT
    # ─────────────────────────────────────────────────────────────────────

    timestamp_format: TimestampFormat = TimestampFormat.UTC
    """Format of the line sent to each client."""

    log_timestamp_format: TimestampFormat = TimestampFormat.LOCAL_ZONE
    """Format of the time shown in operator log lines."""

    # ─────────────────────────────────────────────────────────────────────
    # PROCESS
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    handle_signals: bool = False
    """
    Install SIGINT/SIGTERM handlers that stop the server cleanly.
    Only possible from the main thread, so it is off by default and
    switched on by the command-line entry point.
    """

    @property
    def address(self) -> tuple[str, int]:
        """The configured (host, port) pair."""
        return (self.host, self.port)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        TIMESERVER_FORMAT     local | utc | local-zone (default: utc)
        TIMESERVER_LOG_LEVEL  Logging level (default: INFO)
        """
        return cls(
            timestamp_format=TimestampFormat.from_name(os.getenv("TIMESERVER_FORMAT", "utc")),
            log_level=os.getenv("TIMESERVER_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by TimeServer at construction time, so a bad value fails
        immediately instead of on the first connection.

        Raises:
            ValueError: If any value is out of range.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.accept_poll_interval <= 0:
            raise ValueError("accept_poll_interval must be > 0")

        if not isinstance(self.timestamp_format, TimestampFormat):
            raise ValueError(f"Invalid timestamp_format: {self.timestamp_format!r}")

        if not isinstance(self.log_timestamp_format, TimestampFormat):
            raise ValueError(f"Invalid log_timestamp_format: {self.log_timestamp_format!r}")

        if not isinstance(self.log_level, str):
            raise ValueError(f"Invalid log_level: {self.log_level!r}")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Invalid log_level: {self.log_level}")
