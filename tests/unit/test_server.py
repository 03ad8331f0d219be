"""
Unit tests for TimeServer connection handling, without a listening socket.
"""

import logging
import socket
from datetime import datetime, timezone

import pytest

from timeserver import ServerState, TimeServer, TimestampFormat
from timeserver.core import Connection


FIXED = datetime(2021, 8, 16, 23, 25, 39, tzinfo=timezone.utc)


@pytest.fixture
def server(config):
    return TimeServer(config, clock=lambda: FIXED)


def make_connection(sock: socket.socket) -> Connection:
    return Connection(socket=sock, address=("10.0.0.7", 51515))


class TestHandleConnection:
    def test_writes_line_and_closes(self, server):
        server_side, client_side = socket.socketpair()
        conn = make_connection(server_side)

        with client_side:
            server._handle_connection(conn)

            assert client_side.recv(1024) == b"2021-08-16T23:25:39z\n"
            assert client_side.recv(1024) == b""

        assert conn.is_closed
        assert server.connections_served == 1
        assert server.state == ServerState.LISTENING

    def test_client_gone_is_not_an_error(self, server, caplog):
        server_side, client_side = socket.socketpair()
        client_side.close()
        conn = make_connection(server_side)

        with caplog.at_level(logging.WARNING, logger="timeserver"):
            server._handle_connection(conn)

        assert conn.is_closed
        assert server.connections_served == 1
        assert any("Send to 10.0.0.7 failed" in r.getMessage() for r in caplog.records)

    def test_uses_configured_format(self, config):
        config.timestamp_format = TimestampFormat.LOCAL
        server = TimeServer(config, clock=lambda: FIXED)
        server_side, client_side = socket.socketpair()

        with client_side:
            server._handle_connection(make_connection(server_side))
            assert client_side.recv(1024) == b"2021-08-16 23:25:39 +0000\n"

    def test_logs_client_address_with_zone_time(self, server, caplog):
        server_side, client_side = socket.socketpair()

        with client_side, caplog.at_level(logging.INFO, logger="timeserver"):
            server._handle_connection(make_connection(server_side))

        assert "Connection accepted from 10.0.0.7 at 2021-08-16 23:25:39 (UTC)" in [
            r.getMessage() for r in caplog.records
        ]


class TestLifecycle:
    def test_initial_state(self, server):
        assert server.state == ServerState.STOPPED
        assert server.connections_served == 0
        assert not server.is_running

    def test_close_without_start(self, server):
        server.close()

        assert server.state == ServerState.STOPPED
        assert server.wait_for_shutdown(timeout=0)

    def test_stop_then_serve_forever_returns(self, server):
        server.start()
        server.stop()

        server.serve_forever()

        assert server.state == ServerState.STOPPED
        assert server.wait_for_shutdown(timeout=0)

    def test_default_config(self):
        server = TimeServer()

        assert server.address == ("0.0.0.0", 8086)
