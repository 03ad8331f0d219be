"""
Unit tests for server configuration.
"""

import pytest

from timeserver import TimeServer
from timeserver.config import ServerConfig, DEFAULT_PORT
from timeserver.formats import TimestampFormat


class TestDefaults:
    def test_well_known_port(self):
        config = ServerConfig()

        assert config.port == DEFAULT_PORT == 8086
        assert config.host == "0.0.0.0"
        assert config.address == ("0.0.0.0", 8086)

    def test_formats(self):
        config = ServerConfig()

        assert config.timestamp_format is TimestampFormat.UTC
        assert config.log_timestamp_format is TimestampFormat.LOCAL_ZONE

    def test_signals_off_by_default(self):
        assert ServerConfig().handle_signals is False


class TestValidate:
    def test_defaults_are_valid(self):
        ServerConfig().validate()

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()

    @pytest.mark.parametrize("overrides,message", [
        ({"port": -1}, "Invalid port"),
        ({"port": 65536}, "Invalid port"),
        ({"backlog": 0}, "backlog"),
        ({"accept_poll_interval": 0}, "accept_poll_interval"),
        ({"log_level": "CHATTY"}, "Invalid log_level"),
        ({"log_level": None}, "Invalid log_level"),
        ({"log_level": 20}, "Invalid log_level"),
        ({"timestamp_format": "utc"}, "Invalid timestamp_format"),
    ])
    def test_invalid_values(self, overrides, message):
        with pytest.raises(ValueError, match=message):
            ServerConfig(**overrides).validate()

    def test_server_validates_on_construction(self):
        with pytest.raises(ValueError):
            TimeServer(ServerConfig(port=70000))


class TestFromEnv:
    def test_defaults_without_env(self, monkeypatch):
        monkeypatch.delenv("TIMESERVER_FORMAT", raising=False)
        monkeypatch.delenv("TIMESERVER_LOG_LEVEL", raising=False)

        config = ServerConfig.from_env()

        assert config.timestamp_format is TimestampFormat.UTC
        assert config.log_level == "INFO"
        assert config.port == 8086

    def test_reads_format_and_level(self, monkeypatch):
        monkeypatch.setenv("TIMESERVER_FORMAT", "local-zone")
        monkeypatch.setenv("TIMESERVER_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert config.timestamp_format is TimestampFormat.LOCAL_ZONE
        assert config.log_level == "DEBUG"

    def test_port_not_read_from_env(self, monkeypatch):
        monkeypatch.setenv("TIMESERVER_PORT", "9999")

        assert ServerConfig.from_env().port == 8086

    def test_unknown_format(self, monkeypatch):
        monkeypatch.setenv("TIMESERVER_FORMAT", "rfc2822")

        with pytest.raises(ValueError):
            ServerConfig.from_env()
