"""Tests for client configuration and the CLI peer listing."""

import pytest

from presence_client.config import (
    ConfigError,
    create_config_file,
    generate_default_config,
    load_config,
    validate_config,
)
from presence_client.main import format_state
from presence_server.protocol import ClientView, GlobalState


class TestValidateConfig:
    """Tests for validate_config."""

    def test_defaults_valid(self):
        """Generated defaults pass validation."""
        assert validate_config(generate_default_config()) == []

    def test_missing_url(self):
        """server_url is required."""
        errors = validate_config({})
        assert [e.field for e in errors] == ["server_url"]

    def test_bad_scheme(self):
        """HTTP URLs are rejected with a hint."""
        errors = validate_config({"server_url": "http://host/ws"})
        assert errors[0].field == "server_url"
        assert "Hint" in str(errors[0])

    @pytest.mark.parametrize("field,value", [
        ("poll_interval_ms", 0),
        ("request_timeout_ms", "fast"),
        ("color", 360),
        ("color", -1),
    ])
    def test_bad_values(self, field, value):
        """Out-of-range numbers are reported."""
        config = generate_default_config()
        config[field] = value
        assert [e.field for e in validate_config(config)] == [field]


class TestLoadConfig:
    """Tests for load_config."""

    def test_roundtrip_written_file(self, tmp_path):
        """A generated file loads back to the same values."""
        path = tmp_path / "client.yaml"
        written = create_config_file(path)
        assert load_config(str(path)) == written

    def test_explicit_missing(self, tmp_path):
        """Explicit path that does not exist raises."""
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_env_expansion_and_defaults(self, tmp_path, monkeypatch):
        """${VAR} values expand and missing optionals are filled."""
        monkeypatch.setenv("PRESENCE_SERVER_URL", "wss://example.com/ws")
        path = tmp_path / "client.yaml"
        path.write_text("server_url: ${PRESENCE_SERVER_URL}\n")
        config = load_config(str(path))
        assert config["server_url"] == "wss://example.com/ws"
        assert config["poll_interval_ms"] == 35
        assert config["request_timeout_ms"] == 2000

    def test_invalid_raises(self, tmp_path):
        """Validation errors surface as ConfigError."""
        path = tmp_path / "client.yaml"
        path.write_text("server_url: ws://x/ws\ncolor: 999\n")
        with pytest.raises(ConfigError, match="color"):
            load_config(str(path))

    def test_shares_server_config_error(self, tmp_path):
        """Client and server raise the same ConfigError type."""
        from presence_server import config as server_config

        assert ConfigError is server_config.ConfigError
        path = tmp_path / "client.yaml"
        path.write_text("server_url: http://x/ws\n")
        with pytest.raises(server_config.ConfigError, match="server_url"):
            load_config(str(path))

    def test_default_path_created(self, tmp_path, monkeypatch):
        """Missing default config is generated."""
        monkeypatch.setattr(
            "presence_client.config.get_default_config_path",
            lambda: tmp_path / "sub" / "client_config.yaml",
        )
        config = load_config()
        assert config == generate_default_config()
        assert (tmp_path / "sub" / "client_config.yaml").exists()


class TestFormatState:
    """Tests for the CLI peer listing."""

    def test_marks_own_client(self):
        """Own entry is starred and colors are shown."""
        state = GlobalState(version=4, clients=[
            ClientView(id="a", display_name="Sunny Otter", attribute=0, last_updated=1),
            ClientView(id="b", display_name="Witty Yak", attribute=120, last_updated=4),
        ])
        text = format_state(state, own_id="b")
        lines = text.splitlines()
        assert lines[0] == "-- 2 here (version 4) --"
        assert lines[1] == "  #FF0000  Sunny Otter"
        assert lines[2] == "* #00FF00  Witty Yak"
