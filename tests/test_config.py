"""Tests for settings loading."""

import json

import pytest

from rtlink.core.config import RealtimeSettings, load_settings
from rtlink.errors import ConfigurationError


class TestLoadSettings:
    """Tests for load_settings."""

    def test_defaults_from_env(self):
        settings = load_settings(env={"RTLINK_PRIMARY_URL": "wss://app.test/ws"})

        assert settings.primary_url == "wss://app.test/ws"
        assert settings.reconnect.max_attempts == 12
        assert settings.heartbeat.interval == 15.0
        assert settings.heartbeat.timeout == 30.0
        assert settings.failover.max_fails_before_switch == 3
        assert settings.polling.min_interval == 3.0
        assert settings.polling.max_interval == 300.0
        assert settings.transport.failure_threshold == 3

    def test_env_values_are_coerced(self):
        settings = load_settings(
            env={
                "RTLINK_PRIMARY_URL": "wss://app.test/ws",
                "RTLINK_RECONNECT_MAX_ATTEMPTS": "5",
                "RTLINK_RECONNECT_BASE_DELAY": "0.5",
                "RTLINK_HEARTBEAT_ENABLED": "false",
                "RTLINK_TRANSPORT_FAILURE_THRESHOLD": "4",
                "RTLINK_POLL_BASE_URL": "",
            }
        )

        assert settings.reconnect.max_attempts == 5
        assert settings.reconnect.base_delay == 0.5
        assert settings.heartbeat.enabled is False
        assert settings.transport.failure_threshold == 4
        assert settings.poll_base_url is None

    def test_file_then_env_then_overrides(self, tmp_path):
        path = tmp_path / "realtime.json"
        path.write_text(
            json.dumps(
                {
                    "primary_url": "wss://file.test/ws",
                    "poll_base_url": "https://file.test/api/",
                    "reconnect": {"max_attempts": 3, "max_delay": 20},
                    "polling": {"default_interval": 15},
                }
            )
        )
        env = {"RTLINK_RECONNECT_MAX_ATTEMPTS": "7"}

        settings = load_settings(path, env=env, alternate_url="wss://file.test/fallback", primary_url=None)

        assert settings.primary_url == "wss://file.test/ws"
        assert settings.alternate_url == "wss://file.test/fallback"
        assert settings.reconnect.max_attempts == 7
        assert settings.reconnect.max_delay == 20.0
        assert settings.polling.default_interval == 15.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_settings(tmp_path / "nope.json", env={})

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{primary_url: ")

        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_settings(path, env={})

    def test_non_object_json(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[]")

        with pytest.raises(ConfigurationError):
            load_settings(path, env={})

    def test_missing_primary_url(self):
        with pytest.raises(ConfigurationError):
            load_settings(env={})

    def test_invalid_polling_bounds(self):
        with pytest.raises(ConfigurationError):
            load_settings(
                env={
                    "RTLINK_PRIMARY_URL": "wss://app.test/ws",
                    "RTLINK_POLLING_MIN_INTERVAL": "30",
                    "RTLINK_POLLING_DEFAULT_INTERVAL": "10",
                }
            )


class TestRealtimeSettings:
    """Tests for derived values."""

    def test_alternate_url_derived_from_primary(self):
        settings = RealtimeSettings(primary_url="wss://app.test:8443/ws?token=abc")

        assert settings.derive_alternate_url() == "wss://app.test:8443/ws-alt"

    def test_explicit_alternate_url_wins(self):
        settings = RealtimeSettings(primary_url="wss://app.test/ws", alternate_url="wss://backup.test/ws")

        assert settings.derive_alternate_url() == "wss://backup.test/ws"
