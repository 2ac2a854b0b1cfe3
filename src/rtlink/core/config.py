"""Realtime settings.

Settings come from an optional JSON file overlaid with ``RTLINK_*``
environment variables (a ``.env`` file is honoured through python-dotenv).
"""

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from rtlink.connection.reconnect import ReconnectPolicy
from rtlink.errors import ConfigurationError
from rtlink.logger import get_logger
from rtlink.utils import replace_url_path

logger = get_logger("config")

ENV_PREFIX = "RTLINK_"
DEFAULT_ALTERNATE_PATH = "/ws-alt"


class HeartbeatSettings(BaseModel):
    """Heartbeat ping cadence and liveness timeout (seconds)."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    interval: float = Field(15.0, gt=0)
    timeout: float = Field(30.0, gt=0)


class FailoverSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_fails_before_switch: int = Field(3, ge=1, description="Consecutive failures before switching endpoint")


class PollingSettings(BaseModel):
    """Polling interval bounds (seconds)."""

    model_config = ConfigDict(frozen=True)

    default_interval: float = Field(10.0, gt=0)
    min_interval: float = Field(3.0, gt=0)
    max_interval: float = Field(300.0, gt=0)
    request_timeout: float = Field(10.0, gt=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "PollingSettings":
        if not self.min_interval <= self.default_interval <= self.max_interval:
            raise ValueError(
                f"Polling intervals must satisfy min <= default <= max "
                f"(got {self.min_interval}, {self.default_interval}, {self.max_interval})"
            )
        return self


class TransportSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    failure_threshold: int = Field(3, ge=1, description="Connection errors before degrading to polling")


class RealtimeSettings(BaseModel):
    """All tunables of the realtime layer."""

    model_config = ConfigDict(frozen=True)

    primary_url: str = Field(..., description="Primary websocket URL")
    alternate_url: Optional[str] = Field(None, description="Fallback websocket URL on the same host")
    poll_base_url: Optional[str] = Field(None, description="Base URL for relative polling endpoints")
    reconnect: ReconnectPolicy = Field(default_factory=ReconnectPolicy)
    heartbeat: HeartbeatSettings = Field(default_factory=HeartbeatSettings)
    failover: FailoverSettings = Field(default_factory=FailoverSettings)
    polling: PollingSettings = Field(default_factory=PollingSettings)
    transport: TransportSettings = Field(default_factory=TransportSettings)

    def derive_alternate_url(self) -> str:
        """Alternate URL: configured value, or the primary's host with path /ws-alt."""
        return self.alternate_url or replace_url_path(self.primary_url, DEFAULT_ALTERNATE_PATH)


# env var suffix -> (section, field); section None means top level
_ENV_FIELDS: dict[str, tuple[Optional[str], str]] = {
    "PRIMARY_URL": (None, "primary_url"),
    "ALTERNATE_URL": (None, "alternate_url"),
    "POLL_BASE_URL": (None, "poll_base_url"),
    "RECONNECT_BASE_DELAY": ("reconnect", "base_delay"),
    "RECONNECT_MAX_DELAY": ("reconnect", "max_delay"),
    "RECONNECT_BACKOFF_FACTOR": ("reconnect", "backoff_factor"),
    "RECONNECT_JITTER_RATIO": ("reconnect", "jitter_ratio"),
    "RECONNECT_MAX_ATTEMPTS": ("reconnect", "max_attempts"),
    "HEARTBEAT_ENABLED": ("heartbeat", "enabled"),
    "HEARTBEAT_INTERVAL": ("heartbeat", "interval"),
    "HEARTBEAT_TIMEOUT": ("heartbeat", "timeout"),
    "FAILOVER_MAX_FAILS": ("failover", "max_fails_before_switch"),
    "POLLING_DEFAULT_INTERVAL": ("polling", "default_interval"),
    "POLLING_MIN_INTERVAL": ("polling", "min_interval"),
    "POLLING_MAX_INTERVAL": ("polling", "max_interval"),
    "POLLING_REQUEST_TIMEOUT": ("polling", "request_timeout"),
    "TRANSPORT_FAILURE_THRESHOLD": ("transport", "failure_threshold"),
}


def _apply_env(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    merged = {key: dict(value) if isinstance(value, dict) else value for key, value in data.items()}
    for suffix, (section, name) in _ENV_FIELDS.items():
        value = env.get(f"{ENV_PREFIX}{suffix}")
        if value is None or value == "":
            continue
        if section is None:
            merged[name] = value
        else:
            merged.setdefault(section, {})[name] = value
    return merged


def load_settings(
    config_path: Optional[str | Path] = None,
    env: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> RealtimeSettings:
    """
    Load realtime settings.

    Args:
        config_path: Optional JSON file with the settings structure
        env: Environment mapping (defaults to os.environ after load_dotenv())
        **overrides: Top-level values that win over file and environment

    Returns:
        Validated, frozen settings

    Raises:
        ConfigurationError: If the file is missing or invalid, or validation fails
    """
    if env is None:
        load_dotenv()
        env = os.environ

    data: dict[str, Any] = {}
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            error_msg = f"Realtime configuration file not found: {path}"
            logger.error(error_msg)
            raise ConfigurationError(error_msg)
        logger.info(f"Loading realtime configuration from: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            error_msg = f"Invalid JSON in configuration file {path}: {e}"
            logger.error(error_msg)
            raise ConfigurationError(error_msg) from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a JSON object")

    data = _apply_env(data, env)
    data.update({key: value for key, value in overrides.items() if value is not None})

    try:
        settings = RealtimeSettings.model_validate(data)
    except ValidationError as e:
        error_msg = f"Invalid realtime configuration: {e}"
        logger.error(error_msg)
        raise ConfigurationError(error_msg) from e

    logger.debug(f"Realtime settings loaded (primary={settings.primary_url})")
    return settings
