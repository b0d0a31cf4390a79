"""Configuration management for Vatis agent."""

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Union

DEFAULT_BROKER_URL = "tcp://localhost:1883"
DEFAULT_INTERVAL = 10  # seconds
MIN_INTERVAL = 1
DEFAULT_LOG_LEVEL = logging.WARNING

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Configuration file could not be read or is invalid."""
    pass


@dataclass
class AgentConfig:
    """Agent configuration."""

    broker_url: str = DEFAULT_BROKER_URL
    interval: int = DEFAULT_INTERVAL  # seconds
    client_id: str = ""  # empty lets the MQTT client generate one
    keepalive: int = 60
    connect_timeout: float = 3.0
    strict_collectors: bool = False


def parse_interval(value: Optional[Union[str, int]], default: int = DEFAULT_INTERVAL) -> int:
    """
    Parse a sampling interval given in whole seconds.

    Anything that is not a non-negative integer falls back to ``default``.
    Zero is raised to MIN_INTERVAL.
    """
    if value is None:
        return default

    try:
        interval = int(str(value).strip())
    except ValueError:
        logger.debug(f"invalid interval {value!r}, using default {default}s")
        return default

    if interval < 0:
        logger.debug(f"negative interval {value!r}, using default {default}s")
        return default

    return max(interval, MIN_INTERVAL)


def parse_log_level(value: Optional[str]) -> int:
    """Translate a LOG_LEVEL value (name or number) into a logging level."""
    if not value:
        return DEFAULT_LOG_LEVEL

    value = value.strip()
    if value.isdigit():
        return int(value)

    level = logging.getLevelName(value.upper())
    # getLevelName returns "Level X" for unknown names
    if isinstance(level, int):
        return level
    return DEFAULT_LOG_LEVEL


def log_level_from_env(environ=None) -> int:
    """Read the log level from the LOG_LEVEL environment variable."""
    environ = os.environ if environ is None else environ
    return parse_log_level(environ.get("LOG_LEVEL"))


class ConfigManager:
    """Manages agent configuration."""

    def __init__(self, config_path: str = "/etc/vatis/config.json"):
        self.config_path = Path(config_path)

    def load(self) -> AgentConfig:
        """Load configuration from file."""
        if not self.config_path.exists():
            raise ConfigError(f"Config file not found: {self.config_path}")

        try:
            with open(self.config_path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read config file {self.config_path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {self.config_path} must contain a JSON object")

        known = {f.name for f in fields(AgentConfig)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        for f in fields(AgentConfig):
            if f.name in data and not _has_type(data[f.name], f.type):
                raise ConfigError(
                    f"Config key {f.name} must be of type {f.type.__name__}, "
                    f"got {data[f.name]!r}"
                )

        config = AgentConfig(**data)
        config.interval = parse_interval(config.interval)
        return config


def _has_type(value, expected: type) -> bool:
    # bool is an int subclass, only accept it for bool fields
    if isinstance(value, bool):
        return expected is bool
    if expected is float:
        return isinstance(value, (int, float))
    return isinstance(value, expected)
