"""YAML configuration loader and immutable session settings for streamget."""

import os
import yaml
from enum import Enum
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from .. import __version__

logger = logging.getLogger(__name__)

DEFAULT_TIME_LIMIT = 4 * 3600
DEFAULT_CONNECT_INTERVAL = 2.0
DEFAULT_CONNECT_PERIOD = -1.0
DEFAULT_RECONNECT_INTERVAL = 1.0
DEFAULT_RECONNECT_PERIOD = -1.0
DEFAULT_RECONNECT_BACKOFF = 0.0
DEFAULT_USER_AGENT = f"streamget/{__version__}"


class ConfigError(ValueError):
    """Raised when configuration cannot be loaded or is incomplete."""


class DeadlineAnchor(str, Enum):
    """When the recording-duration timer starts."""
    SESSION_START = "session-start"
    FIRST_BYTE = "first-byte"


class SessionConfig(BaseModel):
    """Immutable settings for one capture session.

    Periods <= 0 mean "retry forever"; a duration <= 0 (or None) means the
    recording has no time limit.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str
    output_path: Path
    log_path: Optional[Path] = None
    lock_path: Optional[Path] = None
    duration: Optional[float] = DEFAULT_TIME_LIMIT
    anchor: DeadlineAnchor = DeadlineAnchor.SESSION_START
    connect_interval: float = DEFAULT_CONNECT_INTERVAL
    connect_period: float = DEFAULT_CONNECT_PERIOD
    reconnect_interval: float = DEFAULT_RECONNECT_INTERVAL
    reconnect_period: float = DEFAULT_RECONNECT_PERIOD
    reconnect_backoff: float = DEFAULT_RECONNECT_BACKOFF
    user_agent: str = DEFAULT_USER_AGENT
    open_timeout: float = 10.0
    read_timeout: float = 30.0
    poll_interval: float = 0.5
    chunk_size: int = 4096
    verbosity: int = 0

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"unsupported URL scheme: {value!r}")
        return value

    @field_validator("duration")
    @classmethod
    def _normalize_duration(cls, value: Optional[float]) -> Optional[float]:
        if value is None or value <= 0:
            return None
        return value

    @field_validator("connect_interval", "reconnect_interval", "reconnect_backoff",
                     "open_timeout", "read_timeout")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @field_validator("poll_interval")
    @classmethod
    def _positive_poll(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be > 0")
        return value

    @field_validator("chunk_size")
    @classmethod
    def _positive_chunk(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be > 0")
        return value

    @field_validator("verbosity")
    @classmethod
    def _non_negative_verbosity(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @model_validator(mode="after")
    def _check_budgets(self) -> "SessionConfig":
        # a finite budget is divided by its interval
        if self.connect_period > 0 and self.connect_interval <= 0:
            raise ValueError("connect_interval must be > 0 when connect_period is set")
        if self.reconnect_period > 0 and self.reconnect_interval <= 0:
            raise ValueError("reconnect_interval must be > 0 when reconnect_period is set")
        return self

    @property
    def effective_lock_path(self) -> Path:
        if self.lock_path is not None:
            return self.lock_path
        return self.output_path.with_name(self.output_path.name + ".lock")


# YAML key path -> SessionConfig field
CONFIG_KEYS = {
    "stream.url": "url",
    "stream.user_agent": "user_agent",
    "output.path": "output_path",
    "output.lock_file": "lock_path",
    "recording.duration": "duration",
    "recording.anchor": "anchor",
    "connect.interval": "connect_interval",
    "connect.period": "connect_period",
    "reconnect.interval": "reconnect_interval",
    "reconnect.period": "reconnect_period",
    "reconnect.backoff": "reconnect_backoff",
    "network.open_timeout": "open_timeout",
    "network.read_timeout": "read_timeout",
    "network.poll_interval": "poll_interval",
    "network.chunk_size": "chunk_size",
    "logging.verbosity": "verbosity",
    "logging.file_path": "log_path",
}


class StreamgetConfig:
    """streamget YAML configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, an empty
                        configuration is used and everything comes from
                        the command line.
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is None:
            self.config: Dict[str, Any] = {}
            return

        if not self.config_file.exists():
            raise ConfigError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in configuration file: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to load configuration: {e}") from e

        if not config:
            raise ConfigError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ConfigError("Configuration file must contain a mapping")

        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in (("output", "path"), ("output", "lock_file"), ("logging", "file_path")):
            if section in config and isinstance(config[section], dict) and key in config[section]:
                value = config[section][key]
                if value and not os.path.isabs(value):
                    config[section][key] = str(config_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'connect.interval').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'stream.url')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def to_session_config(self, **overrides: Any) -> SessionConfig:
        """Build the immutable SessionConfig from YAML values and overrides.

        Overrides are SessionConfig field names; None values are ignored so
        unset command-line flags fall through to the file (and then to the
        model defaults).
        """
        values: Dict[str, Any] = {}
        for key_path, field_name in CONFIG_KEYS.items():
            value = self.get(key_path)
            if value is not None:
                values[field_name] = value
        values.update({k: v for k, v in overrides.items() if v is not None})

        for required in ("url", "output_path"):
            if required not in values:
                raise ConfigError(f"No {required.replace('_', ' ')} specified")

        return SessionConfig(**values)
