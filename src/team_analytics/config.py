"""Configuration management for the team analytics engine."""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

TIMEFRAME_NAMES = ("week", "month", "quarter", "year")


@dataclass
class AnalyticsConfig:
    """Global configuration model for the analytics engine."""

    # Caching
    cache_ttl_ms: int = 300_000  # 5 minutes

    # Aggregation defaults
    default_timeframe: str = "month"

    # Presentation
    currency_symbol: str = "₹"
    report_recommendation_limit: int = 5

    # Background refresh
    refresh_interval_seconds: float = 60.0

    # File paths
    data_dir: str = "~/.team_analytics"
    data_file: str = "store.json"  # JSON export of the document store, relative to data_dir

    def __post_init__(self):
        """Validate values and expand user paths."""
        self.data_dir = os.path.expanduser(self.data_dir)

        if not isinstance(self.cache_ttl_ms, (int, float)) or self.cache_ttl_ms < 0:
            raise ConfigError(f"cache_ttl_ms must be a non-negative number, got {self.cache_ttl_ms!r}")
        if self.default_timeframe not in TIMEFRAME_NAMES:
            raise ConfigError(
                f"default_timeframe must be one of {', '.join(TIMEFRAME_NAMES)}, got {self.default_timeframe!r}"
            )
        if not isinstance(self.report_recommendation_limit, int) or self.report_recommendation_limit < 0:
            raise ConfigError(
                f"report_recommendation_limit must be a non-negative integer, got {self.report_recommendation_limit!r}"
            )
        if not isinstance(self.refresh_interval_seconds, (int, float)) or self.refresh_interval_seconds <= 0:
            raise ConfigError(
                f"refresh_interval_seconds must be positive, got {self.refresh_interval_seconds!r}"
            )

    def to_yaml(self) -> str:
        """Serialize config to YAML."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        return yaml.dump(data, default_flow_style=False, allow_unicode=True)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "AnalyticsConfig":
        """Deserialize config from YAML."""
        try:
            data = yaml.safe_load(yaml_str) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid configuration YAML: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a YAML mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")

        return cls(**{key: value for key, value in data.items() if key in known})

    def get_data_file_path(self) -> Path:
        """Get the path of the JSON store export."""
        return Path(self.data_dir) / self.data_file

    def get_config_path(self) -> Path:
        """Get the config file path."""
        return Path(self.data_dir) / "config.yaml"


class Config:
    """Configuration manager for the analytics engine."""

    _instance: Optional[AnalyticsConfig] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> AnalyticsConfig:
        """Load configuration from file, falling back to defaults."""
        if cls._instance is not None:
            return cls._instance

        config = AnalyticsConfig()

        if config_path is None:
            config_path = config.get_config_path()

        if config_path.exists():
            with open(config_path, 'r', encoding='utf-8') as f:
                config = AnalyticsConfig.from_yaml(f.read())
            logger.info(f"Loaded configuration from {config_path}")
        else:
            logger.debug(f"No configuration at {config_path}, using defaults")

        cls._instance = config
        return config

    @classmethod
    def save(cls, config: AnalyticsConfig, config_path: Optional[Path] = None) -> None:
        """Save configuration to file."""
        if config_path is None:
            config_path = config.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w', encoding='utf-8') as f:
            f.write(config.to_yaml())
        logger.info(f"Configuration saved to {config_path}")

    @classmethod
    def get(cls) -> AnalyticsConfig:
        """Get the current configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reload(cls, config_path: Optional[Path] = None) -> AnalyticsConfig:
        """Reload configuration from file."""
        cls._instance = None
        return cls.load(config_path)


def get_config() -> AnalyticsConfig:
    """Get the current configuration."""
    return Config.get()


def load_config(config_path: Optional[Path] = None) -> AnalyticsConfig:
    """Load configuration from file."""
    return Config.load(config_path)


def save_config(config: AnalyticsConfig, config_path: Optional[Path] = None) -> None:
    """Save configuration to file."""
    Config.save(config, config_path)
