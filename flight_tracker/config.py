"""
Configuration management for the flight tracker.

Settings live in a JSON file and are parsed into dataclasses. Command-line
flags override whatever the file says.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .exceptions import ConfigurationError
from .message_source import DEFAULT_RAW_PORT, SOURCE_FORMATS

SOURCE_TYPES = ("stdin", "tcp")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class SourceConfig:
    """Configuration for a message source."""
    name: str = "stdin"
    type: str = "stdin"  # stdin, tcp
    host: str = "localhost"
    port: int = DEFAULT_RAW_PORT
    format: str = "avr"  # avr, beast
    connect_timeout_sec: float = 10.0


@dataclass
class TrackingConfig:
    """Aircraft tracking and display configuration."""
    expire_sec: float = 60
    refresh_interval_sec: float = 1.0
    crc_validation: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "WARNING"
    log_file: Optional[str] = None
    max_log_size_mb: int = 10
    backup_count: int = 3
    stats_interval_sec: int = 60


@dataclass
class TrackerConfig:
    """Complete flight tracker configuration."""
    sources: List[SourceConfig] = field(default_factory=lambda: [SourceConfig()])
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def create_default_config() -> TrackerConfig:
    """Create a configuration with all defaults (one stdin source)."""
    return TrackerConfig()


class ConfigManager:
    """Loads, validates and saves the tracker configuration."""

    def __init__(self, config_path: Union[str, Path] = "flight_tracker.json"):
        self.config_path = Path(config_path)
        self.logger = logging.getLogger(__name__)
        self._config: Optional[TrackerConfig] = None

    def load_config(self) -> TrackerConfig:
        """Load configuration from file, creating a default one if missing."""
        if not self.config_path.exists():
            self.logger.warning(f"Config file {self.config_path} not found, creating default")
            self._config = create_default_config()
            self.save_config()
            return self._config

        try:
            with open(self.config_path, 'r') as f:
                raw_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        self._config = self.parse_config(raw_config)
        self.validate_config(self._config)
        return self._config

    def save_config(self) -> None:
        """Save current configuration to file."""
        if self._config is None:
            raise ConfigurationError("No configuration loaded")

        try:
            with open(self.config_path, 'w') as f:
                json.dump(asdict(self._config), f, indent=4)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {e}") from e

    def get_config(self) -> TrackerConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            return self.load_config()
        return self._config

    @staticmethod
    def parse_config(config_dict: Dict[str, Any]) -> TrackerConfig:
        """Parse configuration dictionary into TrackerConfig object."""
        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a JSON object")

        try:
            config = TrackerConfig()
            if 'sources' in config_dict:
                config.sources = [SourceConfig(**source) for source in config_dict['sources']]
            if 'tracking' in config_dict:
                config.tracking = TrackingConfig(**config_dict['tracking'])
            if 'logging' in config_dict:
                config.logging = LoggingConfig(**config_dict['logging'])
        except TypeError as e:
            raise ConfigurationError(f"Unknown or missing configuration field: {e}") from e

        return config

    @staticmethod
    def validate_config(config: TrackerConfig) -> None:
        """Validate configuration values, reporting every problem at once."""
        errors = []

        def check_number(label: str, value: Any, minimum: float = 0,
                         allow_minimum: bool = False, integer: bool = False) -> None:
            expected = (int,) if integer else (int, float)
            if isinstance(value, bool) or not isinstance(value, expected):
                kind = "an integer" if integer else "a number"
                errors.append(f"{label} must be {kind}, got {value!r}")
            elif value < minimum or (value == minimum and not allow_minimum):
                errors.append(f"{label} must be {'at least' if allow_minimum else 'greater than'} "
                              f"{minimum}, got {value!r}")

        def check_text(label: str, value: Any) -> bool:
            if not isinstance(value, str):
                errors.append(f"{label} must be a string, got {value!r}")
                return False
            return True

        if not config.sources:
            errors.append("at least one message source is required")

        names = [source.name for source in config.sources]
        if not all(isinstance(name, str) for name in names):
            errors.append("message source names must be strings")
        elif len(names) != len(set(names)):
            errors.append("message source names must be unique")

        for source in config.sources:
            label = f"source {source.name}"
            if check_text(f"{label}: type", source.type) and source.type not in SOURCE_TYPES:
                errors.append(f"{label}: unknown type '{source.type}'")
            if check_text(f"{label}: format", source.format):
                if source.format not in SOURCE_FORMATS:
                    errors.append(f"{label}: unknown format '{source.format}'")
                elif source.type == "stdin" and source.format != "avr":
                    errors.append(f"{label}: stdin only carries avr lines")
            if source.type == "tcp":
                if check_text(f"{label}: host", source.host) and not source.host:
                    errors.append(f"{label}: host is required")
                if isinstance(source.port, bool) or not isinstance(source.port, int):
                    errors.append(f"{label}: port must be an integer, got {source.port!r}")
                elif not 1 <= source.port <= 65535:
                    errors.append(f"{label}: port {source.port} out of range")
            check_number(f"{label}: connect_timeout_sec", source.connect_timeout_sec)

        check_number("tracking.expire_sec", config.tracking.expire_sec)
        check_number("tracking.refresh_interval_sec", config.tracking.refresh_interval_sec)
        if not isinstance(config.tracking.crc_validation, bool):
            errors.append(f"tracking.crc_validation must be true or false, "
                          f"got {config.tracking.crc_validation!r}")

        level = config.logging.level
        if check_text("logging.level", level) and level.upper() not in LOG_LEVELS:
            errors.append(f"logging.level '{level}' is not a log level")
        if config.logging.log_file is not None:
            check_text("logging.log_file", config.logging.log_file)
        check_number("logging.max_log_size_mb", config.logging.max_log_size_mb)
        check_number("logging.backup_count", config.logging.backup_count,
                     allow_minimum=True, integer=True)
        check_number("logging.stats_interval_sec", config.logging.stats_interval_sec,
                     allow_minimum=True)

        if errors:
            raise ConfigurationError("Invalid configuration: " + "; ".join(errors))
