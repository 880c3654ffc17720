"""Configuration management for awsguard using Pydantic models."""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigFileError

CONFIG_FILE_NAME = ".awsguard.json"


class LogLevel(str, Enum):
    """Logging levels."""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"

    def to_logging(self) -> int:
        return {
            LogLevel.ERROR: logging.ERROR,
            LogLevel.WARN: logging.WARNING,
            LogLevel.INFO: logging.INFO,
            LogLevel.DEBUG: logging.DEBUG,
        }[self]


class LoggingConfig(BaseModel):
    """Logging configuration section."""
    level: LogLevel = LogLevel.WARN


class GuardConfig(BaseModel):
    """Complete awsguard configuration model.

    ``policies`` holds the policy pack arguments: an optional ``all``
    enforcement level plus one entry per policy id. Its contents are checked
    during resolution, not here, so unknown levels fall back to defaults.
    """
    name: str = "pulumi-awsguard"
    policies: dict[str, Any] = Field(default_factory=dict)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("name must not be empty")
        return v

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


def load_config(config_path: str | Path | None = None) -> GuardConfig:
    """Load configuration from file with fallback to defaults.

    Args:
        config_path: Optional path to configuration file. If None, searches
                    current directory and parents for .awsguard.json

    Returns:
        GuardConfig: Loaded and validated configuration

    Raises:
        ConfigFileError: If the file is specified but missing, or invalid
    """
    if config_path is None:
        config_path = find_config_file()
        if config_path is None:
            return create_default_config()
    else:
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigFileError(f"Config file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            config_data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigFileError(f"Invalid JSON in config file {config_path}: {e}") from e
    except OSError as e:
        raise ConfigFileError(f"Failed to read config file {config_path}: {e}") from e

    if not isinstance(config_data, dict):
        raise ConfigFileError(f"Config file {config_path} must contain a JSON object")

    try:
        return GuardConfig(**config_data)
    except ValidationError as e:
        raise ConfigFileError(f"Failed to load config from {config_path}: {e}") from e


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find .awsguard.json configuration file by searching up directory tree.

    Args:
        start_dir: Directory to start search from (default: current directory)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = Path(start_dir).resolve()

    while True:
        config_file = current / CONFIG_FILE_NAME
        if config_file.exists():
            return config_file

        parent = current.parent
        if parent == current:  # Reached root directory
            break
        current = parent

    return None


def create_default_config() -> GuardConfig:
    """Zero-config defaults: every policy at the default enforcement level."""
    return GuardConfig()
