"""
Configuration management for juice.

Configuration is loaded from multiple sources with layered precedence:
1. Built-in defaults (Pydantic model defaults)
2. YAML config file ($XDG_CONFIG_HOME/juice/config.yml or --config path)
3. Environment variables (JUICE_* prefix, __ for nesting)
4. Command-line overrides (highest precedence)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_ENV_PREFIX = "JUICE_"
DEFAULT_POWER_SUPPLY_PATH = "/sys/class/power_supply"


def _xdg_dir(env_var: str, fallback: str) -> Path:
    """Resolve an XDG base directory, falling back to a path under $HOME."""
    value = os.environ.get(env_var)
    if value:
        return Path(value)
    return Path.home() / fallback


def default_db_path() -> str:
    """Return the default history database path."""
    return str(_xdg_dir("XDG_DATA_HOME", ".local/share") / "juice" / "history.db")


def default_config_path() -> Path:
    """Return the default YAML configuration file path."""
    return _xdg_dir("XDG_CONFIG_HOME", ".config") / "juice" / "config.yml"


# =============================================================================
# Section Models
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level.
        json_format: Emit JSON records instead of plain text.
    """

    level: str = Field(
        default="warning",
        description="Log level: debug, info, warning, error",
    )
    json_format: bool = Field(
        default=True,
        description="Whether to format log records as JSON",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"debug", "info", "warn", "warning", "error", "critical"}
        v_lower = v.lower()
        if v_lower not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(sorted(valid_levels))}"
            )
        if v_lower == "warn":
            return "warning"
        return v_lower


class StorageConfig(BaseModel):
    """History storage configuration.

    Attributes:
        db_path: Path to the SQLite history database.
    """

    db_path: str = Field(
        default_factory=default_db_path,
        description="Path to the SQLite history database",
    )


class DaemonConfig(BaseModel):
    """Sampling daemon configuration.

    Attributes:
        interval_seconds: Seconds between two sampling ticks.
        power_supply_path: sysfs directory listing power supplies.
    """

    interval_seconds: int = Field(
        default=30,
        description="Sampling interval in seconds",
        ge=1,
    )
    power_supply_path: str = Field(
        default=DEFAULT_POWER_SUPPLY_PATH,
        description="sysfs power_supply class directory",
    )


class AppConfig(BaseModel):
    """Top-level juice configuration."""

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="History storage configuration",
    )
    daemon: DaemonConfig = Field(
        default_factory=DaemonConfig,
        description="Sampling daemon configuration",
    )


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Args:
        base: The base dictionary.
        override: The dictionary with values to override.

    Returns:
        A new dictionary with merged values.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """
    Load configuration from a YAML file.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        yaml.YAMLError: If the YAML is invalid.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def _parse_env_value(value: str) -> Any:
    """Parse an environment variable value to a bool, int, float or string."""
    if value.lower() in ("true", "yes", "on"):
        return True
    if value.lower() in ("false", "no", "off"):
        return False

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


def _load_env_config(prefix: str = DEFAULT_ENV_PREFIX) -> dict[str, Any]:
    """
    Load configuration from environment variables.

    Nested keys use a double underscore separator, for example
    ``JUICE_DAEMON__INTERVAL_SECONDS=60``.

    Args:
        prefix: Environment variable prefix.

    Returns:
        Dictionary with configuration values.
    """
    result: dict[str, Any] = {}

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        parts = key[len(prefix) :].lower().split("__")

        current = result
        for part in parts[:-1]:
            current = current.setdefault(part, {})

        current[parts[-1]] = _parse_env_value(value)

    return result


def load_config(
    config_path: Path | str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """
    Load configuration from all sources with layered precedence.

    Args:
        config_path: Path to a YAML configuration file. If None, the default
            path is used when it exists.
        env_prefix: Prefix for environment variables.
        overrides: Values from command-line arguments, highest precedence.

    Returns:
        Fully validated AppConfig instance.

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist.
        ValidationError: If configuration is invalid.

    Example:
        >>> config = load_config(overrides={"daemon": {"interval_seconds": 10}})
        >>> config.daemon.interval_seconds
        10
    """
    config_dict: dict[str, Any] = {}

    if config_path is None:
        candidate = default_config_path()
        if candidate.exists():
            config_path = candidate
    elif isinstance(config_path, str):
        config_path = Path(config_path)

    if config_path is not None:
        config_dict = _deep_merge(config_dict, _load_yaml_config(config_path))

    config_dict = _deep_merge(config_dict, _load_env_config(env_prefix))

    if overrides:
        config_dict = _deep_merge(config_dict, overrides)

    return AppConfig(**config_dict)
