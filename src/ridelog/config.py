"""Configuration management for ridelog.

Handles loading configuration from TOML files, environment variables,
and command-line options with proper precedence.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


DEFAULT_CONFIG_PATH = Path.home() / ".config" / "ridelog" / "config.toml"
LOCAL_CONFIG_NAME = ".ridelog.toml"
DEFAULT_DATA_DIR = Path("./data")
DEFAULT_API_URL = "http://localhost:5000/api"
DEFAULT_API_TIMEOUT = 10.0
# About 100 meters at mid-latitudes
DEFAULT_CLUSTER_TOLERANCE = 0.001


@dataclass
class ApiConfig:
    """Ride journal REST API configuration."""

    url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_API_TIMEOUT


@dataclass
class DataConfig:
    """Data storage configuration."""

    directory: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)


@dataclass
class MapConfig:
    """Map grouping configuration."""

    tolerance: float = DEFAULT_CLUSTER_TOLERANCE


@dataclass
class Config:
    """Main configuration container."""

    api: ApiConfig = field(default_factory=ApiConfig)
    data: DataConfig = field(default_factory=DataConfig)
    map: MapConfig = field(default_factory=MapConfig)
    config_path: Path | None = None


def _get_env_value(key: str, default: str = "") -> str:
    """Get environment variable value."""
    return os.environ.get(key, default)


def _get_env_float(key: str, default: float) -> float:
    """Get environment variable as float, keeping `default` if unparsable."""
    value = os.environ.get(key, "")
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. Environment variables
    2. Configuration file
    3. Default values

    When no path is given, ``$RIDELOG_CONFIG`` is used, then a local
    ``.ridelog.toml`` in the working directory, then the default location.

    Args:
        config_path: Path to configuration file. If None, it is discovered.

    Returns:
        Populated Config object.
    """
    config = Config()

    # Determine config path
    if config_path is None:
        env_config = _get_env_value("RIDELOG_CONFIG")
        if env_config:
            config_path = Path(env_config)
        elif Path(LOCAL_CONFIG_NAME).exists():
            config_path = Path(LOCAL_CONFIG_NAME)
        else:
            config_path = DEFAULT_CONFIG_PATH

    config.config_path = config_path

    # Load from file if exists
    if config_path.exists():
        config = _load_from_file(config_path, config)

    # Override with environment variables
    config = _apply_env_overrides(config)

    return config


def _load_from_file(path: Path, config: Config) -> Config:
    """Load configuration from TOML file.

    Args:
        path: Path to TOML file.
        config: Existing config to update.

    Returns:
        Updated Config object.
    """
    with open(path, "rb") as f:
        data = tomllib.load(f)

    # API section
    if "api" in data:
        api = data["api"]
        config.api.url = api.get("url", config.api.url)
        config.api.timeout = float(api.get("timeout", config.api.timeout))

    # Data section
    if "data" in data:
        data_section = data["data"]
        if "directory" in data_section:
            config.data.directory = Path(data_section["directory"])

    # Map section
    if "map" in data:
        config.map.tolerance = float(data["map"].get("tolerance", config.map.tolerance))

    return config


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to configuration.

    Args:
        config: Config to update.

    Returns:
        Updated Config object.
    """
    if api_url := _get_env_value("RIDELOG_API_URL"):
        config.api.url = api_url
    config.api.timeout = _get_env_float("RIDELOG_API_TIMEOUT", config.api.timeout)

    # Data directory
    if data_dir := _get_env_value("RIDELOG_DATA_DIR"):
        config.data.directory = Path(data_dir)

    return config


def ensure_data_dir(config: Config) -> Path:
    """Ensure data directory exists and return its path.

    Args:
        config: Configuration with data directory setting.

    Returns:
        Path to data directory.
    """
    data_dir = config.data.directory.resolve()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir
