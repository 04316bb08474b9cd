"""
Configuration Management for demoheat

Provides configuration loading from multiple sources:
- Default values
- Configuration files (YAML, TOML, JSON)
- Environment variables
- Command line arguments

Configuration precedence (highest to lowest):
1. Command line arguments
2. Environment variables (DEMOHEAT_*)
3. Configuration file
4. Default values
"""

import json
import logging
import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from demoheat.core.constants import (
    DEFAULT_MAP_PREFIX,
    FALLBACK_IMAGE_HEIGHT,
    FALLBACK_IMAGE_WIDTH,
    FALLBACK_WORLD_EXTENT,
    MAX_EXTRA_PLAYERS,
    MAX_MISSING_PLAYERS,
    MIN_MATCH_RATIO,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Dataclasses
# ============================================================================


@dataclass
class TransformConfig:
    """Configuration for world-to-radar coordinate transforms."""

    # "offset" = origin/scale only (persisted heatmaps)
    # "overlay" = additionally honors calibration inset and rotate
    mode: str = "offset"
    fallback_extent: float = FALLBACK_WORLD_EXTENT
    default_image_width: int = FALLBACK_IMAGE_WIDTH
    default_image_height: int = FALLBACK_IMAGE_HEIGHT


@dataclass
class ValidationConfig:
    """Thresholds for checking a replay against its match record."""

    min_match_ratio: float = MIN_MATCH_RATIO
    max_extra_players: int = MAX_EXTRA_PLAYERS
    max_missing_players: int = MAX_MISSING_PLAYERS
    map_prefix: str = DEFAULT_MAP_PREFIX


@dataclass
class AggregationConfig:
    """Configuration for per-player kill/death grouping."""

    # "name" groups by in-replay display name, "platform_id" by Steam id
    group_by: str = "name"


@dataclass
class FaceitConfig:
    """Configuration for the FACEIT match-record adapter."""

    api_key: str | None = None
    base_url: str = "https://open.faceit.com/data/v4"
    timeout: float = 10.0
    # one match fetch is 2 + (roster size) requests
    rate_limit_requests: int = 20
    rate_limit_window: float = 60.0


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str | None = None
    file_max_bytes: int = 10 * 1024 * 1024  # 10MB
    file_backup_count: int = 5


@dataclass
class DemoheatConfig:
    """Main configuration container."""

    transform: TransformConfig = field(default_factory=TransformConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    faceit: FaceitConfig = field(default_factory=FaceitConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    config_version: str = "1.0"


_SECTIONS = ("transform", "validation", "aggregation", "faceit", "logging")


# ============================================================================
# Configuration Loading
# ============================================================================


def get_default_config_paths() -> list[Path]:
    """Get the default paths to search for configuration files."""
    home = Path.home()
    xdg_config = os.environ.get("XDG_CONFIG_HOME", str(home / ".config"))

    return [
        Path.cwd() / "demoheat.yaml",
        Path.cwd() / "demoheat.toml",
        Path.cwd() / "demoheat.json",
        Path.cwd() / ".demoheat.yaml",
        Path(xdg_config) / "demoheat" / "config.yaml",
        Path(xdg_config) / "demoheat" / "config.toml",
        home / ".demoheat.yaml",
    ]


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file."""
    with open(path) as f:
        return json.load(f)


def load_config_file(path: Path) -> dict[str, Any]:
    """Load configuration from a file, detecting format from extension."""
    if not path.exists():
        return {}

    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return load_yaml_config(path)
    elif suffix == ".toml":
        return load_toml_config(path)
    elif suffix == ".json":
        return load_json_config(path)
    else:
        logger.warning(f"Unknown config file format: {suffix}")
        return {}


def _coerce_env_value(value: str) -> Any:
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if value.isdigit():
        return int(value)
    try:
        return float(value)
    except ValueError:
        return value


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    env_mappings = {
        "DEMOHEAT_LOG_LEVEL": ("logging", "level"),
        "DEMOHEAT_LOG_FILE": ("logging", "file"),
        "DEMOHEAT_TRANSFORM_MODE": ("transform", "mode"),
        "DEMOHEAT_FALLBACK_EXTENT": ("transform", "fallback_extent"),
        "DEMOHEAT_MIN_MATCH_RATIO": ("validation", "min_match_ratio"),
        "DEMOHEAT_MAX_EXTRA_PLAYERS": ("validation", "max_extra_players"),
        "DEMOHEAT_MAX_MISSING_PLAYERS": ("validation", "max_missing_players"),
        "DEMOHEAT_GROUP_BY": ("aggregation", "group_by"),
        "FACEIT_API_KEY": ("faceit", "api_key"),
        "DEMOHEAT_FACEIT_API_KEY": ("faceit", "api_key"),
        "DEMOHEAT_FACEIT_TIMEOUT": ("faceit", "timeout"),
    }

    for env_var, (section, key) in env_mappings.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        # API keys are opaque strings, never numbers
        coerced = value if key == "api_key" else _coerce_env_value(value)
        config.setdefault(section, {})[key] = coerced

    return config


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two configuration dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def dict_to_config(data: dict[str, Any]) -> DemoheatConfig:
    """Convert a dictionary to DemoheatConfig. Unknown keys are ignored."""
    config = DemoheatConfig()

    for section in _SECTIONS:
        values = data.get(section)
        if not isinstance(values, dict):
            continue
        target = getattr(config, section)
        for key, value in values.items():
            if hasattr(target, key):
                setattr(target, key, value)
            else:
                logger.debug(f"Ignoring unknown config key: {section}.{key}")

    return config


def load_config(config_file: Path | None = None, include_env: bool = True) -> DemoheatConfig:
    """
    Load configuration from all sources.

    Args:
        config_file: Explicit path to a config file (optional)
        include_env: Whether to include environment variables

    Returns:
        Merged DemoheatConfig
    """
    config_data: dict[str, Any] = {}

    if config_file:
        config_data = load_config_file(config_file)
        logger.info(f"Loaded config from: {config_file}")
    else:
        for path in get_default_config_paths():
            if path.exists():
                config_data = load_config_file(path)
                logger.info(f"Loaded config from: {path}")
                break

    if include_env:
        config_data = merge_configs(config_data, load_env_config())

    return dict_to_config(config_data)


# ============================================================================
# Configuration Saving
# ============================================================================


def config_to_dict(config: DemoheatConfig) -> dict[str, Any]:
    """Convert DemoheatConfig to a dictionary."""
    return asdict(config)


def save_config(config: DemoheatConfig, path: Path) -> None:
    """
    Save configuration to a file.

    Args:
        config: Configuration to save
        path: Path to save to (format detected from extension)
    """
    data = config_to_dict(config)
    # Never write secrets to disk
    data["faceit"]["api_key"] = None
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    elif suffix == ".json":
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
    else:
        raise ValueError(f"Unsupported config format for saving: {suffix}")

    logger.info(f"Saved config to: {path}")


# ============================================================================
# Global Configuration
# ============================================================================

_global_config: DemoheatConfig | None = None


def get_config() -> DemoheatConfig:
    """Get the global configuration, loading it if necessary."""
    global _global_config

    if _global_config is None:
        _global_config = load_config()

    return _global_config


def set_config(config: DemoheatConfig) -> None:
    """Set the global configuration."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Reset the global configuration to defaults."""
    global _global_config
    _global_config = None
