"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from collections.abc import Mapping
from typing import Any

from .env import layered_environ
from .models import TrackerSyncConfig

logger = logging.getLogger(__name__)

_config_cache: TrackerSyncConfig | None = None

# Env var -> (section, key) for plain string overrides
_STRING_ENV_OVERRIDES = {
    "TRACKERSYNC_GITHUB_OWNER": ("github", "owner"),
    "TRACKERSYNC_GITHUB_REPO": ("github", "repo"),
    "TRACKERSYNC_GITHUB_TOKEN": ("github", "token"),
    "TRACKERSYNC_GITHUB_PATH": ("github", "path"),
    "TRACKERSYNC_SNAPSHOT_DIR": ("snapshot", "directory"),
}


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """Path to ~/.config/trackersync/config.json (or XDG equivalent)."""
    return get_xdg_config_home() / "trackersync" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        cwd: Working directory to search from (defaults to current directory)

    Returns:
        Path to .trackersync.json in the project root
    """
    if cwd is None:
        cwd = Path.cwd()
    return cwd / ".trackersync.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`. Nested
    dicts are merged, not replaced.

    Example:
        >>> deep_merge({"github": {"owner": "a", "path": "data.json"}},
        ...            {"github": {"owner": "b"}})
        {'github': {'owner': 'b', 'path': 'data.json'}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None

    if isinstance(data, dict):
        return data
    logger.warning("Ignoring config at %s: top level must be an object", path)
    return None


def apply_env_overrides(
    config_dict: dict[str, Any], environ: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Env vars have the highest precedence and override all config files.

    Supported env vars:
        TRACKERSYNC_GITHUB_OWNER - overrides github.owner
        TRACKERSYNC_GITHUB_REPO - overrides github.repo
        TRACKERSYNC_GITHUB_TOKEN - overrides github.token
        TRACKERSYNC_GITHUB_PATH - overrides github.path
        TRACKERSYNC_SNAPSHOT_DIR - overrides snapshot.directory
        TRACKERSYNC_AUTOSAVE_DELAY - overrides sync.autosave_delay_seconds

    Args:
        config_dict: Configuration dictionary to override
        environ: Variables to read (defaults to os.environ)

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = {
        key: dict(value) if isinstance(value, dict) else value
        for key, value in config_dict.items()
    }
    if environ is None:
        environ = os.environ

    for env_name, (section, key) in _STRING_ENV_OVERRIDES.items():
        if value := environ.get(env_name):
            result.setdefault(section, {})[key] = value

    if delay_str := environ.get("TRACKERSYNC_AUTOSAVE_DELAY"):
        try:
            delay = float(delay_str)
        except ValueError:
            logger.warning("Invalid TRACKERSYNC_AUTOSAVE_DELAY value '%s', ignoring", delay_str)
        else:
            if delay <= 0:
                logger.warning("TRACKERSYNC_AUTOSAVE_DELAY must be > 0, got %s, ignoring", delay)
            else:
                result.setdefault("sync", {})["autosave_delay_seconds"] = delay

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "sync": {"autosave_delay_seconds": 5.0},
        "snapshot": {"key": "usedshoes_finance_backup"},
        "github": {"path": "data.json", "timeout_seconds": 30.0, "max_retries": 3},
    }


def load_config(
    project_dir: Path | None = None, use_cache: bool = True, read_env_files: bool = True
) -> TrackerSyncConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (TRACKERSYNC_*), then .env files
        2. Project config (.trackersync.json)
        3. User config (~/.config/trackersync/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .trackersync.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load
        read_env_files: If True, TRACKERSYNC_* values in user and project .env
            files apply wherever the real environment does not set them

    Returns:
        Validated TrackerSyncConfig instance

    Raises:
        pydantic.ValidationError: If the merged config fails validation
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    environ = layered_environ(project_dir) if read_env_files else os.environ
    merged = apply_env_overrides(merged, environ)

    config = TrackerSyncConfig(**merged)
    _config_cache = config
    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    global _config_cache
    _config_cache = None
