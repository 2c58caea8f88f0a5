"""
Configuration system for trackersync.

Example:
    >>> from trackersync.core.config import load_config
    >>> config = load_config()
    >>> config.sync.autosave_delay_seconds
    5.0
"""

from .env import load_layered_env, read_layered_env
from .loader import clear_cache, load_config
from .models import GitHubSettings, SnapshotSettings, SyncSettings, TrackerSyncConfig

__all__ = [
    "GitHubSettings",
    "SnapshotSettings",
    "SyncSettings",
    "TrackerSyncConfig",
    "clear_cache",
    "load_config",
    "load_layered_env",
    "read_layered_env",
]
