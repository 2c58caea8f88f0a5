"""
.env file support for TRACKERSYNC_* settings.

The GitHub token usually lives in a .env file rather than in a JSON
config. Files are layered user first, then project, so a project
.env.local beats the project .env, which beats the user file. Variables
already exported in the process environment beat every file.

load_config() consults these files through read_layered_env() without
touching os.environ; load_layered_env() exports them for embedders that
read os.environ directly.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


def user_env_files() -> list[Path]:
    """User-level .env path under $XDG_CONFIG_HOME/trackersync."""
    config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return [Path(config_home) / "trackersync" / ".env"]


def project_env_files(project_dir: Path | None = None) -> list[Path]:
    """Project-level .env paths, lowest precedence first."""
    base = project_dir or Path.cwd()
    return [base / ".env", base / ".env.local"]


def read_layered_env(
    project_dir: Path | None = None,
    *,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> dict[str, str]:
    """
    Merge the user and project .env files into one mapping.

    Later files win. Keys without a value (a bare ``NAME`` line) are
    skipped. The process environment is not consulted.

    Args:
        project_dir: Directory holding the project .env files (defaults to cwd)
        user_env_paths: Override the user-level file list
        project_env_paths: Override the project-level file list

    Returns:
        Variable name to value
    """
    if user_env_paths is None:
        user_env_paths = user_env_files()
    if project_env_paths is None:
        project_env_paths = project_env_files(project_dir)

    merged: dict[str, str] = {}
    for path in [*user_env_paths, *project_env_paths]:
        path = Path(path)
        if not path.is_file():
            continue
        values = {k: v for k, v in dotenv_values(path).items() if v is not None}
        logger.debug("Read %d variables from %s", len(values), path)
        merged.update(values)
    return merged


def layered_environ(
    project_dir: Path | None = None, environ: Mapping[str, str] | None = None
) -> dict[str, str]:
    """The .env layers overlaid by the real environment."""
    if environ is None:
        environ = os.environ
    return {**read_layered_env(project_dir), **environ}


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> set[str]:
    """
    Export .env values into os.environ without overriding existing variables.

    Returns:
        Names of the variables this call set
    """
    values = read_layered_env(
        project_dir, user_env_paths=user_env_paths, project_env_paths=project_env_paths
    )
    exported = {name for name in values if name not in os.environ}
    for name in exported:
        os.environ[name] = values[name]
    return exported


__all__ = [
    "layered_environ",
    "load_layered_env",
    "project_env_files",
    "read_layered_env",
    "user_env_files",
]
