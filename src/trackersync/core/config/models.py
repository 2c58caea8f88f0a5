"""
Configuration data models for trackersync.

These models define the structure of .trackersync.json and
~/.config/trackersync/config.json files, with validation and type safety
via Pydantic.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SyncSettings(BaseModel):
    """
    Autosave timing and commit messages used by the orchestrator.
    """
    autosave_delay_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Quiet period after the last change before an autosave runs"
    )
    autosave_message: str = Field(
        default="Auto-save: Update business data",
        description="Commit message for debounced autosaves"
    )
    manual_save_message: str = Field(
        default="Manual save: Update business data",
        description="Commit message for user-initiated saves"
    )
    initialize_message: str = Field(
        default="Initialize repository with empty data structure",
        description="Commit message when creating a missing remote data file"
    )


class SnapshotSettings(BaseModel):
    """
    Location of the local finance snapshot.
    """
    directory: Optional[Path] = Field(
        default=None,
        description="Snapshot directory (None means $XDG_DATA_HOME/trackersync)"
    )
    key: str = Field(
        default="usedshoes_finance_backup",
        min_length=1,
        description="Fixed storage key; becomes the snapshot file name"
    )


class GitHubSettings(BaseModel):
    """
    GitHub repository holding the remote data file.

    The store is considered connected only when owner, repo and token
    are all set.
    """
    owner: Optional[str] = Field(default=None, description="Repository owner")
    repo: Optional[str] = Field(default=None, description="Repository name")
    token: Optional[str] = Field(
        default=None,
        repr=False,
        description="Personal access token with contents permission"
    )
    path: str = Field(default="data.json", description="Data file path inside the repo")
    branch: Optional[str] = Field(default=None, description="Branch (default branch if unset)")
    api_base: str = Field(default="https://api.github.com", description="GitHub API base URL")
    timeout_seconds: float = Field(default=30.0, gt=0.0, description="Per-request timeout")
    max_retries: int = Field(default=3, ge=0, description="Retries for transient failures")
    retry_base_delay: float = Field(
        default=1.0,
        gt=0.0,
        description="Initial backoff delay in seconds"
    )

    @field_validator('path')
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Strip leading slashes; the contents API takes repo-relative paths."""
        v = v.strip().lstrip("/")
        if not v:
            raise ValueError("path must not be empty")
        return v


class TrackerSyncConfig(BaseModel):
    """
    Top-level trackersync configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = TrackerSyncConfig(
        ...     github=GitHubSettings(owner="acme", repo="books", token="ghp_x"),
        ...     sync=SyncSettings(autosave_delay_seconds=2.0),
        ... )
        >>> config.sync.autosave_delay_seconds
        2.0
    """
    sync: SyncSettings = Field(
        default_factory=SyncSettings,
        description="Autosave behavior"
    )
    snapshot: SnapshotSettings = Field(
        default_factory=SnapshotSettings,
        description="Local snapshot storage"
    )
    github: GitHubSettings = Field(
        default_factory=GitHubSettings,
        description="Remote data file location and credentials"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )
