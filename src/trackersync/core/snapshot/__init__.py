"""
Best-effort local snapshot of finance-critical data.

Example:
    >>> from trackersync.core.snapshot import LocalSnapshotStore
    >>> store = LocalSnapshotStore()
    >>> if store.exists():
    ...     print(store.age())
"""

from trackersync.core.snapshot.store import (
    DEFAULT_SNAPSHOT_KEY,
    LocalSnapshotStore,
    StorageErrorKind,
    StorageResult,
    default_snapshot_dir,
)

__all__ = [
    "DEFAULT_SNAPSHOT_KEY",
    "LocalSnapshotStore",
    "StorageErrorKind",
    "StorageResult",
    "default_snapshot_dir",
]
