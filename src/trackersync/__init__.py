"""
trackersync - sync and data-integrity engine for a file-backed business tracker.

Loads the tracker dataset from a remote JSON file, validates and
sanitizes it before every write, debounces autosaves and keeps a local
snapshot of finance data for recovery.
"""

__version__ = "0.3.0"

# Re-export core entry points for convenience
from trackersync.core.config.models import TrackerSyncConfig
from trackersync.core.dataset.store import InMemoryDataStore
from trackersync.core.snapshot.store import LocalSnapshotStore
from trackersync.core.sync.orchestrator import SyncOrchestrator

__all__ = [
    "InMemoryDataStore",
    "LocalSnapshotStore",
    "SyncOrchestrator",
    "TrackerSyncConfig",
    "__version__",
]
