"""
Dataset shape, templates and the data store collaborator.

Example:
    >>> from trackersync.core.dataset import empty_dataset, InMemoryDataStore
    >>> store = InMemoryDataStore(empty_dataset())
    >>> store.add_record("sales", {"amount": 40})
    1
"""

from trackersync.core.dataset.models import (
    FinanceData,
    LoadOutcome,
    LoadResult,
    LocalSnapshot,
    SaveResult,
    SnapshotAge,
    ValidationResult,
)
from trackersync.core.dataset.store import DataStore, InMemoryDataStore
from trackersync.core.dataset.templates import (
    COLLECTIONS,
    DATASET_VERSION,
    ENTITY_KINDS,
    FINANCE_COLLECTIONS,
    dataset_from_snapshot,
    empty_dataset,
    new_metadata,
    normalize_document,
    utc_now_iso,
)

__all__ = [
    "COLLECTIONS",
    "DATASET_VERSION",
    "ENTITY_KINDS",
    "FINANCE_COLLECTIONS",
    "DataStore",
    "FinanceData",
    "InMemoryDataStore",
    "LoadOutcome",
    "LoadResult",
    "LocalSnapshot",
    "SaveResult",
    "SnapshotAge",
    "ValidationResult",
    "dataset_from_snapshot",
    "empty_dataset",
    "new_metadata",
    "normalize_document",
    "utc_now_iso",
]
