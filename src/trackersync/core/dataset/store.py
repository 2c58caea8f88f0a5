"""
Data store collaborator for the sync orchestrator.

The application owns the in-memory dataset; the orchestrator only needs a
narrow surface to read it, replace it, and track unsaved changes. That
surface is the DataStore protocol. InMemoryDataStore is the reference
implementation used by embedders and the test suite.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from trackersync.core.dataset.templates import COLLECTION_KINDS, COLLECTIONS, empty_dataset

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]

# Prefixes for string ids; kinds not listed use plain integers
ID_PREFIXES: dict[str, str] = {
    "container": "C",
    "partner": "P",
    "withdrawal": "W",
    "cashFlow": "CF",
    "cashInjection": "CI",
}


@runtime_checkable
class DataStore(Protocol):
    """
    Protocol for the application's in-memory data store.

    Implementations must:
    - Hand out deep copies from snapshot() so the save pipeline never
      observes concurrent mutation
    - Increase the revision on every change
    - Only clear the unsaved flag in mark_saved() when the revision
      still matches
    - Notify change listeners whenever the dataset becomes dirty
    """

    @property
    def unsaved_changes(self) -> bool:
        """True when the dataset has changes not yet written remotely."""
        ...

    def snapshot(self) -> tuple[dict[str, Any], int]:
        """Return a deep copy of the dataset and its current revision."""
        ...

    def load(self, dataset: dict[str, Any]) -> None:
        """Replace the dataset; the new dataset starts out clean."""
        ...

    def clear(self) -> None:
        """Drop the dataset entirely (used on explicit disconnect)."""
        ...

    def mark_saved(self, revision: int) -> bool:
        """Mark the dataset clean if nothing changed since ``revision``."""
        ...

    def set_loading(self, loading: bool) -> None:
        """Toggle the loading indicator."""
        ...

    def set_error(self, message: str | None) -> None:
        """Surface a user-visible error (None clears it)."""
        ...

    def add_change_listener(self, listener: ChangeListener) -> None:
        """Register a callback invoked whenever the dataset becomes dirty."""
        ...


class InMemoryDataStore:
    """
    Dict-backed DataStore with revision tracking.

    Example:
        >>> store = InMemoryDataStore()
        >>> partner_id = store.add_record("partners", {"name": "Ana"})
        >>> partner_id
        'P1'
        >>> store.unsaved_changes
        True
    """

    def __init__(self, dataset: dict[str, Any] | None = None) -> None:
        self._dataset: dict[str, Any] | None = (
            copy.deepcopy(dataset) if dataset is not None else None
        )
        self._revision = 0
        self._saved_revision = 0
        self._listeners: list[ChangeListener] = []
        self.loading = False
        self.error: str | None = None

    @property
    def revision(self) -> int:
        """Monotonic change counter."""
        return self._revision

    @property
    def unsaved_changes(self) -> bool:
        return self._revision != self._saved_revision

    @property
    def is_loaded(self) -> bool:
        """True once a dataset has been loaded."""
        return self._dataset is not None

    @property
    def dataset(self) -> dict[str, Any]:
        """
        Live dataset for in-place edits; call mark_dirty() afterwards.

        Raises:
            RuntimeError: If no dataset is loaded
        """
        if self._dataset is None:
            raise RuntimeError("No dataset loaded")
        return self._dataset

    def snapshot(self) -> tuple[dict[str, Any], int]:
        if self._dataset is None:
            return empty_dataset(), self._revision
        return copy.deepcopy(self._dataset), self._revision

    def load(self, dataset: dict[str, Any]) -> None:
        self._dataset = copy.deepcopy(dataset)
        self._revision += 1
        self._saved_revision = self._revision
        self.loading = False
        self.error = None

    def clear(self) -> None:
        self._dataset = None
        self._revision += 1
        self._saved_revision = self._revision

    def mark_saved(self, revision: int) -> bool:
        if revision != self._revision:
            logger.debug(
                "Dataset changed during save (saved r%d, now r%d); staying dirty",
                revision,
                self._revision,
            )
            return False
        self._saved_revision = revision
        return True

    def mark_dirty(self) -> None:
        """Record a change and notify listeners."""
        self._revision += 1
        for listener in list(self._listeners):
            listener()

    def set_loading(self, loading: bool) -> None:
        self.loading = loading
        if loading:
            self.error = None

    def set_error(self, message: str | None) -> None:
        self.error = message
        self.loading = False

    def add_change_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def allocate_id(self, kind: str) -> str | int:
        """
        Allocate the next id for an entity kind from ``metadata.nextIds``.

        Args:
            kind: Entity kind (e.g. "partner", "sale")

        Returns:
            Prefixed string id for finance kinds and containers, plain int otherwise

        Raises:
            KeyError: If the kind is unknown
        """
        if kind not in COLLECTION_KINDS.values():
            raise KeyError(f"Unknown entity kind: {kind}")

        next_ids = self.dataset.setdefault("metadata", {}).setdefault("nextIds", {})
        number = int(next_ids.get(kind, 1))
        next_ids[kind] = number + 1
        self.mark_dirty()

        prefix = ID_PREFIXES.get(kind)
        return f"{prefix}{number}" if prefix else number

    def add_record(self, collection: str, record: dict[str, Any]) -> str | int:
        """
        Append a record to a collection, allocating an id when absent.

        Returns:
            The record's id
        """
        if collection not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {collection}")

        entry = dict(record)
        if entry.get("id") in (None, ""):
            entry["id"] = self.allocate_id(COLLECTION_KINDS[collection])
        self.dataset.setdefault(collection, []).append(entry)
        self.mark_dirty()
        return entry["id"]


__all__ = ["ChangeListener", "DataStore", "ID_PREFIXES", "InMemoryDataStore"]
