"""
Dataset templates and load-shape normalization.

A dataset is a plain JSON-compatible dict: eight record collections plus a
``metadata`` singleton carrying the version tag, the last update timestamp
and the ``nextIds`` id-allocation counters.
"""

from __future__ import annotations

import copy
import json
from datetime import datetime, timezone
from typing import Any

from trackersync.core.errors import DocumentParseError

DATASET_VERSION = "1.0.0"

COLLECTIONS: tuple[str, ...] = (
    "products",
    "containers",
    "sales",
    "expenses",
    "partners",
    "withdrawals",
    "cashFlows",
    "cashInjections",
)

FINANCE_COLLECTIONS: tuple[str, ...] = (
    "partners",
    "withdrawals",
    "cashInjections",
    "cashFlows",
)

# Collections a snapshot does not carry; recovery rebuilds them empty
OPERATIONAL_COLLECTIONS: tuple[str, ...] = tuple(
    name for name in COLLECTIONS if name not in FINANCE_COLLECTIONS
)

ENTITY_KINDS: tuple[str, ...] = (
    "product",
    "container",
    "sale",
    "expense",
    "partner",
    "withdrawal",
    "cashFlow",
    "cashInjection",
)

# Entity kind for each collection, used for id allocation
COLLECTION_KINDS: dict[str, str] = dict(zip(COLLECTIONS, ENTITY_KINDS))


def utc_now_iso(now: datetime | None = None) -> str:
    """Return an ISO-8601 UTC timestamp with millisecond precision."""
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_metadata(now: datetime | None = None) -> dict[str, Any]:
    """
    Build a freshly-initialized metadata record.

    Args:
        now: Timestamp to stamp as ``lastUpdated`` (defaults to now)

    Returns:
        Metadata dict with version "1.0.0" and every nextIds counter at 1
    """
    return {
        "version": DATASET_VERSION,
        "lastUpdated": utc_now_iso(now),
        "nextIds": {kind: 1 for kind in ENTITY_KINDS},
    }


def empty_dataset(now: datetime | None = None) -> dict[str, Any]:
    """Build a dataset with every collection empty and fresh metadata."""
    dataset: dict[str, Any] = {name: [] for name in COLLECTIONS}
    dataset["metadata"] = new_metadata(now)
    return dataset


def normalize_document(raw: Any, now: datetime | None = None) -> dict[str, Any]:
    """
    Turn a remote payload into a dataset with every collection present.

    Accepts either an already-parsed dict or a JSON string. ``None`` or a
    blank string is treated as an empty document. Missing collections
    default to ``[]`` and missing metadata to the fresh template; keys
    that are present are kept as-is so the validator can judge them.

    Args:
        raw: Parsed dict, JSON string, or None
        now: Timestamp for a synthesized metadata template

    Returns:
        New dataset dict (the input is not modified)

    Raises:
        DocumentParseError: If the string is not JSON or the payload is
            not a JSON object
    """
    if raw is None:
        return empty_dataset(now)

    if isinstance(raw, (str, bytes)):
        text = raw.decode() if isinstance(raw, bytes) else raw
        if not text.strip():
            return empty_dataset(now)
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise DocumentParseError(f"Failed to parse data file: {e}") from e

    if not isinstance(raw, dict):
        raise DocumentParseError(
            f"Data file must contain a JSON object, got {type(raw).__name__}"
        )

    dataset = copy.deepcopy(raw)
    for name in COLLECTIONS:
        if dataset.get(name) is None:
            dataset[name] = []
    if not dataset.get("metadata"):
        dataset["metadata"] = new_metadata(now)
    return dataset


def dataset_from_snapshot(
    finance: dict[str, Any], now: datetime | None = None
) -> dict[str, Any]:
    """
    Rebuild a full dataset from a local snapshot's finance subset.

    Operational collections (products, containers, sales, expenses) are
    not part of a snapshot and come back empty. Snapshot metadata is
    completed from the fresh template so ``nextIds`` always holds a
    counter for every entity kind.

    Args:
        finance: The ``financeData`` mapping of a local snapshot
        now: Timestamp for template values

    Returns:
        New dataset dict
    """
    dataset = empty_dataset(now)
    for name in FINANCE_COLLECTIONS:
        value = finance.get(name)
        if isinstance(value, list):
            dataset[name] = copy.deepcopy(value)

    stored = finance.get("metadata")
    if isinstance(stored, dict):
        metadata = dataset["metadata"]
        next_ids = dict(metadata["nextIds"])
        if isinstance(stored.get("nextIds"), dict):
            next_ids.update(stored["nextIds"])
        metadata.update(copy.deepcopy(stored))
        metadata["nextIds"] = next_ids

    return dataset


__all__ = [
    "COLLECTIONS",
    "COLLECTION_KINDS",
    "DATASET_VERSION",
    "ENTITY_KINDS",
    "FINANCE_COLLECTIONS",
    "OPERATIONAL_COLLECTIONS",
    "dataset_from_snapshot",
    "empty_dataset",
    "new_metadata",
    "normalize_document",
    "utc_now_iso",
]
