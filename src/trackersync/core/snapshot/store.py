"""
Local snapshot storage for finance-critical data.

Keeps one best-effort fallback copy of the finance subset of a dataset
(partners, withdrawals, cash injections, cash flows, metadata) in a
single JSON file keyed by a fixed name. The snapshot is refreshed after
every successful remote write and read back when the remote data file
is missing.

Every public operation swallows its own failures and degrades to
False/None; the reason is kept internally as a StorageResult and the
most recent one is exposed as ``last_error``.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Generic, TypeVar

from pydantic import ValidationError as PydanticValidationError

from trackersync.core.dataset.models import FinanceData, LocalSnapshot, SnapshotAge
from trackersync.core.dataset.templates import DATASET_VERSION, FINANCE_COLLECTIONS, utc_now_iso
from trackersync.core.errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_KEY = "usedshoes_finance_backup"

T = TypeVar("T")


class StorageErrorKind(str, Enum):
    """Why a snapshot operation failed."""

    MISSING = "missing"
    MALFORMED = "malformed"
    UNREADABLE = "unreadable"
    WRITE_FAILED = "write_failed"


@dataclass(frozen=True)
class StorageResult(Generic[T]):
    """
    Ok(value) | Err(kind) result of a storage operation.

    Attributes:
        value: Payload on success
        kind: Failure classification (None on success)
        detail: Failure description for logs
    """

    value: T | None = None
    kind: StorageErrorKind | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is None

    @classmethod
    def success(cls, value: T) -> StorageResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, kind: StorageErrorKind, detail: str = "") -> StorageResult[T]:
        return cls(kind=kind, detail=detail)

    def to_error(self) -> StorageError | None:
        """Convert a failure into a StorageError (None on success)."""
        if self.ok:
            return None
        return StorageError(self.detail or str(self.kind), kind=self.kind)


def get_xdg_data_home() -> Path:
    """
    Get XDG data home directory.

    Returns:
        Path to data directory (defaults to ~/.local/share)
    """
    if xdg_home := os.environ.get("XDG_DATA_HOME"):
        return Path(xdg_home)
    return Path.home() / ".local" / "share"


def default_snapshot_dir() -> Path:
    """Default directory for the snapshot file."""
    return get_xdg_data_home() / "trackersync"


class LocalSnapshotStore:
    """
    Single-slot, file-backed local snapshot.

    Each save overwrites the previous snapshot. The file lives at
    ``{directory}/{key}.json`` and is written atomically.

    Example:
        >>> store = LocalSnapshotStore(Path("/tmp/snapshots"))
        >>> store.save(dataset)
        True
        >>> store.load()["partners"]
        [{'id': 'P1', ...}]
        >>> store.age().minutes
        0
    """

    def __init__(self, directory: Path | None = None, key: str = DEFAULT_SNAPSHOT_KEY) -> None:
        """
        Initialize the snapshot store.

        Args:
            directory: Directory holding the snapshot file
                (defaults to $XDG_DATA_HOME/trackersync)
            key: Fixed storage key; becomes the file name
        """
        self.directory = Path(directory) if directory is not None else default_snapshot_dir()
        self.key = key
        self.last_error: StorageResult[Any] | None = None

    @property
    def path(self) -> Path:
        """Full path to the snapshot file."""
        return self.directory / f"{self.key}.json"

    def _record(self, result: StorageResult[T]) -> StorageResult[T]:
        self.last_error = None if result.ok else result
        return result

    def write(self, dataset: dict[str, Any], now: datetime | None = None) -> StorageResult[Path]:
        """Write the finance subset of ``dataset``; returns a StorageResult."""
        try:
            finance = {name: dataset.get(name) or [] for name in FINANCE_COLLECTIONS}
            finance["metadata"] = dataset.get("metadata") or {}
            snapshot = LocalSnapshot(
                version=DATASET_VERSION,
                timestamp=utc_now_iso(now),
                financeData=FinanceData.model_validate(finance),
            )
            payload = snapshot.model_dump_json(by_alias=True, indent=2)
        except (PydanticValidationError, TypeError, ValueError, AttributeError) as e:
            return self._record(
                StorageResult.failure(StorageErrorKind.WRITE_FAILED, f"Cannot serialize: {e}")
            )

        temp_path = self.path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(payload)
            temp_path.replace(self.path)
        except OSError as e:
            try:
                temp_path.unlink(missing_ok=True)
            except OSError:
                pass
            return self._record(StorageResult.failure(StorageErrorKind.WRITE_FAILED, str(e)))

        return self._record(StorageResult.success(self.path))

    def read(self) -> StorageResult[LocalSnapshot]:
        """Read and validate the stored snapshot; returns a StorageResult."""
        try:
            if not self.path.exists():
                return self._record(StorageResult.failure(StorageErrorKind.MISSING))
            content = self.path.read_text()
        except (OSError, UnicodeDecodeError) as e:
            return self._record(StorageResult.failure(StorageErrorKind.UNREADABLE, str(e)))

        try:
            raw = json.loads(content)
        except json.JSONDecodeError as e:
            return self._record(StorageResult.failure(StorageErrorKind.MALFORMED, str(e)))

        if (
            not isinstance(raw, dict)
            or not raw.get("version")
            or not isinstance(raw.get("financeData"), dict)
        ):
            return self._record(
                StorageResult.failure(
                    StorageErrorKind.MALFORMED, "Snapshot is missing version or financeData"
                )
            )

        try:
            snapshot = LocalSnapshot.model_validate(raw)
        except PydanticValidationError as e:
            return self._record(StorageResult.failure(StorageErrorKind.MALFORMED, str(e)))

        return self._record(StorageResult.success(snapshot))

    def save(self, dataset: dict[str, Any]) -> bool:
        """
        Overwrite the snapshot with the finance subset of ``dataset``.

        Returns:
            True on success, False on any storage failure (never raises)
        """
        result = self.write(dataset)
        if result.ok:
            logger.debug("Local snapshot written to %s", self.path)
            return True
        logger.warning("Failed to write local snapshot: %s", result.to_error())
        return False

    def load(self) -> dict[str, Any] | None:
        """
        Return the stored finance subset.

        Returns:
            Dict with partners, withdrawals, cashInjections, cashFlows and
            metadata, or None if absent, malformed or unreadable
        """
        result = self.read()
        if result.ok and result.value is not None:
            logger.info("Local snapshot found from %s", result.value.timestamp)
            return result.value.finance_dict()
        if result.kind != StorageErrorKind.MISSING:
            logger.warning("Ignoring local snapshot (%s): %s", result.kind, result.detail)
        return None

    def exists(self) -> bool:
        """Check whether a snapshot file is present."""
        try:
            return self.path.is_file()
        except OSError:
            return False

    def age(self, now: datetime | None = None) -> SnapshotAge | None:
        """
        Compute how old the snapshot is.

        Args:
            now: Reference time (defaults to the current UTC time)

        Returns:
            SnapshotAge, or None if there is no readable, timestamped snapshot
        """
        result = self.read()
        if not result.ok or result.value is None:
            return None

        created = result.value.created_at()
        if created is None:
            return None
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)

        reference = now or datetime.now(timezone.utc)
        if reference.tzinfo is None:
            reference = reference.replace(tzinfo=timezone.utc)

        delta_ms = int((reference - created).total_seconds() * 1000)
        return SnapshotAge.from_milliseconds(delta_ms)

    def clear(self) -> bool:
        """
        Delete the snapshot.

        Returns:
            True if the snapshot is gone afterwards, False on failure
        """
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            self._record(StorageResult.failure(StorageErrorKind.WRITE_FAILED, str(e)))
            logger.warning("Failed to clear local snapshot: %s", e)
            return False
        logger.info("Local snapshot cleared")
        return True


__all__ = [
    "DEFAULT_SNAPSHOT_KEY",
    "LocalSnapshotStore",
    "StorageErrorKind",
    "StorageResult",
    "default_snapshot_dir",
    "get_xdg_data_home",
]
