"""
Sync orchestrator: load-on-connect, debounced autosave and manual save.

The orchestrator sits between the application's in-memory data store and
the remote store. It loads the remote document when a connection is made
(recovering from the local snapshot when the file is missing), schedules
an autosave a few seconds after the last change, and offers force_save()
for user-initiated saves. Every save runs the same pipeline:

    validate -> sanitize -> RemoteStore.write -> LocalSnapshotStore.save

At most one pipeline runs at a time; a second request waits for the
first and then saves whatever the data store holds at that point.

Example:
    >>> orchestrator = SyncOrchestrator(remote, data_store, LocalSnapshotStore())
    >>> await orchestrator.on_connect_or_file_change()
    >>> data_store.add_record("sales", {"amount": 40})   # arms the autosave
    >>> result = await orchestrator.force_save()
    >>> result.success
    True
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from trackersync.core.config.models import SyncSettings, TrackerSyncConfig
from trackersync.core.dataset.models import LoadOutcome, LoadResult, SaveResult
from trackersync.core.dataset.store import DataStore
from trackersync.core.dataset.templates import (
    dataset_from_snapshot,
    empty_dataset,
    normalize_document,
    utc_now_iso,
)
from trackersync.core.errors import NotFoundError, RemoteStoreError
from trackersync.core.integrity import log_data_state, sanitize_dataset, validate_dataset
from trackersync.core.remote.protocol import RemoteStore, WriteResult
from trackersync.core.snapshot.store import LocalSnapshotStore
from trackersync.core.sync.state import ConnectionState, LoadAction, SaveState, SyncStateMachine
from trackersync.core.sync.timer import DebounceTimer

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """
    Owns the sync lifecycle for one application session.

    Attributes:
        remote: Remote store holding the authoritative dataset
        data_store: Application data store (in-memory dataset)
        snapshot_store: Best-effort local snapshot of finance data
        settings: Autosave delay and commit messages
    """

    def __init__(
        self,
        remote: RemoteStore,
        data_store: DataStore,
        snapshot_store: LocalSnapshotStore | None = None,
        settings: SyncSettings | None = None,
    ) -> None:
        """
        Initialize the orchestrator and subscribe to data store changes.

        Args:
            remote: Remote store implementation
            data_store: Data store whose changes trigger autosaves
            snapshot_store: Local snapshot store (defaults to the XDG data dir)
            settings: Sync settings (defaults to SyncSettings())
        """
        self.remote = remote
        self.data_store = data_store
        self.snapshot_store = snapshot_store or LocalSnapshotStore()
        self.settings = settings or SyncSettings()

        self._machine = SyncStateMachine()
        self._timer = DebounceTimer(self._autosave, name="autosave")
        self._save_lock = asyncio.Lock()
        self._loading = False

        data_store.add_change_listener(self.schedule_autosave)

    @classmethod
    def from_config(
        cls,
        config: TrackerSyncConfig,
        data_store: DataStore,
        remote: RemoteStore | None = None,
    ) -> SyncOrchestrator:
        """
        Build an orchestrator from loaded configuration.

        A GitHubContentsStore is created from ``config.github`` unless a
        remote store is passed in.
        """
        if remote is None:
            from trackersync.core.remote.github import GitHubContentsStore

            remote = GitHubContentsStore.from_settings(config.github)

        snapshot_store = LocalSnapshotStore(config.snapshot.directory, config.snapshot.key)
        return cls(remote, data_store, snapshot_store, config.sync)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def connection_state(self) -> ConnectionState:
        return self._machine.connection

    @property
    def save_state(self) -> SaveState:
        return self._machine.save

    @property
    def load_attempted(self) -> bool:
        return self._machine.load_attempted

    @property
    def file_identity(self) -> str | None:
        """Identity of the remote file the current session belongs to."""
        return self._machine.file_identity

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def autosave_pending(self) -> bool:
        """True while an autosave is armed but not yet dispatched."""
        return self._timer.armed

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    async def on_connect_or_file_change(self) -> LoadResult:
        """
        Load the remote dataset if the current file has not been loaded yet.

        No-op when the remote store is disconnected or the current file
        identity was already loaded (or is loading). A changed identity
        resets the session before loading.

        Returns:
            LoadResult describing how the flow ended
        """
        identity = self.remote.file_identity
        action = self._machine.plan_load(self.remote.is_connected, identity)
        if action == LoadAction.NONE or identity is None:
            return LoadResult(outcome=LoadOutcome.SKIPPED)

        if action == LoadAction.RESET_AND_LOAD:
            logger.info("Remote file changed from %s to %s", self._machine.file_identity, identity)
            self._timer.cancel()
            self._machine.reset()

        session = self._machine.begin_load(identity)
        self._loading = True
        self.data_store.set_loading(True)
        logger.info("Loading data from %s", identity)

        try:
            async with self._save_lock:
                return await self._load(session)
        finally:
            if self._machine.is_current(session):
                self._loading = False
                self.data_store.set_loading(False)
            if self._machine.finish_load(session) and self.data_store.unsaved_changes:
                # Edits made while loading still need an autosave
                self.schedule_autosave()

    async def _load(self, session: int) -> LoadResult:
        try:
            document = await self.remote.read()
            dataset = normalize_document(document.data)
        except NotFoundError:
            logger.info("Remote data file not found; starting recovery")
            return await self._recover_missing_file(session)
        except (RemoteStoreError, httpx.HTTPError) as e:
            error = f"Failed to load data: {e}"
            logger.error(error)
            if self._adopt(empty_dataset(), session):
                self.data_store.set_error(error)
            return LoadResult(outcome=LoadOutcome.FAILED, error=error)

        validation = validate_dataset(dataset)
        for warning in validation.warnings:
            logger.warning("Data integrity warning: %s", warning)

        sanitized = sanitize_dataset(dataset)
        log_data_state(sanitized, "After load")
        if not self._adopt(sanitized, session):
            return LoadResult(outcome=LoadOutcome.SKIPPED, validation=validation)

        error = None
        if not validation.is_valid:
            # Invalid data is still loaded; saves stay blocked until it is fixed
            error = f"Data validation failed: {validation.summary()}"
            logger.error(error)
            self.data_store.set_error(error)
        else:
            logger.info("Data loaded from %s", self._machine.file_identity)

        return LoadResult(outcome=LoadOutcome.LOADED, error=error, validation=validation)

    async def _recover_missing_file(self, session: int) -> LoadResult:
        finance = self.snapshot_store.load()
        if finance is not None:
            logger.info("Recovering finance data from local snapshot")
            dataset = sanitize_dataset(dataset_from_snapshot(finance))
            outcome = LoadOutcome.RECOVERED
        else:
            logger.info("No local snapshot; initializing empty dataset")
            dataset = empty_dataset()
            outcome = LoadOutcome.INITIALIZED

        log_data_state(dataset, "Recovery")
        if not self._adopt(dataset, session):
            return LoadResult(outcome=LoadOutcome.SKIPPED)

        result = await self._write(dataset, self.settings.initialize_message)
        if not result.success:
            error = f"Failed to create remote data file: {result.error}"
            logger.error(error)
            if self._machine.is_current(session):
                self.data_store.set_error(error)
            return LoadResult(outcome=outcome, error=error)

        logger.info("Created remote data file %s", self._machine.file_identity)
        self.snapshot_store.save(dataset)
        return LoadResult(outcome=outcome, remote_created=True)

    def _adopt(self, dataset: dict[str, Any], session: int) -> bool:
        """Load ``dataset`` into the data store unless the session is stale."""
        if not self._machine.is_current(session):
            logger.info("Discarding load result for a superseded remote file")
            return False
        self.data_store.load(dataset)
        return True

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def schedule_autosave(self) -> bool:
        """
        Record a change and (re)arm the autosave timer.

        Registered as the data store's change listener. Each call restarts
        the wait, so a burst of changes produces a single save.

        Returns:
            True if the timer was armed
        """
        self._machine.record_change()
        if not self.remote.is_connected or not self._machine.can_save:
            logger.debug("Change recorded; autosave waits for the initial load")
            return False
        self._timer.arm(self.settings.autosave_delay_seconds)
        return True

    async def _autosave(self) -> None:
        await self._run_save_pipeline(
            "autosave",
            self.settings.autosave_message,
            surface_errors=False,
            only_if_dirty=True,
        )

    async def force_save(self) -> SaveResult:
        """
        Save immediately, bypassing the debounce timer.

        Cancels a pending autosave, waits for any save already in flight,
        then runs the pipeline. Validation and write failures are surfaced
        through the data store's error.

        Returns:
            SaveResult with success flag and error message
        """
        self._timer.cancel()

        if not self.remote.is_connected:
            return self._save_failed("manual", "Not connected to remote store", surface=True)
        if not self._machine.load_attempted:
            return self._save_failed("manual", "Data has not been loaded yet", surface=True)

        return await self._run_save_pipeline(
            "manual", self.settings.manual_save_message, surface_errors=True
        )

    async def _run_save_pipeline(
        self,
        operation: str,
        message: str,
        *,
        surface_errors: bool,
        only_if_dirty: bool = False,
    ) -> SaveResult:
        session = self._machine.session

        async with self._save_lock:
            if not self._machine.is_current(session) or not self._machine.can_save:
                logger.info("Skipping %s: remote file changed or disconnected", operation)
                return SaveResult(
                    success=False, operation=operation, error="Remote file is no longer loaded"
                )
            if only_if_dirty and not self.data_store.unsaved_changes:
                logger.debug("Skipping %s: no unsaved changes", operation)
                return SaveResult(success=True, operation=operation)

            dataset, revision = self.data_store.snapshot()
            metadata = dataset.get("metadata")
            if isinstance(metadata, dict):
                metadata["lastUpdated"] = utc_now_iso()

            validation = validate_dataset(dataset)
            for warning in validation.warnings:
                logger.warning("Data integrity warning: %s", warning)
            if not validation.is_valid:
                return self._save_failed(
                    operation,
                    validation.summary(),
                    surface=surface_errors,
                    surfaced=f"Data validation failed: {validation.summary()}",
                    warnings=validation.warnings,
                )

            sanitized = sanitize_dataset(dataset)
            log_data_state(sanitized, f"Before {operation}")

            self._machine.start_save()
            result = await self._write(sanitized, message)

            if not self._machine.is_current(session):
                # Disconnected or switched files while the write was in flight
                logger.info("%s finished after the session ended", operation)
                if result.success:
                    self.snapshot_store.save(sanitized)
                return SaveResult(
                    success=result.success,
                    operation=operation,
                    error=result.error,
                    commit_sha=result.commit_sha,
                )

            if not result.success:
                self._machine.finish_save(self.data_store.unsaved_changes)
                error = result.error or "Unknown error"
                return self._save_failed(
                    operation,
                    error,
                    surface=surface_errors,
                    surfaced=f"Failed to save data: {error}",
                    warnings=validation.warnings,
                )

            self.data_store.mark_saved(revision)
            self._machine.finish_save(self.data_store.unsaved_changes)
            snapshot_saved = self.snapshot_store.save(sanitized)
            if surface_errors:
                self.data_store.set_error(None)

            save_result = SaveResult(
                success=True,
                operation=operation,
                commit_sha=result.commit_sha,
                warnings=validation.warnings,
                snapshot_saved=snapshot_saved,
            )
            logger.info(save_result.summary())
            return save_result

    async def _write(self, payload: dict[str, Any], message: str) -> WriteResult:
        try:
            return await self.remote.write(payload, message)
        except (RemoteStoreError, httpx.HTTPError) as e:
            return WriteResult(success=False, error=str(e))

    def _save_failed(
        self,
        operation: str,
        error: str,
        *,
        surface: bool,
        surfaced: str | None = None,
        warnings: list[str] | None = None,
    ) -> SaveResult:
        if surface:
            logger.error("%s failed: %s", operation, error)
            self.data_store.set_error(surfaced or error)
        else:
            logger.warning("%s failed: %s", operation, error)
        return SaveResult(
            success=False, operation=operation, error=error, warnings=list(warnings or [])
        )

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def on_disconnect(self) -> None:
        """
        Handle an explicit disconnect from the remote store.

        Cancels the pending autosave, clears the in-memory dataset and
        resets the session so the next connection loads again. A save
        already in flight runs to completion.
        """
        self._timer.cancel()
        self._machine.reset()
        self._loading = False
        self.data_store.set_loading(False)
        self.data_store.clear()
        logger.info("Disconnected from remote store; local data cleared")

    async def shutdown(self) -> None:
        """Cancel the pending autosave and wait for in-flight saves to finish."""
        self._timer.cancel()
        await self._timer.wait_idle()
        async with self._save_lock:
            pass


__all__ = ["SyncOrchestrator"]
