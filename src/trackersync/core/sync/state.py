"""
Sync state machine.

Two orthogonal axes are tracked:

- Connection/load: disconnected -> connecting -> loaded. Loaded is sticky
  for one remote file identity; a different identity resets the machine
  so the new file gets a fresh load.
- Save: clean -> dirty -> saving -> clean (success) or dirty (failure, or
  changes arrived while the write was in flight).

Transitions are looked up in explicit tables keyed by (state, event); an
event the current state does not accept raises InvalidTransitionError.
Each load or reset starts a new session so that work begun for an older
file identity can recognize it is stale.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from trackersync.core.errors import InvalidTransitionError

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    LOADED = "loaded"


class ConnectionEvent(str, Enum):
    CONNECT = "connect"
    LOAD_COMPLETE = "load_complete"
    RESET = "reset"


class SaveState(str, Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    SAVING = "saving"


class SaveEvent(str, Enum):
    CHANGED = "changed"
    SAVE_STARTED = "save_started"
    SETTLED_CLEAN = "settled_clean"
    SETTLED_DIRTY = "settled_dirty"
    RESET = "reset"


class LoadAction(str, Enum):
    """What on_connect_or_file_change should do."""

    NONE = "none"
    LOAD = "load"
    RESET_AND_LOAD = "reset_and_load"


CONNECTION_TRANSITIONS: dict[tuple[ConnectionState, ConnectionEvent], ConnectionState] = {
    (ConnectionState.DISCONNECTED, ConnectionEvent.CONNECT): ConnectionState.CONNECTING,
    (ConnectionState.CONNECTING, ConnectionEvent.LOAD_COMPLETE): ConnectionState.LOADED,
    (ConnectionState.DISCONNECTED, ConnectionEvent.RESET): ConnectionState.DISCONNECTED,
    (ConnectionState.CONNECTING, ConnectionEvent.RESET): ConnectionState.DISCONNECTED,
    (ConnectionState.LOADED, ConnectionEvent.RESET): ConnectionState.DISCONNECTED,
}

SAVE_TRANSITIONS: dict[tuple[SaveState, SaveEvent], SaveState] = {
    (SaveState.CLEAN, SaveEvent.CHANGED): SaveState.DIRTY,
    (SaveState.DIRTY, SaveEvent.CHANGED): SaveState.DIRTY,
    # The data store keeps the revision; settling decides clean vs dirty
    (SaveState.SAVING, SaveEvent.CHANGED): SaveState.SAVING,
    (SaveState.CLEAN, SaveEvent.SAVE_STARTED): SaveState.SAVING,
    (SaveState.DIRTY, SaveEvent.SAVE_STARTED): SaveState.SAVING,
    (SaveState.SAVING, SaveEvent.SETTLED_CLEAN): SaveState.CLEAN,
    (SaveState.SAVING, SaveEvent.SETTLED_DIRTY): SaveState.DIRTY,
    (SaveState.CLEAN, SaveEvent.RESET): SaveState.CLEAN,
    (SaveState.DIRTY, SaveEvent.RESET): SaveState.CLEAN,
    (SaveState.SAVING, SaveEvent.RESET): SaveState.CLEAN,
}


@dataclass(frozen=True)
class Transition:
    """Result of applying one event."""

    previous: str
    event: str
    state: str

    @property
    def changed(self) -> bool:
        return self.previous != self.state


def plan_load(
    connected: bool,
    file_identity: str | None,
    loaded_identity: str | None,
    load_attempted: bool,
) -> LoadAction:
    """
    Decide whether a connect/file-change signal should trigger a load.

    Args:
        connected: Whether the remote store is usable
        file_identity: Identity of the remote file the store points at now
        loaded_identity: Identity the current session was loaded for
        load_attempted: Whether the current session already attempted its load

    Returns:
        LoadAction.NONE when disconnected or already loaded (or loading)
        for this identity, LOAD for a fresh session, RESET_AND_LOAD when
        the identity changed
    """
    if not connected or file_identity is None:
        return LoadAction.NONE
    if loaded_identity is None:
        return LoadAction.NONE if load_attempted else LoadAction.LOAD
    if loaded_identity != file_identity:
        return LoadAction.RESET_AND_LOAD
    return LoadAction.NONE


class SyncStateMachine:
    """
    Connection and save state for one SyncOrchestrator.

    Example:
        >>> machine = SyncStateMachine()
        >>> session = machine.begin_load("acme/books:data.json")
        >>> machine.finish_load(session)
        >>> machine.connection
        <ConnectionState.LOADED: 'loaded'>
    """

    def __init__(self) -> None:
        self.connection = ConnectionState.DISCONNECTED
        self.save = SaveState.CLEAN
        self.file_identity: str | None = None
        self.load_attempted = False
        self.session = 0

    def apply_connection(self, event: ConnectionEvent) -> Transition:
        """
        Apply a connection event.

        Raises:
            InvalidTransitionError: If the current state rejects the event
        """
        key = (self.connection, event)
        if key not in CONNECTION_TRANSITIONS:
            raise InvalidTransitionError(self.connection.value, event.value)
        previous = self.connection
        self.connection = CONNECTION_TRANSITIONS[key]
        if previous != self.connection:
            logger.debug(
                "Connection %s -> %s on %s", previous.value, self.connection.value, event.value
            )
        return Transition(previous.value, event.value, self.connection.value)

    def apply_save(self, event: SaveEvent) -> Transition:
        """
        Apply a save event.

        Raises:
            InvalidTransitionError: If the current state rejects the event
        """
        key = (self.save, event)
        if key not in SAVE_TRANSITIONS:
            raise InvalidTransitionError(self.save.value, event.value)
        previous = self.save
        self.save = SAVE_TRANSITIONS[key]
        return Transition(previous.value, event.value, self.save.value)

    def plan_load(self, connected: bool, file_identity: str | None) -> LoadAction:
        """Plan a load against the machine's current session."""
        return plan_load(connected, file_identity, self.file_identity, self.load_attempted)

    @property
    def can_save(self) -> bool:
        """True once the current session has finished its initial load."""
        return self.connection == ConnectionState.LOADED and self.load_attempted

    def is_current(self, session: int) -> bool:
        return session == self.session

    def begin_load(self, file_identity: str) -> int:
        """
        Start a load session for ``file_identity``.

        Returns:
            The new session number
        """
        if self.connection != ConnectionState.DISCONNECTED:
            self.apply_connection(ConnectionEvent.RESET)
        self.apply_connection(ConnectionEvent.CONNECT)
        self.file_identity = file_identity
        self.load_attempted = False
        self.session += 1
        return self.session

    def finish_load(self, session: int) -> bool:
        """
        Mark the load for ``session`` as attempted, whatever its outcome.

        Returns:
            False when the session was superseded in the meantime
        """
        if not self.is_current(session):
            return False
        self.apply_connection(ConnectionEvent.LOAD_COMPLETE)
        self.apply_save(SaveEvent.RESET)
        self.load_attempted = True
        return True

    def record_change(self) -> None:
        self.apply_save(SaveEvent.CHANGED)

    def start_save(self) -> None:
        self.apply_save(SaveEvent.SAVE_STARTED)

    def finish_save(self, unsaved_changes: bool) -> None:
        """Settle a save; dirty when changes remain unsaved."""
        self.apply_save(SaveEvent.SETTLED_DIRTY if unsaved_changes else SaveEvent.SETTLED_CLEAN)

    def reset(self) -> None:
        """Forget the current file identity and start a new (empty) session."""
        self.apply_connection(ConnectionEvent.RESET)
        self.apply_save(SaveEvent.RESET)
        self.file_identity = None
        self.load_attempted = False
        self.session += 1


__all__ = [
    "CONNECTION_TRANSITIONS",
    "SAVE_TRANSITIONS",
    "ConnectionEvent",
    "ConnectionState",
    "LoadAction",
    "SaveEvent",
    "SaveState",
    "SyncStateMachine",
    "Transition",
    "plan_load",
]
