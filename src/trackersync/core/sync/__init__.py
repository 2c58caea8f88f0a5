"""
Sync lifecycle: state machine, debounce timer and orchestrator.

Example:
    >>> from trackersync.core.sync import SyncOrchestrator
    >>> orchestrator = SyncOrchestrator(remote, data_store)
    >>> await orchestrator.on_connect_or_file_change()
"""

from trackersync.core.sync.orchestrator import SyncOrchestrator
from trackersync.core.sync.state import (
    ConnectionState,
    LoadAction,
    SaveState,
    SyncStateMachine,
    plan_load,
)
from trackersync.core.sync.timer import DebounceTimer

__all__ = [
    "ConnectionState",
    "DebounceTimer",
    "LoadAction",
    "SaveState",
    "SyncOrchestrator",
    "SyncStateMachine",
    "plan_load",
]
