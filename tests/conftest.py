"""
Pytest configuration and shared fixtures.

Provides sample datasets, a scripted in-memory RemoteStore, a data store,
a tmp-path snapshot store and a fast-autosave orchestrator.
"""

import asyncio
import copy
import time
from collections.abc import Callable
from typing import Any

import pytest

from trackersync.core.config.models import SyncSettings
from trackersync.core.dataset.store import InMemoryDataStore
from trackersync.core.dataset.templates import empty_dataset
from trackersync.core.errors import NotFoundError
from trackersync.core.remote.protocol import RemoteDocument, WriteResult
from trackersync.core.snapshot.store import LocalSnapshotStore
from trackersync.core.sync.orchestrator import SyncOrchestrator

# ==============================================================================
# Fake Remote Store
# ==============================================================================


class FakeRemoteStore:
    """
    In-memory RemoteStore with scripted failures.

    Attributes:
        document: Payload returned by read() (None means an empty file)
        read_error: Exception raised by read() instead of returning
        write_results: Queue of WriteResult/Exception returned by write();
            defaults to success when empty
        read_delay: Seconds each read takes
        write_delay: Seconds each write takes
        writes: (payload, message) for every write call
    """

    def __init__(
        self,
        document: Any = None,
        *,
        read_error: Exception | None = None,
        identity: str | None = "acme/books:data.json",
        connected: bool = True,
    ) -> None:
        self.document = document
        self.read_error = read_error
        self.identity = identity
        self.connected = connected
        self.write_results: list[WriteResult | Exception] = []
        self.read_delay = 0.0
        self.write_delay = 0.0
        self.writes: list[tuple[dict[str, Any], str]] = []
        self.reads = 0
        self.active_writes = 0
        self.max_concurrent_writes = 0

    @property
    def is_connected(self) -> bool:
        return self.connected

    @property
    def file_identity(self) -> str | None:
        return self.identity if self.connected else None

    async def read(self) -> RemoteDocument:
        self.reads += 1
        await asyncio.sleep(self.read_delay)
        if self.read_error is not None:
            raise self.read_error
        return RemoteDocument(data=copy.deepcopy(self.document), sha="sha-1")

    async def write(self, payload: dict[str, Any], message: str) -> WriteResult:
        self.writes.append((copy.deepcopy(payload), message))
        self.active_writes += 1
        self.max_concurrent_writes = max(self.max_concurrent_writes, self.active_writes)
        try:
            await asyncio.sleep(self.write_delay)
            result: WriteResult | Exception = (
                self.write_results.pop(0)
                if self.write_results
                else WriteResult(success=True, commit_sha=f"commit{len(self.writes)}")
            )
        finally:
            self.active_writes -= 1

        if isinstance(result, Exception):
            raise result
        if result.success:
            self.document = copy.deepcopy(payload)
            self.read_error = None
        return result


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``predicate`` until it holds or ``timeout`` seconds pass."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(0.01)


# ==============================================================================
# Dataset Fixtures
# ==============================================================================


@pytest.fixture
def sample_dataset() -> dict[str, Any]:
    """A small, valid dataset with finance and operational records."""
    dataset = empty_dataset()
    dataset["products"] = [{"id": 1, "name": "Runner", "price": 45}]
    dataset["sales"] = [{"id": 1, "productId": 1, "amount": 45}]
    dataset["partners"] = [
        {
            "id": "P1",
            "name": "Ana",
            "capitalAccount": {
                "initialInvestment": 1000,
                "additionalContributions": 0,
                "profitShare": 0,
                "totalWithdrawn": 100,
                "currentEquity": 900,
            },
        }
    ]
    dataset["withdrawals"] = [{"id": "W1", "partnerId": "P1", "amount": 100}]
    dataset["cashInjections"] = [
        {"id": "CI1", "partnerId": "P1", "amount": 1000, "type": "Capital Contribution"}
    ]
    dataset["cashFlows"] = [{"id": "CF1", "type": "in", "amount": 45}]
    dataset["metadata"]["nextIds"].update(
        {"product": 2, "sale": 2, "partner": 2, "withdrawal": 2, "cashInjection": 2, "cashFlow": 2}
    )
    return dataset


# ==============================================================================
# Collaborator Fixtures
# ==============================================================================


@pytest.fixture
def remote(sample_dataset):
    """Connected fake remote holding the sample dataset."""
    return FakeRemoteStore(sample_dataset)


@pytest.fixture
def missing_remote():
    """Connected fake remote whose data file does not exist."""
    return FakeRemoteStore(read_error=NotFoundError("Not Found: data.json"))


@pytest.fixture
def data_store():
    return InMemoryDataStore()


@pytest.fixture
def snapshot_store(tmp_path):
    """Snapshot store writing under the test's tmp directory."""
    return LocalSnapshotStore(tmp_path / "snapshots")


@pytest.fixture
def fast_settings():
    """Sync settings with a short autosave delay."""
    return SyncSettings(autosave_delay_seconds=0.05)


@pytest.fixture
def orchestrator(remote, data_store, snapshot_store, fast_settings):
    return SyncOrchestrator(remote, data_store, snapshot_store, fast_settings)
