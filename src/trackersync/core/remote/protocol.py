"""
Remote store protocol.

The remote store holds the authoritative copy of the dataset as a single
versioned JSON document. The orchestrator only needs to read the document
and write it back with a short change message.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class RemoteDocument(BaseModel):
    """
    Document returned by RemoteStore.read().

    ``data`` is either an already-parsed object or a JSON string; None
    means the file exists but is empty.
    """

    data: Any = Field(default=None, description="Parsed payload or raw JSON text")
    sha: str | None = Field(default=None, description="Version identifier of the file")


class WriteResult(BaseModel):
    """Result of RemoteStore.write()."""

    success: bool
    error: str | None = None
    sha: str | None = Field(default=None, description="New version identifier of the file")
    commit_sha: str | None = Field(default=None, description="Commit that recorded the write")


@runtime_checkable
class RemoteStore(Protocol):
    """
    Protocol for remote store implementations.

    read() raises NotFoundError when the data file does not exist and a
    TransportError (or subclass) for other failures. write() reports
    expected failures through WriteResult; it may also raise a
    RemoteStoreError, which callers must catch.
    """

    @property
    def is_connected(self) -> bool:
        """True when the store is configured and usable."""
        ...

    @property
    def file_identity(self) -> str | None:
        """Stable identity of the remote data file (None when disconnected)."""
        ...

    async def read(self) -> RemoteDocument:
        """Fetch the remote document."""
        ...

    async def write(self, payload: dict[str, Any], message: str) -> WriteResult:
        """Replace the remote document with ``payload``."""
        ...


__all__ = ["RemoteDocument", "RemoteStore", "WriteResult"]
