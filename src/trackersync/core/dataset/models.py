"""
Data models for the sync engine.

Defines Pydantic models for validation results, save/load results,
the persisted local snapshot layout, and snapshot age.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trackersync.core.errors import ValidationError


class ValidationResult(BaseModel):
    """
    Outcome of validating a dataset.

    Errors make the dataset invalid and block a save. Warnings are
    informational (e.g. dangling partner references) and never block.

    Example:
        >>> result = ValidationResult(is_valid=False, errors=["sales must be an array"])
        >>> result.summary()
        'sales must be an array'
    """

    is_valid: bool = Field(description="True when no hard errors were found")

    errors: list[str] = Field(
        default_factory=list,
        description="Hard structural or integrity errors",
    )

    warnings: list[str] = Field(
        default_factory=list,
        description="Soft warnings that do not fail validation",
    )

    def summary(self) -> str:
        """Join errors into a single human-readable message."""
        return ", ".join(self.errors)

    def raise_for_errors(self) -> None:
        """
        Raise ValidationError when the result carries hard errors.

        For callers that would rather raise than branch on ``is_valid``;
        the save pipeline itself branches.

        Raises:
            ValidationError: With this result's errors and warnings
        """
        if not self.is_valid:
            raise ValidationError(self.errors, self.warnings)


class SaveResult(BaseModel):
    """
    Result of a save pipeline run (autosave, manual save or initialize).
    """

    success: bool = Field(description="Whether the dataset reached the remote store")

    operation: str = Field(
        default="save",
        description="Type of operation (autosave, manual, initialize)",
    )

    error: str | None = Field(
        default=None,
        description="Human-readable failure reason",
    )

    commit_sha: str | None = Field(
        default=None,
        description="Commit created by the remote store (if reported)",
    )

    warnings: list[str] = Field(
        default_factory=list,
        description="Validation warnings logged during the save",
    )

    snapshot_saved: bool = Field(
        default=False,
        description="Whether the local snapshot was refreshed after the write",
    )

    def summary(self) -> str:
        """Generate a human-readable summary of the result."""
        if not self.success:
            return f"{self.operation} failed: {self.error}"

        parts = [f"{self.operation} succeeded"]
        if self.commit_sha:
            parts.append(f"commit {self.commit_sha[:8]}")
        if self.warnings:
            parts.append(f"{len(self.warnings)} warnings")
        return ", ".join(parts)


class LoadOutcome(str, Enum):
    """How the load-on-connect flow ended."""

    LOADED = "loaded"
    RECOVERED = "recovered"
    INITIALIZED = "initialized"
    FAILED = "failed"
    SKIPPED = "skipped"


class LoadResult(BaseModel):
    """
    Result of the load-on-connect flow.

    Every outcome except SKIPPED leaves a usable dataset in the data store;
    FAILED means an empty fallback dataset was loaded.
    """

    outcome: LoadOutcome

    error: str | None = Field(
        default=None,
        description="User-visible error raised during the flow, if any",
    )

    validation: ValidationResult | None = Field(
        default=None,
        description="Validation of the remote document (loaded outcome only)",
    )

    remote_created: bool = Field(
        default=False,
        description="Whether the remote data file was created during recovery",
    )

    @property
    def recovered_from_snapshot(self) -> bool:
        """True when the dataset was rebuilt from the local snapshot."""
        return self.outcome == LoadOutcome.RECOVERED


class FinanceData(BaseModel):
    """Finance-critical subset of a dataset carried by a local snapshot."""

    model_config = ConfigDict(populate_by_name=True)

    partners: list[Any] = Field(default_factory=list)
    withdrawals: list[Any] = Field(default_factory=list)
    cash_injections: list[Any] = Field(default_factory=list, alias="cashInjections")
    cash_flows: list[Any] = Field(default_factory=list, alias="cashFlows")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("partners", "withdrawals", "cash_injections", "cash_flows", mode="before")
    @classmethod
    def coerce_collection(cls, v: Any) -> Any:
        """A null or non-array collection reads as empty; siblings survive."""
        return v if isinstance(v, list) else []

    @field_validator("metadata", mode="before")
    @classmethod
    def coerce_metadata(cls, v: Any) -> Any:
        return v if isinstance(v, dict) else {}


class LocalSnapshot(BaseModel):
    """
    Persisted local snapshot layout.

    Serialized with aliases so the on-disk shape is
    ``{version, timestamp, financeData: {partners, withdrawals,
    cashInjections, cashFlows, metadata}}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    version: str = Field(min_length=1)
    timestamp: str | None = Field(default=None)
    finance_data: FinanceData = Field(alias="financeData")

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v: Any) -> Any:
        return str(v) if isinstance(v, (int, float)) and not isinstance(v, bool) else v

    @field_validator("timestamp", mode="before")
    @classmethod
    def drop_bad_timestamp(cls, v: Any) -> Any:
        return v if isinstance(v, str) else None

    def finance_dict(self) -> dict[str, Any]:
        """Return the finance subset in dataset (camelCase) shape."""
        return self.finance_data.model_dump(mode="json", by_alias=True)

    def created_at(self) -> datetime | None:
        """Parse the snapshot timestamp, or None when absent/unparseable."""
        if not self.timestamp:
            return None
        try:
            return datetime.fromisoformat(self.timestamp.replace("Z", "+00:00"))
        except ValueError:
            return None


class SnapshotAge(BaseModel):
    """Age of the local snapshot relative to now."""

    milliseconds: int
    minutes: int
    hours: int
    days: int

    @classmethod
    def from_milliseconds(cls, milliseconds: int) -> SnapshotAge:
        """Build an age from a millisecond delta, flooring each unit."""
        return cls(
            milliseconds=milliseconds,
            minutes=milliseconds // (1000 * 60),
            hours=milliseconds // (1000 * 60 * 60),
            days=milliseconds // (1000 * 60 * 60 * 24),
        )
