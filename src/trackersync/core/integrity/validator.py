"""
Structural and referential validation of datasets.

Validation is a pure function over a dataset dict. Hard errors
(missing collections, missing metadata, duplicate ids, non-object
records) make the dataset unsafe to persist. Dangling partner
references are only warnings: the data is still saved.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Hashable
from typing import Any

from trackersync.core.dataset.models import ValidationResult
from trackersync.core.dataset.templates import COLLECTIONS

CAPITAL_CONTRIBUTION = "Capital Contribution"

# Human-readable record names used in duplicate-id errors
RECORD_LABELS: dict[str, str] = {
    "products": "product",
    "containers": "container",
    "sales": "sale",
    "expenses": "expense",
    "partners": "partner",
    "withdrawals": "withdrawal",
    "cashFlows": "cash flow",
    "cashInjections": "cash injection",
}


def _id_key(value: Any) -> Hashable:
    return value if isinstance(value, Hashable) else repr(value)


def _duplicate_ids(records: list[Any]) -> list[Any]:
    """Return ids that occur more than once among dict records with an id."""
    counts = Counter(
        _id_key(record["id"])
        for record in records
        if isinstance(record, dict) and record.get("id") is not None
    )
    return [key for key, count in counts.items() if count > 1]


def _partner_ids(partners: Any) -> set[Hashable]:
    if not isinstance(partners, list):
        return set()
    return {
        _id_key(partner.get("id"))
        for partner in partners
        if isinstance(partner, dict) and partner.get("id") is not None
    }


def _dangling(records: Any, partner_ids: set[Hashable], capital_only: bool = False) -> int:
    if not isinstance(records, list):
        return 0
    count = 0
    for record in records:
        if not isinstance(record, dict):
            continue
        if capital_only and record.get("type") != CAPITAL_CONTRIBUTION:
            continue
        partner_id = record.get("partnerId")
        if partner_id and _id_key(partner_id) not in partner_ids:
            count += 1
    return count


def validate_dataset(data: Any) -> ValidationResult:
    """
    Validate a dataset before it is persisted.

    Fails when the dataset is not a dict, any of the eight collections is
    not a list, metadata or metadata.nextIds is missing, a collection
    holds a non-object record, or a collection has duplicate ids.
    Warns when a withdrawal or a capital-contribution cash injection
    references a partner that does not exist.

    Args:
        data: Candidate dataset (any value; never raises)

    Returns:
        ValidationResult with errors and warnings

    Example:
        >>> validate_dataset({"partners": []}).is_valid
        False
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not isinstance(data, dict):
        errors.append("Data must be a valid object")
        return ValidationResult(is_valid=False, errors=errors, warnings=warnings)

    for name in COLLECTIONS:
        if not isinstance(data.get(name), list):
            errors.append(f"{name} must be an array")

    metadata = data.get("metadata")
    if not isinstance(metadata, dict) or not metadata:
        errors.append("Metadata is required")
    elif not isinstance(metadata.get("nextIds"), dict):
        errors.append("Metadata nextIds is required")

    for name in COLLECTIONS:
        records = data.get(name)
        if not isinstance(records, list):
            continue

        bad_positions = [i for i, record in enumerate(records) if not isinstance(record, dict)]
        if bad_positions:
            errors.append(f"{name} contains {len(bad_positions)} non-object records")

        if _duplicate_ids(records):
            errors.append(f"Duplicate {RECORD_LABELS[name]} IDs found")

    partner_ids = _partner_ids(data.get("partners"))

    dangling_withdrawals = _dangling(data.get("withdrawals"), partner_ids)
    if dangling_withdrawals:
        warnings.append(f"{dangling_withdrawals} withdrawals reference non-existent partners")

    dangling_contributions = _dangling(
        data.get("cashInjections"), partner_ids, capital_only=True
    )
    if dangling_contributions:
        warnings.append(
            f"{dangling_contributions} capital contributions reference non-existent partners"
        )

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


__all__ = ["CAPITAL_CONTRIBUTION", "RECORD_LABELS", "validate_dataset"]
