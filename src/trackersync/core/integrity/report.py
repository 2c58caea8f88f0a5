"""
Data-state summaries for logging.
"""

from __future__ import annotations

import logging
from typing import Any

from trackersync.core.dataset.templates import COLLECTIONS
from trackersync.core.integrity.sanitizer import coerce_amount

logger = logging.getLogger(__name__)


def dataset_counts(data: Any) -> dict[str, int]:
    """Count records per collection; non-list collections count as 0."""
    if not isinstance(data, dict):
        return {name: 0 for name in COLLECTIONS}
    return {
        name: len(data[name]) if isinstance(data.get(name), list) else 0
        for name in COLLECTIONS
    }


def _total(records: Any) -> int | float:
    if not isinstance(records, list):
        return 0
    return sum(
        coerce_amount(record.get("amount")) for record in records if isinstance(record, dict)
    )


def log_data_state(data: Any, operation: str = "Unknown") -> dict[str, int]:
    """
    Log per-collection counts and a finance summary at DEBUG level.

    Args:
        data: Dataset to summarize (None is allowed)
        operation: Label for the log line (e.g. "Before save")

    Returns:
        The collection counts that were logged
    """
    if not data:
        logger.debug("Data state (%s): no data", operation)
        return dataset_counts(None)

    counts = dataset_counts(data)
    logger.debug("Data state (%s): %s", operation, counts)

    if counts["partners"] or counts["withdrawals"] or counts["cashInjections"]:
        logger.debug(
            "Finance summary (%s): %d partners, %d withdrawals totalling %s, "
            "%d cash injections totalling %s",
            operation,
            counts["partners"],
            counts["withdrawals"],
            _total(data.get("withdrawals")),
            counts["cashInjections"],
            _total(data.get("cashInjections")),
        )
    return counts


__all__ = ["dataset_counts", "log_data_state"]
