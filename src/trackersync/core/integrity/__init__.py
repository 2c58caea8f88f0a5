"""
Dataset integrity: validation before persistence, sanitization into a
save-safe shape, and data-state logging.

Example:
    >>> from trackersync.core.integrity import validate_dataset, sanitize_dataset
    >>> result = validate_dataset(dataset)
    >>> if result.is_valid:
    ...     payload = sanitize_dataset(dataset)
"""

from trackersync.core.integrity.report import dataset_counts, log_data_state
from trackersync.core.integrity.sanitizer import (
    CAPITAL_ACCOUNT_TEMPLATE,
    coerce_amount,
    fallback_id,
    sanitize_dataset,
    sanitize_partner,
)
from trackersync.core.integrity.validator import validate_dataset

__all__ = [
    "CAPITAL_ACCOUNT_TEMPLATE",
    "coerce_amount",
    "dataset_counts",
    "fallback_id",
    "log_data_state",
    "sanitize_dataset",
    "sanitize_partner",
    "validate_dataset",
]
