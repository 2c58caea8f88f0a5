"""
Dataset sanitization for persistence.

Sanitization normalizes the finance collections into a canonical,
save-safe shape: every record gets an id, partner capital accounts carry
all numeric fields, and transaction amounts are numeric scalars. It does
not check referential integrity; run validate_dataset() for that.
"""

from __future__ import annotations

import copy
import math
import time
from collections.abc import Callable
from typing import Any

CAPITAL_ACCOUNT_TEMPLATE: dict[str, int] = {
    "initialInvestment": 0,
    "additionalContributions": 0,
    "profitShare": 0,
    "totalWithdrawn": 0,
    "currentEquity": 0,
}

_last_fallback_ms = 0


def fallback_id(prefix: str) -> str:
    """
    Generate a time-based id such as ``P1718000000000``.

    Successive calls never return the same number, even within the same
    millisecond.
    """
    global _last_fallback_ms
    now_ms = time.time_ns() // 1_000_000
    _last_fallback_ms = max(now_ms, _last_fallback_ms + 1)
    return f"{prefix}{_last_fallback_ms}"


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def coerce_amount(value: Any) -> int | float:
    """
    Coerce a transaction amount to a finite number, defaulting to 0.

    Numbers pass through, booleans become 1/0, numeric strings are
    parsed, anything else (None, lists, garbage strings, NaN) becomes 0.

    Example:
        >>> coerce_amount("12.5"), coerce_amount(None), coerce_amount([3])
        (12.5, 0, 0)
    """
    if isinstance(value, bool):
        return int(value)
    if _is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = float(text)
        except ValueError:
            return 0
        return parsed if math.isfinite(parsed) else 0
    return 0


def _with_id(record: dict[str, Any], prefix: str) -> dict[str, Any]:
    if record.get("id") in (None, "", 0):
        record["id"] = fallback_id(prefix)
    return record


def sanitize_partner(partner: Any) -> Any:
    """Return a sanitized copy of one partner record."""
    if not isinstance(partner, dict):
        return copy.deepcopy(partner)

    clean = _with_id(copy.deepcopy(partner), "P")
    existing = clean.get("capitalAccount")
    account = dict(CAPITAL_ACCOUNT_TEMPLATE)
    if isinstance(existing, dict):
        account.update(existing)

    contributions = account.get("additionalContributions")
    account["additionalContributions"] = contributions if _is_number(contributions) else 0
    clean["capitalAccount"] = account
    return clean


def _sanitize_transaction(record: Any, prefix: str, amount_required: bool) -> Any:
    if not isinstance(record, dict):
        return copy.deepcopy(record)

    clean = _with_id(copy.deepcopy(record), prefix)
    if amount_required or "amount" in clean:
        clean["amount"] = coerce_amount(clean.get("amount"))
    return clean


def _map(records: Any, func: Callable[[Any], Any]) -> Any:
    if records is None:
        return []
    if not isinstance(records, list):
        # Shape errors are the validator's call, not ours
        return copy.deepcopy(records)
    return [func(record) for record in records]


def sanitize_dataset(data: dict[str, Any]) -> dict[str, Any]:
    """
    Return a sanitized copy of a dataset; the input is never mutated.

    - partners: fallback ``P…`` id, capital account merged over a
      zero-valued template, ``additionalContributions`` forced numeric
    - withdrawals / cashInjections: fallback ``W…`` / ``CI…`` id,
      ``amount`` coerced to a number (0 when absent or non-numeric)
    - cashFlows: fallback ``CF…`` id, ``amount`` coerced when present

    Sanitizing already-sanitized data with populated ids yields an
    equal dataset.

    Args:
        data: Dataset dict (ideally already validated)

    Returns:
        New sanitized dataset dict
    """
    clean = copy.deepcopy(data)
    clean["partners"] = _map(data.get("partners"), sanitize_partner)
    clean["withdrawals"] = _map(
        data.get("withdrawals"), lambda r: _sanitize_transaction(r, "W", True)
    )
    clean["cashInjections"] = _map(
        data.get("cashInjections"), lambda r: _sanitize_transaction(r, "CI", True)
    )
    clean["cashFlows"] = _map(
        data.get("cashFlows"), lambda r: _sanitize_transaction(r, "CF", False)
    )
    return clean


__all__ = [
    "CAPITAL_ACCOUNT_TEMPLATE",
    "coerce_amount",
    "fallback_id",
    "sanitize_dataset",
    "sanitize_partner",
]
