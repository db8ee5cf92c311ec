"""
Aggregation diagnostics (``ledger_kernel.domain.diagnostics``).

Aggregations (balances, classification, netting) never abort on a single
bad record.  A record whose reference cannot be resolved is left out of
the totals and described by an ``ExclusionWarning`` carried on the result.
"""

from __future__ import annotations

from dataclasses import dataclass

from ledger_kernel.logging_config import get_logger

logger = get_logger("domain.diagnostics")


@dataclass(frozen=True, slots=True)
class ExclusionWarning:
    """A record excluded from an aggregation."""

    record_id: str
    code: str
    message: str


def exclude(record_id: str, code: str, message: str, *, source: str) -> ExclusionWarning:
    """Build an ExclusionWarning and log it as ``record_excluded``."""
    warning = ExclusionWarning(record_id=str(record_id), code=code, message=message)
    logger.warning(
        "record_excluded",
        extra={
            "source": source,
            "excluded_record_id": warning.record_id,
            "reason_code": code,
            "reason": message,
        },
    )
    return warning
