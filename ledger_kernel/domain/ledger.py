"""
Ledger line value types (``ledger_kernel.domain.ledger``).

Responsibility
--------------
``EntryLine`` is one proposed or stored journal line.  ``LedgerPosting``
is a line of a Posted entry as seen by the balance calculator, carrying
the three keys that fix general-ledger order: entry date, creation
timestamp, and original insertion sequence.

Invariants enforced
-------------------
* Both types are frozen; line collections are tuples, replaced wholesale
  when an entry changes.
* ``LedgerPosting.order_key`` is total and stable for audit reproduction.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from ledger_kernel.domain.values import ZERO


@dataclass(frozen=True, slots=True)
class EntryLine:
    """A single debit-or-credit line of a journal entry."""

    account_id: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str = ""
    cost_center: str | None = None


@dataclass(frozen=True, slots=True)
class LedgerPosting:
    """A posted journal line, positioned for running-balance computation."""

    entry_id: str
    account_id: str
    entry_date: date
    created_at: datetime
    sequence: int
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str = ""
    reference: str | None = None

    @property
    def order_key(self) -> tuple[date, datetime, int]:
        return (self.entry_date, self.created_at, self.sequence)
