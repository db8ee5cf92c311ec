"""
Journal Domain Models (``ledger_modules.journal.models``).

Responsibility
--------------
Frozen dataclass value objects for journal entries and their lifecycle
status.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Produced by
the lifecycle functions and by ``JournalEntryModel.to_dto``; returned to
callers of ``JournalService``.

Invariants enforced
-------------------
* All models are ``frozen=True``; ``lines`` is a tuple that is replaced
  as a whole, never appended to in place.
* All monetary fields use ``Decimal`` -- NEVER ``float``.

Audit relevance
---------------
* ``created_by``, ``approved_by``/``approved_at``, ``posted_by``/``posted_at``
  and ``rejected_by``/``rejection_reason`` identify who moved the entry
  through each step.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.domain.ledger import EntryLine, LedgerPosting
from ledger_kernel.domain.values import ZERO


class JournalStatus(str, Enum):
    """Journal entry lifecycle states."""

    DRAFT = "Draft"
    PENDING_APPROVAL = "Pending Approval"
    APPROVED = "Approved"
    POSTED = "Posted"
    REJECTED = "Rejected"


class SourceType(str, Enum):
    MANUAL = "Manual"
    IMPORT = "Import"
    TEMPLATE = "Template"
    SYSTEM = "System"


@dataclass(frozen=True)
class JournalEntry:
    """A journal entry with its ordered lines."""

    entry_id: UUID
    tenant_id: UUID
    entry_date: date
    lines: tuple[EntryLine, ...]
    created_by: UUID
    status: JournalStatus = JournalStatus.DRAFT
    narration: str = ""
    reference_number: str | None = None
    source_type: SourceType = SourceType.MANUAL
    created_at: datetime | None = None
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    posted_by: UUID | None = None
    posted_at: datetime | None = None
    rejected_by: UUID | None = None
    rejection_reason: str | None = None

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), ZERO)

    @property
    def total_amount(self) -> Decimal:
        """Entry size, expressed as its debit total."""
        return self.total_debit

    @property
    def is_posted(self) -> bool:
        return self.status is JournalStatus.POSTED

    def postings(self) -> tuple[LedgerPosting, ...]:
        """Ledger postings for this entry, one per line in line order."""
        created = self.created_at or datetime.combine(self.entry_date, datetime.min.time())
        if created.tzinfo is not None:
            # order keys compare naive UTC; sqlite drops tzinfo on read
            created = created.astimezone(UTC).replace(tzinfo=None)
        return tuple(
            LedgerPosting(
                entry_id=str(self.entry_id),
                account_id=line.account_id,
                entry_date=self.entry_date,
                created_at=created,
                sequence=index,
                debit=line.debit,
                credit=line.credit,
                description=line.description or self.narration,
                reference=self.reference_number,
            )
            for index, line in enumerate(self.lines)
        )
