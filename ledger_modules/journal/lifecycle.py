"""
Module: ledger_modules.journal.lifecycle
Responsibility: Pure journal-entry lifecycle functions.  Each function
    takes a ``JournalEntry`` and returns a new one; none of them touch the
    database or the clock.
Architecture position: Modules > journal.  Called by ``JournalService``
    before the compare-and-set write; usable directly in tests.

Invariants enforced:
    - Lines change only in Draft, and only to a set that passes
      ``require_valid_entry``.
    - Posted and Rejected entries are immutable: every mutating operation
      raises ImmutableRecordError.
    - Every status change resolves through ``JOURNAL_ENTRY_WORKFLOW``.

Failure modes:
    - InvalidStateTransitionError for an action not allowed from the
      current status, and for mutation outside Draft.
    - MissingFieldError when approve lacks approver or timestamp, or
      reject lacks a reason.
    - Validation errors from the entry validator.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from dataclasses import replace
from datetime import datetime
from uuid import UUID

from ledger_engines.entry_validator import require_valid_entry
from ledger_kernel.domain.accounts import Account
from ledger_kernel.domain.ledger import EntryLine, LedgerPosting
from ledger_kernel.domain.workflow import Transition
from ledger_kernel.exceptions import (
    ImmutableRecordError,
    InvalidStateTransitionError,
    MissingFieldError,
)
from ledger_modules.journal.models import JournalEntry, JournalStatus
from ledger_modules.journal.workflows import IMMUTABLE_STATUSES, JOURNAL_ENTRY_WORKFLOW

ENTITY_TYPE = "journal_entry"


def ensure_mutable(entry: JournalEntry, operation: str) -> None:
    """
    Raise unless ``entry`` may be edited or deleted.

    Raises:
        ImmutableRecordError: entry is Posted or Rejected.
        InvalidStateTransitionError: entry is in any other non-Draft status.
    """
    if entry.status in IMMUTABLE_STATUSES:
        raise ImmutableRecordError(ENTITY_TYPE, str(entry.entry_id), entry.status.value, operation)
    if entry.status is not JournalStatus.DRAFT:
        raise InvalidStateTransitionError(
            ENTITY_TYPE, str(entry.entry_id), entry.status.value, operation,
        )


def resolve_transition(entry: JournalEntry, action: str) -> Transition:
    return JOURNAL_ENTRY_WORKFLOW.require(ENTITY_TYPE, entry.entry_id, entry.status.value, action)


def _moved(entry: JournalEntry, transition: Transition, **changes) -> JournalEntry:
    return replace(entry, status=JournalStatus(transition.to_state), **changes)


def replace_lines(
    entry: JournalEntry,
    lines: Iterable[EntryLine],
    *,
    precision: int = 3,
    accounts: Mapping[str, Account] | None = None,
    cost_centers: Collection[str] | None = None,
) -> JournalEntry:
    """Return ``entry`` with a wholly new, validated line set."""
    ensure_mutable(entry, "update")
    new_lines = tuple(lines)
    require_valid_entry(new_lines, precision, accounts=accounts, cost_centers=cost_centers)
    return replace(entry, lines=new_lines)


def submit(entry: JournalEntry, *, precision: int = 3) -> JournalEntry:
    """Draft -> Pending Approval.  The lines are re-validated first."""
    transition = resolve_transition(entry, "submit")
    require_valid_entry(entry.lines, precision)
    return _moved(entry, transition)


def approve(entry: JournalEntry, approver_id: UUID | None, approved_at: datetime | None) -> JournalEntry:
    """Pending Approval -> Approved, recording approver and timestamp."""
    transition = resolve_transition(entry, "approve")
    if approver_id is None:
        raise MissingFieldError("approver_id", "approve")
    if approved_at is None:
        raise MissingFieldError("approved_at", "approve")
    return _moved(entry, transition, approved_by=approver_id, approved_at=approved_at)


def reject(entry: JournalEntry, actor_id: UUID, reason: str | None) -> JournalEntry:
    """Pending Approval -> Rejected.  A blank reason is not a reason."""
    transition = resolve_transition(entry, "reject")
    if reason is None or not reason.strip():
        raise MissingFieldError("rejection_reason", "reject")
    return _moved(entry, transition, rejected_by=actor_id, rejection_reason=reason.strip())


def post(entry: JournalEntry, actor_id: UUID, posted_at: datetime) -> JournalEntry:
    transition = resolve_transition(entry, "post")
    return _moved(entry, transition, posted_by=actor_id, posted_at=posted_at)


def unpost(entry: JournalEntry) -> JournalEntry:
    """Posted -> Approved; the entry stops counting toward balances."""
    transition = resolve_transition(entry, "unpost")
    return _moved(entry, transition, posted_by=None, posted_at=None)


def ledger_postings(entries: Iterable[JournalEntry]) -> list[LedgerPosting]:
    """Postings of the Posted entries among ``entries``, in ledger order."""
    postings = [p for entry in entries if entry.is_posted for p in entry.postings()]
    postings.sort(key=lambda p: p.order_key)
    return postings
