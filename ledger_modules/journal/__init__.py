"""
Journal Module (``ledger_modules.journal``).

Responsibility
--------------
Double-entry journal entries and their approval lifecycle:
Draft -> Pending Approval -> Approved -> Posted, with reject and unpost.
Also holds the chart of accounts and cost centres.

Architecture position
---------------------
**Modules layer** -- models and lifecycle are pure; ``JournalService``
bridges them to the persistence collaborator.

Invariants enforced
-------------------
* Only Draft entries may be edited or deleted.
* Posted and Rejected entries are immutable.
* Status changes are compare-and-set.
"""

from ledger_modules.journal.lifecycle import (
    approve,
    ensure_mutable,
    ledger_postings,
    post,
    reject,
    replace_lines,
    submit,
    unpost,
)
from ledger_modules.journal.config import JournalConfig
from ledger_modules.journal.models import JournalEntry, JournalStatus, SourceType
from ledger_modules.journal.service import JournalService
from ledger_modules.journal.workflows import JOURNAL_ENTRY_WORKFLOW

__all__ = [
    # Service
    "JournalService",
    # Config
    "JournalConfig",
    # Models
    "JournalEntry",
    "JournalStatus",
    "SourceType",
    # Workflow
    "JOURNAL_ENTRY_WORKFLOW",
    # Lifecycle
    "approve",
    "ensure_mutable",
    "ledger_postings",
    "post",
    "reject",
    "replace_lines",
    "submit",
    "unpost",
]
