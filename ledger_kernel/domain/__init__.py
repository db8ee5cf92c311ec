"""
Pure domain layer.

Immutable value objects and pure lookups with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- The system clock (except ``SystemClock`` itself)
- I/O
"""

from ledger_kernel.domain.accounts import Account, AccountSubtype, full_path
from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.diagnostics import ExclusionWarning
from ledger_kernel.domain.fiscal import FiscalYearPolicy, ReturnPeriod, validate_fiscal_year
from ledger_kernel.domain.ledger import EntryLine, LedgerPosting
from ledger_kernel.domain.polarity import AccountPolarity, AccountType, NormalBalance
from ledger_kernel.domain.values import TaxAmounts, TaxHead
from ledger_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Account",
    "AccountPolarity",
    "AccountSubtype",
    "AccountType",
    "Clock",
    "DeterministicClock",
    "EntryLine",
    "ExclusionWarning",
    "FiscalYearPolicy",
    "Guard",
    "LedgerPosting",
    "NormalBalance",
    "ReturnPeriod",
    "SystemClock",
    "TaxAmounts",
    "TaxHead",
    "Transition",
    "Workflow",
    "full_path",
    "validate_fiscal_year",
]
