"""
Financial Reporting Domain Models (``ledger_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects for statement outputs: trial balance,
balance sheet, income statement, cash flow statement, general ledger,
period comparison and budget-vs-actual.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Produced by
``ledger_modules.reporting.statements`` and ``comparison``; rendered by
``ledger_modules.reporting.export``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``previous`` and ``variance`` are both None or both set.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from ledger_kernel.domain.diagnostics import ExclusionWarning


# =========================================================================
# Enums
# =========================================================================


class ReportType(str, Enum):
    """Report kinds understood by the CSV exporter."""

    TRIAL_BALANCE = "trial-balance"
    BALANCE_SHEET = "balance-sheet"
    INCOME_STATEMENT = "income-statement"
    CASH_FLOW = "cash-flow"
    GENERAL_LEDGER = "general-ledger"
    AR_AGING = "ar-aging"
    AP_AGING = "ap-aging"
    PROFIT_LOSS_COMPARISON = "profit-loss-comparison"
    BUDGET_VS_ACTUAL = "budget-vs-actual"


class CashFlowCategory(str, Enum):
    OPERATING = "operating"
    INVESTING = "investing"
    FINANCING = "financing"


# =========================================================================
# Shared pieces
# =========================================================================


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every financial report."""

    report_type: ReportType
    entity_name: str
    as_of_date: date
    generated_at: str  # ISO timestamp from the injected clock
    period_start: date | None = None
    period_end: date | None = None
    comparative_date: date | None = None
    comparative_start: date | None = None
    comparative_end: date | None = None

    @property
    def has_comparative(self) -> bool:
        return self.comparative_date is not None or self.comparative_end is not None


@dataclass(frozen=True)
class Variance:
    """Movement from a reference amount to a current amount."""

    absolute: Decimal
    percentage: Decimal
    favorable: bool


@dataclass(frozen=True)
class ComparativeAmount:
    current: Decimal
    previous: Decimal | None = None
    variance: Variance | None = None


@dataclass(frozen=True)
class StatementLine:
    """One account on a statement."""

    account_id: str
    account_code: str
    account_name: str
    amount: ComparativeAmount


@dataclass(frozen=True)
class StatementSection:
    label: str
    lines: tuple[StatementLine, ...]
    total: ComparativeAmount


# =========================================================================
# Trial balance
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceLine:
    account_id: str
    account_code: str
    account_name: str
    account_type: str
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class TrialBalanceReport:
    metadata: ReportMetadata
    lines: tuple[TrialBalanceLine, ...]
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool
    warnings: tuple[ExclusionWarning, ...] = ()


# =========================================================================
# Balance sheet
# =========================================================================


@dataclass(frozen=True)
class BalanceSheetReport:
    """
    Classified balance sheet.

    ``is_balanced`` compares total assets with total liabilities and
    equity, where equity includes current-period earnings.
    """

    metadata: ReportMetadata
    current_assets: StatementSection
    fixed_assets: StatementSection
    other_assets: StatementSection
    total_assets: ComparativeAmount
    current_liabilities: StatementSection
    long_term_liabilities: StatementSection
    total_liabilities: ComparativeAmount
    equity: StatementSection
    total_liabilities_and_equity: ComparativeAmount
    is_balanced: bool
    warnings: tuple[ExclusionWarning, ...] = ()


# =========================================================================
# Income statement
# =========================================================================


@dataclass(frozen=True)
class IncomeStatementReport:
    metadata: ReportMetadata
    revenue: StatementSection
    expenses: StatementSection
    net_income: ComparativeAmount
    warnings: tuple[ExclusionWarning, ...] = ()


# =========================================================================
# Cash flow
# =========================================================================


@dataclass(frozen=True)
class CashFlowItem:
    """A categorized cash movement; inflows positive, outflows negative."""

    category: CashFlowCategory
    description: str
    amount: Decimal
    previous_amount: Decimal | None = None


@dataclass(frozen=True)
class CashFlowLine:
    description: str
    amount: ComparativeAmount


@dataclass(frozen=True)
class CashFlowSection:
    category: CashFlowCategory
    lines: tuple[CashFlowLine, ...]
    total: ComparativeAmount


@dataclass(frozen=True)
class CashFlowStatementReport:
    """
    Cash flow statement.

    Guarantees:
        ending_cash == beginning_cash + net_change for both columns.
    """

    metadata: ReportMetadata
    beginning_cash: ComparativeAmount
    operating: CashFlowSection
    investing: CashFlowSection
    financing: CashFlowSection
    net_change: ComparativeAmount
    ending_cash: ComparativeAmount


# =========================================================================
# General ledger
# =========================================================================


@dataclass(frozen=True)
class GeneralLedgerRow:
    entry_date: date
    entry_id: str
    description: str
    reference: str | None
    debit: Decimal
    credit: Decimal
    running_balance: Decimal


@dataclass(frozen=True)
class GeneralLedgerAccount:
    account_id: str
    account_code: str
    account_name: str
    opening_balance: Decimal
    rows: tuple[GeneralLedgerRow, ...]
    total_debit: Decimal
    total_credit: Decimal
    closing_balance: Decimal


@dataclass(frozen=True)
class GeneralLedgerReport:
    metadata: ReportMetadata
    accounts: tuple[GeneralLedgerAccount, ...]
    warnings: tuple[ExclusionWarning, ...] = ()


# =========================================================================
# Budget vs actual
# =========================================================================


@dataclass(frozen=True)
class BudgetVsActualLine:
    account_id: str
    account_code: str
    account_name: str
    budget: Decimal
    actual: Decimal
    variance: Variance


@dataclass(frozen=True)
class BudgetVsActualSection:
    label: str
    lines: tuple[BudgetVsActualLine, ...]
    budget_total: Decimal
    actual_total: Decimal
    variance: Variance


@dataclass(frozen=True)
class BudgetVsActualReport:
    metadata: ReportMetadata
    revenue: BudgetVsActualSection
    expenses: BudgetVsActualSection
    net_income_budget: Decimal
    net_income_actual: Decimal
    net_income_variance: Variance
