"""
Financial Reporting Module (``ledger_modules.reporting``).

Responsibility
--------------
Read-only module that derives financial statements from the Posted
journal: trial balance, classified balance sheet, income statement,
indirect-method cash flow statement, general ledger, period-over-period
comparison, budget vs actual, and aging; plus fixed-column CSV rows.

Architecture position
---------------------
**Modules layer** -- pure statement builders (``statements.py``,
``comparison.py``, ``export.py``) and a thin read-only
``ReportingService``.

Invariants enforced
-------------------
* No journal entries are created or changed by this module.
* Statements derive entirely from Posted entries; there are no stored
  balances.
* Balance direction comes from ``AccountPolarity`` only.

Failure modes
-------------
* Postings referencing unknown accounts -> excluded with a warning.
* Period not covered by any posting -> report with zero balances.

Audit relevance
---------------
Statement generation is deterministic and reproducible.  Report metadata
carries the generation timestamp and period identifiers.
"""

from ledger_modules.reporting.comparison import (
    budget_vs_actual,
    compare_amounts,
    compute_variance,
    profit_loss_comparison,
)
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.export import format_report_rows, report_columns, write_csv
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    BudgetVsActualReport,
    CashFlowCategory,
    CashFlowItem,
    CashFlowStatementReport,
    ComparativeAmount,
    GeneralLedgerReport,
    IncomeStatementReport,
    ReportMetadata,
    ReportType,
    StatementLine,
    StatementSection,
    TrialBalanceReport,
    Variance,
)
from ledger_modules.reporting.service import ReportingService
from ledger_modules.reporting.statements import (
    build_balance_sheet,
    build_cash_flow_statement,
    build_general_ledger,
    build_income_statement,
    build_trial_balance,
    derive_cash_flow_items,
)

__all__ = [
    # Service
    "ReportingService",
    # Config
    "ReportingConfig",
    # Models
    "BalanceSheetReport",
    "BudgetVsActualReport",
    "CashFlowCategory",
    "CashFlowItem",
    "CashFlowStatementReport",
    "ComparativeAmount",
    "GeneralLedgerReport",
    "IncomeStatementReport",
    "ReportMetadata",
    "ReportType",
    "StatementLine",
    "StatementSection",
    "TrialBalanceReport",
    "Variance",
    # Builders
    "build_balance_sheet",
    "build_cash_flow_statement",
    "build_general_ledger",
    "build_income_statement",
    "build_trial_balance",
    "derive_cash_flow_items",
    # Comparison
    "budget_vs_actual",
    "compare_amounts",
    "compute_variance",
    "profit_loss_comparison",
    # Export
    "format_report_rows",
    "report_columns",
    "write_csv",
]
