"""
Budgeting Domain Models (``ledger_modules.budget.models``).

Responsibility
--------------
Frozen dataclass value objects for planning documents: versioned budgets
with distributed line items, and versioned cash-flow forecasts with
recomputed closing balances.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by
``BudgetService`` and returned to callers.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``Budget.total_amount`` and every forecast total are derived from the
  lines on access; nothing derived is stored on the value object.
* Distribution tuples are fiscal-month ordered: index 0 is the first
  month of the fiscal year.

Audit relevance
---------------
* ``version``/``parent_id`` keep the full revision chain; exactly one
  version per (name, fiscal year) is current.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.domain.values import ZERO
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.budget.models")

MONTHS = 12
QUARTERS = 4


class BudgetStatus(str, Enum):
    """Budget version states."""

    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    ACTIVE = "Active"
    CLOSED = "Closed"


class ForecastStatus(str, Enum):
    """Cash-flow forecast version states."""

    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    ACTIVE = "Active"
    ARCHIVED = "Archived"


class BudgetType(str, Enum):
    OPERATING = "Operating"
    CAPITAL = "Capital"
    CASH_FLOW = "Cash Flow"
    PROJECT = "Project"
    DEPARTMENT = "Department"
    MASTER = "Master"


class DistributionMethod(str, Enum):
    """How an annual amount is spread over months and quarters."""

    EQUAL = "equal"
    SEASONAL = "seasonal"


class CashFlowCategory(str, Enum):
    OPERATING_RECEIPTS_CUSTOMERS = "OPERATING_RECEIPTS_CUSTOMERS"
    OPERATING_RECEIPTS_OTHER = "OPERATING_RECEIPTS_OTHER"
    OPERATING_PAYMENTS_SUPPLIERS = "OPERATING_PAYMENTS_SUPPLIERS"
    OPERATING_PAYMENTS_EMPLOYEES = "OPERATING_PAYMENTS_EMPLOYEES"
    OPERATING_PAYMENTS_TAXES = "OPERATING_PAYMENTS_TAXES"
    OPERATING_PAYMENTS_OTHER = "OPERATING_PAYMENTS_OTHER"
    INVESTING_RECEIPTS_ASSET_SALES = "INVESTING_RECEIPTS_ASSET_SALES"
    INVESTING_RECEIPTS_INVESTMENT_INCOME = "INVESTING_RECEIPTS_INVESTMENT_INCOME"
    INVESTING_PAYMENTS_ASSET_PURCHASE = "INVESTING_PAYMENTS_ASSET_PURCHASE"
    INVESTING_PAYMENTS_INVESTMENTS = "INVESTING_PAYMENTS_INVESTMENTS"
    FINANCING_RECEIPTS_EQUITY = "FINANCING_RECEIPTS_EQUITY"
    FINANCING_RECEIPTS_BORROWINGS = "FINANCING_RECEIPTS_BORROWINGS"
    FINANCING_PAYMENTS_DIVIDENDS = "FINANCING_PAYMENTS_DIVIDENDS"
    FINANCING_PAYMENTS_LOAN_REPAYMENTS = "FINANCING_PAYMENTS_LOAN_REPAYMENTS"
    FINANCING_PAYMENTS_INTEREST = "FINANCING_PAYMENTS_INTEREST"
    OTHER_RECEIPTS = "OTHER_RECEIPTS"
    OTHER_PAYMENTS = "OTHER_PAYMENTS"

    @property
    def is_inflow(self) -> bool:
        return "RECEIPTS" in self.value


# =============================================================================
# Budget
# =============================================================================


@dataclass(frozen=True)
class BudgetLine:
    """One budgeted account with its annual amount and distributions."""

    account_id: str
    annual_amount: Decimal
    monthly: tuple[Decimal, ...] = ()
    quarterly: tuple[Decimal, ...] = ()
    cost_center: str | None = None
    description: str = ""

    @property
    def is_distributed(self) -> bool:
        return len(self.monthly) == MONTHS and len(self.quarterly) == QUARTERS


@dataclass(frozen=True)
class Budget:
    """A budget version for one fiscal year."""

    id: UUID
    tenant_id: UUID
    name: str
    fiscal_year: str
    created_by: UUID
    budget_type: BudgetType = BudgetType.OPERATING
    status: BudgetStatus = BudgetStatus.DRAFT
    version: int = 1
    is_current_version: bool = True
    parent_id: UUID | None = None
    lines: tuple[BudgetLine, ...] = ()
    currency: str = "INR"
    description: str = ""
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None

    @property
    def total_amount(self) -> Decimal:
        return sum((line.annual_amount for line in self.lines), ZERO)


# =============================================================================
# Cash-flow forecast
# =============================================================================


@dataclass(frozen=True)
class ForecastLine:
    """Twelve fiscal-month amounts for one cash-flow category."""

    category: CashFlowCategory
    monthly: tuple[Decimal, ...]
    description: str = ""
    account_id: str | None = None
    probability: int = 100

    @property
    def annual_amount(self) -> Decimal:
        return sum(self.monthly, ZERO)

    @property
    def quarterly(self) -> tuple[Decimal, ...]:
        return tuple(sum(self.monthly[q * 3:q * 3 + 3], ZERO) for q in range(QUARTERS))

    @property
    def is_inflow(self) -> bool:
        return self.category.is_inflow


@dataclass(frozen=True)
class ForecastSummary:
    """
    Totals and running balances of a forecast.

    Guarantees:
        - ``closing_balance == opening_balance + net_cash_flow``.
        - ``quarterly_closing[q]`` equals ``monthly_closing[3q + 2]``.
    """

    opening_balance: Decimal
    total_inflows: Decimal
    total_outflows: Decimal
    monthly_closing: tuple[Decimal, ...]
    quarterly_closing: tuple[Decimal, ...]

    @property
    def net_cash_flow(self) -> Decimal:
        return self.total_inflows - self.total_outflows

    @property
    def closing_balance(self) -> Decimal:
        return self.monthly_closing[-1] if self.monthly_closing else self.opening_balance


@dataclass(frozen=True)
class CashFlowForecast:
    """A cash-flow forecast version for one fiscal year."""

    id: UUID
    tenant_id: UUID
    name: str
    fiscal_year: str
    created_by: UUID
    opening_balance: Decimal = ZERO
    status: ForecastStatus = ForecastStatus.DRAFT
    version: int = 1
    is_current_version: bool = True
    parent_id: UUID | None = None
    lines: tuple[ForecastLine, ...] = ()
    currency: str = "INR"
    description: str = ""
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None

    @property
    def summary(self) -> ForecastSummary:
        from ledger_modules.budget.forecast import summarize_forecast

        return summarize_forecast(self.opening_balance, self.lines)
