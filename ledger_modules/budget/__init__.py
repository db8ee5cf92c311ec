"""
Budgeting Module (``ledger_modules.budget``).

Responsibility
--------------
Versioned budgets with equal or seasonal distribution of annual amounts,
and versioned cash-flow forecasts with recomputed closing balances.

Architecture position
---------------------
**Modules layer** -- ``distribution.py``, ``forecast.py`` and
``versioning.py`` are pure; ``BudgetService`` bridges them to the
persistence collaborator.

Invariants enforced
-------------------
* New versions are derived only from Approved plans.
* Exactly one version per (name, fiscal year) is current.
* Closed budgets and Archived forecasts are immutable.
"""

from ledger_modules.budget.config import BudgetConfig
from ledger_modules.budget.distribution import (
    budget_amounts_for_range,
    distribute_amount,
    distribute_lines,
)
from ledger_modules.budget.forecast import summarize_forecast, validate_forecast_line
from ledger_modules.budget.models import (
    Budget,
    BudgetLine,
    BudgetStatus,
    BudgetType,
    CashFlowCategory,
    CashFlowForecast,
    DistributionMethod,
    ForecastLine,
    ForecastStatus,
    ForecastSummary,
)
from ledger_modules.budget.service import BudgetService
from ledger_modules.budget.versioning import create_version
from ledger_modules.budget.workflows import BUDGET_WORKFLOW, FORECAST_WORKFLOW

__all__ = [
    # Service
    "BudgetService",
    # Config
    "BudgetConfig",
    # Models
    "Budget",
    "BudgetLine",
    "BudgetStatus",
    "BudgetType",
    "CashFlowCategory",
    "CashFlowForecast",
    "DistributionMethod",
    "ForecastLine",
    "ForecastStatus",
    "ForecastSummary",
    # Workflows
    "BUDGET_WORKFLOW",
    "FORECAST_WORKFLOW",
    # Pure functions
    "budget_amounts_for_range",
    "create_version",
    "distribute_amount",
    "distribute_lines",
    "summarize_forecast",
    "validate_forecast_line",
]
