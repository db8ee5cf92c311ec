"""
Module service fixtures.

Provides services bound to the in-memory session and a small chart of
accounts covering every account type.
"""

import pytest

from ledger_modules.budget.service import BudgetService
from ledger_modules.gst.service import GstService
from ledger_modules.journal.service import JournalService
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.service import ReportingService

TEST_GSTIN = "29ABCDE1234F1Z5"

# code -> (name, type, subtype)
CHART = {
    "1000": ("Cash", "Asset", "current"),
    "1100": ("Receivables", "Asset", "current"),
    "1500": ("Equipment", "Asset", "fixed"),
    "2000": ("Payables", "Liability", "current"),
    "2500": ("Term Loan", "Liability", "long-term"),
    "3000": ("Share Capital", "Equity", None),
    "4000": ("Sales", "Income", None),
    "5000": ("Cost of Goods Sold", "Expense", None),
    "6000": ("Rent", "Expense", None),
}


@pytest.fixture
def journal_service(session, deterministic_clock):
    return JournalService(session, deterministic_clock)


@pytest.fixture
def gst_service(session, deterministic_clock, fiscal_policy):
    return GstService(session, deterministic_clock, fiscal_policy=fiscal_policy)


@pytest.fixture
def budget_service(session, deterministic_clock, fiscal_policy):
    return BudgetService(session, deterministic_clock, fiscal_policy)


@pytest.fixture
def reporting_service(session, deterministic_clock):
    config = ReportingConfig(entity_name="Test Co", cash_account_codes=("1000",))
    return ReportingService(session, deterministic_clock, config)


@pytest.fixture
def chart(journal_service, tenant_id, actor_id) -> dict[str, str]:
    """Account ids keyed by code."""
    ids = {}
    for code, (name, account_type, subtype) in CHART.items():
        account = journal_service.create_account(tenant_id, actor_id, code, name, account_type, subtype)
        ids[code] = account.account_id
    return ids
