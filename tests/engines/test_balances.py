"""
Tests for balance computation and the general ledger.

Covers:
- Natural balances by account type
- As-of and period filtering
- Unknown-account and archived-account exclusion warnings
- General-ledger ordering and running balances
"""

from datetime import UTC, date, datetime
from decimal import Decimal

from ledger_engines.balances import (
    ARCHIVED_ACCOUNT,
    UNKNOWN_ACCOUNT,
    account_balance,
    compute_balances,
    general_ledger,
    order_postings,
    period_activity,
)
from ledger_kernel.domain.accounts import Account
from ledger_kernel.domain.ledger import LedgerPosting
from ledger_kernel.domain.polarity import AccountType

ACCOUNTS = {
    "cash": Account("cash", "1000", "Cash", AccountType.ASSET),
    "loan": Account("loan", "2000", "Loan", AccountType.LIABILITY),
    "sales": Account("sales", "4000", "Sales", AccountType.INCOME),
    "rent": Account("rent", "5000", "Rent", AccountType.EXPENSE),
}

T0 = datetime(2024, 4, 1, 9, 0, tzinfo=UTC)


def _posting(entry_id, account_id, day, debit="0", credit="0", sequence=0, created_at=T0):
    return LedgerPosting(
        entry_id=entry_id,
        account_id=account_id,
        entry_date=day,
        created_at=created_at,
        sequence=sequence,
        debit=Decimal(debit),
        credit=Decimal(credit),
    )


POSTINGS = [
    _posting("e1", "cash", date(2024, 4, 5), debit="1000"),
    _posting("e1", "sales", date(2024, 4, 5), credit="1000", sequence=1),
    _posting("e2", "rent", date(2024, 5, 1), debit="300"),
    _posting("e2", "cash", date(2024, 5, 1), credit="300", sequence=1),
    _posting("e3", "cash", date(2024, 6, 1), debit="5000"),
    _posting("e3", "loan", date(2024, 6, 1), credit="5000", sequence=1),
]


class TestComputeBalances:
    """Tests for compute_balances and account_balance."""

    def test_natural_balances(self):
        result = compute_balances(ACCOUNTS, POSTINGS, date(2024, 6, 30))
        assert result.balance_of("cash") == Decimal("5700")
        assert result.balance_of("sales") == Decimal("1000")
        assert result.balance_of("rent") == Decimal("300")
        assert result.balance_of("loan") == Decimal("5000")
        assert result.warnings == ()

    def test_as_of_excludes_later_postings(self):
        result = compute_balances(ACCOUNTS, POSTINGS, date(2024, 5, 31))
        assert result.balance_of("cash") == Decimal("700")
        assert result.balance_of("loan") == Decimal("0")

    def test_single_account(self):
        balance = account_balance(ACCOUNTS["cash"], POSTINGS, date(2024, 4, 30))
        assert balance.debit_total == Decimal("1000")
        assert balance.balance == Decimal("1000")

    def test_unknown_account_warned_once_per_entry(self):
        stray = [
            _posting("e9", "ghost", date(2024, 4, 2), debit="10"),
            _posting("e9", "ghost", date(2024, 4, 2), credit="10", sequence=1),
        ]
        result = compute_balances(ACCOUNTS, POSTINGS + stray, date(2024, 6, 30))
        assert len(result.warnings) == 1
        assert result.warnings[0].code == UNKNOWN_ACCOUNT
        assert result.warnings[0].record_id == "e9"
        assert result.balance_of("cash") == Decimal("5700")

    def test_archived_account_left_out_with_warning(self):
        accounts = dict(ACCOUNTS)
        accounts["old"] = Account("old", "9000", "Old", AccountType.EXPENSE, is_archived=True)
        postings = POSTINGS + [
            _posting("e8", "old", date(2024, 4, 2), debit="10"),
            _posting("e8", "old", date(2024, 4, 2), debit="5", sequence=1),
        ]
        result = compute_balances(accounts, postings, date(2024, 6, 30))
        assert "old" not in result.balances
        assert len(result.warnings) == 1
        assert result.warnings[0].code == ARCHIVED_ACCOUNT
        assert result.warnings[0].record_id == "e8"
        assert result.balance_of("cash") == Decimal("5700")

    def test_period_activity(self):
        result = period_activity(ACCOUNTS, POSTINGS, date(2024, 5, 1), date(2024, 5, 31))
        assert result.balance_of("rent") == Decimal("300")
        assert result.balance_of("sales") == Decimal("0")
        assert result.balance_of("cash") == Decimal("-300")


class TestGeneralLedger:
    """Tests for general_ledger and ordering."""

    def test_order_key_breaks_ties_by_created_at_then_sequence(self):
        later = datetime(2024, 4, 1, 10, 0, tzinfo=UTC)
        a = _posting("a", "cash", date(2024, 4, 1), debit="1", sequence=1, created_at=later)
        b = _posting("b", "cash", date(2024, 4, 1), debit="2", sequence=0, created_at=T0)
        c = _posting("c", "cash", date(2024, 4, 1), debit="3", sequence=1, created_at=T0)
        assert [p.entry_id for p in order_postings([a, c, b])] == ["b", "c", "a"]

    def test_running_balance_and_opening(self):
        activities = general_ledger(ACCOUNTS, POSTINGS, date(2024, 5, 1), date(2024, 6, 30))
        cash = next(a for a in activities if a.account.account_id == "cash")
        assert cash.opening_balance == Decimal("1000")
        assert [row.running_balance for row in cash.rows] == [Decimal("700"), Decimal("5700")]
        assert cash.closing_balance == Decimal("5700")
        assert cash.total_debit == Decimal("5000")
        assert cash.total_credit == Decimal("300")

    def test_ordered_by_account_code(self):
        activities = general_ledger(ACCOUNTS, POSTINGS, date(2024, 4, 1), date(2024, 6, 30))
        assert [a.account.code for a in activities] == ["1000", "2000", "4000", "5000"]

    def test_quiet_accounts_omitted(self):
        activities = general_ledger(ACCOUNTS, POSTINGS, date(2024, 4, 1), date(2024, 4, 30))
        assert {a.account.account_id for a in activities} == {"cash", "sales"}
