"""
Tests for the double-entry validator.

Covers:
- Minimum line count
- Balance tolerance at three decimal places
- Per-line amount rules
- Account and cost-centre resolution in require_valid_entry
"""

from decimal import Decimal

import pytest

from ledger_engines.entry_validator import require_valid_entry, validate_entry
from ledger_kernel.domain.accounts import Account
from ledger_kernel.domain.ledger import EntryLine
from ledger_kernel.domain.polarity import AccountType
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    CostCenterNotFoundError,
    InsufficientLinesError,
    InvalidLineError,
    UnbalancedEntryError,
)

ACCOUNTS = {
    "cash": Account("cash", "1000", "Cash", AccountType.ASSET),
    "sales": Account("sales", "4000", "Sales", AccountType.INCOME),
    "old": Account("old", "9000", "Closed", AccountType.EXPENSE, is_archived=True),
}


def _pair(debit: str, credit: str) -> list[EntryLine]:
    return [
        EntryLine("cash", debit=Decimal(debit)),
        EntryLine("sales", credit=Decimal(credit)),
    ]


class TestValidateEntry:
    """Tests for validate_entry."""

    def test_balanced_pair_is_valid(self):
        result = validate_entry(_pair("100", "100"))
        assert result.is_valid
        assert result.debit_total == Decimal("100")
        assert result.imbalance == Decimal("0")

    def test_single_line_always_rejected(self):
        result = validate_entry([EntryLine("cash", debit=Decimal("0"), credit=Decimal("0"))])
        assert not result.is_valid
        assert result.violations[0].code == "INSUFFICIENT_LINES"

    def test_imbalance_below_tolerance_passes(self):
        assert validate_entry(_pair("100.0009", "100")).is_valid

    def test_imbalance_at_tolerance_fails(self):
        result = validate_entry(_pair("100.001", "100"))
        assert not result.is_valid
        assert result.violations[-1].code == "UNBALANCED"

    def test_line_with_both_sides(self):
        lines = [
            EntryLine("cash", debit=Decimal("10"), credit=Decimal("10")),
            EntryLine("sales", credit=Decimal("0.01")),
            EntryLine("cash", debit=Decimal("0.01")),
        ]
        codes = [v.code for v in validate_entry(lines).violations]
        assert "BOTH_SIDES" in codes

    def test_line_with_no_amount(self):
        lines = _pair("100", "100") + [EntryLine("cash")]
        violation = validate_entry(lines).violations[0]
        assert violation.code == "NO_AMOUNT"
        assert violation.line_index == 2

    def test_negative_amount(self):
        lines = [EntryLine("cash", debit=Decimal("-5")), EntryLine("sales", credit=Decimal("-5"))]
        codes = [v.code for v in validate_entry(lines).violations]
        assert "NEGATIVE_AMOUNT" in codes


class TestRequireValidEntry:
    """Tests for the raising variant."""

    def test_one_line_raises(self):
        with pytest.raises(InsufficientLinesError):
            require_valid_entry([EntryLine("cash", debit=Decimal("1"))])

    def test_unbalanced_raises(self):
        with pytest.raises(UnbalancedEntryError):
            require_valid_entry(_pair("100", "99"))

    def test_bad_line_raises(self):
        lines = _pair("100", "100") + [EntryLine("cash")]
        with pytest.raises(InvalidLineError):
            require_valid_entry(lines)

    def test_unknown_account(self):
        lines = [EntryLine("nope", debit=Decimal("5")), EntryLine("sales", credit=Decimal("5"))]
        with pytest.raises(AccountNotFoundError):
            require_valid_entry(lines, accounts=ACCOUNTS)

    def test_archived_account(self):
        lines = [EntryLine("old", debit=Decimal("5")), EntryLine("sales", credit=Decimal("5"))]
        with pytest.raises(AccountNotFoundError):
            require_valid_entry(lines, accounts=ACCOUNTS)

    def test_unknown_cost_center(self):
        lines = [
            EntryLine("cash", debit=Decimal("5"), cost_center="CC-9"),
            EntryLine("sales", credit=Decimal("5")),
        ]
        with pytest.raises(CostCenterNotFoundError):
            require_valid_entry(lines, accounts=ACCOUNTS, cost_centers={"CC-1"})

    def test_valid_entry_returns_result(self):
        result = require_valid_entry(_pair("50", "50"), accounts=ACCOUNTS, cost_centers=set())
        assert result.is_valid
