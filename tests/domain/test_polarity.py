"""Tests for account polarity and chart-of-accounts helpers."""

from decimal import Decimal

import pytest

from ledger_kernel.domain.accounts import Account, AccountSubtype, full_path
from ledger_kernel.domain.polarity import AccountPolarity, AccountType, NormalBalance
from ledger_kernel.domain.values import TaxAmounts, TaxHead, parse_enum
from ledger_kernel.exceptions import InvalidEnumValueError


class TestAccountPolarity:
    """Tests for the account type to normal balance table."""

    @pytest.mark.parametrize("account_type,normal", [
        (AccountType.ASSET, NormalBalance.DEBIT),
        (AccountType.EXPENSE, NormalBalance.DEBIT),
        (AccountType.LIABILITY, NormalBalance.CREDIT),
        (AccountType.EQUITY, NormalBalance.CREDIT),
        (AccountType.INCOME, NormalBalance.CREDIT),
    ])
    def test_normal_balance(self, account_type, normal):
        assert AccountPolarity.normal_balance(account_type) is normal

    def test_natural_balance(self):
        assert AccountPolarity.natural_balance(AccountType.ASSET, Decimal("100"), Decimal("30")) == Decimal("70")
        assert AccountPolarity.natural_balance(AccountType.INCOME, Decimal("100"), Decimal("30")) == Decimal("-70")

    def test_to_columns(self):
        assert AccountPolarity.to_columns(AccountType.ASSET, Decimal("50")) == (Decimal("50"), Decimal("0"))
        assert AccountPolarity.to_columns(AccountType.ASSET, Decimal("-50")) == (Decimal("0"), Decimal("50"))
        assert AccountPolarity.to_columns(AccountType.LIABILITY, Decimal("50")) == (Decimal("0"), Decimal("50"))
        assert AccountPolarity.to_columns(AccountType.LIABILITY, Decimal("0")) == (Decimal("0"), Decimal("0"))

    def test_parse_account_type(self):
        assert AccountType.parse("Income") is AccountType.INCOME
        with pytest.raises(InvalidEnumValueError):
            AccountType.parse("Revenue")


class TestAccounts:
    """Tests for Account snapshots."""

    def test_placement_defaults_to_current(self):
        cash = Account("1", "1000", "Cash", AccountType.ASSET)
        building = Account("2", "1500", "Building", AccountType.ASSET, AccountSubtype.FIXED)
        sales = Account("3", "4000", "Sales", AccountType.INCOME)
        assert cash.placement is AccountSubtype.CURRENT
        assert building.placement is AccountSubtype.FIXED
        assert sales.placement is None

    def test_full_path(self):
        accounts = {
            "a": Account("a", "1000", "Assets", AccountType.ASSET),
            "b": Account("b", "1100", "Current Assets", AccountType.ASSET, parent_id="a"),
            "c": Account("c", "1110", "Cash", AccountType.ASSET, parent_id="b"),
        }
        assert full_path(accounts["c"], accounts) == "Assets > Current Assets > Cash"

    def test_full_path_cuts_cycles(self):
        accounts = {
            "a": Account("a", "1", "A", AccountType.ASSET, parent_id="b"),
            "b": Account("b", "2", "B", AccountType.ASSET, parent_id="a"),
        }
        assert full_path(accounts["a"], accounts) == "B > A"


class TestTaxAmounts:
    """Tests for per-head tax arithmetic."""

    def test_add_and_total(self):
        combined = TaxAmounts(cgst=Decimal("9"), sgst=Decimal("9")) + TaxAmounts(igst=Decimal("18"))
        assert combined.total == Decimal("36")
        assert combined.get(TaxHead.IGST) == Decimal("18")

    def test_negated(self):
        assert TaxAmounts(igst=Decimal("5")).negated().igst == Decimal("-5")

    def test_parse_enum_error_lists_allowed(self):
        with pytest.raises(InvalidEnumValueError) as exc_info:
            parse_enum(TaxHead, "vat", "head")
        assert "igst" in str(exc_info.value)
