"""
Tests for the fiscal year policy and return periods.

Covers:
- Label derivation for dates either side of the start month
- Year bounds and containment
- Label and period validation
"""

from datetime import date

import pytest

from ledger_kernel.domain.fiscal import FiscalYearPolicy, ReturnPeriod, validate_fiscal_year
from ledger_kernel.exceptions import (
    InvalidComputationInputError,
    InvalidFiscalYearError,
    InvalidReturnPeriodError,
)


class TestFiscalYearPolicy:
    """Tests for FiscalYearPolicy."""

    def test_label_after_start_month(self):
        policy = FiscalYearPolicy(date(2024, 6, 15))
        assert policy.label_for(date(2024, 4, 1)) == "2024-25"

    def test_label_before_start_month(self):
        policy = FiscalYearPolicy(date(2024, 6, 15))
        assert policy.label_for(date(2025, 3, 31)) == "2024-25"
        assert policy.label_for(date(2024, 3, 31)) == "2023-24"

    def test_current_label_uses_reference_date(self):
        assert FiscalYearPolicy(date(2025, 2, 1)).current_label() == "2024-25"
        assert FiscalYearPolicy(date(2025, 4, 1)).current_label() == "2025-26"

    def test_century_rollover(self):
        policy = FiscalYearPolicy(date(2099, 6, 1))
        assert policy.current_label() == "2099-00"
        assert validate_fiscal_year("2099-00") == "2099-00"

    def test_bounds(self):
        policy = FiscalYearPolicy(date(2024, 6, 15))
        assert policy.bounds("2024-25") == (date(2024, 4, 1), date(2025, 3, 31))

    def test_calendar_year_policy(self):
        policy = FiscalYearPolicy(date(2024, 6, 15), start_month=1)
        assert policy.current_label() == "2024-25"
        assert policy.bounds("2024-25") == (date(2024, 1, 1), date(2024, 12, 31))

    def test_contains(self):
        policy = FiscalYearPolicy(date(2024, 6, 15))
        assert policy.contains("2024-25", date(2025, 3, 31))
        assert not policy.contains("2024-25", date(2025, 4, 1))

    def test_invalid_start_month(self):
        with pytest.raises(InvalidComputationInputError):
            FiscalYearPolicy(date(2024, 6, 15), start_month=13)


class TestFiscalYearLabels:
    """Tests for validate_fiscal_year."""

    @pytest.mark.parametrize("label", ["2024", "2024-2025", "24-25", "2024-26", "abcd-ef", ""])
    def test_malformed_labels(self, label):
        with pytest.raises(InvalidFiscalYearError):
            validate_fiscal_year(label)


class TestReturnPeriod:
    """Tests for ReturnPeriod."""

    def test_parse_and_format(self):
        period = ReturnPeriod.parse("02-2024")
        assert period.label == "02-2024"
        assert period.portal_code == "022024"

    def test_leap_february_bounds(self):
        period = ReturnPeriod.parse("02-2024")
        assert period.start_date == date(2024, 2, 1)
        assert period.end_date == date(2024, 2, 29)

    @pytest.mark.parametrize("value", ["13-2024", "00-2024", "2-2024", "2024-02", "02/2024"])
    def test_invalid_periods(self, value):
        with pytest.raises(InvalidReturnPeriodError):
            ReturnPeriod.parse(value)

    def test_fiscal_year_of_period(self):
        policy = FiscalYearPolicy(date(2024, 6, 15))
        assert ReturnPeriod.parse("03-2025").fiscal_year(policy) == "2024-25"
        assert ReturnPeriod.parse("04-2025").fiscal_year(policy) == "2025-26"

    def test_ordering(self):
        assert ReturnPeriod.parse("12-2023") < ReturnPeriod.parse("01-2024")
