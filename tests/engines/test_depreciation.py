"""
Tests for depreciation methods.

Covers:
- Straight-line within and beyond the useful life
- Declining balance with the switch to straight-line
- Units of production
- Method dispatch and input validation
"""

from decimal import Decimal

import pytest

from ledger_engines.depreciation import (
    DepreciationMethod,
    calculate_depreciation,
    declining_balance,
    straight_line,
    units_of_production,
)
from ledger_kernel.exceptions import (
    InvalidComputationInputError,
    InvalidEnumValueError,
    InvalidProductionUnitsError,
)


class TestStraightLine:
    """Tests for straight-line depreciation."""

    def test_annual_charge(self):
        result = straight_line(120000, 20000, 5, year=1)
        assert result.annual == Decimal("20000.00")

    def test_year_three(self):
        result = straight_line(120000, 20000, 5, year=3)
        assert result.accumulated == Decimal("60000.00")
        assert result.book_value == Decimal("60000.00")

    def test_beyond_life_stops_at_salvage(self):
        result = straight_line(120000, 20000, 5, year=7)
        assert result.annual == Decimal("0")
        assert result.accumulated == Decimal("100000.00")
        assert result.book_value == Decimal("20000.00")

    def test_zero_life_rejected(self):
        with pytest.raises(InvalidComputationInputError):
            straight_line(1000, 0, 0)

    def test_year_is_one_based(self):
        with pytest.raises(InvalidComputationInputError):
            straight_line(1000, 0, 5, year=0)


class TestDecliningBalance:
    """Tests for double-declining balance."""

    def test_first_year(self):
        result = declining_balance(10000, 1000, 5, year=1)
        assert result.annual == Decimal("4000.00")
        assert result.book_value == Decimal("6000.00")

    def test_final_year_lands_on_salvage(self):
        result = declining_balance(10000, 1000, 5, year=5)
        assert result.annual == Decimal("296.00")
        assert result.accumulated == Decimal("9000.00")
        assert result.book_value == Decimal("1000.00")

    def test_never_below_salvage(self):
        for year in range(1, 6):
            assert declining_balance(10000, 1000, 5, year=year).book_value >= Decimal("1000")


class TestUnitsOfProduction:
    """Tests for units-of-production depreciation."""

    def test_per_unit_charge(self):
        result = units_of_production(10000, 1000, 9000, 900, units_to_date=1800)
        assert result.annual == Decimal("900.00")
        assert result.accumulated == Decimal("1800.00")
        assert result.book_value == Decimal("8200.00")

    def test_zero_total_units_rejected(self):
        with pytest.raises(InvalidProductionUnitsError):
            units_of_production(10000, 1000, 0, 10)


class TestDispatch:
    """Tests for calculate_depreciation."""

    def test_dispatch_by_string(self):
        result = calculate_depreciation("straight-line", 120000, 20000, useful_life=5, year=2)
        assert result.accumulated == Decimal("40000.00")

    def test_dispatch_by_enum(self):
        result = calculate_depreciation(
            DepreciationMethod.UNITS_OF_PRODUCTION, 10000, 1000, total_units=9000, units_produced=450,
        )
        assert result.annual == Decimal("450.00")

    def test_unknown_method_rejected(self):
        with pytest.raises(InvalidEnumValueError):
            calculate_depreciation("sum-of-years", 1000, 0, useful_life=5)
