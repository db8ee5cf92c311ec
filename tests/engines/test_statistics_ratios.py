"""Tests for descriptive statistics and financial ratios."""

from decimal import Decimal

from ledger_engines.ratios import (
    RATIO_CATEGORIES,
    FinancialRatios,
    RatioCategory,
    RatioInputs,
    RatioTrend,
    compute_financial_ratios,
    ratio_trend,
)
from ledger_engines.statistics import median, standard_deviation, variance, weighted_average

SAMPLE = [2, 4, 4, 4, 5, 5, 7, 9]


class TestStatistics:
    """Tests for mean, median and dispersion."""

    def test_weighted_average(self):
        assert weighted_average([(10, 1), (20, 3)]) == Decimal("17.50")

    def test_weighted_average_zero_weights(self):
        assert weighted_average([(10, 0)]) == Decimal("0")

    def test_median_odd_and_even(self):
        assert median([3, 1, 2]) == Decimal("2.00")
        assert median([1, 2, 3, 4]) == Decimal("2.50")
        assert median([]) == Decimal("0")

    def test_population_variance_and_deviation(self):
        assert variance(SAMPLE, sample=False) == Decimal("4.00")
        assert standard_deviation(SAMPLE, sample=False) == Decimal("2.00")

    def test_sample_variance(self):
        assert variance(SAMPLE) == Decimal("4.57")

    def test_variance_below_two_values(self):
        assert variance([5]) == Decimal("0")


class TestFinancialRatios:
    """Tests for compute_financial_ratios."""

    inputs = RatioInputs(
        current_assets=Decimal("200000"),
        current_liabilities=Decimal("100000"),
        inventory=Decimal("50000"),
        cash=Decimal("20000"),
        total_assets=Decimal("500000"),
        total_liabilities=Decimal("200000"),
        total_equity=Decimal("300000"),
        revenue=Decimal("1000000"),
        cost_of_goods_sold=Decimal("600000"),
        operating_income=Decimal("150000"),
        net_income=Decimal("100000"),
        interest_expense=Decimal("30000"),
        shares_outstanding=Decimal("10000"),
        share_price=Decimal("150"),
    )

    def test_liquidity(self):
        ratios = compute_financial_ratios(self.inputs)
        assert ratios.current_ratio == Decimal("2.00")
        assert ratios.quick_ratio == Decimal("1.50")
        assert ratios.cash_ratio == Decimal("0.20")

    def test_profitability_in_percent(self):
        ratios = compute_financial_ratios(self.inputs)
        assert ratios.gross_margin == Decimal("40.00")
        assert ratios.operating_margin == Decimal("15.00")
        assert ratios.net_margin == Decimal("10.00")
        assert ratios.return_on_assets == Decimal("20.00")
        assert ratios.return_on_equity == Decimal("33.33")

    def test_leverage_and_market(self):
        ratios = compute_financial_ratios(self.inputs)
        assert ratios.debt_to_equity == Decimal("0.67")
        assert ratios.debt_ratio == Decimal("0.40")
        assert ratios.interest_coverage == Decimal("5.00")
        assert ratios.earnings_per_share == Decimal("10.00")
        assert ratios.price_to_earnings == Decimal("15.00")
        assert ratios.book_value_per_share == Decimal("30.00")

    def test_zero_denominators_give_zero(self):
        ratios = compute_financial_ratios(RatioInputs())
        assert all(value == Decimal("0") for value in ratios.as_dict().values())

    def test_every_ratio_is_categorised(self):
        assert set(RATIO_CATEGORIES) == set(FinancialRatios.__dataclass_fields__)
        assert RATIO_CATEGORIES["current_ratio"] is RatioCategory.LIQUIDITY


class TestRatioTrend:
    """Tests for ratio_trend."""

    def test_higher_is_better(self):
        assert ratio_trend("current_ratio", Decimal("2.0"), Decimal("1.5")) is RatioTrend.IMPROVING

    def test_lower_is_better(self):
        assert ratio_trend("debt_to_equity", Decimal("0.8"), Decimal("0.5")) is RatioTrend.DECLINING

    def test_small_move_is_stable(self):
        assert ratio_trend("net_margin", Decimal("10.00"), Decimal("10.01")) is RatioTrend.STABLE

    def test_no_previous_is_unknown(self):
        assert ratio_trend("net_margin", Decimal("10"), None) is RatioTrend.UNKNOWN
