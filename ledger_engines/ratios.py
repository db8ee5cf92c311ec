"""
ledger_engines.ratios -- Financial ratio analysis.

Responsibility:
    Compute liquidity, profitability, leverage, efficiency, and market
    ratios from a snapshot of statement figures, and classify the trend of
    a ratio against its prior-period value.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Callers assemble
    ``RatioInputs`` from statement reports.

Invariants enforced:
    - A zero denominator yields 0, never an exception.
    - Turnover ratios use the averages supplied by the caller; the engine
      does not infer opening balances.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from enum import Enum

from ledger_engines.arithmetic import ZERO, safe_ratio
from ledger_engines.tracer import traced_engine


class RatioCategory(str, Enum):
    LIQUIDITY = "LIQUIDITY"
    PROFITABILITY = "PROFITABILITY"
    SOLVENCY = "SOLVENCY"
    EFFICIENCY = "EFFICIENCY"
    VALUATION = "VALUATION"


class RatioTrend(str, Enum):
    IMPROVING = "IMPROVING"
    STABLE = "STABLE"
    DECLINING = "DECLINING"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True, slots=True)
class RatioInputs:
    """Statement figures for one period.  Unused figures may stay zero."""

    current_assets: Decimal = ZERO
    current_liabilities: Decimal = ZERO
    inventory: Decimal = ZERO
    cash: Decimal = ZERO
    total_assets: Decimal = ZERO
    total_liabilities: Decimal = ZERO
    total_equity: Decimal = ZERO
    revenue: Decimal = ZERO
    cost_of_goods_sold: Decimal = ZERO
    operating_income: Decimal = ZERO
    net_income: Decimal = ZERO
    interest_expense: Decimal = ZERO
    average_inventory: Decimal = ZERO
    average_receivables: Decimal = ZERO
    average_payables: Decimal = ZERO
    purchases: Decimal = ZERO
    shares_outstanding: Decimal = ZERO
    share_price: Decimal = ZERO


@dataclass(frozen=True, slots=True)
class FinancialRatios:
    # Liquidity
    current_ratio: Decimal
    quick_ratio: Decimal
    cash_ratio: Decimal
    # Profitability (percent)
    gross_margin: Decimal
    operating_margin: Decimal
    net_margin: Decimal
    return_on_assets: Decimal
    return_on_equity: Decimal
    # Leverage
    debt_to_equity: Decimal
    debt_ratio: Decimal
    interest_coverage: Decimal
    # Efficiency
    asset_turnover: Decimal
    inventory_turnover: Decimal
    receivables_turnover: Decimal
    payables_turnover: Decimal
    # Market
    earnings_per_share: Decimal
    price_to_earnings: Decimal
    book_value_per_share: Decimal

    def as_dict(self) -> dict[str, Decimal]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


RATIO_CATEGORIES: dict[str, RatioCategory] = {
    "current_ratio": RatioCategory.LIQUIDITY,
    "quick_ratio": RatioCategory.LIQUIDITY,
    "cash_ratio": RatioCategory.LIQUIDITY,
    "gross_margin": RatioCategory.PROFITABILITY,
    "operating_margin": RatioCategory.PROFITABILITY,
    "net_margin": RatioCategory.PROFITABILITY,
    "return_on_assets": RatioCategory.PROFITABILITY,
    "return_on_equity": RatioCategory.PROFITABILITY,
    "debt_to_equity": RatioCategory.SOLVENCY,
    "debt_ratio": RatioCategory.SOLVENCY,
    "interest_coverage": RatioCategory.SOLVENCY,
    "asset_turnover": RatioCategory.EFFICIENCY,
    "inventory_turnover": RatioCategory.EFFICIENCY,
    "receivables_turnover": RatioCategory.EFFICIENCY,
    "payables_turnover": RatioCategory.EFFICIENCY,
    "earnings_per_share": RatioCategory.VALUATION,
    "price_to_earnings": RatioCategory.VALUATION,
    "book_value_per_share": RatioCategory.VALUATION,
}

# Ratios where a lower value is the better outcome.
LOWER_IS_BETTER = frozenset({"debt_to_equity", "debt_ratio", "price_to_earnings"})

_HUNDRED = Decimal("100")


def _pct(numerator: Decimal, denominator: Decimal, precision: int) -> Decimal:
    return safe_ratio(numerator * _HUNDRED, denominator, precision)


@traced_engine("financial_ratios", "1.0", fingerprint_fields=("inputs",))
def compute_financial_ratios(inputs: RatioInputs, precision: int = 2) -> FinancialRatios:
    i = inputs
    eps = safe_ratio(i.net_income, i.shares_outstanding, precision)
    return FinancialRatios(
        current_ratio=safe_ratio(i.current_assets, i.current_liabilities, precision),
        quick_ratio=safe_ratio(i.current_assets - i.inventory, i.current_liabilities, precision),
        cash_ratio=safe_ratio(i.cash, i.current_liabilities, precision),
        gross_margin=_pct(i.revenue - i.cost_of_goods_sold, i.revenue, precision),
        operating_margin=_pct(i.operating_income, i.revenue, precision),
        net_margin=_pct(i.net_income, i.revenue, precision),
        return_on_assets=_pct(i.net_income, i.total_assets, precision),
        return_on_equity=_pct(i.net_income, i.total_equity, precision),
        debt_to_equity=safe_ratio(i.total_liabilities, i.total_equity, precision),
        debt_ratio=safe_ratio(i.total_liabilities, i.total_assets, precision),
        interest_coverage=safe_ratio(i.operating_income, i.interest_expense, precision),
        asset_turnover=safe_ratio(i.revenue, i.total_assets, precision),
        inventory_turnover=safe_ratio(i.cost_of_goods_sold, i.average_inventory, precision),
        receivables_turnover=safe_ratio(i.revenue, i.average_receivables, precision),
        payables_turnover=safe_ratio(i.purchases, i.average_payables, precision),
        earnings_per_share=eps,
        price_to_earnings=safe_ratio(i.share_price, eps, precision),
        book_value_per_share=safe_ratio(i.total_equity, i.shares_outstanding, precision),
    )


def ratio_trend(
    name: str,
    current: Decimal,
    previous: Decimal | None,
    threshold: Decimal = Decimal("0.01"),
) -> RatioTrend:
    """Direction of a ratio against its prior value; moves within ``threshold`` are STABLE."""
    if previous is None:
        return RatioTrend.UNKNOWN
    delta = current - previous
    if abs(delta) <= threshold:
        return RatioTrend.STABLE
    improving = delta < ZERO if name in LOWER_IS_BETTER else delta > ZERO
    return RatioTrend.IMPROVING if improving else RatioTrend.DECLINING
