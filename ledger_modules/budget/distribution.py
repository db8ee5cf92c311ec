"""
Module: ledger_modules.budget.distribution
Responsibility: Spread annual budget amounts over the twelve fiscal months
    and four fiscal quarters, and sum a budget over a date range.
Architecture position: Modules > budget.  Pure functions, zero I/O.

Invariants enforced:
    - Every part is rounded to the configured precision and the rounding
      residue is carried by the last part, so months and quarters each
      sum exactly to the annual amount.
    - Seasonal weights are 20/30/30/20 per quarter; each quarter splits
      evenly over its three months.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import date
from decimal import Decimal

from ledger_engines.arithmetic import ZERO, round_amount
from ledger_kernel.domain.fiscal import FiscalYearPolicy
from ledger_kernel.domain.values import parse_enum
from ledger_modules.budget.models import (
    MONTHS,
    QUARTERS,
    Budget,
    BudgetLine,
    DistributionMethod,
)

SEASONAL_WEIGHTS = (Decimal("0.2"), Decimal("0.3"), Decimal("0.3"), Decimal("0.2"))


def split_with_residue(amount: Decimal, weights: Sequence[Decimal], precision: int = 2) -> tuple[Decimal, ...]:
    """
    ``amount`` apportioned by ``weights`` (which sum to 1).

    All but the last part are rounded; the last part is whatever remains.
    """
    parts = [round_amount(amount * weight, precision) for weight in weights[:-1]]
    parts.append(amount - sum(parts, ZERO))
    return tuple(parts)


def _even(count: int) -> tuple[Decimal, ...]:
    return tuple(Decimal(1) / Decimal(count) for _ in range(count))


def distribute_amount(
    annual_amount: Decimal,
    method: DistributionMethod | str = DistributionMethod.EQUAL,
    precision: int = 2,
) -> tuple[tuple[Decimal, ...], tuple[Decimal, ...]]:
    """(monthly, quarterly) parts of ``annual_amount``."""
    method = parse_enum(DistributionMethod, method, "distribution")
    if method is DistributionMethod.EQUAL:
        return (
            split_with_residue(annual_amount, _even(MONTHS), precision),
            split_with_residue(annual_amount, _even(QUARTERS), precision),
        )
    quarterly = split_with_residue(annual_amount, SEASONAL_WEIGHTS, precision)
    monthly: list[Decimal] = []
    for quarter_amount in quarterly:
        monthly.extend(split_with_residue(quarter_amount, _even(3), precision))
    return tuple(monthly), quarterly


def distribute_line(
    line: BudgetLine,
    method: DistributionMethod | str = DistributionMethod.EQUAL,
    precision: int = 2,
) -> BudgetLine:
    monthly, quarterly = distribute_amount(line.annual_amount, method, precision)
    return replace(line, monthly=monthly, quarterly=quarterly)


def distribute_lines(
    lines: Iterable[BudgetLine],
    method: DistributionMethod | str = DistributionMethod.EQUAL,
    precision: int = 2,
) -> tuple[BudgetLine, ...]:
    return tuple(distribute_line(line, method, precision) for line in lines)


def fiscal_month_starts(budget: Budget, policy: FiscalYearPolicy) -> tuple[date, ...]:
    """First calendar day of each fiscal month of the budget's year."""
    start, _ = policy.bounds(budget.fiscal_year)
    starts = []
    year, month = start.year, start.month
    for _ in range(MONTHS):
        starts.append(date(year, month, 1))
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return tuple(starts)


def budget_amounts_for_range(
    budget: Budget,
    policy: FiscalYearPolicy,
    start: date,
    end: date,
) -> Mapping[str, Decimal]:
    """
    Budget per account for the fiscal months touching [start, end].

    Undistributed lines count only when the range covers the whole
    fiscal year.
    """
    starts = fiscal_month_starts(budget, policy)
    first = date(start.year, start.month, 1)
    selected = [i for i, month_start in enumerate(starts) if first <= month_start <= end]
    whole_year = len(selected) == MONTHS

    amounts: dict[str, Decimal] = {}
    for line in budget.lines:
        if line.is_distributed:
            value = sum((line.monthly[i] for i in selected), ZERO)
        elif whole_year:
            value = line.annual_amount
        else:
            continue
        amounts[line.account_id] = amounts.get(line.account_id, ZERO) + value
    return amounts
