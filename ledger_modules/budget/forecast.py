"""
Cash-flow forecast arithmetic (``ledger_modules.budget.forecast``).

Totals and running balances are recomputed from the opening balance and
the lines every time they are needed; nothing is carried between calls.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from ledger_engines.arithmetic import ZERO
from ledger_kernel.exceptions import InvalidComputationInputError
from ledger_modules.budget.models import MONTHS, QUARTERS, ForecastLine, ForecastSummary


def validate_forecast_line(line: ForecastLine) -> ForecastLine:
    if len(line.monthly) != MONTHS:
        raise InvalidComputationInputError(
            "monthly", len(line.monthly), f"a forecast line needs {MONTHS} monthly amounts",
        )
    if not 0 <= line.probability <= 100:
        raise InvalidComputationInputError("probability", line.probability, "must be between 0 and 100")
    return line


def summarize_forecast(opening_balance: Decimal, lines: Iterable[ForecastLine]) -> ForecastSummary:
    """
    Inflow/outflow totals and month-end and quarter-end closing balances.

    With no lines every closing balance equals ``opening_balance``.
    """
    inflow_by_month = [ZERO] * MONTHS
    outflow_by_month = [ZERO] * MONTHS
    for line in lines:
        target = inflow_by_month if line.is_inflow else outflow_by_month
        for index, amount in enumerate(line.monthly[:MONTHS]):
            target[index] += amount

    running = opening_balance
    monthly_closing = []
    for inflow, outflow in zip(inflow_by_month, outflow_by_month):
        running += inflow - outflow
        monthly_closing.append(running)

    return ForecastSummary(
        opening_balance=opening_balance,
        total_inflows=sum(inflow_by_month, ZERO),
        total_outflows=sum(outflow_by_month, ZERO),
        monthly_closing=tuple(monthly_closing),
        quarterly_closing=tuple(monthly_closing[q * 3 + 2] for q in range(QUARTERS)),
    )
