"""
Depreciation Engine (``ledger_engines.depreciation``).

Responsibility
--------------
Annual depreciation, accumulated depreciation and book value for a fixed
asset under straight-line, declining-balance and units-of-production
methods.

Architecture position
---------------------
**Engines layer** -- pure functions.  No I/O, no session, no clock.

Invariants enforced
-------------------
* All inputs and outputs are ``Decimal``.
* Accumulated depreciation never exceeds ``cost - salvage_value``, so
  book value never drops below salvage.
* Years past the useful life depreciate nothing further.

Failure modes
-------------
* ``InvalidProductionUnitsError`` -- units-of-production with
  ``total_units <= 0``.
* ``InvalidComputationInputError`` -- non-positive useful life or year.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ledger_engines.arithmetic import ZERO, Number, round_amount, to_decimal
from ledger_kernel.domain.values import parse_enum
from ledger_kernel.exceptions import (
    InvalidComputationInputError,
    InvalidProductionUnitsError,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.depreciation")


class DepreciationMethod(str, Enum):
    STRAIGHT_LINE = "straight-line"
    DECLINING_BALANCE = "declining-balance"
    UNITS_OF_PRODUCTION = "units-of-production"


@dataclass(frozen=True, slots=True)
class DepreciationResult:
    """Depreciation for one year of an asset's life."""

    annual: Decimal
    accumulated: Decimal
    book_value: Decimal


def _check_life(useful_life: int, year: int) -> None:
    if useful_life <= 0:
        raise InvalidComputationInputError("useful_life", useful_life, "must be positive")
    if year <= 0:
        raise InvalidComputationInputError("year", year, "is 1-based")


def _result(
    cost: Decimal,
    salvage: Decimal,
    annual: Decimal,
    accumulated: Decimal,
    precision: int,
) -> DepreciationResult:
    accumulated = min(accumulated, cost - salvage)
    return DepreciationResult(
        annual=round_amount(annual, precision),
        accumulated=round_amount(accumulated, precision),
        book_value=round_amount(cost - accumulated, precision),
    )


def straight_line(
    cost: Number,
    salvage_value: Number,
    useful_life: int,
    year: int = 1,
    precision: int = 2,
) -> DepreciationResult:
    """
    Straight-line depreciation.

    Postconditions:
        annual = (cost - salvage) / life; accumulated = annual * min(year, life).
    """
    _check_life(useful_life, year)
    c = to_decimal(cost)
    s = to_decimal(salvage_value)
    annual = round_amount((c - s) / useful_life, precision)
    accumulated = round_amount(annual * min(year, useful_life), precision)
    if year > useful_life:
        annual = ZERO
    return _result(c, s, annual, accumulated, precision)


def declining_balance(
    cost: Number,
    salvage_value: Number,
    useful_life: int,
    year: int = 1,
    factor: Number = Decimal("2"),
    precision: int = 2,
) -> DepreciationResult:
    """
    Declining-balance depreciation with a switch to straight-line.

    Each year takes the larger of ``book * factor / life`` and the
    straight-line charge over the remaining life, capped at
    ``book - salvage``.  The schedule is replayed from year 1.
    """
    _check_life(useful_life, year)
    c = to_decimal(cost)
    s = to_decimal(salvage_value)
    rate = to_decimal(factor) / useful_life

    book = c
    accumulated = ZERO
    annual = ZERO
    for current in range(1, min(year, useful_life) + 1):
        remaining_life = useful_life - current + 1
        straight = (book - s) / remaining_life
        declining = book * rate
        charge = round_amount(min(max(straight, declining), book - s), precision)
        if current == year:
            annual = charge
        accumulated = round_amount(accumulated + charge, precision)
        book = round_amount(book - charge, precision)
        if book <= s:
            break
    return _result(c, s, annual, accumulated, precision)


def units_of_production(
    cost: Number,
    salvage_value: Number,
    total_units: Number,
    units_produced: Number,
    units_to_date: Number | None = None,
    precision: int = 2,
) -> DepreciationResult:
    """
    Units-of-production depreciation.

    ``units_to_date`` is the cumulative production including this period;
    it defaults to ``units_produced``.

    Raises:
        InvalidProductionUnitsError: if ``total_units`` <= 0.
    """
    total = to_decimal(total_units)
    if total <= ZERO:
        raise InvalidProductionUnitsError(total)
    c = to_decimal(cost)
    s = to_decimal(salvage_value)
    per_unit = (c - s) / total
    produced = to_decimal(units_produced)
    cumulative = produced if units_to_date is None else to_decimal(units_to_date)
    annual = round_amount(per_unit * produced, precision)
    accumulated = round_amount(per_unit * cumulative, precision)
    return _result(c, s, min(annual, c - s), accumulated, precision)


def calculate_depreciation(
    method: DepreciationMethod | str,
    cost: Number,
    salvage_value: Number,
    *,
    useful_life: int = 1,
    year: int = 1,
    factor: Number = Decimal("2"),
    total_units: Number = ZERO,
    units_produced: Number = ZERO,
    units_to_date: Number | None = None,
    precision: int = 2,
) -> DepreciationResult:
    """Dispatch to the named method."""
    resolved = parse_enum(DepreciationMethod, method, "depreciation_method")
    logger.debug(
        "depreciation_calculated",
        extra={"method": resolved.value, "year": year, "cost": str(cost)},
    )
    if resolved is DepreciationMethod.STRAIGHT_LINE:
        return straight_line(cost, salvage_value, useful_life, year, precision)
    if resolved is DepreciationMethod.DECLINING_BALANCE:
        return declining_balance(cost, salvage_value, useful_life, year, factor, precision)
    return units_of_production(
        cost, salvage_value, total_units, units_produced, units_to_date, precision,
    )
