"""
Module: ledger_engines.arithmetic
Responsibility:
    Precision-safe Decimal arithmetic shared by every engine: quantized
    add/subtract/multiply/divide, totals, averages, and percentage helpers.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Every result is quantized to 10**-precision with ROUND_HALF_UP, which
      for Decimal rounds halves away from zero (2.5 -> 3, -2.5 -> -3).
    - Floats are rejected at the boundary; amounts are Decimal, int, or str.
    - Percentages against a zero base follow one convention: 100 when the
      new value is non-zero, else 0.

Failure modes:
    - DivisionByZeroError from ``divide`` when the denominator is zero.
    - TypeError when a float is supplied.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Context, Decimal

from ledger_kernel.exceptions import DivisionByZeroError

ZERO = Decimal("0")
HUNDRED = Decimal("100")

_CONTEXT = Context(prec=40, rounding=ROUND_HALF_UP)

Number = Decimal | int | str


def to_decimal(value: Number) -> Decimal:
    """Coerce an amount to Decimal, refusing floats."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError(f"float amounts are not accepted: {value!r}")
    return Decimal(value)


def quantum(precision: int) -> Decimal:
    return Decimal(1).scaleb(-precision)


def tolerance(precision: int) -> Decimal:
    """The 10**-precision threshold used for balance comparisons."""
    return quantum(precision)


def round_amount(value: Number, precision: int = 2) -> Decimal:
    """Round half away from zero to ``precision`` places."""
    return to_decimal(value).quantize(quantum(precision), context=_CONTEXT)


def add(a: Number, b: Number, precision: int = 2) -> Decimal:
    return round_amount(to_decimal(a) + to_decimal(b), precision)


def subtract(a: Number, b: Number, precision: int = 2) -> Decimal:
    return round_amount(to_decimal(a) - to_decimal(b), precision)


def multiply(a: Number, b: Number, precision: int = 2) -> Decimal:
    return round_amount(to_decimal(a) * to_decimal(b), precision)


def divide(a: Number, b: Number, precision: int = 2) -> Decimal:
    """
    Quantized division.

    Raises:
        DivisionByZeroError: if ``b`` is zero.
    """
    numerator = to_decimal(a)
    denominator = to_decimal(b)
    if denominator == ZERO:
        raise DivisionByZeroError(numerator)
    return round_amount(_CONTEXT.divide(numerator, denominator), precision)


def safe_ratio(numerator: Decimal, denominator: Decimal, precision: int = 2) -> Decimal:
    """Ratio that yields zero instead of failing on a zero denominator."""
    if denominator == ZERO:
        return round_amount(ZERO, precision)
    return divide(numerator, denominator, precision)


def total(values: Iterable[Number], precision: int = 2) -> Decimal:
    return round_amount(sum((to_decimal(v) for v in values), ZERO), precision)


def average(values: Iterable[Number], precision: int = 2) -> Decimal:
    items = [to_decimal(v) for v in values]
    if not items:
        return round_amount(ZERO, precision)
    return divide(sum(items, ZERO), len(items), precision)


def percentage(part: Number, whole: Number, precision: int = 2) -> Decimal:
    """``part`` as a percentage of ``whole``; zero when ``whole`` is zero."""
    whole_d = to_decimal(whole)
    if whole_d == ZERO:
        return round_amount(ZERO, precision)
    return round_amount(_CONTEXT.divide(to_decimal(part), whole_d) * HUNDRED, precision)


def percentage_change(old: Number, new: Number, precision: int = 2) -> Decimal:
    """
    Relative change from ``old`` to ``new`` in percent of ``|old|``.

    When ``old`` is zero the change is 100 if ``new`` is non-zero, else 0.
    """
    old_d = to_decimal(old)
    new_d = to_decimal(new)
    if old_d == ZERO:
        return round_amount(HUNDRED if new_d != ZERO else ZERO, precision)
    return round_amount(_CONTEXT.divide(new_d - old_d, abs(old_d)) * HUNDRED, precision)
