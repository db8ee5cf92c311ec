"""Descriptive statistics over Decimal samples."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal

from ledger_engines.arithmetic import ZERO, Number, round_amount, to_decimal


def weighted_average(
    items: Iterable[tuple[Number, Number]],
    precision: int = 2,
) -> Decimal:
    """Mean of ``(value, weight)`` pairs; zero when the weights sum to zero."""
    pairs = [(to_decimal(v), to_decimal(w)) for v, w in items]
    weight_total = sum((w for _, w in pairs), ZERO)
    if weight_total == ZERO:
        return round_amount(ZERO, precision)
    weighted = sum((v * w for v, w in pairs), ZERO)
    return round_amount(weighted / weight_total, precision)


def median(values: Sequence[Number], precision: int = 2) -> Decimal:
    ordered = sorted(to_decimal(v) for v in values)
    if not ordered:
        return round_amount(ZERO, precision)
    middle = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return round_amount((ordered[middle - 1] + ordered[middle]) / 2, precision)
    return round_amount(ordered[middle], precision)


def _variance(values: Sequence[Number], sample: bool) -> Decimal:
    items = [to_decimal(v) for v in values]
    if len(items) < 2:
        return ZERO
    mean = sum(items, ZERO) / len(items)
    squares = sum(((x - mean) ** 2 for x in items), ZERO)
    return squares / (len(items) - 1 if sample else len(items))


def variance(values: Sequence[Number], sample: bool = True, precision: int = 2) -> Decimal:
    """Sample (n - 1) or population (n) variance; zero below two values."""
    return round_amount(_variance(values, sample), precision)


def standard_deviation(values: Sequence[Number], sample: bool = True, precision: int = 2) -> Decimal:
    return round_amount(_variance(values, sample).sqrt(), precision)
