"""
Module: ledger_engines.time_value
Responsibility:
    Time-value-of-money solvers: present/future value, interest, NPV, IRR,
    level-payment annuities and their amortization schedules, payback
    period, WACC, and break-even volume.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``irr`` always terminates: at most ``max_iterations`` Newton steps and
      no I/O.  Non-convergence is a legitimate outcome and yields None.
    - ``amortization_schedule`` ends with a balance of exactly zero; the
      final period absorbs the rounding residue, so the principal column
      sums to the original principal.
    - Discounting uses integer exponents only, so results are exact up to
      the Decimal context before the final quantization.

Failure modes:
    - InvalidComputationInputError for non-positive periods, or a rate at
      or below -100%.
    - InvalidCapitalWeightsError when WACC weights miss 1 by more than 0.01.

Audit relevance:
    IRR and NPV feed investment appraisals presented to approvers; each
    solver invocation is traced via ``@traced_engine``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_CEILING, Decimal

from ledger_engines.arithmetic import (
    ZERO,
    Number,
    divide,
    round_amount,
    to_decimal,
    tolerance,
)
from ledger_engines.tracer import traced_engine
from ledger_kernel.exceptions import (
    InvalidCapitalWeightsError,
    InvalidComputationInputError,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.time_value")

ONE = Decimal("1")

# Newton iterates beyond this are treated as divergent.
_RATE_CEILING = Decimal("1000000")


def _require_periods(periods: int) -> None:
    if periods <= 0:
        raise InvalidComputationInputError("periods", periods, "must be positive")


def _require_rate(rate: Decimal) -> None:
    if rate <= -ONE:
        raise InvalidComputationInputError("rate", rate, "must be greater than -1")


# =============================================================================
# Single sums
# =============================================================================


def simple_interest(principal: Number, rate: Number, time: Number, precision: int = 2) -> Decimal:
    return round_amount(to_decimal(principal) * to_decimal(rate) * to_decimal(time), precision)


def compound_interest(
    principal: Number,
    rate: Number,
    time: int,
    compounds_per_period: int = 1,
    precision: int = 2,
) -> Decimal:
    """Principal grown at ``rate`` compounded ``compounds_per_period`` times per period."""
    if compounds_per_period <= 0:
        raise InvalidComputationInputError(
            "compounds_per_period", compounds_per_period, "must be positive",
        )
    growth = ONE + to_decimal(rate) / compounds_per_period
    return round_amount(to_decimal(principal) * growth ** (compounds_per_period * time), precision)


def future_value(present: Number, rate: Number, periods: int, precision: int = 2) -> Decimal:
    r = to_decimal(rate)
    _require_rate(r)
    return round_amount(to_decimal(present) * (ONE + r) ** periods, precision)


def present_value(future: Number, rate: Number, periods: int, precision: int = 2) -> Decimal:
    r = to_decimal(rate)
    _require_rate(r)
    return round_amount(to_decimal(future) / (ONE + r) ** periods, precision)


# =============================================================================
# Discounted cash flows
# =============================================================================


def _npv_exact(rate: Decimal, flows: Sequence[Decimal]) -> Decimal:
    base = ONE + rate
    return sum((flow / base ** index for index, flow in enumerate(flows)), ZERO)


def _npv_derivative(rate: Decimal, flows: Sequence[Decimal]) -> Decimal:
    base = ONE + rate
    return sum(
        (-index * flow / base ** (index + 1) for index, flow in enumerate(flows)),
        ZERO,
    )


def npv(rate: Number, cash_flows: Sequence[Number], precision: int = 2) -> Decimal:
    """
    Net present value with the first flow at t=0.

    NPV = sum(flow_i / (1 + rate) ** i)
    """
    r = to_decimal(rate)
    _require_rate(r)
    flows = [to_decimal(f) for f in cash_flows]
    return round_amount(_npv_exact(r, flows), precision)


def net_present_value(
    initial_investment: Number,
    cash_flows: Sequence[Number],
    rate: Number,
    precision: int = 2,
) -> Decimal:
    """NPV of an investment whose returns start one period after the outlay."""
    r = to_decimal(rate)
    _require_rate(r)
    flows = [-abs(to_decimal(initial_investment))] + [to_decimal(f) for f in cash_flows]
    return round_amount(_npv_exact(r, flows), precision)


@traced_engine("irr", "1.0", fingerprint_fields=("cash_flows", "precision", "guess"))
def irr(
    cash_flows: Sequence[Number],
    precision: int = 2,
    guess: Number = Decimal("0.1"),
    max_iterations: int = 1000,
) -> Decimal | None:
    """
    Internal rate of return by Newton-Raphson with the analytic derivative.

    Preconditions:
        ``cash_flows[0]`` is the t=0 flow.
    Postconditions:
        Returns the rate as a fraction, or None when: fewer than two
        flows, no sign change, a vanishing derivative, an iterate leaving
        (-1, 10**6), or no convergence within ``max_iterations``.
        ``precision`` counts decimal places of the rate as a percentage, so
        the fraction carries ``precision + 2`` places (12.34% is 0.1234).
        Converged means |NPV| or the step is below 10**-(precision + 2).
    """
    flows = [to_decimal(f) for f in cash_flows]
    if len(flows) < 2:
        return None
    if not (any(f > ZERO for f in flows) and any(f < ZERO for f in flows)):
        return None

    places = precision + 2
    tol = tolerance(places)
    rate = to_decimal(guess)
    if rate <= -ONE:
        return None

    for iteration in range(max_iterations):
        value = _npv_exact(rate, flows)
        if abs(value) < tol:
            return round_amount(rate, places)

        derivative = _npv_derivative(rate, flows)
        if derivative == ZERO:
            break

        next_rate = rate - value / derivative
        if next_rate <= -ONE or next_rate >= _RATE_CEILING:
            logger.debug("irr_left_domain", extra={"iteration": iteration, "rate": str(next_rate)})
            return None
        if abs(next_rate - rate) < tol:
            return round_amount(next_rate, places)
        rate = next_rate

    logger.debug("irr_not_converged", extra={"flow_count": len(flows)})
    return None


# =============================================================================
# Annuities
# =============================================================================


def _level_payment(principal: Decimal, rate: Decimal, periods: int) -> Decimal:
    if rate == ZERO:
        return principal / periods
    growth = (ONE + rate) ** periods
    return principal * rate * growth / (growth - ONE)


def payment(principal: Number, rate: Number, periods: int, precision: int = 2) -> Decimal:
    """Level payment per period; ``principal / periods`` at a zero rate."""
    _require_periods(periods)
    r = to_decimal(rate)
    _require_rate(r)
    return round_amount(_level_payment(to_decimal(principal), r, periods), precision)


def remaining_balance(
    principal: Number,
    rate: Number,
    periods: int,
    payments_made: int,
    precision: int = 2,
) -> Decimal:
    """Outstanding balance after ``payments_made`` level payments."""
    _require_periods(periods)
    if payments_made >= periods:
        return round_amount(ZERO, precision)
    p = to_decimal(principal)
    r = to_decimal(rate)
    _require_rate(r)
    level = _level_payment(p, r, periods)
    remaining = periods - payments_made
    if r == ZERO:
        return round_amount(level * remaining, precision)
    return round_amount(level * (ONE - (ONE + r) ** -remaining) / r, precision)


@dataclass(frozen=True, slots=True)
class AmortizationRow:
    """One period of a loan amortization schedule."""

    period: int
    payment: Decimal
    principal: Decimal
    interest: Decimal
    balance: Decimal


@traced_engine("amortization_schedule", "1.0", fingerprint_fields=("principal", "rate", "periods"))
def amortization_schedule(
    principal: Number,
    rate: Number,
    periods: int,
    precision: int = 2,
) -> tuple[AmortizationRow, ...]:
    """
    Level-payment amortization schedule at a per-period ``rate``.

    Postconditions:
        - interest = round(balance * rate); principal = payment - interest.
        - The final row carries the residual principal so its balance is 0.
    """
    _require_periods(periods)
    p = to_decimal(principal)
    r = to_decimal(rate)
    level = payment(p, r, periods, precision)

    rows: list[AmortizationRow] = []
    balance = round_amount(p, precision)
    for period in range(1, periods + 1):
        interest = round_amount(balance * r, precision)
        if period == periods:
            principal_part = balance
            amount = principal_part + interest
        else:
            principal_part = level - interest
            amount = level
        balance = balance - principal_part
        rows.append(AmortizationRow(
            period=period,
            payment=amount,
            principal=principal_part,
            interest=interest,
            balance=balance,
        ))
    return tuple(rows)


def loan_schedule(
    principal: Number,
    annual_rate: Number,
    years: int,
    payments_per_year: int = 12,
    precision: int = 2,
) -> tuple[AmortizationRow, ...]:
    """Amortization schedule for an annual rate paid ``payments_per_year`` times."""
    if payments_per_year <= 0:
        raise InvalidComputationInputError(
            "payments_per_year", payments_per_year, "must be positive",
        )
    per_period = to_decimal(annual_rate) / payments_per_year
    return amortization_schedule(principal, per_period, years * payments_per_year, precision)


# =============================================================================
# Capital budgeting
# =============================================================================


def payback_period(
    initial_investment: Number,
    cash_flows: Sequence[Number],
    discount_rate: Number | None = None,
    precision: int = 2,
) -> Decimal | None:
    """
    Fractional number of periods until cumulative inflows recover the outlay.

    Flows are discounted by ``(1 + discount_rate) ** period`` when a rate is
    given.  Returns None when the outlay is never recovered.
    """
    investment = abs(to_decimal(initial_investment))
    rate = None if discount_rate is None else to_decimal(discount_rate)
    if rate is not None:
        _require_rate(rate)

    cumulative = ZERO
    for index, raw in enumerate(cash_flows):
        period = index + 1
        flow = to_decimal(raw)
        if rate is not None:
            flow = flow / (ONE + rate) ** period
        if cumulative + flow >= investment:
            if flow == ZERO:
                return round_amount(Decimal(index), precision)
            fraction = (investment - cumulative) / flow
            return round_amount(Decimal(index) + fraction, precision)
        cumulative += flow
    return None


def wacc(
    equity_cost: Number,
    equity_weight: Number,
    debt_cost: Number,
    debt_weight: Number,
    tax_rate: Number,
    precision: int = 4,
) -> Decimal:
    """
    Weighted average cost of capital.

    WACC = We * Re + Wd * Rd * (1 - Tc)

    Raises:
        InvalidCapitalWeightsError: if |We + Wd - 1| > 0.01.
    """
    we = to_decimal(equity_weight)
    wd = to_decimal(debt_weight)
    if abs(we + wd - ONE) > Decimal("0.01"):
        raise InvalidCapitalWeightsError(we + wd)
    equity_part = we * to_decimal(equity_cost)
    debt_part = wd * to_decimal(debt_cost) * (ONE - to_decimal(tax_rate))
    return round_amount(equity_part + debt_part, precision)


@dataclass(frozen=True, slots=True)
class BreakEven:
    units: Decimal
    sales_amount: Decimal


def break_even_units(
    fixed_costs: Number,
    price_per_unit: Number,
    variable_cost_per_unit: Number,
    precision: int = 2,
) -> BreakEven | None:
    """
    Whole units (rounded up) and revenue needed to cover fixed costs.

    Returns None when the contribution margin is not positive.
    """
    price = to_decimal(price_per_unit)
    margin = price - to_decimal(variable_cost_per_unit)
    if margin <= ZERO:
        return None
    units = (to_decimal(fixed_costs) / margin).to_integral_value(rounding=ROUND_CEILING)
    return BreakEven(units=units, sales_amount=round_amount(units * price, precision))


def discount_factor(rate: Number, period: int, precision: int = 6) -> Decimal:
    """1 / (1 + rate) ** period."""
    r = to_decimal(rate)
    _require_rate(r)
    return divide(ONE, (ONE + r) ** period, precision)


__all__ = [
    "AmortizationRow",
    "BreakEven",
    "amortization_schedule",
    "break_even_units",
    "compound_interest",
    "discount_factor",
    "future_value",
    "irr",
    "loan_schedule",
    "net_present_value",
    "npv",
    "payback_period",
    "payment",
    "present_value",
    "remaining_balance",
    "simple_interest",
    "wacc",
]
