"""
ledger_engines.inventory -- Inventory costing and replenishment calculations.

Responsibility:
    Value a set of purchase lots after a sale under FIFO, LIFO, or
    weighted-average costing, and compute periodic COGS, economic order
    quantity, reorder point, and safety stock.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Conservation: cost_of_goods_sold + remaining_value equals the total
      value of the input lots for every method, to the cent.
    - Input lots are never mutated; remaining lots are new instances.
    - Selling at least the whole quantity moves the entire value to COGS.

Failure modes:
    - InvalidComputationInputError for negative quantities sold or lots
      with negative quantity or cost.
    - economic_order_quantity returns a zero result (not an error) when any
      input is non-positive.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from decimal import ROUND_CEILING, Decimal
from enum import Enum

from ledger_engines.arithmetic import (
    ZERO,
    Number,
    round_amount,
    safe_ratio,
    to_decimal,
)
from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.values import parse_enum
from ledger_kernel.exceptions import InvalidComputationInputError
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.inventory")


class CostingMethod(str, Enum):
    """Cost flow assumptions."""

    FIFO = "fifo"
    LIFO = "lifo"
    WEIGHTED_AVERAGE = "average"


@dataclass(frozen=True, slots=True)
class InventoryLot:
    """A purchase batch, listed oldest first."""

    quantity: Decimal
    unit_cost: Decimal
    lot_id: str | None = None

    def __post_init__(self) -> None:
        if self.quantity < ZERO:
            raise InvalidComputationInputError("quantity", self.quantity, "must not be negative")
        if self.unit_cost < ZERO:
            raise InvalidComputationInputError("unit_cost", self.unit_cost, "must not be negative")

    @property
    def value(self) -> Decimal:
        return self.quantity * self.unit_cost


@dataclass(frozen=True, slots=True)
class InventoryValuation:
    """Outcome of costing a sale against a set of lots."""

    method: CostingMethod
    cost_of_goods_sold: Decimal
    remaining_value: Decimal
    remaining_quantity: Decimal
    average_cost: Decimal
    remaining_lots: tuple[InventoryLot, ...]


def _consume(
    lots: Sequence[InventoryLot],
    quantity_sold: Decimal,
    precision: int,
) -> tuple[Decimal, list[InventoryLot]]:
    """Consume lots in the given order; returns (cogs, untouched remainder)."""
    to_sell = quantity_sold
    cogs = ZERO
    remaining: list[InventoryLot] = []
    for lot in lots:
        if to_sell <= ZERO:
            remaining.append(lot)
        elif to_sell >= lot.quantity:
            cogs += round_amount(lot.value, precision)
            to_sell -= lot.quantity
        else:
            cogs += round_amount(to_sell * lot.unit_cost, precision)
            remaining.append(replace(lot, quantity=lot.quantity - to_sell))
            to_sell = ZERO
    return cogs, remaining


@traced_engine("inventory_valuation", "1.0", fingerprint_fields=("lots", "quantity_sold", "method"))
def inventory_valuation(
    lots: Sequence[InventoryLot],
    quantity_sold: Number,
    method: CostingMethod | str = CostingMethod.FIFO,
    precision: int = 2,
) -> InventoryValuation:
    """
    Cost ``quantity_sold`` units against ``lots`` (oldest first).

    Postconditions:
        remaining_value is derived as total value minus COGS, so the two
        always sum to the total lot value.  For weighted average, COGS is
        round(average * sold) using the unrounded average.
    """
    resolved = parse_enum(CostingMethod, method, "costing_method")
    sold = to_decimal(quantity_sold)
    if sold < ZERO:
        raise InvalidComputationInputError("quantity_sold", sold, "must not be negative")

    total_quantity = sum((lot.quantity for lot in lots), ZERO)
    total_value = round_amount(sum((lot.value for lot in lots), ZERO), precision)
    exact_average = total_value / total_quantity if total_quantity > ZERO else ZERO
    average_cost = round_amount(exact_average, precision)

    if sold >= total_quantity:
        return InventoryValuation(
            method=resolved,
            cost_of_goods_sold=total_value,
            remaining_value=round_amount(ZERO, precision),
            remaining_quantity=ZERO,
            average_cost=average_cost,
            remaining_lots=(),
        )

    if resolved is CostingMethod.WEIGHTED_AVERAGE:
        cogs = round_amount(exact_average * sold, precision)
        remaining_quantity = total_quantity - sold
        remaining_lots = (InventoryLot(quantity=remaining_quantity, unit_cost=exact_average),)
    else:
        ordered = list(lots) if resolved is CostingMethod.FIFO else list(reversed(lots))
        cogs, remaining = _consume(ordered, sold, precision)
        if resolved is CostingMethod.LIFO:
            remaining.reverse()
        remaining_lots = tuple(remaining)
        remaining_quantity = sum((lot.quantity for lot in remaining_lots), ZERO)

    cogs = round_amount(cogs, precision)
    logger.debug(
        "inventory_valued",
        extra={
            "method": resolved.value,
            "quantity_sold": str(sold),
            "cost_of_goods_sold": str(cogs),
        },
    )
    return InventoryValuation(
        method=resolved,
        cost_of_goods_sold=cogs,
        remaining_value=total_value - cogs,
        remaining_quantity=remaining_quantity,
        average_cost=average_cost,
        remaining_lots=remaining_lots,
    )


def cost_of_goods_sold(
    beginning_inventory: Number,
    purchases: Number,
    ending_inventory: Number,
    precision: int = 2,
) -> Decimal:
    """Periodic COGS = beginning + purchases - ending."""
    return round_amount(
        to_decimal(beginning_inventory) + to_decimal(purchases) - to_decimal(ending_inventory),
        precision,
    )


# -----------------------------------------------------------------------------
# Replenishment
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EconomicOrder:
    quantity: Decimal
    orders_per_year: Decimal
    total_cost: Decimal


def economic_order_quantity(
    annual_demand: Number,
    order_cost: Number,
    holding_cost: Number,
    precision: int = 2,
) -> EconomicOrder:
    """
    EOQ = sqrt(2 * D * S / H), rounded to whole units.

    total_cost = S * orders + H * EOQ / 2.  Any non-positive input gives an
    all-zero result.
    """
    demand = to_decimal(annual_demand)
    ordering = to_decimal(order_cost)
    holding = to_decimal(holding_cost)
    zero = round_amount(ZERO, precision)
    if demand <= ZERO or ordering <= ZERO or holding <= ZERO:
        return EconomicOrder(quantity=ZERO, orders_per_year=zero, total_cost=zero)

    quantity = round_amount((2 * demand * ordering / holding).sqrt(), 0)
    orders = safe_ratio(demand, quantity, precision)
    annual_ordering = round_amount(ordering * orders, precision)
    annual_holding = round_amount(holding * quantity / 2, precision)
    return EconomicOrder(
        quantity=quantity,
        orders_per_year=orders,
        total_cost=annual_ordering + annual_holding,
    )


def reorder_point(lead_time: Number, daily_usage: Number, safety_stock: Number = 0) -> Decimal:
    """ceil(lead_time * daily_usage + safety_stock)."""
    raw = to_decimal(lead_time) * to_decimal(daily_usage) + to_decimal(safety_stock)
    return raw.to_integral_value(rounding=ROUND_CEILING)


def safety_stock(
    lead_time: Number,
    max_daily_usage: Number,
    average_daily_usage: Number,
    service_level: Number = Decimal("1.65"),
    usage_std_dev: Number | None = None,
) -> Decimal:
    """
    Safety stock in whole units.

    With ``usage_std_dev``: ceil(service_level * std_dev * sqrt(lead_time)).
    Otherwise: ceil((max_daily - average_daily) * lead_time).
    """
    lead = to_decimal(lead_time)
    if usage_std_dev is not None:
        raw = to_decimal(service_level) * to_decimal(usage_std_dev) * lead.sqrt()
    else:
        raw = (to_decimal(max_daily_usage) - to_decimal(average_daily_usage)) * lead
    return raw.to_integral_value(rounding=ROUND_CEILING)
