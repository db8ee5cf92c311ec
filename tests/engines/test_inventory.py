"""
Tests for inventory costing and replenishment.

Covers:
- FIFO, LIFO and weighted-average valuation
- Selling the whole stock
- EOQ, reorder point and safety stock
"""

from decimal import Decimal

import pytest

from ledger_engines.inventory import (
    CostingMethod,
    InventoryLot,
    cost_of_goods_sold,
    economic_order_quantity,
    inventory_valuation,
    reorder_point,
    safety_stock,
)
from ledger_kernel.exceptions import InvalidComputationInputError

LOTS = (
    InventoryLot(Decimal("100"), Decimal("10"), "L1"),
    InventoryLot(Decimal("100"), Decimal("12"), "L2"),
    InventoryLot(Decimal("100"), Decimal("15"), "L3"),
)


class TestValuation:
    """Tests for inventory_valuation."""

    def test_fifo(self):
        result = inventory_valuation(LOTS, 150, CostingMethod.FIFO)
        assert result.cost_of_goods_sold == Decimal("1600.00")
        assert result.remaining_value == Decimal("2100.00")
        assert result.remaining_quantity == Decimal("150")
        assert [lot.lot_id for lot in result.remaining_lots] == ["L2", "L3"]
        assert result.remaining_lots[0].quantity == Decimal("50")

    def test_lifo(self):
        result = inventory_valuation(LOTS, 150, "lifo")
        assert result.cost_of_goods_sold == Decimal("2100.00")
        assert result.remaining_value == Decimal("1600.00")
        assert [lot.lot_id for lot in result.remaining_lots] == ["L1", "L2"]

    def test_weighted_average(self):
        result = inventory_valuation(LOTS, 150, CostingMethod.WEIGHTED_AVERAGE)
        assert result.cost_of_goods_sold == Decimal("1850.00")
        assert result.remaining_value == Decimal("1850.00")
        assert result.average_cost == Decimal("12.33")

    def test_selling_everything(self):
        result = inventory_valuation(LOTS, 400, CostingMethod.FIFO)
        assert result.cost_of_goods_sold == Decimal("3700.00")
        assert result.remaining_value == Decimal("0")
        assert result.remaining_lots == ()

    def test_inputs_not_mutated(self):
        inventory_valuation(LOTS, 150, CostingMethod.FIFO)
        assert LOTS[1].quantity == Decimal("100")

    def test_negative_quantity_sold_rejected(self):
        with pytest.raises(InvalidComputationInputError):
            inventory_valuation(LOTS, -1)

    def test_negative_lot_rejected(self):
        with pytest.raises(InvalidComputationInputError):
            InventoryLot(Decimal("-1"), Decimal("10"))

    def test_periodic_cogs(self):
        assert cost_of_goods_sold(5000, 20000, 7000) == Decimal("18000.00")


class TestReplenishment:
    """Tests for EOQ, reorder point and safety stock."""

    def test_economic_order_quantity(self):
        result = economic_order_quantity(1000, 50, 2)
        assert result.quantity == Decimal("224")
        assert result.orders_per_year == Decimal("4.46")
        assert result.total_cost == Decimal("447.00")

    def test_eoq_non_positive_input(self):
        result = economic_order_quantity(0, 50, 2)
        assert result.quantity == Decimal("0")
        assert result.total_cost == Decimal("0")

    def test_reorder_point_rounds_up(self):
        assert reorder_point(5, 20, 10) == Decimal("110")
        assert reorder_point("2.5", 3) == Decimal("8")

    def test_safety_stock_from_usage_spread(self):
        assert safety_stock(4, 30, 20) == Decimal("40")

    def test_safety_stock_from_std_dev(self):
        assert safety_stock(4, 30, 20, service_level="1.65", usage_std_dev=10) == Decimal("33")
