"""
Module: ledger_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the import surface for ledger_modules.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel (domain, exceptions, logging).
    MUST NOT import ledger_modules or ledger_config.

Invariants enforced:
    - Purity: engines never read the clock.  Dates and the fiscal-year
      policy are passed in by callers.
    - Decimal-only arithmetic; floats are rejected at the boundary.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Solver and aggregation entry points are traced via ``@traced_engine``
    (see ``ledger_engines.tracer``), emitting LEDGER_ENGINE_TRACE records.

Usage:
    from ledger_engines import irr, validate_entry, classify_outward_supplies
"""

from ledger_kernel.logging_config import get_logger

logger = get_logger("engines")

from ledger_engines.aging import (
    AgeBucket,
    AgingCalculator,
    AgingDocument,
    AgingReport,
    AgingType,
    build_aging_report,
    buckets_from_periods,
)
from ledger_engines.arithmetic import (
    add,
    average,
    divide,
    multiply,
    percentage,
    percentage_change,
    round_amount,
    subtract,
    total,
)
from ledger_engines.balances import (
    AccountBalance,
    BalanceComputation,
    LedgerAccountActivity,
    LedgerRow,
    account_balance,
    compute_balances,
    general_ledger,
    period_activity,
)
from ledger_engines.depreciation import (
    DepreciationMethod,
    DepreciationResult,
    calculate_depreciation,
    declining_balance,
    straight_line,
    units_of_production,
)
from ledger_engines.entry_validator import (
    ValidationResult,
    Violation,
    require_valid_entry,
    validate_entry,
)
from ledger_engines.inventory import (
    CostingMethod,
    EconomicOrder,
    InventoryLot,
    InventoryValuation,
    cost_of_goods_sold,
    economic_order_quantity,
    inventory_valuation,
    reorder_point,
    safety_stock,
)
from ledger_engines.invoice_classifier import (
    ClassifiedSupplies,
    SupplyCategory,
    classify_invoice,
    classify_outward_supplies,
    summarize_hsn,
)
from ledger_engines.itc_netting import (
    ItcSummary,
    ItcType,
    NettingResult,
    OutwardSupplySummary,
    aggregate_input_tax_credit,
    aggregate_outward_supplies,
    net_tax_liability,
)
from ledger_engines.ratios import FinancialRatios, RatioInputs, compute_financial_ratios
from ledger_engines.statistics import median, standard_deviation, variance, weighted_average
from ledger_engines.time_value import (
    AmortizationRow,
    BreakEven,
    amortization_schedule,
    break_even_units,
    compound_interest,
    future_value,
    irr,
    loan_schedule,
    net_present_value,
    npv,
    payback_period,
    payment,
    present_value,
    remaining_balance,
    simple_interest,
    wacc,
)
from ledger_engines.tracer import traced_engine

__all__ = [
    "AccountBalance",
    "AgeBucket",
    "AgingCalculator",
    "AgingDocument",
    "AgingReport",
    "AgingType",
    "AmortizationRow",
    "BalanceComputation",
    "BreakEven",
    "ClassifiedSupplies",
    "CostingMethod",
    "DepreciationMethod",
    "DepreciationResult",
    "EconomicOrder",
    "FinancialRatios",
    "InventoryLot",
    "InventoryValuation",
    "ItcSummary",
    "ItcType",
    "LedgerAccountActivity",
    "LedgerRow",
    "NettingResult",
    "OutwardSupplySummary",
    "RatioInputs",
    "SupplyCategory",
    "ValidationResult",
    "Violation",
    "account_balance",
    "add",
    "aggregate_input_tax_credit",
    "aggregate_outward_supplies",
    "amortization_schedule",
    "average",
    "break_even_units",
    "buckets_from_periods",
    "build_aging_report",
    "calculate_depreciation",
    "classify_invoice",
    "classify_outward_supplies",
    "compound_interest",
    "compute_balances",
    "compute_financial_ratios",
    "cost_of_goods_sold",
    "declining_balance",
    "divide",
    "economic_order_quantity",
    "future_value",
    "general_ledger",
    "inventory_valuation",
    "irr",
    "loan_schedule",
    "median",
    "multiply",
    "net_present_value",
    "net_tax_liability",
    "npv",
    "payback_period",
    "payment",
    "percentage",
    "percentage_change",
    "period_activity",
    "present_value",
    "remaining_balance",
    "reorder_point",
    "require_valid_entry",
    "round_amount",
    "safety_stock",
    "simple_interest",
    "standard_deviation",
    "straight_line",
    "subtract",
    "summarize_hsn",
    "total",
    "traced_engine",
    "units_of_production",
    "validate_entry",
    "variance",
    "wacc",
    "weighted_average",
]
