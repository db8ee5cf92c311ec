"""
Budgeting Configuration Schema.

Default currency and distribution scale for budgets and forecasts.
Values normally come from ``EngineConfig``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self

from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.budget.config")


@dataclass
class BudgetConfig:
    """
    Configuration schema for the budgeting module.

    ``default_currency`` applies to budgets and forecasts created without
    an explicit currency.  ``precision`` is the scale of distributed
    period amounts.
    """

    default_currency: str = "INR"
    precision: int = 2

    def __post_init__(self):
        if len(self.default_currency) != 3 or not self.default_currency.isalpha():
            raise ValueError(
                f"default_currency must be a 3-letter code, got {self.default_currency!r}"
            )
        if self.precision < 0:
            raise ValueError("precision cannot be negative")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("budget_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        logger.info(
            "budget_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
