"""
Reporting Configuration Schema.

Formatting and classification options shared by the statement builders.
Balance-sheet placement comes from each account's subtype; cash accounts
for the derived cash flow statement are named by code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Self

from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.reporting.config")


@dataclass
class ReportingConfig:
    """
    Configuration schema for the reporting module.

    ``precision`` drives both display rounding and the trial-balance
    tolerance of 10**-precision.
    """

    entity_name: str = "Company"
    precision: int = 2
    include_zero_balances: bool = False
    cash_account_codes: tuple[str, ...] = ()
    aging_periods: tuple[int, ...] = (0, 30, 60, 90)

    def __post_init__(self):
        if self.precision < 0:
            raise ValueError("precision cannot be negative")
        if not self.aging_periods or self.aging_periods[0] != 0:
            raise ValueError("aging_periods must start at 0")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        values = dict(data)
        for key in ("cash_account_codes", "aging_periods"):
            if key in values:
                values[key] = tuple(values[key])
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(values.keys())},
        )
        return cls(**values)
