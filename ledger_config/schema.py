"""
Engine configuration schema.

Defines the frozen runtime artifact produced from a YAML document by the
loader.  Module configs (``GstConfig``, ``ReportingConfig``,
``JournalConfig``, ``BudgetConfig``) and the injected ``FiscalYearPolicy``
are derived from it so every component sees the same thresholds,
precisions and currency.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ledger_kernel.domain.fiscal import FiscalYearPolicy
from ledger_modules.budget.config import BudgetConfig
from ledger_modules.gst.config import GstConfig
from ledger_modules.journal.config import JournalConfig
from ledger_modules.reporting.config import ReportingConfig


@dataclass(frozen=True)
class EngineConfig:
    """
    Validated engine-wide settings.

    Guarantees:
        - ``checksum`` is the SHA-256 of the canonical source document;
          identical YAML always yields the identical checksum.
        - Every field has been range-checked in ``__post_init__``.
    """

    config_id: str = "default"
    version: int = 1
    precision: int = 2
    balance_precision: int = 3
    b2c_large_threshold: Decimal = Decimal("250000")
    gstin_length: int = 15
    fiscal_year_start_month: int = 4
    aging_periods: tuple[int, ...] = (0, 30, 60, 90)
    currency: str = "INR"
    entity_name: str = "Company"
    checksum: str = ""

    def __post_init__(self) -> None:
        if self.precision < 0 or self.balance_precision < 0:
            raise ValueError("precision cannot be negative")
        if self.b2c_large_threshold <= 0:
            raise ValueError("b2c_large_threshold must be positive")
        if self.gstin_length <= 0:
            raise ValueError("gstin_length must be positive")
        if not 1 <= self.fiscal_year_start_month <= 12:
            raise ValueError("fiscal_year_start_month must be between 1 and 12")
        if not self.aging_periods or self.aging_periods[0] != 0:
            raise ValueError("aging_periods must start at 0")
        if list(self.aging_periods) != sorted(set(self.aging_periods)):
            raise ValueError("aging_periods must be strictly increasing")
        if len(self.currency) != 3:
            raise ValueError(f"currency must be a 3-letter code, got {self.currency!r}")

    def fiscal_policy(self, reference_date: date) -> FiscalYearPolicy:
        return FiscalYearPolicy(reference_date, start_month=self.fiscal_year_start_month)

    def gst_config(self) -> GstConfig:
        return GstConfig(
            b2c_large_threshold=self.b2c_large_threshold,
            gstin_length=self.gstin_length,
            precision=self.precision,
        )

    def reporting_config(self, cash_account_codes: tuple[str, ...] = ()) -> ReportingConfig:
        return ReportingConfig(
            entity_name=self.entity_name,
            precision=self.precision,
            cash_account_codes=cash_account_codes,
            aging_periods=self.aging_periods,
        )

    def journal_config(self) -> JournalConfig:
        return JournalConfig(balance_precision=self.balance_precision)

    def budget_config(self) -> BudgetConfig:
        return BudgetConfig(default_currency=self.currency, precision=self.precision)
