"""
GST Domain Models (``ledger_modules.gst.models``).

Responsibility
--------------
Frozen dataclass value objects for statutory returns: the return
header with its recomputed sections and totals, and per-financial-year
statistics.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Produced by
the lifecycle functions in ``returns.py`` and by ``GstReturnModel.to_dto``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* ``sections`` holds the return's categorized collections in filing
  layout with ``Decimal`` amounts; it is replaced as a whole on every
  populate or calculate, never appended to.
* All monetary fields use ``Decimal`` -- NEVER ``float``.

Audit relevance
---------------
* ``acknowledgement_number``/``acknowledgement_date`` and
  ``filed_by``/``filed_at`` tie a Filed return to the portal receipt.
* ``included_invoice_ids`` lists exactly the invoices marked reported on
  filing.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from ledger_kernel.domain.diagnostics import ExclusionWarning
from ledger_kernel.domain.fiscal import ReturnPeriod
from ledger_kernel.domain.invoices import ReturnType
from ledger_kernel.domain.values import ZERO, TaxAmounts


class GstReturnStatus(str, Enum):
    """Return lifecycle states."""

    NOT_FILED = "Not Filed"
    IN_PROGRESS = "In Progress"
    READY_FOR_REVIEW = "Ready for Review"
    FILED = "Filed"
    FILED_WITH_ERROR = "Filed with Error"


@dataclass(frozen=True)
class ReturnTotals:
    """Aggregated totals of a return, recomputed by ``calculate``."""

    taxable_value: Decimal = ZERO
    tax: TaxAmounts = TaxAmounts()
    tax_liability: Decimal = ZERO
    itc: Decimal = ZERO
    payable: Decimal = ZERO

    @property
    def tax_amount(self) -> Decimal:
        return self.tax.total


@dataclass(frozen=True)
class GstReturn:
    """A GSTR-1 or GSTR-3B return for one registration and period."""

    return_id: UUID
    tenant_id: UUID
    gstin: str
    return_type: ReturnType
    period: ReturnPeriod
    financial_year: str
    created_by: UUID
    status: GstReturnStatus = GstReturnStatus.NOT_FILED
    sections: Mapping[str, Any] = field(default_factory=dict)
    totals: ReturnTotals = ReturnTotals()
    included_invoice_ids: tuple[str, ...] = ()
    warnings: tuple[ExclusionWarning, ...] = ()
    acknowledgement_number: str | None = None
    acknowledgement_date: date | None = None
    filed_by: UUID | None = None
    filed_at: datetime | None = None
    filing_error: str | None = None

    @property
    def is_filed(self) -> bool:
        return self.status is GstReturnStatus.FILED


@dataclass(frozen=True)
class GstReturnStatistics:
    """Per-financial-year counts and totals for one return type."""

    financial_year: str
    return_type: ReturnType
    total_returns: int
    by_status: Mapping[str, int]
    total_taxable_value: Decimal = ZERO
    total_tax_amount: Decimal = ZERO
    total_tax_liability: Decimal = ZERO
    total_itc: Decimal = ZERO
    total_payable: Decimal = ZERO

    @property
    def filed_returns(self) -> int:
        return self.by_status.get(GstReturnStatus.FILED.value, 0)

    @property
    def pending_returns(self) -> int:
        return self.total_returns - self.filed_returns
