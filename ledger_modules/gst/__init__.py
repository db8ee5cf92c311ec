"""
GST Module (``ledger_modules.gst``).

Responsibility
--------------
Statutory GSTR-1 and GSTR-3B returns: invoice intake, population of the
return tables from the period's invoices, totals and tax/ITC netting,
portal JSON, and the filing lifecycle
Not Filed -> In Progress -> Ready for Review -> Filed.

Architecture position
---------------------
**Modules layer** -- ``returns.py`` and ``filing.py`` are pure;
``GstService`` bridges them to the persistence collaborator.

Invariants enforced
-------------------
* Filed returns and reported invoices are immutable.
* Population replaces the tables wholesale; it never appends.
* Status changes are compare-and-set.
"""

from ledger_modules.gst.config import GstConfig
from ledger_modules.gst.filing import build_filing_payload, gstr1_sections, gstr3b_sections
from ledger_modules.gst.models import (
    GstReturn,
    GstReturnStatistics,
    GstReturnStatus,
    ReturnTotals,
)
from ledger_modules.gst.returns import (
    calculate,
    compute_statistics,
    ensure_invoice_mutable,
    ensure_not_filed,
    mark_filed,
    mark_filing_error,
    populate,
)
from ledger_modules.gst.service import GstService
from ledger_modules.gst.workflows import GST_RETURN_WORKFLOW

__all__ = [
    # Service
    "GstService",
    # Config
    "GstConfig",
    # Models
    "GstReturn",
    "GstReturnStatistics",
    "GstReturnStatus",
    "ReturnTotals",
    # Workflow
    "GST_RETURN_WORKFLOW",
    # Lifecycle
    "calculate",
    "compute_statistics",
    "ensure_invoice_mutable",
    "ensure_not_filed",
    "mark_filed",
    "mark_filing_error",
    "populate",
    # Filing
    "build_filing_payload",
    "gstr1_sections",
    "gstr3b_sections",
]
