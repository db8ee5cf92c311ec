"""
Module: ledger_modules.gst.returns
Responsibility: Pure GST return lifecycle functions.  Each function takes
    a ``GstReturn`` (plus source invoices where needed) and returns a new
    one; none of them touch the database or the clock.
Architecture position: Modules > gst.  Called by ``GstService`` before the
    compare-and-set write; usable directly in tests.

Invariants enforced:
    - Filed returns are immutable: every operation except reading raises
      ImmutableRecordError.
    - Populate selects only the period's invoices for the return's GSTIN
      (Issued sales; Recorded or Verified purchases for GSTR-3B) and
      replaces the sections wholesale.
    - Calculate derives every total from the stored sections, so running
      it twice on the same sections gives the same totals.
    - Every status change resolves through ``GST_RETURN_WORKFLOW``.

Failure modes:
    - InvalidStateTransitionError for an action not allowed from the
      current status.
    - MissingFieldError when mark_filed lacks acknowledgement number or
      date.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from ledger_engines.arithmetic import ZERO, Number, round_amount, to_decimal
from ledger_engines.invoice_classifier import classify_outward_supplies
from ledger_engines.itc_netting import (
    ITC_STATUSES,
    aggregate_input_tax_credit,
    aggregate_outward_supplies,
    net_tax_liability,
)
from ledger_kernel.domain.accounts import Account
from ledger_kernel.domain.invoices import Invoice, InvoiceKind, InvoiceStatus, ReturnType
from ledger_kernel.domain.values import TaxAmounts, TaxHead
from ledger_kernel.domain.workflow import Transition
from ledger_kernel.exceptions import ImmutableRecordError, MissingFieldError
from ledger_kernel.logging_config import get_logger
from ledger_modules.gst import filing
from ledger_modules.gst.config import GstConfig
from ledger_modules.gst.models import (
    GstReturn,
    GstReturnStatistics,
    GstReturnStatus,
    ReturnTotals,
)
from ledger_modules.gst.workflows import GST_RETURN_WORKFLOW

logger = get_logger("modules.gst.returns")

ENTITY_TYPE = "gst_return"
INVOICE_ENTITY_TYPE = "invoice"


def ensure_not_filed(gst_return: GstReturn, operation: str) -> None:
    if gst_return.status is GstReturnStatus.FILED:
        raise ImmutableRecordError(
            ENTITY_TYPE, str(gst_return.return_id), gst_return.status.value, operation,
        )


def resolve_transition(gst_return: GstReturn, action: str) -> Transition:
    ensure_not_filed(gst_return, action)
    return GST_RETURN_WORKFLOW.require(
        ENTITY_TYPE, gst_return.return_id, gst_return.status.value, action,
    )


def ensure_invoice_mutable(invoice: Invoice, operation: str) -> None:
    """Raise ImmutableRecordError once an invoice is in a filed return."""
    if invoice.reported_in:
        reported = ", ".join(sorted(r.value for r in invoice.reported_in))
        raise ImmutableRecordError(
            INVOICE_ENTITY_TYPE, invoice.invoice_id, f"reported in {reported}", operation,
        )


# =============================================================================
# Source selection
# =============================================================================


def _in_scope(invoice: Invoice, gst_return: GstReturn, kind: InvoiceKind) -> bool:
    return invoice.kind is kind and gst_return.period.contains(invoice.invoice_date)


def period_sales(invoices: Iterable[Invoice], gst_return: GstReturn) -> list[Invoice]:
    return [
        invoice for invoice in invoices
        if _in_scope(invoice, gst_return, InvoiceKind.SALES)
        and invoice.status is InvoiceStatus.ISSUED
    ]


def period_purchases(invoices: Iterable[Invoice], gst_return: GstReturn) -> list[Invoice]:
    return [
        invoice for invoice in invoices
        if _in_scope(invoice, gst_return, InvoiceKind.PURCHASE)
        and invoice.status in ITC_STATUSES
    ]


# =============================================================================
# Lifecycle
# =============================================================================


def populate(
    gst_return: GstReturn,
    invoices: Iterable[Invoice],
    config: GstConfig,
    accounts: Mapping[str, Account] | None = None,
    reversed_as_per_rules: TaxAmounts = TaxAmounts(),
    reversed_others: TaxAmounts = TaxAmounts(),
) -> GstReturn:
    """
    Rebuild the return's sections from ``invoices``.

    ``invoices`` may hold anything the registration has; only the
    period's qualifying documents are used.  Totals are reset until the
    next ``calculate``.
    """
    transition = resolve_transition(gst_return, "populate")
    pool = list(invoices)
    sales = period_sales(pool, gst_return)

    if gst_return.return_type is ReturnType.GSTR1:
        classified = classify_outward_supplies(
            sales,
            threshold=config.b2c_large_threshold,
            gstin_length=config.gstin_length,
            accounts=accounts,
        )
        sections = filing.gstr1_sections(classified, config.precision)
        included = classified.included_invoice_ids
        warnings = classified.warnings
    else:
        purchases = period_purchases(pool, gst_return)
        outward = aggregate_outward_supplies(sales, purchases, accounts=accounts)
        itc = aggregate_input_tax_credit(
            purchases,
            accounts=accounts,
            gstin_length=config.gstin_length,
            reversed_as_per_rules=reversed_as_per_rules,
            reversed_others=reversed_others,
        )
        sections = filing.gstr3b_sections(outward, itc, config.precision)
        warnings = outward.warnings + itc.warnings
        skipped = {w.record_id for w in warnings}
        included = tuple(sorted(
            {i.invoice_id for i in sales + purchases} - skipped
        ))

    logger.info("gst_return_populated", extra={
        "return_id": str(gst_return.return_id),
        "return_type": gst_return.return_type.value,
        "period": gst_return.period.label,
        "included_count": len(included),
        "excluded_count": len(warnings),
    })
    return replace(
        gst_return,
        status=GstReturnStatus(transition.to_state),
        sections=sections,
        totals=ReturnTotals(),
        included_invoice_ids=tuple(included),
        warnings=tuple(warnings),
        filing_error=None,
    )


def _rounded(tax: TaxAmounts, precision: int) -> TaxAmounts:
    return TaxAmounts.from_heads({head: round_amount(tax.get(head), precision) for head in TaxHead})


def calculate(
    gst_return: GstReturn,
    *,
    precision: int = 2,
    interest: Number = ZERO,
    late_fee: Number = ZERO,
    penalty: Number = ZERO,
    brought_forward: TaxAmounts = TaxAmounts(),
) -> GstReturn:
    """
    Recompute totals (and, for GSTR-3B, the tax payment table).

    GSTR-1 is a statement of supplies: its liability is the tax shown,
    and nothing is payable through it.
    """
    transition = resolve_transition(gst_return, "calculate")
    sections = dict(gst_return.sections)

    if gst_return.return_type is ReturnType.GSTR1:
        taxable, tax = filing.gstr1_totals(sections)
        totals = ReturnTotals(
            taxable_value=round_amount(taxable, precision),
            tax=_rounded(tax, precision),
            tax_liability=round_amount(tax.total, precision),
        )
    else:
        liability = filing.liability_from_sections(sections)
        net_itc = filing.net_itc_from_sections(sections)
        netting = net_tax_liability(
            liability,
            net_itc,
            brought_forward=brought_forward,
            interest=interest,
            late_fee=late_fee,
            penalty=penalty,
        )
        sections["tx_pmt"] = filing.tx_pmt_section(netting, precision)
        totals = ReturnTotals(
            taxable_value=round_amount(filing.outward_taxable_from_sections(sections), precision),
            tax=_rounded(liability, precision),
            tax_liability=round_amount(liability.total, precision),
            itc=round_amount(net_itc.total, precision),
            payable=round_amount(netting.total_cash, precision),
        )

    logger.info("gst_return_calculated", extra={
        "return_id": str(gst_return.return_id),
        "taxable_value": str(totals.taxable_value),
        "tax_liability": str(totals.tax_liability),
        "itc": str(totals.itc),
        "payable": str(totals.payable),
    })
    return replace(
        gst_return,
        status=GstReturnStatus(transition.to_state),
        sections=sections,
        totals=totals,
    )


def mark_filed(
    gst_return: GstReturn,
    acknowledgement_number: str | None,
    acknowledgement_date: date | None,
    filed_by: UUID,
    filed_at: datetime,
) -> GstReturn:
    """Ready for Review -> Filed.  The return is immutable afterwards."""
    transition = resolve_transition(gst_return, "mark_filed")
    if not acknowledgement_number or not acknowledgement_number.strip():
        raise MissingFieldError("acknowledgement_number", "mark_filed")
    if acknowledgement_date is None:
        raise MissingFieldError("acknowledgement_date", "mark_filed")
    return replace(
        gst_return,
        status=GstReturnStatus(transition.to_state),
        acknowledgement_number=acknowledgement_number.strip(),
        acknowledgement_date=acknowledgement_date,
        filed_by=filed_by,
        filed_at=filed_at,
        filing_error=None,
    )


def mark_filing_error(gst_return: GstReturn, error_message: str = "") -> GstReturn:
    transition = resolve_transition(gst_return, "mark_filing_error")
    return replace(
        gst_return,
        status=GstReturnStatus(transition.to_state),
        filing_error=error_message or None,
    )


def filing_payload(gst_return: GstReturn) -> dict:
    """Portal JSON; reading a Filed return is allowed."""
    return filing.build_filing_payload(
        gst_return.return_type,
        gst_return.gstin,
        gst_return.period.portal_code,
        gst_return.sections,
    )


# =============================================================================
# Statistics
# =============================================================================


def compute_statistics(
    returns: Iterable[GstReturn],
    financial_year: str,
    return_type: ReturnType,
) -> GstReturnStatistics:
    """Counts by status and summed totals for one financial year."""
    selected = [
        r for r in returns
        if r.financial_year == financial_year and r.return_type is return_type
    ]
    by_status = Counter(r.status.value for r in selected)

    def _sum(field: str) -> Decimal:
        return sum((to_decimal(getattr(r.totals, field)) for r in selected), ZERO)

    return GstReturnStatistics(
        financial_year=financial_year,
        return_type=return_type,
        total_returns=len(selected),
        by_status={status.value: by_status.get(status.value, 0) for status in GstReturnStatus},
        total_taxable_value=_sum("taxable_value"),
        total_tax_amount=_sum("tax_amount"),
        total_tax_liability=_sum("tax_liability"),
        total_itc=_sum("itc"),
        total_payable=_sum("payable"),
    )
