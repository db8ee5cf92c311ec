"""
ledger_engines.itc_netting -- GSTR-3B aggregation and tax/ITC netting.

Responsibility:
    Aggregate a period's outward supplies and inward credit per tax head,
    then net liability against available input tax credit to find what is
    paid through credit, what is paid in cash, and what credit is left.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The GST module feeds it
    the period's sales and purchase invoices and persists the results.

Invariants enforced:
    - Per head: liability = taxable + zero-rated + reverse-charge.
    - Per head: available = brought_forward + net ITC.
    - Per head: paid_through_itc = min(liability, max(available, 0)),
      cash = max(0, liability - available), unutilized = available - used.
    - Heads never offset one another.
    - Credit notes reduce the bucket their invoice would have increased.

Failure modes:
    - None raised.  Invoices with an unresolvable account, and regular
      purchases without a supplier GSTIN, are excluded with an
      ExclusionWarning.

Audit relevance:
    NettingResult is the GSTR-3B tax payment table.  The netting run is
    traced via ``@traced_engine``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ledger_engines.arithmetic import ZERO, Number, to_decimal
from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.accounts import Account
from ledger_kernel.domain.diagnostics import ExclusionWarning, exclude
from ledger_kernel.domain.invoices import (
    EXPORT_TYPES,
    DocumentType,
    Invoice,
    InvoiceKind,
    InvoiceStatus,
    InvoiceType,
    ItcEligibility,
)
from ledger_kernel.domain.values import TaxAmounts, TaxHead
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.itc_netting")

ITC_STATUSES = frozenset({InvoiceStatus.RECORDED, InvoiceStatus.VERIFIED})

# Purchases legitimately without a supplier GSTIN.
_NO_GSTIN_TYPES = frozenset({InvoiceType.IMPORT_GOODS, InvoiceType.IMPORT_SERVICES})


class ItcType(str, Enum):
    """GSTR-3B Table 4(A) rows."""

    IMPORT_OF_GOODS = "IMPG"
    IMPORT_OF_SERVICES = "IMPS"
    REVERSE_CHARGE = "ISRC"
    INPUT_SERVICE_DISTRIBUTOR = "ISD"
    ALL_OTHER = "OTH"


@dataclass(frozen=True, slots=True)
class SupplyTotals:
    taxable_value: Decimal = ZERO
    tax: TaxAmounts = TaxAmounts()

    def plus(self, taxable_value: Decimal, tax: TaxAmounts) -> SupplyTotals:
        return SupplyTotals(self.taxable_value + taxable_value, self.tax + tax)


@dataclass(frozen=True, slots=True)
class OutwardSupplySummary:
    """GSTR-3B Table 3.1."""

    taxable_outward: SupplyTotals = SupplyTotals()
    zero_rated: SupplyTotals = SupplyTotals()
    nil_rated_exempted: SupplyTotals = SupplyTotals()
    reverse_charge: SupplyTotals = SupplyTotals()
    non_gst: SupplyTotals = SupplyTotals()
    warnings: tuple[ExclusionWarning, ...] = ()

    @property
    def liability(self) -> TaxAmounts:
        return self.taxable_outward.tax + self.zero_rated.tax + self.reverse_charge.tax


@dataclass(frozen=True, slots=True)
class ItcSummary:
    """GSTR-3B Table 4."""

    available: Mapping[ItcType, TaxAmounts]
    reversed_as_per_rules: TaxAmounts = TaxAmounts()
    reversed_others: TaxAmounts = TaxAmounts()
    ineligible: TaxAmounts = TaxAmounts()
    warnings: tuple[ExclusionWarning, ...] = ()

    @property
    def total_available(self) -> TaxAmounts:
        total = TaxAmounts()
        for itc_type in ItcType:
            total = total + self.available.get(itc_type, TaxAmounts())
        return total

    @property
    def net_available(self) -> TaxAmounts:
        return self.total_available - self.reversed_as_per_rules - self.reversed_others


@dataclass(frozen=True, slots=True)
class HeadNetting:
    head: TaxHead
    liability: Decimal
    available_credit: Decimal
    paid_through_itc: Decimal
    paid_in_cash: Decimal
    unutilized_credit: Decimal


@dataclass(frozen=True, slots=True)
class NettingResult:
    heads: tuple[HeadNetting, ...]
    interest: Decimal = ZERO
    late_fee: Decimal = ZERO
    penalty: Decimal = ZERO

    def head(self, head: TaxHead) -> HeadNetting:
        return next(h for h in self.heads if h.head is head)

    @property
    def paid_through_itc(self) -> TaxAmounts:
        return TaxAmounts.from_heads({h.head: h.paid_through_itc for h in self.heads})

    @property
    def paid_in_cash(self) -> TaxAmounts:
        return TaxAmounts.from_heads({h.head: h.paid_in_cash for h in self.heads})

    @property
    def unutilized_credit(self) -> TaxAmounts:
        return TaxAmounts.from_heads({h.head: h.unutilized_credit for h in self.heads})

    @property
    def total_cash(self) -> Decimal:
        """Cash tax plus interest, late fee, and penalty."""
        return self.paid_in_cash.total + self.interest + self.late_fee + self.penalty


# =============================================================================
# Aggregation
# =============================================================================


def _signed(invoice: Invoice) -> tuple[Decimal, Decimal, TaxAmounts]:
    """(taxable value, invoice value, tax) with credit notes negated."""
    if invoice.document_type is DocumentType.CREDIT_NOTE:
        return -invoice.taxable_value, -invoice.invoice_value, invoice.tax.negated()
    return invoice.taxable_value, invoice.invoice_value, invoice.tax


def _account_warning(
    invoice: Invoice,
    accounts: Mapping[str, Account] | None,
    source: str,
) -> ExclusionWarning | None:
    if accounts is None or invoice.account_id is None:
        return None
    account = accounts.get(invoice.account_id)
    if account is not None and not account.is_archived:
        return None
    return exclude(
        invoice.invoice_id, "UNKNOWN_ACCOUNT",
        f"invoice {invoice.number} references unknown account {invoice.account_id}",
        source=source,
    )


def aggregate_outward_supplies(
    sales: Iterable[Invoice],
    purchases: Iterable[Invoice] = (),
    accounts: Mapping[str, Account] | None = None,
) -> OutwardSupplySummary:
    """
    Table 3.1 buckets from the period's issued sales and recorded purchases.

    Reverse-charge purchases land in ``reverse_charge`` (liability side).
    """
    buckets = {
        "taxable": SupplyTotals(),
        "zero": SupplyTotals(),
        "nil": SupplyTotals(),
        "rcm": SupplyTotals(),
        "non_gst": SupplyTotals(),
    }
    warnings: list[ExclusionWarning] = []

    for invoice in sales:
        if invoice.kind is not InvoiceKind.SALES:
            continue
        warning = _account_warning(invoice, accounts, "aggregate_outward_supplies")
        if warning is not None:
            warnings.append(warning)
            continue
        taxable, value, tax = _signed(invoice)
        if invoice.invoice_type is InvoiceType.NON_GST:
            buckets["non_gst"] = buckets["non_gst"].plus(value, TaxAmounts())
        elif invoice.invoice_type in EXPORT_TYPES:
            buckets["zero"] = buckets["zero"].plus(taxable, tax)
        elif invoice.taxable_value == ZERO:
            buckets["nil"] = buckets["nil"].plus(value, TaxAmounts())
        else:
            buckets["taxable"] = buckets["taxable"].plus(taxable, tax)

    for invoice in purchases:
        if invoice.kind is not InvoiceKind.PURCHASE or not invoice.reverse_charge:
            continue
        if invoice.status not in ITC_STATUSES:
            continue
        warning = _account_warning(invoice, accounts, "aggregate_outward_supplies")
        if warning is not None:
            warnings.append(warning)
            continue
        taxable, _, tax = _signed(invoice)
        buckets["rcm"] = buckets["rcm"].plus(taxable, tax)

    return OutwardSupplySummary(
        taxable_outward=buckets["taxable"],
        zero_rated=buckets["zero"],
        nil_rated_exempted=buckets["nil"],
        reverse_charge=buckets["rcm"],
        non_gst=buckets["non_gst"],
        warnings=tuple(warnings),
    )


def itc_type_for(invoice: Invoice) -> ItcType:
    if invoice.invoice_type is InvoiceType.IMPORT_GOODS:
        return ItcType.IMPORT_OF_GOODS
    if invoice.invoice_type is InvoiceType.IMPORT_SERVICES:
        return ItcType.IMPORT_OF_SERVICES
    if invoice.reverse_charge:
        return ItcType.REVERSE_CHARGE
    if invoice.invoice_type is InvoiceType.ISD:
        return ItcType.INPUT_SERVICE_DISTRIBUTOR
    return ItcType.ALL_OTHER


def aggregate_input_tax_credit(
    purchases: Iterable[Invoice],
    accounts: Mapping[str, Account] | None = None,
    gstin_length: int = 15,
    reversed_as_per_rules: TaxAmounts = TaxAmounts(),
    reversed_others: TaxAmounts = TaxAmounts(),
) -> ItcSummary:
    """
    Table 4 from purchase invoices with status Recorded or Verified.

    Eligible and Partial invoices contribute their full tax to the row
    chosen by ``itc_type_for``; Ineligible ones go to ``ineligible``.
    """
    available: dict[ItcType, TaxAmounts] = {t: TaxAmounts() for t in ItcType}
    ineligible = TaxAmounts()
    warnings: list[ExclusionWarning] = []

    for invoice in purchases:
        if invoice.kind is not InvoiceKind.PURCHASE or invoice.status not in ITC_STATUSES:
            continue
        warning = _account_warning(invoice, accounts, "aggregate_input_tax_credit")
        if warning is not None:
            warnings.append(warning)
            continue
        if (
            not invoice.reverse_charge
            and invoice.invoice_type not in _NO_GSTIN_TYPES
            and not invoice.has_registered_party(gstin_length)
        ):
            warnings.append(exclude(
                invoice.invoice_id, "MISSING_SUPPLIER_GSTIN",
                f"purchase {invoice.number} has no supplier GSTIN",
                source="aggregate_input_tax_credit",
            ))
            continue
        _, _, tax = _signed(invoice)
        if invoice.itc_eligibility is ItcEligibility.INELIGIBLE:
            ineligible = ineligible + tax
            continue
        itc_type = itc_type_for(invoice)
        available[itc_type] = available[itc_type] + tax

    return ItcSummary(
        available=available,
        reversed_as_per_rules=reversed_as_per_rules,
        reversed_others=reversed_others,
        ineligible=ineligible,
        warnings=tuple(warnings),
    )


# =============================================================================
# Netting
# =============================================================================


@traced_engine("net_tax_liability", "1.0", fingerprint_fields=("liability", "net_itc", "brought_forward"))
def net_tax_liability(
    liability: TaxAmounts,
    net_itc: TaxAmounts,
    brought_forward: TaxAmounts = TaxAmounts(),
    interest: Number = ZERO,
    late_fee: Number = ZERO,
    penalty: Number = ZERO,
) -> NettingResult:
    """
    Net liability against credit head by head.

    Postconditions:
        For each head, paid_through_itc + paid_in_cash == max(liability, 0)
        and unutilized_credit == available - paid_through_itc.
    """
    heads: list[HeadNetting] = []
    for head in TaxHead:
        owed = liability.get(head)
        available = brought_forward.get(head) + net_itc.get(head)
        used = min(max(owed, ZERO), max(available, ZERO))
        cash = max(ZERO, owed - max(available, ZERO))
        heads.append(HeadNetting(
            head=head,
            liability=owed,
            available_credit=available,
            paid_through_itc=used,
            paid_in_cash=cash,
            unutilized_credit=available - used,
        ))

    result = NettingResult(
        heads=tuple(heads),
        interest=to_decimal(interest),
        late_fee=to_decimal(late_fee),
        penalty=to_decimal(penalty),
    )
    logger.info("tax_liability_netted", extra={
        "liability": str(liability.total),
        "paid_through_itc": str(result.paid_through_itc.total),
        "paid_in_cash": str(result.paid_in_cash.total),
        "total_cash": str(result.total_cash),
    })
    return result
