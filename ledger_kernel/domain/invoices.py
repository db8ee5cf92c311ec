"""
Invoice snapshots for statutory aggregation (``ledger_kernel.domain.invoices``).

Responsibility
--------------
Immutable views of sales and purchase invoices as supplied by the
persistence collaborator.  Totals are derived from the line items on
access; nothing here is cached or mutated.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects consumed by the invoice
classifier, the ITC netting engine, and the GST module.

Invariants enforced
-------------------
* ``taxable_value``, ``tax`` and ``invoice_value`` are pure functions of
  ``items``.
* ``reported_in`` only grows; a reported invoice is immutable (enforced by
  ``ledger_modules.gst.returns.ensure_invoice_mutable``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from ledger_kernel.domain.values import ZERO, TaxAmounts


class InvoiceKind(str, Enum):
    SALES = "Sales"
    PURCHASE = "Purchase"


class InvoiceType(str, Enum):
    """Supply type that drives statutory bucketing."""

    REGULAR = "Regular"
    EXPORT = "Export"
    SEZ = "SEZ"
    DEEMED_EXPORT = "Deemed Export"
    IMPORT_GOODS = "Import of Goods"
    IMPORT_SERVICES = "Import of Services"
    ISD = "ISD"
    NON_GST = "Non-GST"


EXPORT_TYPES = frozenset({InvoiceType.EXPORT, InvoiceType.SEZ, InvoiceType.DEEMED_EXPORT})


class DocumentType(str, Enum):
    INVOICE = "Invoice"
    CREDIT_NOTE = "Credit Note"
    DEBIT_NOTE = "Debit Note"


class InvoiceStatus(str, Enum):
    DRAFT = "Draft"
    ISSUED = "Issued"
    RECORDED = "Recorded"
    VERIFIED = "Verified"
    CANCELLED = "Cancelled"


class ItcEligibility(str, Enum):
    ELIGIBLE = "Eligible"
    INELIGIBLE = "Ineligible"
    PARTIAL = "Partial"


class ReturnType(str, Enum):
    GSTR1 = "GSTR-1"
    GSTR3B = "GSTR-3B"


@dataclass(frozen=True, slots=True)
class InvoiceItem:
    """One invoice line with its taxable value and per-head tax."""

    taxable_value: Decimal
    gst_rate: Decimal
    tax: TaxAmounts = TaxAmounts()
    description: str = ""
    hsn_code: str | None = None
    quantity: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.taxable_value + self.tax.total


@dataclass(frozen=True, slots=True)
class Invoice:
    """A sales or purchase invoice, credit note, or debit note."""

    invoice_id: str
    number: str
    invoice_date: date
    kind: InvoiceKind
    items: tuple[InvoiceItem, ...]
    party_gstin: str | None = None
    party_name: str = ""
    place_of_supply: str | None = None
    invoice_type: InvoiceType = InvoiceType.REGULAR
    document_type: DocumentType = DocumentType.INVOICE
    status: InvoiceStatus = InvoiceStatus.ISSUED
    reverse_charge: bool = False
    itc_eligibility: ItcEligibility = ItcEligibility.ELIGIBLE
    account_id: str | None = None
    export_with_payment: bool = True
    port_code: str | None = None
    shipping_bill_number: str | None = None
    shipping_bill_date: date | None = None
    amount_paid: Decimal = ZERO
    reported_in: frozenset[ReturnType] = frozenset()

    @property
    def taxable_value(self) -> Decimal:
        return sum((item.taxable_value for item in self.items), ZERO)

    @property
    def tax(self) -> TaxAmounts:
        total = TaxAmounts()
        for item in self.items:
            total = total + item.tax
        return total

    @property
    def invoice_value(self) -> Decimal:
        return self.taxable_value + self.tax.total

    @property
    def is_note(self) -> bool:
        return self.document_type is not DocumentType.INVOICE

    def has_registered_party(self, gstin_length: int = 15) -> bool:
        gstin = (self.party_gstin or "").strip()
        return len(gstin) == gstin_length

    def is_reported(self, return_type: ReturnType) -> bool:
        return return_type in self.reported_in
