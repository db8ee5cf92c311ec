"""
ledger_engines.invoice_classifier -- Outward-supply classification for GSTR-1.

Responsibility:
    Assign each sales invoice to a GSTR-1 category (B2B, B2C Large,
    B2C Small, Export, CDNR) and build the per-category collections,
    B2C Small buckets, and HSN summary from scratch on every call.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The GST module selects
    the period's invoices and stores the returned collections wholesale.

Invariants enforced:
    - Idempotence: the output depends only on the input set; there is no
      incremental append, so re-running on unchanged input is identical.
    - Output tuples are sorted by stable business keys.
    - B2C Small buckets are keyed by (place_of_supply, rate) per item.
    - Each invoice is counted once per B2C Small bucket it touches.

Failure modes:
    - None raised.  Sales invoices without a place of supply, notes from
      unregistered parties, and invoices whose account does not resolve
      are excluded and described by ExclusionWarning entries.

Audit relevance:
    The collections are the exact content of the GSTR-1 filing payload.
    Each classification run is traced via ``@traced_engine``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from ledger_engines.arithmetic import ZERO
from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.accounts import Account
from ledger_kernel.domain.diagnostics import ExclusionWarning, exclude
from ledger_kernel.domain.invoices import (
    DocumentType,
    Invoice,
    InvoiceItem,
    InvoiceKind,
    InvoiceType,
)
from ledger_kernel.domain.values import TaxAmounts
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.invoice_classifier")

DEFAULT_B2CL_THRESHOLD = Decimal("250000")
DEFAULT_GSTIN_LENGTH = 15

# Exports proper; deemed exports are reported against the recipient's GSTIN.
_EXPORT_CATEGORY_TYPES = frozenset({InvoiceType.EXPORT, InvoiceType.SEZ})


class SupplyCategory(str, Enum):
    B2B = "B2B"
    B2C_LARGE = "B2CL"
    B2C_SMALL = "B2CS"
    EXPORT = "EXP"
    CREDIT_DEBIT_NOTE = "CDNR"
    NON_GST = "NON_GST"


# =============================================================================
# Collection records
# =============================================================================


@dataclass(frozen=True, slots=True)
class RateLine:
    """Taxable value and tax of one invoice at one rate."""

    rate: Decimal
    taxable_value: Decimal
    tax: TaxAmounts


@dataclass(frozen=True, slots=True)
class B2BRecord:
    invoice_id: str
    number: str
    invoice_date: date
    party_gstin: str
    party_name: str
    place_of_supply: str
    reverse_charge: bool
    invoice_value: Decimal
    taxable_value: Decimal
    tax: TaxAmounts
    rate_lines: tuple[RateLine, ...]
    invoice_type: InvoiceType = InvoiceType.REGULAR


@dataclass(frozen=True, slots=True)
class B2CLargeRecord:
    invoice_id: str
    number: str
    invoice_date: date
    place_of_supply: str
    invoice_value: Decimal
    taxable_value: Decimal
    tax: TaxAmounts
    rate_lines: tuple[RateLine, ...]


@dataclass(frozen=True, slots=True)
class B2CSmallBucket:
    place_of_supply: str
    rate: Decimal
    taxable_value: Decimal
    tax: TaxAmounts
    invoice_count: int


@dataclass(frozen=True, slots=True)
class ExportRecord:
    invoice_id: str
    number: str
    invoice_date: date
    invoice_type: InvoiceType
    with_payment: bool
    port_code: str | None
    shipping_bill_number: str | None
    shipping_bill_date: date | None
    invoice_value: Decimal
    taxable_value: Decimal
    tax: TaxAmounts
    rate_lines: tuple[RateLine, ...]


@dataclass(frozen=True, slots=True)
class NoteRecord:
    """A credit or debit note issued to a registered party."""

    invoice_id: str
    number: str
    note_date: date
    document_type: DocumentType
    party_gstin: str
    party_name: str
    place_of_supply: str | None
    note_value: Decimal
    taxable_value: Decimal
    tax: TaxAmounts
    rate_lines: tuple[RateLine, ...]

    @property
    def sign(self) -> int:
        return -1 if self.document_type is DocumentType.CREDIT_NOTE else 1


@dataclass(frozen=True, slots=True)
class HsnSummaryRow:
    hsn_code: str
    rate: Decimal
    quantity: Decimal
    taxable_value: Decimal
    tax: TaxAmounts

    @property
    def total_value(self) -> Decimal:
        return self.taxable_value + self.tax.total


@dataclass(frozen=True)
class ClassifiedSupplies:
    """
    GSTR-1 collections for one return period.

    Contract:
        Built in one pass by ``classify_outward_supplies``; never patched
        afterwards.
    """

    b2b: tuple[B2BRecord, ...] = ()
    b2cl: tuple[B2CLargeRecord, ...] = ()
    b2cs: tuple[B2CSmallBucket, ...] = ()
    exports: tuple[ExportRecord, ...] = ()
    notes: tuple[NoteRecord, ...] = ()
    hsn_summary: tuple[HsnSummaryRow, ...] = ()
    warnings: tuple[ExclusionWarning, ...] = ()
    included_invoice_ids: tuple[str, ...] = ()

    @property
    def total_taxable_value(self) -> Decimal:
        """Taxable value across categories; credit notes reduce it."""
        value = sum((r.taxable_value for r in self.b2b), ZERO)
        value += sum((r.taxable_value for r in self.b2cl), ZERO)
        value += sum((r.taxable_value for r in self.b2cs), ZERO)
        value += sum((r.taxable_value for r in self.exports), ZERO)
        value += sum((r.sign * r.taxable_value for r in self.notes), ZERO)
        return value

    @property
    def total_tax(self) -> TaxAmounts:
        tax = TaxAmounts()
        for group in (self.b2b, self.b2cl, self.b2cs, self.exports):
            for record in group:
                tax = tax + record.tax
        for note in self.notes:
            tax = tax + (note.tax if note.sign > 0 else note.tax.negated())
        return tax


# =============================================================================
# Classification
# =============================================================================


def classify_invoice(
    invoice: Invoice,
    threshold: Decimal = DEFAULT_B2CL_THRESHOLD,
    gstin_length: int = DEFAULT_GSTIN_LENGTH,
) -> SupplyCategory:
    """
    GSTR-1 category of a sales document.

    Order of tests: non-GST, note, export/SEZ, registered party, value
    above ``threshold``, otherwise B2C Small.
    """
    if invoice.invoice_type is InvoiceType.NON_GST:
        return SupplyCategory.NON_GST
    if invoice.is_note:
        return SupplyCategory.CREDIT_DEBIT_NOTE
    if invoice.invoice_type in _EXPORT_CATEGORY_TYPES:
        return SupplyCategory.EXPORT
    if invoice.has_registered_party(gstin_length):
        return SupplyCategory.B2B
    if invoice.invoice_value > threshold:
        return SupplyCategory.B2C_LARGE
    return SupplyCategory.B2C_SMALL


def rate_lines(items: Iterable[InvoiceItem]) -> tuple[RateLine, ...]:
    """Items summed per GST rate, ordered by rate."""
    by_rate: dict[Decimal, tuple[Decimal, TaxAmounts]] = {}
    for item in items:
        value, tax = by_rate.get(item.gst_rate, (ZERO, TaxAmounts()))
        by_rate[item.gst_rate] = (value + item.taxable_value, tax + item.tax)
    return tuple(
        RateLine(rate=rate, taxable_value=value, tax=tax)
        for rate, (value, tax) in sorted(by_rate.items())
    )


def summarize_hsn(invoices: Iterable[Invoice]) -> tuple[HsnSummaryRow, ...]:
    """
    Per-(HSN code, rate) totals of invoice items.

    Items without an HSN code are left out.  Credit notes subtract.
    """
    rows: dict[tuple[str, Decimal], list] = {}
    for invoice in invoices:
        sign = -1 if invoice.document_type is DocumentType.CREDIT_NOTE else 1
        for item in invoice.items:
            if not item.hsn_code:
                continue
            key = (item.hsn_code, item.gst_rate)
            entry = rows.setdefault(key, [ZERO, ZERO, TaxAmounts()])
            entry[0] += sign * item.quantity
            entry[1] += sign * item.taxable_value
            entry[2] = entry[2] + (item.tax if sign > 0 else item.tax.negated())
    return tuple(
        HsnSummaryRow(hsn_code=code, rate=rate, quantity=q, taxable_value=v, tax=t)
        for (code, rate), (q, v, t) in sorted(rows.items())
    )


def _resolvable(invoice: Invoice, accounts: Mapping[str, Account] | None) -> bool:
    if accounts is None or invoice.account_id is None:
        return True
    account = accounts.get(invoice.account_id)
    return account is not None and not account.is_archived


@traced_engine(
    "classify_outward_supplies", "1.0",
    fingerprint_fields=("invoices", "threshold", "gstin_length"),
)
def classify_outward_supplies(
    invoices: Sequence[Invoice],
    threshold: Decimal = DEFAULT_B2CL_THRESHOLD,
    gstin_length: int = DEFAULT_GSTIN_LENGTH,
    accounts: Mapping[str, Account] | None = None,
) -> ClassifiedSupplies:
    """
    Build the GSTR-1 collections from ``invoices``.

    Preconditions:
        ``invoices`` are the period's issued sales documents; purchase
        invoices in the input are ignored.
    Postconditions:
        Every sales document is either in exactly one collection, in the
        non-GST category, or described by a warning.
    """
    b2b: list[B2BRecord] = []
    b2cl: list[B2CLargeRecord] = []
    b2cs: dict[tuple[str, Decimal], list] = {}
    exports: list[ExportRecord] = []
    notes: list[NoteRecord] = []
    warnings: list[ExclusionWarning] = []
    included: list[Invoice] = []

    for invoice in invoices:
        if invoice.kind is not InvoiceKind.SALES:
            continue
        if not _resolvable(invoice, accounts):
            warnings.append(exclude(
                invoice.invoice_id, "UNKNOWN_ACCOUNT",
                f"invoice {invoice.number} references unknown account {invoice.account_id}",
                source="classify_outward_supplies",
            ))
            continue
        category = classify_invoice(invoice, threshold, gstin_length)
        if category is SupplyCategory.NON_GST:
            continue
        if category is not SupplyCategory.EXPORT and not invoice.place_of_supply:
            warnings.append(exclude(
                invoice.invoice_id, "MISSING_PLACE_OF_SUPPLY",
                f"invoice {invoice.number} has no place of supply",
                source="classify_outward_supplies",
            ))
            continue

        if category is SupplyCategory.CREDIT_DEBIT_NOTE:
            if not invoice.has_registered_party(gstin_length):
                warnings.append(exclude(
                    invoice.invoice_id, "UNREGISTERED_NOTE",
                    f"note {invoice.number} is not against a registered party",
                    source="classify_outward_supplies",
                ))
                continue
            notes.append(NoteRecord(
                invoice_id=invoice.invoice_id,
                number=invoice.number,
                note_date=invoice.invoice_date,
                document_type=invoice.document_type,
                party_gstin=invoice.party_gstin.strip(),
                party_name=invoice.party_name,
                place_of_supply=invoice.place_of_supply,
                note_value=invoice.invoice_value,
                taxable_value=invoice.taxable_value,
                tax=invoice.tax,
                rate_lines=rate_lines(invoice.items),
            ))
        elif category is SupplyCategory.EXPORT:
            exports.append(ExportRecord(
                invoice_id=invoice.invoice_id,
                number=invoice.number,
                invoice_date=invoice.invoice_date,
                invoice_type=invoice.invoice_type,
                with_payment=invoice.export_with_payment,
                port_code=invoice.port_code,
                shipping_bill_number=invoice.shipping_bill_number,
                shipping_bill_date=invoice.shipping_bill_date,
                invoice_value=invoice.invoice_value,
                taxable_value=invoice.taxable_value,
                tax=invoice.tax,
                rate_lines=rate_lines(invoice.items),
            ))
        elif category is SupplyCategory.B2B:
            b2b.append(B2BRecord(
                invoice_id=invoice.invoice_id,
                number=invoice.number,
                invoice_date=invoice.invoice_date,
                party_gstin=invoice.party_gstin.strip(),
                party_name=invoice.party_name,
                place_of_supply=invoice.place_of_supply,
                reverse_charge=invoice.reverse_charge,
                invoice_value=invoice.invoice_value,
                taxable_value=invoice.taxable_value,
                tax=invoice.tax,
                rate_lines=rate_lines(invoice.items),
                invoice_type=invoice.invoice_type,
            ))
        elif category is SupplyCategory.B2C_LARGE:
            b2cl.append(B2CLargeRecord(
                invoice_id=invoice.invoice_id,
                number=invoice.number,
                invoice_date=invoice.invoice_date,
                place_of_supply=invoice.place_of_supply,
                invoice_value=invoice.invoice_value,
                taxable_value=invoice.taxable_value,
                tax=invoice.tax,
                rate_lines=rate_lines(invoice.items),
            ))
        else:
            touched: set[tuple[str, Decimal]] = set()
            for item in invoice.items:
                key = (invoice.place_of_supply, item.gst_rate)
                bucket = b2cs.setdefault(key, [ZERO, TaxAmounts(), 0])
                bucket[0] += item.taxable_value
                bucket[1] = bucket[1] + item.tax
                if key not in touched:
                    bucket[2] += 1
                    touched.add(key)
        included.append(invoice)

    result = ClassifiedSupplies(
        b2b=tuple(sorted(b2b, key=lambda r: (r.party_gstin, r.invoice_date, r.number))),
        b2cl=tuple(sorted(b2cl, key=lambda r: (r.place_of_supply, r.invoice_date, r.number))),
        b2cs=tuple(
            B2CSmallBucket(place_of_supply=pos, rate=rate, taxable_value=v, tax=t, invoice_count=n)
            for (pos, rate), (v, t, n) in sorted(b2cs.items())
        ),
        exports=tuple(sorted(exports, key=lambda r: (r.invoice_date, r.number))),
        notes=tuple(sorted(notes, key=lambda r: (r.party_gstin, r.note_date, r.number))),
        hsn_summary=summarize_hsn(included),
        warnings=tuple(warnings),
        included_invoice_ids=tuple(sorted(i.invoice_id for i in included)),
    )
    logger.info("outward_supplies_classified", extra={
        "b2b_count": len(result.b2b),
        "b2cl_count": len(result.b2cl),
        "b2cs_count": len(result.b2cs),
        "export_count": len(result.exports),
        "note_count": len(result.notes),
        "excluded_count": len(result.warnings),
    })
    return result
