"""
Module: ledger_modules.gst.filing
Responsibility: Lay classified supplies and netting results out in the
    statutory filing structure, and convert that structure to and from
    its stored and portal forms.
Architecture position: Modules > gst.  Pure functions; consumed by
    ``returns.py`` (section building, totals) and ``GstService``
    (storage, payload generation).

Invariants enforced:
    - Section dicts hold ``Decimal`` amounts quantized to the configured
      precision.  Floats appear only in ``build_filing_payload`` output.
    - Field names follow the portal schema exactly (``ctin``, ``inum``,
      ``txval``, ``iamt`` ...).
    - Dates inside sections use ``DD-MM-YYYY``; periods use ``MMYYYY``.
    - Sections are rebuilt from scratch; nothing is merged into an
      earlier layout.

Failure modes:
    - None raised for well-formed inputs.  ``load_sections`` raises
      ``json.JSONDecodeError`` on a corrupt stored document.

Audit relevance:
    The stored sections are exactly what the portal payload is built
    from, so a Filed return's payload can be regenerated byte for byte.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from typing import Any

from ledger_engines.arithmetic import ZERO, round_amount
from ledger_engines.invoice_classifier import ClassifiedSupplies, RateLine
from ledger_engines.itc_netting import (
    ItcSummary,
    ItcType,
    NettingResult,
    OutwardSupplySummary,
    SupplyTotals,
)
from ledger_kernel.domain.invoices import DocumentType, InvoiceType, ReturnType
from ledger_kernel.domain.values import TaxAmounts
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.gst.filing")

GSTR1_SECTIONS = ("b2b", "b2cl", "b2cs", "exp", "cdnr", "hsn")
GSTR3B_SECTIONS = ("sup_details", "itc_elg", "tx_pmt")

# Keys whose stored string values are amounts or rates.
NUMERIC_KEYS = frozenset({
    "txval", "rt", "iamt", "camt", "samt", "csamt", "val", "qty",
    "intr", "lfee", "pen", "tot_cash",
})

_TAX_KEYS = ("iamt", "camt", "samt", "csamt")


# =============================================================================
# Field helpers
# =============================================================================


def portal_date(value: date | None) -> str:
    return value.strftime("%d-%m-%Y") if value else ""


def tax_fields(tax: TaxAmounts, precision: int = 2) -> dict[str, Decimal]:
    return {
        "iamt": round_amount(tax.igst, precision),
        "camt": round_amount(tax.cgst, precision),
        "samt": round_amount(tax.sgst, precision),
        "csamt": round_amount(tax.cess, precision),
    }


def tax_from_fields(fields: Mapping[str, Any]) -> TaxAmounts:
    return TaxAmounts(
        igst=Decimal(str(fields.get("iamt", ZERO))),
        cgst=Decimal(str(fields.get("camt", ZERO))),
        sgst=Decimal(str(fields.get("samt", ZERO))),
        cess=Decimal(str(fields.get("csamt", ZERO))),
    )


def _supply_fields(totals: SupplyTotals, precision: int, heads: Iterable[str] = _TAX_KEYS) -> dict:
    fields = {"txval": round_amount(totals.taxable_value, precision)}
    taxes = tax_fields(totals.tax, precision)
    fields.update({key: taxes[key] for key in heads})
    return fields


def _numbered_items(lines: Iterable[RateLine], precision: int) -> list[dict]:
    return [
        {
            "num": index,
            "itm_det": {
                "txval": round_amount(line.taxable_value, precision),
                "rt": line.rate,
                **tax_fields(line.tax, precision),
            },
        }
        for index, line in enumerate(lines, start=1)
    ]


def _grouped(records: Iterable[tuple[str, dict]], key: str, child: str) -> list[dict]:
    """Group ``(group value, record)`` pairs, keeping first-seen group order."""
    groups: dict[str, list[dict]] = {}
    for value, record in records:
        groups.setdefault(value, []).append(record)
    return [{key: value, child: items} for value, items in groups.items()]


# =============================================================================
# GSTR-1
# =============================================================================


def gstr1_sections(classified: ClassifiedSupplies, precision: int = 2) -> dict[str, Any]:
    """The six GSTR-1 tables built from one classification run."""
    b2b = _grouped(
        (
            (record.party_gstin, {
                "inum": record.number,
                "idt": portal_date(record.invoice_date),
                "val": round_amount(record.invoice_value, precision),
                "pos": record.place_of_supply,
                "rchrg": "Y" if record.reverse_charge else "N",
                "inv_typ": "DE" if record.invoice_type is InvoiceType.DEEMED_EXPORT else "R",
                "itms": _numbered_items(record.rate_lines, precision),
            })
            for record in classified.b2b
        ),
        "ctin", "inv",
    )

    b2cl = _grouped(
        (
            (record.place_of_supply, {
                "inum": record.number,
                "idt": portal_date(record.invoice_date),
                "val": round_amount(record.invoice_value, precision),
                "itms": _numbered_items(record.rate_lines, precision),
            })
            for record in classified.b2cl
        ),
        "pos", "inv",
    )

    b2cs = [
        {
            "sply_ty": "INTER" if bucket.tax.igst > 0 else "INTRA",
            "pos": bucket.place_of_supply,
            "typ": "OE",
            "rt": bucket.rate,
            "txval": round_amount(bucket.taxable_value, precision),
            **tax_fields(bucket.tax, precision),
        }
        for bucket in classified.b2cs
    ]

    exp = _grouped(
        (
            ("WPAY" if record.with_payment else "WOPAY", {
                "inum": record.number,
                "idt": portal_date(record.invoice_date),
                "val": round_amount(record.invoice_value, precision),
                "sbpcode": record.port_code or "",
                "sbnum": record.shipping_bill_number or "",
                "sbdt": portal_date(record.shipping_bill_date),
                "itms": [
                    {
                        "txval": round_amount(line.taxable_value, precision),
                        "rt": line.rate,
                        "iamt": round_amount(line.tax.igst, precision),
                        "csamt": round_amount(line.tax.cess, precision),
                    }
                    for line in record.rate_lines
                ],
            })
            for record in classified.exports
        ),
        "exp_typ", "inv",
    )

    cdnr = _grouped(
        (
            (note.party_gstin, {
                "ntty": "C" if note.document_type is DocumentType.CREDIT_NOTE else "D",
                "nt_num": note.number,
                "nt_dt": portal_date(note.note_date),
                "val": round_amount(note.note_value, precision),
                "itms": _numbered_items(note.rate_lines, precision),
            })
            for note in classified.notes
        ),
        "ctin", "nt",
    )

    hsn = {
        "data": [
            {
                "num": index,
                "hsn_sc": row.hsn_code,
                "desc": "",
                "qty": row.quantity,
                "val": round_amount(row.total_value, precision),
                "txval": round_amount(row.taxable_value, precision),
                **tax_fields(row.tax, precision),
            }
            for index, row in enumerate(classified.hsn_summary, start=1)
        ],
    }

    return {"b2b": b2b, "b2cl": b2cl, "b2cs": b2cs, "exp": exp, "cdnr": cdnr, "hsn": hsn}


def _invoice_items(group_list: list[dict], child: str) -> Iterable[tuple[dict, dict]]:
    for group in group_list:
        for document in group[child]:
            for item in document["itms"]:
                yield document, item.get("itm_det", item)


def gstr1_totals(sections: Mapping[str, Any]) -> tuple[Decimal, TaxAmounts]:
    """
    Taxable value and tax over the GSTR-1 tables.

    Credit notes in ``cdnr`` subtract; the HSN summary is a restatement
    and is not counted.
    """
    taxable = ZERO
    tax = TaxAmounts()
    for section, child in (("b2b", "inv"), ("b2cl", "inv"), ("exp", "inv")):
        for _, detail in _invoice_items(sections.get(section, []), child):
            taxable += detail["txval"]
            tax = tax + tax_from_fields(detail)
    for bucket in sections.get("b2cs", []):
        taxable += bucket["txval"]
        tax = tax + tax_from_fields(bucket)
    for note, detail in _invoice_items(sections.get("cdnr", []), "nt"):
        line_tax = tax_from_fields(detail)
        if note["ntty"] == "C":
            taxable -= detail["txval"]
            tax = tax - line_tax
        else:
            taxable += detail["txval"]
            tax = tax + line_tax
    return taxable, tax


# =============================================================================
# GSTR-3B
# =============================================================================


def gstr3b_sections(
    outward: OutwardSupplySummary,
    itc: ItcSummary,
    precision: int = 2,
) -> dict[str, Any]:
    """Tables 3.1 and 4 of GSTR-3B.  ``tx_pmt`` is added by ``calculate``."""
    zero_tax = tax_fields(TaxAmounts(), precision)
    sup_details = {
        "osup_det": _supply_fields(outward.taxable_outward, precision),
        "osup_zero": _supply_fields(outward.zero_rated, precision, ("iamt", "csamt")),
        "osup_nil_exmp": _supply_fields(outward.nil_rated_exempted, precision, ()),
        "isup_rev": _supply_fields(outward.reverse_charge, precision),
        "osup_nongst": _supply_fields(outward.non_gst, precision, ()),
    }
    itc_elg = {
        "itc_avl": [
            {"ty": itc_type.value, **tax_fields(itc.available.get(itc_type, TaxAmounts()), precision)}
            for itc_type in ItcType
        ],
        "itc_rev": [
            {"ty": "RUL", **tax_fields(itc.reversed_as_per_rules, precision)},
            {"ty": "OTH", **tax_fields(itc.reversed_others, precision)},
        ],
        "itc_net": tax_fields(itc.net_available, precision),
        "itc_inelg": [
            {"ty": "RUL", **tax_fields(itc.ineligible, precision)},
            {"ty": "OTH", **zero_tax},
        ],
    }
    return {"sup_details": sup_details, "itc_elg": itc_elg}


def liability_from_sections(sections: Mapping[str, Any]) -> TaxAmounts:
    """Table 3.1 liability: taxable, zero-rated and reverse-charge tax."""
    details = sections.get("sup_details", {})
    total = TaxAmounts()
    for key in ("osup_det", "osup_zero", "isup_rev"):
        total = total + tax_from_fields(details.get(key, {}))
    return total


def outward_taxable_from_sections(sections: Mapping[str, Any]) -> Decimal:
    details = sections.get("sup_details", {})
    return sum(
        (Decimal(str(details.get(key, {}).get("txval", ZERO))) for key in ("osup_det", "osup_zero", "isup_rev")),
        ZERO,
    )


def net_itc_from_sections(sections: Mapping[str, Any]) -> TaxAmounts:
    return tax_from_fields(sections.get("itc_elg", {}).get("itc_net", {}))


def tx_pmt_section(netting: NettingResult, precision: int = 2) -> dict[str, Any]:
    """Tax payment table: liability, paid through ITC, paid in cash, credit left."""
    liability = TaxAmounts.from_heads({h.head: h.liability for h in netting.heads})
    return {
        "liab": tax_fields(liability, precision),
        "pditc": tax_fields(netting.paid_through_itc, precision),
        "pdcash": tax_fields(netting.paid_in_cash, precision),
        "itc_bal": tax_fields(netting.unutilized_credit, precision),
        "intr": round_amount(netting.interest, precision),
        "lfee": round_amount(netting.late_fee, precision),
        "pen": round_amount(netting.penalty, precision),
        "tot_cash": round_amount(netting.total_cash, precision),
    }


# =============================================================================
# Storage and payload
# =============================================================================


def _to_float(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Mapping):
        return {key: _to_float(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_to_float(item) for item in value]
    return value


def _revive(value: Any, key: str | None = None) -> Any:
    if isinstance(value, dict):
        return {k: _revive(v, k) for k, v in value.items()}
    if isinstance(value, list):
        return [_revive(item) for item in value]
    if key in NUMERIC_KEYS and isinstance(value, str | int | float) and not isinstance(value, bool):
        return Decimal(str(value))
    return value


def dump_sections(sections: Mapping[str, Any]) -> str:
    """Stored form: JSON with every Decimal written as its exact string."""
    return json.dumps(sections, default=str, sort_keys=True)


def load_sections(document: str | None) -> dict[str, Any]:
    if not document:
        return {}
    return _revive(json.loads(document))


def build_filing_payload(
    return_type: ReturnType,
    gstin: str,
    portal_period: str,
    sections: Mapping[str, Any],
) -> dict[str, Any]:
    """
    Portal JSON for a return.

    GSTR-1 -> ``{gstin, fp, b2b, b2cl, b2cs, exp, cdnr, hsn}``;
    GSTR-3B -> ``{gstin, ret_period, sup_details, itc_elg, tx_pmt}``.
    Missing sections are emitted empty.
    """
    if return_type is ReturnType.GSTR1:
        payload: dict[str, Any] = {"gstin": gstin, "fp": portal_period}
        for name in GSTR1_SECTIONS:
            payload[name] = sections.get(name, {"data": []} if name == "hsn" else [])
    else:
        payload = {"gstin": gstin, "ret_period": portal_period}
        for name in GSTR3B_SECTIONS:
            payload[name] = sections.get(name, {})
    logger.info("filing_payload_built", extra={
        "return_type": return_type.value,
        "gstin": gstin,
        "period": portal_period,
    })
    return _to_float(payload)
