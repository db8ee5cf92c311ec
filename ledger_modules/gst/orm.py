"""
SQLAlchemy ORM persistence models for the GST module.

Responsibility
--------------
Persist sales/purchase invoices with their items, and GSTR-1/GSTR-3B
returns with their stored sections and totals.

Architecture position
---------------------
**Modules layer** -- ORM models consumed by ``GstService``.  Inherits from
``TenantScopedBase`` (kernel db layer).

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* Enum fields stored as String(50) holding the enum value.
* One return per (tenant, GSTIN, return type, period).
* Invoice numbers are unique per (tenant, registration, kind).
* Return sections are stored as JSON text with amounts written as exact
  decimal strings (see ``ledger_modules.gst.filing.dump_sections``).
"""

import json
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TenantScopedBase, UUIDString


# ---------------------------------------------------------------------------
# InvoiceModel
# ---------------------------------------------------------------------------


class InvoiceModel(TenantScopedBase):
    """
    A sales or purchase document of one GST registration.

    Maps to the ``Invoice`` snapshot in ``ledger_kernel.domain.invoices``.
    ``reported_gstr1`` / ``reported_gstr3b`` are set when a return that
    includes the invoice is filed; a reported invoice is immutable.
    """

    __tablename__ = "gst_invoices"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "registration_gstin", "kind", "number",
            name="uq_gst_invoice_tenant_gstin_kind_number",
        ),
        Index("idx_gst_invoice_tenant_date", "tenant_id", "registration_gstin", "invoice_date"),
    )

    registration_gstin: Mapped[str] = mapped_column(String(15), nullable=False)
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    number: Mapped[str] = mapped_column(String(100), nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    party_gstin: Mapped[str | None] = mapped_column(String(15), nullable=True)
    party_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    place_of_supply: Mapped[str | None] = mapped_column(String(50), nullable=True)
    invoice_type: Mapped[str] = mapped_column(String(50), nullable=False, default="Regular")
    document_type: Mapped[str] = mapped_column(String(50), nullable=False, default="Invoice")
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="Issued")
    reverse_charge: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    itc_eligibility: Mapped[str] = mapped_column(String(50), nullable=False, default="Eligible")
    account_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    export_with_payment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    port_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    shipping_bill_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    shipping_bill_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    amount_paid: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    reported_gstr1: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reported_gstr3b: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    items: Mapped[list["InvoiceItemModel"]] = relationship(
        "InvoiceItemModel",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItemModel.sequence",
        lazy="selectin",
    )

    def to_dto(self):
        from ledger_kernel.domain.invoices import (
            DocumentType,
            Invoice,
            InvoiceKind,
            InvoiceStatus,
            InvoiceType,
            ItcEligibility,
            ReturnType,
        )

        reported = set()
        if self.reported_gstr1:
            reported.add(ReturnType.GSTR1)
        if self.reported_gstr3b:
            reported.add(ReturnType.GSTR3B)
        return Invoice(
            invoice_id=str(self.id),
            number=self.number,
            invoice_date=self.invoice_date,
            kind=InvoiceKind(self.kind),
            items=tuple(item.to_dto() for item in self.items),
            party_gstin=self.party_gstin,
            party_name=self.party_name,
            place_of_supply=self.place_of_supply,
            invoice_type=InvoiceType(self.invoice_type),
            document_type=DocumentType(self.document_type),
            status=InvoiceStatus(self.status),
            reverse_charge=self.reverse_charge,
            itc_eligibility=ItcEligibility(self.itc_eligibility),
            account_id=self.account_id,
            export_with_payment=self.export_with_payment,
            port_code=self.port_code,
            shipping_bill_number=self.shipping_bill_number,
            shipping_bill_date=self.shipping_bill_date,
            amount_paid=self.amount_paid,
            reported_in=frozenset(reported),
        )

    def apply_dto(self, dto) -> None:
        """Copy the editable header fields of ``dto`` onto this row; items are replaced separately."""
        self.number = dto.number
        self.invoice_date = dto.invoice_date
        self.kind = dto.kind.value
        self.party_gstin = dto.party_gstin
        self.party_name = dto.party_name
        self.place_of_supply = dto.place_of_supply
        self.invoice_type = dto.invoice_type.value
        self.document_type = dto.document_type.value
        self.status = dto.status.value
        self.reverse_charge = dto.reverse_charge
        self.itc_eligibility = dto.itc_eligibility.value
        self.account_id = dto.account_id
        self.export_with_payment = dto.export_with_payment
        self.port_code = dto.port_code
        self.shipping_bill_number = dto.shipping_bill_number
        self.shipping_bill_date = dto.shipping_bill_date
        self.amount_paid = dto.amount_paid

    @classmethod
    def from_dto(cls, dto, tenant_id: UUID, registration_gstin: str, actor_id: UUID) -> "InvoiceModel":
        model = cls(
            id=UUID(dto.invoice_id),
            tenant_id=tenant_id,
            registration_gstin=registration_gstin,
            created_by_id=actor_id,
        )
        model.apply_dto(dto)
        model.items = InvoiceItemModel.from_items(tenant_id, actor_id, dto.items)
        return model

    def __repr__(self) -> str:
        return f"<InvoiceModel {self.kind} {self.number} {self.invoice_date} [{self.status}]>"


class InvoiceItemModel(TenantScopedBase):
    """One line of an invoice."""

    __tablename__ = "gst_invoice_items"

    __table_args__ = (
        UniqueConstraint("invoice_id", "sequence", name="uq_gst_invoice_item_sequence"),
    )

    invoice_id: Mapped[UUID] = mapped_column(ForeignKey("gst_invoices.id"), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    hsn_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    taxable_value: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    gst_rate: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    igst: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    cgst: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    sgst: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    cess: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    invoice: Mapped["InvoiceModel"] = relationship("InvoiceModel", back_populates="items")

    def to_dto(self):
        from ledger_kernel.domain.invoices import InvoiceItem
        from ledger_kernel.domain.values import TaxAmounts

        return InvoiceItem(
            taxable_value=self.taxable_value,
            gst_rate=self.gst_rate,
            tax=TaxAmounts(igst=self.igst, cgst=self.cgst, sgst=self.sgst, cess=self.cess),
            description=self.description,
            hsn_code=self.hsn_code,
            quantity=self.quantity,
        )

    @classmethod
    def from_items(cls, tenant_id: UUID, actor_id: UUID, items) -> list["InvoiceItemModel"]:
        return [
            cls(
                tenant_id=tenant_id,
                sequence=index,
                description=item.description,
                hsn_code=item.hsn_code,
                quantity=item.quantity,
                taxable_value=item.taxable_value,
                gst_rate=item.gst_rate,
                igst=item.tax.igst,
                cgst=item.tax.cgst,
                sgst=item.tax.sgst,
                cess=item.tax.cess,
                created_by_id=actor_id,
            )
            for index, item in enumerate(items)
        ]


# ---------------------------------------------------------------------------
# GstReturnModel
# ---------------------------------------------------------------------------


class GstReturnModel(TenantScopedBase):
    """
    A GSTR-1 or GSTR-3B return.

    Maps to the ``GstReturn`` DTO in ``ledger_modules.gst.models``.

    Guarantees:
        - ``status`` changes only through ``compare_and_set_status``.
        - ``sections_json`` is replaced as a whole on populate and calculate.
    """

    __tablename__ = "gst_returns"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "gstin", "return_type", "return_period",
            name="uq_gst_return_tenant_gstin_type_period",
        ),
        Index("idx_gst_return_tenant_fy", "tenant_id", "financial_year"),
    )

    gstin: Mapped[str] = mapped_column(String(15), nullable=False)
    return_type: Mapped[str] = mapped_column(String(20), nullable=False)
    return_period: Mapped[str] = mapped_column(String(7), nullable=False)
    financial_year: Mapped[str] = mapped_column(String(7), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="Not Filed")
    sections_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    included_invoice_ids_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    warnings_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    total_taxable_value: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_igst: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_cgst: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_sgst: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_cess: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_tax_liability: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_itc: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_payable: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    acknowledgement_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    acknowledgement_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    filed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    filed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    filing_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self, precision: int = 2):
        """
        Rebuild the DTO.  Totals are quantized to ``precision`` so a stored
        return reads back exactly as ``calculate`` produced it.
        """
        from ledger_engines.arithmetic import round_amount
        from ledger_kernel.domain.diagnostics import ExclusionWarning
        from ledger_kernel.domain.fiscal import ReturnPeriod
        from ledger_kernel.domain.invoices import ReturnType
        from ledger_kernel.domain.values import TaxAmounts
        from ledger_modules.gst.filing import load_sections
        from ledger_modules.gst.models import GstReturn, GstReturnStatus, ReturnTotals

        return GstReturn(
            return_id=self.id,
            tenant_id=self.tenant_id,
            gstin=self.gstin,
            return_type=ReturnType(self.return_type),
            period=ReturnPeriod.parse(self.return_period),
            financial_year=self.financial_year,
            created_by=self.created_by_id,
            status=GstReturnStatus(self.status),
            sections=load_sections(self.sections_json),
            totals=ReturnTotals(
                taxable_value=round_amount(self.total_taxable_value, precision),
                tax=TaxAmounts(
                    igst=round_amount(self.total_igst, precision),
                    cgst=round_amount(self.total_cgst, precision),
                    sgst=round_amount(self.total_sgst, precision),
                    cess=round_amount(self.total_cess, precision),
                ),
                tax_liability=round_amount(self.total_tax_liability, precision),
                itc=round_amount(self.total_itc, precision),
                payable=round_amount(self.total_payable, precision),
            ),
            included_invoice_ids=tuple(json.loads(self.included_invoice_ids_json or "[]")),
            warnings=tuple(
                ExclusionWarning(**warning) for warning in json.loads(self.warnings_json or "[]")
            ),
            acknowledgement_number=self.acknowledgement_number,
            acknowledgement_date=self.acknowledgement_date,
            filed_by=self.filed_by_id,
            filed_at=self.filed_at,
            filing_error=self.filing_error,
        )

    @staticmethod
    def content_values(dto) -> dict:
        """Column values for everything populate/calculate may change."""
        from ledger_modules.gst.filing import dump_sections

        return {
            "sections_json": dump_sections(dto.sections),
            "included_invoice_ids_json": json.dumps(list(dto.included_invoice_ids)),
            "warnings_json": json.dumps([
                {"record_id": w.record_id, "code": w.code, "message": w.message}
                for w in dto.warnings
            ]),
            "total_taxable_value": dto.totals.taxable_value,
            "total_igst": dto.totals.tax.igst,
            "total_cgst": dto.totals.tax.cgst,
            "total_sgst": dto.totals.tax.sgst,
            "total_cess": dto.totals.tax.cess,
            "total_tax_liability": dto.totals.tax_liability,
            "total_itc": dto.totals.itc,
            "total_payable": dto.totals.payable,
            "filing_error": dto.filing_error,
        }

    @classmethod
    def from_dto(cls, dto) -> "GstReturnModel":
        return cls(
            id=dto.return_id,
            tenant_id=dto.tenant_id,
            gstin=dto.gstin,
            return_type=dto.return_type.value,
            return_period=dto.period.label,
            financial_year=dto.financial_year,
            status=dto.status.value,
            created_by_id=dto.created_by,
            **cls.content_values(dto),
        )

    def __repr__(self) -> str:
        return f"<GstReturnModel {self.return_type} {self.gstin} {self.return_period} [{self.status}]>"
