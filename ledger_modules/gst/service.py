"""
GST Module Service (``ledger_modules.gst.service``).

Responsibility
--------------
Persist GST invoices and returns, and drive returns through their
lifecycle: create, populate, calculate, generate filing JSON, mark
filed, mark filing error.  Also serves per-financial-year statistics and
the receivable/payable documents that aging reports are built from.

Architecture position
---------------------
**Modules layer** -- thin glue between the pure functions in
``returns.py`` and the SQLAlchemy models in ``orm.py``.
Constructor: ``session`` + ``clock`` + ``config`` + ``fiscal_policy``.

Invariants enforced
-------------------
* Each public write method owns the transaction boundary
  (``commit`` on success, ``rollback`` and re-raise on any exception).
* Every return status change is a compare-and-set UPDATE.
* Filing a return marks exactly its included invoices as reported, in
  the same transaction as the status change.
* Every query is filtered by ``tenant_id``.

Failure modes
-------------
* ``RegistrationNotFoundError`` for an invoice without a usable GSTIN.
* ``InvalidIdentifierError`` for a new invoice whose id is not a UUID;
  a malformed id on lookup is ``RecordNotFoundError``.
* ``ImmutableRecordError`` for any write to a Filed return or a reported
  invoice.
* ``InvalidReturnPeriodError`` / ``InvalidFiscalYearError`` on create.
* ``RecordNotFoundError`` / ``StatusConflictError`` from the store.

Audit relevance
---------------
Structured log events ``gst_return_<action>`` carry the return id,
actor, and resulting status.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ledger_engines.aging import AgingDocument
from ledger_engines.arithmetic import ZERO, Number, to_decimal
from ledger_kernel.db.status_store import compare_and_set_status
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.fiscal import FiscalYearPolicy, ReturnPeriod, validate_fiscal_year
from ledger_kernel.domain.invoices import (
    DocumentType,
    Invoice,
    InvoiceKind,
    InvoiceStatus,
    ReturnType,
)
from ledger_kernel.domain.values import TaxAmounts, parse_enum, parse_record_id
from ledger_kernel.exceptions import (
    InvalidComputationInputError,
    InvalidFiscalYearError,
    InvalidIdentifierError,
    RecordNotFoundError,
    RegistrationNotFoundError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_modules.gst import returns
from ledger_modules.gst.config import GstConfig
from ledger_modules.gst.models import GstReturn, GstReturnStatistics, GstReturnStatus
from ledger_modules.gst.orm import GstReturnModel, InvoiceItemModel, InvoiceModel
from ledger_modules.journal.service import JournalService

logger = get_logger("modules.gst.service")

_REPORTED_FLAG = {
    ReturnType.GSTR1: "reported_gstr1",
    ReturnType.GSTR3B: "reported_gstr3b",
}


class GstService:
    """
    GST invoice and return service.

    Contract
    --------
    * Write methods return the resulting DTO.
    * ``generate_filing_json`` is a read and works on Filed returns.

    Guarantees
    ----------
    * The default financial year comes from the injected
      ``FiscalYearPolicy``; the service never reads today's date for it.
    * Clock is injectable for deterministic testing; it supplies audit
      timestamps only.

    Non-goals
    ---------
    * Does NOT submit anything to the statutory portal.
    * Does NOT authorize the actor (authorization collaborator).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: GstConfig | None = None,
        fiscal_policy: FiscalYearPolicy | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or GstConfig.with_defaults()
        self._fiscal_policy = fiscal_policy or FiscalYearPolicy(self._clock.now().date())
        self._journal = JournalService(session, self._clock)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _invoice_model(self, tenant_id: UUID, invoice_id: str) -> InvoiceModel:
        record_id = parse_record_id(invoice_id)
        if record_id is None:
            raise RecordNotFoundError(returns.INVOICE_ENTITY_TYPE, str(invoice_id))
        model = self._session.execute(
            select(InvoiceModel).where(
                InvoiceModel.id == record_id,
                InvoiceModel.tenant_id == tenant_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise RecordNotFoundError(returns.INVOICE_ENTITY_TYPE, str(invoice_id))
        return model

    def _return_model(self, tenant_id: UUID, return_id: UUID) -> GstReturnModel:
        model = self._session.execute(
            select(GstReturnModel).where(
                GstReturnModel.id == return_id,
                GstReturnModel.tenant_id == tenant_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise RecordNotFoundError(returns.ENTITY_TYPE, str(return_id))
        return model

    def _registration(self, record_id: str, gstin: str | None) -> str:
        value = (gstin or "").strip()
        if len(value) != self._config.gstin_length:
            raise RegistrationNotFoundError(record_id)
        return value

    def _apply(
        self,
        tenant_id: UUID,
        before: GstReturn,
        after: GstReturn,
        actor_id: UUID,
        values: dict,
    ) -> None:
        compare_and_set_status(
            self._session,
            GstReturnModel,
            entity_type=returns.ENTITY_TYPE,
            tenant_id=tenant_id,
            record_id=before.return_id,
            expected_status=before.status,
            new_status=after.status,
            values={"updated_by_id": actor_id, **values},
        )

    def _finish(self, after: GstReturn, actor_id: UUID, action: str) -> GstReturn:
        self._session.commit()
        logger.info(f"gst_return_{action}", extra={
            "return_id": str(after.return_id),
            "actor_id": str(actor_id),
            "return_type": after.return_type.value,
            "status": after.status.value,
        })
        return after

    def _transition(self, tenant_id: UUID, return_id: UUID, actor_id: UUID, action: str, step) -> GstReturn:
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id, record_id=return_id):
            try:
                before = self._return_model(tenant_id, return_id).to_dto(self._config.precision)
                after, values = step(before)
                self._apply(tenant_id, before, after, actor_id, values)
                return self._finish(after, actor_id, action)
            except Exception:
                self._session.rollback()
                raise

    # =========================================================================
    # Invoices
    # =========================================================================

    def record_invoice(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        registration_gstin: str | None,
        invoice: Invoice,
    ) -> Invoice:
        """
        Store a sales or purchase document under a GST registration.

        Raises:
            InvalidIdentifierError: ``invoice.invoice_id`` is set but is not
                a UUID.  Leave it blank to have one assigned.
            RegistrationNotFoundError: ``registration_gstin`` is blank or
                not a full GSTIN.
        """
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id):
            try:
                if invoice.invoice_id and parse_record_id(invoice.invoice_id) is None:
                    raise InvalidIdentifierError(returns.INVOICE_ENTITY_TYPE, invoice.invoice_id)
                gstin = self._registration(invoice.invoice_id, registration_gstin)
                stored = replace(invoice, invoice_id=invoice.invoice_id or str(uuid4()), reported_in=frozenset())
                model = InvoiceModel.from_dto(stored, tenant_id, gstin, actor_id)
                self._session.add(model)
                self._session.commit()
                logger.info("gst_invoice_recorded", extra={
                    "invoice_id": stored.invoice_id,
                    "kind": stored.kind.value,
                    "number": stored.number,
                    "invoice_value": str(stored.invoice_value),
                })
                return model.to_dto()
            except Exception:
                self._session.rollback()
                raise

    def update_invoice(self, tenant_id: UUID, actor_id: UUID, invoice: Invoice) -> Invoice:
        """Replace an unreported invoice's content, items included."""
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id, record_id=invoice.invoice_id):
            try:
                model = self._invoice_model(tenant_id, invoice.invoice_id)
                returns.ensure_invoice_mutable(model.to_dto(), "update")
                model.apply_dto(invoice)
                model.items.clear()
                self._session.flush()
                model.items.extend(InvoiceItemModel.from_items(tenant_id, actor_id, invoice.items))
                model.updated_by_id = actor_id
                self._session.commit()
                logger.info("gst_invoice_updated", extra={
                    "invoice_id": invoice.invoice_id,
                    "item_count": len(invoice.items),
                })
                return model.to_dto()
            except Exception:
                self._session.rollback()
                raise

    def record_payment(self, tenant_id: UUID, actor_id: UUID, invoice_id: str, amount: Number) -> Invoice:
        """
        Add a settlement against an invoice.

        Payments change the outstanding balance only, so reported invoices
        accept them.
        """
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id, record_id=invoice_id):
            try:
                paid = to_decimal(amount)
                if paid <= ZERO:
                    raise InvalidComputationInputError("amount", paid, "payment must be positive")
                model = self._invoice_model(tenant_id, invoice_id)
                model.amount_paid = model.amount_paid + paid
                model.updated_by_id = actor_id
                self._session.commit()
                logger.info("gst_invoice_payment_recorded", extra={
                    "invoice_id": str(invoice_id),
                    "amount": str(paid),
                    "amount_paid": str(model.amount_paid),
                })
                return model.to_dto()
            except Exception:
                self._session.rollback()
                raise

    def get_invoice(self, tenant_id: UUID, invoice_id: str) -> Invoice:
        return self._invoice_model(tenant_id, invoice_id).to_dto()

    def list_invoices(
        self,
        tenant_id: UUID,
        registration_gstin: str | None = None,
        kind: InvoiceKind | str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[Invoice]:
        stmt = select(InvoiceModel).where(InvoiceModel.tenant_id == tenant_id)
        if registration_gstin is not None:
            stmt = stmt.where(InvoiceModel.registration_gstin == registration_gstin)
        if kind is not None:
            stmt = stmt.where(InvoiceModel.kind == parse_enum(InvoiceKind, kind, "kind").value)
        if start is not None:
            stmt = stmt.where(InvoiceModel.invoice_date >= start)
        if end is not None:
            stmt = stmt.where(InvoiceModel.invoice_date <= end)
        stmt = stmt.order_by(InvoiceModel.invoice_date, InvoiceModel.number).execution_options(
            populate_existing=True,
        )
        return [model.to_dto() for model in self._session.execute(stmt).scalars()]

    # =========================================================================
    # Returns
    # =========================================================================

    def create_return(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        gstin: str,
        return_type: ReturnType | str,
        return_period: str,
        financial_year: str | None = None,
    ) -> GstReturn:
        """
        Create a Not Filed return.

        ``financial_year`` defaults to the fiscal year containing the
        period; a supplied label must match it.
        """
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id):
            try:
                kind = parse_enum(ReturnType, return_type, "return_type")
                period = ReturnPeriod.parse(return_period)
                expected_fy = period.fiscal_year(self._fiscal_policy)
                if financial_year is not None and validate_fiscal_year(financial_year) != expected_fy:
                    raise InvalidFiscalYearError(financial_year)
                gst_return = GstReturn(
                    return_id=uuid4(),
                    tenant_id=tenant_id,
                    gstin=self._registration(f"{kind.value} {return_period}", gstin),
                    return_type=kind,
                    period=period,
                    financial_year=expected_fy,
                    created_by=actor_id,
                )
                self._session.add(GstReturnModel.from_dto(gst_return))
                self._session.commit()
                logger.info("gst_return_created", extra={
                    "return_id": str(gst_return.return_id),
                    "return_type": kind.value,
                    "period": period.label,
                    "financial_year": expected_fy,
                })
                return gst_return
            except Exception:
                self._session.rollback()
                raise

    def get_return(self, tenant_id: UUID, return_id: UUID) -> GstReturn:
        return self._return_model(tenant_id, return_id).to_dto(self._config.precision)

    def list_returns(
        self,
        tenant_id: UUID,
        gstin: str | None = None,
        return_type: ReturnType | str | None = None,
        financial_year: str | None = None,
        status: GstReturnStatus | str | None = None,
    ) -> list[GstReturn]:
        stmt = select(GstReturnModel).where(GstReturnModel.tenant_id == tenant_id)
        if gstin is not None:
            stmt = stmt.where(GstReturnModel.gstin == gstin)
        if return_type is not None:
            stmt = stmt.where(
                GstReturnModel.return_type == parse_enum(ReturnType, return_type, "return_type").value
            )
        if financial_year is not None:
            stmt = stmt.where(GstReturnModel.financial_year == validate_fiscal_year(financial_year))
        if status is not None:
            stmt = stmt.where(
                GstReturnModel.status == parse_enum(GstReturnStatus, status, "status").value
            )
        stmt = stmt.order_by(GstReturnModel.gstin, GstReturnModel.return_period).execution_options(
            populate_existing=True,
        )
        return [model.to_dto(self._config.precision) for model in self._session.execute(stmt).scalars()]

    def delete_return(self, tenant_id: UUID, return_id: UUID, actor_id: UUID) -> None:
        """Delete a return that has not been filed."""
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id, record_id=return_id):
            try:
                model = self._return_model(tenant_id, return_id)
                current = model.to_dto(self._config.precision)
                returns.ensure_not_filed(current, "delete")
                # the row must still be in the status just checked
                compare_and_set_status(
                    self._session,
                    GstReturnModel,
                    entity_type=returns.ENTITY_TYPE,
                    tenant_id=tenant_id,
                    record_id=return_id,
                    expected_status=current.status,
                    new_status=current.status,
                )
                self._session.delete(model)
                self._session.commit()
                logger.info("gst_return_deleted", extra={"return_id": str(return_id)})
            except Exception:
                self._session.rollback()
                raise

    def populate(
        self,
        tenant_id: UUID,
        return_id: UUID,
        actor_id: UUID,
        reversed_as_per_rules: TaxAmounts = TaxAmounts(),
        reversed_others: TaxAmounts = TaxAmounts(),
    ) -> GstReturn:
        """Rebuild the return's sections from the period's invoices."""
        def step(current: GstReturn):
            invoices = self.list_invoices(
                tenant_id,
                registration_gstin=current.gstin,
                start=current.period.start_date,
                end=current.period.end_date,
            )
            populated = returns.populate(
                current,
                invoices,
                self._config,
                accounts=self._journal.load_accounts(tenant_id),
                reversed_as_per_rules=reversed_as_per_rules,
                reversed_others=reversed_others,
            )
            return populated, GstReturnModel.content_values(populated)

        return self._transition(tenant_id, return_id, actor_id, "populated", step)

    def calculate(
        self,
        tenant_id: UUID,
        return_id: UUID,
        actor_id: UUID,
        interest: Number = ZERO,
        late_fee: Number = ZERO,
        penalty: Number = ZERO,
        brought_forward: TaxAmounts = TaxAmounts(),
    ) -> GstReturn:
        def step(current: GstReturn):
            calculated = returns.calculate(
                current,
                precision=self._config.precision,
                interest=interest,
                late_fee=late_fee,
                penalty=penalty,
                brought_forward=brought_forward,
            )
            return calculated, GstReturnModel.content_values(calculated)

        return self._transition(tenant_id, return_id, actor_id, "calculated", step)

    def generate_filing_json(self, tenant_id: UUID, return_id: UUID) -> dict:
        return returns.filing_payload(self.get_return(tenant_id, return_id))

    def mark_filed(
        self,
        tenant_id: UUID,
        return_id: UUID,
        actor_id: UUID,
        acknowledgement_number: str | None,
        acknowledgement_date: date | None,
    ) -> GstReturn:
        """
        Ready for Review -> Filed, marking the included invoices reported.

        Raises:
            MissingFieldError: acknowledgement number or date absent.
        """
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id, record_id=return_id):
            try:
                before = self._return_model(tenant_id, return_id).to_dto(self._config.precision)
                after = returns.mark_filed(
                    before, acknowledgement_number, acknowledgement_date, actor_id, self._clock.now(),
                )
                self._apply(tenant_id, before, after, actor_id, {
                    "acknowledgement_number": after.acknowledgement_number,
                    "acknowledgement_date": after.acknowledgement_date,
                    "filed_by_id": after.filed_by,
                    "filed_at": after.filed_at,
                    "filing_error": None,
                })
                if after.included_invoice_ids:
                    self._session.execute(
                        update(InvoiceModel)
                        .where(
                            InvoiceModel.tenant_id == tenant_id,
                            InvoiceModel.id.in_([UUID(i) for i in after.included_invoice_ids]),
                        )
                        .values({_REPORTED_FLAG[after.return_type]: True, "updated_by_id": actor_id})
                        .execution_options(synchronize_session=False)
                    )
                return self._finish(after, actor_id, "filed")
            except Exception:
                self._session.rollback()
                raise

    def mark_filing_error(self, tenant_id: UUID, return_id: UUID, actor_id: UUID, error_message: str = "") -> GstReturn:
        def step(current: GstReturn):
            failed = returns.mark_filing_error(current, error_message)
            return failed, {"filing_error": failed.filing_error}

        return self._transition(tenant_id, return_id, actor_id, "filing_failed", step)

    def statistics(
        self,
        tenant_id: UUID,
        return_type: ReturnType | str,
        financial_year: str | None = None,
    ) -> GstReturnStatistics:
        """Counts by status and totals; the year defaults from the fiscal policy."""
        kind = parse_enum(ReturnType, return_type, "return_type")
        label = validate_fiscal_year(financial_year or self._fiscal_policy.current_label())
        stats = returns.compute_statistics(
            self.list_returns(tenant_id, return_type=kind, financial_year=label), label, kind,
        )
        logger.info("gst_statistics_computed", extra={
            "financial_year": label,
            "return_type": kind.value,
            "total_returns": stats.total_returns,
        })
        return stats

    # =========================================================================
    # Aging source
    # =========================================================================

    def aging_documents(
        self,
        tenant_id: UUID,
        kind: InvoiceKind | str,
        as_of: date,
        registration_gstin: str | None = None,
    ) -> list[AgingDocument]:
        """
        Open invoices dated on or before ``as_of``.

        Sales count once Issued, purchases once Recorded or Verified.
        Credit and debit notes are left out.
        """
        side = parse_enum(InvoiceKind, kind, "kind")
        open_statuses = (
            {InvoiceStatus.ISSUED} if side is InvoiceKind.SALES
            else {InvoiceStatus.RECORDED, InvoiceStatus.VERIFIED}
        )
        documents = []
        for invoice in self.list_invoices(tenant_id, registration_gstin, side, end=as_of):
            if invoice.status not in open_statuses or invoice.document_type is not DocumentType.INVOICE:
                continue
            if invoice.invoice_value - invoice.amount_paid <= ZERO:
                continue
            documents.append(AgingDocument(
                document_id=invoice.invoice_id,
                party_id=invoice.party_gstin or invoice.party_name,
                party_name=invoice.party_name,
                document_date=invoice.invoice_date,
                amount=invoice.invoice_value,
                amount_paid=invoice.amount_paid,
                reference=invoice.number,
            ))
        return documents
