"""
Journal Module Service (``ledger_modules.journal.service``).

Responsibility
--------------
Persist journal entries and drive them through their lifecycle:
create, update, delete, submit, approve, reject, post, unpost.  Also
owns the chart of accounts and cost centres, and serves the posted
ledger (``list_postings``) that reporting reads.

Architecture position
---------------------
**Modules layer** -- thin glue between the pure lifecycle functions in
``lifecycle.py`` and the SQLAlchemy models in ``orm.py``.
Constructor: ``session`` + ``clock`` + ``config`` (``JournalConfig``).

Invariants enforced
-------------------
* Each public write method owns the transaction boundary
  (``commit`` on success, ``rollback`` and re-raise on any exception).
* Every status change is a compare-and-set UPDATE; of two concurrent
  callers starting from the same status exactly one succeeds.
* Every query is filtered by ``tenant_id``.

Failure modes
-------------
* Validation errors from the entry validator -> nothing written.
* ``RecordNotFoundError`` for an id unknown to the tenant.
* ``StatusConflictError`` when the stored status moved under the caller.
* ``ImmutableRecordError`` / ``InvalidStateTransitionError`` from the
  lifecycle functions.

Audit relevance
---------------
Structured log events ``journal_entry_<action>`` carry the entry id,
actor, and resulting status.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_engines.entry_validator import require_valid_entry
from ledger_kernel.db.status_store import compare_and_set_status
from ledger_kernel.domain.accounts import Account, AccountSubtype
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.ledger import EntryLine, LedgerPosting
from ledger_kernel.domain.polarity import AccountType
from ledger_kernel.domain.values import parse_enum, parse_record_id
from ledger_kernel.exceptions import InvalidIdentifierError, RecordNotFoundError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_modules.journal import lifecycle
from ledger_modules.journal.config import JournalConfig
from ledger_modules.journal.models import JournalEntry, JournalStatus, SourceType
from ledger_modules.journal.orm import (
    AccountModel,
    CostCenterModel,
    JournalEntryModel,
    JournalLineModel,
)

logger = get_logger("modules.journal.service")


class JournalService:
    """
    Journal entry persistence and lifecycle service.

    Contract
    --------
    * Write methods return the resulting ``JournalEntry`` DTO.
    * Read methods never modify the session.

    Guarantees
    ----------
    * Lines are validated against the tenant's non-archived accounts and
      known cost centres before anything is written.
    * Clock is injectable for deterministic testing; it supplies audit
      timestamps only.

    Non-goals
    ---------
    * Does NOT authorize the actor (authorization collaborator).
    * Does NOT compute balances (``ledger_engines.balances``).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: JournalConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or JournalConfig.with_defaults()
        self._precision = self._config.balance_precision

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _get_model(self, tenant_id: UUID, entry_id: UUID) -> JournalEntryModel:
        model = self._session.execute(
            select(JournalEntryModel).where(
                JournalEntryModel.id == entry_id,
                JournalEntryModel.tenant_id == tenant_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise RecordNotFoundError(lifecycle.ENTITY_TYPE, str(entry_id))
        return model

    def _cost_center_codes(self, tenant_id: UUID) -> frozenset[str]:
        rows = self._session.execute(
            select(CostCenterModel.code).where(CostCenterModel.tenant_id == tenant_id)
        ).scalars()
        return frozenset(rows)

    def _apply(
        self,
        tenant_id: UUID,
        before: JournalEntry,
        after: JournalEntry,
        actor_id: UUID,
        action: str,
        values: dict,
    ) -> JournalEntry:
        compare_and_set_status(
            self._session,
            JournalEntryModel,
            entity_type=lifecycle.ENTITY_TYPE,
            tenant_id=tenant_id,
            record_id=before.entry_id,
            expected_status=before.status,
            new_status=after.status,
            values={"updated_by_id": actor_id, **values},
        )
        self._session.commit()
        logger.info(f"journal_entry_{action}", extra={
            "entry_id": str(after.entry_id),
            "actor_id": str(actor_id),
            "status": after.status.value,
        })
        return after

    def _transition(self, tenant_id: UUID, entry_id: UUID, actor_id: UUID, action: str, step) -> JournalEntry:
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id, record_id=entry_id):
            try:
                before = self._get_model(tenant_id, entry_id).to_dto()
                after, values = step(before)
                return self._apply(tenant_id, before, after, actor_id, action, values)
            except Exception:
                self._session.rollback()
                raise

    # =========================================================================
    # Chart of accounts
    # =========================================================================

    def create_account(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        code: str,
        name: str,
        account_type: AccountType | str,
        subtype: AccountSubtype | str | None = None,
        parent_id: str | None = None,
    ) -> Account:
        try:
            kind = parse_enum(AccountType, account_type, "account_type")
            placement = parse_enum(AccountSubtype, subtype, "subtype") if subtype else None
            parent = parse_record_id(parent_id) if parent_id else None
            if parent_id and parent is None:
                raise InvalidIdentifierError("account", parent_id)
            model = AccountModel(
                tenant_id=tenant_id,
                code=code,
                name=name,
                account_type=kind.value,
                subtype=placement.value if placement else None,
                parent_id=parent,
                created_by_id=actor_id,
            )
            self._session.add(model)
            self._session.commit()
            logger.info("account_created", extra={
                "account_id": str(model.id),
                "account_code": code,
                "account_type": kind.value,
            })
            return model.to_dto()
        except Exception:
            self._session.rollback()
            raise

    def archive_account(self, tenant_id: UUID, actor_id: UUID, account_id: str) -> Account:
        """Archive an account; it keeps resolving for historical postings."""
        try:
            record_id = parse_record_id(account_id)
            model = None if record_id is None else self._session.execute(
                select(AccountModel).where(
                    AccountModel.id == record_id,
                    AccountModel.tenant_id == tenant_id,
                )
            ).scalar_one_or_none()
            if model is None:
                raise RecordNotFoundError("account", account_id)
            model.is_archived = True
            model.updated_by_id = actor_id
            self._session.commit()
            logger.info("account_archived", extra={"account_id": account_id})
            return model.to_dto()
        except Exception:
            self._session.rollback()
            raise

    def load_accounts(self, tenant_id: UUID) -> dict[str, Account]:
        """All accounts of the tenant, archived ones included, keyed by id."""
        rows = self._session.execute(
            select(AccountModel).where(AccountModel.tenant_id == tenant_id).order_by(AccountModel.code)
        ).scalars()
        accounts = {}
        for model in rows:
            account = model.to_dto()
            accounts[account.account_id] = account
        return accounts

    def create_cost_center(self, tenant_id: UUID, actor_id: UUID, code: str, name: str) -> str:
        try:
            self._session.add(CostCenterModel(
                tenant_id=tenant_id, code=code, name=name, created_by_id=actor_id,
            ))
            self._session.commit()
            return code
        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Entry CRUD
    # =========================================================================

    def create_entry(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        entry_date: date,
        lines: Sequence[EntryLine],
        narration: str = "",
        reference_number: str | None = None,
        source_type: SourceType | str = SourceType.MANUAL,
    ) -> JournalEntry:
        """
        Validate and store a new Draft entry.

        Raises:
            InsufficientLinesError, InvalidLineError, UnbalancedEntryError,
            AccountNotFoundError, CostCenterNotFoundError.
        """
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id):
            try:
                require_valid_entry(
                    tuple(lines),
                    self._precision,
                    accounts=self.load_accounts(tenant_id),
                    cost_centers=self._cost_center_codes(tenant_id),
                )
                entry = JournalEntry(
                    entry_id=uuid4(),
                    tenant_id=tenant_id,
                    entry_date=entry_date,
                    lines=tuple(lines),
                    created_by=actor_id,
                    narration=narration,
                    reference_number=reference_number,
                    source_type=parse_enum(SourceType, source_type, "source_type"),
                    created_at=self._clock.now(),
                )
                self._session.add(JournalEntryModel.from_dto(entry))
                self._session.commit()
                logger.info("journal_entry_created", extra={
                    "entry_id": str(entry.entry_id),
                    "line_count": len(entry.lines),
                    "total_amount": str(entry.total_amount),
                })
                return entry
            except Exception:
                self._session.rollback()
                raise

    def get_entry(self, tenant_id: UUID, entry_id: UUID) -> JournalEntry:
        return self._get_model(tenant_id, entry_id).to_dto()

    def list_entries(
        self,
        tenant_id: UUID,
        status: JournalStatus | str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[JournalEntry]:
        stmt = select(JournalEntryModel).where(JournalEntryModel.tenant_id == tenant_id)
        if status is not None:
            stmt = stmt.where(JournalEntryModel.status == parse_enum(JournalStatus, status, "status").value)
        if start is not None:
            stmt = stmt.where(JournalEntryModel.entry_date >= start)
        if end is not None:
            stmt = stmt.where(JournalEntryModel.entry_date <= end)
        stmt = stmt.order_by(JournalEntryModel.entry_date, JournalEntryModel.created_at).execution_options(
            populate_existing=True,
        )
        return [model.to_dto() for model in self._session.execute(stmt).scalars()]

    def update_entry(
        self,
        tenant_id: UUID,
        entry_id: UUID,
        actor_id: UUID,
        lines: Sequence[EntryLine],
        narration: str | None = None,
    ) -> JournalEntry:
        """
        Replace the line set of a Draft entry.

        The status is re-checked with a Draft -> Draft compare-and-set in
        the same transaction, so a concurrent submit cannot slip between
        the check and the write.
        """
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id, record_id=entry_id):
            try:
                model = self._get_model(tenant_id, entry_id)
                before = model.to_dto()
                after = lifecycle.replace_lines(
                    before,
                    lines,
                    precision=self._precision,
                    accounts=self.load_accounts(tenant_id),
                    cost_centers=self._cost_center_codes(tenant_id),
                )
                compare_and_set_status(
                    self._session,
                    JournalEntryModel,
                    entity_type=lifecycle.ENTITY_TYPE,
                    tenant_id=tenant_id,
                    record_id=entry_id,
                    expected_status=JournalStatus.DRAFT,
                    new_status=JournalStatus.DRAFT,
                    values={"updated_by_id": actor_id},
                )
                model.lines.clear()
                self._session.flush()
                model.lines.extend(JournalLineModel.from_lines(tenant_id, actor_id, after.lines))
                if narration is not None:
                    model.narration = narration
                self._session.commit()
                logger.info("journal_entry_updated", extra={
                    "entry_id": str(entry_id),
                    "line_count": len(after.lines),
                })
                return model.to_dto()
            except Exception:
                self._session.rollback()
                raise

    def delete_entry(self, tenant_id: UUID, entry_id: UUID, actor_id: UUID) -> None:
        """Delete a Draft entry."""
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id, record_id=entry_id):
            try:
                model = self._get_model(tenant_id, entry_id)
                lifecycle.ensure_mutable(model.to_dto(), "delete")
                compare_and_set_status(
                    self._session,
                    JournalEntryModel,
                    entity_type=lifecycle.ENTITY_TYPE,
                    tenant_id=tenant_id,
                    record_id=entry_id,
                    expected_status=JournalStatus.DRAFT,
                    new_status=JournalStatus.DRAFT,
                )
                self._session.delete(model)
                self._session.commit()
                logger.info("journal_entry_deleted", extra={"entry_id": str(entry_id)})
            except Exception:
                self._session.rollback()
                raise

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def submit(self, tenant_id: UUID, entry_id: UUID, actor_id: UUID) -> JournalEntry:
        return self._transition(
            tenant_id, entry_id, actor_id, "submitted",
            lambda e: (lifecycle.submit(e, precision=self._precision), {}),
        )

    def approve(self, tenant_id: UUID, entry_id: UUID, approver_id: UUID) -> JournalEntry:
        def step(entry: JournalEntry):
            approved = lifecycle.approve(entry, approver_id, self._clock.now())
            return approved, {"approved_by_id": approved.approved_by, "approved_at": approved.approved_at}

        return self._transition(tenant_id, entry_id, approver_id, "approved", step)

    def reject(self, tenant_id: UUID, entry_id: UUID, actor_id: UUID, reason: str | None) -> JournalEntry:
        def step(entry: JournalEntry):
            rejected = lifecycle.reject(entry, actor_id, reason)
            return rejected, {
                "rejected_by_id": rejected.rejected_by,
                "rejection_reason": rejected.rejection_reason,
            }

        return self._transition(tenant_id, entry_id, actor_id, "rejected", step)

    def post(self, tenant_id: UUID, entry_id: UUID, actor_id: UUID) -> JournalEntry:
        def step(entry: JournalEntry):
            posted = lifecycle.post(entry, actor_id, self._clock.now())
            return posted, {"posted_by_id": posted.posted_by, "posted_at": posted.posted_at}

        return self._transition(tenant_id, entry_id, actor_id, "posted", step)

    def unpost(self, tenant_id: UUID, entry_id: UUID, actor_id: UUID) -> JournalEntry:
        return self._transition(
            tenant_id, entry_id, actor_id, "unposted",
            lambda e: (lifecycle.unpost(e), {"posted_by_id": None, "posted_at": None}),
        )

    # =========================================================================
    # Ledger reads
    # =========================================================================

    def list_postings(
        self,
        tenant_id: UUID,
        start: date | None = None,
        end: date | None = None,
    ) -> list[LedgerPosting]:
        """Lines of Posted entries dated within [start, end], in ledger order."""
        entries = self.list_entries(tenant_id, status=JournalStatus.POSTED, start=start, end=end)
        return lifecycle.ledger_postings(entries)
