"""
SQLAlchemy ORM persistence models for the Journal module.

Responsibility
--------------
Persist the chart of accounts, cost centres, journal entries and their
lines.  Pure engines never see these classes; they receive the frozen
DTOs produced by ``to_dto``.

Architecture position
---------------------
**Modules layer** -- ORM models consumed by ``JournalService`` and
``ReportingService``.  Inherits from ``TenantScopedBase`` (kernel db layer).

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* Enum fields stored as String(50) holding the enum value.
* Account codes and cost-centre codes are unique per tenant.
* Line order is fixed by ``sequence``; a line set is replaced as a whole.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TenantScopedBase, UUIDString


# ---------------------------------------------------------------------------
# AccountModel
# ---------------------------------------------------------------------------


class AccountModel(TenantScopedBase):
    """
    A chart-of-accounts entry.

    Maps to the ``Account`` snapshot in ``ledger_kernel.domain.accounts``.
    Archived accounts are kept so historical postings still resolve.
    """

    __tablename__ = "ledger_accounts"

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_account_tenant_code"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_type: Mapped[str] = mapped_column(String(50), nullable=False)
    subtype: Mapped[str | None] = mapped_column(String(50), nullable=True)
    parent_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dto(self):
        from ledger_kernel.domain.accounts import Account, AccountSubtype
        from ledger_kernel.domain.polarity import AccountType

        return Account(
            account_id=str(self.id),
            code=self.code,
            name=self.name,
            account_type=AccountType(self.account_type),
            subtype=AccountSubtype(self.subtype) if self.subtype else None,
            parent_id=str(self.parent_id) if self.parent_id else None,
            is_archived=self.is_archived,
        )

    def __repr__(self) -> str:
        return f"<AccountModel {self.code} {self.name} [{self.account_type}]>"


class CostCenterModel(TenantScopedBase):
    """A cost centre that journal lines may reference by code."""

    __tablename__ = "ledger_cost_centers"

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_cost_center_tenant_code"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


# ---------------------------------------------------------------------------
# JournalEntryModel
# ---------------------------------------------------------------------------


class JournalEntryModel(TenantScopedBase):
    """
    A journal entry header.

    Maps to the ``JournalEntry`` DTO in ``ledger_modules.journal.models``.

    Guarantees:
        - ``status`` changes only through ``compare_and_set_status``.
        - ``lines`` load eagerly in ``sequence`` order.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        Index("idx_journal_entry_tenant_date", "tenant_id", "entry_date"),
        Index("idx_journal_entry_tenant_status", "tenant_id", "status"),
    )

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="Draft")
    narration: Mapped[str] = mapped_column(Text, nullable=False, default="")
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    source_type: Mapped[str] = mapped_column(String(50), nullable=False, default="Manual")
    approved_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    posted_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    posted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["JournalLineModel"]] = relationship(
        "JournalLineModel",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalLineModel.sequence",
        lazy="selectin",
    )

    def to_dto(self):
        from ledger_modules.journal.models import JournalEntry, JournalStatus, SourceType

        return JournalEntry(
            entry_id=self.id,
            tenant_id=self.tenant_id,
            entry_date=self.entry_date,
            lines=tuple(line.to_dto() for line in self.lines),
            created_by=self.created_by_id,
            status=JournalStatus(self.status),
            narration=self.narration,
            reference_number=self.reference_number,
            source_type=SourceType(self.source_type),
            created_at=self.created_at,
            approved_by=self.approved_by_id,
            approved_at=self.approved_at,
            posted_by=self.posted_by_id,
            posted_at=self.posted_at,
            rejected_by=self.rejected_by_id,
            rejection_reason=self.rejection_reason,
        )

    @classmethod
    def from_dto(cls, dto) -> "JournalEntryModel":
        model = cls(
            id=dto.entry_id,
            tenant_id=dto.tenant_id,
            entry_date=dto.entry_date,
            status=dto.status.value,
            narration=dto.narration,
            reference_number=dto.reference_number,
            source_type=dto.source_type.value,
            created_by_id=dto.created_by,
        )
        if dto.created_at is not None:
            model.created_at = dto.created_at
        model.lines = JournalLineModel.from_lines(dto.tenant_id, dto.created_by, dto.lines)
        return model

    def __repr__(self) -> str:
        return f"<JournalEntryModel {self.id} {self.entry_date} [{self.status}]>"


class JournalLineModel(TenantScopedBase):
    """One line of a journal entry."""

    __tablename__ = "journal_lines"

    __table_args__ = (
        UniqueConstraint("entry_id", "sequence", name="uq_journal_line_entry_sequence"),
        Index("idx_journal_line_account", "tenant_id", "account_id"),
    )

    entry_id: Mapped[UUID] = mapped_column(ForeignKey("journal_entries.id"), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    account_id: Mapped[str] = mapped_column(String(36), nullable=False)
    debit: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    credit: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cost_center: Mapped[str | None] = mapped_column(String(50), nullable=True)

    entry: Mapped["JournalEntryModel"] = relationship(
        "JournalEntryModel",
        back_populates="lines",
    )

    def to_dto(self):
        from ledger_kernel.domain.ledger import EntryLine

        return EntryLine(
            account_id=self.account_id,
            debit=self.debit,
            credit=self.credit,
            description=self.description,
            cost_center=self.cost_center,
        )

    @classmethod
    def from_lines(cls, tenant_id: UUID, actor_id: UUID, lines) -> list["JournalLineModel"]:
        return [
            cls(
                tenant_id=tenant_id,
                sequence=index,
                account_id=line.account_id,
                debit=line.debit,
                credit=line.credit,
                description=line.description,
                cost_center=line.cost_center,
                created_by_id=actor_id,
            )
            for index, line in enumerate(lines)
        ]

    def __repr__(self) -> str:
        return f"<JournalLineModel {self.sequence} {self.account_id} Dr {self.debit} Cr {self.credit}>"
