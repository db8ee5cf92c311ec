"""
Module: ledger_kernel.db.base
Responsibility: Declarative base and the tenant-scoped audit mixin shared by
    every module ORM.
Architecture position: Kernel > DB.  MUST NOT import from ledger_modules or
    ledger_engines.

Invariants enforced:
    - Primary keys are uuid4 values, stored as 36-character strings so the
      same schema runs on SQLite and server databases.
    - ``Decimal`` annotations map to Numeric(38, 9); monetary columns are
      never float.
    - Every tenant-owned row has a non-null, indexed tenant_id.

Audit relevance:
    created_by_id / updated_by_id and the two timestamps record who last
    touched a row.  They may change on rows whose financial content is
    immutable.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID in Python, ``VARCHAR(36)`` in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> str | None:
        return None if value is None else str(value)

    def process_result_value(self, value: Any, dialect: Any) -> UUID | None:
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        date: Date,
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)


class TenantScopedBase(Base):
    """
    Abstract base for rows owned by a tenant.

    Contract:
        No query reads or writes a row without a tenant_id predicate;
        ``ledger_kernel.db.status_store`` and the module services apply it.
    """

    __abstract__ = True

    tenant_id: Mapped[UUID] = mapped_column(index=True)
    created_by_id: Mapped[UUID]
    updated_by_id: Mapped[UUID | None]
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())
