"""
SQLAlchemy ORM persistence models for the Budget module.

Responsibility
--------------
Persist budget and cash-flow forecast versions with their line items.
Forecast totals and closing balances are stored for querying but are
always rewritten from ``summarize_forecast`` on save.

Architecture position
---------------------
**Modules layer** -- ORM models consumed by ``BudgetService``.  Inherits
from ``TenantScopedBase`` (kernel db layer).

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* Enum fields stored as String(50) holding the enum value.
* One row per (tenant, name, fiscal year, version), with the budget
  type in the budget key as well.  The version is part of the key so
  the revision chain lives side by side.
* Month and quarter distributions are stored as JSON arrays of exact
  decimal strings.
"""

import json
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TenantScopedBase, UUIDString


def _dump_amounts(values) -> str:
    return json.dumps([str(value) for value in values])


def _load_amounts(document: str | None) -> tuple[Decimal, ...]:
    return tuple(Decimal(value) for value in json.loads(document or "[]"))


# ---------------------------------------------------------------------------
# BudgetModel
# ---------------------------------------------------------------------------


class BudgetModel(TenantScopedBase):
    """
    A budget version.

    Maps to the ``Budget`` DTO in ``ledger_modules.budget.models``.

    Guarantees:
        - ``name`` + ``fiscal_year`` + ``budget_type`` + ``version`` is
          unique per tenant.
        - ``status`` changes only through ``compare_and_set_status``.
    """

    __tablename__ = "budget_budgets"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "name", "fiscal_year", "budget_type", "version",
            name="uq_budget_tenant_name_year_type_version",
        ),
        Index("idx_budget_tenant_fiscal_year", "tenant_id", "fiscal_year"),
        Index("idx_budget_tenant_status", "tenant_id", "status"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    fiscal_year: Mapped[str] = mapped_column(String(7), nullable=False)
    budget_type: Mapped[str] = mapped_column(String(50), nullable=False, default="Operating")
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="Draft")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_current_version: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    parent_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    total_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    approved_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["BudgetLineModel"]] = relationship(
        "BudgetLineModel",
        back_populates="budget",
        cascade="all, delete-orphan",
        order_by="BudgetLineModel.sequence",
        lazy="selectin",
    )

    def to_dto(self):
        from ledger_modules.budget.models import Budget, BudgetStatus, BudgetType

        return Budget(
            id=self.id,
            tenant_id=self.tenant_id,
            name=self.name,
            fiscal_year=self.fiscal_year,
            created_by=self.created_by_id,
            budget_type=BudgetType(self.budget_type),
            status=BudgetStatus(self.status),
            version=self.version,
            is_current_version=self.is_current_version,
            parent_id=self.parent_id,
            lines=tuple(line.to_dto() for line in self.lines),
            currency=self.currency,
            description=self.description,
            approved_by=self.approved_by_id,
            approved_at=self.approved_at,
            rejection_reason=self.rejection_reason,
        )

    @classmethod
    def from_dto(cls, dto) -> "BudgetModel":
        model = cls(
            id=dto.id,
            tenant_id=dto.tenant_id,
            name=dto.name,
            fiscal_year=dto.fiscal_year,
            budget_type=dto.budget_type.value,
            status=dto.status.value,
            version=dto.version,
            is_current_version=dto.is_current_version,
            parent_id=dto.parent_id,
            currency=dto.currency,
            description=dto.description,
            total_amount=dto.total_amount,
            created_by_id=dto.created_by,
        )
        model.lines = BudgetLineModel.from_lines(dto.tenant_id, dto.created_by, dto.lines)
        return model

    def __repr__(self) -> str:
        return f"<BudgetModel {self.name} FY{self.fiscal_year} v{self.version} [{self.status}]>"


class BudgetLineModel(TenantScopedBase):
    """A single budget line item within a budget version."""

    __tablename__ = "budget_lines"

    __table_args__ = (
        UniqueConstraint("budget_id", "sequence", name="uq_budget_line_sequence"),
    )

    budget_id: Mapped[UUID] = mapped_column(ForeignKey("budget_budgets.id"), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    account_id: Mapped[str] = mapped_column(String(36), nullable=False)
    cost_center: Mapped[str | None] = mapped_column(String(50), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    annual_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    monthly_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    quarterly_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")

    budget: Mapped["BudgetModel"] = relationship("BudgetModel", back_populates="lines")

    def to_dto(self):
        from ledger_modules.budget.models import BudgetLine

        return BudgetLine(
            account_id=self.account_id,
            annual_amount=self.annual_amount,
            monthly=_load_amounts(self.monthly_json),
            quarterly=_load_amounts(self.quarterly_json),
            cost_center=self.cost_center,
            description=self.description,
        )

    @classmethod
    def from_lines(cls, tenant_id: UUID, actor_id: UUID, lines) -> list["BudgetLineModel"]:
        return [
            cls(
                tenant_id=tenant_id,
                sequence=index,
                account_id=line.account_id,
                cost_center=line.cost_center,
                description=line.description,
                annual_amount=line.annual_amount,
                monthly_json=_dump_amounts(line.monthly),
                quarterly_json=_dump_amounts(line.quarterly),
                created_by_id=actor_id,
            )
            for index, line in enumerate(lines)
        ]


# ---------------------------------------------------------------------------
# CashFlowForecastModel
# ---------------------------------------------------------------------------


class CashFlowForecastModel(TenantScopedBase):
    """
    A cash-flow forecast version.

    Maps to the ``CashFlowForecast`` DTO in ``ledger_modules.budget.models``.
    The total and balance columns mirror ``CashFlowForecast.summary``.
    """

    __tablename__ = "budget_cash_flow_forecasts"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "name", "fiscal_year", "version",
            name="uq_forecast_tenant_name_year_version",
        ),
        Index("idx_forecast_tenant_fiscal_year", "tenant_id", "fiscal_year"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    fiscal_year: Mapped[str] = mapped_column(String(7), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="Draft")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_current_version: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    parent_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    opening_balance: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_inflows: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_outflows: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    net_cash_flow: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    closing_balance: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    approved_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["ForecastLineModel"]] = relationship(
        "ForecastLineModel",
        back_populates="forecast",
        cascade="all, delete-orphan",
        order_by="ForecastLineModel.sequence",
        lazy="selectin",
    )

    def to_dto(self):
        from ledger_modules.budget.models import CashFlowForecast, ForecastStatus

        return CashFlowForecast(
            id=self.id,
            tenant_id=self.tenant_id,
            name=self.name,
            fiscal_year=self.fiscal_year,
            created_by=self.created_by_id,
            opening_balance=self.opening_balance,
            status=ForecastStatus(self.status),
            version=self.version,
            is_current_version=self.is_current_version,
            parent_id=self.parent_id,
            lines=tuple(line.to_dto() for line in self.lines),
            currency=self.currency,
            description=self.description,
            approved_by=self.approved_by_id,
            approved_at=self.approved_at,
            rejection_reason=self.rejection_reason,
        )

    @staticmethod
    def summary_values(dto) -> dict:
        summary = dto.summary
        return {
            "total_inflows": summary.total_inflows,
            "total_outflows": summary.total_outflows,
            "net_cash_flow": summary.net_cash_flow,
            "closing_balance": summary.closing_balance,
        }

    @classmethod
    def from_dto(cls, dto) -> "CashFlowForecastModel":
        model = cls(
            id=dto.id,
            tenant_id=dto.tenant_id,
            name=dto.name,
            fiscal_year=dto.fiscal_year,
            status=dto.status.value,
            version=dto.version,
            is_current_version=dto.is_current_version,
            parent_id=dto.parent_id,
            currency=dto.currency,
            description=dto.description,
            opening_balance=dto.opening_balance,
            created_by_id=dto.created_by,
            **cls.summary_values(dto),
        )
        model.lines = ForecastLineModel.from_lines(dto.tenant_id, dto.created_by, dto.lines)
        return model

    def __repr__(self) -> str:
        return f"<CashFlowForecastModel {self.name} FY{self.fiscal_year} v{self.version} [{self.status}]>"


class ForecastLineModel(TenantScopedBase):
    """Monthly amounts of one cash-flow category within a forecast."""

    __tablename__ = "budget_forecast_lines"

    __table_args__ = (
        UniqueConstraint("forecast_id", "sequence", name="uq_forecast_line_sequence"),
    )

    forecast_id: Mapped[UUID] = mapped_column(ForeignKey("budget_cash_flow_forecasts.id"), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    account_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    probability: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    monthly_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")

    forecast: Mapped["CashFlowForecastModel"] = relationship("CashFlowForecastModel", back_populates="lines")

    def to_dto(self):
        from ledger_modules.budget.models import CashFlowCategory, ForecastLine

        return ForecastLine(
            category=CashFlowCategory(self.category),
            monthly=_load_amounts(self.monthly_json),
            description=self.description,
            account_id=self.account_id,
            probability=self.probability,
        )

    @classmethod
    def from_lines(cls, tenant_id: UUID, actor_id: UUID, lines) -> list["ForecastLineModel"]:
        return [
            cls(
                tenant_id=tenant_id,
                sequence=index,
                category=line.category.value,
                description=line.description,
                account_id=line.account_id,
                probability=line.probability,
                monthly_json=_dump_amounts(line.monthly),
                created_by_id=actor_id,
            )
            for index, line in enumerate(lines)
        ]
