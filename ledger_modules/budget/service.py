"""
Budgeting Module Service (``ledger_modules.budget.service``).

Responsibility
--------------
Persist budgets and cash-flow forecasts and drive them through their
lifecycle: create, replace lines, submit, approve, reject, revise,
activate, close/archive, and derive new versions.  Also serves the
per-account budget amounts for a date range that budget-vs-actual
reporting consumes.

Architecture position
---------------------
**Modules layer** -- thin glue between the pure functions in
``versioning.py`` / ``distribution.py`` / ``forecast.py`` and the
SQLAlchemy models in ``orm.py``.
Constructor: ``session`` + ``clock`` + ``fiscal_policy`` + ``config`` (``BudgetConfig``).

Invariants enforced
-------------------
* Each public write method owns the transaction boundary
  (``commit`` on success, ``rollback`` and re-raise on any exception).
* Every status change is a compare-and-set UPDATE.  Line replacement
  re-checks Draft with a Draft -> Draft compare-and-set.
* Deriving a version demotes the parent and inserts the child in one
  transaction; the new version number is the chain maximum plus one.
* Every query is filtered by ``tenant_id``.

Failure modes
-------------
* ``InvalidFiscalYearError`` for a malformed fiscal-year label.
* ``InvalidComputationInputError`` for a forecast line without twelve
  months or with an out-of-range probability.
* ``RecordNotFoundError`` / ``StatusConflictError`` from the store.
* ``ImmutableRecordError`` / ``InvalidStateTransitionError`` /
  ``MissingFieldError`` from the lifecycle functions.

Audit relevance
---------------
Structured log events ``budget_<action>`` and ``cash_flow_forecast_<action>``
carry the plan id, actor, version, and resulting status.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ledger_engines.arithmetic import Number, to_decimal
from ledger_kernel.db.status_store import compare_and_set_status
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.fiscal import FiscalYearPolicy, validate_fiscal_year
from ledger_kernel.domain.values import parse_enum
from ledger_kernel.exceptions import RecordNotFoundError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_modules.budget import versioning
from ledger_modules.budget.config import BudgetConfig
from ledger_modules.budget.distribution import budget_amounts_for_range, distribute_lines
from ledger_modules.budget.forecast import validate_forecast_line
from ledger_modules.budget.models import (
    Budget,
    BudgetLine,
    BudgetStatus,
    BudgetType,
    CashFlowForecast,
    DistributionMethod,
    ForecastLine,
    ForecastStatus,
)
from ledger_modules.budget.orm import (
    BudgetLineModel,
    BudgetModel,
    CashFlowForecastModel,
    ForecastLineModel,
)

logger = get_logger("modules.budget.service")


@dataclass(frozen=True)
class _PlanStore:
    """Table bindings for one kind of plan."""

    entity_type: str
    model: type
    line_model: type
    status_cls: type

    def content_values(self, plan) -> dict:
        if self.model is BudgetModel:
            return {"total_amount": plan.total_amount}
        return CashFlowForecastModel.summary_values(plan)

    def chain_conditions(self, plan) -> list:
        conditions = [
            self.model.tenant_id == plan.tenant_id,
            self.model.name == plan.name,
            self.model.fiscal_year == plan.fiscal_year,
        ]
        if self.model is BudgetModel:
            conditions.append(BudgetModel.budget_type == plan.budget_type.value)
        return conditions


_BUDGETS = _PlanStore(versioning.BUDGET_ENTITY_TYPE, BudgetModel, BudgetLineModel, BudgetStatus)
_FORECASTS = _PlanStore(versioning.FORECAST_ENTITY_TYPE, CashFlowForecastModel, ForecastLineModel, ForecastStatus)


class BudgetService:
    """
    Budget and cash-flow forecast service.

    Contract
    --------
    * Write methods return the resulting DTO; ``create_*_version`` returns
      the new Draft version.
    * ``budget_amounts`` is a read returning account id -> amount.

    Guarantees
    ----------
    * The default fiscal year comes from the injected ``FiscalYearPolicy``.
    * Clock is injectable for deterministic testing; it supplies the
      approval timestamp only.
    * Forecast totals stored on the row always equal the pure summary of
      the stored lines.

    Non-goals
    ---------
    * Does NOT post memo entries to the journal.
    * Does NOT authorize the actor (authorization collaborator).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        fiscal_policy: FiscalYearPolicy | None = None,
        config: BudgetConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._fiscal_policy = fiscal_policy or FiscalYearPolicy(self._clock.now().date())
        self._config = config or BudgetConfig.with_defaults()
        self._precision = self._config.precision

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _get_model(self, store: _PlanStore, tenant_id: UUID, plan_id: UUID):
        model = self._session.execute(
            select(store.model).where(
                store.model.id == plan_id,
                store.model.tenant_id == tenant_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise RecordNotFoundError(store.entity_type, str(plan_id))
        return model

    def _fiscal_year(self, fiscal_year: str | None) -> str:
        return validate_fiscal_year(fiscal_year or self._fiscal_policy.current_label())

    def _log(self, store: _PlanStore, action: str, plan, actor_id: UUID) -> None:
        logger.info(f"{store.entity_type}_{action}", extra={
            "plan_id": str(plan.id),
            "actor_id": str(actor_id),
            "version": plan.version,
            "status": plan.status.value,
        })

    def _insert(self, store: _PlanStore, plan, actor_id: UUID):
        with LogContext.bind(tenant_id=plan.tenant_id, actor_id=actor_id, record_id=plan.id):
            try:
                model = store.model.from_dto(plan)
                self._session.add(model)
                self._session.commit()
                self._log(store, "created", plan, actor_id)
                return model.to_dto()
            except Exception:
                self._session.rollback()
                raise

    def _transition(self, store: _PlanStore, tenant_id: UUID, plan_id: UUID, actor_id: UUID, action: str, step):
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id, record_id=plan_id):
            try:
                before = self._get_model(store, tenant_id, plan_id).to_dto()
                after, values = step(before)
                compare_and_set_status(
                    self._session,
                    store.model,
                    entity_type=store.entity_type,
                    tenant_id=tenant_id,
                    record_id=plan_id,
                    expected_status=before.status,
                    new_status=after.status,
                    values={"updated_by_id": actor_id, **values},
                )
                self._session.commit()
                self._log(store, action, after, actor_id)
                return after
            except Exception:
                self._session.rollback()
                raise

    def _replace_lines(self, store: _PlanStore, tenant_id: UUID, plan_id: UUID, actor_id: UUID, lines):
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id, record_id=plan_id):
            try:
                model = self._get_model(store, tenant_id, plan_id)
                after = versioning.replace_lines(model.to_dto(), lines)
                compare_and_set_status(
                    self._session,
                    store.model,
                    entity_type=store.entity_type,
                    tenant_id=tenant_id,
                    record_id=plan_id,
                    expected_status=store.status_cls.DRAFT,
                    new_status=store.status_cls.DRAFT,
                    values={"updated_by_id": actor_id, **store.content_values(after)},
                )
                model.lines.clear()
                self._session.flush()
                model.lines.extend(store.line_model.from_lines(tenant_id, actor_id, after.lines))
                self._session.commit()
                logger.info(f"{store.entity_type}_lines_updated", extra={
                    "plan_id": str(plan_id),
                    "line_count": len(after.lines),
                })
                return model.to_dto()
            except Exception:
                self._session.rollback()
                raise

    def _create_version(self, store: _PlanStore, tenant_id: UUID, plan_id: UUID, actor_id: UUID, lines):
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id, record_id=plan_id):
            try:
                parent = self._get_model(store, tenant_id, plan_id).to_dto()
                latest = self._session.execute(
                    select(func.max(store.model.version)).where(*store.chain_conditions(parent))
                ).scalar_one()
                child, demoted = versioning.create_version(
                    parent, uuid4(), actor_id, lines=lines, version=(latest or parent.version) + 1,
                )
                # parent must still be Approved when it is demoted
                compare_and_set_status(
                    self._session,
                    store.model,
                    entity_type=store.entity_type,
                    tenant_id=tenant_id,
                    record_id=parent.id,
                    expected_status=parent.status,
                    new_status=demoted.status,
                    values={"is_current_version": False, "updated_by_id": actor_id},
                )
                # siblings derived earlier from the same parent stop being current too
                self._session.execute(
                    update(store.model)
                    .where(*store.chain_conditions(parent), store.model.is_current_version.is_(True))
                    .values(is_current_version=False)
                )
                model = store.model.from_dto(child)
                self._session.add(model)
                self._session.commit()
                self._log(store, "version_created", child, actor_id)
                return model.to_dto()
            except Exception:
                self._session.rollback()
                raise

    def _list(
        self,
        store: _PlanStore,
        tenant_id: UUID,
        fiscal_year: str | None,
        status,
        name: str | None,
        current_only: bool,
    ) -> list:
        stmt = select(store.model).where(store.model.tenant_id == tenant_id)
        if fiscal_year is not None:
            stmt = stmt.where(store.model.fiscal_year == validate_fiscal_year(fiscal_year))
        if status is not None:
            stmt = stmt.where(store.model.status == parse_enum(store.status_cls, status, "status").value)
        if name is not None:
            stmt = stmt.where(store.model.name == name)
        if current_only:
            stmt = stmt.where(store.model.is_current_version.is_(True))
        stmt = stmt.order_by(store.model.fiscal_year, store.model.name, store.model.version).execution_options(
            populate_existing=True,
        )
        return [model.to_dto() for model in self._session.execute(stmt).scalars()]

    def _budget_lines(
        self,
        lines: Iterable[BudgetLine],
        distribution: DistributionMethod | str | None,
    ) -> tuple[BudgetLine, ...]:
        lines = tuple(lines)
        if distribution is None:
            return lines
        return distribute_lines(lines, distribution, self._precision)

    # =========================================================================
    # Budgets
    # =========================================================================

    def create_budget(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        name: str,
        lines: Sequence[BudgetLine] = (),
        fiscal_year: str | None = None,
        budget_type: BudgetType | str = BudgetType.OPERATING,
        distribution: DistributionMethod | str | None = DistributionMethod.EQUAL,
        currency: str | None = None,
        description: str = "",
    ) -> Budget:
        """
        Create version 1 of a budget in Draft.

        With a ``distribution`` every line's annual amount is spread over
        the fiscal months and quarters; ``None`` stores lines as given.
        """
        budget = Budget(
            id=uuid4(),
            tenant_id=tenant_id,
            name=name,
            fiscal_year=self._fiscal_year(fiscal_year),
            created_by=actor_id,
            budget_type=parse_enum(BudgetType, budget_type, "budget_type"),
            lines=self._budget_lines(lines, distribution),
            currency=currency or self._config.default_currency,
            description=description,
        )
        return self._insert(_BUDGETS, budget, actor_id)

    def get_budget(self, tenant_id: UUID, budget_id: UUID) -> Budget:
        return self._get_model(_BUDGETS, tenant_id, budget_id).to_dto()

    def list_budgets(
        self,
        tenant_id: UUID,
        fiscal_year: str | None = None,
        status: BudgetStatus | str | None = None,
        name: str | None = None,
        current_only: bool = False,
    ) -> list[Budget]:
        return self._list(_BUDGETS, tenant_id, fiscal_year, status, name, current_only)

    def update_budget_lines(
        self,
        tenant_id: UUID,
        budget_id: UUID,
        actor_id: UUID,
        lines: Sequence[BudgetLine],
        distribution: DistributionMethod | str | None = DistributionMethod.EQUAL,
    ) -> Budget:
        return self._replace_lines(
            _BUDGETS, tenant_id, budget_id, actor_id, self._budget_lines(lines, distribution),
        )

    def submit_budget(self, tenant_id: UUID, budget_id: UUID, actor_id: UUID) -> Budget:
        return self._transition(
            _BUDGETS, tenant_id, budget_id, actor_id, "submitted",
            lambda b: (versioning.submit(b), {}),
        )

    def approve_budget(self, tenant_id: UUID, budget_id: UUID, approver_id: UUID) -> Budget:
        return self._transition(_BUDGETS, tenant_id, budget_id, approver_id, "approved", self._approve(approver_id))

    def reject_budget(self, tenant_id: UUID, budget_id: UUID, actor_id: UUID, reason: str | None) -> Budget:
        return self._transition(_BUDGETS, tenant_id, budget_id, actor_id, "rejected", self._reject(reason))

    def revise_budget(self, tenant_id: UUID, budget_id: UUID, actor_id: UUID) -> Budget:
        return self._transition(_BUDGETS, tenant_id, budget_id, actor_id, "revised", self._revise)

    def activate_budget(self, tenant_id: UUID, budget_id: UUID, actor_id: UUID) -> Budget:
        return self._transition(
            _BUDGETS, tenant_id, budget_id, actor_id, "activated",
            lambda b: (versioning.activate(b), {}),
        )

    def close_budget(self, tenant_id: UUID, budget_id: UUID, actor_id: UUID) -> Budget:
        return self._transition(
            _BUDGETS, tenant_id, budget_id, actor_id, "closed",
            lambda b: (versioning.close(b), {}),
        )

    def create_budget_version(
        self,
        tenant_id: UUID,
        budget_id: UUID,
        actor_id: UUID,
        lines: Sequence[BudgetLine] | None = None,
        distribution: DistributionMethod | str | None = DistributionMethod.EQUAL,
    ) -> Budget:
        """
        Derive the next Draft version of an Approved budget.

        Override ``lines`` are distributed like on create; without them
        the parent's lines are copied unchanged.
        """
        if lines is not None:
            lines = self._budget_lines(lines, distribution)
        return self._create_version(_BUDGETS, tenant_id, budget_id, actor_id, lines)

    def budget_amounts(
        self,
        tenant_id: UUID,
        budget_id: UUID,
        start: date,
        end: date,
    ) -> Mapping[str, Decimal]:
        """Per-account budget for the fiscal months touching [start, end]."""
        return budget_amounts_for_range(self.get_budget(tenant_id, budget_id), self._fiscal_policy, start, end)

    # =========================================================================
    # Cash-flow forecasts
    # =========================================================================

    def create_forecast(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        name: str,
        opening_balance: Number,
        lines: Sequence[ForecastLine] = (),
        fiscal_year: str | None = None,
        currency: str | None = None,
        description: str = "",
    ) -> CashFlowForecast:
        forecast = CashFlowForecast(
            id=uuid4(),
            tenant_id=tenant_id,
            name=name,
            fiscal_year=self._fiscal_year(fiscal_year),
            created_by=actor_id,
            opening_balance=to_decimal(opening_balance),
            lines=tuple(validate_forecast_line(line) for line in lines),
            currency=currency or self._config.default_currency,
            description=description,
        )
        return self._insert(_FORECASTS, forecast, actor_id)

    def get_forecast(self, tenant_id: UUID, forecast_id: UUID) -> CashFlowForecast:
        return self._get_model(_FORECASTS, tenant_id, forecast_id).to_dto()

    def list_forecasts(
        self,
        tenant_id: UUID,
        fiscal_year: str | None = None,
        status: ForecastStatus | str | None = None,
        name: str | None = None,
        current_only: bool = False,
    ) -> list[CashFlowForecast]:
        return self._list(_FORECASTS, tenant_id, fiscal_year, status, name, current_only)

    def update_forecast_lines(
        self,
        tenant_id: UUID,
        forecast_id: UUID,
        actor_id: UUID,
        lines: Sequence[ForecastLine],
    ) -> CashFlowForecast:
        """Replace a Draft forecast's lines; stored totals are recomputed."""
        return self._replace_lines(
            _FORECASTS, tenant_id, forecast_id, actor_id,
            tuple(validate_forecast_line(line) for line in lines),
        )

    def submit_forecast(self, tenant_id: UUID, forecast_id: UUID, actor_id: UUID) -> CashFlowForecast:
        return self._transition(
            _FORECASTS, tenant_id, forecast_id, actor_id, "submitted",
            lambda f: (versioning.submit(f), {}),
        )

    def approve_forecast(self, tenant_id: UUID, forecast_id: UUID, approver_id: UUID) -> CashFlowForecast:
        return self._transition(
            _FORECASTS, tenant_id, forecast_id, approver_id, "approved", self._approve(approver_id),
        )

    def reject_forecast(
        self,
        tenant_id: UUID,
        forecast_id: UUID,
        actor_id: UUID,
        reason: str | None,
    ) -> CashFlowForecast:
        return self._transition(_FORECASTS, tenant_id, forecast_id, actor_id, "rejected", self._reject(reason))

    def revise_forecast(self, tenant_id: UUID, forecast_id: UUID, actor_id: UUID) -> CashFlowForecast:
        return self._transition(_FORECASTS, tenant_id, forecast_id, actor_id, "revised", self._revise)

    def activate_forecast(self, tenant_id: UUID, forecast_id: UUID, actor_id: UUID) -> CashFlowForecast:
        return self._transition(
            _FORECASTS, tenant_id, forecast_id, actor_id, "activated",
            lambda f: (versioning.activate(f), {}),
        )

    def archive_forecast(self, tenant_id: UUID, forecast_id: UUID, actor_id: UUID) -> CashFlowForecast:
        return self._transition(
            _FORECASTS, tenant_id, forecast_id, actor_id, "archived",
            lambda f: (versioning.close(f), {}),
        )

    def create_forecast_version(
        self,
        tenant_id: UUID,
        forecast_id: UUID,
        actor_id: UUID,
        lines: Sequence[ForecastLine] | None = None,
    ) -> CashFlowForecast:
        if lines is not None:
            lines = tuple(validate_forecast_line(line) for line in lines)
        return self._create_version(_FORECASTS, tenant_id, forecast_id, actor_id, lines)

    # =========================================================================
    # Shared lifecycle steps
    # =========================================================================

    def _approve(self, approver_id: UUID):
        def step(plan):
            approved = versioning.approve(plan, approver_id, self._clock.now())
            return approved, {
                "approved_by_id": approved.approved_by,
                "approved_at": approved.approved_at,
                "rejection_reason": None,
            }
        return step

    @staticmethod
    def _reject(reason: str | None):
        def step(plan):
            rejected = versioning.reject(plan, reason)
            return rejected, {"rejection_reason": rejected.rejection_reason}
        return step

    @staticmethod
    def _revise(plan):
        return versioning.revise(plan), {"approved_by_id": None, "approved_at": None}
