"""
Module: ledger_modules.budget.versioning
Responsibility: Pure lifecycle and versioning functions for budgets and
    cash-flow forecasts.  Each function takes a plan and returns a new one;
    none of them touch the database or the clock.
Architecture position: Modules > budget.  Called by ``BudgetService``
    before the compare-and-set write; usable directly in tests.

Invariants enforced:
    - Lines change only in Draft.  Closed budgets and Archived forecasts
      are immutable.
    - A new version is created only from an Approved plan.  It copies the
      parent's lines (or takes the overrides), is Draft and current, and
      points back at the parent through ``parent_id``.  The parent stops
      being current.
    - Every status change resolves through the plan's workflow.

Failure modes:
    - InvalidStateTransitionError for an action not allowed from the
      current status, for versioning a non-Approved plan, and for
      mutation outside Draft.
    - ImmutableRecordError for any mutation of a Closed/Archived plan.
    - MissingFieldError when approve lacks approver or timestamp, or
      reject lacks a reason.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime
from typing import TypeVar
from uuid import UUID

from ledger_kernel.domain.workflow import Workflow
from ledger_kernel.exceptions import (
    ImmutableRecordError,
    InvalidStateTransitionError,
    MissingFieldError,
)
from ledger_kernel.logging_config import get_logger
from ledger_modules.budget.models import Budget, BudgetStatus, CashFlowForecast, ForecastStatus
from ledger_modules.budget.workflows import BUDGET_WORKFLOW, FORECAST_WORKFLOW

logger = get_logger("modules.budget.versioning")

BUDGET_ENTITY_TYPE = "budget"
FORECAST_ENTITY_TYPE = "cash_flow_forecast"

Plan = TypeVar("Plan", Budget, CashFlowForecast)


def _kind(plan: Budget | CashFlowForecast) -> tuple[str, Workflow, type]:
    if isinstance(plan, Budget):
        return BUDGET_ENTITY_TYPE, BUDGET_WORKFLOW, BudgetStatus
    return FORECAST_ENTITY_TYPE, FORECAST_WORKFLOW, ForecastStatus


def entity_type(plan: Budget | CashFlowForecast) -> str:
    return _kind(plan)[0]


def ensure_editable(plan: Budget | CashFlowForecast, operation: str) -> None:
    """
    Raise unless the plan's lines may change.

    Raises:
        ImmutableRecordError: plan is Closed or Archived.
        InvalidStateTransitionError: plan is in any other non-Draft status.
    """
    name, workflow, _ = _kind(plan)
    status = plan.status.value
    if workflow.is_terminal(status):
        raise ImmutableRecordError(name, str(plan.id), status, operation)
    if status != workflow.initial_state:
        raise InvalidStateTransitionError(name, str(plan.id), status, operation)


def _target(plan: Budget | CashFlowForecast, action: str):
    name, workflow, status_cls = _kind(plan)
    if workflow.is_terminal(plan.status.value):
        raise ImmutableRecordError(name, str(plan.id), plan.status.value, action)
    return status_cls(workflow.require(name, plan.id, plan.status.value, action).to_state)


def _move(plan: Plan, action: str, **changes) -> Plan:
    return replace(plan, status=_target(plan, action), **changes)


def replace_lines(plan: Plan, lines: Iterable) -> Plan:
    ensure_editable(plan, "update")
    return replace(plan, lines=tuple(lines))


def submit(plan: Plan) -> Plan:
    return _move(plan, "submit")


def approve(plan: Plan, approver_id: UUID | None, approved_at: datetime | None) -> Plan:
    """Submitted -> Approved, recording approver and timestamp."""
    target = _target(plan, "approve")
    if approver_id is None:
        raise MissingFieldError("approver_id", "approve")
    if approved_at is None:
        raise MissingFieldError("approved_at", "approve")
    return replace(plan, status=target, approved_by=approver_id, approved_at=approved_at, rejection_reason=None)


def reject(plan: Plan, reason: str | None) -> Plan:
    target = _target(plan, "reject")
    if reason is None or not reason.strip():
        raise MissingFieldError("rejection_reason", "reject")
    return replace(plan, status=target, rejection_reason=reason.strip())


def revise(plan: Plan) -> Plan:
    """Rejected -> Draft so the lines can be reworked."""
    return _move(plan, "revise", approved_by=None, approved_at=None)


def activate(plan: Plan) -> Plan:
    return _move(plan, "activate")


def close(plan: Plan) -> Plan:
    """Active -> Closed (budgets) or Archived (forecasts)."""
    action = "close" if isinstance(plan, Budget) else "archive"
    return _move(plan, action)


def create_version(
    parent: Plan,
    new_id: UUID,
    actor_id: UUID,
    lines: Iterable | None = None,
    version: int | None = None,
) -> tuple[Plan, Plan]:
    """
    Derive the next version of an Approved plan.

    Returns ``(new_version, demoted_parent)``.  ``version`` defaults to
    ``parent.version + 1``; callers holding the whole revision chain pass
    its maximum plus one.

    Raises:
        InvalidStateTransitionError: ``parent`` is not Approved.
    """
    name, _, status_cls = _kind(parent)
    if parent.status.value != status_cls.APPROVED.value:
        raise InvalidStateTransitionError(name, str(parent.id), parent.status.value, "create_version")
    child = replace(
        parent,
        id=new_id,
        created_by=actor_id,
        status=status_cls.DRAFT,
        version=version if version is not None else parent.version + 1,
        is_current_version=True,
        parent_id=parent.id,
        lines=tuple(lines) if lines is not None else parent.lines,
        approved_by=None,
        approved_at=None,
        rejection_reason=None,
    )
    logger.info("plan_version_derived", extra={
        "entity_type": name,
        "parent_id": str(parent.id),
        "new_id": str(new_id),
        "version": child.version,
    })
    return child, replace(parent, is_current_version=False)
