"""
Module: ledger_kernel.db.status_store
Responsibility: The compare-and-set primitive for lifecycle transitions.
    A status change is a single conditional UPDATE that matches the row only
    if its stored status still equals the precondition state the caller
    validated against.
Architecture position: Kernel > DB.  Used by every module service that moves
    a record through a Workflow.

Invariants enforced:
    - Tenant scoping: the UPDATE and the diagnostic re-read both filter on
      tenant_id; a row of another tenant is indistinguishable from a
      missing row.
    - Exactly-once transitions: of two concurrent callers holding the same
      expected status, at most one UPDATE matches; the other raises
      StatusConflictError.

Failure modes:
    - RecordNotFoundError when no row exists for (tenant_id, record_id).
    - StatusConflictError when the row exists but its status (or an extra
      condition) no longer matches.
"""

from collections.abc import Iterable, Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ledger_kernel.domain.workflow import state_value
from ledger_kernel.exceptions import RecordNotFoundError, StatusConflictError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.status_store")


def compare_and_set_status(
    session: Session,
    model: type,
    *,
    entity_type: str,
    tenant_id: UUID,
    record_id: UUID,
    expected_status: Any,
    new_status: Any,
    values: Mapping[str, Any] | None = None,
    extra_conditions: Iterable[Any] = (),
) -> None:
    """
    Move ``record_id`` from ``expected_status`` to ``new_status`` atomically.

    Preconditions:
        ``model`` is a TenantScopedBase subclass with a ``status`` column.
    Postconditions:
        Exactly one row was updated, with ``values`` applied alongside the
        status.  The session is not flushed or committed here.

    Raises:
        RecordNotFoundError: no row for (tenant_id, record_id).
        StatusConflictError: stored status differs from ``expected_status``.
    """
    expected = state_value(expected_status)
    target = state_value(new_status)
    stmt = (
        update(model)
        .where(
            model.id == record_id,
            model.tenant_id == tenant_id,
            model.status == expected,
            *extra_conditions,
        )
        .values(status=target, **dict(values or {}))
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if result.rowcount == 1:
        logger.info(
            "status_transition_applied",
            extra={
                "entity_type": entity_type,
                "record_id": str(record_id),
                "from_status": expected,
                "to_status": target,
            },
        )
        return

    actual = session.execute(
        select(model.status).where(
            model.id == record_id,
            model.tenant_id == tenant_id,
        )
    ).scalar_one_or_none()
    if actual is None:
        raise RecordNotFoundError(entity_type, str(record_id))
    logger.warning(
        "status_transition_conflict",
        extra={
            "entity_type": entity_type,
            "record_id": str(record_id),
            "expected_status": expected,
            "actual_status": actual,
        },
    )
    raise StatusConflictError(entity_type, str(record_id), expected, actual)
