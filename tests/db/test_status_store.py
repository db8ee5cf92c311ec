"""
Tests for the compare-and-set status store and transactional scope.

Covers:
- A matching expected status moves the row and applies extra values
- A stale expected status raises StatusConflictError with both statuses
- Rows of another tenant behave as missing
- Extra conditions take part in the match
- session_scope commits on success and rolls back on error
"""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import select

from ledger_kernel.db.engine import get_session, session_scope
from ledger_kernel.db.status_store import compare_and_set_status
from ledger_kernel.exceptions import RecordNotFoundError, StatusConflictError
from ledger_modules.journal.models import JournalStatus
from ledger_modules.journal.orm import JournalEntryModel


@pytest.fixture
def entry(session, tenant_id, actor_id):
    model = JournalEntryModel(
        tenant_id=tenant_id,
        created_by_id=actor_id,
        entry_date=date(2024, 5, 10),
        status=JournalStatus.PENDING_APPROVAL.value,
    )
    session.add(model)
    session.commit()
    return model


def _status(session, entry_id):
    return session.execute(
        select(JournalEntryModel.status).where(JournalEntryModel.id == entry_id)
    ).scalar_one()


def _move(session, entry, tenant_id, expected, new, **kwargs):
    compare_and_set_status(
        session,
        JournalEntryModel,
        entity_type="JournalEntry",
        tenant_id=tenant_id,
        record_id=entry.id,
        expected_status=expected,
        new_status=new,
        **kwargs,
    )


class TestCompareAndSet:
    """Tests for compare_and_set_status."""

    def test_matching_status_transitions(self, session, entry, tenant_id):
        approver = uuid4()
        _move(
            session, entry, tenant_id,
            JournalStatus.PENDING_APPROVAL, JournalStatus.APPROVED,
            values={"approved_by_id": approver},
        )
        session.commit()
        assert _status(session, entry.id) == "Approved"
        stored = session.execute(
            select(JournalEntryModel.approved_by_id).where(JournalEntryModel.id == entry.id)
        ).scalar_one()
        assert stored == approver

    def test_stale_status_conflicts(self, session, entry, tenant_id):
        with pytest.raises(StatusConflictError) as exc_info:
            _move(session, entry, tenant_id, JournalStatus.DRAFT, JournalStatus.PENDING_APPROVAL)
        assert exc_info.value.expected_status == "Draft"
        assert exc_info.value.actual_status == "Pending Approval"
        assert _status(session, entry.id) == "Pending Approval"

    def test_plain_strings_accepted(self, session, entry, tenant_id):
        _move(session, entry, tenant_id, "Pending Approval", "Rejected")
        assert _status(session, entry.id) == "Rejected"

    def test_other_tenant_is_not_found(self, session, entry):
        with pytest.raises(RecordNotFoundError):
            _move(session, entry, uuid4(), JournalStatus.PENDING_APPROVAL, JournalStatus.APPROVED)
        assert _status(session, entry.id) == "Pending Approval"

    def test_extra_condition_must_match(self, session, entry, tenant_id):
        with pytest.raises(StatusConflictError):
            _move(
                session, entry, tenant_id,
                JournalStatus.PENDING_APPROVAL, JournalStatus.APPROVED,
                extra_conditions=[JournalEntryModel.narration == "never set"],
            )

    def test_conflict_logged(self, session, entry, tenant_id, captured_logs):
        with pytest.raises(StatusConflictError):
            _move(session, entry, tenant_id, JournalStatus.APPROVED, JournalStatus.POSTED)
        (record,) = [r for r in captured_logs() if r["message"] == "status_transition_conflict"]
        assert record["expected_status"] == "Approved"
        assert record["actual_status"] == "Pending Approval"


class TestSessionScope:
    """Tests for session_scope commit and rollback."""

    def test_commits_on_success(self, session, entry, tenant_id):
        with session_scope() as scoped:
            _move(scoped, entry, tenant_id, JournalStatus.PENDING_APPROVAL, JournalStatus.APPROVED)
        check = get_session()
        try:
            assert _status(check, entry.id) == "Approved"
        finally:
            check.close()

    def test_rolls_back_and_reraises(self, session, entry, tenant_id):
        with pytest.raises(StatusConflictError):
            with session_scope() as scoped:
                _move(scoped, entry, tenant_id, JournalStatus.PENDING_APPROVAL, JournalStatus.APPROVED)
                _move(scoped, entry, tenant_id, JournalStatus.PENDING_APPROVAL, JournalStatus.POSTED)
        check = get_session()
        try:
            assert _status(check, entry.id) == "Pending Approval"
        finally:
            check.close()
