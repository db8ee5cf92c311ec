"""
Tests for JournalService.

Covers:
- Entry creation with validation against the tenant's chart
- Draft-only update and delete
- Submit -> approve -> post -> unpost and the reject path
- Immutability of Posted and Rejected entries
- Tenant isolation and posted-ledger reads
- Balance tolerance taken from JournalConfig
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.db.status_store import compare_and_set_status
from ledger_kernel.domain.ledger import EntryLine
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    CostCenterNotFoundError,
    ImmutableRecordError,
    InvalidStateTransitionError,
    MissingFieldError,
    RecordNotFoundError,
    StatusConflictError,
    UnbalancedEntryError,
)
from ledger_modules.journal.config import JournalConfig
from ledger_modules.journal.models import JournalStatus
from ledger_modules.journal.orm import JournalEntryModel
from ledger_modules.journal.service import JournalService


def _lines(debit_account, credit_account, amount="1000.00", cost_center=None):
    value = Decimal(amount)
    return [
        EntryLine(debit_account, debit=value, cost_center=cost_center),
        EntryLine(credit_account, credit=value),
    ]


@pytest.fixture
def draft(journal_service, chart, tenant_id, actor_id):
    return journal_service.create_entry(
        tenant_id, actor_id, date(2024, 5, 10),
        _lines(chart["1000"], chart["4000"]),
        narration="Cash sale",
        reference_number="INV-1",
    )


def _post(service, tenant_id, entry_id, actor_id):
    service.submit(tenant_id, entry_id, actor_id)
    service.approve(tenant_id, entry_id, uuid4())
    return service.post(tenant_id, entry_id, actor_id)


class TestChartOfAccounts:
    """Tests for account and cost-centre maintenance."""

    def test_accounts_loaded_by_id(self, journal_service, chart, tenant_id):
        accounts = journal_service.load_accounts(tenant_id)
        assert set(accounts) == set(chart.values())
        assert accounts[chart["1500"]].subtype.value == "fixed"

    def test_archived_account_rejected_for_new_entries(self, journal_service, chart, tenant_id, actor_id):
        journal_service.archive_account(tenant_id, actor_id, chart["6000"])
        with pytest.raises(AccountNotFoundError):
            journal_service.create_entry(
                tenant_id, actor_id, date(2024, 5, 1), _lines(chart["6000"], chart["1000"]),
            )

    def test_cost_center_must_exist(self, journal_service, chart, tenant_id, actor_id):
        with pytest.raises(CostCenterNotFoundError):
            journal_service.create_entry(
                tenant_id, actor_id, date(2024, 5, 1),
                _lines(chart["6000"], chart["1000"], cost_center="OPS"),
            )
        journal_service.create_cost_center(tenant_id, actor_id, "OPS", "Operations")
        entry = journal_service.create_entry(
            tenant_id, actor_id, date(2024, 5, 1),
            _lines(chart["6000"], chart["1000"], cost_center="OPS"),
        )
        assert entry.lines[0].cost_center == "OPS"


class TestCreateEntry:
    """Tests for create_entry and reads."""

    def test_created_as_draft(self, journal_service, draft, tenant_id):
        stored = journal_service.get_entry(tenant_id, draft.entry_id)
        assert stored.status is JournalStatus.DRAFT
        assert stored.total_amount == Decimal("1000.00")
        assert stored.reference_number == "INV-1"
        assert len(stored.lines) == 2

    def test_unbalanced_entry_not_stored(self, journal_service, chart, tenant_id, actor_id):
        lines = [
            EntryLine(chart["1000"], debit=Decimal("100")),
            EntryLine(chart["4000"], credit=Decimal("99")),
        ]
        with pytest.raises(UnbalancedEntryError):
            journal_service.create_entry(tenant_id, actor_id, date(2024, 5, 1), lines)
        assert journal_service.list_entries(tenant_id) == []

    def test_balance_tolerance_from_config(self, session, deterministic_clock, journal_service, chart, tenant_id, actor_id):
        lines = [
            EntryLine(chart["1000"], debit=Decimal("100.000")),
            EntryLine(chart["4000"], credit=Decimal("99.995")),
        ]
        with pytest.raises(UnbalancedEntryError):
            journal_service.create_entry(tenant_id, actor_id, date(2024, 5, 1), lines)
        coarse = JournalService(session, deterministic_clock, config=JournalConfig(balance_precision=2))
        entry = coarse.create_entry(tenant_id, actor_id, date(2024, 5, 1), lines)
        assert coarse.submit(tenant_id, entry.entry_id, actor_id).status is JournalStatus.PENDING_APPROVAL

    def test_unknown_account(self, journal_service, chart, tenant_id, actor_id):
        with pytest.raises(AccountNotFoundError):
            journal_service.create_entry(
                tenant_id, actor_id, date(2024, 5, 1), _lines(str(uuid4()), chart["4000"]),
            )

    def test_other_tenant_cannot_read(self, journal_service, draft):
        with pytest.raises(RecordNotFoundError):
            journal_service.get_entry(uuid4(), draft.entry_id)

    def test_list_filters(self, journal_service, draft, chart, tenant_id, actor_id):
        journal_service.create_entry(tenant_id, actor_id, date(2024, 7, 1), _lines(chart["6000"], chart["1000"]))
        assert len(journal_service.list_entries(tenant_id)) == 2
        assert len(journal_service.list_entries(tenant_id, start=date(2024, 6, 1))) == 1
        assert journal_service.list_entries(tenant_id, status="Posted") == []

    def test_created_event_logged(self, journal_service, chart, tenant_id, actor_id, captured_logs):
        journal_service.create_entry(tenant_id, actor_id, date(2024, 5, 1), _lines(chart["1000"], chart["3000"]))
        events = [r for r in captured_logs() if r["message"] == "journal_entry_created"]
        assert events[0]["total_amount"] == "1000.00"
        assert events[0]["tenant_id"] == str(tenant_id)


class TestUpdateAndDelete:
    """Tests for update_entry and delete_entry."""

    def test_update_replaces_lines(self, journal_service, draft, chart, tenant_id, actor_id):
        updated = journal_service.update_entry(
            tenant_id, draft.entry_id, actor_id,
            _lines(chart["1100"], chart["4000"], amount="250"),
            narration="Credit sale",
        )
        assert updated.narration == "Credit sale"
        assert [line.account_id for line in updated.lines] == [chart["1100"], chart["4000"]]
        assert journal_service.get_entry(tenant_id, draft.entry_id).total_amount == Decimal("250")

    def test_update_validates(self, journal_service, draft, chart, tenant_id, actor_id):
        with pytest.raises(UnbalancedEntryError):
            journal_service.update_entry(tenant_id, draft.entry_id, actor_id, [
                EntryLine(chart["1000"], debit=Decimal("5")),
                EntryLine(chart["4000"], credit=Decimal("4")),
            ])
        assert journal_service.get_entry(tenant_id, draft.entry_id).total_amount == Decimal("1000")

    def test_update_pending_entry(self, journal_service, draft, chart, tenant_id, actor_id):
        journal_service.submit(tenant_id, draft.entry_id, actor_id)
        with pytest.raises(InvalidStateTransitionError):
            journal_service.update_entry(tenant_id, draft.entry_id, actor_id, _lines(chart["1000"], chart["4000"]))

    def test_delete_draft(self, journal_service, draft, tenant_id, actor_id):
        journal_service.delete_entry(tenant_id, draft.entry_id, actor_id)
        with pytest.raises(RecordNotFoundError):
            journal_service.get_entry(tenant_id, draft.entry_id)


class TestLifecycle:
    """Tests for submit, approve, reject, post and unpost."""

    def test_post_records_audit_fields(self, journal_service, draft, tenant_id, actor_id):
        posted = _post(journal_service, tenant_id, draft.entry_id, actor_id)
        assert posted.status is JournalStatus.POSTED
        stored = journal_service.get_entry(tenant_id, draft.entry_id)
        assert stored.status is JournalStatus.POSTED
        assert stored.posted_by == actor_id
        assert stored.approved_by is not None
        assert stored.posted_at is not None

    def test_approve_requires_pending(self, journal_service, draft, tenant_id):
        with pytest.raises(InvalidStateTransitionError):
            journal_service.approve(tenant_id, draft.entry_id, uuid4())

    def test_reject_requires_reason(self, journal_service, draft, tenant_id, actor_id):
        journal_service.submit(tenant_id, draft.entry_id, actor_id)
        with pytest.raises(MissingFieldError):
            journal_service.reject(tenant_id, draft.entry_id, actor_id, "  ")
        rejected = journal_service.reject(tenant_id, draft.entry_id, actor_id, "Wrong account")
        assert rejected.rejection_reason == "Wrong account"

    def test_posted_entry_is_immutable(self, journal_service, draft, chart, tenant_id, actor_id):
        _post(journal_service, tenant_id, draft.entry_id, actor_id)
        with pytest.raises(ImmutableRecordError):
            journal_service.update_entry(tenant_id, draft.entry_id, actor_id, _lines(chart["1000"], chart["4000"]))
        with pytest.raises(ImmutableRecordError):
            journal_service.delete_entry(tenant_id, draft.entry_id, actor_id)

    def test_rejected_entry_is_immutable(self, journal_service, draft, tenant_id, actor_id):
        journal_service.submit(tenant_id, draft.entry_id, actor_id)
        journal_service.reject(tenant_id, draft.entry_id, actor_id, "Duplicate")
        with pytest.raises(ImmutableRecordError):
            journal_service.delete_entry(tenant_id, draft.entry_id, actor_id)

    def test_postings_follow_posted_status(self, journal_service, draft, chart, tenant_id, actor_id):
        assert journal_service.list_postings(tenant_id) == []
        _post(journal_service, tenant_id, draft.entry_id, actor_id)
        postings = journal_service.list_postings(tenant_id)
        assert [(p.account_id, p.debit, p.credit) for p in postings] == [
            (chart["1000"], Decimal("1000"), Decimal("0")),
            (chart["4000"], Decimal("0"), Decimal("1000")),
        ]
        assert postings[0].description == "Cash sale"

        journal_service.unpost(tenant_id, draft.entry_id, actor_id)
        assert journal_service.list_postings(tenant_id) == []
        assert journal_service.get_entry(tenant_id, draft.entry_id).status is JournalStatus.APPROVED


class TestCompareAndSet:
    """Tests for the status store used by every transition."""

    def test_stale_expected_status(self, session, journal_service, draft, tenant_id, actor_id):
        journal_service.submit(tenant_id, draft.entry_id, actor_id)
        with pytest.raises(StatusConflictError) as exc_info:
            compare_and_set_status(
                session, JournalEntryModel,
                entity_type="journal_entry", tenant_id=tenant_id, record_id=draft.entry_id,
                expected_status=JournalStatus.DRAFT, new_status=JournalStatus.PENDING_APPROVAL,
            )
        assert exc_info.value.actual_status == "Pending Approval"
        session.rollback()

    def test_unknown_record(self, session, tenant_id):
        with pytest.raises(RecordNotFoundError):
            compare_and_set_status(
                session, JournalEntryModel,
                entity_type="journal_entry", tenant_id=tenant_id, record_id=uuid4(),
                expected_status="Draft", new_status="Pending Approval",
            )
        session.rollback()
