"""
Tests for the workflow state machines.

Covers:
- Workflow construction checks
- require() resolution and InvalidStateTransitionError payload
- The journal, GST return, budget and forecast lifecycles as declared
"""

import pytest

from ledger_kernel.domain.workflow import Transition, Workflow, state_value
from ledger_kernel.exceptions import InvalidStateTransitionError
from ledger_modules.budget.models import BudgetStatus, ForecastStatus
from ledger_modules.budget.workflows import BUDGET_WORKFLOW, FORECAST_WORKFLOW
from ledger_modules.gst.models import GstReturnStatus
from ledger_modules.gst.workflows import GST_RETURN_WORKFLOW
from ledger_modules.journal.models import JournalStatus
from ledger_modules.journal.workflows import JOURNAL_ENTRY_WORKFLOW


class TestWorkflowDefinition:
    """Tests for Workflow.__post_init__ checks."""

    def test_unknown_initial_state(self):
        with pytest.raises(ValueError, match="initial state"):
            Workflow("w", "", "X", ("A",), ())

    def test_transition_to_unknown_state(self):
        with pytest.raises(ValueError, match="unknown state"):
            Workflow("w", "", "A", ("A",), (Transition("A", "B", "go"),))

    def test_duplicate_transition(self):
        with pytest.raises(ValueError, match="duplicate"):
            Workflow("w", "", "A", ("A", "B"), (
                Transition("A", "B", "go"),
                Transition("A", "A", "go"),
            ))

    def test_terminal_state_with_transition(self):
        with pytest.raises(ValueError, match="terminal"):
            Workflow("w", "", "A", ("A", "B"), (Transition("B", "A", "back"),), terminal_states=("B",))

    def test_state_value(self):
        assert state_value(JournalStatus.DRAFT) == "Draft"
        assert state_value("Draft") == "Draft"


class TestRequire:
    """Tests for Workflow.require."""

    def test_returns_transition(self):
        transition = JOURNAL_ENTRY_WORKFLOW.require("journal_entry", "e1", "Approved", "post")
        assert transition.to_state == "Posted"
        assert transition.posts_entry

    def test_missing_transition_raises(self):
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            JOURNAL_ENTRY_WORKFLOW.require("journal_entry", "e1", "Draft", "post")
        error = exc_info.value
        assert error.entity_id == "e1"
        assert error.current_status == "Draft"
        assert error.action == "post"
        assert error.code == "INVALID_STATE_TRANSITION"


class TestJournalLifecycle:
    """Tests for JOURNAL_ENTRY_WORKFLOW."""

    def test_happy_path(self):
        state = JOURNAL_ENTRY_WORKFLOW.initial_state
        for action in ("submit", "approve", "post"):
            state = JOURNAL_ENTRY_WORKFLOW.require("journal_entry", "e", state, action).to_state
        assert state == JournalStatus.POSTED.value

    def test_unpost_returns_to_approved(self):
        assert JOURNAL_ENTRY_WORKFLOW.find("Posted", "unpost").to_state == "Approved"

    def test_rejected_is_terminal(self):
        assert JOURNAL_ENTRY_WORKFLOW.actions_from(JournalStatus.REJECTED.value) == ()
        assert JOURNAL_ENTRY_WORKFLOW.is_terminal("Rejected")

    def test_only_post_counts_toward_balances(self):
        posting = [t.action for t in JOURNAL_ENTRY_WORKFLOW.transitions if t.posts_entry]
        assert posting == ["post"]


class TestGstReturnLifecycle:
    """Tests for GST_RETURN_WORKFLOW."""

    def test_populate_allowed_before_filing(self):
        for status in (
            GstReturnStatus.NOT_FILED,
            GstReturnStatus.IN_PROGRESS,
            GstReturnStatus.READY_FOR_REVIEW,
            GstReturnStatus.FILED_WITH_ERROR,
        ):
            assert GST_RETURN_WORKFLOW.find(status.value, "populate").to_state == "In Progress"

    def test_filed_is_terminal(self):
        assert GST_RETURN_WORKFLOW.is_terminal(GstReturnStatus.FILED.value)
        assert GST_RETURN_WORKFLOW.actions_from(GstReturnStatus.FILED.value) == ()

    def test_calculate_requires_population(self):
        assert GST_RETURN_WORKFLOW.find(GstReturnStatus.NOT_FILED.value, "calculate") is None


class TestPlanLifecycles:
    """Tests for BUDGET_WORKFLOW and FORECAST_WORKFLOW."""

    @pytest.mark.parametrize("workflow,final_action,final_state", [
        (BUDGET_WORKFLOW, "close", BudgetStatus.CLOSED.value),
        (FORECAST_WORKFLOW, "archive", ForecastStatus.ARCHIVED.value),
    ])
    def test_full_path(self, workflow, final_action, final_state):
        state = workflow.initial_state
        for action in ("submit", "reject", "revise", "submit", "approve", "activate", final_action):
            state = workflow.require(workflow.name, "p", state, action).to_state
        assert state == final_state
        assert workflow.is_terminal(state)

    def test_approved_cannot_be_revised(self):
        assert BUDGET_WORKFLOW.find(BudgetStatus.APPROVED.value, "revise") is None
