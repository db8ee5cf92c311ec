"""Journal Entry Workflows.

State machine for the journal entry lifecycle.
"""

from ledger_kernel.domain.workflow import Guard, Transition, Workflow
from ledger_kernel.logging_config import get_logger
from ledger_modules.journal.models import JournalStatus

logger = get_logger("modules.journal.workflows")


APPROVER_RECORDED = Guard("approver_recorded", "Approver identity and approval timestamp supplied")
REASON_GIVEN = Guard("reason_given", "Rejection reason supplied")
LINES_BALANCED = Guard("lines_balanced", "Entry passes double-entry validation")

_DRAFT = JournalStatus.DRAFT.value
_PENDING = JournalStatus.PENDING_APPROVAL.value
_APPROVED = JournalStatus.APPROVED.value
_POSTED = JournalStatus.POSTED.value
_REJECTED = JournalStatus.REJECTED.value


JOURNAL_ENTRY_WORKFLOW = Workflow(
    name="journal_entry",
    description="Journal entry approval and posting lifecycle",
    initial_state=_DRAFT,
    states=(_DRAFT, _PENDING, _APPROVED, _POSTED, _REJECTED),
    transitions=(
        Transition(_DRAFT, _PENDING, action="submit", guard=LINES_BALANCED),
        Transition(_PENDING, _APPROVED, action="approve", guard=APPROVER_RECORDED),
        Transition(_PENDING, _REJECTED, action="reject", guard=REASON_GIVEN),
        Transition(_APPROVED, _POSTED, action="post", posts_entry=True),
        Transition(_POSTED, _APPROVED, action="unpost"),
    ),
    terminal_states=(_REJECTED,),
)

# Statuses in which the entry's content can no longer change at all.
IMMUTABLE_STATUSES = frozenset({JournalStatus.POSTED, JournalStatus.REJECTED})

logger.info("journal_entry_workflow_registered", extra={
    "workflow_name": JOURNAL_ENTRY_WORKFLOW.name,
    "state_count": len(JOURNAL_ENTRY_WORKFLOW.states),
})
