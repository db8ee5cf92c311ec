"""Budget and Forecast Workflows.

State machines for budget and cash-flow forecast versions.  Both share
the approval path; a budget ends Closed, a forecast ends Archived.
Creating a new version is not a transition: it adds a new Draft record
and is allowed only from Approved (``versioning.create_version``).
"""

from ledger_kernel.domain.workflow import Guard, Transition, Workflow
from ledger_kernel.logging_config import get_logger
from ledger_modules.budget.models import BudgetStatus, ForecastStatus

logger = get_logger("modules.budget.workflows")


APPROVED_BY_AUTHORITY = Guard("approved_by_authority", "Approver identity and approval timestamp supplied")
REASON_GIVEN = Guard("reason_given", "Rejection reason supplied")


def _plan_workflow(name: str, description: str, final_state: str, final_action: str) -> Workflow:
    """Draft -> Submitted -> Approved -> Active -> ``final_state``, with reject/revise."""
    draft, submitted, approved, rejected, active = (
        "Draft", "Submitted", "Approved", "Rejected", "Active",
    )
    return Workflow(
        name=name,
        description=description,
        initial_state=draft,
        states=(draft, submitted, approved, rejected, active, final_state),
        transitions=(
            Transition(draft, submitted, action="submit"),
            Transition(submitted, approved, action="approve", guard=APPROVED_BY_AUTHORITY),
            Transition(submitted, rejected, action="reject", guard=REASON_GIVEN),
            Transition(rejected, draft, action="revise"),
            Transition(approved, active, action="activate"),
            Transition(active, final_state, action=final_action),
        ),
        terminal_states=(final_state,),
    )


BUDGET_WORKFLOW = _plan_workflow(
    "budget", "Budget version approval lifecycle",
    BudgetStatus.CLOSED.value, "close",
)

FORECAST_WORKFLOW = _plan_workflow(
    "cash_flow_forecast", "Cash-flow forecast version approval lifecycle",
    ForecastStatus.ARCHIVED.value, "archive",
)

logger.info("budget_workflows_registered", extra={
    "workflow_names": [BUDGET_WORKFLOW.name, FORECAST_WORKFLOW.name],
    "state_count": len(BUDGET_WORKFLOW.states),
})
