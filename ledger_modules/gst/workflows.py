"""GST Return Workflows.

State machine for GSTR-1 and GSTR-3B returns.  Both return types share
one lifecycle.
"""

from ledger_kernel.domain.workflow import Guard, Transition, Workflow
from ledger_kernel.logging_config import get_logger
from ledger_modules.gst.models import GstReturnStatus

logger = get_logger("modules.gst.workflows")


ACKNOWLEDGEMENT_RECORDED = Guard(
    "acknowledgement_recorded", "Portal acknowledgement number and date supplied",
)

_NOT_FILED = GstReturnStatus.NOT_FILED.value
_IN_PROGRESS = GstReturnStatus.IN_PROGRESS.value
_READY = GstReturnStatus.READY_FOR_REVIEW.value
_FILED = GstReturnStatus.FILED.value
_FILED_WITH_ERROR = GstReturnStatus.FILED_WITH_ERROR.value


GST_RETURN_WORKFLOW = Workflow(
    name="gst_return",
    description="Statutory return preparation and filing",
    initial_state=_NOT_FILED,
    states=(_NOT_FILED, _IN_PROGRESS, _READY, _FILED, _FILED_WITH_ERROR),
    transitions=(
        # populate fully replaces the collections, so it may repeat
        Transition(_NOT_FILED, _IN_PROGRESS, action="populate"),
        Transition(_IN_PROGRESS, _IN_PROGRESS, action="populate"),
        Transition(_READY, _IN_PROGRESS, action="populate"),
        Transition(_FILED_WITH_ERROR, _IN_PROGRESS, action="populate"),
        Transition(_IN_PROGRESS, _READY, action="calculate"),
        Transition(_READY, _READY, action="calculate"),
        Transition(_READY, _FILED, action="mark_filed", guard=ACKNOWLEDGEMENT_RECORDED),
        Transition(_READY, _FILED_WITH_ERROR, action="mark_filing_error"),
    ),
    terminal_states=(_FILED,),
)

logger.info("gst_return_workflow_registered", extra={
    "workflow_name": GST_RETURN_WORKFLOW.name,
    "state_count": len(GST_RETURN_WORKFLOW.states),
})
