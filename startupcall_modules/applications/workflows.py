"""Call application workflow.

Admin adjudication (under review, more info, approve, reject) plus
withdrawal by the owning entrepreneur while the application is still open.
"""

from startupcall_kernel.domain.actor import Role
from startupcall_kernel.domain.workflow import Guard, Transition, Workflow
from startupcall_kernel.logging_config import get_logger

logger = get_logger("modules.applications.workflows")

OWNS_APPLICATION = Guard("actor_is_owner", "Actor submitted this application")

_ADMIN = (Role.ADMIN,)
_ENTREPRENEUR = (Role.ENTREPRENEUR,)


CALL_APPLICATION_WORKFLOW = Workflow(
    name="call_application",
    description="Startup call application lifecycle",
    initial_state="submitted",
    states=(
        "submitted",
        "under_review",
        "more_info_required",
        "approved",
        "rejected",
        "withdrawn",
    ),
    transitions=(
        Transition("submitted", "under_review", action="start_review", roles=_ADMIN),
        Transition("submitted", "rejected", action="reject", roles=_ADMIN),
        Transition("submitted", "more_info_required", action="request_info", roles=_ADMIN),
        Transition("under_review", "approved", action="approve", roles=_ADMIN),
        Transition("under_review", "rejected", action="reject", roles=_ADMIN),
        Transition("under_review", "more_info_required", action="request_info", roles=_ADMIN),
        Transition("more_info_required", "under_review", action="resume_review", roles=_ADMIN),
        Transition("more_info_required", "rejected", action="reject", roles=_ADMIN),
        Transition(
            "submitted", "withdrawn", action="withdraw",
            roles=_ENTREPRENEUR, guard=OWNS_APPLICATION,
        ),
        Transition(
            "under_review", "withdrawn", action="withdraw",
            roles=_ENTREPRENEUR, guard=OWNS_APPLICATION,
        ),
    ),
    terminal_states=("approved", "rejected", "withdrawn"),
)

logger.info("call_application_workflow_registered", extra={
    "workflow_name": CALL_APPLICATION_WORKFLOW.name,
    "state_count": len(CALL_APPLICATION_WORKFLOW.states),
})
