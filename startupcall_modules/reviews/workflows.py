"""Review assignment workflow.

PENDING --start--> IN_PROGRESS --complete--> COMPLETED, fired only by the
assigned reviewer.
"""

from startupcall_kernel.domain.actor import Role
from startupcall_kernel.domain.workflow import Guard, Transition, Workflow
from startupcall_kernel.logging_config import get_logger

logger = get_logger("modules.reviews.workflows")

ASSIGNED_REVIEWER = Guard("actor_is_owner", "Actor is the assigned reviewer")

_REVIEWER = (Role.REVIEWER,)


REVIEW_ASSIGNMENT_WORKFLOW = Workflow(
    name="review_assignment",
    description="Reviewer assignment lifecycle",
    initial_state="pending",
    states=("pending", "in_progress", "completed"),
    transitions=(
        Transition(
            "pending", "in_progress", action="start",
            roles=_REVIEWER, guard=ASSIGNED_REVIEWER, notifies=False,
        ),
        Transition(
            "in_progress", "completed", action="complete",
            roles=_REVIEWER, guard=ASSIGNED_REVIEWER,
        ),
    ),
    terminal_states=("completed",),
)

logger.info("review_assignment_workflow_registered", extra={
    "workflow_name": REVIEW_ASSIGNMENT_WORKFLOW.name,
    "state_count": len(REVIEW_ASSIGNMENT_WORKFLOW.states),
})
