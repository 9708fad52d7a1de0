"""Startup call workflow.

DRAFT -> PUBLISHED -> CLOSED -> ARCHIVED, with reopen and archive-from-anywhere.
"""

from startupcall_kernel.domain.actor import Role
from startupcall_kernel.domain.workflow import Transition, Workflow
from startupcall_kernel.logging_config import get_logger

logger = get_logger("modules.calls.workflows")

_ADMIN = (Role.ADMIN,)


STARTUP_CALL_WORKFLOW = Workflow(
    name="startup_call",
    description="Startup call lifecycle",
    initial_state="draft",
    states=("draft", "published", "closed", "archived"),
    transitions=(
        Transition("draft", "published", action="publish", roles=_ADMIN, notifies=False),
        Transition("published", "closed", action="close", roles=_ADMIN, notifies=False),
        Transition("closed", "published", action="reopen", roles=_ADMIN, notifies=False),
        Transition("draft", "archived", action="archive", roles=_ADMIN, notifies=False),
        Transition("published", "archived", action="archive", roles=_ADMIN, notifies=False),
        Transition("closed", "archived", action="archive", roles=_ADMIN, notifies=False),
    ),
    terminal_states=("archived",),
)

logger.info("startup_call_workflow_registered", extra={
    "workflow_name": STARTUP_CALL_WORKFLOW.name,
    "state_count": len(STARTUP_CALL_WORKFLOW.states),
})
