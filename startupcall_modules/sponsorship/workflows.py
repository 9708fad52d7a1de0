"""Sponsorship workflows.

Opportunity lifecycle (admin) and the sponsor application lifecycle
(admin decides, sponsor may withdraw while pending).
"""

from startupcall_kernel.domain.actor import Role
from startupcall_kernel.domain.workflow import Guard, Transition, Workflow
from startupcall_kernel.logging_config import get_logger

logger = get_logger("modules.sponsorship.workflows")

OWNS_SPONSORSHIP_APPLICATION = Guard("actor_is_owner", "Actor is the applying sponsor")

_ADMIN = (Role.ADMIN,)
_SPONSOR = (Role.SPONSOR,)


SPONSORSHIP_OPPORTUNITY_WORKFLOW = Workflow(
    name="sponsorship_opportunity",
    description="Sponsorship opportunity lifecycle",
    initial_state="draft",
    states=("draft", "open", "closed", "archived"),
    transitions=(
        Transition("draft", "open", action="open", roles=_ADMIN, notifies=False),
        Transition("open", "closed", action="close", roles=_ADMIN, notifies=False),
        Transition("closed", "open", action="reopen", roles=_ADMIN, notifies=False),
        Transition("draft", "archived", action="archive", roles=_ADMIN, notifies=False),
        Transition("open", "archived", action="archive", roles=_ADMIN, notifies=False),
        Transition("closed", "archived", action="archive", roles=_ADMIN, notifies=False),
    ),
    terminal_states=("archived",),
)

SPONSORSHIP_APPLICATION_WORKFLOW = Workflow(
    name="sponsorship_application",
    description="Sponsor application lifecycle",
    initial_state="pending",
    states=("pending", "approved", "rejected", "withdrawn"),
    transitions=(
        Transition("pending", "approved", action="approve", roles=_ADMIN),
        Transition("pending", "rejected", action="reject", roles=_ADMIN),
        Transition(
            "pending", "withdrawn", action="withdraw",
            roles=_SPONSOR, guard=OWNS_SPONSORSHIP_APPLICATION,
        ),
    ),
    terminal_states=("approved", "rejected", "withdrawn"),
)

for _wf in (SPONSORSHIP_OPPORTUNITY_WORKFLOW, SPONSORSHIP_APPLICATION_WORKFLOW):
    logger.info("sponsorship_workflow_registered", extra={
        "workflow_name": _wf.name,
        "state_count": len(_wf.states),
    })
