"""Expense approval workflow: admins approve or reject pending expenses."""

from startupcall_kernel.domain.actor import Role
from startupcall_kernel.domain.workflow import Transition, Workflow
from startupcall_kernel.logging_config import get_logger

logger = get_logger("modules.budget.workflows")

_ADMIN = (Role.ADMIN,)


EXPENSE_WORKFLOW = Workflow(
    name="expense",
    description="Expense approval lifecycle",
    initial_state="pending",
    states=("pending", "approved", "rejected"),
    transitions=(
        Transition("pending", "approved", action="approve", roles=_ADMIN),
        Transition("pending", "rejected", action="reject", roles=_ADMIN),
    ),
    terminal_states=("approved", "rejected"),
)

logger.info("budget_workflow_registered", extra={
    "workflow_name": EXPENSE_WORKFLOW.name,
    "state_count": len(EXPENSE_WORKFLOW.states),
})
