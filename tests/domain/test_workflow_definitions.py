"""
Workflow definitions and the transition executor.

Validates:
- Workflow construction rejects unknown states and terminal exits
- Every module workflow keeps its terminal states terminal
- WorkflowExecutor: missing transition, role denial, guard failure, success
- Every decision is traced as a WORKFLOW_TRANSITION record
"""

from uuid import uuid4

import pytest

from startupcall_kernel.domain.actor import ActorContext, Role
from startupcall_kernel.domain.workflow import Guard, Transition, Workflow
from startupcall_kernel.exceptions import ForbiddenError, InvalidTransitionError
from startupcall_modules.applications.workflows import CALL_APPLICATION_WORKFLOW
from startupcall_modules.budget.workflows import EXPENSE_WORKFLOW
from startupcall_modules.calls.workflows import STARTUP_CALL_WORKFLOW
from startupcall_modules.reviews.workflows import REVIEW_ASSIGNMENT_WORKFLOW
from startupcall_modules.sponsorship.workflows import (
    SPONSORSHIP_APPLICATION_WORKFLOW,
    SPONSORSHIP_OPPORTUNITY_WORKFLOW,
)
from startupcall_services.workflow_executor import (
    TRACE_TYPE_WORKFLOW_TRANSITION,
    GuardExecutor,
    WorkflowExecutor,
)

ALL_WORKFLOWS = (
    STARTUP_CALL_WORKFLOW,
    CALL_APPLICATION_WORKFLOW,
    REVIEW_ASSIGNMENT_WORKFLOW,
    SPONSORSHIP_OPPORTUNITY_WORKFLOW,
    SPONSORSHIP_APPLICATION_WORKFLOW,
    EXPENSE_WORKFLOW,
)


def _actor(role: Role) -> ActorContext:
    return ActorContext(user_id=uuid4(), role=role)


class TestWorkflowConstruction:

    def test_initial_state_must_be_a_state(self):
        with pytest.raises(ValueError, match="initial state"):
            Workflow(
                name="broken", description="", initial_state="nowhere",
                states=("a", "b"), transitions=(),
            )

    def test_transition_to_unknown_state_rejected(self):
        with pytest.raises(ValueError, match="unknown state"):
            Workflow(
                name="broken", description="", initial_state="a",
                states=("a", "b"), transitions=(Transition("a", "c", action="go"),),
            )

    def test_terminal_state_cannot_have_exits(self):
        with pytest.raises(ValueError, match="terminal state"):
            Workflow(
                name="broken", description="", initial_state="a",
                states=("a", "b"),
                transitions=(Transition("b", "a", action="undo"),),
                terminal_states=("b",),
            )

    @pytest.mark.parametrize("workflow", ALL_WORKFLOWS, ids=lambda w: w.name)
    def test_terminal_states_have_no_actions(self, workflow):
        for state in workflow.terminal_states:
            assert workflow.actions_from(state) == ()

    def test_empty_roles_allows_everyone(self):
        assert Transition("a", "b", action="go").allows(Role.SPONSOR)
        assert not Transition("a", "b", action="go", roles=(Role.ADMIN,)).allows(Role.SPONSOR)


class TestModuleWorkflows:

    def test_archived_call_is_terminal(self):
        assert STARTUP_CALL_WORKFLOW.terminal_states == ("archived",)
        assert STARTUP_CALL_WORKFLOW.transitions_between("closed", "published")

    def test_application_withdrawal_only_while_open(self):
        withdraw_from = {
            t.from_state for t in CALL_APPLICATION_WORKFLOW.transitions
            if t.to_state == "withdrawn"
        }
        assert withdraw_from == {"submitted", "under_review"}

    def test_expense_decisions_are_terminal(self):
        assert set(EXPENSE_WORKFLOW.terminal_states) == {"approved", "rejected"}
        assert EXPENSE_WORKFLOW.transitions_between("approved", "rejected") == ()

    def test_sponsorship_withdraw_is_guarded(self):
        (withdraw,) = SPONSORSHIP_APPLICATION_WORKFLOW.transitions_between("pending", "withdrawn")
        assert withdraw.guard is not None
        assert withdraw.roles == (Role.SPONSOR,)


class TestWorkflowExecutor:

    @pytest.fixture
    def executor(self, deterministic_clock):
        return WorkflowExecutor(clock=deterministic_clock)

    def test_missing_transition_is_invalid(self, executor):
        with pytest.raises(InvalidTransitionError) as exc_info:
            executor.authorize(
                EXPENSE_WORKFLOW, "expense", uuid4(), "approved", "rejected", _actor(Role.ADMIN)
            )
        assert exc_info.value.from_status == "approved"
        assert exc_info.value.to_status == "rejected"

    def test_role_not_allowed_is_forbidden(self, executor):
        with pytest.raises(ForbiddenError):
            executor.authorize(
                EXPENSE_WORKFLOW, "expense", uuid4(), "pending", "approved",
                _actor(Role.ENTREPRENEUR),
            )

    def test_guard_failure_is_forbidden(self, executor):
        sponsor = _actor(Role.SPONSOR)
        with pytest.raises(ForbiddenError):
            executor.authorize(
                SPONSORSHIP_APPLICATION_WORKFLOW, "sponsorship_application", uuid4(),
                "pending", "withdrawn", sponsor,
                context={"actor_id": sponsor.user_id, "owner_id": uuid4()},
            )

    def test_guard_passes_for_owner(self, executor):
        sponsor = _actor(Role.SPONSOR)
        transition = executor.authorize(
            SPONSORSHIP_APPLICATION_WORKFLOW, "sponsorship_application", uuid4(),
            "pending", "withdrawn", sponsor,
            context={"actor_id": sponsor.user_id, "owner_id": sponsor.user_id},
        )
        assert transition.action == "withdraw"
        assert transition.notifies

    def test_unknown_guard_fails_closed(self, deterministic_clock):
        workflow = Workflow(
            name="guarded", description="", initial_state="a", states=("a", "b"),
            transitions=(Transition("a", "b", action="go", guard=Guard("mystery", "")),),
        )
        executor = WorkflowExecutor(guard_executor=GuardExecutor(), clock=deterministic_clock)
        with pytest.raises(ForbiddenError):
            executor.authorize(workflow, "thing", uuid4(), "a", "b", _actor(Role.ADMIN))

    def test_every_decision_is_traced(self, executor, captured_logs):
        entity_id = uuid4()
        executor.authorize(
            EXPENSE_WORKFLOW, "expense", entity_id, "pending", "approved", _actor(Role.ADMIN)
        )
        with pytest.raises(ForbiddenError):
            executor.authorize(
                EXPENSE_WORKFLOW, "expense", entity_id, "pending", "rejected",
                _actor(Role.SPONSOR),
            )

        traces = [r for r in captured_logs() if r.get("trace_type") == TRACE_TYPE_WORKFLOW_TRANSITION]
        assert [t["outcome"] for t in traces] == ["success", "role_denied"]
        assert traces[0]["workflow"] == "expense"
        assert traces[0]["action"] == "approve"
        assert traces[0]["entity_id"] == str(entity_id)
        assert traces[1]["actor_role"] == "sponsor"
