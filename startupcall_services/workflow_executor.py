"""
startupcall_services.workflow_executor -- Workflow transition authorization.

Responsibility:
    Decides whether an actor may move an entity from its current state to a
    target state under a given ``Workflow``: finds the transition, checks the
    actor's role, evaluates the transition guard, and emits one structured
    trace record per decision.

Architecture position:
    Services layer.  May import from startupcall_kernel (domain, exceptions,
    logging).  Never touches the database: callers load the entity, ask the
    executor, then apply the returned transition.

Invariants enforced:
    - No transition between the two states  -> InvalidTransitionError.
    - Transition exists but role not allowed -> ForbiddenError.
    - Guard registered and failing           -> ForbiddenError.
    - Every decision (allowed or not) is traced as WORKFLOW_TRANSITION.
"""

from __future__ import annotations

import time
from typing import Any, Callable
from uuid import UUID

from startupcall_kernel.domain.actor import ActorContext
from startupcall_kernel.domain.clock import Clock, SystemClock
from startupcall_kernel.domain.workflow import Guard, Transition, Workflow
from startupcall_kernel.exceptions import ForbiddenError, InvalidTransitionError
from startupcall_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.workflow_executor")

TRACE_TYPE_WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_NO_TRANSITION = "no_transition"
OUTCOME_ROLE_DENIED = "role_denied"
OUTCOME_GUARD_FAILED = "guard_failed"


def _emit_workflow_trace(
    clock: Clock,
    workflow_name: str,
    action: str,
    entity_type: str,
    entity_id: UUID,
    from_state: str,
    to_state: str,
    outcome: str,
    reason: str,
    duration_ms: float,
    actor: ActorContext,
) -> None:
    """Emit a structured workflow transition record."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_WORKFLOW_TRANSITION,
        "trace_ts": clock.now().isoformat(),
        "workflow": workflow_name,
        "action": action,
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "from_state": from_state,
        "to_state": to_state,
        "outcome": outcome,
        "reason": reason,
        "duration_ms": round(duration_ms, 3),
        "actor_id": str(actor.user_id),
        "actor_role": actor.role.value,
    }
    context = LogContext.get_all()
    extra = {k: v for k, v in record.items() if k not in context}
    logger.info("workflow_transition", extra=extra)


# ---------------------------------------------------------------------------
# Guard evaluation
# ---------------------------------------------------------------------------


def _get_attr(context: Any, key: str, default: Any = None) -> Any:
    """Get attribute from context (object or dict)."""
    if context is None:
        return default
    if hasattr(context, "get") and callable(getattr(context, "get")):
        return context.get(key, default)
    return getattr(context, key, default)


def _actor_is_owner(context: Any) -> bool:
    actor_id = _get_attr(context, "actor_id")
    owner_id = _get_attr(context, "owner_id")
    return actor_id is not None and actor_id == owner_id


class GuardExecutor:
    """Evaluates workflow guards against context.

    Guards are declared on transitions (name + description).  This executor
    holds the evaluation logic per guard name.
    """

    def __init__(self) -> None:
        self._evaluators: dict[str, Callable[[Any], bool]] = {}

    def register(self, guard_name: str, evaluator: Callable[[Any], bool]) -> None:
        """Register an evaluator for a guard by name."""
        self._evaluators[guard_name] = evaluator

    def evaluate(self, guard: Guard, context: Any = None) -> bool:
        """Evaluate a guard against context. Unknown guards fail closed."""
        fn = self._evaluators.get(guard.name)
        if fn is None:
            logger.warning("guard_no_evaluator", extra={"guard_name": guard.name})
            return False
        return bool(fn(context))


def default_guard_executor() -> GuardExecutor:
    """Return a GuardExecutor with built-in evaluators registered."""
    ex = GuardExecutor()
    ex.register("actor_is_owner", _actor_is_owner)
    return ex


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------


class WorkflowExecutor:
    """Authorizes state transitions for an actor."""

    def __init__(
        self,
        guard_executor: GuardExecutor | None = None,
        clock: Clock | None = None,
    ):
        self._guards = guard_executor or default_guard_executor()
        self._clock = clock or SystemClock()

    def authorize(
        self,
        workflow: Workflow,
        entity_type: str,
        entity_id: UUID,
        current_state: str,
        target_state: str,
        actor: ActorContext,
        context: Any = None,
    ) -> Transition:
        """
        Return the transition ``actor`` may fire from current to target state.

        Raises:
            InvalidTransitionError: the workflow has no such transition.
            ForbiddenError: the actor's role or the guard rejects it.
        """
        start = time.perf_counter()

        def trace(action: str, outcome: str, reason: str) -> None:
            _emit_workflow_trace(
                self._clock, workflow.name, action, entity_type, entity_id,
                current_state, target_state, outcome, reason,
                (time.perf_counter() - start) * 1000, actor,
            )

        candidates = workflow.transitions_between(current_state, target_state)
        if not candidates:
            trace("none", OUTCOME_NO_TRANSITION, "no transition between states")
            raise InvalidTransitionError(entity_type, entity_id, current_state, target_state)

        permitted = [t for t in candidates if t.allows(actor.role)]
        if not permitted:
            trace(candidates[0].action, OUTCOME_ROLE_DENIED, f"role {actor.role.value} not allowed")
            raise ForbiddenError(candidates[0].action, actor.role.value)

        transition = permitted[0]
        if transition.guard is not None and not self._guards.evaluate(transition.guard, context):
            trace(transition.action, OUTCOME_GUARD_FAILED, transition.guard.name)
            raise ForbiddenError(transition.action, actor.role.value)

        trace(transition.action, OUTCOME_SUCCESS, "allowed")
        return transition
