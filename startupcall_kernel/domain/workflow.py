"""
Canonical workflow types (``startupcall_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for workflow state machines.  Used by every module
(calls, applications, reviews, sponsorship, budget) so that Guard,
Transition, and Workflow are defined once.  A transition names the roles
allowed to fire it and whether firing it notifies anyone.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
"""

from __future__ import annotations

from dataclasses import dataclass

from startupcall_kernel.domain.actor import Role


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the workflow executor does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    An empty ``roles`` tuple means any role may fire the transition.
    """
    from_state: str
    to_state: str
    action: str
    roles: tuple[Role, ...] = ()
    guard: Guard | None = None
    notifies: bool = True

    def allows(self, role: Role) -> bool:
        return not self.roles or role in self.roles


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for an entity lifecycle."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state} not in states"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action} references unknown state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state {t.from_state} has outgoing transition"
                )

    def transitions_between(self, from_state: str, to_state: str) -> tuple[Transition, ...]:
        return tuple(
            t for t in self.transitions
            if t.from_state == from_state and t.to_state == to_state
        )

    def actions_from(self, state: str) -> tuple[str, ...]:
        return tuple(t.action for t in self.transitions if t.from_state == state)
