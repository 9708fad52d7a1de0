"""
Actor context (``startupcall_kernel.domain.actor``).

Every workflow operation receives an explicit ``ActorContext`` naming who
is acting and in which role.  Nothing in the workflow layer looks up the
current user from ambient state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class Role(Enum):
    """Platform roles."""

    ADMIN = "admin"
    ENTREPRENEUR = "entrepreneur"
    SPONSOR = "sponsor"
    REVIEWER = "reviewer"
    USER = "user"


@dataclass(frozen=True)
class ActorContext:
    """The authenticated user on whose behalf an operation runs."""

    user_id: UUID
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles
