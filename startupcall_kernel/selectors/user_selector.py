"""User lookups shared by every workflow module."""

from uuid import UUID

from sqlalchemy import select

from startupcall_kernel.domain.actor import ActorContext, Role
from startupcall_kernel.models.user import UserModel, UserRecord
from startupcall_kernel.selectors.base import BaseSelector


class UserSelector(BaseSelector):
    """Read-only access to users."""

    def get(self, user_id: UUID) -> UserRecord | None:
        model = self.session.get(UserModel, user_id)
        return model.to_dto() if model is not None else None

    def ids_with_role(self, role: Role) -> list[UUID]:
        """Ids of every active user holding ``role``, in a stable order."""
        return list(
            self.session.execute(
                select(UserModel.id)
                .where(UserModel.role == role.value, UserModel.is_active.is_(True))
                .order_by(UserModel.email)
            ).scalars()
        )

    def admin_ids(self) -> list[UUID]:
        return self.ids_with_role(Role.ADMIN)

    def resolve_actor(self, user_id: UUID) -> ActorContext | None:
        """The actor context for an active user, or None."""
        model = self.session.get(UserModel, user_id)
        if model is None or not model.is_active:
            return None
        return model.to_actor()
