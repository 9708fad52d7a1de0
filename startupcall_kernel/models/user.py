"""
User model.

Users are owned by the (external) identity provider; this table holds the
platform-side view: role and contact address.  The role stored here is the
one workflows trust -- request payloads never carry it.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from startupcall_kernel.db.base import Base, UTCDateTime
from startupcall_kernel.domain.actor import ActorContext, Role


@dataclass(frozen=True)
class UserRecord:
    id: UUID
    email: str
    name: str
    role: Role
    is_active: bool


class UserModel(Base):
    """A platform user."""

    __tablename__ = "users"

    __table_args__ = (
        Index("idx_user_role", "role"),
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Role.USER.value)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        nullable=False,
    )

    def to_dto(self) -> UserRecord:
        return UserRecord(
            id=self.id,
            email=self.email,
            name=self.name,
            role=Role(self.role),
            is_active=self.is_active,
        )

    def to_actor(self) -> ActorContext:
        return ActorContext(user_id=self.id, role=Role(self.role))

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
