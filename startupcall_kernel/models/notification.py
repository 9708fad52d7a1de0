"""
Notification model.

Responsibility:
    Persistent store of user notifications created as side effects of
    workflow transitions.

Invariants enforced:
    - A notification is never edited after creation except for its
      ``read`` flag (enforced by a before_update listener).
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, event, inspect
from sqlalchemy.orm import Mapped, mapped_column

from startupcall_kernel.db.base import Base, UTCDateTime
from startupcall_kernel.domain.notification import NotificationRecord, NotificationType
from startupcall_kernel.exceptions import ValidationError

_MUTABLE_FIELDS = frozenset({"read"})


class NotificationModel(Base):
    """A notification addressed to one user."""

    __tablename__ = "notifications"

    __table_args__ = (
        Index("idx_notification_user_created", "user_id", "created_at"),
        Index("idx_notification_user_read", "user_id", "read"),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    def to_dto(self) -> NotificationRecord:
        return NotificationRecord(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            message=self.message,
            type=NotificationType(self.type),
            link=self.link,
            read=self.read,
            created_at=self.created_at,
        )


@event.listens_for(NotificationModel, "before_update")
def _only_read_flag_changes(mapper, connection, target: NotificationModel) -> None:
    state = inspect(target)
    changed = {
        attr.key
        for attr in state.attrs
        if attr.history.has_changes()
    }
    illegal = changed - _MUTABLE_FIELDS
    if illegal:
        raise ValidationError(
            "Only the read flag of a notification can change",
            fields=tuple(sorted(illegal)),
        )
