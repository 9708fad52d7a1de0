"""Notification reads for the owning user."""

from uuid import UUID

from sqlalchemy import func, select

from startupcall_kernel.domain.notification import NotificationPage, NotificationRecord
from startupcall_kernel.models.notification import NotificationModel
from startupcall_kernel.selectors.base import BaseSelector


class NotificationSelector(BaseSelector):

    def page_for_user(
        self,
        user_id: UUID,
        limit: int = 10,
        offset: int = 0,
        only_unread: bool = False,
    ) -> NotificationPage:
        """Newest first, with total and unread counts for the user."""
        query = select(NotificationModel).where(NotificationModel.user_id == user_id)
        if only_unread:
            query = query.where(NotificationModel.read.is_(False))
        rows = self.session.execute(
            query.order_by(NotificationModel.created_at.desc(), NotificationModel.id)
            .limit(limit)
            .offset(offset)
        ).scalars()

        total = self.session.execute(
            select(func.count())
            .select_from(NotificationModel)
            .where(NotificationModel.user_id == user_id)
        ).scalar_one()
        unread = self.session.execute(
            select(func.count())
            .select_from(NotificationModel)
            .where(NotificationModel.user_id == user_id, NotificationModel.read.is_(False))
        ).scalar_one()

        return NotificationPage(
            notifications=tuple(row.to_dto() for row in rows),
            total_count=total,
            unread_count=unread,
        )

    def for_user(self, user_id: UUID) -> list[NotificationRecord]:
        """Every notification of the user, oldest first."""
        rows = self.session.execute(
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.created_at, NotificationModel.id)
        ).scalars()
        return [row.to_dto() for row in rows]
