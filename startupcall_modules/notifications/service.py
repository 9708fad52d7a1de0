"""
Notification Service (``startupcall_modules.notifications.service``).

Invariants enforced
-------------------
* A user only ever reads or marks their own notifications.
* ``read`` is the only field that changes after a notification is stored.
* A broadcast enqueues one intent per recipient; nothing is batched.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from startupcall_config.schema import ApiConfig
from startupcall_kernel.domain.actor import ActorContext, Role
from startupcall_kernel.domain.clock import Clock
from startupcall_kernel.domain.notification import NotificationPage, NotificationType
from startupcall_kernel.exceptions import ValidationError
from startupcall_kernel.logging_config import get_logger
from startupcall_kernel.models.notification import NotificationModel
from startupcall_kernel.selectors.notification_selector import NotificationSelector
from startupcall_kernel.selectors.user_selector import UserSelector
from startupcall_kernel.services.base import BaseService
from startupcall_kernel.services.notification_outbox import NotificationOutbox
from startupcall_modules._helpers import require_role

logger = get_logger("modules.notifications.service")


class NotificationService(BaseService):
    """Notification inbox operations."""

    def __init__(
        self,
        session: Session,
        outbox: NotificationOutbox,
        clock: Clock | None = None,
        config: ApiConfig | None = None,
    ):
        super().__init__(session, outbox, clock)
        self._config = config or ApiConfig()

    def list_for_user(
        self,
        actor: ActorContext,
        limit: int | None = None,
        offset: int = 0,
        only_unread: bool = False,
    ) -> NotificationPage:
        limit = self._config.default_page_size if limit is None else limit
        if not 1 <= limit <= self._config.max_page_size:
            raise ValidationError(
                f"limit must be between 1 and {self._config.max_page_size}",
                fields=("limit",),
            )
        if offset < 0:
            raise ValidationError("offset must not be negative", fields=("offset",))
        return NotificationSelector(self.session).page_for_user(
            actor.user_id, limit=limit, offset=offset, only_unread=only_unread
        )

    def mark_read(self, actor: ActorContext, ids: Iterable[UUID] | None = None) -> int:
        """
        Mark the actor's notifications read; all unread ones when ``ids`` is None.

        Ids that are unknown or belong to someone else are ignored.  Returns
        how many notifications changed.
        """
        query = select(NotificationModel).where(
            NotificationModel.user_id == actor.user_id,
            NotificationModel.read.is_(False),
        )
        if ids is not None:
            wanted = list(ids)
            if not wanted:
                return 0
            query = query.where(NotificationModel.id.in_(wanted))

        rows = self.session.execute(query).scalars().all()
        for row in rows:
            row.read = True
        self.session.flush()

        logger.info("notifications_marked_read", extra={
            "user_id": str(actor.user_id),
            "count": len(rows),
        })
        return len(rows)

    def broadcast(
        self,
        actor: ActorContext,
        role: Role | None,
        title: str,
        message: str,
        link: str | None = None,
    ) -> int:
        """Notify every active user holding ``role`` (every active user when None)."""
        require_role(actor, "broadcast notifications", Role.ADMIN)
        if not title or not title.strip() or not message or not message.strip():
            raise ValidationError("Title and message are required", fields=("title", "message"))

        users = UserSelector(self.session)
        roles = [role] if role is not None else list(Role)
        recipients = [user_id for r in roles for user_id in users.ids_with_role(r)]
        for user_id in recipients:
            self.outbox.notify(user_id, title, message, NotificationType.ANNOUNCEMENT, link=link)

        logger.info("notification_broadcast", extra={
            "role": role.value if role is not None else None,
            "recipient_count": len(recipients),
        })
        return len(recipients)
