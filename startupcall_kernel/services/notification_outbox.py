"""
NotificationOutbox -- per-transaction buffer of notification intents.

Workflow services enqueue intents while the transaction is open.  The
unit of work drains the outbox after commit and discards it on rollback,
so a notification is never sent for a transition that did not persist,
and a failed notification can never undo one that did.
"""

from uuid import UUID

from startupcall_kernel.domain.notification import (
    EmailMessage,
    NotificationIntent,
    NotificationType,
)


class NotificationOutbox:
    """Ordered list of pending intents for one unit of work."""

    def __init__(self) -> None:
        self._intents: list[NotificationIntent] = []

    def enqueue(self, intent: NotificationIntent) -> None:
        self._intents.append(intent)

    def notify(
        self,
        user_id: UUID,
        title: str,
        message: str,
        type: NotificationType,
        link: str | None = None,
        email: EmailMessage | None = None,
    ) -> None:
        """Shorthand for ``enqueue(NotificationIntent(...))``."""
        self.enqueue(
            NotificationIntent(
                user_id=user_id,
                title=title,
                message=message,
                type=type,
                link=link,
                email=email,
            )
        )

    def drain(self) -> tuple[NotificationIntent, ...]:
        """Return all pending intents and empty the outbox."""
        intents = tuple(self._intents)
        self._intents.clear()
        return intents

    def discard(self) -> int:
        count = len(self._intents)
        self._intents.clear()
        return count

    @property
    def pending(self) -> tuple[NotificationIntent, ...]:
        return tuple(self._intents)

    def __len__(self) -> int:
        return len(self._intents)
