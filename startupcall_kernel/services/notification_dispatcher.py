"""
NotificationDispatcher -- fire-and-forget notification delivery.

Responsibility:
    Persists one notification per intent, each in its own short
    transaction, and hands the optional email to a ``Mailer``.

Architecture position:
    Kernel > Services.  Runs after the triggering workflow transaction has
    committed; it owns its own sessions.

Invariants enforced:
    - Exactly one stored notification per intent.  No batching, no
      de-duplication across repeated identical transitions.
    - A failure to store a notification or to send an email is logged and
      swallowed.  It never reaches the caller of the workflow operation.

Failure modes:
    - Store failures: logged as ``notification_dispatch_failed``.
    - Mailer failures: logged as ``notification_email_failed``.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from startupcall_kernel.db.engine import session_scope
from startupcall_kernel.domain.clock import Clock, SystemClock
from startupcall_kernel.domain.notification import (
    EmailMessage,
    NotificationIntent,
    NotificationType,
)
from startupcall_kernel.logging_config import get_logger
from startupcall_kernel.models.notification import NotificationModel
from startupcall_kernel.models.user import UserModel

logger = get_logger("services.notification_dispatcher")


class Mailer(ABC):
    """Outbound email seam.  Delivery itself is an external concern."""

    @abstractmethod
    def send(self, sender: str, to: str, subject: str, body: str) -> None:
        ...


class LoggingMailer(Mailer):
    """Default mailer: records the email in the log instead of sending it."""

    def send(self, sender: str, to: str, subject: str, body: str) -> None:
        logger.info(
            "email_logged",
            extra={"sender": sender, "to": to, "subject": subject},
        )


class NotificationDispatcher:
    """
    Delivers notification intents.

    Contract:
        ``dispatch`` and ``notify`` never raise because of a delivery
        failure; they report how many notifications were stored.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        mailer: Mailer | None = None,
        email_enabled: bool = True,
        sender: str = "noreply@startupcall.local",
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._mailer = mailer or LoggingMailer()
        self._email_enabled = email_enabled
        self._sender = sender

    def notify(
        self,
        user_id: UUID,
        title: str,
        message: str,
        type: NotificationType,
        link: str | None = None,
        email: EmailMessage | None = None,
    ) -> bool:
        """Deliver a single notification; True when it was stored."""
        intent = NotificationIntent(
            user_id=user_id, title=title, message=message,
            type=type, link=link, email=email,
        )
        return self.dispatch((intent,)) == 1

    def dispatch(self, intents: Iterable[NotificationIntent]) -> int:
        """Deliver every intent independently; return the number stored."""
        stored = 0
        for intent in intents:
            recipient_email = self._store(intent)
            if recipient_email is None:
                continue
            stored += 1
            if intent.email is not None:
                self._send_email(intent, recipient_email)
        return stored

    def _store(self, intent: NotificationIntent) -> str | None:
        """Persist the notification; return the recipient's email, or None on failure."""
        try:
            with session_scope(self._session_factory) as session:
                recipient = session.execute(
                    select(UserModel.email).where(UserModel.id == intent.user_id)
                ).scalar_one_or_none()
                if recipient is None:
                    logger.warning(
                        "notification_recipient_missing",
                        extra={"user_id": str(intent.user_id), "type": intent.type.value},
                    )
                    return None
                session.add(
                    NotificationModel(
                        user_id=intent.user_id,
                        title=intent.title,
                        message=intent.message,
                        type=intent.type.value,
                        link=intent.link,
                        read=False,
                        created_at=self._clock.now(),
                    )
                )
        except Exception:  # noqa: BLE001
            logger.error(
                "notification_dispatch_failed",
                extra={"user_id": str(intent.user_id), "type": intent.type.value},
                exc_info=True,
            )
            return None

        logger.info(
            "notification_stored",
            extra={"user_id": str(intent.user_id), "type": intent.type.value},
        )
        return recipient

    def _send_email(self, intent: NotificationIntent, recipient_email: str) -> None:
        if not self._email_enabled:
            return
        try:
            self._mailer.send(
                self._sender,
                recipient_email,
                intent.email.subject,
                intent.email.body,
            )
        except Exception:  # noqa: BLE001
            logger.error(
                "notification_email_failed",
                extra={"user_id": str(intent.user_id), "type": intent.type.value},
                exc_info=True,
            )
