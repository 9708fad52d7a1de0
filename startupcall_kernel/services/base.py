"""
BaseService -- abstract base for all workflow services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service that mutates state.  Services receive a SQLAlchemy
    ``Session`` and a ``NotificationOutbox`` from the caller; they use
    ``session.flush()`` -- never ``session.commit()`` -- and enqueue
    notification intents instead of sending them.

Invariants enforced:
    Transaction boundaries: services flush within the caller's
    transaction and never commit or rollback themselves.  The caller
    (``UnitOfWork``) owns commit/rollback and delivers the outbox only
    after a successful commit.
"""

from abc import ABC

from sqlalchemy.orm import Session

from startupcall_kernel.domain.clock import Clock, SystemClock
from startupcall_kernel.services.notification_outbox import NotificationOutbox


class BaseService(ABC):
    """
    Abstract base class for workflow services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
        - Notification side effects go to ``self.outbox`` only.
    """

    def __init__(
        self,
        session: Session,
        outbox: NotificationOutbox,
        clock: Clock | None = None,
    ):
        self.session = session
        self.outbox = outbox
        self.clock = clock or SystemClock()
