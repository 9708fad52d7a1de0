"""
UnitOfWork -- transaction boundary with post-commit notification delivery.

Responsibility:
    Owns one session and one ``NotificationOutbox`` for the duration of a
    workflow operation.  Commits on success, rolls back on any exception,
    and delivers queued notifications only after the commit succeeded.

Invariants enforced:
    - Notifications describe committed state only: the outbox is discarded
      on rollback.
    - Delivery happens after the session is closed, through the
      dispatcher's own sessions, so a delivery failure cannot touch the
      committed transition.

Usage:
    with unit_of_work(factory, dispatcher) as uow:
        ApplicationService(uow.session, uow.outbox, clock).submit_application(...)
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy.orm import Session, sessionmaker

from startupcall_kernel.logging_config import get_logger
from startupcall_kernel.services.notification_dispatcher import NotificationDispatcher
from startupcall_kernel.services.notification_outbox import NotificationOutbox

logger = get_logger("services.unit_of_work")


class UnitOfWork:
    """Session plus outbox handed to services inside ``unit_of_work()``."""

    def __init__(self, session: Session, outbox: NotificationOutbox):
        self.session = session
        self.outbox = outbox


@contextmanager
def unit_of_work(
    session_factory: sessionmaker[Session],
    dispatcher: NotificationDispatcher | None = None,
) -> Generator[UnitOfWork, None, None]:
    session = session_factory()
    outbox = NotificationOutbox()
    try:
        yield UnitOfWork(session, outbox)
        session.commit()
    except Exception:
        session.rollback()
        discarded = outbox.discard()
        logger.warning(
            "transaction_rolled_back",
            extra={"discarded_notifications": discarded},
            exc_info=True,
        )
        raise
    finally:
        session.close()

    intents = outbox.drain()
    if dispatcher is not None and intents:
        dispatcher.dispatch(intents)
