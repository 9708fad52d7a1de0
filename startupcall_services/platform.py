"""
Platform -- composition root.

Wires one engine, one session factory, one clock, one workflow executor and
one notification dispatcher from a ``PlatformConfig``.  Entry points (the
REST app, scripts, tests) build a Platform once and open a unit of work per
operation.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from startupcall_config import PlatformConfig
from startupcall_kernel.db.engine import build_engine, build_session_factory, create_tables
from startupcall_kernel.domain.clock import Clock, SystemClock
from startupcall_kernel.logging_config import configure_logging, get_logger
from startupcall_kernel.services.notification_dispatcher import Mailer, NotificationDispatcher
from startupcall_kernel.services.unit_of_work import UnitOfWork, unit_of_work
from startupcall_modules.applications.service import ApplicationService
from startupcall_modules.budget.service import BudgetService
from startupcall_modules.calls.service import CallService
from startupcall_modules.notifications.service import NotificationService
from startupcall_modules.reviews.service import ReviewService
from startupcall_modules.sponsorship.service import SponsorshipService
from startupcall_services.workflow_executor import WorkflowExecutor

logger = get_logger("services.platform")


@dataclass(frozen=True)
class Services:
    """Module services bound to one unit of work."""
    calls: CallService
    applications: ApplicationService
    reviews: ReviewService
    sponsorship: SponsorshipService
    budget: BudgetService
    notifications: NotificationService


class Platform:
    """Process-wide collaborators shared by every request."""

    def __init__(
        self,
        config: PlatformConfig,
        engine: Engine,
        clock: Clock | None = None,
        mailer: Mailer | None = None,
    ):
        self.config = config
        self.engine = engine
        self.clock = clock or SystemClock()
        self.session_factory: sessionmaker[Session] = build_session_factory(engine)
        self.executor = WorkflowExecutor(clock=self.clock)
        self.dispatcher = NotificationDispatcher(
            self.session_factory,
            clock=self.clock,
            mailer=mailer,
            email_enabled=config.notifications.email_enabled,
            sender=config.notifications.sender,
        )

    @classmethod
    def from_config(
        cls,
        config: PlatformConfig,
        clock: Clock | None = None,
        mailer: Mailer | None = None,
        create_schema: bool = True,
    ) -> "Platform":
        configure_logging()
        db = config.database
        engine = build_engine(
            db.url,
            echo=db.echo,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            sqlite_busy_timeout=db.sqlite_busy_timeout,
        )
        if create_schema:
            create_tables(engine)
        logger.info(
            "platform_initialized",
            extra={"dialect": engine.dialect.name, "environment": config.environment},
        )
        return cls(config, engine, clock=clock, mailer=mailer)

    @contextmanager
    def unit_of_work(self) -> Generator[UnitOfWork, None, None]:
        """Transaction + outbox; notifications delivered after commit."""
        with unit_of_work(self.session_factory, self.dispatcher) as uow:
            yield uow

    @contextmanager
    def read_session(self) -> Generator[Session, None, None]:
        session = self.session_factory()
        try:
            yield session
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()

    def services(self, uow: UnitOfWork) -> Services:
        """Every module service, sharing ``uow``'s session and outbox."""
        session, outbox = uow.session, uow.outbox
        common = {"clock": self.clock, "executor": self.executor}
        return Services(
            calls=CallService(session, outbox, **common),
            applications=ApplicationService(session, outbox, config=self.config.review, **common),
            reviews=ReviewService(session, outbox, config=self.config.review, **common),
            sponsorship=SponsorshipService(
                session, outbox, config=self.config.sponsorship, **common
            ),
            budget=BudgetService(session, outbox, config=self.config.budget, **common),
            notifications=NotificationService(
                session, outbox, clock=self.clock, config=self.config.api
            ),
        )
