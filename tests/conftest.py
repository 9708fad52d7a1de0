"""
Pytest fixtures for the startup call platform test suite.

Provides:
- A Platform over in-memory SQLite with a deterministic clock
- Users for every role, returned as ActorContext
- Factory fixtures for calls, applications, opportunities and budgets
- Structured log capture

Every test gets its own in-memory database, so nothing leaks between
tests and no external service is needed.  Concurrency tests build their
own file-backed platform (see tests/concurrency).
"""

import json
import logging
from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from typing import Callable
from uuid import UUID, uuid4

import pytest

from startupcall_config import PlatformConfig
from startupcall_kernel.db.engine import build_engine, create_tables, session_scope
from startupcall_kernel.domain.actor import ActorContext, Role
from startupcall_kernel.domain.clock import DeterministicClock
from startupcall_kernel.domain.notification import NotificationRecord
from startupcall_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from startupcall_kernel.models.user import UserModel
from startupcall_kernel.selectors.notification_selector import NotificationSelector
from startupcall_kernel.services.notification_dispatcher import Mailer
from startupcall_modules.applications.models import Application, StartupProfile
from startupcall_modules.budget.models import Budget, BudgetDraft, CategoryDraft
from startupcall_modules.calls.models import CallDraft, CallStatus, StartupCall
from startupcall_modules.sponsorship.models import (
    OpportunityDraft,
    OpportunityStatus,
    SponsorshipApplication,
    SponsorshipApplicationDraft,
    SponsorshipOpportunity,
)
from startupcall_services.platform import Platform, Services


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture startupcall logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, transact):
            transact(lambda s: ...)
            logs = captured_logs()
            assert any(r["message"] == "application_submitted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("startupcall")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Platform
# =============================================================================


class RecordingMailer(Mailer):
    """Mailer that keeps every email it is asked to send."""

    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.fail = False

    def send(self, sender: str, to: str, subject: str, body: str) -> None:
        if self.fail:
            raise ConnectionError("SMTP unavailable")
        self.sent.append({"sender": sender, "to": to, "subject": subject, "body": body})


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing (2025-01-15 12:00 UTC)."""
    return DeterministicClock()


@pytest.fixture
def platform_config() -> PlatformConfig:
    return PlatformConfig.with_defaults()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def platform(platform_config, deterministic_clock, mailer):
    """A Platform over a private in-memory SQLite database."""
    engine = build_engine("sqlite:///:memory:")
    create_tables(engine)
    plat = Platform(platform_config, engine, clock=deterministic_clock, mailer=mailer)
    yield plat
    plat.dispose()


@pytest.fixture
def transact(platform) -> Callable:
    """
    Run ``fn(services)`` inside one unit of work and return its result.

    Notifications queued by ``fn`` are delivered after the commit, exactly
    as in a request.
    """

    def _run(fn: Callable[[Services], object]):
        with platform.unit_of_work() as uow:
            return fn(platform.services(uow))

    return _run


@pytest.fixture
def notifications_for(platform) -> Callable[[UUID], list[NotificationRecord]]:
    """Stored notifications of a user, oldest first."""

    def _read(user_id: UUID) -> list[NotificationRecord]:
        with platform.read_session() as session:
            return NotificationSelector(session).for_user(user_id)

    return _read


# =============================================================================
# Users
# =============================================================================


@pytest.fixture
def create_user(platform) -> Callable[..., ActorContext]:
    """Factory fixture to create users; returns the user's ActorContext."""

    def _create_user(
        role: Role,
        email: str | None = None,
        name: str | None = None,
        is_active: bool = True,
    ) -> ActorContext:
        user_id = uuid4()
        with session_scope(platform.session_factory) as session:
            session.add(UserModel(
                id=user_id,
                email=email or f"{role.value}-{user_id.hex[:8]}@example.com",
                name=name or f"{role.value.title()} {user_id.hex[:4]}",
                role=role.value,
                is_active=is_active,
            ))
        return ActorContext(user_id=user_id, role=role)

    return _create_user


@pytest.fixture
def admin(create_user) -> ActorContext:
    return create_user(Role.ADMIN, email="admin@example.com", name="Ada Admin")


@pytest.fixture
def entrepreneur(create_user) -> ActorContext:
    return create_user(Role.ENTREPRENEUR, email="founder@example.com", name="Fay Founder")


@pytest.fixture
def other_entrepreneur(create_user) -> ActorContext:
    return create_user(Role.ENTREPRENEUR, email="rival@example.com", name="Rio Rival")


@pytest.fixture
def sponsor(create_user) -> ActorContext:
    return create_user(Role.SPONSOR, email="sponsor@example.com", name="Sam Sponsor")


@pytest.fixture
def other_sponsor(create_user) -> ActorContext:
    return create_user(Role.SPONSOR, email="sponsor2@example.com", name="Sid Sponsor")


@pytest.fixture
def reviewer(create_user) -> ActorContext:
    return create_user(Role.REVIEWER, email="reviewer1@example.com", name="Rae Reviewer")


@pytest.fixture
def reviewers(create_user) -> list[ActorContext]:
    """Three reviewers, matching the default reviews per application."""
    return [
        create_user(Role.REVIEWER, email=f"panel{i}@example.com", name=f"Panel {i}")
        for i in range(1, 4)
    ]


# =============================================================================
# Domain factories
# =============================================================================


def make_profile(**overrides) -> StartupProfile:
    """A startup profile with every required field filled in."""
    values = dict(
        startup_name="Acme Robotics",
        founding_date=date(2023, 3, 1),
        industry="Robotics",
        stage="Seed",
        description="Warehouse picking robots",
        problem="Manual picking is slow",
        solution="Autonomous pickers",
        business_model="Robots as a service",
        use_of_funds="Hiring and hardware",
        competitive_advantage="Patented gripper",
        founder_bio="Two robotics PhDs",
        team_size=6,
    )
    values.update(overrides)
    return StartupProfile(**values)


@pytest.fixture
def create_call(transact, admin, deterministic_clock) -> Callable[..., StartupCall]:
    """Factory fixture: a startup call, published unless told otherwise."""

    def _create_call(
        status: CallStatus = CallStatus.PUBLISHED,
        deadline_days: int = 30,
        title: str = "Spring Accelerator 2025",
    ) -> StartupCall:
        draft = CallDraft(
            title=title,
            description="Twelve-week accelerator for early-stage startups",
            application_deadline=deterministic_clock.now() + timedelta(days=deadline_days),
            industry="Technology",
            location="Berlin",
            funding_amount=Decimal("50000"),
            status=status,
        )
        return transact(lambda s: s.calls.create_call(admin, draft))

    return _create_call


@pytest.fixture
def published_call(create_call) -> StartupCall:
    return create_call()


@pytest.fixture
def submit_application(transact) -> Callable[..., Application]:
    """Factory fixture: an entrepreneur's application to a call."""

    def _submit(actor: ActorContext, call_id: UUID, **profile_overrides) -> Application:
        profile = make_profile(**profile_overrides)
        return transact(lambda s: s.applications.submit_application(actor, call_id, profile))

    return _submit


@pytest.fixture
def create_opportunity(transact, admin) -> Callable[..., SponsorshipOpportunity]:
    """Factory fixture: a sponsorship opportunity, open unless told otherwise."""

    def _create(
        status: OpportunityStatus = OpportunityStatus.OPEN,
        min_amount: str = "1000",
        max_amount: str = "10000",
        deadline=None,
        title: str = "Demo Day Gold Sponsor",
    ) -> SponsorshipOpportunity:
        draft = OpportunityDraft(
            title=title,
            description="Logo on stage and a booth at demo day",
            min_amount=Decimal(min_amount),
            max_amount=Decimal(max_amount),
            benefits="Booth, logo, keynote mention",
            deadline=deadline,
            status=status,
        )
        return transact(lambda s: s.sponsorship.create_opportunity(admin, draft))

    return _create


def make_sponsorship_draft(**overrides) -> SponsorshipApplicationDraft:
    values = dict(
        amount=Decimal("5000"),
        sponsor_name="Globex Corp",
        contact_person="Hank Scorpio",
        email="hank@globex.example",
        message="Happy to support the cohort",
    )
    values.update(overrides)
    return SponsorshipApplicationDraft(**values)


@pytest.fixture
def apply_for_sponsorship(transact) -> Callable[..., SponsorshipApplication]:

    def _apply(actor: ActorContext, opportunity_id: UUID, **overrides) -> SponsorshipApplication:
        draft = make_sponsorship_draft(**overrides)
        return transact(lambda s: s.sponsorship.create_application(actor, opportunity_id, draft))

    return _apply


@pytest.fixture
def create_budget(transact, admin) -> Callable[..., Budget]:
    """Factory fixture: a budget for a call with the given category allocations."""

    def _create(
        call_id: UUID,
        categories: dict[str, str] | None = None,
        total: str = "10000",
    ) -> Budget:
        if categories is None:
            categories = {"Marketing": "1000", "Travel": "500"}
        draft = BudgetDraft(
            title="Cohort budget",
            total_amount=Decimal(total),
            fiscal_year=2025,
            categories=tuple(
                CategoryDraft(name=name, allocated_amount=Decimal(amount))
                for name, amount in categories.items()
            ),
        )
        return transact(lambda s: s.budget.create_budget(admin, call_id, draft))

    return _create


def category_id(budget: Budget, name: str) -> UUID:
    return next(c.id for c in budget.categories if c.name == name)
