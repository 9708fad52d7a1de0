"""
Expense reservation under concurrent writers.

Many entrepreneurs submit expenses against the same category at once.
The reservation is a conditional UPDATE on the category row, so however
the writers interleave:

- committed never exceeds allocated
- exactly ``allocated // amount`` expenses are accepted
- every other writer gets BudgetExceededError, not a partial write

Uses a file-backed SQLite database so that each thread has its own
connection and its own transaction.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta
from decimal import Decimal
from threading import Barrier
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from startupcall_config import PlatformConfig
from startupcall_kernel.db.engine import build_engine, create_tables, session_scope
from startupcall_kernel.domain.actor import ActorContext, Role
from startupcall_kernel.domain.clock import DeterministicClock
from startupcall_kernel.exceptions import BudgetExceededError
from startupcall_kernel.models.user import UserModel
from startupcall_modules.budget.models import BudgetDraft, CategoryDraft, ExpenseDraft
from startupcall_modules.budget.orm import BudgetCategoryModel, ExpenseModel
from startupcall_modules.calls.models import CallDraft, CallStatus
from startupcall_services.platform import Platform
from tests.conftest import RecordingMailer

pytestmark = pytest.mark.slow_locks

WRITERS = 12
ALLOCATED = Decimal("1000.50")
AMOUNT = Decimal("166.75")


def _add_user(platform: Platform, role: Role) -> ActorContext:
    user_id = uuid4()
    with session_scope(platform.session_factory) as session:
        session.add(UserModel(
            id=user_id,
            email=f"{role.value}-{user_id.hex[:8]}@example.com",
            name=f"{role.value} {user_id.hex[:4]}",
            role=role.value,
            is_active=True,
        ))
    return ActorContext(user_id=user_id, role=role)


@pytest.fixture
def file_platform(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path}/race.db", sqlite_busy_timeout=60.0)
    create_tables(engine)
    platform = Platform(
        PlatformConfig.with_defaults(), engine,
        clock=DeterministicClock(), mailer=RecordingMailer(),
    )
    yield platform
    platform.dispose()


@pytest.fixture
def category(file_platform):
    """A published call with a one-category budget; returns (budget_id, category_id)."""
    admin = _add_user(file_platform, Role.ADMIN)
    with file_platform.unit_of_work() as uow:
        services = file_platform.services(uow)
        call = services.calls.create_call(admin, CallDraft(
            title="Race Cohort",
            description="Concurrent spending",
            application_deadline=file_platform.clock.now() + timedelta(days=30),
            industry="Technology",
            location="Remote",
            status=CallStatus.PUBLISHED,
        ))
        budget = services.budget.create_budget(admin, call.id, BudgetDraft(
            title="Race budget",
            total_amount=ALLOCATED,
            fiscal_year=2025,
            categories=(CategoryDraft(name="Events", allocated_amount=ALLOCATED),),
        ))
    return budget.id, budget.categories[0].id


def test_concurrent_expenses_never_overcommit(file_platform, category):
    budget_id, category_id = category
    writers = [_add_user(file_platform, Role.ENTREPRENEUR) for _ in range(WRITERS)]
    barrier = Barrier(WRITERS)

    def submit(actor: ActorContext) -> str:
        draft = ExpenseDraft(
            category_id=category_id,
            title=f"Booth {actor.user_id.hex[:6]}",
            amount=AMOUNT,
            expense_date=date(2025, 1, 15),
        )
        barrier.wait()
        try:
            with file_platform.unit_of_work() as uow:
                file_platform.services(uow).budget.create_expense(actor, budget_id, draft)
        except BudgetExceededError:
            return "exceeded"
        return "accepted"

    with ThreadPoolExecutor(max_workers=WRITERS) as pool:
        outcomes = list(pool.map(submit, writers))

    expected = int(ALLOCATED // AMOUNT)
    assert outcomes.count("accepted") == expected
    assert outcomes.count("exceeded") == WRITERS - expected

    with file_platform.read_session() as session:
        row = session.get(BudgetCategoryModel, category_id)
        stored_total = session.execute(
            select(func.count(ExpenseModel.id)).where(ExpenseModel.category_id == category_id)
        ).scalar_one()
        assert row.committed_amount == AMOUNT * expected
        assert row.committed_amount <= row.allocated_amount
        assert stored_total == expected
