"""
Property-based tests for the budget ledger.

Random sequences of expense operations (create, approve, reject, edit,
delete) run against one category.  After every sequence:

- committed_amount equals the sum of the category's non-rejected expenses
- committed_amount never exceeds allocated_amount
- remaining equals allocated minus committed

Amounts carry cents, so every comparison is on real money values.
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from sqlalchemy import select

from startupcall_config import PlatformConfig
from startupcall_kernel.db.engine import build_engine, create_tables, session_scope
from startupcall_kernel.domain.actor import ActorContext, Role
from startupcall_kernel.domain.clock import DeterministicClock
from startupcall_kernel.exceptions import BudgetExceededError
from startupcall_kernel.models.user import UserModel
from startupcall_modules.budget.models import (
    BudgetDraft,
    CategoryDraft,
    ExpenseDraft,
    ExpenseStatus,
)
from startupcall_modules.budget.orm import BudgetCategoryModel, ExpenseModel
from startupcall_modules.calls.models import CallDraft, CallStatus
from startupcall_services.platform import Platform
from tests.conftest import RecordingMailer

ALLOCATED = Decimal("1000.00")

amounts = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("600"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

operations = st.lists(
    st.one_of(
        st.tuples(st.just("create"), amounts),
        st.tuples(st.just("approve"), st.integers(min_value=0, max_value=20)),
        st.tuples(st.just("reject"), st.integers(min_value=0, max_value=20)),
        st.tuples(st.just("delete"), st.integers(min_value=0, max_value=20)),
        st.tuples(st.just("edit"), st.tuples(st.integers(min_value=0, max_value=20), amounts)),
    ),
    min_size=1,
    max_size=25,
)


def _user(platform: Platform, role: Role) -> ActorContext:
    user_id = uuid4()
    with session_scope(platform.session_factory) as session:
        session.add(UserModel(
            id=user_id,
            email=f"{user_id.hex[:10]}@example.com",
            name=role.value,
            role=role.value,
        ))
    return ActorContext(user_id=user_id, role=role)


class Ledger:
    """One platform, one budget with a single category, and the expected reservations."""

    def __init__(self):
        engine = build_engine("sqlite:///:memory:")
        create_tables(engine)
        self.platform = Platform(
            PlatformConfig.with_defaults(), engine,
            clock=DeterministicClock(), mailer=RecordingMailer(),
        )
        self.admin = _user(self.platform, Role.ADMIN)
        self.founder = _user(self.platform, Role.ENTREPRENEUR)
        call = self.run(lambda s: s.calls.create_call(self.admin, CallDraft(
            title="Fuzz cohort",
            description="Property checks",
            application_deadline=self.platform.clock.now() + timedelta(days=10),
            industry="Technology",
            location="Remote",
            status=CallStatus.PUBLISHED,
        )))
        budget = self.run(lambda s: s.budget.create_budget(self.admin, call.id, BudgetDraft(
            title="Fuzz budget",
            total_amount=ALLOCATED,
            fiscal_year=2025,
            categories=(CategoryDraft(name="Ops", allocated_amount=ALLOCATED),),
        )))
        self.budget_id = budget.id
        self.category_id = budget.categories[0].id
        # expense id -> (amount, status) as the ledger should see it
        self.expected: dict = {}
        self.order: list = []

    def run(self, fn):
        with self.platform.unit_of_work() as uow:
            return fn(self.platform.services(uow))

    def committed(self) -> Decimal:
        return sum(
            (amount for amount, status in self.expected.values() if status != "rejected"),
            Decimal(0),
        )

    def pick(self, index: int):
        if not self.order:
            return None
        return self.order[index % len(self.order)]

    def apply(self, op, arg) -> None:
        if op == "create":
            fits = self.committed() + arg <= ALLOCATED
            draft = ExpenseDraft(
                category_id=self.category_id, title="Item",
                amount=arg, expense_date=date(2025, 1, 15),
            )
            try:
                expense = self.run(lambda s: s.budget.create_expense(self.founder, self.budget_id, draft))
            except BudgetExceededError:
                assert not fits
                return
            assert fits
            self.expected[expense.id] = (arg, "pending")
            self.order.append(expense.id)
            return

        index, new_amount = arg if op == "edit" else (arg, None)
        expense_id = self.pick(index)
        if expense_id is None or self.expected[expense_id][1] != "pending":
            return
        amount, _ = self.expected[expense_id]

        if op in ("approve", "reject"):
            status = "approved" if op == "approve" else "rejected"
            self.run(lambda s: s.budget.update_expense_status(self.admin, expense_id, status))
            self.expected[expense_id] = (amount, status)
        elif op == "delete":
            self.run(lambda s: s.budget.delete_expense(self.founder, expense_id))
            del self.expected[expense_id]
            self.order.remove(expense_id)
        elif op == "edit":
            fits = self.committed() - amount + new_amount <= ALLOCATED
            try:
                self.run(lambda s: s.budget.update_expense(
                    self.founder, expense_id, {"amount": new_amount}
                ))
            except BudgetExceededError:
                assert not fits
                return
            assert fits
            self.expected[expense_id] = (new_amount, "pending")

    def check(self) -> None:
        with self.platform.read_session() as session:
            category = session.get(BudgetCategoryModel, self.category_id)
            rows = session.execute(
                select(ExpenseModel.amount, ExpenseModel.status)
                .where(ExpenseModel.category_id == self.category_id)
            ).all()
        live = sum(
            (amount for amount, status in rows if status != ExpenseStatus.REJECTED.value),
            Decimal(0),
        )
        assert category.committed_amount == live
        assert category.committed_amount == self.committed()
        assert category.committed_amount <= category.allocated_amount
        remaining = self.run(lambda s: s.budget.remaining_for_category(self.category_id))
        assert remaining == ALLOCATED - category.committed_amount

    def close(self) -> None:
        self.platform.dispose()


@settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(ops=operations)
def test_committed_tracks_live_expenses(ops):
    ledger = Ledger()
    try:
        for op, arg in ops:
            ledger.apply(op, arg)
        ledger.check()
    finally:
        ledger.close()


@settings(max_examples=30, deadline=None)
@given(requested=st.lists(amounts, min_size=1, max_size=12))
def test_greedy_acceptance(requested):
    """Each create is accepted exactly when it still fits."""
    ledger = Ledger()
    try:
        for amount in requested:
            ledger.apply("create", amount)
        accepted = [amount for amount, _ in ledger.expected.values()]
        running = Decimal(0)
        for amount in requested:
            if running + amount <= ALLOCATED:
                running += amount
        assert sum(accepted, Decimal(0)) == running
        ledger.check()
    finally:
        ledger.close()


@settings(max_examples=30, deadline=None)
@given(parts=st.lists(amounts, min_size=1, max_size=8))
def test_cent_parts_fill_category_exactly(parts):
    """Expenses that add up to the allocation all fit and leave nothing."""
    kept, total = [], Decimal(0)
    for amount in parts:
        if total + amount < ALLOCATED:
            kept.append(amount)
            total += amount
    kept.append(ALLOCATED - total)

    ledger = Ledger()
    try:
        for amount in kept:
            ledger.apply("create", amount)
        assert len(ledger.expected) == len(kept)
        assert ledger.run(lambda s: s.budget.remaining_for_category(ledger.category_id)) == 0
        ledger.check()
    finally:
        ledger.close()
