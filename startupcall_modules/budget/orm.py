"""
SQLAlchemy ORM persistence models for budgets, categories and expenses.

Invariants enforced
-------------------
* ``0 <= committed_amount <= allocated_amount`` on every category
  (``ck_category_committed_range``).  The service reserves with a
  conditional UPDATE so this constraint is the backstop, not the check.
* Category names are unique within a budget.
* Deleting a startup call removes its budgets, categories and expenses.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from startupcall_kernel.db.base import TrackedBase
from startupcall_kernel.db.types import Currency, Money
from startupcall_modules.budget.models import (
    Budget,
    BudgetCategory,
    BudgetStatus,
    Expense,
    ExpenseStatus,
)


class BudgetModel(TrackedBase):
    """Funding envelope of a startup call."""

    __tablename__ = "budgets"

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_budget_total_amount"),
        Index("idx_budget_call", "startup_call_id"),
    )

    startup_call_id: Mapped[UUID] = mapped_column(
        ForeignKey("startup_calls.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_amount: Mapped[Money] = mapped_column(nullable=False)
    currency: Mapped[Currency] = mapped_column(nullable=False)
    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BudgetStatus.ACTIVE.value
    )

    def to_dto(self, categories: tuple[BudgetCategory, ...] = ()) -> Budget:
        return Budget(
            id=self.id,
            startup_call_id=self.startup_call_id,
            title=self.title,
            total_amount=self.total_amount,
            currency=self.currency,
            fiscal_year=self.fiscal_year,
            status=BudgetStatus(self.status),
            description=self.description,
            categories=categories,
        )


class BudgetCategoryModel(TrackedBase):
    """Named slice of a budget with its own allocation."""

    __tablename__ = "budget_categories"

    __table_args__ = (
        UniqueConstraint("budget_id", "name", name="uq_category_budget_name"),
        CheckConstraint("allocated_amount >= 0", name="ck_category_allocated"),
        CheckConstraint(
            "committed_amount >= 0 AND committed_amount <= allocated_amount",
            name="ck_category_committed_range",
        ),
    )

    budget_id: Mapped[UUID] = mapped_column(
        ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    allocated_amount: Mapped[Money] = mapped_column(nullable=False)
    committed_amount: Mapped[Money] = mapped_column(nullable=False, default=0)

    def to_dto(self) -> BudgetCategory:
        return BudgetCategory(
            id=self.id,
            budget_id=self.budget_id,
            name=self.name,
            allocated_amount=self.allocated_amount,
            committed_amount=self.committed_amount,
            description=self.description,
        )


class ExpenseModel(TrackedBase):
    """A spend request charged against one category."""

    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expense_amount_positive"),
        Index("idx_expense_budget_status", "budget_id", "status"),
        Index("idx_expense_category", "category_id"),
    )

    budget_id: Mapped[UUID] = mapped_column(
        ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False
    )
    category_id: Mapped[UUID] = mapped_column(
        ForeignKey("budget_categories.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[Money] = mapped_column(nullable=False)
    currency: Mapped[Currency] = mapped_column(nullable=False)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    receipt_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ExpenseStatus.PENDING.value
    )
    submitted_at: Mapped[datetime] = mapped_column(nullable=False)
    reviewed_by_id: Mapped[UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    review_comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> Expense:
        return Expense(
            id=self.id,
            budget_id=self.budget_id,
            category_id=self.category_id,
            title=self.title,
            amount=self.amount,
            currency=self.currency,
            expense_date=self.expense_date,
            status=ExpenseStatus(self.status),
            created_by=self.created_by_id,
            created_at=self.submitted_at,
            description=self.description,
            receipt_url=self.receipt_url,
            reviewed_by=self.reviewed_by_id,
            reviewed_at=self.reviewed_at,
            review_comment=self.review_comment,
        )
