"""
Budget domain models (``startupcall_modules.budget.models``).

A budget belongs to a startup call and is split into categories.  Each
category tracks ``committed_amount``: the running sum of its non-rejected
expenses, which can never exceed ``allocated_amount``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class BudgetStatus(Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"


class ExpenseStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class BudgetCategory:
    id: UUID
    budget_id: UUID
    name: str
    allocated_amount: Decimal
    committed_amount: Decimal
    description: str | None = None

    @property
    def remaining(self) -> Decimal:
        return self.allocated_amount - self.committed_amount


@dataclass(frozen=True)
class Budget:
    id: UUID
    startup_call_id: UUID
    title: str
    total_amount: Decimal
    currency: str
    fiscal_year: int
    status: BudgetStatus
    description: str | None = None
    categories: tuple[BudgetCategory, ...] = ()


@dataclass(frozen=True)
class CategoryDraft:
    name: str
    allocated_amount: Decimal
    description: str | None = None


@dataclass(frozen=True)
class BudgetDraft:
    title: str
    total_amount: Decimal
    fiscal_year: int
    currency: str | None = None
    description: str | None = None
    status: BudgetStatus = BudgetStatus.ACTIVE
    categories: tuple[CategoryDraft, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class BudgetPatch:
    title: str | None = None
    description: str | None = None
    total_amount: Decimal | None = None
    fiscal_year: int | None = None
    status: str | None = None


@dataclass(frozen=True)
class Expense:
    id: UUID
    budget_id: UUID
    category_id: UUID
    title: str
    amount: Decimal
    currency: str
    expense_date: date
    status: ExpenseStatus
    created_by: UUID
    created_at: datetime
    description: str | None = None
    receipt_url: str | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    review_comment: str | None = None


@dataclass(frozen=True)
class ExpenseDraft:
    category_id: UUID
    title: str
    amount: Decimal
    expense_date: date
    currency: str | None = None
    description: str | None = None
    receipt_url: str | None = None


@dataclass(frozen=True)
class ExpensePatch:
    """Editable fields of a pending expense.  None means unchanged."""
    title: str | None = None
    description: str | None = None
    amount: Decimal | None = None
    category_id: UUID | None = None
    expense_date: date | None = None
    receipt_url: str | None = None


@dataclass(frozen=True)
class CategorySummary:
    category_id: UUID
    name: str
    allocated: Decimal
    committed: Decimal
    approved_spent: Decimal
    pending: Decimal
    remaining: Decimal


@dataclass(frozen=True)
class BudgetSummary:
    budget_id: UUID
    currency: str
    total_amount: Decimal
    total_allocated: Decimal
    total_committed: Decimal
    total_approved: Decimal
    total_pending: Decimal
    total_remaining: Decimal
    unallocated: Decimal
    categories: tuple[CategorySummary, ...] = ()
