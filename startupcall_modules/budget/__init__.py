"""
Budget/Expense Ledger Module (``startupcall_modules.budget``).

Budgets of a startup call are split into categories.  Expenses reserve
their amount in a category on creation; rejection and deletion release
it.  A category can never be overdrawn, even by concurrent expenses.
"""

from startupcall_modules.budget.models import (
    Budget,
    BudgetCategory,
    BudgetDraft,
    BudgetPatch,
    BudgetStatus,
    BudgetSummary,
    CategoryDraft,
    CategorySummary,
    Expense,
    ExpenseDraft,
    ExpensePatch,
    ExpenseStatus,
)
from startupcall_modules.budget.workflows import EXPENSE_WORKFLOW

__all__ = [
    "Budget",
    "BudgetCategory",
    "BudgetDraft",
    "BudgetPatch",
    "BudgetStatus",
    "BudgetSummary",
    "CategoryDraft",
    "CategorySummary",
    "Expense",
    "ExpenseDraft",
    "ExpensePatch",
    "ExpenseStatus",
    "EXPENSE_WORKFLOW",
]
