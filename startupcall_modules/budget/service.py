"""
Budget/Expense Ledger Service (``startupcall_modules.budget.service``).

Responsibility
--------------
Budgets and category allocations for a startup call, and the expenses
charged against them.

Architecture position
---------------------
**Modules layer**.  Flush-only; the caller's unit of work commits.

Invariants enforced
-------------------
* Per category, the sum of non-rejected expense amounts never exceeds
  ``allocated_amount``.  ``committed_amount`` holds that sum and is only
  ever changed by ``_reserve`` / ``_release``.
* ``_reserve`` is a single conditional UPDATE
  (``committed + amount <= allocated``).  The check and the increment are
  one statement, so two concurrent expenses can never both fit in a gap
  that holds only one of them.  Money columns use ``MoneyType``, so the
  comparison is exact on SQLite as well as PostgreSQL.
* Amounts are whole cents; sub-cent input is a ``ValidationError``.
* Approved and rejected expenses are immutable.
* Category allocations never drop below what is already committed, and
  never sum to more than the budget total.

Failure modes
-------------
* ``BudgetExceededError`` -- reservation would overdraw the category;
  carries ``remaining``.
* ``ExpenseImmutableError`` -- edit or delete after adjudication.
* ``InvalidTransitionError`` -- status change from a terminal status.
* ``NotFoundError`` -- missing budget/category/expense, category outside
  the budget, or an expense the actor may not see.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from startupcall_config.schema import BudgetConfig
from startupcall_kernel.db.types import money_from_value, normalize_currency
from startupcall_kernel.domain.actor import ActorContext, Role
from startupcall_kernel.domain.clock import Clock
from startupcall_kernel.domain.notification import EmailMessage, NotificationType
from startupcall_kernel.domain.values import parse_status
from startupcall_kernel.exceptions import (
    BudgetExceededError,
    ExpenseImmutableError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from startupcall_kernel.logging_config import get_logger
from startupcall_kernel.selectors.user_selector import UserSelector
from startupcall_kernel.services.base import BaseService
from startupcall_kernel.services.notification_outbox import NotificationOutbox
from startupcall_modules._helpers import build_patch, provided_fields, require_fields, require_role
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
from startupcall_modules.budget.orm import BudgetCategoryModel, BudgetModel, ExpenseModel
from startupcall_modules.budget.workflows import EXPENSE_WORKFLOW
from startupcall_modules.calls.orm import StartupCallModel
from startupcall_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.budget.service")

_ZERO = Decimal("0")


def expense_link(call_id: UUID, expense_id: UUID) -> str:
    return f"/startup-calls/{call_id}/budgets/expenses/{expense_id}"


class BudgetService(BaseService):
    """Budget setup and the expense ledger."""

    def __init__(
        self,
        session: Session,
        outbox: NotificationOutbox,
        clock: Clock | None = None,
        executor: WorkflowExecutor | None = None,
        config: BudgetConfig | None = None,
    ):
        super().__init__(session, outbox, clock)
        self._executor = executor or WorkflowExecutor(clock=self.clock)
        self._config = config or BudgetConfig()

    # =========================================================================
    # Budget setup
    # =========================================================================

    def create_budget(self, actor: ActorContext, call_id: UUID, draft: BudgetDraft) -> Budget:
        require_role(actor, "create budgets", Role.ADMIN)
        if self.session.get(StartupCallModel, call_id) is None:
            raise NotFoundError("startup_call", call_id)
        require_fields(draft, ("title", "total_amount", "fiscal_year"))
        total = _amount(draft.total_amount, "total_amount", allow_zero=True)
        currency = _currency(draft.currency or self._config.default_currency)
        status = parse_status(BudgetStatus, draft.status)

        allocations = [
            _amount(c.allocated_amount, "allocated_amount", allow_zero=True)
            for c in draft.categories
        ]
        if sum(allocations, _ZERO) > total:
            raise ValidationError(
                "Category allocations exceed the budget total",
                fields=("categories",),
            )
        _check_unique_names(c.name for c in draft.categories)

        model = BudgetModel(
            startup_call_id=call_id,
            title=draft.title.strip(),
            description=draft.description,
            total_amount=total,
            currency=currency,
            fiscal_year=draft.fiscal_year,
            status=status.value,
            created_by_id=actor.user_id,
        )
        self.session.add(model)
        self.session.flush()
        for category, allocated in zip(draft.categories, allocations):
            require_fields(category, ("name",))
            self.session.add(BudgetCategoryModel(
                budget_id=model.id,
                name=category.name.strip(),
                description=category.description,
                allocated_amount=allocated,
                committed_amount=_ZERO,
                created_by_id=actor.user_id,
            ))
        self.session.flush()

        logger.info("budget_created", extra={
            "budget_id": str(model.id),
            "call_id": str(call_id),
            "total_amount": total,
            "category_count": len(allocations),
        })
        return self._budget_dto(model)

    def update_budget(
        self,
        actor: ActorContext,
        budget_id: UUID,
        patch: BudgetPatch | Mapping[str, Any],
        call_id: UUID | None = None,
    ) -> Budget:
        require_role(actor, "update budgets", Role.ADMIN)
        if not isinstance(patch, BudgetPatch):
            patch = build_patch(BudgetPatch, patch)
        changes = provided_fields(patch)
        model = self._load_budget(budget_id, call_id)

        if "total_amount" in changes:
            total = _amount(changes["total_amount"], "total_amount", allow_zero=True)
            if self._allocated_total(budget_id) > total:
                raise ValidationError(
                    "Category allocations exceed the budget total",
                    fields=("total_amount",),
                )
            changes["total_amount"] = total
        if "status" in changes:
            changes["status"] = parse_status(BudgetStatus, changes["status"]).value
        if "title" in changes and not changes["title"].strip():
            raise ValidationError("title must not be blank", fields=("title",))

        for name, value in changes.items():
            setattr(model, name, value)
        model.updated_by_id = actor.user_id
        self.session.flush()
        logger.info("budget_updated", extra={
            "budget_id": str(budget_id),
            "fields": sorted(changes),
        })
        return self._budget_dto(model)

    def add_category(
        self,
        actor: ActorContext,
        budget_id: UUID,
        category: CategoryDraft,
        call_id: UUID | None = None,
    ) -> BudgetCategory:
        require_role(actor, "add budget categories", Role.ADMIN)
        require_fields(category, ("name",))
        budget = self._load_budget(budget_id, call_id)
        allocated = _amount(category.allocated_amount, "allocated_amount", allow_zero=True)
        if self._allocated_total(budget_id) + allocated > budget.total_amount:
            raise ValidationError(
                "Category allocations exceed the budget total",
                fields=("allocated_amount",),
            )

        model = BudgetCategoryModel(
            budget_id=budget_id,
            name=category.name.strip(),
            description=category.description,
            allocated_amount=allocated,
            committed_amount=_ZERO,
            created_by_id=actor.user_id,
        )
        self.session.add(model)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise ValidationError(
                f"Category {model.name} already exists in this budget", fields=("name",)
            ) from exc

        logger.info("budget_category_added", extra={
            "budget_id": str(budget_id),
            "category_id": str(model.id),
            "allocated_amount": allocated,
        })
        return model.to_dto()

    def update_category_allocation(
        self,
        actor: ActorContext,
        category_id: UUID,
        allocated_amount: Decimal,
        call_id: UUID | None = None,
    ) -> BudgetCategory:
        """
        Change a category's allocation.

        Raises:
            BudgetExceededError: the new allocation is below what is
                already committed.
            ValidationError: allocations would exceed the budget total.
        """
        require_role(actor, "update budget categories", Role.ADMIN)
        allocated = _amount(allocated_amount, "allocated_amount", allow_zero=True)
        category = self._load_category(category_id)
        try:
            budget = self._load_budget(category.budget_id, call_id)
        except NotFoundError as exc:
            raise NotFoundError("budget_category", category_id) from exc

        others = self._allocated_total(budget.id) - category.allocated_amount
        if others + allocated > budget.total_amount:
            raise ValidationError(
                "Category allocations exceed the budget total",
                fields=("allocated_amount",),
            )

        result = self.session.execute(
            update(BudgetCategoryModel)
            .where(
                BudgetCategoryModel.id == category_id,
                BudgetCategoryModel.committed_amount <= allocated,
            )
            .values(allocated_amount=allocated, updated_by_id=actor.user_id)
            .execution_options(synchronize_session=False)
        )
        self.session.refresh(category)
        if result.rowcount != 1:
            raise BudgetExceededError(
                category.id,
                category.name,
                allocated,
                category.committed_amount,
                _ZERO,
            )

        logger.info("budget_category_reallocated", extra={
            "category_id": str(category_id),
            "allocated_amount": allocated,
        })
        return category.to_dto()

    # =========================================================================
    # Expenses
    # =========================================================================

    def create_expense(
        self,
        actor: ActorContext,
        budget_id: UUID,
        draft: ExpenseDraft,
        call_id: UUID | None = None,
    ) -> Expense:
        """
        Record an expense and reserve its amount in the category.

        Admin expenses are approved on creation (``admin_expenses_auto_approved``);
        entrepreneur expenses start pending and notify every admin.
        """
        require_role(actor, "create expenses", Role.ADMIN, Role.ENTREPRENEUR)
        budget = self._load_budget(budget_id, call_id)
        category = self._load_category(draft.category_id, budget_id)

        require_fields(draft, ("title", "expense_date"))
        if not isinstance(draft.expense_date, date):
            raise ValidationError("expense_date must be a date", fields=("expense_date",))
        amount = _amount(draft.amount, "amount")
        currency = _currency(draft.currency or budget.currency)
        if currency != budget.currency:
            raise ValidationError(f"Currency must be {budget.currency}", fields=("currency",))
        if budget.status != BudgetStatus.ACTIVE.value:
            raise InvalidStateError(
                "budget", budget_id, budget.status, "Expenses can only be added to active budgets"
            )

        self._reserve(category, amount)

        status = ExpenseStatus.PENDING
        now = self.clock.now()
        if actor.is_admin and self._config.admin_expenses_auto_approved:
            status = ExpenseStatus.APPROVED
        model = ExpenseModel(
            budget_id=budget_id,
            category_id=category.id,
            title=draft.title.strip(),
            description=draft.description,
            amount=amount,
            currency=currency,
            expense_date=draft.expense_date,
            receipt_url=draft.receipt_url,
            status=status.value,
            submitted_at=now,
            reviewed_by_id=actor.user_id if status is ExpenseStatus.APPROVED else None,
            reviewed_at=now if status is ExpenseStatus.APPROVED else None,
            created_by_id=actor.user_id,
        )
        self.session.add(model)
        self.session.flush()

        if status is ExpenseStatus.PENDING:
            for admin_id in UserSelector(self.session).admin_ids():
                self.outbox.notify(
                    admin_id,
                    "New Expense Submitted",
                    f'Expense "{model.title}" of {amount} {currency} is awaiting approval.',
                    NotificationType.EXPENSE_SUBMITTED,
                    link=expense_link(budget.startup_call_id, model.id),
                )

        logger.info("expense_created", extra={
            "expense_id": str(model.id),
            "budget_id": str(budget_id),
            "category_id": str(category.id),
            "amount": amount,
            "status": status.value,
        })
        return model.to_dto()

    def update_expense(
        self,
        actor: ActorContext,
        expense_id: UUID,
        patch: ExpensePatch | Mapping[str, Any],
        call_id: UUID | None = None,
    ) -> Expense:
        """Edit a pending expense, moving its reservation if amount or category change."""
        if not isinstance(patch, ExpensePatch):
            patch = build_patch(ExpensePatch, patch)
        changes = provided_fields(patch)
        model = self._load_expense_for_actor(actor, expense_id, call_id)
        if model.status != ExpenseStatus.PENDING.value:
            raise ExpenseImmutableError(expense_id, model.status)

        if "title" in changes and not changes["title"].strip():
            raise ValidationError("title must not be blank", fields=("title",))
        new_amount = model.amount
        if "amount" in changes:
            new_amount = _amount(changes.pop("amount"), "amount")
        new_category_id = changes.pop("category_id", model.category_id)

        if new_amount != model.amount or new_category_id != model.category_id:
            old_category = self._load_category(model.category_id)
            new_category = self._load_category(new_category_id, model.budget_id)
            self._release(old_category, model.amount)
            self._reserve(new_category, new_amount)
            model.amount = new_amount
            model.category_id = new_category_id

        for name, value in changes.items():
            setattr(model, name, value)
        model.updated_by_id = actor.user_id
        self.session.flush()

        logger.info("expense_updated", extra={
            "expense_id": str(expense_id),
            "amount": model.amount,
            "category_id": str(model.category_id),
        })
        return model.to_dto()

    def update_expense_status(
        self,
        actor: ActorContext,
        expense_id: UUID,
        new_status: ExpenseStatus | str,
        comment: str | None = None,
        call_id: UUID | None = None,
    ) -> Expense:
        """
        Approve or reject a pending expense.  Same status is a no-op.

        Rejection releases the expense's reservation.
        """
        target = parse_status(ExpenseStatus, new_status)
        require_role(actor, "review expenses", Role.ADMIN)
        model = self._load_expense(expense_id, call_id)
        if model.status == target.value:
            return model.to_dto()

        transition = self._executor.authorize(
            EXPENSE_WORKFLOW, "expense", model.id, model.status, target.value, actor,
        )
        if target is ExpenseStatus.REJECTED:
            self._release(self._load_category(model.category_id), model.amount)

        now = self.clock.now()
        model.status = target.value
        model.reviewed_by_id = actor.user_id
        model.reviewed_at = now
        model.review_comment = comment
        model.updated_by_id = actor.user_id
        self.session.flush()

        if transition.notifies:
            budget = self._load_budget(model.budget_id)
            verdict = "approved" if target is ExpenseStatus.APPROVED else "rejected"
            message = f'Your expense "{model.title}" has been {verdict}.'
            if comment:
                message = f"{message} Comment: {comment}"
            self.outbox.notify(
                model.created_by_id,
                f"Expense {verdict.capitalize()}",
                message,
                NotificationType.EXPENSE_STATUS,
                link=expense_link(budget.startup_call_id, model.id),
                email=EmailMessage(subject=f"Expense {verdict}: {model.title}", body=message),
            )

        logger.info("expense_status_changed", extra={
            "expense_id": str(expense_id),
            "action": transition.action,
            "to_status": target.value,
        })
        return model.to_dto()

    def delete_expense(
        self,
        actor: ActorContext,
        expense_id: UUID,
        call_id: UUID | None = None,
    ) -> None:
        model = self._load_expense_for_actor(actor, expense_id, call_id)
        if model.status != ExpenseStatus.PENDING.value:
            raise ExpenseImmutableError(expense_id, model.status)
        self._release(self._load_category(model.category_id), model.amount)
        self.session.delete(model)
        self.session.flush()
        logger.info("expense_deleted", extra={
            "expense_id": str(expense_id),
            "amount": model.amount,
        })

    # =========================================================================
    # Reads
    # =========================================================================

    def get_budget(
        self,
        actor: ActorContext,
        budget_id: UUID,
        call_id: UUID | None = None,
    ) -> Budget:
        require_role(actor, "view budgets", Role.ADMIN, Role.ENTREPRENEUR)
        return self._budget_dto(self._load_budget(budget_id, call_id))

    def list_budgets(self, actor: ActorContext, call_id: UUID) -> list[Budget]:
        require_role(actor, "view budgets", Role.ADMIN, Role.ENTREPRENEUR)
        if self.session.get(StartupCallModel, call_id) is None:
            raise NotFoundError("startup_call", call_id)
        rows = self.session.execute(
            select(BudgetModel)
            .where(BudgetModel.startup_call_id == call_id)
            .order_by(BudgetModel.fiscal_year, BudgetModel.title)
        ).scalars().all()
        return [self._budget_dto(row) for row in rows]

    def remaining_for_category(self, category_id: UUID) -> Decimal:
        """allocated - committed, read from the database."""
        row = self.session.execute(
            select(BudgetCategoryModel.allocated_amount, BudgetCategoryModel.committed_amount)
            .where(BudgetCategoryModel.id == category_id)
        ).one_or_none()
        if row is None:
            raise NotFoundError("budget_category", category_id)
        return row.allocated_amount - row.committed_amount

    def budget_summary(
        self,
        actor: ActorContext,
        budget_id: UUID,
        call_id: UUID | None = None,
    ) -> BudgetSummary:
        require_role(actor, "view budget summaries", Role.ADMIN, Role.ENTREPRENEUR)
        budget = self._load_budget(budget_id, call_id)
        sums: dict[tuple[UUID, str], Decimal] = {
            (category_id, status): total
            for category_id, status, total in self.session.execute(
                select(ExpenseModel.category_id, ExpenseModel.status, func.sum(ExpenseModel.amount))
                .where(ExpenseModel.budget_id == budget_id)
                .group_by(ExpenseModel.category_id, ExpenseModel.status)
            )
        }

        lines = []
        for category in self._categories(budget_id):
            approved = sums.get((category.id, ExpenseStatus.APPROVED.value), _ZERO)
            pending = sums.get((category.id, ExpenseStatus.PENDING.value), _ZERO)
            lines.append(CategorySummary(
                category_id=category.id,
                name=category.name,
                allocated=category.allocated_amount,
                committed=category.committed_amount,
                approved_spent=approved,
                pending=pending,
                remaining=category.allocated_amount - category.committed_amount,
            ))

        allocated = sum((line.allocated for line in lines), _ZERO)
        committed = sum((line.committed for line in lines), _ZERO)
        return BudgetSummary(
            budget_id=budget_id,
            currency=budget.currency,
            total_amount=budget.total_amount,
            total_allocated=allocated,
            total_committed=committed,
            total_approved=sum((line.approved_spent for line in lines), _ZERO),
            total_pending=sum((line.pending for line in lines), _ZERO),
            total_remaining=allocated - committed,
            unallocated=budget.total_amount - allocated,
            categories=tuple(lines),
        )

    def list_expenses(
        self,
        actor: ActorContext,
        budget_id: UUID,
        status: ExpenseStatus | str | None = None,
        category_id: UUID | None = None,
        call_id: UUID | None = None,
    ) -> list[Expense]:
        """Admins see every expense of the budget; entrepreneurs see their own."""
        require_role(actor, "list expenses", Role.ADMIN, Role.ENTREPRENEUR)
        self._load_budget(budget_id, call_id)
        query = select(ExpenseModel).where(ExpenseModel.budget_id == budget_id)
        if status is not None:
            query = query.where(ExpenseModel.status == parse_status(ExpenseStatus, status).value)
        if category_id is not None:
            query = query.where(ExpenseModel.category_id == category_id)
        if not actor.is_admin:
            query = query.where(ExpenseModel.created_by_id == actor.user_id)
        rows = self.session.execute(
            query.order_by(ExpenseModel.expense_date.desc(), ExpenseModel.submitted_at.desc())
        ).scalars()
        return [row.to_dto() for row in rows]

    # =========================================================================
    # Reservation
    # =========================================================================

    def _reserve(self, category: BudgetCategoryModel, amount: Decimal) -> None:
        """Atomically add ``amount`` to committed if it fits, else raise."""
        result = self.session.execute(
            update(BudgetCategoryModel)
            .where(
                BudgetCategoryModel.id == category.id,
                BudgetCategoryModel.committed_amount + amount
                <= BudgetCategoryModel.allocated_amount,
            )
            .values(committed_amount=BudgetCategoryModel.committed_amount + amount)
            .execution_options(synchronize_session=False)
        )
        self.session.refresh(category)
        if result.rowcount != 1:
            logger.warning("expense_budget_exceeded", extra={
                "category_id": str(category.id),
                "requested": amount,
                "remaining": category.allocated_amount - category.committed_amount,
            })
            raise BudgetExceededError(
                category.id,
                category.name,
                category.allocated_amount,
                category.committed_amount,
                amount,
            )

    def _release(self, category: BudgetCategoryModel, amount: Decimal) -> None:
        self.session.execute(
            update(BudgetCategoryModel)
            .where(BudgetCategoryModel.id == category.id)
            .values(committed_amount=BudgetCategoryModel.committed_amount - amount)
            .execution_options(synchronize_session=False)
        )
        self.session.refresh(category)

    # =========================================================================
    # Internals
    # =========================================================================

    def _budget_dto(self, model: BudgetModel) -> Budget:
        return model.to_dto(tuple(c.to_dto() for c in self._categories(model.id)))

    def _categories(self, budget_id: UUID) -> list[BudgetCategoryModel]:
        return list(self.session.execute(
            select(BudgetCategoryModel)
            .where(BudgetCategoryModel.budget_id == budget_id)
            .order_by(BudgetCategoryModel.name)
        ).scalars())

    def _allocated_total(self, budget_id: UUID) -> Decimal:
        total = self.session.execute(
            select(func.coalesce(func.sum(BudgetCategoryModel.allocated_amount), 0))
            .where(BudgetCategoryModel.budget_id == budget_id)
        ).scalar_one()
        return total

    def _load_budget(self, budget_id: UUID, call_id: UUID | None = None) -> BudgetModel:
        model = self.session.get(BudgetModel, budget_id)
        if model is None or (call_id is not None and model.startup_call_id != call_id):
            raise NotFoundError("budget", budget_id)
        return model

    def _load_category(
        self,
        category_id: UUID,
        budget_id: UUID | None = None,
    ) -> BudgetCategoryModel:
        model = self.session.get(BudgetCategoryModel, category_id)
        if model is None or (budget_id is not None and model.budget_id != budget_id):
            raise NotFoundError("budget_category", category_id)
        return model

    def _load_expense(self, expense_id: UUID, call_id: UUID | None = None) -> ExpenseModel:
        model = self.session.get(ExpenseModel, expense_id)
        if model is None:
            raise NotFoundError("expense", expense_id)
        if call_id is not None:
            self._load_budget(model.budget_id, call_id)
        return model

    def _load_expense_for_actor(
        self,
        actor: ActorContext,
        expense_id: UUID,
        call_id: UUID | None = None,
    ) -> ExpenseModel:
        require_role(actor, "modify expenses", Role.ADMIN, Role.ENTREPRENEUR)
        model = self._load_expense(expense_id, call_id)
        if not actor.is_admin and model.created_by_id != actor.user_id:
            raise NotFoundError("expense", expense_id)
        return model


def _amount(value: Any, field_name: str, allow_zero: bool = False) -> Decimal:
    try:
        amount = money_from_value(value)
    except ValueError as exc:
        raise ValidationError(str(exc), fields=(field_name,)) from exc
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(
            f"{field_name} must be {'non-negative' if allow_zero else 'positive'}",
            fields=(field_name,),
        )
    return amount


def _currency(code: str) -> str:
    try:
        return normalize_currency(code)
    except ValueError as exc:
        raise ValidationError(str(exc), fields=("currency",)) from exc


def _check_unique_names(names: Iterable[str]) -> None:
    seen: set[str] = set()
    for name in names:
        key = (name or "").strip().lower()
        if key in seen:
            raise ValidationError(f"Duplicate category name: {name}", fields=("categories",))
        seen.add(key)
