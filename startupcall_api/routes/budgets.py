"""Budget and expense endpoints, nested under their startup call."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from startupcall_api.deps import get_actor, get_platform
from startupcall_api.schemas import (
    AllocationUpdate,
    BudgetCreate,
    BudgetResponse,
    BudgetSummaryResponse,
    BudgetUpdate,
    CategoryCreate,
    CategoryResponse,
    ExpenseCreate,
    ExpenseResponse,
    ExpenseStatusChange,
    ExpenseUpdate,
)
from startupcall_kernel.domain.actor import ActorContext
from startupcall_modules.budget.models import BudgetDraft, CategoryDraft, ExpenseDraft
from startupcall_services.platform import Platform

router = APIRouter(prefix="/startup-calls/{call_id}/budgets", tags=["Budgets"])


# Expense routes come first so "expenses" is never parsed as a budget id.


@router.get("/expenses", response_model=list[ExpenseResponse])
def list_expenses(
    call_id: UUID,
    budget_id: UUID = Query(alias="budgetId"),
    status_filter: str | None = Query(default=None, alias="status"),
    category_id: UUID | None = Query(default=None, alias="categoryId"),
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        expenses = platform.services(uow).budget.list_expenses(
            actor, budget_id, status=status_filter, category_id=category_id, call_id=call_id
        )
    return [ExpenseResponse.model_validate(e) for e in expenses]


@router.post("/expenses", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
def create_expense(
    call_id: UUID,
    body: ExpenseCreate,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    draft = ExpenseDraft(
        category_id=body.category_id,
        title=body.title,
        amount=body.amount,
        expense_date=body.expense_date,
        currency=body.currency,
        description=body.description,
        receipt_url=body.receipt_url,
    )
    with platform.unit_of_work() as uow:
        expense = platform.services(uow).budget.create_expense(
            actor, body.budget_id, draft, call_id=call_id
        )
    return ExpenseResponse.model_validate(expense)


@router.patch("/expenses/{expense_id}", response_model=ExpenseResponse)
def update_expense(
    call_id: UUID,
    expense_id: UUID,
    body: ExpenseUpdate,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        expense = platform.services(uow).budget.update_expense(
            actor, expense_id, body.changes(), call_id=call_id
        )
    return ExpenseResponse.model_validate(expense)


@router.put("/expenses/{expense_id}/status", response_model=ExpenseResponse)
def change_expense_status(
    call_id: UUID,
    expense_id: UUID,
    body: ExpenseStatusChange,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        expense = platform.services(uow).budget.update_expense_status(
            actor, expense_id, body.status, comment=body.comment, call_id=call_id
        )
    return ExpenseResponse.model_validate(expense)


@router.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    call_id: UUID,
    expense_id: UUID,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        platform.services(uow).budget.delete_expense(actor, expense_id, call_id=call_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
def update_category_allocation(
    call_id: UUID,
    category_id: UUID,
    body: AllocationUpdate,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        category = platform.services(uow).budget.update_category_allocation(
            actor, category_id, body.allocated_amount, call_id=call_id
        )
    return CategoryResponse.model_validate(category)


@router.post("", response_model=BudgetResponse, status_code=status.HTTP_201_CREATED)
def create_budget(
    call_id: UUID,
    body: BudgetCreate,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    draft = BudgetDraft(
        title=body.title,
        total_amount=body.total_amount,
        fiscal_year=body.fiscal_year,
        currency=body.currency,
        description=body.description,
        categories=tuple(
            CategoryDraft(
                name=c.name, allocated_amount=c.allocated_amount, description=c.description
            )
            for c in body.categories
        ),
    )
    with platform.unit_of_work() as uow:
        budget = platform.services(uow).budget.create_budget(actor, call_id, draft)
    return BudgetResponse.model_validate(budget)


@router.get("", response_model=list[BudgetResponse])
def list_budgets(
    call_id: UUID,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        budgets = platform.services(uow).budget.list_budgets(actor, call_id)
    return [BudgetResponse.model_validate(b) for b in budgets]


@router.patch("/{budget_id}", response_model=BudgetResponse)
def update_budget(
    call_id: UUID,
    budget_id: UUID,
    body: BudgetUpdate,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        budget = platform.services(uow).budget.update_budget(
            actor, budget_id, body.changes(), call_id=call_id
        )
    return BudgetResponse.model_validate(budget)


@router.post(
    "/{budget_id}/categories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_category(
    call_id: UUID,
    budget_id: UUID,
    body: CategoryCreate,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    draft = CategoryDraft(
        name=body.name, allocated_amount=body.allocated_amount, description=body.description
    )
    with platform.unit_of_work() as uow:
        category = platform.services(uow).budget.add_category(
            actor, budget_id, draft, call_id=call_id
        )
    return CategoryResponse.model_validate(category)


@router.get("/{budget_id}/summary", response_model=BudgetSummaryResponse)
def budget_summary(
    call_id: UUID,
    budget_id: UUID,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        summary = platform.services(uow).budget.budget_summary(actor, budget_id, call_id=call_id)
    return BudgetSummaryResponse.model_validate(summary)
