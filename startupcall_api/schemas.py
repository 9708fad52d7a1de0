"""
Request and response bodies of the REST surface.

Bodies use camelCase on the wire and snake_case in Python.  Request
models reject unknown fields; amounts go out as strings with two decimals.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from startupcall_kernel.db.types import round_money


def _money(value: Decimal) -> str:
    return str(round_money(value))


Amount = Annotated[Decimal, PlainSerializer(_money, return_type=str, when_used="json")]

# Statuses and types leave the API as their canonical lowercase value
EnumValue = Annotated[str, BeforeValidator(lambda v: v.value if isinstance(v, Enum) else v)]


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def changes(self) -> dict[str, Any]:
        """Fields the client actually sent, by Python name."""
        return self.model_dump(exclude_unset=True)


class ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ErrorResponse(ResponseModel):
    error: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class StatusChange(RequestModel):
    status: str


# =============================================================================
# Startup calls
# =============================================================================


class CallCreate(RequestModel):
    title: str
    description: str
    application_deadline: AwareDatetime
    industry: str
    location: str
    funding_amount: Decimal | None = None
    status: str = "draft"


class CallUpdate(RequestModel):
    title: str | None = None
    description: str | None = None
    application_deadline: AwareDatetime | None = None
    industry: str | None = None
    location: str | None = None
    funding_amount: Decimal | None = None


class CallResponse(ResponseModel):
    id: UUID
    title: str
    description: str
    status: EnumValue
    application_deadline: datetime
    industry: str
    location: str
    published_date: datetime | None = None
    funding_amount: Amount | None = None
    application_status: str | None = None


class ClosedCallsResponse(ResponseModel):
    closed_ids: list[UUID]
    count: int


# =============================================================================
# Applications
# =============================================================================


class ApplicationCreate(RequestModel):
    startup_name: str | None = None
    founding_date: date | None = None
    industry: str | None = None
    stage: str | None = None
    description: str | None = None
    problem: str | None = None
    solution: str | None = None
    business_model: str | None = None
    use_of_funds: str | None = None
    competitive_advantage: str | None = None
    founder_bio: str | None = None
    website: str | None = None
    team_size: int | None = None
    traction: str | None = None
    funding: str | None = None
    pitch_deck_url: str | None = None
    financials_url: str | None = None
    startup_id: UUID | None = None


class ApplicationAdminUpdate(RequestModel):
    status: str | None = None
    reviews_completed: int | None = None
    reviews_total: int | None = None


class ProfileResponse(ResponseModel):
    startup_name: str | None = None
    founding_date: date | None = None
    industry: str | None = None
    stage: str | None = None
    description: str | None = None
    problem: str | None = None
    solution: str | None = None
    business_model: str | None = None
    use_of_funds: str | None = None
    competitive_advantage: str | None = None
    founder_bio: str | None = None
    website: str | None = None
    team_size: int | None = None
    traction: str | None = None
    funding: str | None = None
    pitch_deck_url: str | None = None
    financials_url: str | None = None


class ApplicationResponse(ResponseModel):
    id: UUID
    call_id: UUID
    user_id: UUID
    status: EnumValue
    submitted_at: datetime
    reviews_completed: int
    reviews_total: int
    startup_id: UUID | None = None
    profile: ProfileResponse


# =============================================================================
# Reviews
# =============================================================================


class ReviewerAssign(RequestModel):
    reviewer_id: UUID
    due_date: AwareDatetime | None = None


class ReviewComplete(RequestModel):
    score: Decimal | None = None
    feedback: str | None = None
    innovation_score: Decimal | None = None
    market_score: Decimal | None = None
    team_score: Decimal | None = None
    execution_score: Decimal | None = None


class ReviewAssignmentResponse(ResponseModel):
    id: UUID
    application_id: UUID
    reviewer_id: UUID
    status: EnumValue
    assigned_at: datetime
    due_date: datetime
    score: Decimal | None = None
    innovation_score: Decimal | None = None
    market_score: Decimal | None = None
    team_score: Decimal | None = None
    execution_score: Decimal | None = None
    feedback: str | None = None
    completed_at: datetime | None = None


class ApplicationReviewsResponse(ResponseModel):
    application_id: UUID
    average_score: Decimal | None
    completed_count: int
    assigned_count: int
    reviews: list[ReviewAssignmentResponse]


# =============================================================================
# Sponsorship
# =============================================================================


class OpportunityCreate(RequestModel):
    title: str
    description: str
    min_amount: Decimal
    max_amount: Decimal
    currency: str | None = None
    benefits: str | None = None
    deadline: AwareDatetime | None = None
    startup_call_id: UUID | None = None
    status: str = "draft"


class OpportunityUpdate(RequestModel):
    title: str | None = None
    description: str | None = None
    benefits: str | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    deadline: AwareDatetime | None = None
    status: str | None = None


class OpportunityResponse(ResponseModel):
    id: UUID
    title: str
    description: str
    min_amount: Amount
    max_amount: Amount
    currency: str
    status: EnumValue
    benefits: str | None = None
    deadline: datetime | None = None
    startup_call_id: UUID | None = None


class SponsorshipApply(RequestModel):
    amount: Decimal
    sponsor_name: str
    contact_person: str
    email: str
    currency: str | None = None
    phone: str | None = None
    website: str | None = None
    sponsorship_type: str = "financial"
    other_type: str | None = None
    message: str | None = None


class SponsorshipApplicationUpdate(RequestModel):
    status: str | None = None
    message: str | None = None
    amount: Decimal | None = None
    currency: str | None = None
    template_id: str | None = None


class SponsorshipApplicationResponse(ResponseModel):
    id: UUID
    opportunity_id: UUID
    sponsor_id: UUID
    amount: Amount
    currency: str
    status: EnumValue
    sponsor_name: str
    contact_person: str
    email: str
    sponsorship_type: EnumValue
    submitted_at: datetime
    phone: str | None = None
    website: str | None = None
    other_type: str | None = None
    message: str | None = None


# =============================================================================
# Budgets
# =============================================================================


class CategoryCreate(RequestModel):
    name: str
    allocated_amount: Decimal
    description: str | None = None


class BudgetCreate(RequestModel):
    title: str
    total_amount: Decimal
    fiscal_year: int
    currency: str | None = None
    description: str | None = None
    categories: list[CategoryCreate] = Field(default_factory=list)


class CategoryResponse(ResponseModel):
    id: UUID
    name: str
    allocated_amount: Amount
    committed_amount: Amount
    remaining: Amount
    description: str | None = None


class BudgetResponse(ResponseModel):
    id: UUID
    startup_call_id: UUID
    title: str
    total_amount: Amount
    currency: str
    fiscal_year: int
    status: EnumValue
    description: str | None = None
    categories: list[CategoryResponse]


class ExpenseCreate(RequestModel):
    budget_id: UUID
    category_id: UUID
    title: str
    amount: Decimal
    expense_date: date = Field(alias="date")
    currency: str | None = None
    description: str | None = None
    receipt_url: str | None = None


class ExpenseUpdate(RequestModel):
    title: str | None = None
    description: str | None = None
    amount: Decimal | None = None
    category_id: UUID | None = None
    expense_date: date | None = Field(default=None, alias="date")
    receipt_url: str | None = None


class ExpenseStatusChange(RequestModel):
    status: EnumValue
    comment: str | None = None


class ExpenseResponse(ResponseModel):
    id: UUID
    budget_id: UUID
    category_id: UUID
    title: str
    amount: Amount
    currency: str
    expense_date: date = Field(serialization_alias="date")
    status: EnumValue
    created_by: UUID
    created_at: datetime
    description: str | None = None
    receipt_url: str | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    review_comment: str | None = None


# =============================================================================
# Notifications
# =============================================================================


class NotificationResponse(ResponseModel):
    id: UUID
    title: str
    message: str
    type: EnumValue
    link: str | None = None
    read: bool
    created_at: datetime


class NotificationPageResponse(ResponseModel):
    notifications: list[NotificationResponse]
    total_count: int
    unread_count: int


class MarkRead(RequestModel):
    ids: list[UUID] | None = None


class MarkReadResponse(ResponseModel):
    updated: int


class Broadcast(RequestModel):
    title: str
    message: str
    role: str | None = None
    link: str | None = None


class BroadcastResponse(ResponseModel):
    recipients: int


class BudgetUpdate(RequestModel):
    title: str | None = None
    description: str | None = None
    total_amount: Decimal | None = None
    fiscal_year: int | None = None
    status: str | None = None


class AllocationUpdate(RequestModel):
    allocated_amount: Decimal


class CategorySummaryResponse(ResponseModel):
    category_id: UUID
    name: str
    allocated: Amount
    committed: Amount
    approved_spent: Amount
    pending: Amount
    remaining: Amount


class BudgetSummaryResponse(ResponseModel):
    budget_id: UUID
    currency: str
    total_amount: Amount
    total_allocated: Amount
    total_committed: Amount
    total_approved: Amount
    total_pending: Amount
    total_remaining: Amount
    unallocated: Amount
    categories: list[CategorySummaryResponse]
