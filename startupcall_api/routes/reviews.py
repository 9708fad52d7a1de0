"""Reviewer assignment endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from startupcall_api.deps import get_actor, get_platform
from startupcall_api.schemas import (
    ApplicationReviewsResponse,
    ReviewAssignmentResponse,
    ReviewComplete,
    ReviewerAssign,
)
from startupcall_kernel.domain.actor import ActorContext
from startupcall_kernel.domain.values import parse_status
from startupcall_modules.reviews.models import ReviewStatus, ReviewSubmission
from startupcall_services.platform import Platform

router = APIRouter(tags=["Reviews"])


@router.post(
    "/applications/{application_id}/reviewers",
    response_model=ReviewAssignmentResponse,
    status_code=status.HTTP_201_CREATED,
)
def assign_reviewer(
    application_id: UUID,
    body: ReviewerAssign,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        assignment = platform.services(uow).reviews.assign_reviewer(
            actor, application_id, body.reviewer_id, due_date=body.due_date
        )
    return ReviewAssignmentResponse.model_validate(assignment)


@router.get("/applications/{application_id}/reviews", response_model=ApplicationReviewsResponse)
def list_application_reviews(
    application_id: UUID,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        service = platform.services(uow).reviews
        reviews = service.list_for_application(actor, application_id)
        score = service.application_score(application_id)
    return ApplicationReviewsResponse(
        application_id=application_id,
        average_score=score.average_score,
        completed_count=score.completed_count,
        assigned_count=score.assigned_count,
        reviews=[ReviewAssignmentResponse.model_validate(r) for r in reviews],
    )


@router.get("/reviewer/assignments", response_model=list[ReviewAssignmentResponse])
def list_my_assignments(
    status_filter: str | None = Query(default=None, alias="status"),
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    review_status = parse_status(ReviewStatus, status_filter) if status_filter else None
    with platform.unit_of_work() as uow:
        assignments = platform.services(uow).reviews.list_for_reviewer(actor, review_status)
    return [ReviewAssignmentResponse.model_validate(a) for a in assignments]


@router.post("/reviewer/assignments/{assignment_id}/start", response_model=ReviewAssignmentResponse)
def start_review(
    assignment_id: UUID,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        assignment = platform.services(uow).reviews.start(actor, assignment_id)
    return ReviewAssignmentResponse.model_validate(assignment)


@router.post(
    "/reviewer/assignments/{assignment_id}/complete",
    response_model=ReviewAssignmentResponse,
)
def complete_review(
    assignment_id: UUID,
    body: ReviewComplete,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    submission = ReviewSubmission(**body.model_dump())
    with platform.unit_of_work() as uow:
        assignment = platform.services(uow).reviews.complete(actor, assignment_id, submission)
    return ReviewAssignmentResponse.model_validate(assignment)
