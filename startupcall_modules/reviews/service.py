"""
Review Assignment Service (``startupcall_modules.reviews.service``).

Responsibility
--------------
Admin assignment of reviewers to applications, the reviewer's
start/complete lifecycle, and score aggregation per application.

Invariants enforced
-------------------
* One assignment per (application, reviewer).
* Only the assigned reviewer can see, start, or complete an assignment;
  anyone else gets ``NotFoundError``.
* A score exists only on a COMPLETED assignment.
* Completing a review increments the application's ``reviews_completed``
  in the database (``reviews_completed + 1``), so concurrent completions
  never lose a count.
* The average score is the mean over COMPLETED assignments and is None
  when there are none.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from startupcall_config.schema import ReviewConfig
from startupcall_kernel.domain.actor import ActorContext, Role
from startupcall_kernel.domain.clock import Clock
from startupcall_kernel.domain.notification import NotificationType
from startupcall_kernel.exceptions import (
    AlreadyCompletedError,
    DuplicateAssignmentError,
    NotFoundError,
    ValidationError,
)
from startupcall_kernel.logging_config import get_logger
from startupcall_kernel.models.user import UserModel
from startupcall_kernel.selectors.user_selector import UserSelector
from startupcall_kernel.services.base import BaseService
from startupcall_kernel.services.notification_outbox import NotificationOutbox
from startupcall_modules._helpers import require_aware, require_role
from startupcall_modules.applications.orm import ApplicationModel
from startupcall_modules.applications.service import ApplicationService, application_link
from startupcall_modules.reviews.models import (
    SUBSCORE_FIELDS,
    ApplicationScore,
    ReviewAssignment,
    ReviewStatus,
    ReviewSubmission,
)
from startupcall_modules.reviews.orm import ReviewAssignmentModel
from startupcall_modules.reviews.workflows import REVIEW_ASSIGNMENT_WORKFLOW
from startupcall_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.reviews.service")

_SCORE_QUANTUM = Decimal("0.01")


def assignment_link(assignment_id: UUID) -> str:
    return f"/reviewer/assignments/{assignment_id}"


class ReviewService(BaseService):
    """Reviewer assignment and scoring."""

    def __init__(
        self,
        session: Session,
        outbox: NotificationOutbox,
        clock: Clock | None = None,
        executor: WorkflowExecutor | None = None,
        config: ReviewConfig | None = None,
    ):
        super().__init__(session, outbox, clock)
        self._executor = executor or WorkflowExecutor(clock=self.clock)
        self._config = config or ReviewConfig()
        self._applications = ApplicationService(
            session, outbox, clock=self.clock, executor=self._executor, config=self._config
        )

    # =========================================================================
    # Assignment
    # =========================================================================

    def assign_reviewer(
        self,
        actor: ActorContext,
        application_id: UUID,
        reviewer_id: UUID,
        due_date: datetime | None = None,
    ) -> ReviewAssignment:
        """
        Assign ``reviewer_id`` to an application.

        A still-SUBMITTED application moves to UNDER_REVIEW as part of the
        same transaction (with its own applicant notification).
        """
        require_role(actor, "assign reviewers", Role.ADMIN)
        require_aware(due_date, "due_date")

        application = self.session.get(ApplicationModel, application_id)
        if application is None:
            raise NotFoundError("application", application_id)
        reviewer = self.session.get(UserModel, reviewer_id)
        if reviewer is None:
            raise NotFoundError("user", reviewer_id, "Reviewer not found")
        if reviewer.role != Role.REVIEWER.value or not reviewer.is_active:
            raise ValidationError("User is not a reviewer", fields=("reviewer_id",))

        already = self.session.execute(
            select(ReviewAssignmentModel.id).where(
                ReviewAssignmentModel.application_id == application_id,
                ReviewAssignmentModel.reviewer_id == reviewer_id,
            )
        ).first()
        if already is not None:
            raise DuplicateAssignmentError(application_id, reviewer_id)

        now = self.clock.now()
        model = ReviewAssignmentModel(
            application_id=application_id,
            reviewer_id=reviewer_id,
            status=ReviewStatus.PENDING.value,
            assigned_at=now,
            due_date=due_date or now + timedelta(days=self._config.default_due_days),
            created_by_id=actor.user_id,
        )
        self.session.add(model)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateAssignmentError(application_id, reviewer_id) from exc

        self.outbox.notify(
            reviewer_id,
            "New Review Assignment",
            f'You have been assigned to review "{application.startup_name}".',
            NotificationType.REVIEW_ASSIGNMENT,
            link=assignment_link(model.id),
        )
        moved = self._applications.move_to_review_if_submitted(actor, application_id)

        logger.info("reviewer_assigned", extra={
            "assignment_id": str(model.id),
            "application_id": str(application_id),
            "reviewer_id": str(reviewer_id),
            "application_moved_to_review": moved,
        })
        return model.to_dto()

    # =========================================================================
    # Reviewer lifecycle
    # =========================================================================

    def start(self, actor: ActorContext, assignment_id: UUID) -> ReviewAssignment:
        """Begin a review.  Starting one already in progress changes nothing."""
        model = self._load_own(actor, assignment_id)
        if model.status == ReviewStatus.COMPLETED.value:
            raise AlreadyCompletedError(assignment_id)
        if model.status == ReviewStatus.IN_PROGRESS.value:
            return model.to_dto()

        self._executor.authorize(
            REVIEW_ASSIGNMENT_WORKFLOW, "review_assignment", model.id,
            model.status, ReviewStatus.IN_PROGRESS.value, actor,
            context={"actor_id": actor.user_id, "owner_id": model.reviewer_id},
        )
        model.status = ReviewStatus.IN_PROGRESS.value
        model.updated_by_id = actor.user_id
        self.session.flush()

        logger.info("review_started", extra={"assignment_id": str(assignment_id)})
        return model.to_dto()

    def complete(
        self,
        actor: ActorContext,
        assignment_id: UUID,
        submission: ReviewSubmission,
    ) -> ReviewAssignment:
        model = self._load_own(actor, assignment_id)
        if model.status == ReviewStatus.COMPLETED.value:
            raise AlreadyCompletedError(assignment_id)

        self._executor.authorize(
            REVIEW_ASSIGNMENT_WORKFLOW, "review_assignment", model.id,
            model.status, ReviewStatus.COMPLETED.value, actor,
            context={"actor_id": actor.user_id, "owner_id": model.reviewer_id},
        )

        score = self._validate_score("score", submission.score, required=True)
        subscores = {
            name: self._validate_score(name, getattr(submission, name), required=False)
            for name in SUBSCORE_FIELDS
        }
        if not submission.feedback or not submission.feedback.strip():
            raise ValidationError("Score and feedback are required", fields=("feedback",))

        model.status = ReviewStatus.COMPLETED.value
        model.score = score
        for name, value in subscores.items():
            setattr(model, name, value)
        model.feedback = submission.feedback
        model.completed_at = self.clock.now()
        model.updated_by_id = actor.user_id

        self.session.execute(
            update(ApplicationModel)
            .where(ApplicationModel.id == model.application_id)
            .values(reviews_completed=ApplicationModel.reviews_completed + 1)
        )
        self.session.flush()
        completed, total, applicant_id, startup_name = self.session.execute(
            select(
                ApplicationModel.reviews_completed,
                ApplicationModel.reviews_total,
                ApplicationModel.user_id,
                ApplicationModel.startup_name,
            ).where(ApplicationModel.id == model.application_id)
        ).one()

        self.outbox.notify(
            applicant_id,
            "Review Completed",
            f'A review of "{startup_name}" has been completed.',
            NotificationType.REVIEW_SUBMISSION,
            link=application_link(model.application_id),
        )
        if completed == total:
            for admin_id in UserSelector(self.session).admin_ids():
                self.outbox.notify(
                    admin_id,
                    "All Reviews Completed",
                    f'All {total} reviews for "{startup_name}" are complete.',
                    NotificationType.ALL_REVIEWS_COMPLETED,
                    link=application_link(model.application_id),
                )

        logger.info("review_completed", extra={
            "assignment_id": str(assignment_id),
            "application_id": str(model.application_id),
            "score": score,
            "reviews_completed": completed,
            "reviews_total": total,
        })
        return model.to_dto()

    # =========================================================================
    # Reads / aggregation
    # =========================================================================

    def average_score(self, application_id: UUID) -> Decimal | None:
        """Mean of COMPLETED scores, or None when no review is completed."""
        return self.application_score(application_id).average_score

    def application_score(self, application_id: UUID) -> ApplicationScore:
        rows = self.session.execute(
            select(ReviewAssignmentModel.status, ReviewAssignmentModel.score).where(
                ReviewAssignmentModel.application_id == application_id
            )
        ).all()
        scores = [
            Decimal(score) for status, score in rows
            if status == ReviewStatus.COMPLETED.value and score is not None
        ]
        average = None
        if scores:
            average = (sum(scores) / len(scores)).quantize(_SCORE_QUANTUM, rounding=ROUND_HALF_UP)
        return ApplicationScore(
            application_id=application_id,
            average_score=average,
            completed_count=len(scores),
            assigned_count=len(rows),
        )

    def list_for_reviewer(
        self,
        actor: ActorContext,
        status: ReviewStatus | None = None,
    ) -> list[ReviewAssignment]:
        require_role(actor, "list review assignments", Role.REVIEWER)
        query = select(ReviewAssignmentModel).where(
            ReviewAssignmentModel.reviewer_id == actor.user_id
        )
        if status is not None:
            query = query.where(ReviewAssignmentModel.status == status.value)
        rows = self.session.execute(
            query.order_by(ReviewAssignmentModel.due_date, ReviewAssignmentModel.id)
        ).scalars()
        return [row.to_dto() for row in rows]

    def list_for_application(
        self,
        actor: ActorContext,
        application_id: UUID,
    ) -> list[ReviewAssignment]:
        require_role(actor, "list reviews of an application", Role.ADMIN)
        if self.session.get(ApplicationModel, application_id) is None:
            raise NotFoundError("application", application_id)
        rows = self.session.execute(
            select(ReviewAssignmentModel)
            .where(ReviewAssignmentModel.application_id == application_id)
            .order_by(ReviewAssignmentModel.assigned_at, ReviewAssignmentModel.id)
        ).scalars()
        return [row.to_dto() for row in rows]

    # =========================================================================
    # Internals
    # =========================================================================

    def _load_own(self, actor: ActorContext, assignment_id: UUID) -> ReviewAssignmentModel:
        model = self.session.get(ReviewAssignmentModel, assignment_id)
        if model is None or model.reviewer_id != actor.user_id:
            raise NotFoundError(
                "review_assignment",
                assignment_id,
                "Review assignment not found or not assigned to you",
            )
        return model

    def _validate_score(self, name: str, value, *, required: bool) -> Decimal | None:
        if value is None:
            if required:
                raise ValidationError("Score and feedback are required", fields=(name,))
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
            raise ValidationError(f"{name} must be a number", fields=(name,))
        # floats through str so that 80.1 stays 80.1
        score = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
        if not score.is_finite() or not (
            self._config.min_score <= score <= self._config.max_score
        ):
            raise ValidationError(
                f"{name} must be between {self._config.min_score} and {self._config.max_score}",
                fields=(name,),
            )
        return score
