"""
Application Workflow Service (``startupcall_modules.applications.service``).

Responsibility
--------------
Entrepreneur submission to a startup call, role-gated status transitions,
the admin PUT surface (status + review counters), and application reads.

Architecture position
---------------------
**Modules layer**.  Flush-only; notifications go to the outbox and are
delivered after the caller's unit of work commits.

Invariants enforced
-------------------
* At most one non-withdrawn application per (user, call): checked before
  insert and backed by a partial unique index.  A race that slips past
  the check surfaces as ``DuplicateApplicationError`` as well.
* Only an admin sets under_review / more_info_required / approved /
  rejected.  Only the owning entrepreneur withdraws, and only from
  submitted or under_review.
* Setting the current status again is a no-op: no write, no notification.
* Every effective status change enqueues exactly one notification to the
  applicant.

Failure modes
-------------
Submission checks run in this order: ``NotFoundError`` (call),
``InvalidStateError`` (call not published), ``DeadlinePassedError``,
``DuplicateApplicationError``, ``ValidationError`` (profile fields).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from startupcall_config.schema import ReviewConfig
from startupcall_kernel.domain.actor import ActorContext, Role
from startupcall_kernel.domain.clock import Clock
from startupcall_kernel.domain.notification import EmailMessage, NotificationType
from startupcall_kernel.domain.values import parse_status
from startupcall_kernel.exceptions import (
    DeadlinePassedError,
    DuplicateApplicationError,
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from startupcall_kernel.logging_config import get_logger
from startupcall_kernel.services.base import BaseService
from startupcall_kernel.services.notification_outbox import NotificationOutbox
from startupcall_modules._helpers import build_patch, require_fields, require_role
from startupcall_modules.applications.models import (
    ADMIN_STATUSES,
    REQUIRED_PROFILE_FIELDS,
    STATUS_MESSAGES,
    Application,
    ApplicationAdminPatch,
    ApplicationStatus,
    StartupProfile,
)
from startupcall_modules.applications.orm import ApplicationModel
from startupcall_modules.applications.workflows import CALL_APPLICATION_WORKFLOW
from startupcall_modules.calls.models import CallStatus
from startupcall_modules.calls.orm import StartupCallModel
from startupcall_modules.reviews.orm import ReviewAssignmentModel
from startupcall_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.applications.service")


def application_link(application_id: UUID) -> str:
    return f"/applications/{application_id}"


class ApplicationService(BaseService):
    """Call application workflow operations."""

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

    # =========================================================================
    # Submission
    # =========================================================================

    def submit_application(
        self,
        actor: ActorContext,
        call_id: UUID,
        profile: StartupProfile,
        startup_id: UUID | None = None,
    ) -> Application:
        require_role(actor, "apply to startup calls", Role.ENTREPRENEUR)

        call = self.session.get(StartupCallModel, call_id)
        if call is None:
            raise NotFoundError("startup_call", call_id)
        if call.status != CallStatus.PUBLISHED.value:
            raise InvalidStateError(
                "startup_call", call_id, call.status, "Cannot apply to unpublished calls"
            )
        now = self.clock.now()
        if now > call.application_deadline:
            raise DeadlinePassedError("startup_call", call_id, call.application_deadline)

        existing = self._active_application_id(call_id, actor.user_id)
        if existing is not None:
            raise DuplicateApplicationError(call_id, actor.user_id, existing)

        require_fields(profile, REQUIRED_PROFILE_FIELDS)
        if profile.team_size is not None and profile.team_size < 1:
            raise ValidationError("team_size must be at least 1", fields=("team_size",))

        model = ApplicationModel.from_profile(
            profile,
            call_id=call_id,
            user_id=actor.user_id,
            submitted_at=now,
            reviews_total=self._config.reviews_per_application,
            startup_id=startup_id,
        )
        self.session.add(model)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateApplicationError(call_id, actor.user_id) from exc

        self.outbox.notify(
            actor.user_id,
            "Application Submitted",
            f'Your application to "{call.title}" has been submitted.',
            NotificationType.APPLICATION_SUBMITTED,
            link=application_link(model.id),
        )
        logger.info("application_submitted", extra={
            "application_id": str(model.id),
            "call_id": str(call_id),
            "user_id": str(actor.user_id),
        })
        return model.to_dto()

    # =========================================================================
    # Status transitions
    # =========================================================================

    def update_application_status(
        self,
        actor: ActorContext,
        application_id: UUID,
        new_status: ApplicationStatus | str,
    ) -> Application:
        """
        Move an application to ``new_status``.

        Setting the status it already has returns it unchanged and enqueues
        nothing.
        """
        target = parse_status(ApplicationStatus, new_status)
        model = self._load_for_actor(actor, application_id)

        if target in ADMIN_STATUSES and not actor.is_admin:
            raise ForbiddenError(f"set application status to {target.value}", actor.role.value)
        if target is ApplicationStatus.WITHDRAWN and actor.user_id != model.user_id:
            raise ForbiddenError("withdraw this application", actor.role.value)

        if model.status == target.value:
            logger.info("application_status_unchanged", extra={
                "application_id": str(application_id),
                "status": target.value,
            })
            return model.to_dto()

        if target is ApplicationStatus.SUBMITTED:
            raise InvalidTransitionError("application", application_id, model.status, target.value)

        self._transition(model, target, actor)
        return model.to_dto()

    def move_to_review_if_submitted(self, actor: ActorContext, application_id: UUID) -> bool:
        """Admin-side helper used when a reviewer is assigned."""
        model = self._load(application_id)
        if model.status != ApplicationStatus.SUBMITTED.value:
            return False
        self._transition(model, ApplicationStatus.UNDER_REVIEW, actor)
        return True

    def admin_update(
        self,
        actor: ActorContext,
        application_id: UUID,
        patch: ApplicationAdminPatch | Mapping[str, Any],
    ) -> Application:
        """Admin PUT: status plus review counters."""
        require_role(actor, "update applications", Role.ADMIN)
        if not isinstance(patch, ApplicationAdminPatch):
            patch = build_patch(ApplicationAdminPatch, patch)
        for name in ("reviews_completed", "reviews_total"):
            value = getattr(patch, name)
            if value is not None and value < 0:
                raise ValidationError(f"{name} must not be negative", fields=(name,))

        model = self._load(application_id)
        if patch.status is not None:
            self.update_application_status(actor, application_id, patch.status)
        if patch.reviews_completed is not None:
            model.reviews_completed = patch.reviews_completed
        if patch.reviews_total is not None:
            model.reviews_total = patch.reviews_total
        model.updated_by_id = actor.user_id
        self.session.flush()
        return model.to_dto()

    # =========================================================================
    # Reads
    # =========================================================================

    def get_application(self, actor: ActorContext, application_id: UUID) -> Application:
        return self._load_for_actor(actor, application_id).to_dto()

    def list_for_call(self, actor: ActorContext, call_id: UUID) -> list[Application]:
        if self.session.get(StartupCallModel, call_id) is None:
            raise NotFoundError("startup_call", call_id)
        query = select(ApplicationModel).where(ApplicationModel.call_id == call_id)
        if actor.role is Role.ENTREPRENEUR:
            query = query.where(ApplicationModel.user_id == actor.user_id)
        elif not actor.is_admin:
            raise ForbiddenError("list applications", actor.role.value)
        rows = self.session.execute(
            query.order_by(ApplicationModel.submitted_at, ApplicationModel.startup_name)
        ).scalars()
        return [row.to_dto() for row in rows]

    def list_mine(self, actor: ActorContext) -> list[Application]:
        rows = self.session.execute(
            select(ApplicationModel)
            .where(ApplicationModel.user_id == actor.user_id)
            .order_by(ApplicationModel.submitted_at.desc())
        ).scalars()
        return [row.to_dto() for row in rows]

    # =========================================================================
    # Internals
    # =========================================================================

    def _transition(
        self,
        model: ApplicationModel,
        target: ApplicationStatus,
        actor: ActorContext,
    ) -> None:
        previous = model.status
        transition = self._executor.authorize(
            CALL_APPLICATION_WORKFLOW, "application", model.id,
            previous, target.value, actor,
            context={"actor_id": actor.user_id, "owner_id": model.user_id},
        )
        model.status = target.value
        model.updated_by_id = actor.user_id
        self.session.flush()

        if transition.notifies:
            message = STATUS_MESSAGES[target]
            self.outbox.notify(
                model.user_id,
                "Application Status Updated",
                message,
                NotificationType.APPLICATION_STATUS,
                link=application_link(model.id),
                email=EmailMessage(
                    subject=f"Application status: {target.value.replace('_', ' ')}",
                    body=message,
                ),
            )
        logger.info("application_status_changed", extra={
            "application_id": str(model.id),
            "from_status": previous,
            "to_status": target.value,
            "action": transition.action,
        })

    def _active_application_id(self, call_id: UUID, user_id: UUID) -> UUID | None:
        return self.session.execute(
            select(ApplicationModel.id).where(
                ApplicationModel.call_id == call_id,
                ApplicationModel.user_id == user_id,
                ApplicationModel.status != ApplicationStatus.WITHDRAWN.value,
            )
        ).scalar_one_or_none()

    def _load(self, application_id: UUID) -> ApplicationModel:
        model = self.session.get(ApplicationModel, application_id)
        if model is None:
            raise NotFoundError("application", application_id)
        return model

    def _load_for_actor(self, actor: ActorContext, application_id: UUID) -> ApplicationModel:
        """Load an application the actor may see; otherwise report it missing."""
        model = self._load(application_id)
        if actor.is_admin or model.user_id == actor.user_id:
            return model
        if actor.role is Role.REVIEWER and self._is_assigned(actor.user_id, application_id):
            return model
        raise NotFoundError("application", application_id)

    def _is_assigned(self, reviewer_id: UUID, application_id: UUID) -> bool:
        return self.session.execute(
            select(ReviewAssignmentModel.id).where(
                ReviewAssignmentModel.application_id == application_id,
                ReviewAssignmentModel.reviewer_id == reviewer_id,
            )
        ).first() is not None
