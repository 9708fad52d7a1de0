"""
Call Lifecycle Service (``startupcall_modules.calls.service``).

Responsibility
--------------
Owns startup call creation, admin edits, status transitions
(DRAFT -> PUBLISHED -> CLOSED -> ARCHIVED), deadline-driven closing, and
deletion of calls that never received an application.

Architecture position
---------------------
**Modules layer**.  Flush-only: the caller's unit of work commits.

Invariants enforced
-------------------
* A call that reaches PUBLISHED gets ``published_date`` set once; it is
  never cleared by later transitions.
* A call with any application (whatever its status) cannot be deleted.
* Non-admins only ever see PUBLISHED or CLOSED calls; any other call is
  reported as not found.

Failure modes
-------------
* ``NotFoundError``  -- unknown or invisible call.
* ``ForbiddenError`` -- non-admin attempting a write.
* ``InvalidTransitionError`` -- status change not in the workflow.
* ``CallHasApplicationsError`` -- delete with applications.
* ``ValidationError`` -- missing fields, naive datetimes, negative funding.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from startupcall_kernel.db.types import money_from_value
from startupcall_kernel.domain.actor import ActorContext, Role
from startupcall_kernel.domain.clock import Clock
from startupcall_kernel.domain.values import parse_status
from startupcall_kernel.exceptions import CallHasApplicationsError, NotFoundError, ValidationError
from startupcall_kernel.logging_config import get_logger
from startupcall_kernel.services.base import BaseService
from startupcall_kernel.services.notification_outbox import NotificationOutbox
from startupcall_modules._helpers import (
    build_patch,
    provided_fields,
    require_aware,
    require_fields,
    require_role,
)
from startupcall_modules.applications.models import ApplicationStatus
from startupcall_modules.applications.orm import ApplicationModel
from startupcall_modules.calls.models import (
    NOT_APPLIED,
    VISIBLE_TO_NON_ADMINS,
    CallDraft,
    CallPatch,
    CallStatus,
    StartupCall,
)
from startupcall_modules.calls.orm import StartupCallModel
from startupcall_modules.calls.workflows import STARTUP_CALL_WORKFLOW
from startupcall_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.calls.service")

_REQUIRED_FIELDS = ("title", "description", "application_deadline", "industry", "location")


class CallService(BaseService):
    """Startup call lifecycle operations."""

    def __init__(
        self,
        session: Session,
        outbox: NotificationOutbox,
        clock: Clock | None = None,
        executor: WorkflowExecutor | None = None,
    ):
        super().__init__(session, outbox, clock)
        self._executor = executor or WorkflowExecutor(clock=self.clock)

    # =========================================================================
    # Writes
    # =========================================================================

    def create_call(self, actor: ActorContext, draft: CallDraft) -> StartupCall:
        require_role(actor, "create startup calls", Role.ADMIN)
        require_fields(draft, _REQUIRED_FIELDS)
        require_aware(draft.application_deadline, "application_deadline")
        _check_funding(draft.funding_amount)
        if draft.status not in (CallStatus.DRAFT, CallStatus.PUBLISHED):
            raise ValidationError(
                "A new call must be draft or published", fields=("status",)
            )

        now = self.clock.now()
        model = StartupCallModel(
            title=draft.title.strip(),
            description=draft.description,
            status=draft.status.value,
            application_deadline=draft.application_deadline,
            published_date=now if draft.status is CallStatus.PUBLISHED else None,
            industry=draft.industry,
            location=draft.location,
            funding_amount=draft.funding_amount,
            created_by_id=actor.user_id,
        )
        self.session.add(model)
        self.session.flush()

        logger.info("startup_call_created", extra={
            "call_id": str(model.id),
            "status": model.status,
            "actor_id": str(actor.user_id),
        })
        return model.to_dto()

    def update_call(
        self,
        actor: ActorContext,
        call_id: UUID,
        patch: CallPatch | Mapping[str, Any],
    ) -> StartupCall:
        require_role(actor, "update startup calls", Role.ADMIN)
        if not isinstance(patch, CallPatch):
            patch = build_patch(CallPatch, patch)
        changes = provided_fields(patch)
        require_aware(patch.application_deadline, "application_deadline")
        _check_funding(patch.funding_amount)
        for name in ("title", "description", "industry", "location"):
            if name in changes and not str(changes[name]).strip():
                raise ValidationError(f"{name} must not be blank", fields=(name,))

        model = self._load(call_id)
        for name, value in changes.items():
            setattr(model, name, value)
        model.updated_by_id = actor.user_id
        self.session.flush()

        logger.info("startup_call_updated", extra={
            "call_id": str(call_id),
            "fields": sorted(changes),
        })
        return model.to_dto()

    def change_status(
        self,
        actor: ActorContext,
        call_id: UUID,
        new_status: CallStatus | str,
    ) -> StartupCall:
        """Move a call along its workflow.  Same status is a no-op."""
        target = parse_status(CallStatus, new_status)
        require_role(actor, "change startup call status", Role.ADMIN)
        model = self._load(call_id)
        if model.status == target.value:
            return model.to_dto()

        transition = self._executor.authorize(
            STARTUP_CALL_WORKFLOW, "startup_call", model.id,
            model.status, target.value, actor,
        )
        self._apply(model, target, actor)

        logger.info("startup_call_status_changed", extra={
            "call_id": str(call_id),
            "action": transition.action,
            "to_status": target.value,
        })
        return model.to_dto()

    def close_expired_calls(self, actor: ActorContext) -> list[UUID]:
        """Close every published call whose application deadline has passed."""
        require_role(actor, "close expired calls", Role.ADMIN)
        now = self.clock.now()
        expired = self.session.execute(
            select(StartupCallModel).where(
                StartupCallModel.status == CallStatus.PUBLISHED.value,
                StartupCallModel.application_deadline < now,
            )
        ).scalars().all()

        closed: list[UUID] = []
        for model in expired:
            self._executor.authorize(
                STARTUP_CALL_WORKFLOW, "startup_call", model.id,
                model.status, CallStatus.CLOSED.value, actor,
            )
            self._apply(model, CallStatus.CLOSED, actor)
            closed.append(model.id)

        logger.info("expired_calls_closed", extra={"closed_count": len(closed)})
        return closed

    def delete_call(self, actor: ActorContext, call_id: UUID) -> None:
        require_role(actor, "delete startup calls", Role.ADMIN)
        model = self._load(call_id)
        application_count = self.session.execute(
            select(func.count())
            .select_from(ApplicationModel)
            .where(ApplicationModel.call_id == call_id)
        ).scalar_one()
        if application_count:
            raise CallHasApplicationsError(call_id, model.status, application_count)

        self.session.delete(model)
        self.session.flush()
        logger.info("startup_call_deleted", extra={"call_id": str(call_id)})

    # =========================================================================
    # Reads
    # =========================================================================

    def get_call(self, actor: ActorContext, call_id: UUID) -> StartupCall:
        model = self._load(call_id)
        if not actor.is_admin and CallStatus(model.status) not in VISIBLE_TO_NON_ADMINS:
            raise NotFoundError("startup_call", call_id)
        return model.to_dto()

    def list_calls(
        self,
        actor: ActorContext,
        status: CallStatus | str | None = None,
    ) -> list[StartupCall]:
        query = select(StartupCallModel)
        if status is not None:
            query = query.where(StartupCallModel.status == parse_status(CallStatus, status).value)
        if not actor.is_admin:
            query = query.where(
                StartupCallModel.status.in_([s.value for s in VISIBLE_TO_NON_ADMINS])
            )
        rows = self.session.execute(
            query.order_by(StartupCallModel.application_deadline, StartupCallModel.title)
        ).scalars()
        return [row.to_dto() for row in rows]

    def application_status_for(self, actor: ActorContext, call_id: UUID) -> str:
        """The actor's active application status for the call, or ``not_applied``."""
        status = self.session.execute(
            select(ApplicationModel.status).where(
                ApplicationModel.call_id == call_id,
                ApplicationModel.user_id == actor.user_id,
                ApplicationModel.status != ApplicationStatus.WITHDRAWN.value,
            )
        ).scalar_one_or_none()
        return status or NOT_APPLIED

    # =========================================================================
    # Internals
    # =========================================================================

    def _load(self, call_id: UUID) -> StartupCallModel:
        model = self.session.get(StartupCallModel, call_id)
        if model is None:
            raise NotFoundError("startup_call", call_id)
        return model

    def _apply(self, model: StartupCallModel, target: CallStatus, actor: ActorContext) -> None:
        model.status = target.value
        if target is CallStatus.PUBLISHED and model.published_date is None:
            model.published_date = self.clock.now()
        model.updated_by_id = actor.user_id
        self.session.flush()


def _check_funding(amount: Decimal | None) -> None:
    if amount is None:
        return
    try:
        money_from_value(amount)
    except ValueError as exc:
        raise ValidationError(str(exc), fields=("funding_amount",)) from exc
    if amount < 0:
        raise ValidationError("funding_amount must not be negative", fields=("funding_amount",))
