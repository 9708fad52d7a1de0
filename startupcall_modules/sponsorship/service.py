"""
Sponsorship Service (``startupcall_modules.sponsorship.service``).

Responsibility
--------------
Admin management of sponsorship opportunities, sponsor applications to
them, and the admin decision (with a selectable notification template).

Invariants enforced
-------------------
* ``min_amount <= max_amount`` and both non-negative on every opportunity.
* One application per (sponsor, opportunity), backed by a unique
  constraint; a race that slips past the check still surfaces as
  ``DuplicateSponsorshipApplicationError``.
* An application's amount and currency never change after submission.
* approved, rejected and withdrawn are terminal.  Setting a terminal
  application's status again is an invalid transition, not a no-op.

Failure modes
-------------
Application checks run in this order: ``NotFoundError`` (opportunity),
``NotOpenError``, ``DeadlinePassedError``, ``AmountOutOfRangeError``,
``DuplicateSponsorshipApplicationError``, ``ValidationError`` (profile).
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from startupcall_config.schema import SponsorshipConfig
from startupcall_kernel.db.types import money_from_value, normalize_currency
from startupcall_kernel.domain.actor import ActorContext, Role
from startupcall_kernel.domain.clock import Clock
from startupcall_kernel.domain.notification import EmailMessage, NotificationType
from startupcall_kernel.domain.values import parse_status
from startupcall_kernel.exceptions import (
    AmountOutOfRangeError,
    DeadlinePassedError,
    DuplicateSponsorshipApplicationError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    NotOpenError,
    ValidationError,
)
from startupcall_kernel.logging_config import get_logger
from startupcall_kernel.selectors.user_selector import UserSelector
from startupcall_kernel.services.base import BaseService
from startupcall_kernel.services.notification_outbox import NotificationOutbox
from startupcall_modules._helpers import (
    build_patch,
    provided_fields,
    require_aware,
    require_fields,
    require_role,
)
from startupcall_modules.calls.orm import StartupCallModel
from startupcall_modules.sponsorship.models import (
    OpportunityDraft,
    OpportunityPatch,
    OpportunityStatus,
    SponsorshipApplication,
    SponsorshipApplicationDraft,
    SponsorshipApplicationPatch,
    SponsorshipOpportunity,
    SponsorshipStatus,
    SponsorshipType,
)
from startupcall_modules.sponsorship.orm import (
    SponsorshipApplicationModel,
    SponsorshipOpportunityModel,
)
from startupcall_modules.sponsorship.templates import template_for
from startupcall_modules.sponsorship.workflows import (
    SPONSORSHIP_APPLICATION_WORKFLOW,
    SPONSORSHIP_OPPORTUNITY_WORKFLOW,
)
from startupcall_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.sponsorship.service")

_REQUIRED_APPLICATION_FIELDS = ("sponsor_name", "contact_person", "email")

_ADMIN_DECISIONS = (SponsorshipStatus.APPROVED, SponsorshipStatus.REJECTED)


def sponsorship_application_link(application_id: UUID) -> str:
    return f"/sponsor/applications/{application_id}"


def opportunity_applications_link(opportunity_id: UUID) -> str:
    return f"/admin/sponsorship-opportunities/{opportunity_id}/applications"


class SponsorshipService(BaseService):
    """Sponsorship opportunities and sponsor applications."""

    def __init__(
        self,
        session: Session,
        outbox: NotificationOutbox,
        clock: Clock | None = None,
        executor: WorkflowExecutor | None = None,
        config: SponsorshipConfig | None = None,
    ):
        super().__init__(session, outbox, clock)
        self._executor = executor or WorkflowExecutor(clock=self.clock)
        self._config = config or SponsorshipConfig()
        self._status_aliases = {
            alias.lower(): OpportunityStatus.OPEN for alias in self._config.open_status_aliases
        }

    def parse_opportunity_status(self, value: OpportunityStatus | str) -> OpportunityStatus:
        return parse_status(OpportunityStatus, value, self._status_aliases)

    # =========================================================================
    # Opportunities
    # =========================================================================

    def create_opportunity(
        self,
        actor: ActorContext,
        draft: OpportunityDraft,
    ) -> SponsorshipOpportunity:
        require_role(actor, "create sponsorship opportunities", Role.ADMIN)
        require_fields(draft, ("title", "description", "min_amount", "max_amount"))
        require_aware(draft.deadline, "deadline")
        _check_range(draft.min_amount, draft.max_amount)
        status = self.parse_opportunity_status(draft.status)
        if status not in (OpportunityStatus.DRAFT, OpportunityStatus.OPEN):
            raise ValidationError("A new opportunity must be draft or open", fields=("status",))
        if draft.startup_call_id is not None and (
            self.session.get(StartupCallModel, draft.startup_call_id) is None
        ):
            raise NotFoundError("startup_call", draft.startup_call_id)

        model = SponsorshipOpportunityModel(
            title=draft.title.strip(),
            description=draft.description,
            benefits=draft.benefits,
            min_amount=_amount(draft.min_amount),
            max_amount=_amount(draft.max_amount),
            currency=_currency(draft.currency or self._config.default_currency),
            status=status.value,
            deadline=draft.deadline,
            startup_call_id=draft.startup_call_id,
            created_by_id=actor.user_id,
        )
        self.session.add(model)
        self.session.flush()

        logger.info("sponsorship_opportunity_created", extra={
            "opportunity_id": str(model.id),
            "status": model.status,
        })
        return model.to_dto()

    def update_opportunity(
        self,
        actor: ActorContext,
        opportunity_id: UUID,
        patch: OpportunityPatch | Mapping[str, Any],
    ) -> SponsorshipOpportunity:
        require_role(actor, "update sponsorship opportunities", Role.ADMIN)
        if not isinstance(patch, OpportunityPatch):
            patch = build_patch(OpportunityPatch, patch)
        changes = provided_fields(patch)
        require_aware(patch.deadline, "deadline")
        for name in ("title", "description"):
            if name in changes and not str(changes[name]).strip():
                raise ValidationError(f"{name} must not be blank", fields=(name,))

        model = self._load_opportunity(opportunity_id)
        _check_range(
            changes.get("min_amount", model.min_amount),
            changes.get("max_amount", model.max_amount),
        )
        for name, value in changes.items():
            setattr(model, name, value)
        model.updated_by_id = actor.user_id
        self.session.flush()

        logger.info("sponsorship_opportunity_updated", extra={
            "opportunity_id": str(opportunity_id),
            "fields": sorted(changes),
        })
        return model.to_dto()

    def change_opportunity_status(
        self,
        actor: ActorContext,
        opportunity_id: UUID,
        new_status: OpportunityStatus | str,
    ) -> SponsorshipOpportunity:
        """Move an opportunity along its workflow.  Same status is a no-op."""
        target = self.parse_opportunity_status(new_status)
        require_role(actor, "change sponsorship opportunity status", Role.ADMIN)
        model = self._load_opportunity(opportunity_id)
        if model.status == target.value:
            return model.to_dto()

        transition = self._executor.authorize(
            SPONSORSHIP_OPPORTUNITY_WORKFLOW, "sponsorship_opportunity", model.id,
            model.status, target.value, actor,
        )
        model.status = target.value
        model.updated_by_id = actor.user_id
        self.session.flush()

        logger.info("sponsorship_opportunity_status_changed", extra={
            "opportunity_id": str(opportunity_id),
            "action": transition.action,
            "to_status": target.value,
        })
        return model.to_dto()

    def list_open_opportunities(self, now: datetime | None = None) -> list[SponsorshipOpportunity]:
        """OPEN opportunities whose deadline (if any) has not passed."""
        now = now or self.clock.now()
        rows = self.session.execute(
            select(SponsorshipOpportunityModel)
            .where(
                SponsorshipOpportunityModel.status == OpportunityStatus.OPEN.value,
                or_(
                    SponsorshipOpportunityModel.deadline.is_(None),
                    SponsorshipOpportunityModel.deadline >= now,
                ),
            )
            .order_by(SponsorshipOpportunityModel.deadline, SponsorshipOpportunityModel.title)
        ).scalars()
        return [row.to_dto() for row in rows]

    def list_opportunities(
        self,
        actor: ActorContext,
        status: OpportunityStatus | str | None = None,
    ) -> list[SponsorshipOpportunity]:
        """Admins see every opportunity; everyone else sees the open ones."""
        if not actor.is_admin:
            return self.list_open_opportunities()
        query = select(SponsorshipOpportunityModel)
        if status is not None:
            query = query.where(
                SponsorshipOpportunityModel.status == self.parse_opportunity_status(status).value
            )
        rows = self.session.execute(
            query.order_by(SponsorshipOpportunityModel.title, SponsorshipOpportunityModel.id)
        ).scalars()
        return [row.to_dto() for row in rows]

    def get_opportunity(self, actor: ActorContext, opportunity_id: UUID) -> SponsorshipOpportunity:
        model = self._load_opportunity(opportunity_id)
        if not actor.is_admin and model.status in (
            OpportunityStatus.DRAFT.value, OpportunityStatus.ARCHIVED.value,
        ):
            raise NotFoundError("sponsorship_opportunity", opportunity_id)
        return model.to_dto()

    # =========================================================================
    # Applications
    # =========================================================================

    def create_application(
        self,
        actor: ActorContext,
        opportunity_id: UUID,
        draft: SponsorshipApplicationDraft,
    ) -> SponsorshipApplication:
        require_role(actor, "apply to sponsorship opportunities", Role.SPONSOR)

        opportunity = self.session.get(SponsorshipOpportunityModel, opportunity_id)
        if opportunity is None:
            raise NotFoundError("sponsorship_opportunity", opportunity_id)
        if opportunity.status != OpportunityStatus.OPEN.value:
            raise NotOpenError(opportunity_id, opportunity.status)
        now = self.clock.now()
        if opportunity.deadline is not None and opportunity.deadline < now:
            raise DeadlinePassedError("sponsorship_opportunity", opportunity_id, opportunity.deadline)

        amount = _amount(draft.amount)
        if not opportunity.min_amount <= amount <= opportunity.max_amount:
            raise AmountOutOfRangeError(amount, opportunity.min_amount, opportunity.max_amount)

        if self._application_for(opportunity_id, actor.user_id) is not None:
            raise DuplicateSponsorshipApplicationError(opportunity_id, actor.user_id)

        require_fields(draft, _REQUIRED_APPLICATION_FIELDS)
        currency = _currency(draft.currency or opportunity.currency)
        if currency != opportunity.currency:
            raise ValidationError(
                f"Currency must be {opportunity.currency}", fields=("currency",)
            )
        sponsorship_type = parse_status(SponsorshipType, draft.sponsorship_type)
        other_type = None
        if sponsorship_type is SponsorshipType.OTHER:
            require_fields(draft, ("other_type",))
            other_type = draft.other_type.strip()

        model = SponsorshipApplicationModel(
            opportunity_id=opportunity_id,
            sponsor_id=actor.user_id,
            amount=amount,
            currency=currency,
            status=SponsorshipStatus.PENDING.value,
            sponsor_name=draft.sponsor_name.strip(),
            contact_person=draft.contact_person.strip(),
            email=draft.email.strip(),
            phone=draft.phone,
            website=draft.website,
            sponsorship_type=sponsorship_type.value,
            other_type=other_type,
            message=draft.message,
            submitted_at=now,
            created_by_id=actor.user_id,
        )
        self.session.add(model)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateSponsorshipApplicationError(opportunity_id, actor.user_id) from exc

        for admin_id in UserSelector(self.session).admin_ids():
            self.outbox.notify(
                admin_id,
                "New Sponsorship Application",
                f'{model.sponsor_name} applied to sponsor "{opportunity.title}" '
                f"with {amount} {currency}.",
                NotificationType.SPONSORSHIP_APPLICATION,
                link=opportunity_applications_link(opportunity_id),
            )

        logger.info("sponsorship_application_created", extra={
            "application_id": str(model.id),
            "opportunity_id": str(opportunity_id),
            "sponsor_id": str(actor.user_id),
            "amount": amount,
            "currency": currency,
        })
        return model.to_dto()

    def update_application(
        self,
        actor: ActorContext,
        application_id: UUID,
        patch: SponsorshipApplicationPatch | Mapping[str, Any],
    ) -> SponsorshipApplication:
        """
        Apply a sponsor or admin PATCH.

        Sponsors may withdraw their own pending application or edit its
        message.  Admins approve or reject pending applications, optionally
        choosing the notification template.  Nobody changes the amount or
        currency.
        """
        if not isinstance(patch, SponsorshipApplicationPatch):
            patch = build_patch(SponsorshipApplicationPatch, patch)
        model = self._load_application(application_id)

        if actor.is_admin:
            if patch.amount is not None or patch.currency is not None:
                raise ValidationError(
                    "Amount and currency cannot be changed after submission",
                    fields=tuple(n for n in ("amount", "currency") if getattr(patch, n) is not None),
                )
            if patch.message is not None:
                raise ForbiddenError("edit a sponsor's message", actor.role.value)
            if patch.status is not None:
                target = parse_status(SponsorshipStatus, patch.status)
                if target not in _ADMIN_DECISIONS:
                    raise ForbiddenError(
                        f"set sponsorship application status to {target.value}", actor.role.value
                    )
                self._decide(model, target, actor, patch.template_id)
            return model.to_dto()

        require_role(actor, "update sponsorship applications", Role.SPONSOR)
        if model.sponsor_id != actor.user_id:
            raise ForbiddenError("update this sponsorship application", actor.role.value)
        if patch.amount is not None or patch.currency is not None:
            raise ForbiddenError("change the amount or currency of an application", actor.role.value)
        if patch.template_id is not None:
            raise ForbiddenError("choose a notification template", actor.role.value)

        target = None
        if patch.status is not None:
            target = parse_status(SponsorshipStatus, patch.status)
            if target is not SponsorshipStatus.WITHDRAWN:
                raise ForbiddenError(
                    f"set sponsorship application status to {target.value}", actor.role.value
                )
        if patch.message is not None:
            if model.status != SponsorshipStatus.PENDING.value:
                raise InvalidStateError(
                    "sponsorship_application", application_id, model.status,
                    "Only pending applications can be edited",
                )
            model.message = patch.message
            model.updated_by_id = actor.user_id
            self.session.flush()
        if target is not None:
            self._withdraw(model, actor)
        return model.to_dto()

    def delete_application(self, actor: ActorContext, application_id: UUID) -> None:
        """Admins delete any application; sponsors only their own pending one."""
        model = self._load_application(application_id)
        if not actor.is_admin:
            require_role(actor, "delete sponsorship applications", Role.SPONSOR)
            if model.sponsor_id != actor.user_id:
                raise ForbiddenError("delete this sponsorship application", actor.role.value)
            if model.status != SponsorshipStatus.PENDING.value:
                raise InvalidStateError(
                    "sponsorship_application", application_id, model.status,
                    "Only pending applications can be deleted",
                )
        self.session.delete(model)
        self.session.flush()
        logger.info("sponsorship_application_deleted", extra={
            "application_id": str(application_id),
            "actor_id": str(actor.user_id),
        })

    def get_application(self, actor: ActorContext, application_id: UUID) -> SponsorshipApplication:
        model = self._load_application(application_id)
        if not actor.is_admin and model.sponsor_id != actor.user_id:
            raise NotFoundError("sponsorship_application", application_id)
        return model.to_dto()

    def list_for_sponsor(self, actor: ActorContext) -> list[SponsorshipApplication]:
        rows = self.session.execute(
            select(SponsorshipApplicationModel)
            .where(SponsorshipApplicationModel.sponsor_id == actor.user_id)
            .order_by(SponsorshipApplicationModel.submitted_at.desc())
        ).scalars()
        return [row.to_dto() for row in rows]

    def list_for_opportunity(
        self,
        actor: ActorContext,
        opportunity_id: UUID,
    ) -> list[SponsorshipApplication]:
        require_role(actor, "list sponsorship applications", Role.ADMIN)
        self._load_opportunity(opportunity_id)
        rows = self.session.execute(
            select(SponsorshipApplicationModel)
            .where(SponsorshipApplicationModel.opportunity_id == opportunity_id)
            .order_by(SponsorshipApplicationModel.submitted_at, SponsorshipApplicationModel.id)
        ).scalars()
        return [row.to_dto() for row in rows]

    def check_application(
        self,
        actor: ActorContext,
        opportunity_id: UUID,
    ) -> SponsorshipApplication | None:
        """The actor's application to the opportunity, if any."""
        model = self._application_for(opportunity_id, actor.user_id)
        return model.to_dto() if model is not None else None

    # =========================================================================
    # Internals
    # =========================================================================

    def _decide(
        self,
        model: SponsorshipApplicationModel,
        target: SponsorshipStatus,
        actor: ActorContext,
        template_id: str | None,
    ) -> None:
        transition = self._executor.authorize(
            SPONSORSHIP_APPLICATION_WORKFLOW, "sponsorship_application", model.id,
            model.status, target.value, actor,
        )
        template = template_for(target, template_id)
        opportunity = self._load_opportunity(model.opportunity_id)

        model.status = target.value
        model.updated_by_id = actor.user_id
        self.session.flush()

        if transition.notifies:
            link = sponsorship_application_link(model.id)
            subject, body, text = template.render(
                opportunityTitle=opportunity.title,
                sponsorName=model.sponsor_name,
                applicationUrl=link,
            )
            self.outbox.notify(
                model.sponsor_id,
                "Sponsorship Application Update",
                text,
                NotificationType.SPONSORSHIP_STATUS,
                link=link,
                email=EmailMessage(subject=subject, body=body),
            )
        logger.info("sponsorship_application_decided", extra={
            "application_id": str(model.id),
            "to_status": target.value,
            "template_id": template.id,
        })

    def _withdraw(self, model: SponsorshipApplicationModel, actor: ActorContext) -> None:
        transition = self._executor.authorize(
            SPONSORSHIP_APPLICATION_WORKFLOW, "sponsorship_application", model.id,
            model.status, SponsorshipStatus.WITHDRAWN.value, actor,
            context={"actor_id": actor.user_id, "owner_id": model.sponsor_id},
        )
        model.status = SponsorshipStatus.WITHDRAWN.value
        model.updated_by_id = actor.user_id
        self.session.flush()

        if transition.notifies:
            opportunity = self._load_opportunity(model.opportunity_id)
            for admin_id in UserSelector(self.session).admin_ids():
                self.outbox.notify(
                    admin_id,
                    "Sponsorship Application Withdrawn",
                    f'{model.sponsor_name} withdrew their application for "{opportunity.title}".',
                    NotificationType.SPONSORSHIP_STATUS,
                    link=opportunity_applications_link(model.opportunity_id),
                )
        logger.info("sponsorship_application_withdrawn", extra={
            "application_id": str(model.id),
        })

    def _application_for(
        self,
        opportunity_id: UUID,
        sponsor_id: UUID,
    ) -> SponsorshipApplicationModel | None:
        return self.session.execute(
            select(SponsorshipApplicationModel).where(
                SponsorshipApplicationModel.opportunity_id == opportunity_id,
                SponsorshipApplicationModel.sponsor_id == sponsor_id,
            )
        ).scalar_one_or_none()

    def _load_opportunity(self, opportunity_id: UUID) -> SponsorshipOpportunityModel:
        model = self.session.get(SponsorshipOpportunityModel, opportunity_id)
        if model is None:
            raise NotFoundError("sponsorship_opportunity", opportunity_id)
        return model

    def _load_application(self, application_id: UUID) -> SponsorshipApplicationModel:
        model = self.session.get(SponsorshipApplicationModel, application_id)
        if model is None:
            raise NotFoundError("sponsorship_application", application_id)
        return model


def _amount(value: Any) -> Decimal:
    try:
        return money_from_value(value)
    except ValueError as exc:
        raise ValidationError(str(exc), fields=("amount",)) from exc


def _currency(code: str) -> str:
    try:
        return normalize_currency(code)
    except ValueError as exc:
        raise ValidationError(str(exc), fields=("currency",)) from exc


def _check_range(min_amount: Any, max_amount: Any) -> None:
    low, high = _amount(min_amount), _amount(max_amount)
    if low < 0 or high < 0:
        raise ValidationError("Amounts must not be negative", fields=("min_amount", "max_amount"))
    if low > high:
        raise ValidationError(
            "min_amount must not exceed max_amount", fields=("min_amount", "max_amount")
        )
