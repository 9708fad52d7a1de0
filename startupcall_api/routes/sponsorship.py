"""Sponsorship opportunity and sponsor application endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from startupcall_api.deps import get_actor, get_platform
from startupcall_api.schemas import (
    OpportunityCreate,
    OpportunityResponse,
    OpportunityUpdate,
    SponsorshipApplicationResponse,
    SponsorshipApplicationUpdate,
    SponsorshipApply,
)
from startupcall_kernel.domain.actor import ActorContext
from startupcall_kernel.domain.values import parse_status
from startupcall_modules.sponsorship.models import (
    OpportunityDraft,
    SponsorshipApplicationDraft,
    SponsorshipType,
)
from startupcall_services.platform import Platform

router = APIRouter(tags=["Sponsorship"])


@router.post(
    "/sponsorship-opportunities",
    response_model=OpportunityResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_opportunity(
    body: OpportunityCreate,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        service = platform.services(uow).sponsorship
        opportunity = service.create_opportunity(actor, OpportunityDraft(
            title=body.title,
            description=body.description,
            min_amount=body.min_amount,
            max_amount=body.max_amount,
            currency=body.currency,
            benefits=body.benefits,
            deadline=body.deadline,
            startup_call_id=body.startup_call_id,
            status=service.parse_opportunity_status(body.status),
        ))
    return OpportunityResponse.model_validate(opportunity)


@router.get("/sponsorship-opportunities", response_model=list[OpportunityResponse])
def list_opportunities(
    status_filter: str | None = Query(default=None, alias="status"),
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        opportunities = platform.services(uow).sponsorship.list_opportunities(actor, status_filter)
    return [OpportunityResponse.model_validate(o) for o in opportunities]


@router.get("/sponsorship-opportunities/{opportunity_id}", response_model=OpportunityResponse)
def get_opportunity(
    opportunity_id: UUID,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        opportunity = platform.services(uow).sponsorship.get_opportunity(actor, opportunity_id)
    return OpportunityResponse.model_validate(opportunity)


@router.patch("/sponsorship-opportunities/{opportunity_id}", response_model=OpportunityResponse)
def update_opportunity(
    opportunity_id: UUID,
    body: OpportunityUpdate,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    changes = body.changes()
    new_status = changes.pop("status", None)
    with platform.unit_of_work() as uow:
        service = platform.services(uow).sponsorship
        opportunity = service.update_opportunity(actor, opportunity_id, changes)
        if new_status is not None:
            opportunity = service.change_opportunity_status(actor, opportunity_id, new_status)
    return OpportunityResponse.model_validate(opportunity)


@router.post(
    "/sponsorship-opportunities/{opportunity_id}/apply",
    response_model=SponsorshipApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
def apply_for_sponsorship(
    opportunity_id: UUID,
    body: SponsorshipApply,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    draft = SponsorshipApplicationDraft(
        amount=body.amount,
        sponsor_name=body.sponsor_name,
        contact_person=body.contact_person,
        email=body.email,
        currency=body.currency,
        phone=body.phone,
        website=body.website,
        sponsorship_type=parse_status(SponsorshipType, body.sponsorship_type),
        other_type=body.other_type,
        message=body.message,
    )
    with platform.unit_of_work() as uow:
        application = platform.services(uow).sponsorship.create_application(
            actor, opportunity_id, draft
        )
    return SponsorshipApplicationResponse.model_validate(application)


@router.get(
    "/sponsorship-opportunities/{opportunity_id}/applications",
    response_model=list[SponsorshipApplicationResponse],
)
def list_opportunity_applications(
    opportunity_id: UUID,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        applications = platform.services(uow).sponsorship.list_for_opportunity(
            actor, opportunity_id
        )
    return [SponsorshipApplicationResponse.model_validate(a) for a in applications]


@router.get(
    "/sponsorship-opportunities/{opportunity_id}/my-application",
    response_model=SponsorshipApplicationResponse | None,
)
def check_my_application(
    opportunity_id: UUID,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        application = platform.services(uow).sponsorship.check_application(actor, opportunity_id)
    if application is None:
        return None
    return SponsorshipApplicationResponse.model_validate(application)


@router.get("/sponsorship-applications", response_model=list[SponsorshipApplicationResponse])
def list_my_sponsorship_applications(
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        applications = platform.services(uow).sponsorship.list_for_sponsor(actor)
    return [SponsorshipApplicationResponse.model_validate(a) for a in applications]


@router.get(
    "/sponsorship-applications/{application_id}",
    response_model=SponsorshipApplicationResponse,
)
def get_sponsorship_application(
    application_id: UUID,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        application = platform.services(uow).sponsorship.get_application(actor, application_id)
    return SponsorshipApplicationResponse.model_validate(application)


@router.patch(
    "/sponsorship-applications/{application_id}",
    response_model=SponsorshipApplicationResponse,
)
def update_sponsorship_application(
    application_id: UUID,
    body: SponsorshipApplicationUpdate,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        application = platform.services(uow).sponsorship.update_application(
            actor, application_id, body.changes()
        )
    return SponsorshipApplicationResponse.model_validate(application)


@router.delete(
    "/sponsorship-applications/{application_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_sponsorship_application(
    application_id: UUID,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        platform.services(uow).sponsorship.delete_application(actor, application_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
