"""Call application endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from startupcall_api.deps import get_actor, get_platform
from startupcall_api.schemas import (
    ApplicationAdminUpdate,
    ApplicationCreate,
    ApplicationResponse,
    StatusChange,
)
from startupcall_kernel.domain.actor import ActorContext
from startupcall_kernel.exceptions import NotFoundError
from startupcall_modules.applications.models import StartupProfile
from startupcall_services.platform import Platform

router = APIRouter(tags=["Applications"])


@router.post(
    "/startup-calls/{call_id}/applications",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
def submit_application(
    call_id: UUID,
    body: ApplicationCreate,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    fields = body.model_dump()
    startup_id = fields.pop("startup_id")
    with platform.unit_of_work() as uow:
        application = platform.services(uow).applications.submit_application(
            actor, call_id, StartupProfile(**fields), startup_id=startup_id
        )
    return ApplicationResponse.model_validate(application)


@router.get("/startup-calls/{call_id}/applications", response_model=list[ApplicationResponse])
def list_call_applications(
    call_id: UUID,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        applications = platform.services(uow).applications.list_for_call(actor, call_id)
    return [ApplicationResponse.model_validate(a) for a in applications]


@router.put(
    "/startup-calls/{call_id}/applications/{application_id}",
    response_model=ApplicationResponse,
)
def admin_update_application(
    call_id: UUID,
    application_id: UUID,
    body: ApplicationAdminUpdate,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        service = platform.services(uow).applications
        application = service.admin_update(actor, application_id, body.changes())
        if application.call_id != call_id:
            raise NotFoundError("application", application_id)
    return ApplicationResponse.model_validate(application)


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
def get_application(
    application_id: UUID,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        application = platform.services(uow).applications.get_application(actor, application_id)
    return ApplicationResponse.model_validate(application)


@router.put("/applications/{application_id}/status", response_model=ApplicationResponse)
def change_application_status(
    application_id: UUID,
    body: StatusChange,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        application = platform.services(uow).applications.update_application_status(
            actor, application_id, body.status
        )
    return ApplicationResponse.model_validate(application)
