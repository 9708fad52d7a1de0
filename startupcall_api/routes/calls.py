"""Startup call endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from startupcall_api.deps import get_actor, get_platform
from startupcall_api.schemas import (
    CallCreate,
    CallResponse,
    CallUpdate,
    ClosedCallsResponse,
    StatusChange,
)
from startupcall_kernel.domain.actor import ActorContext, Role
from startupcall_kernel.domain.values import parse_status
from startupcall_modules.calls.models import CallDraft, CallStatus
from startupcall_services.platform import Platform

router = APIRouter(tags=["Startup Calls"])


@router.post("/startup-calls", response_model=CallResponse, status_code=status.HTTP_201_CREATED)
def create_call(
    body: CallCreate,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    draft = CallDraft(
        title=body.title,
        description=body.description,
        application_deadline=body.application_deadline,
        industry=body.industry,
        location=body.location,
        funding_amount=body.funding_amount,
        status=parse_status(CallStatus, body.status),
    )
    with platform.unit_of_work() as uow:
        call = platform.services(uow).calls.create_call(actor, draft)
    return CallResponse.model_validate(call)


@router.get("/startup-calls", response_model=list[CallResponse])
def list_calls(
    status_filter: str | None = Query(default=None, alias="status"),
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        calls = platform.services(uow).calls.list_calls(actor, status_filter)
    return [CallResponse.model_validate(call) for call in calls]


@router.post("/startup-calls/close-expired", response_model=ClosedCallsResponse)
def close_expired_calls(
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        closed = platform.services(uow).calls.close_expired_calls(actor)
    return ClosedCallsResponse(closed_ids=closed, count=len(closed))


@router.get("/startup-calls/{call_id}", response_model=CallResponse)
def get_call(
    call_id: UUID,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        services = platform.services(uow)
        call = services.calls.get_call(actor, call_id)
        application_status = None
        if actor.role is Role.ENTREPRENEUR:
            application_status = services.calls.application_status_for(actor, call_id)
    response = CallResponse.model_validate(call)
    return response.model_copy(update={"application_status": application_status})


@router.patch("/startup-calls/{call_id}", response_model=CallResponse)
def update_call(
    call_id: UUID,
    body: CallUpdate,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        call = platform.services(uow).calls.update_call(actor, call_id, body.changes())
    return CallResponse.model_validate(call)


@router.put("/startup-calls/{call_id}/status", response_model=CallResponse)
def change_call_status(
    call_id: UUID,
    body: StatusChange,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        call = platform.services(uow).calls.change_status(actor, call_id, body.status)
    return CallResponse.model_validate(call)


@router.delete("/startup-calls/{call_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_call(
    call_id: UUID,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        platform.services(uow).calls.delete_call(actor, call_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
