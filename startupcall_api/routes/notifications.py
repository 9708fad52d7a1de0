"""Notification inbox and admin broadcast endpoints."""

from fastapi import APIRouter, Depends, Query

from startupcall_api.deps import get_actor, get_platform
from startupcall_api.schemas import (
    Broadcast,
    BroadcastResponse,
    MarkRead,
    MarkReadResponse,
    NotificationPageResponse,
)
from startupcall_kernel.domain.actor import ActorContext, Role
from startupcall_kernel.domain.values import parse_status
from startupcall_services.platform import Platform

router = APIRouter(tags=["Notifications"])


@router.get("/notifications", response_model=NotificationPageResponse)
def list_notifications(
    limit: int | None = Query(default=None),
    offset: int = Query(default=0),
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        page = platform.services(uow).notifications.list_for_user(
            actor, limit=limit, offset=offset, only_unread=unread_only
        )
    return NotificationPageResponse.model_validate(page)


@router.put("/notifications/read", response_model=MarkReadResponse)
def mark_notifications_read(
    body: MarkRead,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    with platform.unit_of_work() as uow:
        updated = platform.services(uow).notifications.mark_read(actor, body.ids)
    return MarkReadResponse(updated=updated)


@router.post("/admin/notifications/broadcast", response_model=BroadcastResponse)
def broadcast_notification(
    body: Broadcast,
    actor: ActorContext = Depends(get_actor),
    platform: Platform = Depends(get_platform),
):
    role = parse_status(Role, body.role) if body.role else None
    with platform.unit_of_work() as uow:
        recipients = platform.services(uow).notifications.broadcast(
            actor, role, body.title, body.message, link=body.link
        )
    return BroadcastResponse(recipients=recipients)
