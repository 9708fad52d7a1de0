"""Request dependencies: the platform and the acting user."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends, Header, Request

from startupcall_kernel.domain.actor import ActorContext
from startupcall_kernel.exceptions import AuthenticationError
from startupcall_kernel.logging_config import LogContext
from startupcall_kernel.selectors.user_selector import UserSelector
from startupcall_services.platform import Platform


def get_platform(request: Request) -> Platform:
    return request.app.state.platform


def get_actor(
    x_user_id: str | None = Header(default=None),
    platform: Platform = Depends(get_platform),
) -> ActorContext:
    """
    Resolve the caller from ``X-User-Id``.  The role always comes from
    the user row, never from the request.

    Raises:
        AuthenticationError: header missing or malformed, user unknown
            or disabled.
    """
    if not x_user_id:
        raise AuthenticationError()
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise AuthenticationError("Invalid user id") from None

    with platform.read_session() as session:
        actor = UserSelector(session).resolve_actor(user_id)
    if actor is None:
        raise AuthenticationError("Unknown or disabled user")

    LogContext.set(actor_id=str(actor.user_id), actor_role=actor.role.value)
    return actor
