"""
Shared helpers for module services.

Role checks, required-field checks and patch construction are identical
across modules, so they live here instead of being repeated per service.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, TypeVar

from startupcall_kernel.domain.actor import ActorContext, Role
from startupcall_kernel.exceptions import ForbiddenError, ValidationError

P = TypeVar("P")


def require_role(actor: ActorContext, action: str, *roles: Role) -> None:
    """Raise ForbiddenError unless the actor holds one of ``roles``."""
    if actor.role not in roles:
        raise ForbiddenError(action, actor.role.value)


def missing_fields(payload: Any, names: Iterable[str]) -> tuple[str, ...]:
    """Names whose value is None or a blank string."""
    missing = []
    for name in names:
        value = getattr(payload, name, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    return tuple(missing)


def require_fields(payload: Any, names: Iterable[str]) -> None:
    missing = missing_fields(payload, names)
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            fields=missing,
        )


def require_aware(value: datetime | None, field_name: str) -> None:
    if value is not None and value.tzinfo is None:
        raise ValidationError(
            f"{field_name} must include a timezone",
            fields=(field_name,),
        )


def build_patch(patch_cls: type[P], data: Mapping[str, Any]) -> P:
    """
    Build a patch dataclass from a mapping, rejecting unknown fields.

    Raises:
        ValidationError: ``data`` names a field the patch does not define.
    """
    allowed = {f.name for f in dataclasses.fields(patch_cls)}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValidationError(
            f"Unknown or immutable fields: {', '.join(unknown)}",
            fields=tuple(unknown),
        )
    return patch_cls(**data)


def provided_fields(patch: Any) -> dict[str, Any]:
    """The fields of a patch dataclass that were actually set."""
    return {
        f.name: getattr(patch, f.name)
        for f in dataclasses.fields(patch)
        if getattr(patch, f.name) is not None
    }
