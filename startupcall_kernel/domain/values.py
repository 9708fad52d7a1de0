"""
Boundary normalization helpers (``startupcall_kernel.domain.values``).

Statuses are Enums with lowercase values.  Input arriving from the outside
(``"PUBLISHED"``, ``"Active"``, ``"under_review"``) is normalized here, once,
and everything past the boundary compares enum members.
"""

from __future__ import annotations

from enum import Enum
from typing import TypeVar

from startupcall_kernel.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def parse_status(
    enum_cls: type[E],
    value: str | E,
    aliases: dict[str, E] | None = None,
) -> E:
    """
    Case-insensitive parse of a status string into ``enum_cls``.

    Raises:
        ValidationError: the value names no member (or alias).
    """
    if isinstance(value, enum_cls):
        return value
    key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    if aliases and key in aliases:
        return aliases[key]
    try:
        return enum_cls(key)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(
            f"Invalid status {value!r}; expected one of: {allowed}",
            fields=("status",),
        ) from None
