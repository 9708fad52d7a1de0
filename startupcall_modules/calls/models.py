"""
Startup call domain models (``startupcall_modules.calls.models``).

Frozen DTOs for startup calls, the create payload, and the explicit patch
structure listing the fields an admin may edit.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class CallStatus(Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CLOSED = "closed"
    ARCHIVED = "archived"


VISIBLE_TO_NON_ADMINS = frozenset({CallStatus.PUBLISHED, CallStatus.CLOSED})

NOT_APPLIED = "not_applied"


@dataclass(frozen=True)
class StartupCall:
    id: UUID
    title: str
    description: str
    status: CallStatus
    application_deadline: datetime
    industry: str
    location: str
    published_date: datetime | None = None
    funding_amount: Decimal | None = None
    created_by: UUID | None = None


@dataclass(frozen=True)
class CallDraft:
    """Fields required to create a call."""
    title: str
    description: str
    application_deadline: datetime
    industry: str
    location: str
    funding_amount: Decimal | None = None
    status: CallStatus = CallStatus.DRAFT


@dataclass(frozen=True)
class CallPatch:
    """Admin-editable call fields.  None means unchanged."""
    title: str | None = None
    description: str | None = None
    application_deadline: datetime | None = None
    industry: str | None = None
    location: str | None = None
    funding_amount: Decimal | None = None
