"""
Sponsorship domain models (``startupcall_modules.sponsorship.models``).

Opportunities are funding slots published by admins; sponsors apply to
them with a proposed amount inside the opportunity's [min, max] range.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class OpportunityStatus(Enum):
    DRAFT = "draft"
    OPEN = "open"
    CLOSED = "closed"
    ARCHIVED = "archived"


# Legacy spelling accepted at the boundary
OPPORTUNITY_STATUS_ALIASES = {"active": OpportunityStatus.OPEN}


class SponsorshipStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class SponsorshipType(Enum):
    FINANCIAL = "financial"
    IN_KIND = "in_kind"
    OTHER = "other"


@dataclass(frozen=True)
class SponsorshipOpportunity:
    id: UUID
    title: str
    description: str
    min_amount: Decimal
    max_amount: Decimal
    currency: str
    status: OpportunityStatus
    benefits: str | None = None
    deadline: datetime | None = None
    startup_call_id: UUID | None = None
    created_by: UUID | None = None


@dataclass(frozen=True)
class OpportunityDraft:
    title: str
    description: str
    min_amount: Decimal
    max_amount: Decimal
    currency: str | None = None
    benefits: str | None = None
    deadline: datetime | None = None
    startup_call_id: UUID | None = None
    status: OpportunityStatus = OpportunityStatus.DRAFT


@dataclass(frozen=True)
class OpportunityPatch:
    """Admin-editable opportunity fields.  None means unchanged."""
    title: str | None = None
    description: str | None = None
    benefits: str | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    deadline: datetime | None = None


@dataclass(frozen=True)
class SponsorshipApplication:
    id: UUID
    opportunity_id: UUID
    sponsor_id: UUID
    amount: Decimal
    currency: str
    status: SponsorshipStatus
    sponsor_name: str
    contact_person: str
    email: str
    sponsorship_type: SponsorshipType
    submitted_at: datetime
    phone: str | None = None
    website: str | None = None
    other_type: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class SponsorshipApplicationDraft:
    amount: Decimal
    sponsor_name: str
    contact_person: str
    email: str
    currency: str | None = None
    phone: str | None = None
    website: str | None = None
    sponsorship_type: SponsorshipType = SponsorshipType.FINANCIAL
    other_type: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class SponsorshipApplicationPatch:
    """PATCH body.  ``amount`` and ``currency`` exist only so they can be refused."""
    status: str | None = None
    message: str | None = None
    amount: Decimal | None = None
    currency: str | None = None
    template_id: str | None = None
