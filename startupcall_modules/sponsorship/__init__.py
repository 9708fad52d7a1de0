"""
Sponsorship Module (``startupcall_modules.sponsorship``).

Admins publish funding opportunities with an amount range; sponsors apply
once per opportunity and admins approve or reject, picking one of the
``SPONSORSHIP_TEMPLATES`` for the sponsor's notification.
"""

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
from startupcall_modules.sponsorship.templates import SPONSORSHIP_TEMPLATES
from startupcall_modules.sponsorship.workflows import (
    SPONSORSHIP_APPLICATION_WORKFLOW,
    SPONSORSHIP_OPPORTUNITY_WORKFLOW,
)

__all__ = [
    "OpportunityDraft",
    "OpportunityPatch",
    "OpportunityStatus",
    "SponsorshipApplication",
    "SponsorshipApplicationDraft",
    "SponsorshipApplicationPatch",
    "SponsorshipOpportunity",
    "SponsorshipStatus",
    "SponsorshipType",
    "SPONSORSHIP_TEMPLATES",
    "SPONSORSHIP_APPLICATION_WORKFLOW",
    "SPONSORSHIP_OPPORTUNITY_WORKFLOW",
]
