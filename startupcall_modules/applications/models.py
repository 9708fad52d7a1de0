"""
Call application domain models (``startupcall_modules.applications.models``).

Frozen DTOs for an entrepreneur's application to a startup call, the
startup profile submitted with it, and the admin patch structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from uuid import UUID


class ApplicationStatus(Enum):
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    MORE_INFO_REQUIRED = "more_info_required"
    APPROVED = "approved"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


# Statuses only an admin may set
ADMIN_STATUSES = frozenset({
    ApplicationStatus.UNDER_REVIEW,
    ApplicationStatus.MORE_INFO_REQUIRED,
    ApplicationStatus.APPROVED,
    ApplicationStatus.REJECTED,
})

STATUS_MESSAGES: dict[ApplicationStatus, str] = {
    ApplicationStatus.UNDER_REVIEW: "Your application is now under review by our team.",
    ApplicationStatus.MORE_INFO_REQUIRED: (
        "We need additional information about your application. "
        "Please check your email for details."
    ),
    ApplicationStatus.APPROVED: "Congratulations! Your application has been approved.",
    ApplicationStatus.REJECTED: (
        "We regret to inform you that your application has not been approved at this time."
    ),
    ApplicationStatus.WITHDRAWN: "Your application has been withdrawn.",
}

REQUIRED_PROFILE_FIELDS = (
    "startup_name",
    "founding_date",
    "industry",
    "stage",
    "description",
    "problem",
    "solution",
    "business_model",
    "use_of_funds",
    "competitive_advantage",
    "founder_bio",
)


@dataclass(frozen=True)
class StartupProfile:
    """Startup information submitted with an application."""
    startup_name: str | None = None
    founding_date: date | None = None
    industry: str | None = None
    stage: str | None = None
    description: str | None = None
    problem: str | None = None
    solution: str | None = None
    business_model: str | None = None
    use_of_funds: str | None = None
    competitive_advantage: str | None = None
    founder_bio: str | None = None
    website: str | None = None
    team_size: int | None = None
    traction: str | None = None
    funding: str | None = None
    pitch_deck_url: str | None = None
    financials_url: str | None = None


@dataclass(frozen=True)
class Application:
    id: UUID
    call_id: UUID
    user_id: UUID
    status: ApplicationStatus
    submitted_at: datetime
    reviews_completed: int = 0
    reviews_total: int = 3
    startup_id: UUID | None = None
    profile: StartupProfile = field(default_factory=StartupProfile)


@dataclass(frozen=True)
class ApplicationAdminPatch:
    """Admin PUT body.  None means unchanged."""
    status: str | None = None
    reviews_completed: int | None = None
    reviews_total: int | None = None
