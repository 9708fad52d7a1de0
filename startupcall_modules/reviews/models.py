"""
Review assignment domain models (``startupcall_modules.reviews.models``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ReviewStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


SUBSCORE_FIELDS = ("innovation_score", "market_score", "team_score", "execution_score")


@dataclass(frozen=True)
class ReviewAssignment:
    id: UUID
    application_id: UUID
    reviewer_id: UUID
    status: ReviewStatus
    assigned_at: datetime
    due_date: datetime
    score: Decimal | None = None
    innovation_score: Decimal | None = None
    market_score: Decimal | None = None
    team_score: Decimal | None = None
    execution_score: Decimal | None = None
    feedback: str | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class ReviewSubmission:
    """A reviewer's verdict.  Sub-scores are optional."""
    score: Decimal | int | None
    feedback: str | None
    innovation_score: Decimal | int | None = None
    market_score: Decimal | int | None = None
    team_score: Decimal | int | None = None
    execution_score: Decimal | int | None = None


@dataclass(frozen=True)
class ApplicationScore:
    """Aggregate over COMPLETED assignments.  ``average_score`` is None when none are."""
    application_id: UUID
    average_score: Decimal | None
    completed_count: int
    assigned_count: int
