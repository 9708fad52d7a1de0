"""
SQLAlchemy ORM persistence model for review assignments.

Invariants enforced
-------------------
* One assignment per (application, reviewer): ``uq_review_application_reviewer``.
* ``score`` is only ever set on a completed assignment
  (``ck_review_score_completed``).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from startupcall_kernel.db.base import TrackedBase
from startupcall_modules.reviews.models import ReviewAssignment, ReviewStatus


class ReviewAssignmentModel(TrackedBase):
    """A reviewer's task to evaluate one application."""

    __tablename__ = "review_assignments"

    __table_args__ = (
        UniqueConstraint(
            "application_id", "reviewer_id", name="uq_review_application_reviewer"
        ),
        CheckConstraint(
            "score IS NULL OR status = 'completed'",
            name="ck_review_score_completed",
        ),
        Index("idx_review_reviewer_status", "reviewer_id", "status"),
    )

    application_id: Mapped[UUID] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    reviewer_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReviewStatus.PENDING.value
    )
    assigned_at: Mapped[datetime] = mapped_column(nullable=False)
    due_date: Mapped[datetime] = mapped_column(nullable=False)
    score: Mapped[Decimal | None] = mapped_column(nullable=True)
    innovation_score: Mapped[Decimal | None] = mapped_column(nullable=True)
    market_score: Mapped[Decimal | None] = mapped_column(nullable=True)
    team_score: Mapped[Decimal | None] = mapped_column(nullable=True)
    execution_score: Mapped[Decimal | None] = mapped_column(nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self) -> ReviewAssignment:
        return ReviewAssignment(
            id=self.id,
            application_id=self.application_id,
            reviewer_id=self.reviewer_id,
            status=ReviewStatus(self.status),
            assigned_at=self.assigned_at,
            due_date=self.due_date,
            score=self.score,
            innovation_score=self.innovation_score,
            market_score=self.market_score,
            team_score=self.team_score,
            execution_score=self.execution_score,
            feedback=self.feedback,
            completed_at=self.completed_at,
        )
