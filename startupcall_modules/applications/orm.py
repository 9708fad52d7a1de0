"""
SQLAlchemy ORM persistence model for call applications.

Invariants enforced
-------------------
* At most one non-withdrawn application per (call, user): partial unique
  index ``uq_application_active``.  Withdrawn rows are outside the index so
  an entrepreneur can apply again after withdrawing.
* Review counters are never negative.
"""

from dataclasses import fields as dataclass_fields
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from startupcall_kernel.db.base import TrackedBase
from startupcall_modules.applications.models import (
    Application,
    ApplicationStatus,
    StartupProfile,
)


class ApplicationModel(TrackedBase):
    """An entrepreneur's application to a startup call."""

    __tablename__ = "applications"

    __table_args__ = (
        Index(
            "uq_application_active",
            "call_id",
            "user_id",
            unique=True,
            postgresql_where=text("status <> 'withdrawn'"),
            sqlite_where=text("status <> 'withdrawn'"),
        ),
        CheckConstraint("reviews_completed >= 0", name="ck_application_reviews_completed"),
        CheckConstraint("reviews_total >= 0", name="ck_application_reviews_total"),
        Index("idx_application_status", "status"),
        Index("idx_application_user", "user_id"),
    )

    call_id: Mapped[UUID] = mapped_column(
        ForeignKey("startup_calls.id", ondelete="RESTRICT"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    startup_id: Mapped[UUID | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=ApplicationStatus.SUBMITTED.value
    )
    submitted_at: Mapped[datetime] = mapped_column(nullable=False)
    reviews_completed: Mapped[int] = mapped_column(nullable=False, default=0)
    reviews_total: Mapped[int] = mapped_column(nullable=False, default=3)

    # Startup profile
    startup_name: Mapped[str] = mapped_column(String(255), nullable=False)
    founding_date: Mapped[date] = mapped_column(Date, nullable=False)
    industry: Mapped[str] = mapped_column(String(100), nullable=False)
    stage: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    problem: Mapped[str] = mapped_column(Text, nullable=False)
    solution: Mapped[str] = mapped_column(Text, nullable=False)
    business_model: Mapped[str] = mapped_column(Text, nullable=False)
    use_of_funds: Mapped[str] = mapped_column(Text, nullable=False)
    competitive_advantage: Mapped[str] = mapped_column(Text, nullable=False)
    founder_bio: Mapped[str] = mapped_column(Text, nullable=False)
    website: Mapped[str | None] = mapped_column(String(500), nullable=True)
    team_size: Mapped[int | None] = mapped_column(nullable=True)
    traction: Mapped[str | None] = mapped_column(Text, nullable=True)
    funding: Mapped[str | None] = mapped_column(Text, nullable=True)
    pitch_deck_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    financials_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def to_dto(self) -> Application:
        profile = StartupProfile(
            **{f.name: getattr(self, f.name) for f in dataclass_fields(StartupProfile)}
        )
        return Application(
            id=self.id,
            call_id=self.call_id,
            user_id=self.user_id,
            status=ApplicationStatus(self.status),
            submitted_at=self.submitted_at,
            reviews_completed=self.reviews_completed,
            reviews_total=self.reviews_total,
            startup_id=self.startup_id,
            profile=profile,
        )

    @classmethod
    def from_profile(
        cls,
        profile: StartupProfile,
        *,
        call_id: UUID,
        user_id: UUID,
        submitted_at: datetime,
        reviews_total: int,
        startup_id: UUID | None = None,
    ) -> "ApplicationModel":
        return cls(
            call_id=call_id,
            user_id=user_id,
            startup_id=startup_id,
            status=ApplicationStatus.SUBMITTED.value,
            submitted_at=submitted_at,
            reviews_completed=0,
            reviews_total=reviews_total,
            created_by_id=user_id,
            **{f.name: getattr(profile, f.name) for f in dataclass_fields(StartupProfile)},
        )

    def __repr__(self) -> str:
        return f"<Application {self.startup_name} ({self.status})>"
