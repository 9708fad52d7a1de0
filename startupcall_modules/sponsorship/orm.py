"""
SQLAlchemy ORM persistence models for sponsorship.

Invariants enforced
-------------------
* ``0 <= min_amount <= max_amount`` on every opportunity.
* One application per (sponsor, opportunity): ``uq_sponsorship_sponsor_opportunity``.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from startupcall_kernel.db.base import TrackedBase
from startupcall_kernel.db.types import Currency, Money
from startupcall_modules.sponsorship.models import (
    OpportunityStatus,
    SponsorshipApplication,
    SponsorshipOpportunity,
    SponsorshipStatus,
    SponsorshipType,
)


class SponsorshipOpportunityModel(TrackedBase):
    """A funding slot sponsors can apply to fund."""

    __tablename__ = "sponsorship_opportunities"

    __table_args__ = (
        CheckConstraint("min_amount >= 0", name="ck_opportunity_min_amount"),
        CheckConstraint("min_amount <= max_amount", name="ck_opportunity_amount_range"),
        Index("idx_opportunity_status", "status"),
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    benefits: Mapped[str | None] = mapped_column(Text, nullable=True)
    min_amount: Mapped[Money] = mapped_column(nullable=False)
    max_amount: Mapped[Money] = mapped_column(nullable=False)
    currency: Mapped[Currency] = mapped_column(nullable=False, default="USD")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OpportunityStatus.DRAFT.value
    )
    deadline: Mapped[datetime | None] = mapped_column(nullable=True)
    startup_call_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("startup_calls.id", ondelete="SET NULL"), nullable=True
    )

    def to_dto(self) -> SponsorshipOpportunity:
        return SponsorshipOpportunity(
            id=self.id,
            title=self.title,
            description=self.description,
            min_amount=self.min_amount,
            max_amount=self.max_amount,
            currency=self.currency,
            status=OpportunityStatus(self.status),
            benefits=self.benefits,
            deadline=self.deadline,
            startup_call_id=self.startup_call_id,
            created_by=self.created_by_id,
        )


class SponsorshipApplicationModel(TrackedBase):
    """A sponsor's offer to fund an opportunity."""

    __tablename__ = "sponsorship_applications"

    __table_args__ = (
        UniqueConstraint(
            "sponsor_id", "opportunity_id", name="uq_sponsorship_sponsor_opportunity"
        ),
        Index("idx_sponsorship_application_status", "status"),
    )

    opportunity_id: Mapped[UUID] = mapped_column(
        ForeignKey("sponsorship_opportunities.id", ondelete="CASCADE"), nullable=False
    )
    sponsor_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    amount: Mapped[Money] = mapped_column(nullable=False)
    currency: Mapped[Currency] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SponsorshipStatus.PENDING.value
    )
    sponsor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_person: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    website: Mapped[str | None] = mapped_column(String(500), nullable=True)
    sponsorship_type: Mapped[str] = mapped_column(String(20), nullable=False)
    other_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(nullable=False)

    def to_dto(self) -> SponsorshipApplication:
        return SponsorshipApplication(
            id=self.id,
            opportunity_id=self.opportunity_id,
            sponsor_id=self.sponsor_id,
            amount=self.amount,
            currency=self.currency,
            status=SponsorshipStatus(self.status),
            sponsor_name=self.sponsor_name,
            contact_person=self.contact_person,
            email=self.email,
            sponsorship_type=SponsorshipType(self.sponsorship_type),
            submitted_at=self.submitted_at,
            phone=self.phone,
            website=self.website,
            other_type=self.other_type,
            message=self.message,
        )
