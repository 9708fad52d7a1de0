"""
SQLAlchemy ORM persistence model for startup calls.

Invariants enforced
-------------------
* ``status`` stored as the lowercase enum value.
* A published call always carries ``published_date``
  (``ck_call_published_date``).
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from startupcall_kernel.db.base import TrackedBase
from startupcall_kernel.db.types import MoneyType
from startupcall_modules.calls.models import CallStatus, StartupCall


class StartupCallModel(TrackedBase):
    """A funding program entrepreneurs apply to."""

    __tablename__ = "startup_calls"

    __table_args__ = (
        CheckConstraint(
            "status <> 'published' OR published_date IS NOT NULL",
            name="ck_call_published_date",
        ),
        Index("idx_call_status", "status"),
        Index("idx_call_deadline", "application_deadline"),
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=CallStatus.DRAFT.value)
    application_deadline: Mapped[datetime] = mapped_column(nullable=False)
    published_date: Mapped[datetime | None] = mapped_column(nullable=True)
    industry: Mapped[str] = mapped_column(String(100), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    funding_amount: Mapped[Decimal | None] = mapped_column(MoneyType(), nullable=True)

    def to_dto(self) -> StartupCall:
        return StartupCall(
            id=self.id,
            title=self.title,
            description=self.description,
            status=CallStatus(self.status),
            application_deadline=self.application_deadline,
            industry=self.industry,
            location=self.location,
            published_date=self.published_date,
            funding_amount=self.funding_amount,
            created_by=self.created_by_id,
        )

    def __repr__(self) -> str:
        return f"<StartupCall {self.title} ({self.status})>"
