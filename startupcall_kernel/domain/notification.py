"""
Notification value objects (``startupcall_kernel.domain.notification``).

Responsibility
--------------
Describes a notification that a state transition wants delivered
(``NotificationIntent``) and a stored notification (``NotificationRecord``).
Intents are produced inside the workflow transaction and delivered only
after it commits.

Invariants enforced
-------------------
* One intent names exactly one recipient.
* Intents are immutable once created.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class NotificationType(Enum):
    APPLICATION_SUBMITTED = "application_submitted"
    APPLICATION_STATUS = "application_status"
    REVIEW_ASSIGNMENT = "review_assignment"
    REVIEW_SUBMISSION = "review_submission"
    ALL_REVIEWS_COMPLETED = "all_reviews_completed"
    SPONSORSHIP_APPLICATION = "sponsorship_application"
    SPONSORSHIP_STATUS = "sponsorship_status"
    EXPENSE_SUBMITTED = "expense_submitted"
    EXPENSE_STATUS = "expense_status"
    ANNOUNCEMENT = "announcement"


@dataclass(frozen=True)
class EmailMessage:
    """Best-effort email accompanying a notification."""
    subject: str
    body: str


@dataclass(frozen=True)
class NotificationIntent:
    """A notification to deliver once the triggering transaction commits."""
    user_id: UUID
    title: str
    message: str
    type: NotificationType
    link: str | None = None
    email: EmailMessage | None = None


@dataclass(frozen=True)
class NotificationRecord:
    """A delivered notification as stored for its recipient."""
    id: UUID
    user_id: UUID
    title: str
    message: str
    type: NotificationType
    link: str | None
    read: bool
    created_at: datetime


@dataclass(frozen=True)
class NotificationPage:
    notifications: tuple[NotificationRecord, ...]
    total_count: int
    unread_count: int
