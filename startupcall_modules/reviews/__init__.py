"""Review Assignment Module (``startupcall_modules.reviews``)."""

from startupcall_modules.reviews.models import (
    SUBSCORE_FIELDS,
    ApplicationScore,
    ReviewAssignment,
    ReviewStatus,
    ReviewSubmission,
)
from startupcall_modules.reviews.workflows import REVIEW_ASSIGNMENT_WORKFLOW

__all__ = [
    "SUBSCORE_FIELDS",
    "ApplicationScore",
    "ReviewAssignment",
    "ReviewStatus",
    "ReviewSubmission",
    "REVIEW_ASSIGNMENT_WORKFLOW",
]
