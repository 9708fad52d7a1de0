"""
Application Workflow Module (``startupcall_modules.applications``).

Entrepreneurs submit one active application per call; admins move it
through review to a decision, and the applicant may withdraw early.
Every effective status change notifies the applicant.
"""

from startupcall_modules.applications.models import (
    ADMIN_STATUSES,
    STATUS_MESSAGES,
    Application,
    ApplicationAdminPatch,
    ApplicationStatus,
    StartupProfile,
)
from startupcall_modules.applications.workflows import CALL_APPLICATION_WORKFLOW

__all__ = [
    "ADMIN_STATUSES",
    "STATUS_MESSAGES",
    "Application",
    "ApplicationAdminPatch",
    "ApplicationStatus",
    "StartupProfile",
    "CALL_APPLICATION_WORKFLOW",
]
