"""Notification templates for sponsorship decisions.

Placeholders: ``{opportunityTitle}``, ``{sponsorName}``, ``{applicationUrl}``.
"""

from __future__ import annotations

from dataclasses import dataclass

from startupcall_kernel.exceptions import NotFoundError, ValidationError
from startupcall_modules.sponsorship.models import SponsorshipStatus


@dataclass(frozen=True)
class NotificationTemplate:
    id: str
    name: str
    status: SponsorshipStatus
    subject: str
    email_content: str
    notification_content: str

    def render(self, **values: str) -> tuple[str, str, str]:
        """(subject, email body, notification text) with placeholders filled."""
        return (
            self.subject.format_map(values),
            self.email_content.format_map(values),
            self.notification_content.format_map(values),
        )


SPONSORSHIP_TEMPLATES: tuple[NotificationTemplate, ...] = (
    NotificationTemplate(
        id="approval-enthusiastic",
        name="Enthusiastic Approval",
        status=SponsorshipStatus.APPROVED,
        subject="Great News! Your Sponsorship Application for {opportunityTitle} is Approved",
        email_content=(
            "Dear {sponsorName},\n\n"
            'We are thrilled to inform you that your sponsorship application for '
            '"{opportunityTitle}" has been approved!\n\n'
            "Our team will be reaching out shortly with next steps.\n\n"
            "View your application: {applicationUrl}\n"
        ),
        notification_content=(
            'Congratulations! Your sponsorship application for "{opportunityTitle}" '
            "has been approved! We look forward to working with you."
        ),
    ),
    NotificationTemplate(
        id="approval-professional",
        name="Professional Approval",
        status=SponsorshipStatus.APPROVED,
        subject="Sponsorship Application Approved - {opportunityTitle}",
        email_content=(
            "Dear {sponsorName},\n\n"
            'We are pleased to inform you that your sponsorship application for '
            '"{opportunityTitle}" has been approved.\n\n'
            "You will receive information about the next steps within a few business days.\n\n"
            "View your application: {applicationUrl}\n"
        ),
        notification_content=(
            'Your sponsorship application for "{opportunityTitle}" has been approved. '
            "Check your email for details."
        ),
    ),
    NotificationTemplate(
        id="rejection-gentle",
        name="Gentle Rejection",
        status=SponsorshipStatus.REJECTED,
        subject="Update on Your Sponsorship Application - {opportunityTitle}",
        email_content=(
            "Dear {sponsorName},\n\n"
            'Thank you for your interest in sponsoring "{opportunityTitle}".\n\n'
            "After careful consideration, we are unable to move forward with your "
            "sponsorship application at this time.\n\n"
            "View your application: {applicationUrl}\n"
        ),
        notification_content=(
            "Thank you for your interest. After review, we cannot proceed with your "
            'application for "{opportunityTitle}" at this time.'
        ),
    ),
    NotificationTemplate(
        id="rejection-direct",
        name="Direct Rejection",
        status=SponsorshipStatus.REJECTED,
        subject="Sponsorship Application Status - {opportunityTitle}",
        email_content=(
            "Dear {sponsorName},\n\n"
            'We have completed our review of your sponsorship application for "{opportunityTitle}".\n\n'
            "Unfortunately, we are unable to accept your application at this time.\n\n"
            "View your application: {applicationUrl}\n"
        ),
        notification_content=(
            'Your sponsorship application for "{opportunityTitle}" was not approved. '
            "Please check your email for more information."
        ),
    ),
)

_BY_ID = {t.id: t for t in SPONSORSHIP_TEMPLATES}

DEFAULT_TEMPLATE_IDS = {
    SponsorshipStatus.APPROVED: "approval-professional",
    SponsorshipStatus.REJECTED: "rejection-gentle",
}


def template_for(status: SponsorshipStatus, template_id: str | None = None) -> NotificationTemplate:
    """
    Resolve the template for a decision.

    Raises:
        NotFoundError: unknown template id.
        ValidationError: the template belongs to the other decision.
    """
    if template_id is None:
        return _BY_ID[DEFAULT_TEMPLATE_IDS[status]]
    template = _BY_ID.get(template_id)
    if template is None:
        raise NotFoundError("notification_template", template_id)
    if template.status is not status:
        raise ValidationError(
            f"Template {template_id} cannot be used for {status.value} applications",
            fields=("template_id",),
        )
    return template
