"""
Sponsorship opportunities and sponsor applications.

Validates:
- Opportunity range checks and the "active" alias for open
- Application checks in order: not found, not open, deadline, range, duplicate, fields
- Admin decisions use the chosen (or default) template and notify the sponsor
- Sponsors withdraw or edit only their own pending application
- Amount and currency never change; terminal states stay terminal
"""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from startupcall_kernel.domain.notification import NotificationType
from startupcall_kernel.exceptions import (
    AmountOutOfRangeError,
    DeadlinePassedError,
    DuplicateSponsorshipApplicationError,
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    NotOpenError,
    ValidationError,
)
from startupcall_modules.sponsorship.models import (
    OpportunityDraft,
    OpportunityStatus,
    SponsorshipStatus,
    SponsorshipType,
)
from startupcall_modules.sponsorship.templates import template_for
from tests.conftest import make_sponsorship_draft


@pytest.fixture
def opportunity(create_opportunity):
    return create_opportunity()


@pytest.fixture
def pending(sponsor, opportunity, apply_for_sponsorship):
    return apply_for_sponsorship(sponsor, opportunity.id)


def _of_type(records, notification_type):
    return [n for n in records if n.type is notification_type]


class TestOpportunities:

    def test_create_with_alias_status(self, transact, admin):
        draft = OpportunityDraft(
            title="Booth", description="Expo booth", min_amount=Decimal("100"),
            max_amount=Decimal("900"), currency="eur", status="Active",
        )
        created = transact(lambda s: s.sponsorship.create_opportunity(admin, draft))
        assert created.status is OpportunityStatus.OPEN
        assert created.currency == "EUR"

    def test_min_above_max_rejected(self, create_opportunity):
        with pytest.raises(ValidationError):
            create_opportunity(min_amount="5000", max_amount="1000")

    def test_negative_amount_rejected(self, create_opportunity):
        with pytest.raises(ValidationError):
            create_opportunity(min_amount="-1")

    def test_update_keeps_range_valid(self, transact, admin, opportunity):
        with pytest.raises(ValidationError):
            transact(lambda s: s.sponsorship.update_opportunity(
                admin, opportunity.id, {"min_amount": Decimal("20000")}
            ))
        updated = transact(lambda s: s.sponsorship.update_opportunity(
            admin, opportunity.id, {"max_amount": Decimal("20000")}
        ))
        assert updated.max_amount == Decimal("20000")

    def test_status_lifecycle(self, transact, admin, opportunity):
        closed = transact(lambda s: s.sponsorship.change_opportunity_status(admin, opportunity.id, "closed"))
        assert closed.status is OpportunityStatus.CLOSED
        reopened = transact(lambda s: s.sponsorship.change_opportunity_status(admin, opportunity.id, "ACTIVE"))
        assert reopened.status is OpportunityStatus.OPEN
        transact(lambda s: s.sponsorship.change_opportunity_status(admin, opportunity.id, "archived"))
        with pytest.raises(InvalidTransitionError):
            transact(lambda s: s.sponsorship.change_opportunity_status(admin, opportunity.id, "open"))

    def test_open_listing_respects_deadline(self, transact, sponsor, create_opportunity, deterministic_clock):
        now = deterministic_clock.now()
        create_opportunity(title="Expired", deadline=now - timedelta(days=1))
        upcoming = create_opportunity(title="Upcoming", deadline=now + timedelta(days=5))
        unlimited = create_opportunity(title="Unlimited")
        create_opportunity(title="Drafted", status=OpportunityStatus.DRAFT)

        listed = {o.id for o in transact(lambda s: s.sponsorship.list_opportunities(sponsor))}
        assert listed == {upcoming.id, unlimited.id}

    def test_draft_hidden_from_sponsors(self, transact, sponsor, create_opportunity):
        draft = create_opportunity(status=OpportunityStatus.DRAFT)
        with pytest.raises(NotFoundError):
            transact(lambda s: s.sponsorship.get_opportunity(sponsor, draft.id))


class TestCreateApplication:

    def test_application_notifies_admins(self, admin, sponsor, opportunity, apply_for_sponsorship, notifications_for):
        application = apply_for_sponsorship(sponsor, opportunity.id, amount=Decimal("2500"))

        assert application.status is SponsorshipStatus.PENDING
        assert application.currency == "USD"
        assert application.sponsorship_type is SponsorshipType.FINANCIAL
        (notification,) = notifications_for(admin.user_id)
        assert notification.type is NotificationType.SPONSORSHIP_APPLICATION
        assert "Globex Corp" in notification.message

    def test_unknown_opportunity(self, sponsor, apply_for_sponsorship):
        with pytest.raises(NotFoundError):
            apply_for_sponsorship(sponsor, uuid4())

    def test_not_open(self, sponsor, create_opportunity, apply_for_sponsorship):
        closed = create_opportunity(status=OpportunityStatus.DRAFT)
        with pytest.raises(NotOpenError) as exc_info:
            apply_for_sponsorship(sponsor, closed.id)
        assert exc_info.value.current_status == "draft"

    def test_deadline_passed(self, sponsor, create_opportunity, apply_for_sponsorship, deterministic_clock):
        opp = create_opportunity(deadline=deterministic_clock.now() + timedelta(hours=1))
        deterministic_clock.advance(3601)
        with pytest.raises(DeadlinePassedError):
            apply_for_sponsorship(sponsor, opp.id)

    @pytest.mark.parametrize("amount", ["999.99", "10000.01"])
    def test_amount_out_of_range(self, sponsor, opportunity, apply_for_sponsorship, amount):
        with pytest.raises(AmountOutOfRangeError) as exc_info:
            apply_for_sponsorship(sponsor, opportunity.id, amount=Decimal(amount))
        assert str(exc_info.value) == "Amount must be between 1000 and 10000"

    @pytest.mark.parametrize("amount", ["1000", "10000"])
    def test_bounds_inclusive(self, sponsor, opportunity, apply_for_sponsorship, amount):
        assert apply_for_sponsorship(sponsor, opportunity.id, amount=Decimal(amount)).amount == Decimal(amount)

    def test_range_checked_before_duplicate(self, sponsor, opportunity, pending, apply_for_sponsorship):
        with pytest.raises(AmountOutOfRangeError):
            apply_for_sponsorship(sponsor, opportunity.id, amount=Decimal("1"))

    def test_duplicate(self, sponsor, opportunity, pending, apply_for_sponsorship):
        with pytest.raises(DuplicateSponsorshipApplicationError):
            apply_for_sponsorship(sponsor, opportunity.id)

    def test_duplicate_even_after_withdrawal(self, transact, sponsor, opportunity, pending, apply_for_sponsorship):
        transact(lambda s: s.sponsorship.update_application(sponsor, pending.id, {"status": "withdrawn"}))
        with pytest.raises(DuplicateSponsorshipApplicationError):
            apply_for_sponsorship(sponsor, opportunity.id)

    def test_required_fields(self, sponsor, opportunity, apply_for_sponsorship):
        with pytest.raises(ValidationError) as exc_info:
            apply_for_sponsorship(sponsor, opportunity.id, contact_person=" ")
        assert exc_info.value.fields == ["contact_person"]

    def test_other_type_requires_description(self, sponsor, opportunity, apply_for_sponsorship):
        with pytest.raises(ValidationError):
            apply_for_sponsorship(sponsor, opportunity.id, sponsorship_type="other")
        application = apply_for_sponsorship(
            sponsor, opportunity.id, sponsorship_type="OTHER", other_type="Venue hosting"
        )
        assert application.other_type == "Venue hosting"

    def test_currency_mismatch(self, sponsor, opportunity, apply_for_sponsorship):
        with pytest.raises(ValidationError) as exc_info:
            apply_for_sponsorship(sponsor, opportunity.id, currency="EUR")
        assert exc_info.value.fields == ["currency"]

    def test_only_sponsors(self, entrepreneur, opportunity, apply_for_sponsorship):
        with pytest.raises(ForbiddenError):
            apply_for_sponsorship(entrepreneur, opportunity.id)


class TestAdminDecision:

    def test_default_approval_template(self, transact, admin, sponsor, opportunity, pending, notifications_for, mailer):
        decided = transact(lambda s: s.sponsorship.update_application(admin, pending.id, {"status": "APPROVED"}))

        assert decided.status is SponsorshipStatus.APPROVED
        (notification,) = _of_type(notifications_for(sponsor.user_id), NotificationType.SPONSORSHIP_STATUS)
        assert notification.message.startswith('Your sponsorship application for "Demo Day Gold Sponsor"')
        (email,) = mailer.sent
        assert email["subject"] == "Sponsorship Application Approved - Demo Day Gold Sponsor"
        assert "Dear Globex Corp" in email["body"]
        assert f"/sponsor/applications/{pending.id}" in email["body"]

    def test_chosen_rejection_template(self, transact, admin, pending, mailer):
        transact(lambda s: s.sponsorship.update_application(
            admin, pending.id, {"status": "rejected", "template_id": "rejection-direct"}
        ))
        assert mailer.sent[0]["subject"] == "Sponsorship Application Status - Demo Day Gold Sponsor"

    def test_template_for_wrong_decision(self, transact, admin, pending):
        with pytest.raises(ValidationError):
            transact(lambda s: s.sponsorship.update_application(
                admin, pending.id, {"status": "approved", "template_id": "rejection-gentle"}
            ))
        current = transact(lambda s: s.sponsorship.get_application(admin, pending.id))
        assert current.status is SponsorshipStatus.PENDING

    def test_unknown_template(self):
        with pytest.raises(NotFoundError):
            template_for(SponsorshipStatus.APPROVED, "approval-lukewarm")

    def test_decision_is_terminal(self, transact, admin, pending):
        transact(lambda s: s.sponsorship.update_application(admin, pending.id, {"status": "approved"}))
        for status in ("approved", "rejected"):
            with pytest.raises(InvalidTransitionError):
                transact(lambda s: s.sponsorship.update_application(admin, pending.id, {"status": status}))

    def test_admin_cannot_change_amount(self, transact, admin, pending):
        with pytest.raises(ValidationError) as exc_info:
            transact(lambda s: s.sponsorship.update_application(
                admin, pending.id, {"amount": Decimal("6000"), "currency": "EUR"}
            ))
        assert exc_info.value.fields == ["amount", "currency"]

    def test_admin_cannot_withdraw(self, transact, admin, pending):
        with pytest.raises(ForbiddenError):
            transact(lambda s: s.sponsorship.update_application(admin, pending.id, {"status": "withdrawn"}))

    def test_unknown_patch_field(self, transact, admin, pending):
        with pytest.raises(ValidationError):
            transact(lambda s: s.sponsorship.update_application(admin, pending.id, {"sponsor_id": str(uuid4())}))


class TestSponsorActions:

    def test_withdraw_notifies_admins(self, transact, admin, sponsor, pending, notifications_for):
        withdrawn = transact(lambda s: s.sponsorship.update_application(
            sponsor, pending.id, {"status": "withdrawn"}
        ))
        assert withdrawn.status is SponsorshipStatus.WITHDRAWN
        assert len(_of_type(notifications_for(admin.user_id), NotificationType.SPONSORSHIP_STATUS)) == 1

    def test_withdraw_twice_is_invalid(self, transact, admin, sponsor, pending):
        transact(lambda s: s.sponsorship.update_application(sponsor, pending.id, {"status": "withdrawn"}))
        with pytest.raises(InvalidTransitionError):
            transact(lambda s: s.sponsorship.update_application(sponsor, pending.id, {"status": "withdrawn"}))
        with pytest.raises(InvalidTransitionError):
            transact(lambda s: s.sponsorship.update_application(admin, pending.id, {"status": "approved"}))

    def test_sponsor_cannot_approve(self, transact, sponsor, pending):
        with pytest.raises(ForbiddenError):
            transact(lambda s: s.sponsorship.update_application(sponsor, pending.id, {"status": "approved"}))

    def test_other_sponsor_forbidden(self, transact, other_sponsor, pending):
        with pytest.raises(ForbiddenError):
            transact(lambda s: s.sponsorship.update_application(
                other_sponsor, pending.id, {"status": "withdrawn"}
            ))
        with pytest.raises(NotFoundError):
            transact(lambda s: s.sponsorship.get_application(other_sponsor, pending.id))

    @pytest.mark.parametrize("patch", [{"amount": Decimal("3000")}, {"currency": "EUR"}, {"template_id": "approval-enthusiastic"}])
    def test_sponsor_cannot_change_terms(self, transact, sponsor, pending, patch):
        with pytest.raises(ForbiddenError):
            transact(lambda s: s.sponsorship.update_application(sponsor, pending.id, patch))

    def test_edit_message_while_pending(self, transact, admin, sponsor, pending):
        edited = transact(lambda s: s.sponsorship.update_application(
            sponsor, pending.id, {"message": "Now with a keynote request"}
        ))
        assert edited.message == "Now with a keynote request"

        transact(lambda s: s.sponsorship.update_application(admin, pending.id, {"status": "rejected"}))
        with pytest.raises(InvalidStateError):
            transact(lambda s: s.sponsorship.update_application(sponsor, pending.id, {"message": "please?"}))

    def test_delete_own_pending(self, transact, sponsor, opportunity, pending):
        transact(lambda s: s.sponsorship.delete_application(sponsor, pending.id))
        assert transact(lambda s: s.sponsorship.check_application(sponsor, opportunity.id)) is None

    def test_delete_decided_refused_for_sponsor(self, transact, admin, sponsor, pending):
        transact(lambda s: s.sponsorship.update_application(admin, pending.id, {"status": "approved"}))
        with pytest.raises(InvalidStateError):
            transact(lambda s: s.sponsorship.delete_application(sponsor, pending.id))
        transact(lambda s: s.sponsorship.delete_application(admin, pending.id))

    def test_listings(self, transact, admin, sponsor, other_sponsor, opportunity, pending, apply_for_sponsorship):
        apply_for_sponsorship(other_sponsor, opportunity.id, sponsor_name="Initech")

        assert [a.id for a in transact(lambda s: s.sponsorship.list_for_sponsor(sponsor))] == [pending.id]
        assert len(transact(lambda s: s.sponsorship.list_for_opportunity(admin, opportunity.id))) == 2
        assert transact(lambda s: s.sponsorship.check_application(sponsor, opportunity.id)).id == pending.id
        with pytest.raises(ForbiddenError):
            transact(lambda s: s.sponsorship.list_for_opportunity(sponsor, opportunity.id))
