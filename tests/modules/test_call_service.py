"""
Startup call lifecycle.

Validates:
- Creation is admin only and starts as draft or published
- published_date is set on the first publish and survives close/reopen
- Archived calls are terminal
- Expired published calls are closed in bulk
- Calls with applications cannot be deleted
- Non-admins never see draft or archived calls
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from startupcall_kernel.exceptions import (
    CallHasApplicationsError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from startupcall_modules.calls.models import NOT_APPLIED, CallDraft, CallStatus


def _draft(clock, **overrides) -> CallDraft:
    values = dict(
        title="Autumn Cohort",
        description="Fintech accelerator",
        application_deadline=clock.now() + timedelta(days=14),
        industry="Fintech",
        location="Lisbon",
    )
    values.update(overrides)
    return CallDraft(**values)


class TestCreateCall:

    def test_draft_has_no_published_date(self, transact, admin, deterministic_clock):
        call = transact(lambda s: s.calls.create_call(admin, _draft(deterministic_clock)))
        assert call.status is CallStatus.DRAFT
        assert call.published_date is None
        assert call.created_by == admin.user_id

    def test_published_on_create(self, transact, admin, deterministic_clock):
        call = transact(lambda s: s.calls.create_call(
            admin, _draft(deterministic_clock, status=CallStatus.PUBLISHED)
        ))
        assert call.published_date == deterministic_clock.now()

    def test_admin_only(self, transact, entrepreneur, deterministic_clock):
        with pytest.raises(ForbiddenError):
            transact(lambda s: s.calls.create_call(entrepreneur, _draft(deterministic_clock)))

    def test_cannot_start_closed(self, transact, admin, deterministic_clock):
        with pytest.raises(ValidationError):
            transact(lambda s: s.calls.create_call(
                admin, _draft(deterministic_clock, status=CallStatus.CLOSED)
            ))

    def test_missing_fields(self, transact, admin, deterministic_clock):
        with pytest.raises(ValidationError) as exc_info:
            transact(lambda s: s.calls.create_call(
                admin, _draft(deterministic_clock, title=" ", location=None)
            ))
        assert exc_info.value.fields == ["title", "location"]

    def test_naive_deadline_rejected(self, transact, admin, deterministic_clock):
        with pytest.raises(ValidationError):
            transact(lambda s: s.calls.create_call(
                admin, _draft(deterministic_clock, application_deadline=datetime(2025, 3, 1))
            ))

    def test_negative_funding_rejected(self, transact, admin, deterministic_clock):
        with pytest.raises(ValidationError):
            transact(lambda s: s.calls.create_call(
                admin, _draft(deterministic_clock, funding_amount=Decimal("-1"))
            ))

    def test_funding_in_fractions_of_a_cent_rejected(self, transact, admin, deterministic_clock):
        with pytest.raises(ValidationError) as exc_info:
            transact(lambda s: s.calls.create_call(
                admin, _draft(deterministic_clock, funding_amount=Decimal("2500.005"))
            ))
        assert exc_info.value.fields == ["funding_amount"]


class TestCallStatus:

    def test_publish_sets_published_date(self, transact, admin, create_call, deterministic_clock):
        call = create_call(status=CallStatus.DRAFT)
        deterministic_clock.advance_days(1)
        published = transact(lambda s: s.calls.change_status(admin, call.id, "PUBLISHED"))
        assert published.status is CallStatus.PUBLISHED
        assert published.published_date == deterministic_clock.now()

    def test_reopen_keeps_first_published_date(self, transact, admin, published_call, deterministic_clock):
        first = published_call.published_date
        deterministic_clock.advance_days(2)
        transact(lambda s: s.calls.change_status(admin, published_call.id, CallStatus.CLOSED))
        reopened = transact(lambda s: s.calls.change_status(admin, published_call.id, "published"))
        assert reopened.published_date == first

    def test_same_status_is_noop(self, transact, admin, published_call, captured_logs):
        call = transact(lambda s: s.calls.change_status(admin, published_call.id, "published"))
        assert call.status is CallStatus.PUBLISHED
        assert not any(r["message"] == "workflow_transition" for r in captured_logs())

    def test_archived_is_terminal(self, transact, admin, published_call):
        transact(lambda s: s.calls.change_status(admin, published_call.id, "archived"))
        with pytest.raises(InvalidTransitionError):
            transact(lambda s: s.calls.change_status(admin, published_call.id, "published"))

    def test_closed_cannot_go_back_to_draft(self, transact, admin, published_call):
        with pytest.raises(InvalidTransitionError):
            transact(lambda s: s.calls.change_status(admin, published_call.id, "draft"))

    def test_unknown_status(self, transact, admin, published_call):
        with pytest.raises(ValidationError):
            transact(lambda s: s.calls.change_status(admin, published_call.id, "paused"))

    def test_non_admin_forbidden(self, transact, entrepreneur, published_call):
        with pytest.raises(ForbiddenError):
            transact(lambda s: s.calls.change_status(entrepreneur, published_call.id, "closed"))

    def test_close_expired_calls(self, transact, admin, create_call, deterministic_clock):
        soon = create_call(deadline_days=1, title="Soon")
        later = create_call(deadline_days=60, title="Later")
        draft = create_call(status=CallStatus.DRAFT, deadline_days=1, title="Draft")
        deterministic_clock.advance_days(2)

        closed = transact(lambda s: s.calls.close_expired_calls(admin))

        assert closed == [soon.id]
        assert transact(lambda s: s.calls.get_call(admin, later.id)).status is CallStatus.PUBLISHED
        assert transact(lambda s: s.calls.get_call(admin, draft.id)).status is CallStatus.DRAFT


class TestCallEditsAndDeletion:

    def test_update_fields(self, transact, admin, published_call):
        call = transact(lambda s: s.calls.update_call(
            admin, published_call.id, {"title": "Renamed", "funding_amount": Decimal("75000")}
        ))
        assert call.title == "Renamed"
        assert call.funding_amount == Decimal("75000")

    def test_status_not_editable_through_update(self, transact, admin, published_call):
        with pytest.raises(ValidationError) as exc_info:
            transact(lambda s: s.calls.update_call(admin, published_call.id, {"status": "closed"}))
        assert exc_info.value.fields == ["status"]

    def test_blank_title_rejected(self, transact, admin, published_call):
        with pytest.raises(ValidationError):
            transact(lambda s: s.calls.update_call(admin, published_call.id, {"title": "  "}))

    def test_delete_without_applications(self, transact, admin, published_call):
        transact(lambda s: s.calls.delete_call(admin, published_call.id))
        with pytest.raises(NotFoundError):
            transact(lambda s: s.calls.get_call(admin, published_call.id))

    def test_delete_with_withdrawn_application_refused(
        self, transact, admin, entrepreneur, published_call, submit_application
    ):
        application = submit_application(entrepreneur, published_call.id)
        transact(lambda s: s.applications.update_application_status(
            entrepreneur, application.id, "withdrawn"
        ))
        with pytest.raises(CallHasApplicationsError) as exc_info:
            transact(lambda s: s.calls.delete_call(admin, published_call.id))
        assert exc_info.value.application_count == 1


class TestCallVisibility:

    def test_draft_invisible_to_entrepreneurs(self, transact, entrepreneur, create_call):
        draft = create_call(status=CallStatus.DRAFT)
        with pytest.raises(NotFoundError):
            transact(lambda s: s.calls.get_call(entrepreneur, draft.id))

    def test_listing_filters_for_non_admins(self, transact, admin, sponsor, create_call):
        published = create_call(title="Open")
        create_call(status=CallStatus.DRAFT, title="Hidden")
        assert [c.id for c in transact(lambda s: s.calls.list_calls(sponsor))] == [published.id]
        assert len(transact(lambda s: s.calls.list_calls(admin))) == 2
        assert transact(lambda s: s.calls.list_calls(admin, status="draft"))[0].title == "Hidden"

    def test_application_status_for(
        self, transact, entrepreneur, published_call, submit_application
    ):
        assert transact(lambda s: s.calls.application_status_for(
            entrepreneur, published_call.id
        )) == NOT_APPLIED
        submit_application(entrepreneur, published_call.id)
        assert transact(lambda s: s.calls.application_status_for(
            entrepreneur, published_call.id
        )) == "submitted"
