"""
End-to-end platform properties across modules.

Each test drives the services the way a request would: one unit of work
per operation, notifications delivered after commit.
"""

from datetime import date
from decimal import Decimal

import pytest

from startupcall_kernel.domain.notification import NotificationType
from startupcall_kernel.exceptions import (
    AlreadyCompletedError,
    AmountOutOfRangeError,
    BudgetExceededError,
    DeadlinePassedError,
    InvalidTransitionError,
)
from startupcall_modules.budget.models import ExpenseDraft
from startupcall_modules.calls.models import CallStatus
from startupcall_modules.reviews.models import ReviewSubmission
from startupcall_modules.sponsorship.models import SponsorshipStatus
from tests.conftest import category_id


class TestPublishedDate:

    def test_every_published_call_has_published_date(self, transact, admin, create_call):
        create_call(title="Born published")
        drafted = create_call(status=CallStatus.DRAFT, title="Published later")
        transact(lambda s: s.calls.change_status(admin, drafted.id, "published"))
        closed = create_call(title="Closed then reopened")
        transact(lambda s: s.calls.change_status(admin, closed.id, "closed"))
        transact(lambda s: s.calls.change_status(admin, closed.id, "published"))

        calls = transact(lambda s: s.calls.list_calls(admin, status="published"))
        assert len(calls) == 3
        assert all(c.published_date is not None for c in calls)


class TestScenarios:

    def test_deadline_passed(self, entrepreneur, create_call, submit_application, deterministic_clock):
        call = create_call(deadline_days=1)
        deterministic_clock.advance_days(2)
        assert call.status is CallStatus.PUBLISHED
        with pytest.raises(DeadlinePassedError):
            submit_application(entrepreneur, call.id)

    def test_amount_out_of_range(self, sponsor, create_opportunity, apply_for_sponsorship):
        opportunity = create_opportunity(min_amount="1000", max_amount="5000")
        with pytest.raises(AmountOutOfRangeError) as exc_info:
            apply_for_sponsorship(sponsor, opportunity.id, amount=Decimal("500"))
        assert str(exc_info.value) == "Amount must be between 1000 and 5000"

    def test_withdraw_then_nothing(self, transact, admin, sponsor, create_opportunity, apply_for_sponsorship):
        opportunity = create_opportunity(min_amount="1000", max_amount="5000")
        application = apply_for_sponsorship(sponsor, opportunity.id, amount=Decimal("3000"))

        withdrawn = transact(lambda s: s.sponsorship.update_application(
            sponsor, application.id, {"status": "withdrawn"}
        ))
        assert withdrawn.status is SponsorshipStatus.WITHDRAWN

        with pytest.raises(InvalidTransitionError):
            transact(lambda s: s.sponsorship.update_application(
                sponsor, application.id, {"status": "withdrawn"}
            ))
        with pytest.raises(InvalidTransitionError):
            transact(lambda s: s.sponsorship.update_application(
                admin, application.id, {"status": "approved"}
            ))

    def test_budget_exceeded_reports_remaining(self, transact, admin, entrepreneur, published_call, create_budget):
        budget = create_budget(published_call.id, categories={"Events": "1000"})

        def expense(actor, amount):
            draft = ExpenseDraft(
                category_id=category_id(budget, "Events"), title="Venue",
                amount=Decimal(amount), expense_date=date(2025, 1, 20),
            )
            return transact(lambda s: s.budget.create_expense(actor, budget.id, draft))

        expense(admin, "800")
        with pytest.raises(BudgetExceededError) as exc_info:
            expense(entrepreneur, "300")
        assert exc_info.value.remaining == Decimal("200")

    def test_start_completed_review(self, transact, admin, entrepreneur, reviewer, published_call, submit_application):
        application = submit_application(entrepreneur, published_call.id)
        assignment = transact(lambda s: s.reviews.assign_reviewer(admin, application.id, reviewer.user_id))
        transact(lambda s: s.reviews.start(reviewer, assignment.id))
        transact(lambda s: s.reviews.complete(
            reviewer, assignment.id, ReviewSubmission(score=88, feedback="Strong")
        ))
        with pytest.raises(AlreadyCompletedError):
            transact(lambda s: s.reviews.start(reviewer, assignment.id))


class TestProperties:

    def test_repeated_status_does_not_notify_again(self, transact, admin, entrepreneur, published_call, submit_application, notifications_for):
        application = submit_application(entrepreneur, published_call.id)
        for _ in range(3):
            transact(lambda s: s.applications.update_application_status(admin, application.id, "under_review"))

        status_updates = [
            n for n in notifications_for(entrepreneur.user_id)
            if n.type is NotificationType.APPLICATION_STATUS
        ]
        assert len(status_updates) == 1

    @pytest.mark.parametrize("allocated,amount", [("1000", "1000"), ("1000", "1"), ("750", "250")])
    def test_expense_reduces_remaining_exactly(self, transact, entrepreneur, published_call, create_budget, allocated, amount):
        budget = create_budget(published_call.id, categories={"Ops": allocated})
        draft = ExpenseDraft(
            category_id=category_id(budget, "Ops"), title="Ops spend",
            amount=Decimal(amount), expense_date=date(2025, 1, 2),
        )
        transact(lambda s: s.budget.create_expense(entrepreneur, budget.id, draft))
        remaining = transact(lambda s: s.budget.remaining_for_category(category_id(budget, "Ops")))
        assert remaining == Decimal(allocated) - Decimal(amount)

    def test_notification_failure_never_fails_transition(self, transact, admin, entrepreneur, published_call, submit_application, mailer):
        application = submit_application(entrepreneur, published_call.id)
        mailer.fail = True
        updated = transact(lambda s: s.applications.update_application_status(admin, application.id, "rejected"))
        assert updated.status.value == "rejected"
