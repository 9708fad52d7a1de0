"""
Startup call platform exceptions.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

StartupCallError (base)
    |
    +-- NotFoundError
    |
    +-- AuthorizationError
    |   +-- AuthenticationError
    |   +-- ForbiddenError
    |
    +-- ValidationError
    |
    +-- StateError
    |   +-- InvalidStateError
    |   |   +-- CallHasApplicationsError
    |   |   +-- ExpenseImmutableError
    |   +-- InvalidTransitionError
    |   +-- AlreadyCompletedError
    |   +-- NotOpenError
    |   +-- DeadlinePassedError
    |
    +-- DuplicateError
    |   +-- DuplicateApplicationError
    |   +-- DuplicateSponsorshipApplicationError
    |   +-- DuplicateAssignmentError
    |
    +-- LimitError
        +-- BudgetExceededError
        +-- AmountOutOfRangeError

===============================================================================
ERROR CODES
===============================================================================

Every class carries a machine-readable ``code`` class attribute.  Callers
branch on the class or the code, never on the message text.  Structured
attributes (entity ids, bounds, remaining amounts) are set as instance
attributes so the structured log formatter and the REST error body can
both expose them without parsing.

NOT_FOUND is also used when an entity exists but is not visible to the
caller, so that existence is not leaked across owners.

===============================================================================
"""

from decimal import Decimal
from typing import Any


class StartupCallError(Exception):
    """
    Base exception for all startup call platform errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "STARTUP_CALL_ERROR"

    def details(self) -> dict[str, Any]:
        """Structured attributes of this error, for error payloads."""
        return {
            key: value
            for key, value in vars(self).items()
            if not key.startswith("_")
        }


# Lookup errors


class NotFoundError(StartupCallError):
    """Entity is missing or not visible to the caller."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any, message: str | None = None):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(message or f"{entity_type} not found: {entity_id}")


# Authorization errors


class AuthorizationError(StartupCallError):
    """Base exception for actor authorization failures."""

    code: str = "AUTHORIZATION_ERROR"


class AuthenticationError(AuthorizationError):
    """No authenticated actor accompanies the request."""

    code: str = "UNAUTHENTICATED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ForbiddenError(AuthorizationError):
    """Actor role or ownership does not permit the action."""

    code: str = "FORBIDDEN"

    def __init__(self, action: str, role: str | None = None, message: str | None = None):
        self.action = action
        self.role = role
        super().__init__(message or f"Not allowed to {action}")


# Input errors


class ValidationError(StartupCallError):
    """Missing or malformed input fields."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, fields: tuple[str, ...] = ()):
        self.fields = list(fields)
        super().__init__(message)


# State errors


class StateError(StartupCallError):
    """Base exception for actions that do not fit the entity's current state."""

    code: str = "STATE_ERROR"


class InvalidStateError(StateError):
    """Action is not valid for the entity's current status."""

    code: str = "INVALID_STATE"

    def __init__(self, entity_type: str, entity_id: Any, current_status: str, message: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.current_status = current_status
        super().__init__(message)


class CallHasApplicationsError(InvalidStateError):
    """A startup call with applications cannot be deleted."""

    code: str = "CALL_HAS_APPLICATIONS"

    def __init__(self, call_id: Any, current_status: str, application_count: int):
        self.application_count = application_count
        super().__init__(
            "startup_call",
            call_id,
            current_status,
            "Cannot delete startup call with existing applications. Archive it instead.",
        )


class ExpenseImmutableError(InvalidStateError):
    """Adjudicated expenses cannot be edited or deleted."""

    code: str = "EXPENSE_IMMUTABLE"

    def __init__(self, expense_id: Any, current_status: str):
        super().__init__(
            "expense",
            expense_id,
            current_status,
            f"Expense is {current_status} and can no longer be modified",
        )


class InvalidTransitionError(StateError):
    """No workflow transition leads from the current status to the target."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, entity_type: str, entity_id: Any, from_status: str, to_status: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot change {entity_type} status from {from_status} to {to_status}"
        )


class AlreadyCompletedError(StateError):
    """Review assignment has already been completed."""

    code: str = "ALREADY_COMPLETED"

    def __init__(self, assignment_id: Any):
        self.assignment_id = str(assignment_id)
        super().__init__("Review has already been completed")


class NotOpenError(StateError):
    """Sponsorship opportunity is not accepting applications."""

    code: str = "NOT_OPEN"

    def __init__(self, opportunity_id: Any, current_status: str):
        self.opportunity_id = str(opportunity_id)
        self.current_status = current_status
        super().__init__("This opportunity is not open for applications")


class DeadlinePassedError(StateError):
    """Time-based eligibility window has closed."""

    code: str = "DEADLINE_PASSED"

    def __init__(self, entity_type: str, entity_id: Any, deadline: Any):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.deadline = deadline.isoformat() if hasattr(deadline, "isoformat") else str(deadline)
        super().__init__("The application deadline has passed")


# Uniqueness errors


class DuplicateError(StartupCallError):
    """Base exception for uniqueness violations."""

    code: str = "DUPLICATE"


class DuplicateApplicationError(DuplicateError):
    """Entrepreneur already has an active application for the call."""

    code: str = "DUPLICATE_APPLICATION"

    def __init__(self, call_id: Any, user_id: Any, existing_id: Any = None):
        self.call_id = str(call_id)
        self.user_id = str(user_id)
        self.existing_id = str(existing_id) if existing_id is not None else None
        super().__init__("You have already applied to this call")


class DuplicateSponsorshipApplicationError(DuplicateError):
    """Sponsor already applied to the opportunity."""

    code: str = "DUPLICATE_SPONSORSHIP_APPLICATION"

    def __init__(self, opportunity_id: Any, sponsor_id: Any):
        self.opportunity_id = str(opportunity_id)
        self.sponsor_id = str(sponsor_id)
        super().__init__("You have already applied to this opportunity")


class DuplicateAssignmentError(DuplicateError):
    """Reviewer is already assigned to the application."""

    code: str = "DUPLICATE_ASSIGNMENT"

    def __init__(self, application_id: Any, reviewer_id: Any):
        self.application_id = str(application_id)
        self.reviewer_id = str(reviewer_id)
        super().__init__("Reviewer is already assigned to this application")


# Numeric bound errors


class LimitError(StartupCallError):
    """Base exception for numeric business-rule bounds."""

    code: str = "LIMIT_ERROR"


class BudgetExceededError(LimitError):
    """Requested amount does not fit in what is left of the category."""

    code: str = "BUDGET_EXCEEDED"

    def __init__(
        self,
        category_id: Any,
        category_name: str,
        allocated: Decimal,
        committed: Decimal,
        requested: Decimal,
    ):
        self.category_id = str(category_id)
        self.category_name = category_name
        self.allocated = allocated
        self.committed = committed
        self.requested = requested
        self.remaining = allocated - committed
        super().__init__(
            f"Expense exceeds remaining budget for category {category_name}: "
            f"remaining {_plain(self.remaining)}, requested {_plain(requested)}"
        )


class AmountOutOfRangeError(LimitError):
    """Proposed sponsorship amount is outside the opportunity's bounds."""

    code: str = "AMOUNT_OUT_OF_RANGE"

    def __init__(self, amount: Decimal, min_amount: Decimal, max_amount: Decimal):
        self.amount = amount
        self.min_amount = min_amount
        self.max_amount = max_amount
        super().__init__(
            f"Amount must be between {_plain(min_amount)} and {_plain(max_amount)}"
        )


def _plain(amount: Decimal) -> str:
    """Render 1000.000000000 as 1000 and 12.50 as 12.5."""
    normalized = amount.normalize()
    if normalized == normalized.to_integral_value():
        return str(normalized.quantize(Decimal(1)))
    return format(normalized, "f")
