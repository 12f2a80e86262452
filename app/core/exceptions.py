"""
Domain errors for billing, subscriptions and calendar expansion.

Routes translate these into HTTPException; batch jobs catch them per unit
(one user, one event) so a single bad record never stops the run.
"""
from typing import Optional


class HouseholdError(Exception):
    """Base class for all application errors."""


class DataAccessError(HouseholdError):
    """A query, insert, delete or commit against the database failed."""

    def __init__(self, entity: str, operation: str, message: str):
        self.entity = entity
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} on {entity} failed: {message}")


class ValidationError(HouseholdError, ValueError):
    pass


class InvalidBillingDayError(ValidationError):
    pass


class RecurrenceRuleError(ValidationError):
    pass


class SubscriptionNotFoundError(HouseholdError):
    pass


class InvalidSubscriptionStateError(HouseholdError):
    pass


class BillingRunError(HouseholdError):
    """The nightly run could not start its work at all (e.g. candidate users unavailable)."""

    def __init__(self, phase: str, message: str, user_ids: Optional[list] = None):
        self.phase = phase
        self.message = message
        self.user_ids = user_ids or []
        super().__init__(f"Billing run failed during {phase}: {message}")
