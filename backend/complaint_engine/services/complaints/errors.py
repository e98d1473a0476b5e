"""Typed failures raised by the complaint lifecycle services."""
from typing import Optional


class ComplaintEngineError(Exception):
    """Base class for complaint lifecycle failures."""


class DecisionValidationError(ComplaintEngineError):
    """A resolution decision is malformed. Raised before any mutation."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field
        self.message = message


class IllegalStateError(ComplaintEngineError):
    """The complaint's current state does not allow the requested transition."""


class ComplaintNotFoundError(ComplaintEngineError):
    pass


class NotificationDeliveryError(ComplaintEngineError):
    """A notification channel rejected a delivery."""
