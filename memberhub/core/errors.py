"""
Domain exceptions.

Pure domain modules raise these; the application maps them onto HTTP
responses in ``memberhub.main``.
"""
from typing import Any, Dict, Optional


class DomainError(ValueError):
    """Base class for rule violations detected by the domain layer."""

    status_code = 400

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": str(self)}


class RecurrenceError(DomainError):
    """Malformed recurrence rule or query range."""


class AttendeeRuleError(DomainError):
    """Forbidden primary / family-member transition."""


class ApprovalError(DomainError):
    """Illegal account-approval transition."""


class PaymentError(DomainError):
    """Illegal payment or refund operation."""


class CapacityError(DomainError):
    """
    Raised when an RSVP would exceed event capacity and the waitlist cannot
    take the attendee either.
    """

    status_code = 409

    CAPACITY_EXCEEDED = "capacity_exceeded"
    WAITLIST_DISABLED = "waitlist_disabled"
    WAITLIST_FULL = "waitlist_full"

    def __init__(
        self,
        message: str,
        event_id: Optional[str] = None,
        current_count: int = 0,
        capacity: int = 0,
        waitlist_enabled: bool = False,
        can_waitlist: bool = False,
        reason: str = CAPACITY_EXCEEDED,
    ):
        super().__init__(message)
        self.event_id = event_id
        self.current_count = current_count
        self.capacity = capacity
        self.waitlist_enabled = waitlist_enabled
        self.can_waitlist = can_waitlist
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": str(self),
            "event_id": self.event_id,
            "current_count": self.current_count,
            "capacity": self.capacity,
            "waitlist_enabled": self.waitlist_enabled,
            "can_waitlist": self.can_waitlist,
            "reason": self.reason,
        }
