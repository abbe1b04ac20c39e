"""Attendance error taxonomy."""

from typing import Optional

from punchclock.domain.models import Intent


class AttendanceError(Exception):
    """Base for every failure raised by the attendance subsystem."""
    pass


class DeliveryFailure(AttendanceError):
    """The request never reached a receiver, or the context died mid-flight."""

    NO_RECEIVER = "no_receiver"
    CONTEXT_LOST = "context_lost"

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or _DELIVERY_MESSAGES.get(reason, reason))


_DELIVERY_MESSAGES = {
    DeliveryFailure.NO_RECEIVER: "Could not establish connection. Receiving end does not exist.",
    DeliveryFailure.CONTEXT_LOST: "The page was closed before a response was received.",
}


class NotFound(AttendanceError):
    """Every detection strategy failed."""

    def __init__(self, intent: Intent, message: Optional[str] = None):
        self.intent = intent
        super().__init__(message or f"Could not find {intent.value} button on this page")


class ActivationFailure(AttendanceError):
    """A control was located but activating it failed."""
    pass


class PersistenceFailure(AttendanceError):
    """Storage rejected a read or write."""
    pass
