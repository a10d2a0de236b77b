"""
Domain Exceptions
Errors raised by the request workflow before or during persistence
"""
from typing import Optional


class TravelDeskError(Exception):
    """Base class for all travel desk errors"""


class ValidationError(TravelDeskError):
    """A required field is missing or a value is out of range"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class InvalidTransition(TravelDeskError):
    """The requested status change is not in the transition table"""

    def __init__(self, current_status, target=None, reason: Optional[str] = None):
        self.current_status = current_status
        self.target = target
        detail = f"Cannot move request from '{_value(current_status)}'"
        if target is not None:
            detail += f" to '{_value(target)}'"
        if reason:
            detail += f": {reason}"
        super().__init__(detail)
        self.message = detail


class PermissionDenied(InvalidTransition):
    """The acting user is not the one allowed to do this"""

    def __init__(self, message: str, current_status=None, target=None):
        TravelDeskError.__init__(self, message)
        self.current_status = current_status
        self.target = target
        self.message = message


class RequestNotFound(TravelDeskError):
    def __init__(self, request_id: str):
        super().__init__(f"Travel request {request_id} not found")
        self.request_id = request_id
        self.message = str(self)


class ConcurrentModification(TravelDeskError):
    """The stored record changed since it was read"""

    def __init__(self, request_id: str, expected_version: int):
        super().__init__(
            f"Travel request {request_id} was modified by someone else "
            f"(expected version {expected_version}). Reload and try again."
        )
        self.request_id = request_id
        self.expected_version = expected_version
        self.message = str(self)


class PersistenceError(TravelDeskError):
    """
    The store could not confirm a write.

    Carries the record that was attempted so the caller can retry it or
    reconcile against the store-confirmed state.
    """

    def __init__(self, request_id: Optional[str], attempted=None, cause: Optional[Exception] = None):
        super().__init__(f"Could not save travel request {request_id or '(new)'}: {cause}")
        self.request_id = request_id
        self.attempted = attempted
        self.cause = cause
        self.message = str(self)


def _value(status) -> str:
    return getattr(status, "value", status)
