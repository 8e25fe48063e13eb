"""
Custom exception classes for better error handling.
Provides specific error types instead of generic exceptions.

Operational errors (``SchedulingError`` subclasses) carry a stable ``kind``
so the routing layer can map them to its own responses without inspecting
messages.
"""


class SchedulingError(Exception):
    """Base exception for errors surfaced to callers of the engine."""

    kind = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Serializable representation for the routing layer."""
        return {"kind": self.kind, "message": self.message}


class NotFoundError(SchedulingError):
    """Raised when a practitioner, patient or appointment does not exist."""

    kind = "not_found"


class ConflictError(SchedulingError):
    """Raised when a time range is not available for the practitioner."""

    kind = "conflict"


class InvalidTransitionError(SchedulingError):
    """Raised when an appointment cannot move to the requested state."""

    kind = "invalid_transition"


class ForbiddenError(SchedulingError):
    """Raised when the actor lacks rights over the appointment or action."""

    kind = "forbidden"


class ValidationError(SchedulingError):
    """Raised when input validation fails (e.g. start >= end)."""

    kind = "validation"


class InternalError(SchedulingError):
    """Generic internal failure. Never carries storage-specific detail."""

    kind = "internal"


class StoreUnavailableError(InternalError):
    """Raised when the store or a scheduling lock cannot be reached in time."""

    pass


class DatabaseError(Exception):
    """Base exception for store operations."""

    pass


class NotificationError(Exception):
    """Raised when a notification cannot be delivered."""

    pass
