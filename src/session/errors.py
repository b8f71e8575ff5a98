# =============================================================================
# Session Errors
# =============================================================================
# Exceptions raised by the session continuity layer.
# Only StaleConnectionError is recovered locally (reuse fallback); the rest
# propagate to the dispatcher and become error responses.
# =============================================================================

from typing import Optional


class SessionError(Exception):
    """Base class for session continuity failures."""


class ValidationError(SessionError):
    """Inbound message is missing a required field."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class StaleConnectionError(SessionError):
    """Stored connection token no longer reaches a live chat contact."""

    def __init__(self, message: str, error_code: str = ""):
        super().__init__(message)
        self.error_code = error_code


class SessionConflictError(SessionError):
    """Conditional session write lost to a concurrent invocation."""

    def __init__(self, originating_number: str, expected_contact_id: Optional[str]):
        super().__init__(
            f"Session for {originating_number} changed since it was read "
            f"(expected contactId={expected_contact_id})"
        )
        self.originating_number = originating_number
        self.expected_contact_id = expected_contact_id
