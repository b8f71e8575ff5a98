# =============================================================================
# Session Package - Chat Session Continuity
# =============================================================================
# Maps a customer phone number to a live Amazon Connect chat connection,
# recreating (and rehydrating) the contact when the connection has gone stale.
# =============================================================================

from src.session.errors import (
    SessionError,
    ValidationError,
    StaleConnectionError,
    SessionConflictError,
)
from src.session.state import (
    SessionRecord,
    SessionState,
    Absent,
    Active,
    ResolveResult,
    ResolveStatus,
    state_from_record,
)
from src.session.store import SessionStore
from src.session.contact_center import ContactCenter, ChatContact
from src.session.resolver import SessionResolver

__all__ = [
    "SessionError",
    "ValidationError",
    "StaleConnectionError",
    "SessionConflictError",
    "SessionRecord",
    "SessionState",
    "Absent",
    "Active",
    "ResolveResult",
    "ResolveStatus",
    "state_from_record",
    "SessionStore",
    "ContactCenter",
    "ChatContact",
    "SessionResolver",
]
