# =============================================================================
# Session State - Persistent Record and Tagged Variant
# =============================================================================
# One SessionRecord per customer number, stored in DynamoDB and overwritten
# whenever a new chat contact is created. The resolver works on SessionState,
# an explicit Absent / Active variant derived from the stored record.
# =============================================================================

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union


def epoch_now() -> int:
    """Current UTC time in epoch seconds."""
    return int(datetime.now(timezone.utc).timestamp())


@dataclass
class SessionRecord:
    """
    Pointer from a customer number to its most recent chat contact.

    Attributes:
        originating_number: Customer phone number (partition key)
        contact_id: Most recently created contact for this number
        connection_token: Participant connection credential for that contact
        expiry_date_time: Epoch seconds used as the DynamoDB TTL attribute
    """
    originating_number: str
    contact_id: str
    connection_token: str
    expiry_date_time: int

    def is_expired(self, now: Optional[int] = None) -> bool:
        """TTL deletion is lazy, so expired items can still be read."""
        return self.expiry_date_time <= (now if now is not None else epoch_now())

    def to_item(self, pk_name: str = "originatingNumber") -> Dict[str, Any]:
        return {
            pk_name: self.originating_number,
            "contactId": self.contact_id,
            "connectionToken": self.connection_token,
            "expiryDateTime": self.expiry_date_time,
        }

    @classmethod
    def from_item(cls, item: Dict[str, Any], pk_name: str = "originatingNumber") -> "SessionRecord":
        # boto3 resources return numbers as Decimal
        return cls(
            originating_number=str(item.get(pk_name, "")),
            contact_id=str(item.get("contactId") or ""),
            connection_token=str(item.get("connectionToken") or ""),
            expiry_date_time=int(item.get("expiryDateTime") or 0),
        )


@dataclass(frozen=True)
class Absent:
    """No reusable connection for this number.

    ``previous_contact_id`` keeps the contact of an expired or tokenless
    record so a new contact can still be rehydrated from it.
    """
    previous_contact_id: Optional[str] = None

    @property
    def rehydration_source(self) -> Optional[str]:
        return self.previous_contact_id


@dataclass(frozen=True)
class Active:
    """A stored connection that may still reach a live contact."""
    contact_id: str
    connection_token: str

    @property
    def rehydration_source(self) -> Optional[str]:
        return self.contact_id


SessionState = Union[Absent, Active]


def state_from_record(record: Optional[SessionRecord], now: Optional[int] = None) -> SessionState:
    """Derive the session state from a stored record (or its absence)."""
    if record is None:
        return Absent()
    if not record.connection_token or record.is_expired(now):
        return Absent(previous_contact_id=record.contact_id or None)
    return Active(contact_id=record.contact_id, connection_token=record.connection_token)


class ResolveStatus:
    """Outcome labels returned to callers."""
    RESUMED = "Resumed"
    CREATED = "Created"


@dataclass
class ResolveResult:
    """Result of resolving a session for one inbound message."""
    status: str
    contact_id: str
    message_id: Optional[str] = None
    rehydrated_from: Optional[str] = None

    @property
    def resumed(self) -> bool:
        return self.status == ResolveStatus.RESUMED

    def to_dict(self) -> Dict[str, Any]:
        result = {"status": self.status, "contactId": self.contact_id}
        if self.message_id:
            result["messageId"] = self.message_id
        if self.rehydrated_from:
            result["rehydratedFrom"] = self.rehydrated_from
        return result
