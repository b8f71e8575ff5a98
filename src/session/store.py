# =============================================================================
# Session Store - DynamoDB Session Pointers
# =============================================================================
# Plain key-value access to the session table, keyed by customer number.
# Writes are conditional on the value last read so two concurrent messages
# from the same number cannot both install a new contact.
# =============================================================================

import logging
from typing import Any, Optional

from botocore.exceptions import ClientError

from src.session.errors import SessionConflictError
from src.session.state import SessionRecord, epoch_now

logger = logging.getLogger(__name__)

DEFAULT_TTL_HOURS = 24


class SessionStore:
    """DynamoDB-backed store of SessionRecord items."""

    def __init__(self, table: Any, pk_name: str = "originatingNumber", ttl_hours: int = DEFAULT_TTL_HOURS):
        self.table = table
        self.pk_name = pk_name
        self.ttl_hours = ttl_hours

    def get(self, originating_number: str) -> Optional[SessionRecord]:
        """Read the session record for a number, or None."""
        response = self.table.get_item(
            Key={self.pk_name: originating_number},
            ConsistentRead=True,
        )
        item = response.get("Item")
        if not item:
            return None
        return SessionRecord.from_item(item, self.pk_name)

    def new_record(self, originating_number: str, contact_id: str, connection_token: str) -> SessionRecord:
        """Build a record with a refreshed expiry."""
        return SessionRecord(
            originating_number=originating_number,
            contact_id=contact_id,
            connection_token=connection_token,
            expiry_date_time=epoch_now() + self.ttl_hours * 3600,
        )

    def put(self, record: SessionRecord, expected_contact_id: Optional[str] = None) -> None:
        """
        Overwrite the record for ``record.originating_number``.

        The write only succeeds if the stored item still matches what the
        caller read: no live item when ``expected_contact_id`` is None,
        otherwise no item or one whose contactId equals ``expected_contact_id``.

        Raises:
            SessionConflictError: another invocation wrote first
        """
        kwargs = {
            "Item": record.to_item(self.pk_name),
            "ExpressionAttributeNames": {"#pk": self.pk_name},
        }
        if expected_contact_id is None:
            # Expired items still exist until the TTL sweeper removes them
            kwargs["ConditionExpression"] = "attribute_not_exists(#pk) OR expiryDateTime <= :now"
            kwargs["ExpressionAttributeValues"] = {":now": epoch_now()}
        else:
            # The read record may have been swept by TTL since
            kwargs["ConditionExpression"] = "attribute_not_exists(#pk) OR contactId = :expected"
            kwargs["ExpressionAttributeValues"] = {":expected": expected_contact_id}

        try:
            self.table.put_item(**kwargs)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                logger.warning(
                    f"Session write conflict for {record.originating_number} "
                    f"(expected contactId={expected_contact_id})"
                )
                raise SessionConflictError(record.originating_number, expected_contact_id) from e
            raise
        logger.info(f"Saved session {record.originating_number} -> contactId={record.contact_id}")
