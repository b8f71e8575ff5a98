# =============================================================================
# Session Continuity Resolver
# =============================================================================
# For each inbound message from a customer number:
#   1. Reuse the stored participant connection if it still works.
#   2. Otherwise start a new chat contact, rehydrated from the previous one.
#   3. Stream the contact, connect a participant, deliver the message.
#   4. Persist the new session pointer (conditional on what was read).
# =============================================================================

import logging
from typing import Dict, Optional, Tuple

from botocore.exceptions import ClientError

from src.session.contact_center import ContactCenter, ChatContact, error_code
from src.session.errors import SessionConflictError, StaleConnectionError, ValidationError
from src.session.state import (
    Active,
    ResolveResult,
    ResolveStatus,
    SessionState,
    state_from_record,
)
from src.session.store import SessionStore

logger = logging.getLogger(__name__)

# FirstMessage contact attribute values read by the contact flow
FIRST_MESSAGE_FROM_CUSTOMER = "0"
FIRST_MESSAGE_FROM_AGENT = "1"

# StartChatContact errors meaning the rehydration source is unusable
REHYDRATION_REJECTED_ERRORS = {
    "InvalidRequestException",
    "InvalidParameterException",
    "ResourceNotFoundException",
}


def contact_attributes(
    originating_number: str,
    is_first_message: bool,
    first_message_flag: Optional[str] = None,
) -> Dict[str, str]:
    """
    Base attributes attached to every new chat contact.

    A caller-supplied ``first_message_flag`` (Salesforce's raw firstMessage)
    is passed through unchanged so contact flows can branch on any value.
    """
    if not first_message_flag:
        first_message_flag = FIRST_MESSAGE_FROM_CUSTOMER if is_first_message else FIRST_MESSAGE_FROM_AGENT
    return {
        "CustomerNumber": originating_number,
        "FirstMessage": first_message_flag,
    }


class SessionResolver:
    """Decides between reusing a chat connection and creating a new contact."""

    def __init__(self, store: SessionStore, contact_center: ContactCenter):
        self.store = store
        self.contact_center = contact_center

    def resolve_session(
        self,
        originating_number: str,
        message_content: str,
        is_first_message: bool,
        first_message_flag: Optional[str] = None,
    ) -> ResolveResult:
        """
        Deliver ``message_content`` into the customer's chat, creating a new
        contact when the stored connection is missing or stale.

        Args:
            originating_number: Customer phone number
            message_content: Text to deliver (may be empty for agent-initiated openers)
            is_first_message: True for a customer-originated message, which is
                delivered into a newly created contact; False when the contact is
                opened for an agent-initiated flow
            first_message_flag: Raw FirstMessage attribute value, when the caller has one

        Returns:
            ResolveResult with status Resumed or Created

        Raises:
            ValidationError: missing number, or customer message without content
            ClientError: contact creation, streaming or connection failure
        """
        if not originating_number:
            raise ValidationError("Missing originatingNumber", field="originatingNumber")
        if is_first_message and not message_content:
            raise ValidationError("Missing messageContent", field="messageContent")

        record = self.store.get(originating_number)
        state = state_from_record(record)
        expected_contact_id = record.contact_id if record else None

        resumed = self._try_reuse(state, message_content)
        if resumed is not None:
            return resumed

        return self._create_session(
            originating_number,
            message_content,
            is_first_message,
            rehydrate_from=state.rehydration_source,
            expected_contact_id=expected_contact_id,
            first_message_flag=first_message_flag,
        )

    # =========================================================================
    # REUSE
    # =========================================================================

    def _try_reuse(self, state: SessionState, message_content: str) -> Optional[ResolveResult]:
        """Send through the stored connection; None means fall back to creation."""
        if not isinstance(state, Active):
            return None
        if not message_content:
            # Nothing to probe the connection with
            return None

        logger.info(f"Found existing session {state.contact_id}, attempting reuse")
        try:
            message_id = self.contact_center.send_message(state.connection_token, message_content)
        except StaleConnectionError as e:
            logger.warning(
                f"Failed to reuse session {state.contact_id} ({e.error_code}), creating new contact"
            )
            return None

        logger.info(f"Message sent to existing session {state.contact_id}")
        return ResolveResult(
            status=ResolveStatus.RESUMED,
            contact_id=state.contact_id,
            message_id=message_id,
        )

    # =========================================================================
    # CREATION
    # =========================================================================

    def _create_session(
        self,
        originating_number: str,
        message_content: str,
        is_first_message: bool,
        rehydrate_from: Optional[str],
        expected_contact_id: Optional[str],
        first_message_flag: Optional[str] = None,
    ) -> ResolveResult:
        logger.info(f"Creating new chat session for {originating_number} (previous contactId={rehydrate_from})")

        attributes = contact_attributes(originating_number, is_first_message, first_message_flag)
        contact, rehydrated_from = self._start_contact(attributes, originating_number, rehydrate_from)

        self.contact_center.enable_streaming(contact.contact_id)
        connection_token = self.contact_center.create_participant_connection(contact.participant_token)

        message_id = None
        if is_first_message:
            message_id = self.contact_center.send_message(connection_token, message_content)
            logger.info(f"First message delivered to {contact.contact_id}")

        new_record = self.store.new_record(originating_number, contact.contact_id, connection_token)
        try:
            self.store.put(new_record, expected_contact_id=expected_contact_id)
        except SessionConflictError:
            return self._yield_to_winner(
                contact, originating_number, message_content, is_first_message, expected_contact_id,
            )

        return ResolveResult(
            status=ResolveStatus.CREATED,
            contact_id=contact.contact_id,
            message_id=message_id,
            rehydrated_from=rehydrated_from,
        )

    def _start_contact(
        self,
        attributes: Dict[str, str],
        display_name: str,
        rehydrate_from: Optional[str],
    ) -> Tuple[ChatContact, Optional[str]]:
        """Start the chat contact; retry once without rehydration if the source is rejected."""
        try:
            return self.contact_center.create_chat_contact(attributes, display_name, rehydrate_from), rehydrate_from
        except ClientError as e:
            if not rehydrate_from or error_code(e) not in REHYDRATION_REJECTED_ERRORS:
                raise
            logger.warning(
                f"Rehydration from {rehydrate_from} rejected ({error_code(e)}), starting without history"
            )
        return self.contact_center.create_chat_contact(attributes, display_name), None

    def _yield_to_winner(
        self,
        contact: ChatContact,
        originating_number: str,
        message_content: str,
        is_first_message: bool,
        expected_contact_id: Optional[str],
    ) -> ResolveResult:
        """A concurrent invocation installed its contact first; close ours and use theirs."""
        winner = state_from_record(self.store.get(originating_number))
        if not isinstance(winner, Active):
            # No live contact to yield to; ours keeps the delivered message
            raise SessionConflictError(originating_number, expected_contact_id)

        logger.warning(f"Lost session race for {originating_number}, stopping contact {contact.contact_id}")
        self.contact_center.stop_contact(contact.contact_id)

        message_id = None
        if is_first_message:
            message_id = self.contact_center.send_message(winner.connection_token, message_content)
        return ResolveResult(
            status=ResolveStatus.RESUMED,
            contact_id=winner.contact_id,
            message_id=message_id,
        )
