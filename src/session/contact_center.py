# =============================================================================
# Contact Center - Amazon Connect Chat Operations
# =============================================================================
# Thin wrapper over the connect and connectparticipant clients.
# Translates stale-token failures on SendMessage into StaleConnectionError;
# every other ClientError propagates unchanged.
# =============================================================================

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from src.session.errors import StaleConnectionError

logger = logging.getLogger(__name__)

# SendMessage errors that mean the connection (or its contact) is gone
STALE_CONNECTION_ERRORS = {
    "AccessDeniedException",
    "ValidationException",
    "ResourceNotFoundException",
}

REHYDRATION_TYPE = "FROM_SEGMENT"


def error_code(e: ClientError) -> str:
    """Extract the AWS error code from a ClientError."""
    return e.response.get("Error", {}).get("Code", "")


@dataclass
class ChatContact:
    """Identifiers returned by StartChatContact."""
    contact_id: str
    participant_token: str


class ContactCenter:
    """
    Amazon Connect operations used by the session resolver and relays.

    Args:
        connect: boto3 ``connect`` client
        participant: boto3 ``connectparticipant`` client
        instance_id: Connect instance ID
        contact_flow_id: Inbound chat contact flow ID
        streaming_arn: SNS topic ARN for chat streaming
    """

    def __init__(
        self,
        connect: Any,
        participant: Any,
        instance_id: str,
        contact_flow_id: str,
        streaming_arn: str = "",
    ):
        self.connect = connect
        self.participant = participant
        self.instance_id = instance_id
        self.contact_flow_id = contact_flow_id
        self.streaming_arn = streaming_arn

    # =========================================================================
    # CHAT CONTACTS
    # =========================================================================

    def create_chat_contact(
        self,
        attributes: Dict[str, str],
        display_name: str,
        rehydrate_from: Optional[str] = None,
    ) -> ChatContact:
        """Start a chat contact, optionally rehydrated from a prior contact."""
        params = {
            "InstanceId": self.instance_id,
            "ContactFlowId": self.contact_flow_id,
            "Attributes": attributes,
            "ParticipantDetails": {"DisplayName": display_name},
        }
        if rehydrate_from:
            logger.info(f"Requesting chat rehydration from SourceContactId={rehydrate_from}")
            params["PersistentChat"] = {
                "RehydrationType": REHYDRATION_TYPE,
                "SourceContactId": rehydrate_from,
            }

        response = self.connect.start_chat_contact(**params)
        contact = ChatContact(
            contact_id=response["ContactId"],
            participant_token=response["ParticipantToken"],
        )
        logger.info(f"Started chat contact {contact.contact_id}")
        return contact

    def enable_streaming(self, contact_id: str) -> Dict[str, Any]:
        """Stream the contact's chat messages to the configured SNS topic."""
        response = self.connect.start_contact_streaming(
            InstanceId=self.instance_id,
            ContactId=contact_id,
            ChatStreamingConfiguration={"StreamingEndpointArn": self.streaming_arn},
            ClientToken=str(uuid.uuid4()),
        )
        logger.info(f"Streaming enabled for {contact_id}: {response.get('StreamingId', '')}")
        return response

    def stop_contact(self, contact_id: str) -> None:
        self.connect.stop_contact(InstanceId=self.instance_id, ContactId=contact_id)
        logger.info(f"Stopped contact {contact_id}")

    def get_contact_attributes(self, contact_id: str) -> Dict[str, str]:
        response = self.connect.get_contact_attributes(
            InstanceId=self.instance_id,
            InitialContactId=contact_id,
        )
        return response.get("Attributes", {})

    def start_task_contact(
        self,
        name: str,
        description: str,
        attributes: Dict[str, str],
        contact_flow_id: str,
    ) -> str:
        """Start a task contact and return its ContactId."""
        response = self.connect.start_task_contact(
            InstanceId=self.instance_id,
            ContactFlowId=contact_flow_id,
            Name=name,
            Description=description,
            Attributes=attributes,
            ClientToken=str(uuid.uuid4()),
        )
        logger.info(f"Task created successfully. ContactId: {response['ContactId']}")
        return response["ContactId"]

    # =========================================================================
    # PARTICIPANT CONNECTIONS
    # =========================================================================

    def create_participant_connection(self, participant_token: str) -> str:
        """Open a participant connection and return its connection token."""
        response = self.participant.create_participant_connection(
            ParticipantToken=participant_token,
            Type=["CONNECTION_CREDENTIALS"],
            ConnectParticipant=True,
        )
        return response["ConnectionCredentials"]["ConnectionToken"]

    def send_message(self, connection_token: str, text: str) -> str:
        """
        Send a plain-text message through a participant connection.

        Returns:
            The message ID

        Raises:
            StaleConnectionError: the token no longer reaches a live contact
        """
        try:
            response = self.participant.send_message(
                ContentType="text/plain",
                Content=text,
                ConnectionToken=connection_token,
            )
        except ClientError as e:
            code = error_code(e)
            if code in STALE_CONNECTION_ERRORS:
                raise StaleConnectionError(str(e), error_code=code) from e
            raise
        return response.get("Id", "")
