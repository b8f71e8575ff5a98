#!/usr/bin/env python3
"""
Test suite for the session continuity resolver.

Tests:
- New sessions (no stored record)
- Reuse of a live participant connection
- Fallback to a rehydrated contact when the stored token is stale
- Rehydration rejection, fatal upstream failures, validation
- Conditional-write conflicts between concurrent invocations

Run with: pytest tests/test_session_resolver.py -v
"""
import os
import sys
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

NUMBER = "+640000001"


def client_error(code: str, operation: str = "SendMessage") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} raised"}}, operation)


def session_item(contact_id="contact-old", token="ctoken-old", expires_in=3600):
    from src.session.state import epoch_now
    return {
        "originatingNumber": NUMBER,
        "contactId": contact_id,
        "connectionToken": token,
        "expiryDateTime": epoch_now() + expires_in,
    }


def make_resolver(item=None):
    """Resolver over a mocked table and mocked Connect clients."""
    from src.session.contact_center import ContactCenter
    from src.session.resolver import SessionResolver
    from src.session.store import SessionStore

    table = MagicMock()
    table.get_item.return_value = {"Item": item} if item else {}

    connect = MagicMock()
    connect.start_chat_contact.return_value = {
        "ContactId": "contact-new",
        "ParticipantToken": "ptoken-new",
    }
    connect.start_contact_streaming.return_value = {"StreamingId": "stream-1"}

    participant = MagicMock()
    participant.create_participant_connection.return_value = {
        "ConnectionCredentials": {"ConnectionToken": "ctoken-new"},
    }
    participant.send_message.return_value = {"Id": "msg-1"}

    contact_center = ContactCenter(
        connect=connect,
        participant=participant,
        instance_id="instance-1",
        contact_flow_id="flow-1",
        streaming_arn="arn:aws:sns:ap-southeast-2:123456789012:chat-stream",
    )
    resolver = SessionResolver(SessionStore(table, ttl_hours=24), contact_center)
    return resolver, table, connect, participant


# =============================================================================
# TEST: New Sessions
# =============================================================================

class TestNewSession:
    """No stored record for the number."""

    def test_first_message_creates_contact(self):
        """Scenario A: new contact, message sent, record persisted."""
        from src.session.state import ResolveStatus, epoch_now

        resolver, table, connect, participant = make_resolver()

        result = resolver.resolve_session(NUMBER, "Hi", True)

        assert result.status == ResolveStatus.CREATED
        assert result.contact_id == "contact-new"
        assert result.message_id == "msg-1"
        assert result.rehydrated_from is None

        start_kwargs = connect.start_chat_contact.call_args.kwargs
        assert start_kwargs["InstanceId"] == "instance-1"
        assert start_kwargs["ContactFlowId"] == "flow-1"
        assert start_kwargs["Attributes"] == {"CustomerNumber": NUMBER, "FirstMessage": "0"}
        assert start_kwargs["ParticipantDetails"] == {"DisplayName": NUMBER}
        assert "PersistentChat" not in start_kwargs

        streaming_kwargs = connect.start_contact_streaming.call_args.kwargs
        assert streaming_kwargs["ContactId"] == "contact-new"
        assert streaming_kwargs["ChatStreamingConfiguration"] == {
            "StreamingEndpointArn": "arn:aws:sns:ap-southeast-2:123456789012:chat-stream",
        }

        participant.create_participant_connection.assert_called_once_with(
            ParticipantToken="ptoken-new",
            Type=["CONNECTION_CREDENTIALS"],
            ConnectParticipant=True,
        )
        participant.send_message.assert_called_once_with(
            ContentType="text/plain",
            Content="Hi",
            ConnectionToken="ctoken-new",
        )

        put_kwargs = table.put_item.call_args.kwargs
        item = put_kwargs["Item"]
        assert item["originatingNumber"] == NUMBER
        assert item["contactId"] == "contact-new"
        assert item["connectionToken"] == "ctoken-new"
        assert item["expiryDateTime"] > epoch_now() + 23 * 3600
        assert "attribute_not_exists" in put_kwargs["ConditionExpression"]
        print("✓ First message creates a contact and persists the session")

    def test_agent_initiated_contact_skips_send(self):
        """Agent-initiated openers create the contact without delivering text."""
        resolver, table, connect, participant = make_resolver()

        result = resolver.resolve_session(NUMBER, "", False)

        assert result.contact_id == "contact-new"
        assert result.message_id is None
        assert connect.start_chat_contact.call_args.kwargs["Attributes"]["FirstMessage"] == "1"
        participant.send_message.assert_not_called()
        table.put_item.assert_called_once()
        print("✓ Agent-initiated contact is created without sending")

    def test_raw_first_message_flag_passed_through(self):
        resolver, _, connect, _ = make_resolver()

        resolver.resolve_session(NUMBER, "", False, first_message_flag="2")

        attributes = connect.start_chat_contact.call_args.kwargs["Attributes"]
        assert attributes == {"CustomerNumber": NUMBER, "FirstMessage": "2"}


# =============================================================================
# TEST: Reuse
# =============================================================================

class TestReuse:
    """Stored record with a live connection token."""

    def test_live_token_resumes(self):
        """Scenario B: message goes through the stored connection."""
        from src.session.state import ResolveStatus

        resolver, table, connect, participant = make_resolver(session_item())

        result = resolver.resolve_session(NUMBER, "Still here", True)

        assert result.status == ResolveStatus.RESUMED
        assert result.contact_id == "contact-old"
        participant.send_message.assert_called_once_with(
            ContentType="text/plain",
            Content="Still here",
            ConnectionToken="ctoken-old",
        )
        connect.start_chat_contact.assert_not_called()
        table.put_item.assert_not_called()
        print("✓ Live token resumes the existing session")

    def test_resume_is_idempotent(self):
        """Scenario B twice: same result, no record mutation."""
        resolver, table, connect, participant = make_resolver(session_item())

        first = resolver.resolve_session(NUMBER, "Still here", True)
        second = resolver.resolve_session(NUMBER, "Still here", True)

        assert first.to_dict() == second.to_dict()
        assert first.status == "Resumed"
        connect.start_chat_contact.assert_not_called()
        table.put_item.assert_not_called()
        table.update_item.assert_not_called()
        print("✓ Repeated resume leaves the record untouched")

    def test_reads_are_consistent(self):
        resolver, table, _, _ = make_resolver(session_item())

        resolver.resolve_session(NUMBER, "Still here", True)

        table.get_item.assert_called_once_with(
            Key={"originatingNumber": NUMBER},
            ConsistentRead=True,
        )

    def test_throttled_reuse_is_fatal(self):
        """Only stale-token errors fall back; throttling propagates."""
        resolver, table, connect, participant = make_resolver(session_item())
        participant.send_message.side_effect = client_error("ThrottlingException")

        with pytest.raises(ClientError):
            resolver.resolve_session(NUMBER, "Still here", True)

        connect.start_chat_contact.assert_not_called()
        table.put_item.assert_not_called()
        print("✓ Non-stale reuse failure is not treated as a fallback")


# =============================================================================
# TEST: Fallback with rehydration
# =============================================================================

class TestFallback:
    """Stored token is stale or expired."""

    def test_stale_token_rehydrates_new_contact(self):
        """Scenario C: new contact rehydrated from the previous contactId."""
        from src.session.state import ResolveStatus

        resolver, table, connect, participant = make_resolver(session_item())
        participant.send_message.side_effect = [
            client_error("AccessDeniedException"),
            {"Id": "msg-2"},
        ]

        result = resolver.resolve_session(NUMBER, "Anyone there?", True)

        assert result.status == ResolveStatus.CREATED
        assert result.contact_id == "contact-new"
        assert result.message_id == "msg-2"
        assert result.rehydrated_from == "contact-old"

        start_kwargs = connect.start_chat_contact.call_args.kwargs
        assert start_kwargs["PersistentChat"] == {
            "RehydrationType": "FROM_SEGMENT",
            "SourceContactId": "contact-old",
        }

        tokens = [c.kwargs["ConnectionToken"] for c in participant.send_message.call_args_list]
        assert tokens == ["ctoken-old", "ctoken-new"]

        put_kwargs = table.put_item.call_args.kwargs
        assert put_kwargs["Item"]["contactId"] == "contact-new"
        assert put_kwargs["Item"]["connectionToken"] == "ctoken-new"
        assert put_kwargs["ExpressionAttributeValues"] == {":expected": "contact-old"}
        print("✓ Stale token falls back to a rehydrated contact")

    @pytest.mark.parametrize("code", ["AccessDeniedException", "ValidationException", "ResourceNotFoundException"])
    def test_stale_error_codes(self, code):
        resolver, _, connect, participant = make_resolver(session_item())
        participant.send_message.side_effect = [client_error(code), {"Id": "msg-2"}]

        result = resolver.resolve_session(NUMBER, "Hello again", True)

        assert result.status == "Created"
        connect.start_chat_contact.assert_called_once()

    def test_expired_record_skips_reuse(self):
        """An expired record still present in the table is not reused but is rehydrated from."""
        resolver, table, connect, participant = make_resolver(session_item(expires_in=-60))

        result = resolver.resolve_session(NUMBER, "Back again", True)

        assert result.rehydrated_from == "contact-old"
        participant.send_message.assert_called_once()
        assert participant.send_message.call_args.kwargs["ConnectionToken"] == "ctoken-new"
        print("✓ Expired record is used only as a rehydration source")

    def test_agent_initiated_with_active_session_recreates(self):
        """No content to probe the stored connection with: recreate with rehydration."""
        resolver, table, connect, participant = make_resolver(session_item())

        result = resolver.resolve_session(NUMBER, "", False)

        assert result.status == "Created"
        assert result.rehydrated_from == "contact-old"
        participant.send_message.assert_not_called()

    def test_rehydration_rejected_retries_without_history(self):
        resolver, table, connect, participant = make_resolver(session_item())
        participant.send_message.side_effect = [
            client_error("AccessDeniedException"),
            {"Id": "msg-2"},
        ]
        connect.start_chat_contact.side_effect = [
            client_error("InvalidRequestException", "StartChatContact"),
            {"ContactId": "contact-fresh", "ParticipantToken": "ptoken-fresh"},
        ]

        result = resolver.resolve_session(NUMBER, "Hello", True)

        assert result.contact_id == "contact-fresh"
        assert result.rehydrated_from is None
        calls = connect.start_chat_contact.call_args_list
        assert "PersistentChat" in calls[0].kwargs
        assert "PersistentChat" not in calls[1].kwargs
        assert table.put_item.call_args.kwargs["Item"]["contactId"] == "contact-fresh"
        print("✓ Rejected rehydration retries once without history")


# =============================================================================
# TEST: Fatal failures and validation
# =============================================================================

class TestFailures:
    """Failures after the reuse step leave the stored record unchanged."""

    def test_contact_creation_failure_is_fatal(self):
        resolver, table, connect, _ = make_resolver()
        connect.start_chat_contact.side_effect = client_error("ServiceQuotaExceededException", "StartChatContact")

        with pytest.raises(ClientError):
            resolver.resolve_session(NUMBER, "Hi", True)

        assert connect.start_chat_contact.call_count == 1
        table.put_item.assert_not_called()

    def test_streaming_failure_is_fatal(self):
        resolver, table, connect, participant = make_resolver()
        connect.start_contact_streaming.side_effect = client_error("InvalidRequestException", "StartContactStreaming")

        with pytest.raises(ClientError):
            resolver.resolve_session(NUMBER, "Hi", True)

        participant.create_participant_connection.assert_not_called()
        table.put_item.assert_not_called()

    def test_connection_failure_is_fatal(self):
        resolver, table, _, participant = make_resolver()
        participant.create_participant_connection.side_effect = client_error(
            "AccessDeniedException", "CreateParticipantConnection"
        )

        with pytest.raises(ClientError):
            resolver.resolve_session(NUMBER, "Hi", True)

        table.put_item.assert_not_called()

    def test_missing_number_rejected_before_any_call(self):
        from src.session.errors import ValidationError

        resolver, table, connect, _ = make_resolver()

        with pytest.raises(ValidationError):
            resolver.resolve_session("", "Hi", True)

        table.get_item.assert_not_called()
        connect.start_chat_contact.assert_not_called()

    def test_customer_message_requires_content(self):
        from src.session.errors import ValidationError

        resolver, table, _, _ = make_resolver()

        with pytest.raises(ValidationError) as exc:
            resolver.resolve_session(NUMBER, "", True)

        assert exc.value.field == "messageContent"
        table.get_item.assert_not_called()


# =============================================================================
# TEST: Concurrent invocations
# =============================================================================

class TestConflicts:
    """Conditional write lost to another invocation for the same number."""

    def test_loser_stops_contact_and_uses_winner(self):
        from src.session.state import ResolveStatus

        resolver, table, connect, participant = make_resolver()
        table.get_item.side_effect = [
            {},
            {"Item": session_item(contact_id="contact-winner", token="ctoken-winner")},
        ]
        table.put_item.side_effect = client_error("ConditionalCheckFailedException", "PutItem")

        result = resolver.resolve_session(NUMBER, "Hi", True)

        assert result.status == ResolveStatus.RESUMED
        assert result.contact_id == "contact-winner"
        connect.stop_contact.assert_called_once_with(InstanceId="instance-1", ContactId="contact-new")
        tokens = [c.kwargs["ConnectionToken"] for c in participant.send_message.call_args_list]
        assert tokens == ["ctoken-new", "ctoken-winner"]
        print("✓ Losing invocation stops its contact and resumes the winner's")

    def test_conflict_without_live_winner_raises(self):
        from src.session.errors import SessionConflictError

        resolver, table, connect, _ = make_resolver()
        table.get_item.side_effect = [{"Item": session_item(expires_in=-60)}, {}]
        table.put_item.side_effect = client_error("ConditionalCheckFailedException", "PutItem")

        with pytest.raises(SessionConflictError) as exc:
            resolver.resolve_session(NUMBER, "Hi", True)

        assert exc.value.expected_contact_id == "contact-old"
        assert "contact-old" in str(exc.value)
        # The message was delivered into our contact, so it stays open
        connect.stop_contact.assert_not_called()

    def test_record_swept_by_ttl_before_write(self):
        """The expired record read earlier is gone by the time the new one is written."""
        from src.session.state import ResolveStatus

        resolver, table, connect, _ = make_resolver()
        table.get_item.side_effect = [{"Item": session_item(expires_in=-60)}]

        result = resolver.resolve_session(NUMBER, "Hi", True)

        assert result.status == ResolveStatus.CREATED
        assert result.contact_id == "contact-new"
        kwargs = table.put_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == "attribute_not_exists(#pk) OR contactId = :expected"
        assert kwargs["ExpressionAttributeValues"] == {":expected": "contact-old"}
        connect.stop_contact.assert_not_called()
        print("✓ A swept record does not count as a lost race")

    def test_other_store_errors_propagate(self):
        resolver, table, connect, _ = make_resolver()
        table.put_item.side_effect = client_error("ProvisionedThroughputExceededException", "PutItem")

        with pytest.raises(ClientError):
            resolver.resolve_session(NUMBER, "Hi", True)

        connect.stop_contact.assert_not_called()


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
