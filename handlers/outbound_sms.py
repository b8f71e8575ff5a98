# =============================================================================
# Outbound SMS Relay
# =============================================================================
# Chat contacts created by the session resolver stream their messages to SNS.
# Agent messages from that stream are relayed to the customer as SMS.
# =============================================================================

import logging
from typing import Any, Dict

from handlers.base import mask_number, config_error, error_response, skipped_response, success_response
from src.runtime.deps import Deps
from src.runtime.dispatch import register
from src.sms.client import SmsGatewayError

logger = logging.getLogger(__name__)

RELAYED_CONTENT_TYPES = ("text/plain", "text/markdown")


def should_relay(message: Dict[str, Any], roles) -> str:
    """Return a skip reason, or "" if the streamed message should be sent as SMS."""
    if message.get("Type") != "MESSAGE":
        return f"type {message.get('Type') or 'unknown'}"
    role = str(message.get("ParticipantRole", "")).upper()
    if role not in roles:
        return f"participant role {role or 'unknown'}"
    if message.get("ContentType", "text/plain") not in RELAYED_CONTENT_TYPES:
        return f"content type {message.get('ContentType')}"
    if not message.get("Content"):
        return "empty content"
    return ""


@register("relay_outbound", category="messaging", requires=["ContactId"])
def handle_relay_outbound(payload: Dict[str, Any], deps: Deps) -> Dict[str, Any]:
    """Relay an agent chat message to the customer's phone via the SMS gateway."""
    reason = should_relay(payload, deps.relay_participant_roles)
    if reason:
        logger.info(f"Skipping streamed message {payload.get('Id', '')}: {reason}")
        return skipped_response("relay_outbound", reason)

    missing = deps.missing_config("CONNECT_INSTANCE_ID", "SMS_GATEWAY_URL")
    if missing:
        return config_error(missing)

    contact_id = payload["ContactId"]
    # Attributes live on the initial contact; ContactId changes after a transfer
    initial_contact_id = payload.get("InitialContactId") or contact_id
    attributes = deps.contact_center.get_contact_attributes(initial_contact_id)
    destination = attributes.get("CustomerNumber", "")
    if not destination:
        logger.warning(f"No CustomerNumber attribute on contact {contact_id}")
        return skipped_response("relay_outbound", "no customer number")

    try:
        gateway_response = deps.sms_gateway.send(destination, payload["Content"])
    except SmsGatewayError as e:
        logger.exception(f"SMS relay failed for contact {contact_id}: {e}")
        return error_response(str(e), 502, contactId=contact_id)

    logger.info(f"Relayed agent message on {contact_id} to {mask_number(destination)}")
    return success_response(
        "relay_outbound",
        contactId=contact_id,
        destination=destination,
        gatewayResponse=gateway_response,
    )
