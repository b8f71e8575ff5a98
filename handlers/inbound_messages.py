# =============================================================================
# Inbound Message Handler
# =============================================================================
# Customer SMS (gateway webhook) and Salesforce-initiated messages arrive in
# different shapes. Both are normalized to (number, content, first-message)
# and handed to the session resolver, which reuses or recreates the chat.
# =============================================================================

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from handlers.base import format_phone_number, mask_number, parse_flag, config_error, success_response
from src.runtime.deps import Deps
from src.runtime.dispatch import register
from src.session.errors import ValidationError
from src.session.resolver import FIRST_MESSAGE_FROM_CUSTOMER

logger = logging.getLogger(__name__)

ROUTE_SMS_GATEWAY = "/modica"
ROUTE_SALESFORCE = "/salesforce"


@dataclass
class InboundMessage:
    """An inbound message reduced to what the resolver needs."""
    originating_number: str
    message_content: str
    is_first_message: bool
    destination_number: str = ""
    origin: str = "internal"
    first_message_flag: Optional[str] = None


def _require(payload: Dict[str, Any], *fields: str) -> None:
    missing = [f for f in fields if not payload.get(f)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", field=missing[0])


def normalize_inbound(payload: Dict[str, Any]) -> InboundMessage:
    """
    Normalize an inbound payload by the route it arrived on.

    - /modica: {source, destination, content} from the SMS gateway; always a
      customer-originated message.
    - /salesforce: {originatingNumber, firstMessage, content}; firstMessage "0"
      marks a customer-originated message, anything else an agent-initiated
      opener whose content is not delivered.
    - otherwise: {originatingNumber, messageContent, isFirstMessage}.

    Raises:
        ValidationError: a required field is missing
    """
    route = payload.get("_route", "")

    if route == ROUTE_SMS_GATEWAY:
        _require(payload, "source", "destination")
        message = InboundMessage(
            originating_number=format_phone_number(payload["source"]),
            message_content=str(payload.get("content") or ""),
            is_first_message=True,
            destination_number=str(payload["destination"]),
            origin="sms_gateway",
        )
    elif route == ROUTE_SALESFORCE:
        _require(payload, "originatingNumber", "firstMessage")
        message = InboundMessage(
            originating_number=format_phone_number(payload["originatingNumber"]),
            message_content=str(payload.get("content") or ""),
            is_first_message=str(payload["firstMessage"]) == FIRST_MESSAGE_FROM_CUSTOMER,
            origin="salesforce",
            first_message_flag=str(payload["firstMessage"]),
        )
    else:
        _require(payload, "originatingNumber")
        message = InboundMessage(
            originating_number=format_phone_number(payload["originatingNumber"]),
            message_content=str(payload.get("messageContent") or payload.get("content") or ""),
            is_first_message=parse_flag(payload.get("isFirstMessage", True)),
        )

    if message.is_first_message and not message.message_content:
        raise ValidationError("Missing messageContent", field="messageContent")
    return message


@register("inbound_message", category="messaging")
def handle_inbound_message(payload: Dict[str, Any], deps: Deps) -> Dict[str, Any]:
    """Deliver an inbound message into the customer's Connect chat session."""
    message = normalize_inbound(payload)
    logger.info(
        f"Inbound message from {mask_number(message.originating_number)} "
        f"origin={message.origin} firstMessage={message.is_first_message}"
    )

    missing = deps.missing_config("CONNECT_INSTANCE_ID", "CONTACT_FLOW_ID")
    if missing:
        return config_error(missing)

    result = deps.session_resolver.resolve_session(
        message.originating_number,
        message.message_content,
        message.is_first_message,
        first_message_flag=message.first_message_flag,
    )
    logger.info(f"Session {result.status} contactId={result.contact_id}")
    return success_response("inbound_message", result.to_dict())
