# =============================================================================
# Task Contacts
# =============================================================================
# Salesforce pending-service-routing events become Amazon Connect tasks so
# Omni-Channel work can be routed through Connect.
# =============================================================================

import logging
from typing import Any, Dict

from handlers.base import config_error, skipped_response, success_response
from src.runtime.deps import Deps
from src.runtime.dispatch import register

logger = logging.getLogger(__name__)

CREATE_EVENT = "CREATE"


def task_attributes(payload: Dict[str, Any], routing_user_id: str = "") -> Dict[str, str]:
    """Map a pending-service-routing event to SF_* contact attributes."""
    psr = payload.get("pendingServiceRouting") or {}
    attributes = {
        "SF_EventType": payload.get("eventType") or "Unknown",
        "SF_PendingServiceRoutingId": psr.get("Id") or "",
        "SF_WorkItemId": psr.get("WorkItemId") or "",
        "SF_ServiceChannelId": psr.get("ServiceChannelId") or "",
    }
    if routing_user_id:
        attributes["SF_UserId"] = routing_user_id
    # Caller-supplied attributes win
    for key, value in (payload.get("attributes") or {}).items():
        attributes[str(key)] = str(value)
    return attributes


@register("start_task_contact", category="tasks", requires=["eventType"])
def handle_start_task_contact(payload: Dict[str, Any], deps: Deps) -> Dict[str, Any]:
    """Start a Connect task for a Salesforce CREATE routing event."""
    event_type = payload.get("eventType")
    if event_type != CREATE_EVENT:
        logger.info(f"Skipping routing event {event_type}")
        return skipped_response("start_task_contact", f"event type {event_type}")

    missing = deps.missing_config("CONNECT_INSTANCE_ID", "TASK_CONTACT_FLOW_ID")
    if missing:
        return config_error(missing)

    attributes = task_attributes(payload, deps.config["SF_ROUTING_USER_ID"])
    work_item_id = attributes["SF_WorkItemId"]

    contact_id = deps.contact_center.start_task_contact(
        name=f"Task for {work_item_id}",
        description=f"Salesforce Event: {event_type}",
        attributes=attributes,
        contact_flow_id=deps.config["TASK_CONTACT_FLOW_ID"],
    )
    return success_response(
        "start_task_contact",
        message="Task initiated successfully",
        contactId=contact_id,
    )
