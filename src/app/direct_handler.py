# =============================================================================
# Direct Invoke Handler
# =============================================================================
# Entry point for direct Lambda invocations and internal workflows.
# =============================================================================

import logging
from typing import Any, Dict
from src.runtime.parse_event import parse_event
from src.runtime.dispatch import dispatch
from src.runtime.deps import get_deps

logger = logging.getLogger(__name__)


def direct_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Direct invoke entry point.

    Handles:
    - Direct Lambda invocations ({"action": "inbound_message", ...})
    - EventBridge rules
    - CLI payloads

    Args:
        event: Direct invoke event (should contain 'action')
        context: Lambda context

    Returns:
        Handler response
    """
    logger.info(f"DIRECT_HANDLER event keys: {list(event.keys())}")

    envelopes, source = parse_event(event)

    if not envelopes:
        return {
            "statusCode": 400,
            "error": "Could not parse request",
        }

    return dispatch(envelopes[0], get_deps())
