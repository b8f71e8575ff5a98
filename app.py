import logging
from typing import Any, Dict

from src.app.api_handler import api_handler
from src.app.direct_handler import direct_handler
from src.app.inbound_handler import inbound_handler
from src.runtime.parse_event import detect_event_source, EventSource

# ---------- Logger ----------
logger = logging.getLogger()
logger.setLevel(logging.INFO)


# =============================================================================
# LAMBDA ENTRY POINT
# =============================================================================
# One function can serve every trigger; separate functions may instead point
# their handler setting straight at src.app.<name>_handler.
#   API Gateway  -> /modica, /salesforce, /tasks
#   SNS / SQS    -> Connect chat streaming (agent replies)
#   Direct       -> {"action": "...", ...}
# =============================================================================

def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    source = detect_event_source(event)

    if source == EventSource.API_GATEWAY:
        return api_handler(event, context)

    if source in (EventSource.SNS, EventSource.SQS):
        return inbound_handler(event, context)

    return direct_handler(event, context)
