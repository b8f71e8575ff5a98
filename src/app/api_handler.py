# =============================================================================
# API Gateway Handler
# =============================================================================
# Entry point for API Gateway HTTP API requests (SMS gateway webhooks,
# Salesforce callouts). Parses request, dispatches, formats response.
# =============================================================================

import json
import logging
from typing import Any, Dict
from src.runtime.parse_event import parse_event
from src.runtime.dispatch import dispatch
from src.runtime.deps import get_deps

logger = logging.getLogger(__name__)


def api_response(data: Dict[str, Any], status_code: int = None) -> Dict[str, Any]:
    """Format response for API Gateway HTTP API."""
    code = status_code or data.get("statusCode", 200)
    body = {k: v for k, v in data.items() if k != "statusCode"}

    return {
        "statusCode": code,
        "headers": {
            "Content-Type": "application/json",
        },
        "body": json.dumps(body, ensure_ascii=False, default=str),
    }


def api_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    API Gateway entry point.

    Handles:
    - HTTP API (v2) requests
    - REST API (v1) requests

    Args:
        event: API Gateway event
        context: Lambda context

    Returns:
        API Gateway response format
    """
    logger.info(f"API_HANDLER event keys: {list(event.keys())}")

    envelopes, source = parse_event(event)

    if not envelopes:
        return api_response({
            "statusCode": 400,
            "error": "Could not parse request",
        }, 400)

    # API Gateway produces a single envelope
    result = dispatch(envelopes[0], get_deps())

    return api_response(result)
