# =============================================================================
# Streaming Event Handler
# =============================================================================
# Entry point for SNS/SQS batches carrying Amazon Connect chat streaming
# messages. Each record is dispatched independently; a failing record is
# counted and does not stop the rest of the batch.
# =============================================================================

import logging
from typing import Any, Dict
from src.runtime.parse_event import parse_event, EventSource
from src.runtime.dispatch import dispatch
from src.runtime.deps import get_deps

logger = logging.getLogger(__name__)


def inbound_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    SNS/SQS entry point.

    Args:
        event: SNS/SQS event with Records[]
        context: Lambda context

    Returns:
        Processing summary (plus batchItemFailures for SQS partial retries)
    """
    logger.info(f"INBOUND_HANDLER event keys: {list(event.keys())}")

    envelopes, source = parse_event(event)

    if not envelopes:
        return {
            "statusCode": 200,
            "processed": 0,
            "message": "No records to process",
        }

    deps = get_deps()

    results = {
        "processed": 0,
        "relayed": 0,
        "skipped": 0,
        "errors": 0,
    }
    failed_message_ids = []

    for envelope in envelopes:
        result = dispatch(envelope, deps)
        results["processed"] += 1
        status = result.get("statusCode", 200)

        if status >= 400:
            logger.error(f"Record {envelope.request_id} failed: {result.get('error')}")
            results["errors"] += 1
            failed_message_ids.append(envelope.request_id)
        elif result.get("skipped"):
            results["skipped"] += 1
        else:
            results["relayed"] += 1

    response = {"statusCode": 200, **results}
    if source == EventSource.SQS:
        response["batchItemFailures"] = [{"itemIdentifier": mid} for mid in failed_message_ids]
    return response
