# =============================================================================
# Event Parser - Detect and Parse Lambda Events
# =============================================================================
# Detects event source and normalizes into Envelope format.
# Supports: API Gateway, SNS, SQS, EventBridge, Direct Invoke, CLI
# =============================================================================

import json
import logging
import uuid
from typing import Any, Dict, List, Tuple
from src.runtime.envelope import Envelope, EnvelopeKind

logger = logging.getLogger(__name__)

# HTTP paths that carry no explicit action
ROUTE_ACTIONS = {
    "/modica": "inbound_message",
    "/salesforce": "inbound_message",
    "/tasks": "start_task_contact",
}

# Action applied to Connect chat streaming messages
STREAMING_ACTION = "relay_outbound"


class EventSource:
    """Event source identifiers."""
    API_GATEWAY = "api_gateway"
    SNS = "sns"
    SQS = "sqs"
    DIRECT = "direct"
    CLI = "cli"
    EVENTBRIDGE = "eventbridge"
    UNKNOWN = "unknown"


def detect_event_source(event: Dict[str, Any]) -> str:
    """
    Detect the source of a Lambda event.

    Returns one of: api_gateway, sns, sqs, direct, cli, eventbridge, unknown
    """
    if not event:
        return EventSource.UNKNOWN

    # API Gateway HTTP API (v2) or REST API (v1)
    if "requestContext" in event:
        if "http" in event.get("requestContext", {}):
            return EventSource.API_GATEWAY  # HTTP API v2
        if "httpMethod" in event.get("requestContext", {}):
            return EventSource.API_GATEWAY  # REST API v1

    # Check for body (API Gateway sends body as string)
    if "body" in event and event.get("body"):
        return EventSource.API_GATEWAY

    if "Records" in event:
        records = event.get("Records", [])
        if records and isinstance(records[0], dict):
            source = records[0].get("eventSource") or records[0].get("EventSource", "")
            if source == "aws:sqs":
                return EventSource.SQS
            if source == "aws:sns" or "Sns" in records[0]:
                return EventSource.SNS

    if "detail-type" in event and "source" in event:
        return EventSource.EVENTBRIDGE

    # Direct invoke with action
    if "action" in event:
        return EventSource.DIRECT

    # CLI (explicit marker)
    if event.get("_source") == "cli":
        return EventSource.CLI

    return EventSource.UNKNOWN


def _request_path(event: Dict[str, Any]) -> str:
    """Path of an API Gateway request, without any stage prefix."""
    request_context = event.get("requestContext", {})
    path = (
        event.get("rawPath") or
        request_context.get("http", {}).get("path") or
        event.get("path") or
        ""
    )
    stage = request_context.get("stage", "")
    if stage and stage != "$default" and path.startswith(f"/{stage}/"):
        path = path[len(stage) + 1:]
    return path.rstrip("/") or "/"


def _parse_api_gateway_event(event: Dict[str, Any]) -> Envelope:
    """Parse API Gateway HTTP API or REST API event."""
    request_context = event.get("requestContext", {})

    request_id = (
        request_context.get("requestId") or
        (event.get("headers") or {}).get("x-amzn-trace-id") or
        str(uuid.uuid4())
    )

    body = event.get("body", "")
    payload = {}

    if body:
        if isinstance(body, str):
            try:
                payload = json.loads(body)
            except json.JSONDecodeError:
                payload = {"rawBody": body}
        elif isinstance(body, dict):
            payload = body
    if not isinstance(payload, dict):
        payload = {"rawBody": payload}

    # Merge query parameters into payload
    query_params = event.get("queryStringParameters") or {}
    for key, value in query_params.items():
        if key not in payload:
            payload[key] = value

    path = _request_path(event)
    if "action" not in payload and path in ROUTE_ACTIONS:
        payload["action"] = ROUTE_ACTIONS[path]

    return Envelope(
        kind=EnvelopeKind.ACTION_REQUEST,
        request_id=request_id,
        source=EventSource.API_GATEWAY,
        payload=payload,
        raw_event=event,
        metadata={
            "headers": event.get("headers", {}),
            "queryStringParameters": query_params,
            "httpMethod": request_context.get("http", {}).get("method") or request_context.get("httpMethod"),
            "path": path,
        },
    )


def _loads_message(message: Any) -> Dict[str, Any]:
    """Decode an SNS Message field."""
    if isinstance(message, str):
        try:
            parsed = json.loads(message)
        except json.JSONDecodeError:
            return {"rawMessage": message}
        return parsed if isinstance(parsed, dict) else {"rawMessage": parsed}
    return message if isinstance(message, dict) else {}


def _message_attributes(attributes: Dict[str, Any]) -> Dict[str, str]:
    """Flatten SNS MessageAttributes ({"Type", "Value"}) to plain strings."""
    flat = {}
    for name, attr in (attributes or {}).items():
        if isinstance(attr, dict):
            flat[name] = str(attr.get("Value", attr.get("stringValue", "")))
    return flat


def _with_streaming_action(payload: Dict[str, Any]) -> Dict[str, Any]:
    if "action" not in payload:
        return {"action": STREAMING_ACTION, **payload}
    return payload


def _parse_sns_event(event: Dict[str, Any]) -> List[Envelope]:
    """Parse SNS event with multiple records."""
    envelopes = []
    records = event.get("Records", [])

    for i, record in enumerate(records):
        sns_data = record.get("Sns", {})
        message_id = sns_data.get("MessageId", str(uuid.uuid4()))

        payload = _with_streaming_action(_loads_message(sns_data.get("Message", "")))

        envelope = Envelope.from_streaming_event(
            payload,
            source=EventSource.SNS,
            request_id=message_id,
            raw_event=record,
            metadata={
                "snsMessageId": message_id,
                "snsTimestamp": sns_data.get("Timestamp", ""),
                "snsTopicArn": sns_data.get("TopicArn", ""),
                "messageAttributes": _message_attributes(sns_data.get("MessageAttributes", {})),
                "recordIndex": i,
            },
        )
        envelopes.append(envelope)

    return envelopes


def _parse_sqs_event(event: Dict[str, Any]) -> List[Envelope]:
    """Parse SQS event with multiple records (SNS fan-out to SQS included)."""
    envelopes = []
    records = event.get("Records", [])

    for i, record in enumerate(records):
        message_id = record.get("messageId", str(uuid.uuid4()))
        body = _loads_message(record.get("body", ""))
        attributes = {}

        # SNS message wrapped in SQS
        if body.get("Type") == "Notification":
            attributes = _message_attributes(body.get("MessageAttributes", {}))
            body = _loads_message(body.get("Message", ""))

        envelope = Envelope.from_streaming_event(
            _with_streaming_action(body),
            source=EventSource.SQS,
            request_id=message_id,
            raw_event=record,
            metadata={
                "sqsMessageId": message_id,
                "sqsReceiptHandle": record.get("receiptHandle", ""),
                "sqsEventSourceArn": record.get("eventSourceARN", ""),
                "messageAttributes": attributes,
                "recordIndex": i,
            },
        )
        envelopes.append(envelope)

    return envelopes


def _parse_eventbridge_event(event: Dict[str, Any]) -> Envelope:
    """Parse EventBridge event."""
    detail_type = event.get("detail-type", "")
    detail = event.get("detail", {})

    action = detail.get("action") or detail_type.replace(".", "_").replace(" ", "_").lower()
    payload = {**detail, "action": action}

    return Envelope(
        kind=EnvelopeKind.INTERNAL_JOB,
        request_id=event.get("id", str(uuid.uuid4())),
        source=EventSource.EVENTBRIDGE,
        payload=payload,
        raw_event=event,
        metadata={
            "detailType": detail_type,
            "eventBridgeSource": event.get("source", ""),
            "time": event.get("time", ""),
        },
    )


def _parse_direct_event(event: Dict[str, Any], source: str = EventSource.DIRECT) -> Envelope:
    """Parse direct Lambda invoke event."""
    return Envelope(
        kind=EnvelopeKind.ACTION_REQUEST,
        request_id=event.get("requestId", str(uuid.uuid4())),
        source=source,
        payload=event,
        raw_event=event,
    )


def parse_event(event: Dict[str, Any]) -> Tuple[List[Envelope], str]:
    """
    Parse Lambda event and return list of Envelopes.

    Returns:
        Tuple of (list of Envelopes, detected source)

    Note: Most sources return a single envelope, but SNS/SQS can have multiple records.
    """
    source = detect_event_source(event)
    logger.info(f"Detected event source: {source}")

    if source == EventSource.API_GATEWAY:
        return [_parse_api_gateway_event(event)], source

    elif source == EventSource.SNS:
        return _parse_sns_event(event), source

    elif source == EventSource.SQS:
        return _parse_sqs_event(event), source

    elif source == EventSource.EVENTBRIDGE:
        return [_parse_eventbridge_event(event)], source

    elif source in (EventSource.DIRECT, EventSource.CLI):
        return [_parse_direct_event(event, source)], source

    else:
        logger.warning("Unknown event source, treating as direct invoke")
        return [_parse_direct_event(event)], EventSource.UNKNOWN
