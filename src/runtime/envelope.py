# =============================================================================
# Envelope - Normalized Event Container
# =============================================================================
# All inputs (API Gateway, SNS/SQS, direct invoke, CLI) are normalized into
# a common Envelope structure for unified processing.
# =============================================================================

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional
import uuid
from datetime import datetime, timezone


class EnvelopeKind(str, Enum):
    """Types of events that can be processed."""
    ACTION_REQUEST = "action_request"      # API Gateway / direct invoke / CLI
    STREAMING_EVENT = "streaming_event"    # Connect chat streaming via SNS/SQS
    INTERNAL_JOB = "internal_job"          # EventBridge / Step Functions
    UNKNOWN = "unknown"


@dataclass
class Envelope:
    """
    Normalized event container for all trigger sources.

    Attributes:
        kind: Type of event (action_request, streaming_event, internal_job)
        request_id: Unique identifier for this request
        source: Origin of the event (api_gateway, sns, sqs, direct, cli)
        payload: The actual event data (action + parameters)
        raw_event: Original unmodified event for debugging
        timestamp: When the envelope was created
        trace_id: Distributed tracing ID
        metadata: Additional context (headers, path, SNS attributes, etc.)
    """
    kind: EnvelopeKind
    request_id: str
    source: str
    payload: Dict[str, Any]
    raw_event: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    trace_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def action(self) -> str:
        """Get the action name from payload."""
        return self.payload.get("action", "")

    @property
    def route(self) -> str:
        """HTTP path the request arrived on (API Gateway only)."""
        return self.metadata.get("path") or ""

    def get(self, key: str, default: Any = None) -> Any:
        """Get value from payload."""
        return self.payload.get(key, default)

    @classmethod
    def from_action_request(
        cls,
        payload: Dict[str, Any],
        source: str = "direct",
        request_id: str = None,
        raw_event: Dict[str, Any] = None,
        metadata: Dict[str, Any] = None,
    ) -> "Envelope":
        """Create envelope from action request."""
        return cls(
            kind=EnvelopeKind.ACTION_REQUEST,
            request_id=request_id or str(uuid.uuid4()),
            source=source,
            payload=payload,
            raw_event=raw_event or payload,
            metadata=metadata or {},
        )

    @classmethod
    def from_streaming_event(
        cls,
        payload: Dict[str, Any],
        source: str = "sns",
        request_id: str = None,
        raw_event: Dict[str, Any] = None,
        metadata: Dict[str, Any] = None,
    ) -> "Envelope":
        """Create envelope from a Connect chat streaming message."""
        return cls(
            kind=EnvelopeKind.STREAMING_EVENT,
            request_id=request_id or str(uuid.uuid4()),
            source=source,
            payload=payload,
            raw_event=raw_event or payload,
            metadata=metadata or {},
        )
