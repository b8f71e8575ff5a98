# =============================================================================
# Dependency Injection Container
# =============================================================================
# Provides lazy-loaded AWS clients and shared services to handlers.
# Handlers receive Deps instead of creating their own clients.
# =============================================================================

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import boto3
from functools import cached_property

from src.session.contact_center import ContactCenter
from src.session.resolver import SessionResolver
from src.session.store import SessionStore, DEFAULT_TTL_HOURS
from src.sms.client import SmsGatewayClient

logger = logging.getLogger(__name__)


def _env_int(key: str, default: int) -> int:
    raw = os.environ.get(key, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        logger.warning(f"Invalid integer for {key}: {raw!r}, using {default}")
        return default


@dataclass
class Deps:
    """
    Dependency injection container for handlers.

    All AWS clients are lazy-loaded on first access.
    Handlers should use this instead of creating their own clients.

    Usage:
        def handle_my_action(req: Dict, deps: Deps) -> Dict:
            result = deps.session_resolver.resolve_session(number, text, True)
            deps.sms_gateway.send(number, "reply")
    """
    region: str = field(default_factory=lambda: os.environ.get("AWS_REGION", "ap-southeast-2"))

    # ==========================================================================
    # AWS Clients (lazy-loaded)
    # ==========================================================================

    @cached_property
    def dynamodb(self):
        """DynamoDB resource."""
        return boto3.resource("dynamodb", region_name=self.region)

    @cached_property
    def session_table(self):
        """DynamoDB table holding one session pointer per customer number."""
        return self.dynamodb.Table(self.config["SESSION_TABLE_NAME"])

    @cached_property
    def connect(self):
        """Amazon Connect client."""
        return boto3.client("connect", region_name=self.region)

    @cached_property
    def participant(self):
        """Amazon Connect Participant Service client."""
        return boto3.client("connectparticipant", region_name=self.region)

    # ==========================================================================
    # Services
    # ==========================================================================

    @cached_property
    def contact_center(self) -> ContactCenter:
        return ContactCenter(
            connect=self.connect,
            participant=self.participant,
            instance_id=self.config["CONNECT_INSTANCE_ID"],
            contact_flow_id=self.config["CONTACT_FLOW_ID"],
            streaming_arn=self.config["SNS_STREAMING_ARN"],
        )

    @cached_property
    def session_store(self) -> SessionStore:
        return SessionStore(
            self.session_table,
            pk_name=self.config["SESSION_PK_NAME"],
            ttl_hours=self.config["SESSION_TTL_HOURS"],
        )

    @cached_property
    def session_resolver(self) -> SessionResolver:
        return SessionResolver(self.session_store, self.contact_center)

    @cached_property
    def sms_gateway(self) -> SmsGatewayClient:
        return SmsGatewayClient(
            api_url=self.config["SMS_GATEWAY_URL"],
            username=self.config["SMS_GATEWAY_USER"],
            password=self.config["SMS_GATEWAY_PASS"],
            timeout=self.config["SMS_GATEWAY_TIMEOUT"],
        )

    # ==========================================================================
    # Configuration
    # ==========================================================================

    @cached_property
    def config(self) -> Dict[str, Any]:
        """Environment configuration."""
        return {
            "CONNECT_INSTANCE_ID": os.environ.get("CONNECT_INSTANCE_ID", ""),
            "CONTACT_FLOW_ID": os.environ.get("CONTACT_FLOW_ID", ""),
            "TASK_CONTACT_FLOW_ID": os.environ.get("TASK_CONTACT_FLOW_ID") or os.environ.get("CONTACT_FLOW_ID", ""),
            "SNS_STREAMING_ARN": os.environ.get("SNS_STREAMING_ARN", ""),
            "SESSION_TABLE_NAME": os.environ.get("SESSION_TABLE_NAME", "connect-sms-sessions"),
            "SESSION_PK_NAME": os.environ.get("SESSION_PK_NAME", "originatingNumber"),
            "SESSION_TTL_HOURS": _env_int("SESSION_TTL_HOURS", DEFAULT_TTL_HOURS),
            "SMS_GATEWAY_URL": os.environ.get("SMS_GATEWAY_URL", ""),
            "SMS_GATEWAY_USER": os.environ.get("SMS_GATEWAY_USER", ""),
            "SMS_GATEWAY_PASS": os.environ.get("SMS_GATEWAY_PASS", ""),
            "SMS_GATEWAY_TIMEOUT": _env_int("SMS_GATEWAY_TIMEOUT", 10),
            "RELAY_PARTICIPANT_ROLES": os.environ.get("RELAY_PARTICIPANT_ROLES", "AGENT"),
            "SF_ROUTING_USER_ID": os.environ.get("SF_ROUTING_USER_ID", ""),
        }

    @cached_property
    def relay_participant_roles(self) -> List[str]:
        """Chat participant roles whose messages are relayed as SMS."""
        raw = self.config["RELAY_PARTICIPANT_ROLES"]
        return [role.strip().upper() for role in raw.split(",") if role.strip()]

    def missing_config(self, *keys: str) -> List[str]:
        """Return the names of required settings that are empty."""
        return [key for key in keys if not self.config.get(key)]


def create_deps(region: str = None) -> Deps:
    """Create a new Deps instance."""
    return Deps(region=region or os.environ.get("AWS_REGION", "ap-southeast-2"))


# Global deps instance (warm Lambda containers reuse clients)
_global_deps: Optional[Deps] = None


def get_deps() -> Deps:
    """Get or create global Deps instance."""
    global _global_deps
    if _global_deps is None:
        _global_deps = create_deps()
    return _global_deps
