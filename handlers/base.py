# Base utilities for all handlers
# Response helpers and formatting shared by the action handlers
import logging
import re
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================
def format_phone_number(number: Any) -> str:
    """Format phone number in E.164 style with + prefix."""
    if not number:
        return ""
    number = re.sub(r"[\s\-()]", "", str(number))
    if not number.startswith("+"):
        return f"+{number}"
    return number


def mask_number(number: str) -> str:
    """Mask all but the last four digits for logging."""
    if not number or len(number) <= 4:
        return number or ""
    return "*" * (len(number) - 4) + number[-4:]


def parse_flag(value: Any) -> bool:
    """Interpret a JSON/string flag ("true", "1", True) as a bool."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("true", "1", "yes")


def config_error(missing: List[str]) -> Dict[str, Any]:
    """Error response for missing environment configuration."""
    return {
        "statusCode": 500,
        "error": f"Configuration Error: missing {', '.join(missing)}",
    }


# =============================================================================
# RESPONSE HELPERS
# =============================================================================
def success_response(operation: str, data: Dict[str, Any] = None, **kwargs) -> Dict[str, Any]:
    """Create a standardized success response."""
    response = {"statusCode": 200, "operation": operation}
    if data:
        response.update(data)
    response.update(kwargs)
    return response


def error_response(message: str, status_code: int = 400, **kwargs) -> Dict[str, Any]:
    """Create a standardized error response."""
    response = {"statusCode": status_code, "error": message}
    response.update(kwargs)
    return response


def skipped_response(operation: str, reason: str) -> Dict[str, Any]:
    """Event accepted but intentionally not acted on."""
    return {"statusCode": 200, "operation": operation, "skipped": True, "reason": reason}
