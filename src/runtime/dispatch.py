# =============================================================================
# Unified Dispatcher
# =============================================================================
# Single entry point for all handler dispatch.
# Works with API Gateway, SNS/SQS, direct invoke, and CLI.
# =============================================================================

import importlib
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List
from src.runtime.envelope import Envelope
from src.runtime.deps import Deps, get_deps
from src.session.errors import ValidationError

logger = logging.getLogger(__name__)

# Type definitions
HandlerFunc = Callable[[Dict[str, Any], Deps], Dict[str, Any]]

# Modules whose @register decorators populate the registry
HANDLER_MODULES = [
    "handlers.inbound_messages",
    "handlers.outbound_sms",
    "handlers.tasks",
]

# =============================================================================
# HANDLER REGISTRY
# =============================================================================
_HANDLERS: Dict[str, HandlerFunc] = {}
_HANDLER_METADATA: Dict[str, Dict[str, Any]] = {}


def register(action: str, category: str = "general", description: str = None, requires: List[str] = None):
    """
    Decorator to register a handler.

    Usage:
        @register("my_action", category="messaging", requires=["to", "text"])
        def handle_my_action(req: Dict, deps: Deps) -> Dict:
            return {"statusCode": 200}
    """
    def decorator(func: HandlerFunc) -> HandlerFunc:
        register_handler(action, func, category, description, requires)
        return func
    return decorator


def register_handler(action: str, handler: HandlerFunc, category: str = "general",
                     description: str = None, requires: List[str] = None):
    """Manually register a handler function."""
    desc = description
    if not desc and handler.__doc__:
        desc = handler.__doc__.strip().split("\n")[0].strip()
    if not desc:
        desc = f"Handle {action} action"

    _HANDLERS[action] = handler
    _HANDLER_METADATA[action] = {
        "category": category,
        "description": desc,
        "requires": requires or [],
        "module": handler.__module__,
        "function": handler.__name__,
    }


def handler_exists(action: str) -> bool:
    """Check if handler exists."""
    _ensure_handlers_loaded()
    return action in _HANDLERS


def get_handlers_by_category() -> Dict[str, List[str]]:
    """Get handlers grouped by category."""
    categories: Dict[str, List[str]] = {}
    for action, meta in _HANDLER_METADATA.items():
        categories.setdefault(meta.get("category", "general"), []).append(action)
    return categories


# =============================================================================
# DISPATCH FUNCTIONS
# =============================================================================

def dispatch(envelope: Envelope, deps: Deps = None) -> Dict[str, Any]:
    """
    Dispatch envelope to appropriate handler.

    This is the main entry point for all handler dispatch.

    Args:
        envelope: Normalized event envelope
        deps: Dependency injection container (optional, uses global if not provided)

    Returns:
        Handler response dict
    """
    if deps is None:
        deps = get_deps()

    action = envelope.action

    if not action:
        logger.warning(f"No action in envelope: {envelope.kind} route={envelope.route}")
        return {
            "statusCode": 400,
            "error": "No action specified",
            "hint": "Include 'action' field in request payload",
        }

    _ensure_handlers_loaded()

    logger.info(f"Dispatching action={action} kind={envelope.kind.value} source={envelope.source}")

    handler = _HANDLERS.get(action)
    if not handler:
        logger.warning(f"Unknown action: {action}")
        return {
            "statusCode": 400,
            "error": f"Unknown action: {action}",
            "availableActions": sorted(_HANDLERS.keys()),
        }

    # Validate required fields
    requires = _HANDLER_METADATA.get(action, {}).get("requires", [])
    if requires:
        missing = [f for f in requires if not envelope.get(f)]
        if missing:
            return {
                "statusCode": 400,
                "error": f"Missing required fields: {', '.join(missing)}",
                "action": action,
            }

    # Handlers see the route so they can normalize per-caller payload shapes
    payload = dict(envelope.payload)
    if envelope.route:
        payload.setdefault("_route", envelope.route)

    try:
        result = handler(payload, deps)

        if isinstance(result, dict):
            result["_requestId"] = envelope.request_id
            result["_action"] = action

        return result

    except ValidationError as e:
        logger.warning(f"Validation failed for action '{action}': {e}")
        return {
            "statusCode": 400,
            "error": str(e),
            "action": action,
            "_requestId": envelope.request_id,
        }
    except Exception as e:
        logger.exception(f"Handler error for action '{action}': {e}")
        return {
            "statusCode": 500,
            "error": str(e),
            "action": action,
            "_requestId": envelope.request_id,
        }


# =============================================================================
# HANDLER LOADING
# =============================================================================

_handlers_loaded = False


def _ensure_handlers_loaded():
    """Import handler modules so their @register decorators run."""
    global _handlers_loaded
    if _handlers_loaded:
        return
    _handlers_loaded = True

    for module_name in HANDLER_MODULES:
        importlib.import_module(module_name)

    logger.info(f"Loaded {len(_HANDLERS)} handlers into unified registry")


# =============================================================================
# BUILT-IN HANDLERS
# =============================================================================

@register("help", category="utility", description="Get help documentation")
def handle_help(payload: Dict[str, Any], deps: Deps) -> Dict[str, Any]:
    """Get help documentation."""
    _ensure_handlers_loaded()

    by_category = get_handlers_by_category()

    return {
        "statusCode": 200,
        "totalActions": len(_HANDLERS),
        "categories": {
            cat: {
                "count": len(actions),
                "actions": sorted(actions),
            }
            for cat, actions in sorted(by_category.items())
        },
    }


@register("list_actions", category="utility", description="List all available actions")
def handle_list_actions(payload: Dict[str, Any], deps: Deps) -> Dict[str, Any]:
    """List all available actions with descriptions."""
    _ensure_handlers_loaded()

    category_filter = payload.get("category")

    if category_filter:
        actions = get_handlers_by_category().get(category_filter, [])
        return {
            "statusCode": 200,
            "category": category_filter,
            "count": len(actions),
            "actions": {
                action: _HANDLER_METADATA.get(action, {}).get("description", "")
                for action in sorted(actions)
            },
        }

    return {
        "statusCode": 200,
        "count": len(_HANDLERS),
        "actions": {
            action: meta["description"]
            for action, meta in sorted(_HANDLER_METADATA.items())
        },
    }


@register("ping", category="utility", description="Health check")
def handle_ping(payload: Dict[str, Any], deps: Deps) -> Dict[str, Any]:
    """Health check endpoint."""
    return {
        "statusCode": 200,
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "handlerCount": len(_HANDLERS),
    }
