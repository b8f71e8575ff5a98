# =============================================================================
# Connect SMS Bridge - Action Handlers
# =============================================================================
# Each module registers its actions with the unified dispatcher.
#
# ARCHITECTURE:
#   handlers/
#   ├── __init__.py          # This file
#   ├── base.py              # Shared response / validation helpers
#   ├── inbound_messages.py  # inbound_message: SMS or Salesforce -> Connect chat
#   ├── outbound_sms.py      # relay_outbound: Connect chat streaming -> SMS
#   └── tasks.py             # start_task_contact: Salesforce routing -> Connect task
#
# TO ADD A NEW HANDLER:
#       from src.runtime.dispatch import register
#
#       @register("my_action", category="my_category", requires=["param1"])
#       def handle_my_action(payload, deps):
#           return {"statusCode": 200}
#
#   then add the module to HANDLER_MODULES in src/runtime/dispatch.py.
# =============================================================================
