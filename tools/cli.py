#!/usr/bin/env python3
# =============================================================================
# CLI Tool for the Connect SMS Bridge
# =============================================================================
# Developer/admin tooling for local testing against a real Connect instance.
# Uses the same dispatch system as Lambda handlers.
#
# Usage:
#   python tools/cli.py ping
#   python tools/cli.py list_actions
#   python tools/cli.py inbound_message --number +640000001 --text "Hi"
#   python tools/cli.py --json '{"action": "ping"}'
# =============================================================================

import argparse
import json
import sys
import os
import logging

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.runtime.envelope import Envelope
from src.runtime.dispatch import dispatch
from src.runtime.deps import create_deps


def build_payload(args: argparse.Namespace) -> dict:
    """Build a direct-invoke payload from parsed arguments."""
    if args.file:
        with open(args.file, "r") as f:
            return json.load(f)
    if args.json:
        return json.loads(args.json)
    if not args.action:
        return {}

    payload = {"action": args.action}
    if args.number:
        payload["originatingNumber"] = args.number
    if args.text:
        payload["messageContent"] = args.text
    if args.agent_initiated:
        payload["isFirstMessage"] = False
    if args.category:
        payload["category"] = args.category
    if args.event_type:
        payload["eventType"] = args.event_type
    if args.work_item_id:
        payload["pendingServiceRouting"] = {"WorkItemId": args.work_item_id}
    return payload


def main():
    parser = argparse.ArgumentParser(
        description="Connect SMS Bridge CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ping
  %(prog)s list_actions --category messaging
  %(prog)s inbound_message --number +640000001 --text "Hi"
  %(prog)s inbound_message --number +640000001 --agent-initiated
  %(prog)s start_task_contact --event-type CREATE --work-item-id 0MwXX0000000001
  %(prog)s --json '{"action": "ping"}'
  %(prog)s --file request.json
        """
    )

    parser.add_argument("action", nargs="?", help="Action to execute")
    parser.add_argument("--json", "-j", help="JSON payload (overrides action)")
    parser.add_argument("--file", "-f", help="JSON file to load payload from")
    parser.add_argument("--pretty", "-p", action="store_true", help="Pretty print output")
    parser.add_argument("--region", "-r", default=None, help="AWS region")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at INFO level")

    parser.add_argument("--number", help="Customer phone number")
    parser.add_argument("--text", help="Message text")
    parser.add_argument("--agent-initiated", action="store_true", help="Open the chat without delivering text")
    parser.add_argument("--category", help="Category filter")
    parser.add_argument("--event-type", help="Salesforce routing event type")
    parser.add_argument("--work-item-id", help="Salesforce work item ID")

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    payload = build_payload(args)
    if not payload:
        parser.print_help()
        sys.exit(1)

    payload["_source"] = "cli"

    envelope = Envelope.from_action_request(payload, source="cli")
    deps = create_deps(region=args.region)

    result = dispatch(envelope, deps)

    if args.pretty:
        print(json.dumps(result, indent=2, ensure_ascii=False, default=str))
    else:
        print(json.dumps(result, ensure_ascii=False, default=str))

    if result.get("statusCode", 200) >= 400:
        sys.exit(1)


if __name__ == "__main__":
    main()
