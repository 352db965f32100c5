#!/usr/bin/env python3
"""
eventkit-bridgectl - EventKit Bridge Control CLI

Operator tool for checking and exercising the native helper.

Commands:
    resolve         Show which helper binary would be executed
    status          Check Reminders/Calendars permission status
    prompt          Show the macOS consent dialog for a domain
    run             Run a helper action and print its JSON result

Usage:
    eventkit-bridgectl resolve
    eventkit-bridgectl status --domain calendars
    eventkit-bridgectl prompt reminders
    eventkit-bridgectl run read --showCompleted false
    eventkit-bridgectl --config bridge.yaml run create --title "Buy milk"

Exit codes:
    0   success (status: every checked domain granted)
    1   bridge error (status: a domain is not granted)
    2   usage error

Environment:
    EVENTKIT_BRIDGE_CONFIG   Path to settings file (JSON or YAML)
    EVENTKIT_BRIDGE_ENV      production, development or test
"""

import argparse
import json
import sys
from typing import List, Optional

from ..bridge import EventKitBridge
from ..config import load_bridge_settings
from ..exceptions import BinaryResolutionError, BridgeError, PermissionDeniedError
from ..logging_config import configure_from_environment, get_logger
from ..models import PermissionDomain

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2


class UsageError(Exception):
    """Raised for arguments argparse cannot validate on its own."""
    pass


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def parse_field_args(raw: List[str]) -> List[str]:
    """
    Validate `--name value` pairs passed through to the helper.

    Raises:
        UsageError: a flag without a value or a value without a flag
    """
    if len(raw) % 2 != 0:
        raise UsageError(f"Expected '--field value' pairs, got: {' '.join(raw)}")
    for flag in raw[0::2]:
        if not flag.startswith('--') or len(flag) <= 2:
            raise UsageError(f"Expected a '--field' flag, got: {flag}")
    return list(raw)


def _parse_domain(value: str) -> PermissionDomain:
    try:
        return PermissionDomain.parse(value)
    except ValueError as e:
        raise UsageError(str(e)) from None


def _build_bridge(args) -> EventKitBridge:
    return EventKitBridge(load_bridge_settings(args.config))


def cmd_resolve(args):
    """Show the resolved helper path."""
    bridge = _build_bridge(args)
    try:
        path = bridge.binary_path()
    except BinaryResolutionError as e:
        print(f"Helper binary not available: {e}", file=sys.stderr)
        print("Candidates tried:", file=sys.stderr)
        print(e.describe_attempts(), file=sys.stderr)
        return EXIT_ERROR
    print(path)
    return EXIT_OK


def cmd_status(args):
    """Check permission status."""
    bridge = _build_bridge(args)
    if args.domain:
        status = bridge.check_status(_parse_domain(args.domain))
        _print_json(status.to_dict())
        return EXIT_OK if status.granted else EXIT_ERROR

    permissions = bridge.check_all_permissions()
    _print_json(permissions.to_dict())
    return EXIT_OK if permissions.all_granted else EXIT_ERROR


def cmd_prompt(args):
    """Trigger the consent dialog."""
    domain = _parse_domain(args.domain)
    bridge = _build_bridge(args)
    bridge.request_permission(domain)
    print(f"{domain.display_name} consent prompt completed")
    return EXIT_OK


def cmd_run(args):
    """Run a helper action."""
    fields = parse_field_args(args.fields)
    bridge = _build_bridge(args)
    result = bridge.execute(args.action, fields)
    _print_json(result)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='eventkit-bridgectl',
        description='EventKit Bridge Control CLI',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--config', '-c', help='Path to settings file (JSON or YAML)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose logging')
    parser.add_argument('--json-logs', action='store_true', help='Emit logs as JSON')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # resolve
    resolve_parser = subparsers.add_parser('resolve', help='Show the resolved helper binary')
    resolve_parser.set_defaults(func=cmd_resolve)

    # status
    status_parser = subparsers.add_parser('status', help='Check permission status')
    status_parser.add_argument('--domain', '-d', help='reminders or calendars (default: all)')
    status_parser.set_defaults(func=cmd_status)

    # prompt
    prompt_parser = subparsers.add_parser('prompt', help='Show the OS consent dialog')
    prompt_parser.add_argument('domain', help='reminders or calendars')
    prompt_parser.set_defaults(func=cmd_prompt)

    # run
    run_parser = subparsers.add_parser('run', help='Run a helper action')
    run_parser.add_argument('action', help='Helper action name (e.g. read, create-event)')
    run_parser.add_argument('fields', nargs=argparse.REMAINDER,
                            help='Field arguments as --name value pairs')
    run_parser.set_defaults(func=cmd_run)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_OK

    configure_from_environment(verbose=args.verbose, json_format=args.json_logs)

    try:
        return args.func(args)
    except UsageError as e:
        print(f"Usage error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except PermissionDeniedError as e:
        print(f"Error: {e}", file=sys.stderr)
        if e.trigger_error is not None:
            print(f"Consent prompt: {e.trigger_error}", file=sys.stderr)
        return EXIT_ERROR
    except BridgeError as e:
        logger.debug(f"Command '{args.command}' failed: {type(e).__name__}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
