"""
Helper argument protocol.

The helper takes `--action <name>` followed by `--<field> <value>` pairs.
Field names are camelCase on the helper side; snake_case keyword names are
converted, so `due_date=` becomes `--dueDate`.
"""

from typing import Any, Dict, List, Optional, Sequence

ACTION_FLAG = "--action"


def to_flag_name(field: str) -> str:
    """Convert a snake_case field name to the helper's camelCase flag."""
    head, *rest = field.split('_')
    return head + ''.join(part[:1].upper() + part[1:] for part in rest)


def format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_field_args(fields: Optional[Dict[str, Any]] = None) -> List[str]:
    """Render keyword fields as flag/value pairs, skipping None."""
    args: List[str] = []
    for name, value in (fields or {}).items():
        if value is None:
            continue
        args.extend([f"--{to_flag_name(name)}", format_value(value)])
    return args


def build_helper_args(action: str, **fields: Any) -> List[str]:
    """
    Build a complete argument vector for one helper action.

    >>> build_helper_args("create", title="Buy milk", due_date=None, flagged=True)
    ['--action', 'create', '--title', 'Buy milk', '--flagged', 'true']
    """
    return with_action(action, build_field_args(fields))


def with_action(action: str, args: Sequence[str]) -> List[str]:
    """Prefix `--action <action>` to already-rendered field arguments."""
    if not action or not action.strip():
        raise ValueError("action name must be a non-empty string")
    return [ACTION_FLAG, action] + list(args)


__all__ = [
    'ACTION_FLAG',
    'build_helper_args',
    'build_field_args',
    'with_action',
    'to_flag_name',
    'format_value',
]
