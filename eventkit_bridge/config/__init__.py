"""
Configuration Module for EventKit Bridge.

Provides layered settings loading:
- Built-in defaults and per-environment validation profiles
- JSON and YAML settings files
- EVENTKIT_BRIDGE_* environment overrides
"""

from .bridge_config import (
    CONFIG_ENV_VAR,
    ENVIRONMENT_PROFILES,
    SETTINGS_KEYS,
    BridgeSettings,
    ValidationProfile,
    default_allowed_prefixes,
    default_candidates,
    find_project_root,
    load_bridge_settings,
)

__all__ = [
    'CONFIG_ENV_VAR',
    'ENVIRONMENT_PROFILES',
    'SETTINGS_KEYS',
    'BridgeSettings',
    'ValidationProfile',
    'default_allowed_prefixes',
    'default_candidates',
    'find_project_root',
    'load_bridge_settings',
]
