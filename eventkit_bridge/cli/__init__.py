"""
CLI Module for EventKit Bridge

Provides command-line tools for operating the bridge:
- eventkit-bridgectl: resolve, status, prompt and run

Usage:
    python -m eventkit_bridge.cli.bridgectl status
"""

from .bridgectl import main as bridgectl_main

__all__ = [
    'bridgectl_main',
]
