"""
Shared value types for EventKit Bridge.
"""

from dataclasses import dataclass
from enum import Enum


class PermissionDomain(Enum):
    """Protected data categories the OS grants or denies independently."""
    REMINDERS = "reminders"
    CALENDARS = "calendars"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: str) -> 'PermissionDomain':
        """Parse a domain name, accepting 'calendar' and 'reminder' too."""
        normalized = value.strip().lower()
        if not normalized.endswith('s'):
            normalized += 's'
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(
                f"Unknown permission domain: {value!r} "
                f"(expected one of: {', '.join(d.value for d in cls)})"
            ) from None


@dataclass(frozen=True)
class PermissionFailure:
    """A helper failure that matched a permission-denial signature."""
    domain: PermissionDomain
    raw_message: str

    def to_dict(self):
        return {
            'domain': self.domain.value,
            'raw_message': self.raw_message,
        }
