"""Building blocks for group-chat bot features: reminders, group management and entertainment."""

__version__ = "0.1.0"