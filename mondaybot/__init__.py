"""MondayBot: relays Monday.com item events to Discord threads and back."""

__version__ = "1.0.0"
