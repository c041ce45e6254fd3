"""Room Concierge: conversational meeting-room booking engine."""

__version__ = "0.1.0"
