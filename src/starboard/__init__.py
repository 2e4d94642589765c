"""Starboard - live GitHub star counts for an organisation's repositories."""

__version__ = "0.1.0"
