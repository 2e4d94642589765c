"""Terminal UI for Starboard."""

from .app import StarboardApp

__all__ = ["StarboardApp"]
