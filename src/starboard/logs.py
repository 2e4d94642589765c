"""Logging setup for the CLI and the TUI."""

import logging
from typing import Optional

from textual.logging import TextualHandler


LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"


def configure_logging(level: str = "WARNING", log_file: Optional[str] = None, tui: bool = False) -> None:
    """Configure root logging.
    
    Args:
        level: Log level name.
        log_file: Write records to this file instead of the console.
        tui: Route records to the Textual devtools console so they do not
             draw over the screen. Ignored when ``log_file`` is set.
    """
    handler: logging.Handler
    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    elif tui:
        handler = TextualHandler()
    else:
        handler = logging.StreamHandler()
    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT,
        handlers=[handler],
        force=True,
    )
