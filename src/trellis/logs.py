from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

err_console = Console(stderr=True)


def setup_logging(level: str | int = "WARNING") -> None:
    """Configure logging for the trellis package. Safe to call more than once."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    verbose = level <= logging.DEBUG

    root = logging.getLogger("trellis")
    root.setLevel(level)
    if not any(isinstance(handler, RichHandler) for handler in root.handlers):
        handler = RichHandler(rich_tracebacks=True, console=err_console, show_path=verbose)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s" if verbose else "%(message)s"))
        root.addHandler(handler)
