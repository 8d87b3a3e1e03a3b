"""
Logging setup using Rich.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

from shadowbubble.config import get_settings


def setup_logging(level: str | None = None) -> None:
    """Configure console logging with Rich.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to the
            configured ``log_level`` setting.
    """
    if level is None:
        level = get_settings().log_level
    console = Console(stderr=True)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=console,
                show_time=True,
                show_path=False,
                rich_tracebacks=True,
                tracebacks_show_locals=False,
                markup=False,
            )
        ],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
