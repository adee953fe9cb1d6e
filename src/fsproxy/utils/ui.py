"""
User Interface Utilities.
Provides rich console output and log handler setup.
File: src/fsproxy/utils/ui.py
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

# Logs and banners go to stderr; stdout stays free for piping
console = Console(stderr=True)


def setup_logging(level: int = logging.INFO) -> None:
    """
    Route stdlib logging through rich.

    Usage:
        setup_logging(logging.DEBUG)
        logging.getLogger("fsproxy").info("ready")
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def print_header(title: str, subtitle: str = ""):
    """Prints a styled header."""
    console.rule(f"[bold blue]{title}")
    if subtitle:
        console.print(f"[dim]{subtitle}[/dim]", justify="center")
    console.print()
