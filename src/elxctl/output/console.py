"""Rich Console factory and theme for elxctl output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract. In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

ELX_THEME = Theme(
    {
        "elx.ok": "bold green",
        "elx.error": "bold red",
        "elx.warning": "bold yellow",
        "elx.op": "bold cyan",
        "elx.key": "dim",
        "elx.id": "bold blue",
        "elx.reference": "bold",
        "elx.money": "magenta",
        "elx.status.active": "cyan",
        "elx.status.held": "yellow",
        "elx.status.done": "green",
        "elx.status.cancelled": "red",
    }
)

_STATUS_STYLES: dict[str, str] = {
    "on_hold": "elx.status.held",
    "delivered": "elx.status.done",
    "cancelled": "elx.status.cancelled",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=ELX_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_status(status: str) -> str:
    """Return the Rich style name for a shipment status."""
    return _STATUS_STYLES.get(status, "elx.status.active")
