"""Rich Console factory and theme for modrollout output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract.  In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

ROLLOUT_THEME = Theme(
    {
        "mr.ok": "bold green",
        "mr.error": "bold red",
        "mr.warning": "bold yellow",
        "mr.op": "bold cyan",
        "mr.key": "dim",
        "mr.module": "bold blue",
        "mr.version": "magenta",
        "mr.layer": "bold",
        "mr.reason.up-to-date": "green",
        "mr.reason.unresolved": "yellow",
        "mr.reason.not-managed": "dim",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=ROLLOUT_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_reason(reason: str) -> str:
    """Return the Rich style name for a skip reason."""
    return f"mr.reason.{reason}" if reason in {"up-to-date", "unresolved", "not-managed"} else ""
