"""Rich Console factory and theme for votectl output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract.  In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

VOTE_THEME = Theme(
    {
        "vote.ok": "bold green",
        "vote.error": "bold red",
        "vote.warning": "bold yellow",
        "vote.op": "bold cyan",
        "vote.key": "dim",
        "vote.pubkey": "bold blue",
        "vote.path": "dim",
        "vote.slot": "bold",
        "vote.miss": "bold red",
        "vote.skip": "yellow",
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
        theme=VOTE_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 160,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
