"""Rich Console factory and theme for zonectl output.

Consoles render into a StringIO buffer so every renderer keeps the
``format_result() -> str`` contract. In non-TTY environments (tests,
pipes) Rich disables color codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

ZONE_THEME = Theme(
    {
        "zone.ok": "bold green",
        "zone.error": "bold red",
        "zone.warning": "bold yellow",
        "zone.op": "bold cyan",
        "zone.key": "dim",
        "zone.id": "bold blue",
        "zone.name": "bold",
        "zone.coords": "magenta",
        "zone.price": "yellow",
        "zone.kind.gate": "red",
        "zone.kind.trigger": "red",
        "zone.kind.corner": "green",
        "zone.kind.waypoint": "cyan",
        "zone.kind.label": "blue",
        "zone.kind.sweep": "dim",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=ZONE_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_kind(kind: str) -> str:
    """Rich style for a primitive kind (``gate``, ``corner``, ...)."""
    return f"zone.kind.{kind}" if kind else ""
