"""Console styling for token metadata commands."""

from __future__ import annotations

from rich.console import Console
from rich.theme import Theme

TOKEN_METADATA_THEME = Theme(
    {
        "tm.label": "#94A3B8",
        "tm.success": "bold #14F195",
        "tm.error": "bold #FB7185",
        "tm.link": "underline #38BDF8",
    }
)


def themed_console(**kwargs: object) -> Console:
    """Return a Console configured with the token metadata theme."""
    return Console(theme=TOKEN_METADATA_THEME, **kwargs)


__all__ = ["TOKEN_METADATA_THEME", "themed_console"]
