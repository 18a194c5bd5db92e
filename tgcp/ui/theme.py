"""
Color themes.

Themes name colors from the eight basic terminal colors; the renderer
turns them into curses color pairs. Column color maps use the semantic
names "green", "yellow" and "red", which a theme may remap.
"""

from dataclasses import dataclass, field
from typing import Optional

DEFAULT_THEME = "default"


@dataclass(frozen=True)
class Theme:
    name: str
    accent: str = "cyan"
    header_fg: str = "black"
    header_bg: str = "cyan"
    selection_fg: str = "black"
    selection_bg: str = "white"
    marked: str = "magenta"
    border: str = "blue"
    error: str = "red"
    # Semantic status colors used by column color maps
    palette: dict[str, str] = field(
        default_factory=lambda: {"green": "green", "yellow": "yellow", "red": "red"}
    )

    def status_color(self, semantic: str) -> str:
        return self.palette.get(semantic, semantic)


THEMES: dict[str, Theme] = {
    "default": Theme("default"),
    "dracula": Theme("dracula", accent="magenta", header_bg="magenta", border="magenta"),
    "monokai": Theme("monokai", accent="yellow", header_bg="yellow", border="green"),
    "nord": Theme("nord", accent="blue", header_bg="blue", header_fg="white", border="cyan"),
    "gruvbox": Theme("gruvbox", accent="yellow", header_bg="yellow", border="red"),
    "solarized": Theme("solarized", accent="blue", header_bg="cyan", border="blue"),
    # Loud header so production projects are unmistakable
    "production": Theme(
        "production", accent="red", header_bg="red", header_fg="white", border="red"
    ),
}
THEME_ALIASES = {"prod": "production", "solarized-dark": "solarized"}


def list_available() -> list[str]:
    return list(THEMES)


def get_theme(name: str) -> Optional[Theme]:
    return THEMES.get(THEME_ALIASES.get(name, name))


class ThemeManager:
    """Holds the active theme."""

    def __init__(self, name: str = DEFAULT_THEME) -> None:
        self.current = get_theme(name) or THEMES[DEFAULT_THEME]

    def set_theme(self, name: str) -> bool:
        """Switch themes; returns False (and keeps the current one) if unknown."""
        theme = get_theme(name)
        if theme is None:
            return False
        self.current = theme
        return True

    @property
    def name(self) -> str:
        return self.current.name
