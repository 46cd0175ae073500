"""Rendering helpers shared by the test modules."""

from __future__ import annotations

from typing import Any

from mdv.config import Config
from mdv.events import Event
from mdv.renderer import EventRenderer, TerminalRenderer
from mdv.theme import ThemeManager
from mdv.utils import strip_ansi, visible_width


def make_config(cols: int = 80, **overrides: Any) -> Config:
    """Config with a fixed width so output does not depend on the real terminal."""
    return Config(cols=cols, cols_from_cli=True, **overrides)


def render(text: str, cols: int = 80, **overrides: Any) -> str:
    return TerminalRenderer(make_config(cols, **overrides)).render_markdown(text)


def render_plain(text: str, cols: int = 80, **overrides: Any) -> str:
    """Render with colours off, which also disables hyperlink escapes."""
    overrides.setdefault("no_colors", True)
    return render(text, cols, **overrides)


def render_events(events: list[Event], cols: int = 80, **overrides: Any) -> str:
    overrides.setdefault("no_colors", True)
    config = make_config(cols, **overrides)
    theme = ThemeManager().get_theme(config.theme).copy()
    return EventRenderer(config, theme).render(events)


def plain_lines(output: str) -> list[str]:
    return strip_ansi(output).split("\n")


def widest_line(output: str) -> int:
    return max((visible_width(line) for line in plain_lines(output)), default=0)
