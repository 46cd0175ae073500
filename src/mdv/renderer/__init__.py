"""Markdown to terminal text."""

from __future__ import annotations

import logging

from mdv.config import Config
from mdv.events import Event
from mdv.highlight import SyntaxCatalog, resolve_code_style
from mdv.markdown import MarkdownProcessor
from mdv.renderer.engine import EventRenderer
from mdv.theme import ThemeManager, resolve_theme

logger = logging.getLogger(__name__)

__all__ = ["EventRenderer", "TerminalRenderer"]


class TerminalRenderer:
    """Owns the resolved theme, code style and syntax catalogue for a config.

    One instance can render any number of documents; each render gets a
    fresh :class:`EventRenderer`.
    """

    def __init__(self, config: Config, manager: ThemeManager | None = None) -> None:
        self.config = config
        self.manager = manager or ThemeManager()
        self.theme = resolve_theme(
            config.theme, config.custom_theme, config.custom_code_theme, self.manager
        )
        self.code_style = resolve_code_style(
            config.code_theme, self.theme, self.manager, config.custom_code_theme
        )
        self.catalog = SyntaxCatalog()
        self.processor = MarkdownProcessor(config)
        logger.debug(
            "Renderer ready: theme=%s width=%d", self.theme.name, config.get_terminal_width()
        )

    def render(self, events: list[Event]) -> str:
        renderer = EventRenderer(self.config, self.theme, self.catalog, self.code_style)
        return renderer.render(events)

    def render_markdown(self, text: str) -> str:
        return self.render(self.processor.parse(text))

    def to_html(self, text: str) -> str:
        return self.processor.to_html(text)
