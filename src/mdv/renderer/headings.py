"""Heading layout: indentation per level, centring, empty-heading markers."""

from __future__ import annotations

from typing import Iterable

from mdv import events as ev
from mdv.config import HeadingLayout
from mdv.theme import HEADING_ELEMENTS, create_style
from mdv.utils import is_blank, visible_width, wrap_text_with_mode

RESET = "\x1b[0m"


def heading_indents(layout: HeadingLayout, level: int) -> tuple[int, int]:
    """``(heading indent, content indent)`` for *level* under *layout*."""
    match layout:
        case HeadingLayout.LEVEL:
            return level - 1, level
        case HeadingLayout.FLAT:
            return 0, 1
        case _:
            return 0, 0


def plan_smart_indents(events: Iterable[ev.Event]) -> dict[int, int]:
    """Heading indent per level, closing the gaps left by unused levels.

    With ``#`` and ``###`` only, ``###`` is indented like a second level.
    The shallowest level present gets no indent.
    """
    present = [False] * 6
    for event in events:
        if isinstance(event, ev.Start) and isinstance(event.tag, ev.Heading):
            present[min(max(event.tag.level, 1), 6) - 1] = True

    if not any(present):
        return {}

    min_idx = present.index(True)
    planned: dict[int, int] = {}
    for idx, is_present in enumerate(present):
        if not is_present:
            continue
        missing_between = sum(1 for gap in range(min_idx + 1, idx) if not present[gap])
        planned[idx + 1] = max(idx - missing_between - min_idx, 0)
    return planned


class HeadingMixin:
    def handle_heading_start(self, level: int) -> None:
        self.placeholder.finalize(self.output)

        if (
            self.config.heading_layout is HeadingLayout.LEVEL
            and self.config.smart_indent
            and level in self.smart_level_indents
        ):
            planned = self.smart_level_indents[level]
            self.heading_indent, self.content_indent = planned, planned + 1
        else:
            self.heading_indent, self.content_indent = heading_indents(
                self.config.heading_layout, level
            )

        self.current_heading_level = level
        self.trim_trailing_blank_lines()
        self.ensure_contextual_blank_line()
        if self.has_trailing_blank_line():
            self.normalize_trailing_blank_line()

        self.heading_line_start = len(self.output)
        self.current_heading_start = len(self.output)

    def handle_heading_end(self, level: int) -> None:
        start = self.current_heading_start
        self.current_heading_start = None
        self.current_heading_level = None
        if start is None:
            return

        # Inline styles and hyperlinks are kept; the heading style is restored after each reset
        raw = self.output.since(start)
        text = " ".join(part.strip() for part in raw.split("\n") if not is_blank(part))

        is_placeholder = is_blank(text)
        if is_placeholder:
            text = "#" * level

        style = create_style(self.theme, HEADING_ELEMENTS[min(max(level, 1), 6) - 1])
        reopen = RESET + style.opening(self.config.no_colors)
        width = self.config.get_terminal_width()
        quote_prefix = ""
        if self.blockquote_level > 0:
            quote_prefix = " " * self.content_indent + self.render_blockquote_prefix()

        rendered: list[str] = []
        for line in self.wrap_heading_text(text).split("\n"):
            styled = style.apply(line.replace(RESET, reopen), self.config.no_colors)
            if self.config.heading_layout is HeadingLayout.CENTER:
                padding = max((width - visible_width(line)) // 2, 0)
                rendered.append(quote_prefix + " " * padding + styled)
            else:
                rendered.append(quote_prefix + " " * self.heading_indent + styled)

        final = "\n".join(rendered)
        self.output.replace_tail(self.heading_line_start, final)
        if is_placeholder and not self.config.show_empty_elements:
            self.placeholder.mark_pending(self.heading_line_start, len(final))

        self.output.append("\n")
        if self.config.heading_layout is HeadingLayout.CENTER:
            self.output.append("\n")

    def wrap_heading_text(self, text: str) -> str:
        if not self.config.is_text_wrapping_enabled():
            return text

        width = self.config.get_terminal_width()
        if width < 20 or visible_width(text.strip()) < 10:
            return text

        effective = width - self.content_indent
        if self.blockquote_level > 0:
            effective -= self.blockquote_level + 1
        if self.config.heading_layout is not HeadingLayout.CENTER:
            effective = min(effective, width - self.heading_indent)
        if effective < 10:
            return text

        return wrap_text_with_mode(text, effective, self.config.text_wrap_mode())
