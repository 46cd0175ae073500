"""Running text: wrapping words into the current block context."""

from __future__ import annotations

from typing import Callable

import grapheme

from mdv.theme import ThemeElement
from mdv.utils import WrapMode, split_words, strip_ansi, visible_width

# A word starting with one of these stays on the line it follows
_NO_BREAK_BEFORE = (",", ".", ";", ":", "!", "?", ")", "]", "}")


def split_units(text: str, mode: WrapMode) -> list[str]:
    """Break *text* into the pieces the wrapper places one at a time.

    Word mode yields alternating whitespace and word runs, char mode yields
    grapheme clusters, and with wrapping off the text stays whole.
    """
    if mode is WrapMode.WORD:
        return [unit for unit, _is_space in split_words(text)]
    if mode is WrapMode.CHAR:
        return list(grapheme.graphemes(text))
    return [text]


def line_units(text: str, mode: WrapMode, room: int) -> list[tuple[str, bool]]:
    """Like :func:`split_units`, but words wider than *room* come back as
    graphemes flagged as breakable anywhere."""
    units: list[tuple[str, bool]] = []
    for unit in split_units(text, mode):
        if mode is WrapMode.WORD and unit.strip() and visible_width(unit) > room:
            units.extend((piece, True) for piece in grapheme.graphemes(unit))
        else:
            units.append((unit, False))
    return units


class TextMixin:
    def handle_text(self, text: str) -> None:
        if self.in_code_block:
            self.code_block_content += text
            return

        if self.in_link:
            self.current_link_text += text
            return

        self.write_text(text)
        self.placeholder.commit_if_content(self.output)

    def write_text(self, text: str) -> None:
        if self.table_state is not None:
            self.table_state.current_cell += self.apply_formatting(text)
            return

        if self.current_heading_start is not None:
            # Heading text is restyled and wrapped as a whole when the heading ends
            self.output.append(self.apply_formatting(text))
            return

        if self.blockquote_level > 0 and not self.output.last_line().strip():
            self.output.append(self.current_line_prefix())

        if not self.config.is_text_wrapping_enabled():
            formatted = self.apply_formatting(text)
            if self.at_line_start() and text.strip():
                self.push_indent_for_line_start()
            self.output.append(formatted)
            return

        if ThemeElement.STRIKETHROUGH in self.formatting_stack:
            self.write_fragments(text, self.apply_formatting)
        else:
            self.write_units(text)

    def current_line_width(self) -> int:
        return visible_width(strip_ansi(self.output.last_line()))

    def line_has_content(self) -> bool:
        return bool(strip_ansi(self.output.last_line()).strip())

    def should_break_before(self, unit: str) -> bool:
        if self.config.text_wrap_mode() is WrapMode.WORD:
            return not unit.lstrip().startswith(_NO_BREAK_BEFORE)
        return True

    def write_units(self, text: str) -> None:
        """Place *text* unit by unit, breaking lines at the terminal width."""
        width = self.config.get_terminal_width()
        mode = self.config.text_wrap_mode()

        for unit in split_units(text, mode):
            if not unit.strip():
                # Whitespace never starts a line, and is dropped at a break
                if self.at_line_start():
                    continue
                if self.current_line_width() + visible_width(unit) > width:
                    self.push_newline_with_context()
                else:
                    self.output.append(unit)
                continue

            if mode is WrapMode.WORD and visible_width(unit) > width - self.compute_line_start_context_width():
                # A word wider than a whole line starts a fresh line and is split by character
                if self.current_line_width() > self.compute_line_start_context_width():
                    self.push_newline_with_context()
                for piece in grapheme.graphemes(unit):
                    self.place_unit(piece, width, force_break=True)
                continue

            self.place_unit(unit, width)

    def place_unit(self, unit: str, width: int, force_break: bool = False) -> None:
        if self.current_line_width() + visible_width(unit) > width and self.line_has_content():
            if force_break or self.should_break_before(unit):
                self.push_newline_with_context()

        if self.at_line_start():
            self.push_indent_for_line_start()
        self.output.append(self.apply_formatting(unit))

    def write_fragments(self, text: str, style: Callable[[str], str]) -> None:
        """Wrap *text* while styling each visual line as one run.

        Used for underlined link text and strikethrough, where styling word
        by word would leave unstyled gaps between words.
        """
        if not self.config.is_text_wrapping_enabled():
            if self.at_line_start() and text.strip():
                self.push_indent_for_line_start()
            self.output.append(style(text))
            return

        width = self.config.get_terminal_width()
        mode = self.config.text_wrap_mode()

        if self.at_line_start() and text.strip():
            self.push_indent_for_line_start()

        start_width = self.current_line_width()
        if width - start_width <= 1 and text.strip():
            self.push_newline_with_context()
            start_width = self.compute_line_start_context_width()

        room = width - self.compute_line_start_context_width()
        fragment = ""
        for idx, (unit, forced) in enumerate(line_units(text, mode, room)):
            unit_width = visible_width(unit)
            exceeds = start_width + visible_width(fragment) + unit_width > width

            if not unit.strip() and idx > 0:
                if exceeds and fragment.strip():
                    self._flush_fragment(fragment, style)
                    self.push_newline_with_context()
                    start_width = self.compute_line_start_context_width()
                    fragment = ""
                else:
                    fragment += unit
                continue

            if exceeds and fragment.strip():
                self._flush_fragment(fragment, style)
                if forced or self.should_break_before(unit):
                    self.push_newline_with_context()
                    start_width = self.compute_line_start_context_width()
                else:
                    start_width = self.current_line_width()
                fragment = unit
                continue

            if exceeds and not fragment and start_width > self.compute_line_start_context_width():
                self.push_newline_with_context()
                start_width = self.compute_line_start_context_width()
            fragment += unit

        if fragment:
            self._flush_fragment(fragment, style)

    def _flush_fragment(self, fragment: str, style: Callable[[str], str]) -> None:
        body = fragment.rstrip()
        trailing = fragment[len(body):]
        if body:
            self.output.append(style(body) + trailing)
        else:
            self.output.append(trailing)
