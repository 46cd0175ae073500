"""Inline code spans and fenced/indented code blocks.

Code blocks are drawn in one of two frames. ``simple`` prefixes every line
with a bar, ``pretty`` draws a rounded box with the language in the top
border. A pretty frame that cannot fit falls back to the simple one.
Blocks tagged as text or markdown are rendered as nested markdown.
"""

from __future__ import annotations

import dataclasses

from mdv.config import CodeBlockStyle
from mdv.highlight import highlight_code, resolve_language_label
from mdv.markdown import MarkdownProcessor
from mdv.renderer.state import CapturedReferenceBlock
from mdv.terminal import AnsiStyle
from mdv.utils import (
    WrapMode,
    is_blank,
    strip_ansi,
    take_prefix_by_width,
    visible_width,
    wrap_text_with_mode,
)

PLAINTEXT_HINTS = frozenset({"text", "plain", "plaintext", "txt", "markdown", "md"})

# One column of padding on each side of the text inside a pretty frame
FRAME_PADDING = 2


def split_lines(text: str) -> list[str]:
    """Split on ``\\n``; a trailing newline does not start another line."""
    if not text:
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return lines


class CodeBlockMixin:
    # -- inline code --------------------------------------------------------

    def handle_inline_code(self, code: str) -> None:
        style = AnsiStyle().fg(self.theme.code)
        raw = f"`{code}`"

        if self.table_state is not None:
            self.table_state.current_cell += style.apply(raw, self.config.no_colors)
            return

        if self.current_heading_start is not None or not self.config.is_text_wrapping_enabled():
            self.output.append(style.apply(raw, self.config.no_colors))
            self.placeholder.commit_if_content(self.output)
            return

        if self.at_line_start():
            self.push_indent_for_line_start()

        width = self.config.get_terminal_width()
        word_mode = self.config.text_wrap_mode() is WrapMode.WORD
        remaining = raw

        while remaining:
            line_width = self.current_line_width()
            available = max(width - line_width, 0)
            if available == 0:
                self.push_newline_with_context()
                continue

            has_content = line_width > min(self.compute_line_start_context_width(), line_width)

            if word_mode and visible_width(remaining) <= available:
                self.output.append(style.apply(remaining, self.config.no_colors))
                remaining = ""
            elif word_mode and has_content:
                # Move the whole span to the next line before splitting it
                self.push_newline_with_context()
            else:
                chunk, remaining = take_prefix_by_width(remaining, available)
                if not chunk:
                    chunk, remaining = remaining[0], remaining[1:]
                self.output.append(style.apply(chunk, self.config.no_colors))
                if remaining:
                    self.push_newline_with_context()

        self.placeholder.commit_if_content(self.output)

    # -- code blocks ----------------------------------------------------------

    def handle_code_block_end(self) -> None:
        self.in_code_block = False
        content = self.code_block_content
        hint = self.code_block_language
        self.code_block_content = ""
        self.code_block_language = None

        show_empty = self.config.show_empty_elements
        if not content.strip() and not show_empty:
            return

        references: list[CapturedReferenceBlock] = []
        if self.is_plaintext_hint(hint):
            highlighted, references = self.render_plaintext_code_block(content)
        else:
            lexer = self.catalog.resolve_syntax(hint, content, self.config.code_guessing)
            highlighted = highlight_code(content, lexer, self.code_style, self.config.no_colors)

        if is_blank(strip_ansi(highlighted)):
            if not show_empty:
                return
            if not highlighted:
                highlighted = "\n"

        label = None
        if not self.config.no_code_language:
            if hint is None:
                label = "Text"
            else:
                lexer = self.catalog.resolve_syntax(hint, content, self.config.code_guessing)
                label = resolve_language_label(hint, lexer)

        starts_with_blank = content.startswith("\n")
        self.ensure_contextual_blank_line()

        if self.config.code_block_style is CodeBlockStyle.PRETTY:
            self.render_code_block_pretty(highlighted, label, starts_with_blank)
        else:
            self.render_code_block_simple(highlighted, label, starts_with_blank)

        if references:
            self.append_captured_reference_blocks(references)
        else:
            self.ensure_contextual_blank_line()
        self.placeholder.commit_if_content(self.output)

    def is_plaintext_hint(self, hint: str | None) -> bool:
        if self.plaintext_depth > 0 or hint is None:
            return False
        return hint.strip().lower() in PLAINTEXT_HINTS

    def render_code_block_simple(self, highlighted: str, label: str | None, starts_with_blank: bool) -> None:
        width = self.config.get_terminal_width()
        should_wrap = self.config.is_text_wrapping_enabled()
        mode = self.config.text_wrap_mode()
        border = self.render_code_block_border()

        def available() -> int:
            return max(width - (self.compute_line_start_context_width() + 2), 0)

        if label is not None:
            label = label.strip() or "Text"
            room = available()
            wrapped = wrap_text_with_mode(label, room, mode) if should_wrap and room > 0 else label
            for part in wrapped.split("\n"):
                self.push_indent_for_line_start()
                self.output.append(border + self.style_accent(part) + "\n")
            if not starts_with_blank:
                self.push_indent_for_line_start()
                self.output.append(border + "\n")

        for line in split_lines(highlighted):
            room = available()
            wrapped = wrap_text_with_mode(line, room, mode) if should_wrap and room > 0 else line
            for part in wrapped.split("\n"):
                self.push_indent_for_line_start()
                self.output.append(border + part + "\n")

    def render_code_block_pretty(self, highlighted: str, label: str | None, starts_with_blank: bool) -> None:
        def fallback() -> None:
            self.render_code_block_simple(highlighted, label, starts_with_blank)

        width = self.config.get_terminal_width()
        max_inner_width = width - self.compute_line_start_context_width()
        if max_inner_width <= 4:
            return fallback()

        max_text_width = max_inner_width - 2
        if max_text_width < FRAME_PADDING + 1:
            return fallback()

        raw_lines = split_lines(highlighted)
        max_line_width = max((visible_width(strip_ansi(line)) for line in raw_lines), default=0)
        wrap_width = max_text_width - FRAME_PADDING
        needs_wrap = (
            self.config.is_text_wrapping_enabled()
            and max_line_width + FRAME_PADDING > max_text_width
        )

        parts: list[str] = []
        if needs_wrap:
            if wrap_width <= 0:
                return fallback()
            for line in raw_lines:
                parts.extend(wrap_text_with_mode(line, wrap_width, self.config.text_wrap_mode()).split("\n"))
            max_part_width = max((visible_width(strip_ansi(p)) for p in parts), default=0)
            if max_part_width > wrap_width:
                return fallback()
        else:
            parts = list(raw_lines)
            max_part_width = max_line_width
            if max_part_width + FRAME_PADDING > max_text_width:
                return fallback()

        if not parts:
            parts = [""]

        text_width = max_part_width + FRAME_PADDING
        inner_width = text_width + 2

        trimmed_label = label.strip() if label else ""
        if trimmed_label:
            label_width = visible_width(trimmed_label)
            block_is_empty = all(is_blank(strip_ansi(p)) for p in parts)
            if block_is_empty and label_width + 6 > max_inner_width:
                return fallback()
            # Leave at least one dash after the label: "╭─ Text ─╮"
            required = min(label_width + 6, max_inner_width)
            if inner_width < required:
                inner_width = required
                text_width = inner_width - 2

        self.push_indent_for_line_start()
        self.output.append(self.render_pretty_top_border(inner_width, trimmed_label) + "\n")
        for part in parts:
            self.push_indent_for_line_start()
            self.output.append(self.render_pretty_content_line(text_width, part) + "\n")
        self.push_indent_for_line_start()
        self.output.append(self.render_pretty_bottom_border(inner_width) + "\n")

    def render_pretty_top_border(self, inner_width: int, label: str) -> str:
        line = "╭"
        if inner_width <= 1:
            return self.style_accent(line)

        middle = inner_width - 2
        if middle > 0:
            line += "─"
            middle -= 1

        if label and middle > 1:
            text, _rest = take_prefix_by_width(label, middle - 1)
            if text:
                line += " " + text
                middle -= 1 + visible_width(text)
                if middle > 0:
                    line += " "
                    middle -= 1

        line += "─" * middle + "╮"
        return self.style_accent(line)

    def render_pretty_bottom_border(self, inner_width: int) -> str:
        return self.style_accent("╰" + "─" * max(inner_width - 2, 0) + "╯")

    def render_pretty_content_line(self, text_width: int, part: str) -> str:
        content_width = visible_width(strip_ansi(part))
        inner = max(1 + content_width, 2)
        padding = (inner - (1 + content_width)) + max(text_width - inner, 0)
        bar = self.style_accent("│")
        return f"{bar} {part}{' ' * padding}{bar}"

    # -- nested markdown ------------------------------------------------------

    def render_plaintext_code_block(self, code: str) -> tuple[str, list[CapturedReferenceBlock]]:
        """Render *code* as markdown inside the frame.

        Link references collected by the nested render are returned rather
        than written, so they end up below the frame.
        """
        nested = dataclasses.replace(self.config, from_text=None)
        width = self.estimate_plaintext_block_width()
        if width is not None:
            nested.cols = width
            nested.cols_from_cli = True

        events = MarkdownProcessor(nested).parse(code)
        child = type(self)(
            nested,
            self.theme,
            self.catalog,
            self.code_style,
            plaintext_depth=self.plaintext_depth + 1,
        )
        body = child.render(events).rstrip("\n")
        return body, child.captured_reference_blocks

    def estimate_plaintext_block_width(self) -> int | None:
        width = self.config.get_terminal_width()
        if width <= 0:
            return None

        available = width - self.compute_line_start_context_width()
        if available <= 0:
            return None

        if self.config.code_block_style is CodeBlockStyle.PRETTY and available > 4:
            estimate = available - 2 - FRAME_PADDING
            if estimate <= 0:
                estimate = available - 2
        else:
            estimate = available - 2
        return max(estimate, 1)

    def append_captured_reference_blocks(self, blocks: list[CapturedReferenceBlock]) -> None:
        for block in blocks:
            self.output.append("\n" if self.output.ends_with("\n") else "\n\n")
            for idx, line in enumerate(block.lines):
                if idx > 0:
                    self.output.append("\n")
                self.push_indent_for_line_start()
                self.output.append(line)
            if block.add_trailing_newline:
                self.output.append("\n")
                if block.in_list:
                    self.output.append("\n")
        self.ensure_contextual_blank_line()
