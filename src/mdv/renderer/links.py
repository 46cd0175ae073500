"""Link rendering for the five link styles, plus URL wrapping and truncation."""

from __future__ import annotations

from mdv.config import LinkStyle, LinkTruncation
from mdv.renderer.state import CapturedReferenceBlock
from mdv.theme import ThemeElement, create_style
from mdv.utils import (
    char_width,
    strip_ansi,
    truncate_to_width,
    visible_width,
)

# Characters a long URL may be broken after
URL_BREAK_CHARS = "/?&=-_.:#"

OSC8_OPEN = "\x1b]8;;"
OSC8_CLOSE = "\x1b\\"
UNDERLINE_ON = "\x1b[4m"
RESET = "\x1b[0m"


def hyperlink(url: str, text: str) -> str:
    """Wrap *text* in an OSC 8 hyperlink to *url*."""
    return f"{OSC8_OPEN}{url}{OSC8_CLOSE}{text}{OSC8_OPEN}{OSC8_CLOSE}"


def find_url_break(text: str) -> int | None:
    """Offset just past the last break character in *text*, if any."""
    for idx in range(len(text) - 1, -1, -1):
        if text[idx] in URL_BREAK_CHARS:
            return idx + 1
    return None


def wrap_url(url: str, first_width: int, next_width: int, indent: str) -> str:
    """Break *url* into lines, preferring to cut after separator characters.

    The first line holds at most *first_width* columns, later lines
    *next_width* columns and start with *indent*.
    """
    lines: list[str] = []
    current = ""
    current_width = 0
    limit = first_width

    for ch in url:
        w = char_width(ch)
        if current and current_width + w > limit:
            cut = find_url_break(current)
            if cut is not None and cut < len(current):
                lines.append(current[:cut])
                current = current[cut:] + ch
            else:
                lines.append(current)
                current = ch
            current_width = visible_width(current)
            limit = next_width
        else:
            current += ch
            current_width += w

    if current:
        lines.append(current)
    return ("\n" + indent).join(lines)


class LinkMixin:
    def underline(self, text: str) -> str:
        if self.config.no_colors:
            return text
        return f"{UNDERLINE_ON}{text}{RESET}"

    def make_clickable(self, text: str, url: str) -> str:
        if self.config.no_colors:
            return text
        return hyperlink(url, text)

    def style_link(self, text: str) -> str:
        return create_style(self.theme, ThemeElement.LINK).apply(text, self.config.no_colors)

    # -- events -------------------------------------------------------------

    def handle_link_start(self, url: str) -> None:
        if self.table_state is None and self.current_heading_start is None:
            line_start = self.output.line_start()
            if not self.output.since(line_start).strip():
                self.output.truncate(line_start)
                self.push_indent_for_line_start()

        if self.config.link_style is LinkStyle.HIDE:
            return
        if self.config.link_style is LinkStyle.INLINE_TABLE:
            self.paragraph_link_counter += 1
            self.paragraph_links.append((f"[{self.paragraph_link_counter}]", url))

        self.current_link_url = url
        self.current_link_text = ""
        self.in_link = True

    def handle_link_end(self) -> None:
        if not self.in_link:
            self.placeholder.commit_if_content(self.output)
            return

        text = self.current_link_text
        url = self.current_link_url
        self.in_link = False
        self.current_link_text = ""

        if self.current_heading_start is not None:
            self._write_heading_link(text, url)
        else:
            match self.config.link_style:
                case LinkStyle.CLICKABLE | LinkStyle.CLICKABLE_FORCED:
                    self._write_clickable_link(text, url)
                case LinkStyle.INLINE:
                    self._write_inline_link(text, url)
                case LinkStyle.INLINE_TABLE:
                    self._write_reference_link(text, url)

        self.placeholder.commit_if_content(self.output)

    def _write_heading_link(self, text: str, url: str) -> None:
        # The heading style is applied around the whole line when the heading ends
        match self.config.link_style:
            case LinkStyle.CLICKABLE | LinkStyle.CLICKABLE_FORCED:
                self.output.append(self.make_clickable(text, url))
            case LinkStyle.INLINE:
                self.output.append(f"{text} ({url})")
            case LinkStyle.INLINE_TABLE:
                self.output.append(f"{text}[{self.paragraph_link_counter}]")
            case _:
                self.output.append(text)

    def _write_clickable_link(self, text: str, url: str) -> None:
        formatted = self.apply_formatting(text)

        if self.table_state is not None:
            self.table_state.current_cell += self.underline(formatted)
            return

        def link(part: str) -> str:
            styled = self.make_clickable(self.apply_formatting(part), url)
            if self.config.link_style is LinkStyle.CLICKABLE_FORCED:
                styled = self.underline(styled)
            return styled

        if self.config.is_text_wrapping_enabled():
            width = self.config.get_terminal_width()
            # Keep a short link whole by moving it to the next line
            if (
                self.current_line_width() + visible_width(text) > width
                and visible_width(text) <= width - self.compute_line_start_context_width()
                and self.line_has_content()
            ):
                self.push_newline_with_context()
        self.write_fragments(text, link)

    def _write_inline_link(self, text: str, url: str) -> None:
        url_part = f"({url})"

        if self.table_state is not None:
            self.table_state.current_cell += self.underline(text) + url_part
            self.table_state.inline_references.append((url_part, self.style_link(url_part)))
            return

        self.write_fragments(text, self.underline)
        self.enforce_width_on_current_line()
        self.write_inline_url(url)

    def _write_reference_link(self, text: str, url: str) -> None:
        ref = f"[{self.paragraph_link_counter}]"

        if self.table_state is not None:
            self.table_state.current_cell += self.underline(text) + ref
            self.table_state.inline_references.append((ref, self.style_link(ref)))
            return

        self.write_fragments(text, self.underline)
        if self.config.is_text_wrapping_enabled():
            width = self.config.get_terminal_width()
            if self.current_line_width() + visible_width(ref) > width:
                self.push_newline_with_context()
        self.output.append(self.style_link(ref))

    # -- inline URLs ----------------------------------------------------------

    def _styled_url(self, text: str, url: str) -> str:
        return self.make_clickable(self.style_link(text), url)

    def write_inline_url(self, url: str) -> None:
        """Append ``(url)`` after inline link text, honouring the truncation mode."""
        url_part = f"({url})"
        url_width = visible_width(url_part)
        width = self.config.get_terminal_width()
        truncation = self.config.link_truncation
        available = max(width - self.current_line_width(), 0)

        if truncation is LinkTruncation.CUT:
            if available >= url_width:
                self.output.append(self._styled_url(url_part, url))
                self.enforce_width_on_current_line()
            elif available > 2:
                shortened = truncate_to_width(url, available - 2)
                self.output.append(self._styled_url(f"({shortened})", url))
            elif self.config.is_text_wrapping_enabled():
                self.push_newline_with_context()
                room = width - self.compute_line_start_context_width()
                shortened = truncate_to_width(url, room - 2)
                self.output.append(self._styled_url(f"({shortened})", url))
            elif available > 0:
                self.output.append(self._styled_url("…", url))
            return

        if truncation is LinkTruncation.NONE or not self.config.is_text_wrapping_enabled():
            self.output.append(self._styled_url(url_part, url))
            self.enforce_width_on_current_line()
            return

        # Wrap: fill the current line, continue on indented lines, preferring URL separators
        if url_width <= available:
            self.output.append(self._styled_url(url_part, url))
            return

        room = max(width - self.compute_line_start_context_width(), 1)
        if available == 0:
            self.push_newline_with_context()
            available = room

        for idx, chunk in enumerate(wrap_url(url_part, available, room, "").split("\n")):
            if idx > 0:
                self.push_newline_with_context()
            self.output.append(self._styled_url(chunk, url))

    def enforce_width_on_current_line(self) -> None:
        """Break the last line at its final space if it overflows the width."""
        line_start = self.output.line_start()
        line = self.output.since(line_start)
        if visible_width(strip_ansi(line)) <= self.config.get_terminal_width():
            return

        space = line.rfind(" ")
        if space <= 0 or not strip_ansi(line[:space]).strip():
            return
        offset = line_start + space
        self.output.replace_range(offset, offset + 1, "\n" + self.current_line_prefix())

    # -- reference blocks -----------------------------------------------------

    def add_paragraph_link_references(self, in_table: bool = False) -> None:
        """Flush the ``[n] URL`` lines collected for the current block."""
        if not self.paragraph_links:
            return

        in_list = bool(self.list_stack)
        lines: list[str] = []
        for ref, url in self.paragraph_links:
            line = f"{ref} {url}"
            if self.config.is_text_wrapping_enabled():
                line = self.wrap_link_line(line)
            lines.extend(self.style_link(self.make_clickable(part, url)) for part in line.split("\n"))

        self.paragraph_links = []
        self.paragraph_link_counter = 0

        if self.plaintext_depth > 0:
            self.captured_reference_blocks.append(CapturedReferenceBlock(lines, True, in_list))
            return

        self.output.append("\n" if self.output.ends_with("\n") else "\n\n")
        indent = "" if in_table else " " * self.content_indent
        self.output.append("\n".join(indent + line for line in lines))
        self.output.append("\n")
        if in_list:
            self.output.append("\n")

    def wrap_link_line(self, line: str) -> str:
        effective = self.config.get_terminal_width() - self.content_indent
        if effective < 20 or visible_width(line) <= effective:
            return line

        ref, sep, url = line.partition(" ")
        if not sep:
            return line

        ref_width = visible_width(ref) + 1
        available = effective - ref_width
        if visible_width(url) <= available:
            return line

        if self.config.link_style is LinkStyle.INLINE_TABLE:
            if self.config.link_truncation is LinkTruncation.CUT:
                return f"{ref} {truncate_to_width(url, available)}"
            if self.config.link_truncation is LinkTruncation.NONE:
                return line

        return f"{ref} {wrap_url(url, available, available, ' ' * ref_width)}"

