"""Event-driven terminal renderer.

:class:`EventRenderer` walks the flat event list once and appends styled
text to an :class:`OutputBuffer`. Block context (quote depth, list stack,
open table, heading indents) lives on the renderer; the handlers for text,
links, headings, code blocks and tables are split into mixins that all
operate on that shared state.
"""

from __future__ import annotations

import logging
from typing import Iterable

from pygments.style import Style

from mdv import events as ev
from mdv.config import Config, HeadingLayout, LinkStyle
from mdv.events import Event
from mdv.highlight import SyntaxCatalog, build_style
from mdv.markdown import extract_code_language
from mdv.renderer.buffer import HeadingPlaceholder, OutputBuffer
from mdv.renderer.code import CodeBlockMixin
from mdv.renderer.headings import HeadingMixin, plan_smart_indents
from mdv.renderer.links import LinkMixin
from mdv.renderer.state import CapturedReferenceBlock, ListState, TableState
from mdv.renderer.tables import TableMixin
from mdv.renderer.text import TextMixin
from mdv.terminal import WHITE, AnsiStyle, Color
from mdv.theme import Theme, ThemeElement, create_style
from mdv.utils import is_blank, strip_ansi

logger = logging.getLogger(__name__)

PRETTY_ACCENT = Color.from_rgb(0x8F, 0x93, 0xA2)

_INLINE_STYLE_TAGS = {
    ev.Emphasis: ThemeElement.EMPHASIS,
    ev.Strong: ThemeElement.STRONG,
    ev.Strikethrough: ThemeElement.STRIKETHROUGH,
}


# ---------------------------------------------------------------------------
# EventRenderer
# ---------------------------------------------------------------------------


class EventRenderer(TextMixin, LinkMixin, HeadingMixin, CodeBlockMixin, TableMixin):
    """Render one event list into terminal text."""

    def __init__(
        self,
        config: Config,
        theme: Theme,
        catalog: SyntaxCatalog | None = None,
        code_style: type[Style] | None = None,
        plaintext_depth: int = 0,
    ) -> None:
        self.config = config
        self.theme = theme
        self.catalog = catalog if catalog is not None else SyntaxCatalog()
        self.code_style = code_style if code_style is not None else build_style(theme)
        self.output = OutputBuffer()

        # Block context
        self.current_indent = 0
        self.blockquote_level = 0
        self.blockquote_starts: list[int] = []
        self.list_stack: list[ListState] = []
        self.table_state: TableState | None = None

        # Links
        self.current_link_url = ""
        self.current_link_text = ""
        self.in_link = False
        self.paragraph_link_counter = 0
        self.paragraph_links: list[tuple[str, str]] = []

        # Code blocks
        self.in_code_block = False
        self.code_block_content = ""
        self.code_block_language: str | None = None
        self.plaintext_depth = plaintext_depth
        self.captured_reference_blocks: list[CapturedReferenceBlock] = []

        self.formatting_stack: list[ThemeElement] = []

        # Headings
        self.current_heading_level: int | None = None
        self.heading_line_start = 0
        self.current_heading_start: int | None = None
        self.placeholder = HeadingPlaceholder()
        self.heading_indent = 0
        self.content_indent = 0
        self.smart_level_indents: dict[int, int] = {}

    def render(self, events: Iterable[Event]) -> str:
        """Render *events*; the result is empty or ends with exactly one newline."""
        events = list(events)
        if self.config.heading_layout is HeadingLayout.LEVEL and self.config.smart_indent:
            self.smart_level_indents = plan_smart_indents(events)
        else:
            self.smart_level_indents = {}

        for event in events:
            self.process_event(event)

        self.placeholder.finalize(self.output)

        # Drop trailing blank lines but keep trailing spaces of the last visible one
        lines = self.output.text.split("\n")
        while lines and is_blank(lines[-1]):
            lines.pop()
        return "\n".join(lines) + "\n" if lines else ""

    # -- dispatch -------------------------------------------------------------

    def process_event(self, event: Event) -> None:
        match event:
            case ev.Start(tag=tag):
                self.handle_start_tag(tag)
            case ev.End(tag=tag):
                self.handle_end_tag(tag)
            case ev.Text(text=text):
                self.handle_text(text)
            case ev.Code(text=text):
                self.handle_inline_code(text)
            case ev.Html(text=text) | ev.InlineHtml(text=text):
                self.handle_html(text)
            case ev.SoftBreak():
                self.handle_soft_break()
            case ev.HardBreak():
                self.output.append("\n\n")
            case ev.Rule():
                self.handle_rule()
            case ev.FootnoteReference(label=label):
                self.handle_footnote_reference(label)
            case ev.TaskListMarker(checked=checked):
                self.handle_task_list_marker(checked)
            case ev.InlineMath() | ev.DisplayMath():
                pass
            case _:
                logger.debug("Ignoring unknown event %r", event)

    def handle_start_tag(self, tag: ev.Tag) -> None:
        match tag:
            case ev.Paragraph():
                self.handle_paragraph_start()
            case ev.Heading(level=level):
                self.handle_heading_start(level)
            case ev.BlockQuote():
                self.blockquote_starts.append(len(self.output))
                self.blockquote_level += 1
                self.current_indent += 2
                if not self.output.is_empty() and not self.output.ends_with("\n"):
                    self.output.append("\n")
            case ev.CodeBlock(info=info):
                self.in_code_block = True
                self.code_block_content = ""
                self.code_block_language = extract_code_language(info)
            case ev.List(start=start):
                self.reset_paragraph_links()
                self.list_stack.append(ListState(start is not None, start if start is not None else 1))
                self.ensure_newline()
            case ev.Item():
                self.handle_item_start()
            case ev.Table(alignments=alignments):
                self.reset_paragraph_links()
                self.table_state = TableState(list(alignments))
            case ev.TableHead():
                if self.table_state is not None:
                    self.table_state.in_header = True
            case ev.TableRow():
                if self.table_state is not None:
                    self.table_state.current_row = []
            case ev.TableCell():
                if self.table_state is not None:
                    self.table_state.current_cell = ""
            case ev.Emphasis() | ev.Strong() | ev.Strikethrough():
                self.formatting_stack.append(_INLINE_STYLE_TAGS[type(tag)])
            case ev.Link(url=url):
                self.handle_link_start(url)
            case ev.Image():
                self.handle_image_start()
            case _:
                pass

    def handle_end_tag(self, tag: ev.Tag) -> None:
        match tag:
            case ev.Paragraph():
                if self.config.link_style is LinkStyle.INLINE_TABLE and self.paragraph_links:
                    self.add_paragraph_link_references()
                if not self.list_stack:
                    self.output.append("\n")
            case ev.Heading(level=level):
                self.handle_heading_end(level)
            case ev.BlockQuote():
                self.handle_blockquote_end()
            case ev.CodeBlock():
                self.handle_code_block_end()
            case ev.List():
                if self.list_stack:
                    self.list_stack.pop()
                if self.config.link_style is LinkStyle.INLINE_TABLE and self.paragraph_links:
                    self.add_paragraph_link_references()
                else:
                    self.ensure_newline()
            case ev.Item():
                self.handle_item_end()
            case ev.Table():
                self.handle_table_end()
            case ev.TableHead():
                if self.table_state is not None:
                    self.table_state.in_header = False
                    self.table_state.headers = list(self.table_state.current_row)
            case ev.TableRow():
                if self.table_state is not None and not self.table_state.in_header:
                    self.table_state.rows.append(list(self.table_state.current_row))
            case ev.TableCell():
                if self.table_state is not None:
                    self.table_state.current_row.append(self.table_state.current_cell)
            case ev.Emphasis() | ev.Strong() | ev.Strikethrough():
                element = _INLINE_STYLE_TAGS[type(tag)]
                self.formatting_stack = [e for e in self.formatting_stack if e is not element]
            case ev.Link():
                self.handle_link_end()
            case _:
                pass

    # -- block handlers -------------------------------------------------------

    def reset_paragraph_links(self) -> None:
        if self.config.link_style is LinkStyle.INLINE_TABLE:
            self.paragraph_link_counter = 0
            self.paragraph_links = []

    def handle_paragraph_start(self) -> None:
        self.reset_paragraph_links()
        if self.table_state is not None:
            return

        if self.list_stack:
            # A second paragraph in the same item starts on its own line
            state = self.list_stack[-1]
            if state.marker_end is not None and not is_blank(
                strip_ansi(self.output.since(state.marker_end))
            ):
                self.ensure_contextual_blank_line()
                self.push_indent_for_line_start()
            return

        if self.blockquote_level > 0 and is_blank(
            strip_ansi(self.output.since(self.blockquote_starts[-1]))
        ):
            # First paragraph of a quote: separate from earlier text with a plain line
            if not self.output.is_empty():
                self.ensure_newline()
                if not self.has_trailing_blank_line():
                    self.output.append("\n")
        else:
            self.ensure_contextual_blank_line()

        if self.content_indent > 0 and self.blockquote_level == 0:
            if self.output.is_empty() or self.output.ends_with("\n"):
                self.output.append(" " * self.content_indent)

    def handle_blockquote_end(self) -> None:
        start = self.blockquote_starts.pop() if self.blockquote_starts else len(self.output)
        start = min(start, len(self.output))

        if is_blank(strip_ansi(self.output.since(start))):
            self.output.truncate(start)
            if self.config.show_empty_elements:
                if not self.output.is_empty():
                    self.ensure_newline()
                self.push_indent_for_line_start()
                self.ensure_newline()
        else:
            self.ensure_newline()

        self.blockquote_level = max(self.blockquote_level - 1, 0)
        self.current_indent = max(self.current_indent - 2, 0)

    def handle_item_start(self) -> None:
        if not self.list_stack:
            return

        state = self.list_stack[-1]
        marker = f"{state.counter}. " if state.ordered else "- "
        styled_marker = self.style(ThemeElement.LIST_MARKER, marker)
        at_line_start = self.output.is_empty() or self.output.ends_with("\n")

        start = len(self.output)
        if self.blockquote_level > 0:
            if at_line_start:
                self.output.append(" " * self.content_indent + self.render_blockquote_prefix())
        elif self.content_indent > 0:
            self.output.append(" " * self.content_indent)

        self.output.append("  " * (len(self.list_stack) - 1))
        self.output.append(styled_marker)
        self.placeholder.commit_if_content(self.output)

        state.item_start = start
        state.marker_end = len(self.output)
        if state.ordered:
            state.counter += 1

    def handle_item_end(self) -> None:
        if not self.list_stack:
            self.ensure_newline()
            return

        state = self.list_stack[-1]
        start = min(state.item_start if state.item_start is not None else len(self.output), len(self.output))
        marker_end = min(state.marker_end if state.marker_end is not None else start, len(self.output))
        has_content = not is_blank(strip_ansi(self.output.since(marker_end)))

        if has_content or self.config.show_empty_elements:
            self.ensure_newline()
        else:
            self.output.truncate(start)
            if state.ordered:
                state.counter = max(state.counter - 1, 0)

        state.item_start = None
        state.marker_end = None

    def handle_soft_break(self) -> None:
        if self.table_state is not None:
            self.table_state.current_cell += " "
        elif self.in_link:
            self.current_link_text += " "
        else:
            self.output.append("\n")

    def handle_rule(self) -> None:
        width = self.config.get_terminal_width()
        rule = "◈" + "─" * max(width - 2, 0) + "◈"

        if not self.output.is_empty():
            self.ensure_newline()
            if self.has_trailing_blank_line():
                self.normalize_trailing_blank_line()
            else:
                self.output.append("\n")
        self.output.append(self.style_accent(rule) + "\n")
        self.placeholder.commit_if_content(self.output)

    def handle_html(self, html: str) -> None:
        trimmed = html.strip()
        if not (trimmed.startswith("<!--") and trimmed.endswith("-->")):
            return
        if self.config.hide_comments:
            return

        prefix = self.current_line_prefix()
        current_line = self.output.last_line()
        followup_prefix = ""
        if not current_line:
            if prefix:
                self.output.append(prefix)
                followup_prefix = prefix
        elif prefix and current_line == prefix:
            followup_prefix = prefix

        segments = html.split("\n")
        for idx, segment in enumerate(segments):
            if idx > 0:
                self.output.append("\n")
                more = idx < len(segments) - 1
                if followup_prefix and (segment or more):
                    self.output.append(followup_prefix)
            if segment:
                self.output.append(self.style(ThemeElement.TEXT, segment))

        self.placeholder.commit_if_content(self.output)

    def handle_footnote_reference(self, label: str) -> None:
        self.write_inline(self.style(ThemeElement.LINK, f"[^{label}]"))

    def handle_task_list_marker(self, checked: bool) -> None:
        marker = "[✓] " if checked else "[ ] "
        self.write_inline(self.style(ThemeElement.LIST_MARKER, marker))

    def handle_image_start(self) -> None:
        marker = self.style(ThemeElement.LINK, "[IMAGE] ")
        if self.table_state is not None:
            self.table_state.current_cell += marker
            self.placeholder.commit_if_content(self.output)
            return

        if self.current_heading_start is None:
            line_start = self.output.line_start()
            if not self.output.since(line_start).strip():
                self.output.truncate(line_start)
                self.push_indent_for_line_start()

        self.output.append(marker)
        self.placeholder.commit_if_content(self.output)

    def write_inline(self, text: str) -> None:
        if self.table_state is not None:
            self.table_state.current_cell += text
        else:
            self.output.append(text)
        self.placeholder.commit_if_content(self.output)

    # -- styling ----------------------------------------------------------------

    def style(self, element: ThemeElement, text: str) -> str:
        return create_style(self.theme, element).apply(text, self.config.no_colors)

    def style_accent(self, text: str) -> str:
        return AnsiStyle().fg(PRETTY_ACCENT).apply(text, self.config.no_colors)

    def apply_formatting(self, text: str) -> str:
        """Style *text* with the open emphasis/strong/strikethrough spans."""
        if not self.formatting_stack:
            return text

        # Colour precedence: strong, then emphasis, then strikethrough
        color = self.theme.text
        for element in (ThemeElement.STRONG, ThemeElement.EMPHASIS, ThemeElement.STRIKETHROUGH):
            if element in self.formatting_stack:
                color = getattr(self.theme, element.value)
                break

        style = AnsiStyle().fg(color)
        if ThemeElement.STRONG in self.formatting_stack:
            style = style.bold()
        if ThemeElement.EMPHASIS in self.formatting_stack:
            style = style.italic()
        if ThemeElement.STRIKETHROUGH in self.formatting_stack:
            style = style.strikethrough()
        return style.apply(text, self.config.no_colors)

    def render_blockquote_prefix(self) -> str:
        prefix = "│" * self.blockquote_level + " "
        return self.style(ThemeElement.QUOTE, prefix)

    def render_code_block_border(self) -> str:
        return AnsiStyle().fg(WHITE).apply("│ ", self.config.no_colors)

    # -- line context -----------------------------------------------------------

    def calculate_list_content_indent(self) -> int:
        if not self.list_stack:
            return self.content_indent
        marker_width = 3 if self.list_stack[-1].ordered else 2
        return self.content_indent + 2 * (len(self.list_stack) - 1) + marker_width

    def current_line_prefix(self) -> str:
        """What a continuation line in the current block context starts with."""
        if self.blockquote_level > 0:
            prefix = " " * self.content_indent + self.render_blockquote_prefix()
            if self.list_stack:
                prefix += " " * max(self.calculate_list_content_indent() - self.content_indent, 0)
            return prefix
        if self.list_stack:
            return " " * self.calculate_list_content_indent()
        return " " * self.content_indent

    def compute_line_start_context_width(self) -> int:
        """Visible width of :meth:`current_line_prefix`."""
        if self.blockquote_level > 0:
            width = self.content_indent + self.blockquote_level + 1
            if self.list_stack:
                width += max(self.calculate_list_content_indent() - self.content_indent, 0)
            return width
        if self.list_stack:
            return self.calculate_list_content_indent()
        return self.content_indent

    def push_indent_for_line_start(self) -> None:
        self.output.append(self.current_line_prefix())

    def push_newline_with_context(self) -> None:
        self.output.append("\n")
        self.push_indent_for_line_start()

    def at_line_start(self) -> bool:
        return self.output.is_empty() or self.output.ends_with("\n")

    def ensure_newline(self) -> None:
        if not self.output.is_empty() and not self.output.ends_with("\n"):
            self.output.append("\n")

    def has_trailing_blank_line(self) -> bool:
        completed = self.output.completed_line()
        if completed is None:
            return False
        return _is_blank_or_rule(completed[1])

    def normalize_trailing_blank_line(self) -> None:
        completed = self.output.completed_line()
        if completed is None:
            return
        start, line = completed
        if line and _is_blank_or_rule(line):
            self.output.replace_range(start, start + len(line), "")

    def ensure_contextual_blank_line(self) -> None:
        """End the current line and leave exactly one blank line after it.

        Inside a quote the blank line carries the quote bar.
        """
        if self.output.is_empty():
            return
        self.ensure_newline()
        if not self.has_trailing_blank_line():
            self.output.append(self.current_line_prefix().rstrip() + "\n")

    def trim_trailing_blank_lines(self) -> None:
        while self.output.ends_with("\n"):
            completed = self.output.completed_line()
            if completed is None:
                break
            start, line = completed
            if strip_ansi(line).strip():
                break
            self.output.truncate(start)


def _is_blank_or_rule(line: str) -> bool:
    """True for an empty line or one holding only spaces and quote bars."""
    return all(ch.isspace() or ch == "│" for ch in strip_ansi(line))
