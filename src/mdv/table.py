"""Table grid drawing: fit, wrap (column blocks) and unbounded modes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mdv.events import Alignment
from mdv.terminal import AnsiStyle, Color, NAMED_COLORS
from mdv.theme import Theme, ThemeElement, create_style
from mdv.utils import (
    WrapMode,
    extract_ansi_code,
    strip_ansi,
    visible_width,
    wrap_text_with_mode,
)

if TYPE_CHECKING:
    from mdv.config import TableWrapMode

MIN_COLUMN_WIDTH = 3
# At or below this width the grid is left at its natural size
MIN_GRID_WIDTH = 10
BLOCK_BORDER_OVERHEAD = 4

_CODE_TO_NAME = {code: name for name, code in NAMED_COLORS.items()}

Block = tuple[list[str], list[list[str]], list[Alignment]]


class TableRenderer:
    """Render header/row cell text as a bordered grid.

    Cells arrive with inline styling already applied; the grid re-derives a
    single style per cell from those escape codes so borders and padding are
    measured on plain text.
    """

    def __init__(
        self,
        theme: Theme,
        no_colors: bool,
        terminal_width: int,
        table_wrap: TableWrapMode,
    ) -> None:
        self.theme = theme
        self.no_colors = no_colors
        self.terminal_width = terminal_width
        self.table_wrap = table_wrap

    def render_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        alignments: list[Alignment] | tuple[Alignment, ...],
    ) -> str:
        if not headers:
            return ""

        alignments = list(alignments)
        mode = self.table_wrap.value

        if mode == "none":
            return self.render_block(headers, rows, alignments, max_width=None)

        if mode == "wrap" and self.estimate_table_width(headers, rows) > self.terminal_width:
            return self.render_wrapped_table(headers, rows, alignments)

        return self.render_block(headers, rows, alignments, max_width=self.terminal_width)

    # -- measuring ----------------------------------------------------------

    @staticmethod
    def _natural_widths(headers: list[str], rows: list[list[str]]) -> list[int]:
        widths = [visible_width(h) for h in headers]
        for row in rows:
            for i, cell in enumerate(row[: len(widths)]):
                widths[i] = max(widths[i], visible_width(cell))
        return widths

    def estimate_table_width(self, headers: list[str], rows: list[list[str]]) -> int:
        """Width of the grid if no column were squeezed: ``Σw + 3n + 1``."""
        return sum(self._natural_widths(headers, rows)) + len(headers) * 3 + 1

    def calculate_column_widths(self, headers: list[str], rows: list[list[str]]) -> list[int]:
        return [max(w, MIN_COLUMN_WIDTH) for w in self._natural_widths(headers, rows)]

    def _fit_column_widths(
        self, headers: list[str], rows: list[list[str]], max_width: int | None
    ) -> list[int]:
        natural = [max(w, 1) for w in self._natural_widths(headers, rows)]
        if max_width is None or max_width <= MIN_GRID_WIDTH:
            return natural

        num_cols = len(natural)
        budget = max(num_cols * MIN_COLUMN_WIDTH, max_width - (3 * num_cols + 1))
        total = sum(natural)
        if total <= budget:
            return natural

        # Shrink proportionally, then hand out what rounding left over
        widths = [max(MIN_COLUMN_WIDTH, int(w * budget / total)) for w in natural]
        remaining = budget - sum(widths)
        for i in range(max(0, min(remaining, num_cols))):
            widths[i] += 1
        return widths

    # -- column blocks --------------------------------------------------------

    def split_table_into_blocks(
        self,
        headers: list[str],
        rows: list[list[str]],
        alignments: list[Alignment],
    ) -> list[Block]:
        """Greedily pack columns into blocks that each fit the terminal.

        Every block holds at least one column, even one wider than the terminal.
        """
        column_widths = self.calculate_column_widths(headers, rows)
        blocks: list[Block] = []
        start = 0

        while start < len(headers):
            current_width = BLOCK_BORDER_OVERHEAD + column_widths[start] + 3
            end = start + 1
            while end < len(headers):
                additional = column_widths[end] + 3
                if current_width + additional > self.terminal_width:
                    break
                current_width += additional
                end += 1

            block_headers = headers[start:end]
            block_rows = []
            for row in rows:
                cells = row[start:end]
                cells += [""] * (len(block_headers) - len(cells))
                block_rows.append(cells)

            block_alignments = alignments[start:end]
            block_alignments += [Alignment.LEFT] * (len(block_headers) - len(block_alignments))

            blocks.append((block_headers, block_rows, block_alignments))
            start = end

        return blocks

    def render_wrapped_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        alignments: list[Alignment],
    ) -> str:
        blocks = self.split_table_into_blocks(headers, rows, alignments)
        parts: list[str] = []

        for idx, (block_headers, block_rows, block_alignments) in enumerate(blocks):
            if idx > 0:
                separator = "═" * max(min(self.terminal_width, 80) - 3, 0)
                border = create_style(self.theme, ThemeElement.TABLE_BORDER)
                parts.append("\n" + border.apply(separator, self.no_colors) + "\n")

            info = create_style(self.theme, ThemeElement.QUOTE)
            parts.append(info.apply(f"Block {idx + 1} of {len(blocks)}", self.no_colors) + "\n")
            parts.append(
                self.render_block(
                    block_headers, block_rows, block_alignments, max_width=self.terminal_width
                )
            )

        return "".join(parts)

    # -- grid ---------------------------------------------------------------

    def render_block(
        self,
        headers: list[str],
        rows: list[list[str]],
        alignments: list[Alignment],
        max_width: int | None,
    ) -> str:
        """Render one grid; lines are joined by newlines with no trailing newline."""
        widths = self._fit_column_widths(headers, rows, max_width)
        lines: list[str] = [self._border("╭", "─", "┬", "╮", widths)]

        header_style = AnsiStyle().fg(self.theme.table_header).bold()
        header_cells = []
        for i, header in enumerate(headers):
            align = alignments[i] if i < len(alignments) else Alignment.CENTER
            header_cells.append((header, align, header_style))
        lines.extend(self._render_row(header_cells, widths))

        if rows:
            lines.append(self._border("╞", "═", "╪", "╡", widths))

        for row_idx, row in enumerate(rows):
            cells = []
            for i in range(len(widths)):
                content = row[i] if i < len(row) else ""
                align = alignments[i] if i < len(alignments) else Alignment.NONE
                cells.append((content, align, self.cell_style(content)))
            lines.extend(self._render_row(cells, widths))
            if row_idx < len(rows) - 1:
                lines.append(self._border("├", "╌", "┼", "┤", widths))

        lines.append(self._border("╰", "─", "┴", "╯", widths))
        return "\n".join(lines)

    def _style_border(self, text: str) -> str:
        return create_style(self.theme, ThemeElement.TABLE_BORDER).apply(text, self.no_colors)

    def _border(self, left: str, fill: str, cross: str, right: str, widths: list[int]) -> str:
        middle = cross.join(fill * (w + 2) for w in widths)
        return self._style_border(f"{left}{middle}{right}")

    def _render_row(
        self, cells: list[tuple[str, Alignment, AnsiStyle | None]], widths: list[int]
    ) -> list[str]:
        wrapped: list[list[str]] = []
        for (content, _align, _style), width in zip(cells, widths):
            plain = strip_ansi(content)
            cell_lines = wrap_text_with_mode(plain, width, WrapMode.WORD).split("\n")
            wrapped.append(cell_lines or [""])

        height = max((len(c) for c in wrapped), default=1)
        edge = self._style_border("│")
        divider = self._style_border("┆")

        row_lines: list[str] = []
        for line_idx in range(height):
            parts: list[str] = []
            for (_content, align, style), width, cell_lines in zip(cells, widths, wrapped):
                text = cell_lines[line_idx] if line_idx < len(cell_lines) else ""
                pad = max(width - visible_width(text), 0)
                left = pad // 2 if align is Alignment.CENTER else pad if align is Alignment.RIGHT else 0
                if style is not None and text:
                    text = style.apply(text, self.no_colors)
                parts.append(" " * (left + 1) + text + " " * (pad - left + 1))
            row_lines.append(edge + divider.join(parts) + edge)
        return row_lines

    def cell_style(self, content: str) -> AnsiStyle | None:
        """Single style for a cell, recovered from its embedded escape codes."""
        if self.no_colors:
            return None

        clean = strip_ansi(content)
        style = AnsiStyle()
        styled = False

        if clean.startswith("`") and clean.endswith("`") and len(clean) > 1:
            style = style.fg(self.theme.code)
            styled = True

        if clean != content:
            if "\x1b[1m" in content or "\x1b[01m" in content:
                style = style.bold()
                styled = True
            if "\x1b[3m" in content or "\x1b[03m" in content:
                style = style.italic()
                styled = True
            if "\x1b[4m" in content or "\x1b[04m" in content:
                style = style.underline()
                styled = True
            color = extract_ansi_foreground_color(content)
            if color is not None:
                style = style.fg(color)
                styled = True

        return style if styled else None


def apply_inline_reference_styles(
    table_output: str, references: list[tuple[str, str]], no_colors: bool
) -> str:
    """Restyle plain reference markers (``[1]``, ``(url)``) in a rendered grid.

    Each marker replaces its first occurrence after the previous one.
    """
    if no_colors:
        return table_output

    search_start = 0
    for plain, styled in references:
        if not plain:
            continue
        idx = table_output.find(plain, search_start)
        if idx < 0:
            continue
        table_output = table_output[:idx] + styled + table_output[idx + len(plain) :]
        search_start = idx + len(styled)
    return table_output


def extract_ansi_foreground_color(content: str) -> Color | None:
    """First foreground colour set by an SGR sequence in *content*."""
    pos = 0
    while pos < len(content):
        extracted = extract_ansi_code(content, pos)
        if extracted is None:
            pos += 1
            continue
        code, length = extracted
        pos += length
        if code.startswith("\x1b[") and code.endswith("m"):
            color = _parse_sgr_foreground(code[2:-1])
            if color is not None:
                return color
    return None


def _parse_sgr_foreground(sequence: str) -> Color | None:
    values = [int(p) for p in sequence.split(";") if p.isdigit()]
    i = 0
    while i < len(values):
        code = values[i]
        if code in _CODE_TO_NAME:
            return Color(_CODE_TO_NAME[code])
        if code == 38 and i + 1 < len(values):
            mode = values[i + 1]
            if mode == 5 and i + 2 < len(values):
                return Color.ansi(_clamp(values[i + 2]))
            if mode == 2 and i + 4 < len(values):
                r, g, b = (_clamp(v) for v in values[i + 2 : i + 5])
                return Color.from_rgb(r, g, b)
        if code == 39:
            return None
        i += 1
    return None


def _clamp(value: int) -> int:
    return max(0, min(255, value))
