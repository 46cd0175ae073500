"""Table accumulation: cells are collected while the table is open and drawn at its end."""

from __future__ import annotations

from mdv.config import LinkStyle
from mdv.events import Alignment
from mdv.renderer.state import TableState
from mdv.table import TableRenderer, apply_inline_reference_styles
from mdv.utils import is_blank, strip_ansi


def _blank(cell: str) -> bool:
    return is_blank(strip_ansi(cell))


class TableMixin:
    def handle_table_end(self) -> None:
        table = self.table_state
        self.table_state = None
        if table is not None:
            self.render_table(table)

        if self.config.link_style is LinkStyle.INLINE_TABLE and self.paragraph_links:
            self.add_paragraph_link_references(in_table=True)

    def render_table(self, table: TableState) -> None:
        show_empty = self.config.show_empty_elements
        headers_empty = all(_blank(h) for h in table.headers)
        rows_empty = all(_blank(cell) for row in table.rows for cell in row)

        if not show_empty and (not table.headers or (headers_empty and rows_empty)):
            return

        if show_empty:
            self._fill_empty_cells(table, headers_empty, rows_empty)

        context = self.compute_line_start_context_width()
        prefix = self.current_line_prefix() if (self.blockquote_level or self.list_stack) else ""
        width = self.config.get_terminal_width()
        if prefix:
            width = max(width - context, 1)

        renderer = TableRenderer(self.theme, self.config.no_colors, width, self.config.table_wrap)
        rendered = renderer.render_table(table.headers, table.rows, table.alignments)
        if table.inline_references:
            rendered = apply_inline_reference_styles(
                rendered, table.inline_references, self.config.no_colors
            )

        if prefix:
            rendered = "\n".join(prefix + line if line else line for line in rendered.split("\n"))

        self.ensure_contextual_blank_line()
        self.output.append(rendered + "\n")
        self.placeholder.commit_if_content(self.output)

    @staticmethod
    def _fill_empty_cells(table: TableState, headers_empty: bool, rows_empty: bool) -> None:
        """Give an empty table single-space cells so its grid can still be drawn."""
        if not table.headers:
            table.headers.append(" ")
        elif headers_empty:
            table.headers = [" " if _blank(h) else h for h in table.headers]

        if len(table.alignments) < len(table.headers):
            table.alignments.extend([Alignment.LEFT] * (len(table.headers) - len(table.alignments)))

        if rows_empty:
            if not table.rows:
                table.rows.append([" "] * max(len(table.headers), 1))
            else:
                for idx, row in enumerate(table.rows):
                    row = row + [""] * (len(table.headers) - len(row))
                    table.rows[idx] = [" " if _blank(cell) else cell for cell in row]
