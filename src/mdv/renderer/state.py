"""Per-block state carried by the renderer between events."""

from __future__ import annotations

from dataclasses import dataclass, field

from mdv.events import Alignment


@dataclass
class ListState:
    ordered: bool
    counter: int
    item_start: int | None = None
    marker_end: int | None = None


@dataclass
class TableState:
    alignments: list[Alignment]
    headers: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)
    in_header: bool = True
    current_row: list[str] = field(default_factory=list)
    current_cell: str = ""
    # (plain marker, styled marker) pairs restyled after the grid is drawn
    inline_references: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class CapturedReferenceBlock:
    """Link reference lines collected by a nested plaintext render."""

    lines: list[str]
    add_trailing_newline: bool
    in_list: bool
