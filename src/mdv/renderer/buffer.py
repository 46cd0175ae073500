"""Output buffer and the retroactive-edit bookkeeping built on top of it."""

from __future__ import annotations

from enum import Enum

from mdv.utils import is_blank


class OutputBuffer:
    """Append-mostly text buffer addressed by character offsets.

    Handlers mostly append. The few retroactive edits (dropping an empty
    quote or list item, restyling a finished heading) go through
    :meth:`truncate`, :meth:`insert` and :meth:`replace_range` so every
    offset stays a plain index into :attr:`text`.
    """

    __slots__ = ("_text",)

    def __init__(self, text: str = "") -> None:
        self._text = text

    def __len__(self) -> int:
        return len(self._text)

    def __str__(self) -> str:
        return self._text

    @property
    def text(self) -> str:
        return self._text

    def is_empty(self) -> bool:
        return not self._text

    def append(self, text: str) -> None:
        self._text += text

    def ends_with(self, suffix: str) -> bool:
        return self._text.endswith(suffix)

    def truncate(self, length: int) -> None:
        self._text = self._text[: max(length, 0)]

    def replace_range(self, start: int, end: int, text: str) -> None:
        self._text = self._text[:start] + text + self._text[end:]

    def replace_tail(self, start: int, text: str) -> None:
        """Replace everything from *start* on with *text*."""
        self._text = self._text[:start] + text

    def since(self, offset: int) -> str:
        return self._text[offset:]

    def line_start(self) -> int:
        """Offset where the current (last) visual line begins."""
        return self._text.rfind("\n") + 1

    def last_line(self) -> str:
        return self._text[self.line_start() :]

    def completed_line(self) -> tuple[int, str] | None:
        """The last newline-terminated line as ``(offset, text)``."""
        if not self._text.endswith("\n"):
            return None
        body = self._text[:-1]
        start = body.rfind("\n") + 1
        return start, body[start:]


class PlaceholderState(Enum):
    UNTOUCHED = "untouched"
    PENDING = "pending"
    COMMITTED = "committed"


class HeadingPlaceholder:
    """Tracks the ``#`` marker written for a heading that closed empty.

    ``UNTOUCHED -> PENDING(offset, length)`` when the marker is written,
    ``PENDING -> COMMITTED`` once visible content follows it. A marker still
    pending when the next heading starts (or the render ends) is removed if
    nothing but blank text follows it.
    """

    def __init__(self) -> None:
        self.state = PlaceholderState.UNTOUCHED
        self.offset = 0
        self.length = 0

    @property
    def pending(self) -> bool:
        return self.state is PlaceholderState.PENDING

    def mark_pending(self, offset: int, length: int) -> None:
        self.state = PlaceholderState.PENDING
        self.offset = offset
        self.length = length

    def commit(self) -> None:
        self.state = PlaceholderState.COMMITTED

    def commit_if_content(self, output: OutputBuffer) -> None:
        if not self.pending:
            return
        end = self.offset + self.length
        if end <= len(output) and not is_blank(output.since(end)):
            self.commit()

    def finalize(self, output: OutputBuffer) -> None:
        if not self.pending:
            return
        self.state = PlaceholderState.UNTOUCHED
        end = min(self.offset + self.length, len(output))
        if self.offset <= end and is_blank(output.since(end)):
            output.replace_range(self.offset, end, "")
