"""Terminal text utilities: ANSI handling, width measurement, wrapping.

Provides functions for measuring visible terminal widths, tracking ANSI SGR
state across line breaks, wrapping text by character or by word with escape
sequences preserved, and width-based slicing.
"""

from __future__ import annotations

import re
import unicodedata
from enum import Enum

import grapheme
import wcwidth as _wcwidth

TAB_WIDTH = 4


class WrapMode(str, Enum):
    """How running text is broken into visual lines."""

    NONE = "none"
    CHAR = "char"
    WORD = "word"


# ---------------------------------------------------------------------------
# Regex patterns for escape sequences
# ---------------------------------------------------------------------------

_STRIP_RE = re.compile(
    r"\x1b\[[0-?]*[ -/]*[@-~]"  # CSI
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"  # OSC (hyperlinks), BEL or ST terminated
)

# ---------------------------------------------------------------------------
# Width cache (capped at 512 entries)
# ---------------------------------------------------------------------------

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def _cache_width(key: str, value: int) -> int:
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[key] = value
    return value


# ---------------------------------------------------------------------------
# Grapheme width
# ---------------------------------------------------------------------------


def _grapheme_width(g: str) -> int:
    """Return the terminal display width of a single grapheme cluster.

    Zero-width characters count 0, emoji sequences count 2, everything else
    is delegated to wcwidth for the first meaningful codepoint.
    """
    if not g:
        return 0

    if len(g) == 1:
        cp = ord(g)
        if g == "\t":
            return TAB_WIDTH
        if cp < 0x20 or (0x7F <= cp <= 0x9F):
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        # VS16, ZWJ, skin tone modifiers, regional indicators
        if cp in (0xFE0F, 0x200D) or 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    first_cp = ord(g[0])
    if first_cp >= 0x1F000 or 0x2600 <= first_cp <= 0x27BF:
        return 2

    cat = unicodedata.category(g[0])
    if cat.startswith("M") or cat == "Cf":
        return 0

    return max(_wcwidth.wcwidth(g[0]), 0)


def char_width(ch: str) -> int:
    """Display width of one character; tabs count as four columns."""
    return _grapheme_width(ch)


# ---------------------------------------------------------------------------
# visible_width / strip_ansi
# ---------------------------------------------------------------------------


def strip_ansi(text: str) -> str:
    """Remove SGR/CSI sequences and OSC 8 hyperlink wrappers from *text*."""
    if "\x1b" not in text:
        return text
    return _STRIP_RE.sub("", text)


def visible_width(text: str) -> int:
    """Calculate the visible terminal width of *text*.

    * Strips ANSI and OSC escape sequences.
    * Treats tabs as 4 columns.
    * Uses a fast ASCII path when possible.
    * Caches results for non-ASCII strings.
    """
    if not text:
        return 0

    stripped = strip_ansi(text)
    if not stripped:
        return 0

    if stripped.isascii() and stripped.isprintable():
        return len(stripped)

    cached = _width_cache.get(stripped)
    if cached is not None:
        return cached

    total = 0
    for g in grapheme.graphemes(stripped):
        total += _grapheme_width(g)

    return _cache_width(stripped, total)


def is_blank(text: str) -> bool:
    """``True`` when *text* has no visible non-whitespace characters."""
    return not strip_ansi(text).strip()


# ---------------------------------------------------------------------------
# extract_ansi_code
# ---------------------------------------------------------------------------


def extract_ansi_code(text: str, pos: int) -> tuple[str, int] | None:
    """Extract an escape sequence starting at *pos* in *text*.

    Returns ``(code, length)`` or ``None`` if there is no ESC at *pos*.

    * CSI sequences run up to the first final byte in ``@``..``~``.
    * OSC sequences run up to ``BEL`` or ``ESC\\``.
    * Any other ESC consumes exactly one following character.
    """
    if pos >= len(text) or text[pos] != "\x1b":
        return None

    if pos + 1 >= len(text):
        return ("\x1b", 1)

    next_ch = text[pos + 1]

    if next_ch == "[":
        i = pos + 2
        while i < len(text):
            if "@" <= text[i] <= "~":
                return (text[pos : i + 1], i + 1 - pos)
            i += 1
        return (text[pos:], len(text) - pos)

    if next_ch == "]":
        i = pos + 2
        while i < len(text):
            ch = text[i]
            if ch == "\x07":
                return (text[pos : i + 1], i + 1 - pos)
            if ch == "\x1b" and i + 1 < len(text) and text[i + 1] == "\\":
                return (text[pos : i + 2], i + 2 - pos)
            i += 1
        return (text[pos:], len(text) - pos)

    return (text[pos : pos + 2], 2)


def _is_sgr(code: str) -> bool:
    return code.startswith("\x1b[") and code.endswith("m")


# ---------------------------------------------------------------------------
# AnsiCodeTracker
# ---------------------------------------------------------------------------

# SGR parameter -> (attribute slot, code to re-emit or None to clear)
_SGR_ATTRS: dict[int, tuple[str, str | None]] = {
    1: ("bold", "\x1b[1m"),
    2: ("dim", "\x1b[2m"),
    3: ("italic", "\x1b[3m"),
    4: ("underline", "\x1b[4m"),
    7: ("inverse", "\x1b[7m"),
    9: ("strikethrough", "\x1b[9m"),
    23: ("italic", None),
    24: ("underline", None),
    27: ("inverse", None),
    29: ("strikethrough", None),
    39: ("fg", None),
    49: ("bg", None),
}

_SLOT_ORDER = ("bold", "dim", "italic", "underline", "inverse", "strikethrough", "fg", "bg")


class AnsiCodeTracker:
    """Track which SGR attributes are active while walking styled text.

    Used by the wrappers to re-open colours and attributes at the start of a
    continuation line. A reset (``ESC[0m`` or ``ESC[m``) clears everything.
    """

    def __init__(self) -> None:
        self._active: dict[str, str] = {}

    def process(self, code: str) -> None:
        """Update tracked state from an SGR sequence like ``\\x1b[1;31m``."""
        if not _is_sgr(code):
            return

        params = code[2:-1].split(";")
        i = 0
        while i < len(params):
            p = params[i].strip()
            val = int(p) if p.isdigit() else 0

            if val == 0:
                self.clear()
            elif val in _SGR_ATTRS:
                slot, value = _SGR_ATTRS[val]
                if value is None:
                    self._active.pop(slot, None)
                else:
                    self._active[slot] = value
            elif val == 22:
                self._active.pop("bold", None)
                self._active.pop("dim", None)
            elif 30 <= val <= 37 or 90 <= val <= 97:
                self._active["fg"] = f"\x1b[{val}m"
            elif 40 <= val <= 47 or 100 <= val <= 107:
                self._active["bg"] = f"\x1b[{val}m"
            elif val in (38, 48) and i + 1 < len(params):
                slot = "fg" if val == 38 else "bg"
                mode = params[i + 1]
                if mode == "5" and i + 2 < len(params):
                    self._active[slot] = f"\x1b[{val};5;{params[i + 2]}m"
                    i += 2
                elif mode == "2" and i + 4 < len(params):
                    rgb = ";".join(params[i + 2 : i + 5])
                    self._active[slot] = f"\x1b[{val};2;{rgb}m"
                    i += 4
                else:
                    i += 1
            i += 1

    def clear(self) -> None:
        """Reset all tracked attributes to off."""
        self._active.clear()

    def get_active_codes(self) -> str:
        """Return a string of ANSI codes that reactivate the current state."""
        return "".join(self._active[slot] for slot in _SLOT_ORDER if slot in self._active)

    def has_active_codes(self) -> bool:
        return bool(self._active)


# ---------------------------------------------------------------------------
# Word splitting
# ---------------------------------------------------------------------------


def split_words(text: str) -> list[tuple[str, bool]]:
    """Split *text* into runs of words and whitespace.

    Returns ``(unit, is_whitespace)`` pairs. Escape sequences stay attached to
    the unit they appear in.
    """
    result: list[tuple[str, bool]] = []
    current: list[str] = []
    in_whitespace = False
    i = 0

    while i < len(text):
        extracted = extract_ansi_code(text, i)
        if extracted is not None:
            code, length = extracted
            current.append(code)
            i += length
            continue

        ch = text[i]
        is_ws = ch.isspace()
        if current and is_ws != in_whitespace and any(not c.startswith("\x1b") for c in current):
            result.append(("".join(current), in_whitespace))
            current = []
        current.append(ch)
        in_whitespace = is_ws
        i += 1

    if current:
        result.append(("".join(current), in_whitespace))

    return result


# ---------------------------------------------------------------------------
# wrap_text_with_mode
# ---------------------------------------------------------------------------


def wrap_text_with_mode(text: str, width: int, mode: WrapMode) -> str:
    """Wrap *text* so no line exceeds *width* visible columns.

    Lines are split on ``\\n`` first. Whitespace-only lines become empty. A
    continuation line never starts with the whitespace at which it was
    broken, and active SGR state is re-emitted at its start.
    """
    if width <= 0 or mode is WrapMode.NONE:
        return text

    wrapped: list[str] = []
    for line in text.split("\n"):
        if is_blank(line):
            wrapped.append("")
        elif visible_width(line) <= width:
            wrapped.append(line)
        elif mode is WrapMode.WORD:
            wrapped.extend(_wrap_line_words(line, width))
        else:
            wrapped.extend(_wrap_line_chars(line, width))

    return "\n".join(wrapped)


def _wrap_line_chars(line: str, width: int) -> list[str]:
    result: list[str] = []
    tracker = AnsiCodeTracker()
    current = ""
    current_width = 0
    i = 0

    while i < len(line):
        extracted = extract_ansi_code(line, i)
        if extracted is not None:
            code, length = extracted
            current += code
            tracker.process(code)
            i += length
            continue

        ch = line[i]
        i += 1
        w = char_width(ch)

        if ch.isspace():
            if current_width + w > width and not is_blank(current):
                # Break here; the whitespace itself is dropped
                result.append(current.rstrip())
                current = tracker.get_active_codes()
                current_width = 0
            else:
                current += ch
                current_width += w
            continue

        if current_width + w > width and not is_blank(current):
            result.append(current)
            current = tracker.get_active_codes()
            current_width = 0

        current += ch
        current_width += w

    if not is_blank(current):
        result.append(current)

    return result or [""]


def _wrap_line_words(line: str, width: int) -> list[str]:
    result: list[str] = []
    tracker = AnsiCodeTracker()
    current = ""
    current_width = 0

    for unit, is_ws in split_words(line):
        unit_width = visible_width(unit)
        opening = tracker.get_active_codes()
        for code in _sgr_codes(unit):
            tracker.process(code)

        if is_ws:
            if current_width + unit_width <= width:
                current += unit
                current_width += unit_width
            elif not is_blank(current):
                result.append(current.rstrip())
                current = tracker.get_active_codes()
                current_width = 0
            continue

        if current_width + unit_width <= width:
            current += unit
            current_width += unit_width
            continue

        if not is_blank(current):
            result.append(current.rstrip())
        current = opening
        current_width = 0

        if unit_width <= width:
            current += unit
            current_width = unit_width
            continue

        # A single word wider than the line: split it by character
        pieces = _wrap_line_chars(current + unit, width)
        result.extend(pieces[:-1])
        current = pieces[-1]
        current_width = visible_width(current)

    if not is_blank(current):
        result.append(current)

    return result or [""]


def _sgr_codes(text: str) -> list[str]:
    codes: list[str] = []
    i = 0
    while i < len(text):
        extracted = extract_ansi_code(text, i)
        if extracted is None:
            i += 1
            continue
        code, length = extracted
        if _is_sgr(code):
            codes.append(code)
        i += length
    return codes


# ---------------------------------------------------------------------------
# Width-based slicing
# ---------------------------------------------------------------------------


def take_prefix_by_width(text: str, max_width: int) -> tuple[str, str]:
    """Split plain *text* into a prefix fitting *max_width* columns and the rest."""
    if max_width <= 0 or not text:
        return ("", text)

    width = 0
    split_idx = 0
    for idx, ch in enumerate(text):
        w = char_width(ch)
        if width + w > max_width:
            break
        width += w
        split_idx = idx + 1

    return (text[:split_idx], text[split_idx:])


def truncate_to_width(text: str, max_width: int, ellipsis: str = "...") -> str:
    """Truncate plain *text* to *max_width* columns, ending with *ellipsis*.

    When the width cannot even hold the ellipsis, only its leading dots are
    returned.
    """
    if max_width <= 0:
        return ""

    if visible_width(text) <= max_width:
        return text

    ellipsis_width = visible_width(ellipsis)
    if max_width <= ellipsis_width:
        return take_prefix_by_width(ellipsis, max_width)[0]

    prefix, _rest = take_prefix_by_width(text, max_width - ellipsis_width)
    return prefix + ellipsis


def pad_to_width(text: str, width: int, align: str = "left") -> str:
    """Pad *text* with spaces to *width* visible columns."""
    padding = width - visible_width(text)
    if padding <= 0:
        return text
    if align == "right":
        return " " * padding + text
    if align == "center":
        left = padding // 2
        return " " * left + text + " " * (padding - left)
    return text + " " * padding
