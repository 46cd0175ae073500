"""Terminal colours, SGR styling and terminal geometry."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, replace

# ---------------------------------------------------------------------------
# Colours
# ---------------------------------------------------------------------------

# Named palette colour -> SGR foreground code
NAMED_COLORS: dict[str, int] = {
    "black": 30,
    "dark_red": 31,
    "dark_green": 32,
    "dark_yellow": 33,
    "dark_blue": 34,
    "dark_magenta": 35,
    "dark_cyan": 36,
    "grey": 37,
    "dark_grey": 90,
    "red": 91,
    "green": 92,
    "yellow": 93,
    "blue": 94,
    "magenta": 95,
    "cyan": 96,
    "white": 97,
}

_NAMED_RGB: dict[str, tuple[int, int, int]] = {
    "black": (0, 0, 0),
    "dark_red": (128, 0, 0),
    "dark_green": (0, 128, 0),
    "dark_yellow": (128, 128, 0),
    "dark_blue": (0, 0, 128),
    "dark_magenta": (128, 0, 128),
    "dark_cyan": (0, 128, 128),
    "grey": (192, 192, 192),
    "dark_grey": (128, 128, 128),
    "red": (255, 0, 0),
    "green": (0, 255, 0),
    "yellow": (255, 255, 0),
    "blue": (0, 0, 255),
    "magenta": (255, 0, 255),
    "cyan": (0, 255, 255),
    "white": (255, 255, 255),
}


@dataclass(frozen=True)
class Color:
    """A terminal colour: a named palette entry, a 256-colour index, or RGB.

    ``Color("reset")`` restores the terminal default.
    """

    name: str = ""
    index: int | None = None
    rgb: tuple[int, int, int] | None = None

    @classmethod
    def ansi(cls, index: int) -> Color:
        return cls(index=index)

    @classmethod
    def from_rgb(cls, r: int, g: int, b: int) -> Color:
        return cls(rgb=(r, g, b))

    @property
    def is_reset(self) -> bool:
        return self.name == "reset"

    def sgr(self, background: bool = False) -> str:
        """Return the SGR parameter string selecting this colour."""
        lead = 48 if background else 38
        if self.index is not None:
            return f"{lead};5;{self.index}"
        if self.rgb is not None:
            r, g, b = self.rgb
            return f"{lead};2;{r};{g};{b}"
        if self.is_reset:
            return "49" if background else "39"
        code = NAMED_COLORS[self.name]
        return str(code + 10 if background else code)

    def to_rgb(self) -> tuple[int, int, int] | None:
        """Approximate RGB value, or ``None`` for the reset colour."""
        if self.index is not None:
            return ansi256_to_rgb(self.index)
        if self.rgb is not None:
            return self.rgb
        return _NAMED_RGB.get(self.name)

    def to_spec(self) -> str:
        """Inverse of the override parser: a string form accepted by it."""
        if self.index is not None:
            return str(self.index)
        if self.rgb is not None:
            return "#{:02x}{:02x}{:02x}".format(*self.rgb)
        return self.name


BLACK = Color("black")
DARK_RED = Color("dark_red")
DARK_GREEN = Color("dark_green")
DARK_YELLOW = Color("dark_yellow")
DARK_BLUE = Color("dark_blue")
DARK_MAGENTA = Color("dark_magenta")
DARK_CYAN = Color("dark_cyan")
GREY = Color("grey")
DARK_GREY = Color("dark_grey")
RED = Color("red")
GREEN = Color("green")
YELLOW = Color("yellow")
BLUE = Color("blue")
MAGENTA = Color("magenta")
CYAN = Color("cyan")
WHITE = Color("white")
RESET = Color("reset")


def ansi256_to_rgb(index: int) -> tuple[int, int, int]:
    """Convert a 256-colour palette index to an RGB approximation."""
    if index < 16:
        return _STANDARD_16[index]
    if index < 232:
        n = index - 16
        r, g, b = n // 36, (n % 36) // 6, n % 6
        return (_cube(r), _cube(g), _cube(b))
    gray = 8 + (index - 232) * 10
    return (gray, gray, gray)


def _cube(c: int) -> int:
    return 0 if c == 0 else 55 + c * 40


_STANDARD_16: tuple[tuple[int, int, int], ...] = (
    (0, 0, 0),
    (128, 0, 0),
    (0, 128, 0),
    (128, 128, 0),
    (0, 0, 128),
    (128, 0, 128),
    (0, 128, 128),
    (192, 192, 192),
    (128, 128, 128),
    (255, 0, 0),
    (0, 255, 0),
    (255, 255, 0),
    (0, 0, 255),
    (255, 0, 255),
    (0, 255, 255),
    (255, 255, 255),
)


def calculate_luminosity(r: int, g: int, b: int) -> float:
    """Perceived brightness of an RGB colour in 0..1."""
    return 0.299 * (r / 255.0) + 0.587 * (g / 255.0) + 0.114 * (b / 255.0)


# ---------------------------------------------------------------------------
# AnsiStyle
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnsiStyle:
    """Foreground/background colour plus text attributes.

    Builder methods return a new style, so styles can be shared freely.
    """

    fg_color: Color | None = None
    bg_color: Color | None = None
    is_bold: bool = False
    is_italic: bool = False
    is_underline: bool = False
    is_strikethrough: bool = False

    def fg(self, color: Color) -> AnsiStyle:
        return replace(self, fg_color=color)

    def bg(self, color: Color) -> AnsiStyle:
        return replace(self, bg_color=color)

    def bold(self) -> AnsiStyle:
        return replace(self, is_bold=True)

    def italic(self) -> AnsiStyle:
        return replace(self, is_italic=True)

    def underline(self) -> AnsiStyle:
        return replace(self, is_underline=True)

    def strikethrough(self) -> AnsiStyle:
        return replace(self, is_strikethrough=True)

    def opening(self, no_colors: bool = False) -> str:
        """The SGR codes that switch this style on."""
        if no_colors:
            return ""

        parts: list[str] = []
        if self.fg_color is not None:
            parts.append(f"\x1b[{self.fg_color.sgr()}m")
        if self.bg_color is not None:
            parts.append(f"\x1b[{self.bg_color.sgr(background=True)}m")
        if self.is_bold:
            parts.append("\x1b[1m")
        if self.is_italic:
            parts.append("\x1b[3m")
        if self.is_underline:
            parts.append("\x1b[4m")
        if self.is_strikethrough:
            parts.append("\x1b[9m")
        return "".join(parts)

    def apply(self, text: str, no_colors: bool = False) -> str:
        """Wrap *text* in this style's SGR codes followed by a full reset."""
        if no_colors:
            return text
        return f"{self.opening()}{text}\x1b[0m"


# ---------------------------------------------------------------------------
# Terminal geometry
# ---------------------------------------------------------------------------


def terminal_width() -> int | None:
    """Columns of the terminal attached to stdout, or ``None`` if there is none."""
    try:
        return os.get_terminal_size(sys.stdout.fileno()).columns
    except (ValueError, OSError):
        return None


def stdout_is_terminal() -> bool:
    try:
        return sys.stdout.isatty()
    except ValueError:
        return False
