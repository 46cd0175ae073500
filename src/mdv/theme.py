"""Colour themes, style lookup and ``key=value`` theme overrides."""

from __future__ import annotations

import copy
import dataclasses
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from mdv.errors import ThemeError
from mdv.terminal import (
    BLUE,
    CYAN,
    DARK_GREY,
    GREEN,
    GREY,
    MAGENTA,
    RED,
    WHITE,
    YELLOW,
    AnsiStyle,
    Color,
    NAMED_COLORS,
    calculate_luminosity,
)

_rgb = Color.from_rgb
_ansi = Color.ansi


@dataclass
class SyntaxTheme:
    """Colour per lexical category used for code highlighting."""

    keyword: Color = field(default_factory=lambda: _ansi(117))
    string: Color = field(default_factory=lambda: _ansi(109))
    comment: Color = field(default_factory=lambda: _ansi(59))
    number: Color = field(default_factory=lambda: _ansi(109))
    operator: Color = field(default_factory=lambda: _ansi(65))
    function: Color = field(default_factory=lambda: _ansi(153))
    variable: Color = field(default_factory=lambda: _ansi(231))
    type_name: Color = field(default_factory=lambda: _ansi(117))


@dataclass
class Theme:
    """Colours for every semantic element of a rendered document."""

    name: str = "terminal"
    description: str = "Terminal theme with standard colors"

    text: Color = WHITE
    text_light: Color = GREY

    h1: Color = RED
    h2: Color = GREEN
    h3: Color = YELLOW
    h4: Color = BLUE
    h5: Color = MAGENTA
    h6: Color = CYAN

    code: Color = field(default_factory=lambda: _ansi(102))
    code_block: Color = field(default_factory=lambda: _ansi(102))
    quote: Color = field(default_factory=lambda: _ansi(109))
    link: Color = BLUE
    emphasis: Color = YELLOW
    strong: Color = RED
    strikethrough: Color = DARK_GREY

    background: Color | None = None
    border: Color = GREY

    list_marker: Color = GREEN
    table_header: Color = YELLOW
    table_border: Color = GREY

    error: Color = RED
    warning: Color = YELLOW

    syntax: SyntaxTheme = field(default_factory=SyntaxTheme)

    def copy(self) -> Theme:
        return copy.deepcopy(self)


class ThemeElement(Enum):
    TEXT = "text"
    TEXT_LIGHT = "text_light"
    H1 = "h1"
    H2 = "h2"
    H3 = "h3"
    H4 = "h4"
    H5 = "h5"
    H6 = "h6"
    CODE = "code"
    CODE_BLOCK = "code_block"
    QUOTE = "quote"
    LINK = "link"
    EMPHASIS = "emphasis"
    STRONG = "strong"
    STRIKETHROUGH = "strikethrough"
    BORDER = "border"
    LIST_MARKER = "list_marker"
    TABLE_HEADER = "table_header"
    TABLE_BORDER = "table_border"
    ERROR = "error"
    WARNING = "warning"


HEADING_ELEMENTS = (
    ThemeElement.H1,
    ThemeElement.H2,
    ThemeElement.H3,
    ThemeElement.H4,
    ThemeElement.H5,
    ThemeElement.H6,
)


def create_style(theme: Theme, element: ThemeElement) -> AnsiStyle:
    """Build the style for *element*: its theme colour plus fixed attributes."""
    # Code blocks are highlighted separately; their frame uses the text colour
    if element is ThemeElement.CODE_BLOCK:
        color = theme.text
    else:
        color = getattr(theme, element.value)

    style = AnsiStyle().fg(color)
    if element in (ThemeElement.STRONG, ThemeElement.H1):
        style = style.bold()
    elif element is ThemeElement.EMPHASIS:
        style = style.italic()
    elif element is ThemeElement.STRIKETHROUGH:
        style = style.strikethrough()
    return style


# ---------------------------------------------------------------------------
# Built-in themes
# ---------------------------------------------------------------------------


def _palette(
    name: str,
    description: str,
    *,
    text: tuple[int, int, int],
    text_light: tuple[int, int, int],
    headings: tuple[tuple[int, int, int], ...],
    code: tuple[int, int, int],
    code_block: tuple[int, int, int],
    quote: tuple[int, int, int],
    link: tuple[int, int, int],
    emphasis: tuple[int, int, int],
    strong: tuple[int, int, int],
    strikethrough: tuple[int, int, int],
    background: tuple[int, int, int],
    border: tuple[int, int, int],
    list_marker: tuple[int, int, int],
    table_header: tuple[int, int, int],
    error: tuple[int, int, int],
    warning: tuple[int, int, int],
    syntax: tuple[tuple[int, int, int], ...],
) -> Theme:
    h1, h2, h3, h4, h5, h6 = (_rgb(*c) for c in headings)
    keyword, string, comment, number, operator, function, variable, type_name = (
        _rgb(*c) for c in syntax
    )
    return Theme(
        name=name,
        description=description,
        text=_rgb(*text),
        text_light=_rgb(*text_light),
        h1=h1,
        h2=h2,
        h3=h3,
        h4=h4,
        h5=h5,
        h6=h6,
        code=_rgb(*code),
        code_block=_rgb(*code_block),
        quote=_rgb(*quote),
        link=_rgb(*link),
        emphasis=_rgb(*emphasis),
        strong=_rgb(*strong),
        strikethrough=_rgb(*strikethrough),
        background=_rgb(*background),
        border=_rgb(*border),
        list_marker=_rgb(*list_marker),
        table_header=_rgb(*table_header),
        table_border=_rgb(*border),
        error=_rgb(*error),
        warning=_rgb(*warning),
        syntax=SyntaxTheme(
            keyword=keyword,
            string=string,
            comment=comment,
            number=number,
            operator=operator,
            function=function,
            variable=variable,
            type_name=type_name,
        ),
    )


def _builtin_themes() -> dict[str, Theme]:
    themes = [
        Theme(),
        _palette(
            "monokai",
            "Monokai color scheme",
            text=(248, 248, 242),
            text_light=(117, 113, 94),
            headings=((249, 38, 114), (166, 226, 46), (230, 219, 116), (102, 217, 239), (253, 151, 31), (174, 129, 255)),
            code=(230, 219, 116),
            code_block=(248, 248, 242),
            quote=(117, 113, 94),
            link=(102, 217, 239),
            emphasis=(253, 151, 31),
            strong=(249, 38, 114),
            strikethrough=(117, 113, 94),
            background=(39, 40, 34),
            border=(73, 72, 62),
            list_marker=(166, 226, 46),
            table_header=(253, 151, 31),
            error=(249, 38, 114),
            warning=(253, 151, 31),
            syntax=((249, 38, 114), (230, 219, 116), (117, 113, 94), (174, 129, 255), (249, 38, 114), (166, 226, 46), (248, 248, 242), (102, 217, 239)),
        ),
        _palette(
            "solarized-dark",
            "Solarized Dark color scheme",
            text=(131, 148, 150),
            text_light=(88, 110, 117),
            headings=((220, 50, 47), (203, 75, 22), (181, 137, 0), (38, 139, 210), (108, 113, 196), (42, 161, 152)),
            code=(42, 161, 152),
            code_block=(131, 148, 150),
            quote=(88, 110, 117),
            link=(38, 139, 210),
            emphasis=(203, 75, 22),
            strong=(220, 50, 47),
            strikethrough=(88, 110, 117),
            background=(0, 43, 54),
            border=(88, 110, 117),
            list_marker=(133, 153, 0),
            table_header=(181, 137, 0),
            error=(220, 50, 47),
            warning=(181, 137, 0),
            syntax=((133, 153, 0), (42, 161, 152), (88, 110, 117), (181, 137, 0), (220, 50, 47), (38, 139, 210), (131, 148, 150), (108, 113, 196)),
        ),
        _palette(
            "nord",
            "Nord color scheme",
            text=(236, 239, 244),
            text_light=(216, 222, 233),
            headings=((136, 192, 208), (143, 188, 187), (129, 161, 193), (94, 129, 172), (191, 97, 106), (208, 135, 112)),
            code=(235, 203, 139),
            code_block=(236, 239, 244),
            quote=(76, 86, 106),
            link=(136, 192, 208),
            emphasis=(163, 190, 140),
            strong=(180, 142, 173),
            strikethrough=(67, 76, 94),
            background=(46, 52, 64),
            border=(76, 86, 106),
            list_marker=(163, 190, 140),
            table_header=(136, 192, 208),
            error=(191, 97, 106),
            warning=(235, 203, 139),
            syntax=((129, 161, 193), (163, 190, 140), (76, 86, 106), (180, 142, 173), (129, 161, 193), (136, 192, 208), (236, 239, 244), (143, 188, 187)),
        ),
        _palette(
            "tokyonight",
            "Tokyonight color scheme",
            text=(192, 202, 245),
            text_light=(169, 177, 214),
            headings=((122, 162, 247), (158, 206, 106), (187, 154, 247), (125, 207, 255), (247, 118, 142), (224, 175, 104)),
            code=(255, 158, 100),
            code_block=(192, 202, 245),
            quote=(59, 66, 97),
            link=(125, 207, 255),
            emphasis=(169, 177, 214),
            strong=(122, 162, 247),
            strikethrough=(84, 92, 126),
            background=(26, 27, 38),
            border=(59, 66, 97),
            list_marker=(158, 206, 106),
            table_header=(125, 207, 255),
            error=(247, 118, 142),
            warning=(224, 175, 104),
            syntax=((122, 162, 247), (158, 206, 106), (86, 95, 137), (255, 158, 100), (125, 207, 255), (187, 154, 247), (192, 202, 245), (224, 175, 104)),
        ),
        _palette(
            "kanagawa",
            "Kanagawa color scheme",
            text=(220, 215, 186),
            text_light=(200, 192, 147),
            headings=((126, 156, 216), (122, 168, 159), (147, 138, 169), (149, 127, 184), (255, 160, 102), (228, 104, 118)),
            code=(192, 163, 110),
            code_block=(220, 215, 186),
            quote=(84, 84, 109),
            link=(126, 156, 216),
            emphasis=(200, 192, 147),
            strong=(147, 138, 169),
            strikethrough=(114, 113, 105),
            background=(31, 31, 40),
            border=(42, 42, 55),
            list_marker=(122, 168, 159),
            table_header=(200, 192, 147),
            error=(228, 104, 118),
            warning=(255, 158, 59),
            syntax=((126, 156, 216), (152, 187, 108), (114, 113, 105), (255, 160, 102), (147, 138, 169), (122, 168, 159), (220, 215, 186), (192, 163, 110)),
        ),
        _palette(
            "gruvbox",
            "Gruvbox Dark color scheme",
            text=(235, 219, 178),
            text_light=(168, 153, 132),
            headings=((250, 189, 47), (184, 187, 38), (142, 192, 124), (131, 165, 152), (211, 134, 155), (254, 128, 25)),
            code=(142, 192, 124),
            code_block=(60, 56, 54),
            quote=(146, 131, 116),
            link=(131, 165, 152),
            emphasis=(211, 134, 155),
            strong=(251, 73, 52),
            strikethrough=(102, 92, 84),
            background=(40, 40, 40),
            border=(102, 92, 84),
            list_marker=(184, 187, 38),
            table_header=(184, 187, 38),
            error=(251, 73, 52),
            warning=(254, 128, 25),
            syntax=((251, 73, 52), (184, 187, 38), (146, 131, 116), (211, 134, 155), (254, 128, 25), (142, 192, 124), (235, 219, 178), (131, 165, 152)),
        ),
        _palette(
            "material-ocean",
            "Material Theme Ocean color scheme",
            text=(238, 255, 255),
            text_light=(176, 190, 197),
            headings=((130, 170, 255), (128, 203, 196), (195, 232, 141), (255, 203, 107), (247, 140, 108), (199, 146, 234)),
            code=(255, 203, 107),
            code_block=(238, 255, 255),
            quote=(84, 110, 122),
            link=(130, 170, 255),
            emphasis=(247, 140, 108),
            strong=(199, 146, 234),
            strikethrough=(84, 110, 122),
            background=(15, 17, 26),
            border=(28, 34, 48),
            list_marker=(195, 232, 141),
            table_header=(130, 170, 255),
            error=(240, 113, 120),
            warning=(255, 203, 107),
            syntax=((199, 146, 234), (195, 232, 141), (84, 110, 122), (247, 140, 108), (137, 221, 255), (130, 170, 255), (238, 255, 255), (128, 203, 196)),
        ),
        _palette(
            "catppucin",
            "Catppucin color scheme",
            text=(205, 214, 244),
            text_light=(186, 194, 222),
            headings=((180, 190, 254), (137, 180, 250), (148, 226, 213), (166, 227, 161), (249, 226, 175), (242, 205, 205)),
            code=(245, 194, 231),
            code_block=(205, 214, 244),
            quote=(108, 112, 134),
            link=(137, 220, 235),
            emphasis=(245, 194, 231),
            strong=(203, 166, 247),
            strikethrough=(108, 112, 134),
            background=(30, 30, 46),
            border=(49, 50, 68),
            list_marker=(166, 227, 161),
            table_header=(137, 180, 250),
            error=(243, 139, 168),
            warning=(250, 179, 135),
            syntax=((203, 166, 247), (166, 227, 161), (108, 112, 134), (250, 179, 135), (137, 220, 235), (137, 180, 250), (205, 214, 244), (148, 226, 213)),
        ),
    ]
    return {theme.name: theme for theme in themes}


# ---------------------------------------------------------------------------
# ThemeManager
# ---------------------------------------------------------------------------


def theme_luminosity(theme: Theme) -> float:
    """Average perceived brightness of the H1-H5 colours (0.5 if none resolve)."""
    values = [
        calculate_luminosity(*rgb)
        for rgb in (c.to_rgb() for c in (theme.h1, theme.h2, theme.h3, theme.h4, theme.h5))
        if rgb is not None
    ]
    if not values:
        return 0.5
    return sum(values) / len(values)


class ThemeManager:
    """Registry of named themes, seeded with the built-ins."""

    def __init__(self) -> None:
        self._themes = _builtin_themes()

    def get_theme(self, name: str) -> Theme:
        theme = self._themes.get(name)
        if theme is None:
            raise ThemeError(f"Theme '{name}' not found")
        return theme

    def find_theme(self, name: str) -> Theme | None:
        """Case-insensitive lookup; ``None`` when no theme matches."""
        if name in self._themes:
            return self._themes[name]
        lowered = name.lower()
        for theme_name in self.list_themes():
            if theme_name.lower() == lowered:
                return self._themes[theme_name]
        return None

    def list_themes(self) -> list[str]:
        return sorted(self._themes)

    def add_theme(self, theme: Theme) -> None:
        self._themes[theme.name] = theme

    def load_theme_from_file(self, path: str | Path) -> Theme:
        """Load a YAML theme file and register it.

        Colour values use the same notation as ``--custom-theme``; missing
        keys keep the default terminal colours.
        """
        try:
            data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ThemeError(f"Failed to parse YAML theme file: {exc}") from exc

        if not isinstance(data, dict) or not data.get("name"):
            raise ThemeError(f"Theme file {path} must be a mapping with a 'name' key")

        theme = _theme_from_mapping(data)
        self.add_theme(theme)
        return theme

    def themes_by_luminosity(self) -> list[tuple[str, Theme, float]]:
        ranked = [(name, theme, theme_luminosity(theme)) for name, theme in self._themes.items()]
        ranked.sort(key=lambda item: item[2])
        return ranked


def _theme_from_mapping(data: dict[str, Any]) -> Theme:
    theme = Theme(name=str(data["name"]), description=str(data.get("description", "")))
    syntax = data.get("syntax") or {}
    for key, value in data.items():
        if key in ("name", "description", "syntax"):
            continue
        _apply_theme_override(theme, key, str(value))
    for key, value in syntax.items():
        _apply_code_theme_override(theme.syntax, key, str(value))
    return theme


def list_themes() -> None:
    """Print every available theme, darkest first."""
    manager = ThemeManager()
    print("Available themes:")
    print()
    for name, theme, luminosity in manager.themes_by_luminosity():
        print(f"  {name:<20} - {theme.description} (luminosity: {luminosity:.3f})")


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------

_THEME_KEYS: dict[str, str] = {
    "text": "text",
    "text_light": "text_light",
    "textlight": "text_light",
    "h1": "h1",
    "h2": "h2",
    "h3": "h3",
    "h4": "h4",
    "h5": "h5",
    "h6": "h6",
    "code": "code",
    "code_block": "code_block",
    "codeblock": "code_block",
    "quote": "quote",
    "link": "link",
    "emphasis": "emphasis",
    "strong": "strong",
    "strikethrough": "strikethrough",
    "strike": "strikethrough",
    "del": "strikethrough",
    "background": "background",
    "bg": "background",
    "border": "border",
    "list_marker": "list_marker",
    "listmarker": "list_marker",
    "table_header": "table_header",
    "tableheader": "table_header",
    "table_border": "table_border",
    "tableborder": "table_border",
    "error": "error",
    "warning": "warning",
}

_SYNTAX_KEYS: dict[str, str] = {f.name: f.name for f in dataclasses.fields(SyntaxTheme)}
_SYNTAX_KEYS.update({"typename": "type_name", "type": "type_name"})

_NAMED_ALIASES: dict[str, str] = {
    name.replace("_", ""): name for name in NAMED_COLORS if "_" in name
}
_NAMED_ALIASES.update({"gray": "grey", "darkgray": "dark_grey", "dark_gray": "dark_grey"})

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def apply_custom_theme(theme: Theme, overrides: str) -> None:
    """Apply ``key=value`` overrides (``;`` or newline separated) to *theme*."""
    for key, value in parse_override_pairs(overrides):
        try:
            _apply_theme_override(theme, key, value)
        except ThemeError as exc:
            raise ThemeError(f"Failed to apply override '{key}={value}': {exc.message}") from exc


def apply_custom_code_theme(theme: Theme, overrides: str) -> None:
    """Apply syntax colour overrides in the same notation as :func:`apply_custom_theme`."""
    for key, value in parse_override_pairs(overrides):
        try:
            _apply_code_theme_override(theme.syntax, key, value)
        except ThemeError as exc:
            raise ThemeError(
                f"Failed to apply syntax override '{key}={value}': {exc.message}"
            ) from exc


def parse_override_pairs(text: str) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for raw in re.split(r"[;\n]", text):
        trimmed = raw.strip()
        if not trimmed:
            continue
        if "=" not in trimmed:
            raise ThemeError(f"Override pair '{trimmed}' must contain '='")
        key, value = (part.strip() for part in trimmed.split("=", 1))
        if not key:
            raise ThemeError(f"Found empty key in override '{trimmed}'.")
        if not value:
            raise ThemeError(f"Key '{key}' has an empty value in override.")
        pairs.append((key, value))

    if not pairs:
        raise ThemeError("Override string is empty.")
    return pairs


def normalize_key(key: str) -> str:
    return key.strip().replace("-", "_").replace(" ", "_").replace("__", "_").lower()


def _apply_theme_override(theme: Theme, key: str, value: str) -> None:
    normalized = normalize_key(key)
    attr = _THEME_KEYS.get(normalized)
    if attr is None:
        raise ThemeError(f"Unknown key for custom theme: '{normalized}'.")
    if attr == "background" and value.strip().lower() in ("", "none", "null"):
        theme.background = None
        return
    setattr(theme, attr, parse_color_spec(value))


def _apply_code_theme_override(syntax: SyntaxTheme, key: str, value: str) -> None:
    normalized = normalize_key(key)
    attr = _SYNTAX_KEYS.get(normalized)
    if attr is None:
        raise ThemeError(f"Unknown key for custom syntax theme: '{normalized}'.")
    setattr(syntax, attr, parse_color_spec(value))


def parse_color_spec(value: str) -> Color:
    """Parse ``#rgb``, ``#rrggbb``, ``0..255``, ``rgb(r,g,b)``, ``r,g,b``,
    ``ansi(n)``, ``reset`` or a colour name."""
    trimmed = value.strip()
    if not trimmed:
        raise ThemeError("Color cannot be an empty string.")

    if trimmed.startswith("#"):
        return _parse_hex_color(trimmed)

    lower = trimmed.lower()

    if re.fullmatch(r"-?\d+", trimmed):
        number = int(trimmed)
        if not 0 <= number <= 255:
            raise ThemeError(f"ANSI value '{number}' must be in the range 0..=255.")
        return Color.ansi(number)

    if lower.startswith("rgb(") and lower.endswith(")"):
        return Color.from_rgb(*_parse_rgb_components(lower[4:-1]))

    if "," in trimmed:
        return Color.from_rgb(*_parse_rgb_components(trimmed))

    if lower.startswith("ansi(") and lower.endswith(")"):
        inner = lower[5:-1].strip()
        if not inner.isdigit() or int(inner) > 255:
            raise ThemeError(
                f"Value '{inner}': expected a number in the range 0..=255 for ansi()."
            )
        return Color.ansi(int(inner))

    if lower == "reset":
        return Color("reset")

    name = _NAMED_ALIASES.get(lower, lower)
    if name not in NAMED_COLORS:
        raise ThemeError(f"Unknown color value '{value}'.")
    return Color(name)


def _parse_hex_color(value: str) -> Color:
    digits = value.lstrip("#")
    if len(digits) not in (3, 6) or not _HEX_RE.match(digits):
        raise ThemeError(f"Color '{value}' must contain 3 or 6 hexadecimal digits.")
    if len(digits) == 3:
        r, g, b = (int(d, 16) * 17 for d in digits)
    else:
        r, g, b = (int(digits[i : i + 2], 16) for i in (0, 2, 4))
    return Color.from_rgb(r, g, b)


def _parse_rgb_components(value: str) -> tuple[int, int, int]:
    parts = value.split(",")
    if len(parts) != 3:
        raise ThemeError(f"Color '{value}' must contain three comma-separated RGB components.")

    components: list[int] = []
    for part in parts:
        component = part.strip()
        if not re.fullmatch(r"-?\d+", component):
            raise ThemeError(f"Component '{component}' must be an integer in 0..=255.")
        number = int(component)
        if not 0 <= number <= 255:
            raise ThemeError(f"Component '{component}' is out of range 0..=255.")
        components.append(number)
    return (components[0], components[1], components[2])


def resolve_theme(
    name: str,
    custom_theme: str | None = None,
    custom_code_theme: str | None = None,
    manager: ThemeManager | None = None,
) -> Theme:
    """Return a private copy of theme *name* with any overrides applied."""
    manager = manager or ThemeManager()
    theme = manager.get_theme(name).copy()

    if custom_theme:
        apply_custom_theme(theme, custom_theme)
    if custom_code_theme:
        apply_custom_code_theme(theme, custom_code_theme)
    if (custom_theme or custom_code_theme) and not theme.name.endswith("+custom"):
        theme.name = f"{theme.name}+custom"
    return theme
