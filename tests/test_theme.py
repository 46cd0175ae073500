"""Tests for mdv.theme and the colour types in mdv.terminal."""

from __future__ import annotations

import pytest

from mdv.errors import ThemeError
from mdv.terminal import AnsiStyle, Color, ansi256_to_rgb, calculate_luminosity
from mdv.theme import (
    Theme,
    ThemeElement,
    ThemeManager,
    apply_custom_code_theme,
    create_style,
    list_themes,
    parse_color_spec,
    parse_override_pairs,
    resolve_theme,
)


class TestColor:
    def test_named_sgr(self) -> None:
        assert Color("red").sgr() == "91"
        assert Color("red").sgr(background=True) == "101"

    def test_indexed_and_rgb_sgr(self) -> None:
        assert Color.ansi(102).sgr() == "38;5;102"
        assert Color.from_rgb(1, 2, 3).sgr(background=True) == "48;2;1;2;3"

    def test_reset(self) -> None:
        assert Color("reset").sgr() == "39"
        assert Color("reset").to_rgb() is None

    def test_ansi256_conversion(self) -> None:
        assert ansi256_to_rgb(9) == (255, 0, 0)
        assert ansi256_to_rgb(16) == (0, 0, 0)
        assert ansi256_to_rgb(231) == (255, 255, 255)
        assert ansi256_to_rgb(232) == (8, 8, 8)

    def test_luminosity_range(self) -> None:
        assert calculate_luminosity(0, 0, 0) == 0.0
        assert calculate_luminosity(255, 255, 255) == pytest.approx(1.0)


class TestAnsiStyle:
    def test_apply_wraps_and_resets(self) -> None:
        styled = AnsiStyle().fg(Color("red")).bold().apply("hi")
        assert styled == "\x1b[91m\x1b[1mhi\x1b[0m"

    def test_no_colors_returns_text(self) -> None:
        assert AnsiStyle().fg(Color("red")).italic().apply("hi", no_colors=True) == "hi"

    def test_opening(self) -> None:
        style = AnsiStyle().fg(Color("red")).bold()
        assert style.opening() == "\x1b[91m\x1b[1m"
        assert style.opening(no_colors=True) == ""

    def test_builders_do_not_mutate(self) -> None:
        base = AnsiStyle()
        base.bold()
        assert not base.is_bold


class TestCreateStyle:
    def test_strong_is_bold(self) -> None:
        style = create_style(Theme(), ThemeElement.STRONG)
        assert style.is_bold
        assert style.fg_color == Theme().strong

    def test_emphasis_is_italic(self) -> None:
        assert create_style(Theme(), ThemeElement.EMPHASIS).is_italic

    def test_strikethrough(self) -> None:
        assert create_style(Theme(), ThemeElement.STRIKETHROUGH).is_strikethrough

    def test_h1_bold_h2_not(self) -> None:
        assert create_style(Theme(), ThemeElement.H1).is_bold
        assert not create_style(Theme(), ThemeElement.H2).is_bold

    def test_code_block_uses_text_colour(self) -> None:
        theme = Theme()
        assert create_style(theme, ThemeElement.CODE_BLOCK).fg_color == theme.text


# ---------------------------------------------------------------------------
# Theme catalogue
# ---------------------------------------------------------------------------


class TestThemeManager:
    def test_builtin_themes(self) -> None:
        names = ThemeManager().list_themes()
        for name in ("terminal", "monokai", "nord", "gruvbox", "solarized-dark"):
            assert name in names

    def test_get_unknown_theme(self) -> None:
        with pytest.raises(ThemeError, match="not found"):
            ThemeManager().get_theme("no-such-theme")

    def test_find_is_case_insensitive(self) -> None:
        assert ThemeManager().find_theme("MONOKAI").name == "monokai"
        assert ThemeManager().find_theme("missing") is None

    def test_sorted_by_luminosity(self) -> None:
        ranked = ThemeManager().themes_by_luminosity()
        values = [lum for _name, _theme, lum in ranked]
        assert values == sorted(values)

    def test_load_theme_from_file(self, tmp_path) -> None:
        path = tmp_path / "mine.yaml"
        path.write_text("name: mine\ndescription: Mine\nh1: '#ff0000'\nsyntax:\n  keyword: blue\n")

        manager = ThemeManager()
        theme = manager.load_theme_from_file(path)

        assert theme.h1 == Color.from_rgb(255, 0, 0)
        assert theme.syntax.keyword == Color("blue")
        assert manager.get_theme("mine") is theme

    def test_load_theme_without_name(self, tmp_path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("h1: red\n")
        with pytest.raises(ThemeError):
            ThemeManager().load_theme_from_file(path)

    def test_list_themes_output(self, capsys) -> None:
        list_themes()
        out = capsys.readouterr().out
        assert out.startswith("Available themes:")
        assert "monokai" in out
        assert "luminosity" in out


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------


class TestParseColorSpec:
    @pytest.mark.parametrize(
        "spec,expected",
        [
            ("#fff", Color.from_rgb(255, 255, 255)),
            ("#102030", Color.from_rgb(16, 32, 48)),
            ("12", Color.ansi(12)),
            ("rgb(1, 2, 3)", Color.from_rgb(1, 2, 3)),
            ("1,2,3", Color.from_rgb(1, 2, 3)),
            ("ansi(200)", Color.ansi(200)),
            ("Red", Color("red")),
            ("gray", Color("grey")),
            ("darkred", Color("dark_red")),
            ("reset", Color("reset")),
        ],
    )
    def test_valid(self, spec, expected) -> None:
        assert parse_color_spec(spec) == expected

    @pytest.mark.parametrize("spec", ["", "#12", "#gggggg", "256", "1,2", "1,2,300", "ansi(999)", "chartreuse"])
    def test_invalid(self, spec) -> None:
        with pytest.raises(ThemeError):
            parse_color_spec(spec)


class TestOverrides:
    def test_parse_pairs(self) -> None:
        assert parse_override_pairs("text=#fff; h1 = red\nlink=4") == [
            ("text", "#fff"),
            ("h1", "red"),
            ("link", "4"),
        ]

    @pytest.mark.parametrize("text", ["", " ; ", "novalue", "=red", "h1="])
    def test_parse_pairs_errors(self, text) -> None:
        with pytest.raises(ThemeError):
            parse_override_pairs(text)

    def test_resolve_theme_applies_overrides_to_a_copy(self) -> None:
        manager = ThemeManager()
        theme = resolve_theme("monokai", "h1=#ffffff", None, manager)

        assert theme.h1 == Color.from_rgb(255, 255, 255)
        assert theme.name == "monokai+custom"
        assert manager.get_theme("monokai").h1 != theme.h1

    def test_resolve_theme_without_overrides(self) -> None:
        assert resolve_theme("nord").name == "nord"

    def test_unknown_key(self) -> None:
        with pytest.raises(ThemeError, match="Unknown key"):
            resolve_theme("terminal", "sparkle=red")

    def test_key_aliases(self) -> None:
        theme = resolve_theme("terminal", "list-marker=red;strike=blue")
        assert theme.list_marker == Color("red")
        assert theme.strikethrough == Color("blue")

    def test_code_theme_overrides(self) -> None:
        theme = Theme()
        apply_custom_code_theme(theme, "keyword=#000000;type=1")
        assert theme.syntax.keyword == Color.from_rgb(0, 0, 0)
        assert theme.syntax.type_name == Color.ansi(1)
