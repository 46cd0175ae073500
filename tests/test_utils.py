"""Tests for mdv.utils -- width measurement, ANSI handling and wrapping."""

from __future__ import annotations

from mdv.utils import (
    AnsiCodeTracker,
    WrapMode,
    extract_ansi_code,
    is_blank,
    pad_to_width,
    split_words,
    strip_ansi,
    take_prefix_by_width,
    truncate_to_width,
    visible_width,
    wrap_text_with_mode,
)


# ---------------------------------------------------------------------------
# visible_width / strip_ansi
# ---------------------------------------------------------------------------


class TestVisibleWidth:
    def test_plain_ascii(self) -> None:
        assert visible_width("hello") == 5

    def test_empty_string(self) -> None:
        assert visible_width("") == 0

    def test_sgr_codes_do_not_count(self) -> None:
        assert visible_width("\x1b[1m\x1b[31mabc\x1b[0m") == 3

    def test_wide_cjk_characters_count_as_two(self) -> None:
        assert visible_width("世") == 2
        assert visible_width("A世B") == 4

    def test_tab_counts_as_four(self) -> None:
        assert visible_width("\t") == 4

    def test_emoji_counts_as_two(self) -> None:
        assert visible_width("\U0001F600") == 2

    def test_hyperlink_wrapper_does_not_count(self) -> None:
        text = "\x1b]8;;https://example.com\x1b\\link\x1b]8;;\x1b\\"
        assert visible_width(text) == 4


class TestStripAnsi:
    def test_removes_sgr(self) -> None:
        assert strip_ansi("\x1b[38;2;1;2;3mred\x1b[0m") == "red"

    def test_removes_osc8_with_bel_terminator(self) -> None:
        assert strip_ansi("\x1b]8;;http://x\x07go\x1b]8;;\x07") == "go"

    def test_plain_text_unchanged(self) -> None:
        assert strip_ansi("nothing here") == "nothing here"

    def test_is_blank_ignores_escapes(self) -> None:
        assert is_blank("\x1b[31m   \x1b[0m")
        assert not is_blank("\x1b[31m x \x1b[0m")


# ---------------------------------------------------------------------------
# Escape parsing
# ---------------------------------------------------------------------------


class TestExtractAnsiCode:
    def test_csi_sequence(self) -> None:
        assert extract_ansi_code("x\x1b[31my", 1) == ("\x1b[31m", 5)

    def test_no_escape_at_position(self) -> None:
        assert extract_ansi_code("abc", 0) is None

    def test_osc_with_string_terminator(self) -> None:
        text = "\x1b]8;;url\x1b\\rest"
        code, length = extract_ansi_code(text, 0)
        assert code == "\x1b]8;;url\x1b\\"
        assert length == len(code)


class TestAnsiCodeTracker:
    def test_tracks_bold_and_colour(self) -> None:
        tracker = AnsiCodeTracker()
        tracker.process("\x1b[1;31m")
        assert tracker.get_active_codes() == "\x1b[1m\x1b[31m"

    def test_reset_clears_everything(self) -> None:
        tracker = AnsiCodeTracker()
        tracker.process("\x1b[3m")
        tracker.process("\x1b[0m")
        assert not tracker.has_active_codes()
        assert tracker.get_active_codes() == ""

    def test_truecolor_foreground(self) -> None:
        tracker = AnsiCodeTracker()
        tracker.process("\x1b[38;2;10;20;30m")
        assert tracker.get_active_codes() == "\x1b[38;2;10;20;30m"

    def test_attribute_off_codes(self) -> None:
        tracker = AnsiCodeTracker()
        tracker.process("\x1b[4m")
        tracker.process("\x1b[24m")
        assert tracker.get_active_codes() == ""


# ---------------------------------------------------------------------------
# Wrapping
# ---------------------------------------------------------------------------


class TestSplitWords:
    def test_alternates_words_and_whitespace(self) -> None:
        assert split_words("a  b") == [("a", False), ("  ", True), ("b", False)]

    def test_escape_codes_stay_with_their_word(self) -> None:
        units = split_words("\x1b[1mbold\x1b[0m text")
        assert units[0] == ("\x1b[1mbold\x1b[0m", False)


class TestWrapTextWithMode:
    def test_char_mode_breaks_anywhere(self) -> None:
        assert wrap_text_with_mode("abcdefgh", 3, WrapMode.CHAR) == "abc\ndef\ngh"

    def test_word_mode_breaks_between_words(self) -> None:
        assert wrap_text_with_mode("hello world foo", 11, WrapMode.WORD) == "hello world\nfoo"

    def test_word_mode_splits_overlong_word(self) -> None:
        wrapped = wrap_text_with_mode("abcdefghij", 4, WrapMode.WORD)
        assert wrapped.split("\n") == ["abcd", "efgh", "ij"]

    def test_none_mode_returns_input(self) -> None:
        assert wrap_text_with_mode("a b c d e f", 2, WrapMode.NONE) == "a b c d e f"

    def test_whitespace_only_lines_become_empty(self) -> None:
        assert wrap_text_with_mode("a\n   \nb", 5, WrapMode.WORD) == "a\n\nb"

    def test_continuation_line_reopens_colour(self) -> None:
        lines = wrap_text_with_mode("\x1b[31mabcdef\x1b[0m", 3, WrapMode.CHAR).split("\n")
        assert len(lines) == 2
        assert lines[1].startswith("\x1b[31m")
        assert strip_ansi(lines[1]) == "def"

    def test_lines_never_exceed_width(self) -> None:
        text = "The quick brown fox jumps over the lazy dog " * 5
        for mode in (WrapMode.CHAR, WrapMode.WORD):
            for line in wrap_text_with_mode(text, 17, mode).split("\n"):
                assert visible_width(line) <= 17

    def test_continuation_does_not_start_with_space(self) -> None:
        for line in wrap_text_with_mode("aaa bbb ccc ddd", 7, WrapMode.CHAR).split("\n"):
            assert not line.startswith(" ")


# ---------------------------------------------------------------------------
# Slicing and padding
# ---------------------------------------------------------------------------


class TestTakePrefixByWidth:
    def test_ascii(self) -> None:
        assert take_prefix_by_width("abcdef", 3) == ("abc", "def")

    def test_wide_character_not_split(self) -> None:
        assert take_prefix_by_width("世界", 3) == ("世", "界")

    def test_zero_width(self) -> None:
        assert take_prefix_by_width("abc", 0) == ("", "abc")


class TestTruncateToWidth:
    def test_fits_unchanged(self) -> None:
        assert truncate_to_width("hello", 10) == "hello"

    def test_adds_ellipsis(self) -> None:
        assert truncate_to_width("hello world", 8) == "hello..."

    def test_width_smaller_than_ellipsis(self) -> None:
        assert truncate_to_width("hello world", 2) == ".."

    def test_zero_width(self) -> None:
        assert truncate_to_width("hello", 0) == ""


class TestPadToWidth:
    def test_left(self) -> None:
        assert pad_to_width("ab", 4) == "ab  "

    def test_right(self) -> None:
        assert pad_to_width("ab", 5, "right") == "   ab"

    def test_center(self) -> None:
        assert pad_to_width("ab", 6, "center") == "  ab  "

    def test_already_wide_enough(self) -> None:
        assert pad_to_width("abcdef", 3) == "abcdef"
