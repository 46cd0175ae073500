"""Tests for mdv.renderer -- whole documents rendered to terminal text."""

from __future__ import annotations

import pytest

from mdv.config import CodeBlockStyle, HeadingLayout, LinkStyle, LinkTruncation, TableWrapMode
from mdv.events import End, InlineMath, Paragraph, Start, Text
from mdv.terminal import AnsiStyle
from mdv.theme import HEADING_ELEMENTS, ThemeManager, create_style
from mdv.utils import WrapMode, strip_ansi, visible_width

from .helpers import plain_lines, render, render_events, render_plain, widest_line

LOREM = (
    "Lorem ipsum dolor sit amet, consectetur adipiscing elit, sed do eiusmod "
    "tempor incididunt ut labore et dolore magna aliqua. Ut enim ad minim veniam."
)

MIXED_DOCUMENT = """\
# Title

Para one.

## Sub

- a
- b

> quote

```python
x = 1
```

| a | b |
|---|---|
| 1 | 2 |

---

End.
"""


def visible(output: str) -> list[str]:
    return [line for line in plain_lines(output) if line.strip()]


class TestBasics:
    def test_heading_and_paragraph(self) -> None:
        out = render_plain("# Hello\n\nThis is **bold** text.")
        assert out == "Hello\n\n This is bold text.\n"

    def test_bold_is_styled_with_colours(self) -> None:
        out = render("# Hello\n\nThis is **bold** text.")
        assert "\x1b[1m" in out
        assert strip_ansi(out).split("\n")[0].strip() == "Hello"

    def test_strikethrough_is_styled(self) -> None:
        assert "\x1b[9m" in render("~~gone~~")

    def test_empty_input(self) -> None:
        assert render_plain("") == ""

    def test_plain_text_is_not_styled(self) -> None:
        assert render("plain words") == "plain words\n"

    def test_soft_break_keeps_line(self) -> None:
        assert render_plain("a\nb") == "a\nb\n"

    def test_inline_code_keeps_backticks(self) -> None:
        assert render_plain("use `x` here") == "use `x` here\n"

    def test_rule_spans_width(self) -> None:
        out = render_plain("---", cols=10)
        assert out == "◈────────◈\n"

    def test_from_text_starts_at_match(self) -> None:
        out = render_plain("Line 1\nTarget Line\nLine 3\nLine 4", from_text="Target:2")
        assert out == "Target Line\nLine 3\n"

    def test_footnote_reference(self) -> None:
        out = render_plain("a[^1]\n\n[^1]: note")
        assert "a[^1]" in out

    def test_image_placeholder(self) -> None:
        assert render_plain("![alt](img.png)") == "[IMAGE] alt\n"


class TestEvents:
    def test_paragraph_events(self) -> None:
        out = render_events([Start(Paragraph()), Text("hi"), End(Paragraph())])
        assert out == "hi\n"

    def test_math_is_ignored(self) -> None:
        events = [Start(Paragraph()), Text("a"), InlineMath("x"), End(Paragraph())]
        assert render_events(events) == "a\n"

    def test_no_events(self) -> None:
        assert render_events([]) == ""


class TestInvariants:
    @pytest.mark.parametrize("mode", [WrapMode.CHAR, WrapMode.WORD])
    def test_paragraph_fits_width(self, mode: WrapMode) -> None:
        out = render_plain(LOREM, cols=30, wrap=mode)
        assert widest_line(out) <= 30
        assert len(visible(out)) > 1

    @pytest.mark.parametrize("mode", [WrapMode.CHAR, WrapMode.WORD])
    def test_list_and_quote_fit_width(self, mode: WrapMode) -> None:
        out = render_plain(f"- {LOREM}\n\n> {LOREM}", cols=30, wrap=mode)
        assert widest_line(out) <= 30

    def test_wrapped_quote_lines_keep_marker(self) -> None:
        out = render_plain(f"> {LOREM}", cols=30)
        for line in visible(out):
            assert line.startswith("│ ")

    def test_wrapped_list_lines_are_indented(self) -> None:
        out = render_plain(f"- {LOREM}", cols=30, wrap=WrapMode.WORD)
        lines = visible(out)
        assert lines[0].startswith("- ")
        assert all(line.startswith("  ") for line in lines[1:])

    def test_no_wrapping_keeps_long_line(self) -> None:
        out = render_plain(LOREM, cols=30, wrap=WrapMode.NONE)
        assert visible(out) == [LOREM]

    def test_no_double_blank_lines(self) -> None:
        lines = plain_lines(render_plain(MIXED_DOCUMENT))
        for first, second in zip(lines, lines[1:]):
            assert first.strip() or second.strip()

    def test_no_escapes_without_colours(self) -> None:
        out = render_plain(MIXED_DOCUMENT + "\n[link](https://example.com)\n")
        assert "\x1b" not in out

    def test_word_wrap_long_inline_code_terminates(self) -> None:
        out = render_plain(
            "- `some_long_inline_code_identifier_here` and more", cols=20, wrap=WrapMode.WORD
        )
        assert widest_line(out) <= 20
        assert "and" in out


class TestLongWords:
    def test_word_longer_than_line_is_split(self) -> None:
        out = render_plain("x" * 50, cols=30, wrap=WrapMode.WORD)
        assert visible(out) == ["x" * 30, "x" * 20]

    def test_long_word_starts_on_fresh_line(self) -> None:
        lines = visible(render_plain("Hello " + "x" * 50, cols=30, wrap=WrapMode.WORD))
        assert lines[0].rstrip() == "Hello"
        assert lines[1] == "x" * 30

    def test_long_word_in_quote(self) -> None:
        out = render_plain("> " + "x" * 50, cols=30, wrap=WrapMode.WORD)
        lines = visible(out)
        assert widest_line(out) <= 30
        assert len(lines) == 2
        assert all(line.startswith("│ ") for line in lines)

    def test_long_word_in_list_item(self) -> None:
        out = render_plain("- " + "y" * 50, cols=30, wrap=WrapMode.WORD)
        lines = visible(out)
        assert widest_line(out) <= 30
        assert lines[0].startswith("- y")
        assert all(line.startswith("  y") for line in lines[1:])

    def test_wide_characters_under_heading(self) -> None:
        out = render_plain("### Title\n\n" + "中文字符测试" * 5, cols=30, wrap=WrapMode.WORD)
        assert widest_line(out) <= 30
        assert "".join(line.strip() for line in visible(out)[1:]) == "中文字符测试" * 5

    def test_long_link_text(self) -> None:
        out = render_plain(
            "[" + "z" * 50 + "](https://e.com)", cols=30, wrap=WrapMode.WORD, link_style=LinkStyle.INLINE
        )
        assert widest_line(out) <= 30
        assert "z" * 30 in plain_lines(out)


class TestLists:
    def test_task_markers(self) -> None:
        lines = visible(render_plain("- [x] done\n- [ ] todo"))
        assert lines == ["- [✓] done", "- [ ] todo"]

    def test_ordered_start(self) -> None:
        assert visible(render_plain("3. a\n4. b")) == ["3. a", "4. b"]

    def test_nested_list(self) -> None:
        assert visible(render_plain("- a\n  - b")) == ["- a", "  - b"]

    def test_list_inside_quote(self) -> None:
        out = render_plain("> - dsadas\n>   ddsadas", cols=20)
        assert visible(out) == ["│ - dsadas", "│   ddsadas"]


class TestQuotes:
    def test_nested_quote_marker(self) -> None:
        out = render_plain("> a\n>> b")
        assert "│ a" in out
        assert "││ b" in out


class TestHeadings:
    def test_level_indents_content(self) -> None:
        out = render_plain("## Heading Two\n\nContent")
        assert out == " Heading Two\n\n  Content\n"

    def test_smart_indent_single_level(self) -> None:
        out = render_plain("## Heading Two\n\nContent", smart_indent=True)
        assert "\n Content\n" in out

    def test_level_indents_deeper_headings(self) -> None:
        out = render_plain("# H1\n\n## H2\n\n###### H6")
        assert "\n H2\n" in out
        assert "\n     H6\n" in out

    def test_smart_indent_closes_gaps(self) -> None:
        out = render_plain("# H1\n\n## H2\n\n###### H6", smart_indent=True)
        assert "\n H2\n" in out
        assert "\n  H6\n" in out

    def test_smart_indent_mixed_levels(self) -> None:
        doc = "# Root\n\n## Level 2\n\n###### Level 6\n\n#### Level 4\n\n## Level 2 second"
        out = render_plain(doc, smart_indent=True)
        assert "\n Level 2\n" in out
        assert "\n   Level 6\n" in out
        assert "\n  Level 4\n" in out

    def test_flat_layout(self) -> None:
        assert render_plain("## Sub\n\ntext", heading_layout=HeadingLayout.FLAT) == "Sub\n\n text\n"

    def test_none_layout(self) -> None:
        assert render_plain("## Sub\n\ntext", heading_layout=HeadingLayout.NONE) == "Sub\n\ntext\n"

    def test_center_layout(self) -> None:
        out = render_plain("# Hi", cols=20, heading_layout=HeadingLayout.CENTER)
        assert out == " " * 9 + "Hi\n"

    def test_center_layout_spacing(self) -> None:
        out = render_plain(
            "# Centered\n## Another\n\n---\n\nParagraph body", heading_layout=HeadingLayout.CENTER
        )
        assert "\n\n◈" in out
        assert "\nParagraph body" in out
        assert "\n\n\n" not in out

    def test_inline_code_keeps_its_colour(self) -> None:
        theme = ThemeManager().get_theme("terminal")
        out = render("# Hello `world`")
        assert AnsiStyle().fg(theme.code).opening() + "`world`" in out
        assert strip_ansi(out) == "Hello `world`\n"

    def test_heading_style_resumes_after_inline_span(self) -> None:
        theme = ThemeManager().get_theme("terminal")
        heading = create_style(theme, HEADING_ELEMENTS[0]).opening()
        out = render("# Hello **big** world")
        assert "\x1b[0m" + heading + " world" in out

    def test_link_in_heading_is_clickable(self) -> None:
        out = render("# See [docs](https://example.com)")
        assert "\x1b]8;;https://example.com\x1b\\" in out

    def test_empty_heading_hidden(self) -> None:
        assert render_plain("#") == ""

    def test_empty_heading_shown(self) -> None:
        assert render_plain("#", show_empty_elements=True) == "#\n"

    def test_empty_heading_before_next_heading(self) -> None:
        out = render_plain("#\n## Next")
        assert "#" not in out
        assert "Next" in out


class TestLinks:
    URL_DOC = "[Example](https://example.com)"

    def test_hide(self) -> None:
        assert render_plain(self.URL_DOC, link_style=LinkStyle.HIDE) == "Example\n"

    def test_inline(self) -> None:
        out = render_plain(self.URL_DOC, link_style=LinkStyle.INLINE)
        assert out == "Example(https://example.com)\n"

    def test_inline_table(self) -> None:
        out = render_plain(self.URL_DOC, link_style=LinkStyle.INLINE_TABLE)
        assert out == "Example[1]\n\n[1] https://example.com\n"

    def test_clickable_uses_osc8(self) -> None:
        out = render(self.URL_DOC)
        assert "\x1b]8;;https://example.com\x1b\\" in out

    def test_forced_clickable_underlines(self) -> None:
        out = render(self.URL_DOC, link_style=LinkStyle.CLICKABLE_FORCED)
        assert "\x1b[4m" in out

    def test_clickable_without_colours_is_plain(self) -> None:
        assert render_plain(self.URL_DOC) == "Example\n"

    def test_cut_truncation(self) -> None:
        doc = "See [docs](https://example.com/a/very/long/path/to/some/document.html) now"
        out = render_plain(
            doc, cols=30, link_style=LinkStyle.INLINE, link_truncation=LinkTruncation.CUT
        )
        assert "...)" in out
        assert widest_line(out) <= 30

    def test_wrapped_url_breaks_after_separator(self) -> None:
        doc = "See [docs](https://example.com/alpha/beta/gamma/delta/epsilon)"
        lines = visible(render_plain(doc, cols=30, link_style=LinkStyle.INLINE))
        assert lines == [
            "See docs(https://example.com/",
            "alpha/beta/gamma/delta/",
            "epsilon)",
        ]

    def test_wrapped_url_fits_width(self) -> None:
        doc = "See [docs](https://example.com/a/very/long/path/to/some/document.html) now"
        out = render_plain(doc, cols=30, link_style=LinkStyle.INLINE)
        assert widest_line(out) <= 30
        assert "document.html" in strip_ansi(out).replace("\n", "")


class TestCodeBlocks:
    RUST = "```rust\nfn badge() {}\n```"

    def test_simple_style(self) -> None:
        out = render_plain(self.RUST, code_block_style=CodeBlockStyle.SIMPLE)
        assert "│ Rust\n│ \n│ fn badge()" in out

    def test_simple_style_without_language(self) -> None:
        out = render_plain("```\nplain text output\n```", code_block_style=CodeBlockStyle.SIMPLE)
        assert "│ Text\n│ \n│ plain text output" in out

    def test_language_label_hidden(self) -> None:
        out = render_plain(self.RUST, code_block_style=CodeBlockStyle.SIMPLE, no_code_language=True)
        assert "Rust" not in out
        assert "fn badge()" in out

    def test_pretty_frame(self) -> None:
        lines = visible(render_plain('```python\nprint("hello")\n```'))
        assert lines[0].startswith("╭─ Python")
        assert lines[0].endswith("╮")
        assert '│ print("hello") │' in lines
        assert len({visible_width(line) for line in lines}) == 1

    def test_unknown_language_label(self) -> None:
        out = render_plain("```dasdasdas\nfn main() {}\n```", code_guessing=False)
        assert "╭─ Dasdasdas" in out

    def test_narrow_frame_fits(self) -> None:
        out = render_plain('```elixir\nIO.puts("Hello")\n```', cols=6)
        framed = [line for line in visible(out) if line.lstrip().startswith(("│", "╭", "╰"))]
        assert framed
        assert all(visible_width(line) <= 6 for line in framed)

    def test_empty_block_under_heading(self) -> None:
        out = render_plain("# T\n\n```\n```", show_empty_elements=True)
        assert "╭─ Text ─╮" in out
        middle = [line for line in plain_lines(out) if line.lstrip().startswith("│")]
        assert middle[0].endswith(" │")

    def test_empty_block_falls_back_when_narrow(self) -> None:
        out = render_plain("```text\n```\n", cols=9, wrap=WrapMode.WORD, show_empty_elements=True)
        assert "│ Text" in out
        assert "╭─ Text" not in out

    def test_consecutive_blocks_single_gap(self) -> None:
        out = render_plain("```python\na = 1\n```\n\n```python\nb = 2\n```")
        assert "╯\n\n╭" in out
        assert "╯\n\n\n╭" not in out

    def test_heading_after_block(self) -> None:
        out = render_plain("```python\na = 1\n```\n\n# Heading")
        assert "\n\nHeading" in out
        assert "\n\n\nHeading" not in out

    def test_rule_after_block(self) -> None:
        out = render_plain("```python\na = 1\n```\n\n---")
        assert "\n\n◈" in out

    @pytest.mark.parametrize("style", [CodeBlockStyle.PRETTY, CodeBlockStyle.SIMPLE])
    def test_text_block_renders_markdown_links(self, style: CodeBlockStyle) -> None:
        doc = "# Demo\n\n```text\nThis is a [link](https://example.com/example-path)\n```"
        out = render_plain(
            doc,
            code_block_style=style,
            link_style=LinkStyle.INLINE_TABLE,
            link_truncation=LinkTruncation.NONE,
        )
        assert "│ This is a link[1]" in out
        assert "\n [1] https://example.com/example-path" in out
        assert "│ [1]" not in out
        assert "[link](" not in out


class TestTables:
    TABLE = "| a | b |\n|---|---|\n| 1 | 2 |"

    def test_grid(self) -> None:
        assert "│ a ┆ b │" in render_plain(self.TABLE)

    def test_wrap_mode_splits_into_blocks(self) -> None:
        doc = "| " + " | ".join(f"column {i}" for i in range(6)) + " |\n"
        doc += "|" + "---|" * 6 + "\n"
        doc += "| " + " | ".join(f"value {i}" for i in range(6)) + " |\n"
        out = render_plain(doc, cols=30, table_wrap=TableWrapMode.WRAP)
        labels = [line for line in visible(out) if line.startswith("Block ")]
        assert len(labels) >= 2

    def test_empty_table_hidden(self) -> None:
        assert "╭" not in render_plain("| |\n|-|\n| |\n")

    def test_empty_table_shown(self) -> None:
        out = render_plain("| |\n|-|\n| |\n", show_empty_elements=True)
        assert "╭" in out
        assert "╞" in out


class TestHtml:
    def test_comment_shown(self) -> None:
        assert render_plain("<!-- note -->") == "<!-- note -->\n"

    def test_comment_hidden(self) -> None:
        assert render_plain("<!-- note -->", hide_comments=True) == ""

    def test_other_html_ignored(self) -> None:
        assert render_plain("<div>x</div>") == ""


class TestEmptyElements:
    DOC = "> \n\n- \n\n```\n```\n"

    def test_hidden_by_default(self) -> None:
        out = render_plain(self.DOC, code_block_style=CodeBlockStyle.SIMPLE)
        assert visible(out) == []

    def test_shown_with_flag(self) -> None:
        out = render_plain(
            self.DOC, code_block_style=CodeBlockStyle.SIMPLE, show_empty_elements=True
        )
        lines = [line for line in plain_lines(out) if line]
        assert "│ " in lines
        assert "- " in lines
        assert sum(1 for line in lines if line.startswith("│")) >= 2

    def test_leading_list_has_no_blank_line(self) -> None:
        assert render_plain("- a") == "- a\n"

    def test_empty_list_item(self) -> None:
        assert render_plain("- ") == ""
        assert render_plain("- ", show_empty_elements=True) == "- \n"
