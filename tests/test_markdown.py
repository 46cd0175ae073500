"""Tests for mdv.markdown -- preprocessing and the event stream."""

from __future__ import annotations

from mdv.config import Config
from mdv.events import (
    Alignment,
    Code,
    CodeBlock,
    End,
    FootnoteReference,
    Heading,
    Image,
    Item,
    Link,
    List,
    Paragraph,
    Start,
    Strong,
    Table,
    TaskListMarker,
    Text,
)
from mdv.markdown import (
    MarkdownProcessor,
    detect_source_code,
    extract_code_language,
    filter_from_text,
    preprocess_blockquotes,
)


def parse(text: str, **overrides) -> list:
    return MarkdownProcessor(Config(**overrides)).parse(text)


class TestFilterFromText:
    def test_start_and_line_count(self) -> None:
        content = "Line 1\nTarget Line\nLine 3\nLine 4"
        assert filter_from_text(content, "Target:2") == "Target Line\nLine 3"

    def test_without_count_keeps_the_rest(self) -> None:
        assert filter_from_text("a\nb\nc", "b") == "b\nc"

    def test_no_match_starts_at_top(self) -> None:
        assert filter_from_text("a\nb", "zzz") == "a\nb"

    def test_count_past_end(self) -> None:
        assert filter_from_text("a\nb", "b:10") == "b"

    def test_applied_by_processor(self) -> None:
        processor = MarkdownProcessor(Config(from_text="Second:1"))
        assert processor.preprocess_content("First\nSecond\nThird") == "Second"


class TestPreprocessBlockquotes:
    def test_inserts_blank_line_when_depth_drops(self) -> None:
        assert preprocess_blockquotes("> > deep\n> shallow") == "> > deep\n\n> shallow"

    def test_blank_lines_after_quote_ends(self) -> None:
        assert preprocess_blockquotes("> quote\ntext") == "> quote\n\ntext"

    def test_plain_text_unchanged(self) -> None:
        assert preprocess_blockquotes("a\nb") == "a\nb"

    def test_tabs_expanded_with_tab_length(self) -> None:
        processor = MarkdownProcessor(Config(tab_length=2))
        assert processor.preprocess_content("a\tb") == "a  b"


class TestLanguageHelpers:
    def test_extract_code_language(self) -> None:
        assert extract_code_language("rust") == "rust"
        assert extract_code_language("language-python title=x") == "python"
        assert extract_code_language("") is None
        assert extract_code_language(None) is None

    def test_detect_by_filename(self) -> None:
        assert detect_source_code("", "main.rs") == "rust"
        assert detect_source_code("", "notes.unknown") is None

    def test_detect_by_content(self) -> None:
        assert detect_source_code("#!/usr/bin/env python3\nprint(1)") == "python"
        assert detect_source_code("fn main() {\n}") == "rust"
        assert detect_source_code("package main\n") == "go"
        assert detect_source_code("SELECT * FROM t;") == "sql"
        assert detect_source_code('{"a": 1}') == "json"
        assert detect_source_code("just some words") is None


# ---------------------------------------------------------------------------
# Event conversion
# ---------------------------------------------------------------------------


class TestParse:
    def test_heading(self) -> None:
        assert parse("# Hi") == [Start(Heading(1)), Text("Hi"), End(Heading(1))]

    def test_heading_attributes_are_stripped(self) -> None:
        assert parse("## Title {#anchor .cls}") == [
            Start(Heading(2)),
            Text("Title"),
            End(Heading(2)),
        ]

    def test_paragraph_with_strong(self) -> None:
        assert parse("a **b**") == [
            Start(Paragraph()),
            Text("a "),
            Start(Strong()),
            Text("b"),
            End(Strong()),
            End(Paragraph()),
        ]

    def test_fenced_code(self) -> None:
        assert parse("```rust\nfn main() {}\n```") == [
            Start(CodeBlock("rust")),
            Text("fn main() {}\n"),
            End(CodeBlock("rust")),
        ]

    def test_indented_code_has_no_info(self) -> None:
        events = parse("    code\n")
        assert events[0] == Start(CodeBlock(None))

    def test_lists(self) -> None:
        events = parse("3. three\n4. four")
        assert events[0] == Start(List(3))
        assert events.count(Start(Item())) == 2
        assert parse("- a")[0] == Start(List(None))

    def test_tight_list_items_have_no_paragraphs(self) -> None:
        assert Start(Paragraph()) not in parse("- a\n- b")

    def test_task_list_marker(self) -> None:
        events = parse("- [x] done\n- [ ] todo")
        assert TaskListMarker(True) in events
        assert TaskListMarker(False) in events
        assert Text("done") in events

    def test_table_alignments(self) -> None:
        events = parse("| a | b | c |\n|:--|--:|---|\n| 1 | 2 | 3 |")
        assert events[0] == Start(Table((Alignment.LEFT, Alignment.RIGHT, Alignment.NONE)))
        assert events[-1] == End(Table())

    def test_link_and_image(self) -> None:
        events = parse("[text](https://example.com) ![alt](img.png)")
        assert Start(Link("https://example.com")) in events
        assert Start(Image("img.png")) in events
        assert Text("alt") in events

    def test_inline_code(self) -> None:
        assert Code("x = 1") in parse("run `x = 1` now")

    def test_footnote_reference(self) -> None:
        events = parse("text[^1]\n\n[^1]: the note")
        assert FootnoteReference("1") in events

    def test_to_html(self) -> None:
        html = MarkdownProcessor(Config()).to_html("**x**")
        assert "<strong>x</strong>" in html
