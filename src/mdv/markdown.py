"""Markdown front-end: preprocessing, parsing and conversion to events.

Parsing is delegated to markdown-it-py (CommonMark plus tables,
strikethrough, typographic replacements, footnotes and task lists). Its
token stream is flattened into the :mod:`mdv.events` model the renderer
consumes.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import PurePath
from typing import TYPE_CHECKING

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

from mdv.errors import MarkdownError
from mdv.events import (
    Alignment,
    BlockQuote,
    Code,
    CodeBlock,
    Emphasis,
    End,
    Event,
    FootnoteDefinition,
    FootnoteReference,
    HardBreak,
    Heading,
    Html,
    Image,
    InlineHtml,
    Item,
    Link,
    List,
    Paragraph,
    Rule,
    SoftBreak,
    Start,
    Strikethrough,
    Strong,
    Table,
    TableCell,
    TableHead,
    TableRow,
    TaskListMarker,
    Text,
)

if TYPE_CHECKING:
    from mdv.config import Config

logger = logging.getLogger(__name__)

# Trailing ``{#id .class key=value}`` block on a heading line
_HEADING_ATTRS_RE = re.compile(r"\s*\{\s*(?:(?:[#.][^\s{}]+|[^\s{}=]+=[^\s{}]*)\s*)+\}\s*$")

_TASK_CHECKBOX_PREFIX = '<input class="task-list-item-checkbox"'

_ALIGN_RE = re.compile(r"text-align:\s*(left|center|right)")


def create_parser() -> MarkdownIt:
    md = MarkdownIt("commonmark", {"typographer": True})
    md.enable(["table", "strikethrough", "replacements", "smartquotes"])
    md.use(footnote_plugin)
    md.use(tasklists_plugin)
    return md


class MarkdownProcessor:
    """Parse markdown text into a list of render events."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self._md = create_parser()

    def parse(self, markdown: str) -> list[Event]:
        content = self.preprocess_content(markdown)
        try:
            tokens = self._md.parse(content)
        except RecursionError as exc:
            raise MarkdownError("document is nested too deeply") from exc
        return convert_tokens(tokens)

    def to_html(self, markdown: str) -> str:
        return self._md.render(self.preprocess_content(markdown))

    def preprocess_content(self, content: str) -> str:
        processed = content
        if self.config.from_text is not None:
            processed = filter_from_text(processed, self.config.from_text)
        processed = preprocess_blockquotes(processed)
        return processed.replace("\t", " " * self.config.tab_length)


# ---------------------------------------------------------------------------
# Preprocessing
# ---------------------------------------------------------------------------


def _split_lines(content: str) -> list[str]:
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def filter_from_text(content: str, from_text: str) -> str:
    """Keep the lines starting at the first one containing a search string.

    ``from_text`` is ``"text"`` or ``"text:N"``; with ``N`` only that many
    lines are kept. No match (or an empty search string) starts at line 0.
    """
    search_text, sep, count = from_text.partition(":")
    max_lines: int | None = None
    if sep:
        count = count.strip()
        max_lines = int(count) if count.isdigit() else None

    lines = _split_lines(content)

    start = 0
    if search_text:
        for idx, line in enumerate(lines):
            if search_text in line:
                start = idx
                break

    end = len(lines) if max_lines is None else min(start + max_lines, len(lines))
    return "\n".join(lines[start:end])


def preprocess_blockquotes(content: str) -> str:
    """Insert blank lines where the quote depth drops.

    Without them lazy continuation would merge a shallower quote line into
    the deeper quote above it.
    """
    result: list[str] = []
    last_level = 0

    for line in _split_lines(content):
        trimmed = line.lstrip()

        level = 0
        pos = 0
        while pos < len(trimmed) and trimmed[pos] == ">":
            level += 1
            pos += 1
            if pos < len(trimmed) and trimmed[pos] == " ":
                pos += 1

        if 0 < level < last_level:
            result.extend([""] * (last_level - level))
        elif level == 0 and last_level > 0 and trimmed:
            result.extend([""] * last_level)

        result.append(line)

        if level > 0:
            last_level = level
        elif trimmed:
            last_level = 0

    return "\n".join(result)


# ---------------------------------------------------------------------------
# Language helpers
# ---------------------------------------------------------------------------


def extract_code_language(info: str | None) -> str | None:
    """Language named by a fence info string, without a ``language-`` prefix."""
    if info is None:
        return None
    parts = info.split()
    if not parts:
        return None
    lang = parts[0]
    if lang.startswith("language-"):
        lang = lang[len("language-"):]
    return lang or None


_EXTENSION_LANGUAGES: dict[str, str] = {
    "rs": "rust",
    "py": "python",
    "js": "javascript",
    "ts": "typescript",
    "go": "go",
    "c": "c",
    "cpp": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
    "java": "java",
    "rb": "ruby",
    "php": "php",
    "sh": "bash",
    "bash": "bash",
    "sql": "sql",
    "json": "json",
    "yaml": "yaml",
    "yml": "yaml",
    "toml": "toml",
    "xml": "xml",
    "html": "html",
    "css": "css",
}

_SQL_PREFIXES = ("SELECT ", "CREATE TABLE", "INSERT INTO", "UPDATE ", "DELETE FROM")


def detect_source_code(content: str, filename: str | None = None) -> str | None:
    """Guess a language from a file name or from the first lines of *content*."""
    if filename:
        suffix = PurePath(filename).suffix.lower().lstrip(".")
        if suffix:
            return _EXTENSION_LANGUAGES.get(suffix)

    lines = _split_lines(content)[:10]
    if not lines:
        return None

    first = lines[0]
    if first.startswith("#!"):
        if "python" in first:
            return "python"
        if "node" in first:
            return "javascript"
        if "bash" in first or "sh" in first:
            return "bash"

    for raw in lines:
        line = raw.strip()

        if line.startswith("<?php"):
            return "php"
        if line.startswith("#include"):
            return "c"

        if (line.startswith(("def ", "class ")) and line.endswith(":")) or (
            line.startswith("from ") and " import " in line
        ):
            return "python"
        if line.startswith("import ") and not any(q in line for q in "'\";"):
            return "python"

        if line.startswith(("fn ", "pub fn ", "let mut ", "use ", "impl ", "struct ")):
            return "rust"

        if line.startswith(("function ", "console.", "var ", "const ", "let ")):
            return "javascript"

        if line.startswith(("package ", "func ")):
            return "go"

        if line.upper().startswith(_SQL_PREFIXES):
            return "sql"

    stripped = content.strip()
    if stripped.startswith(("{", "[")):
        try:
            json.loads(stripped)
        except ValueError:
            return None
        return "json"

    return None


# ---------------------------------------------------------------------------
# Token conversion
# ---------------------------------------------------------------------------


def convert_tokens(tokens: list[Token]) -> list[Event]:
    """Flatten a markdown-it token stream into render events."""
    events: list[Event] = []
    in_thead = False

    for idx, token in enumerate(tokens):
        match token.type:
            case "paragraph_open":
                if not token.hidden:
                    events.append(Start(Paragraph()))
            case "paragraph_close":
                if not token.hidden:
                    events.append(End(Paragraph()))
            case "heading_open":
                events.append(Start(Heading(_heading_level(token))))
            case "heading_close":
                events.append(End(Heading(_heading_level(token))))
            case "blockquote_open":
                events.append(Start(BlockQuote()))
            case "blockquote_close":
                events.append(End(BlockQuote()))
            case "bullet_list_open":
                events.append(Start(List(None)))
            case "bullet_list_close":
                events.append(End(List(None)))
            case "ordered_list_open" | "ordered_list_close":
                tag = List(_list_start(token))
                events.append(Start(tag) if token.nesting == 1 else End(tag))
            case "list_item_open":
                events.append(Start(Item()))
            case "list_item_close":
                events.append(End(Item()))
            case "fence" | "code_block":
                tag = CodeBlock(token.info.strip() if token.type == "fence" else None)
                events.append(Start(tag))
                if token.content:
                    events.append(Text(token.content))
                events.append(End(tag))
            case "html_block":
                events.append(Html(token.content))
            case "hr":
                events.append(Rule())
            case "table_open":
                events.append(Start(Table(_table_alignments(tokens, idx))))
            case "table_close":
                events.append(End(Table()))
            case "thead_open":
                in_thead = True
                events.append(Start(TableHead()))
            case "thead_close":
                in_thead = False
                events.append(End(TableHead()))
            case "tr_open":
                if not in_thead:
                    events.append(Start(TableRow()))
            case "tr_close":
                if not in_thead:
                    events.append(End(TableRow()))
            case "th_open" | "td_open":
                events.append(Start(TableCell()))
            case "th_close" | "td_close":
                events.append(End(TableCell()))
            case "footnote_open":
                events.append(Start(FootnoteDefinition(_footnote_label(token))))
            case "footnote_close":
                events.append(End(FootnoteDefinition(_footnote_label(token))))
            case "inline":
                in_heading = idx > 0 and tokens[idx - 1].type == "heading_open"
                events.extend(_convert_inline(token.children or [], in_heading))
            case "tbody_open" | "tbody_close" | "footnote_block_open" | "footnote_block_close" | "footnote_anchor":
                pass
            case _:
                logger.debug("Skipping unsupported token '%s'", token.type)

    return events


def _convert_inline(children: list[Token], in_heading: bool = False) -> list[Event]:
    events: list[Event] = []
    links: list[Link] = []
    after_task_marker = False

    for child in children:
        match child.type:
            case "text" | "text_special":
                text = child.content
                if after_task_marker:
                    text = text.lstrip()
                    after_task_marker = False
                if text:
                    events.append(Text(text))
            case "softbreak":
                events.append(SoftBreak())
            case "hardbreak":
                events.append(HardBreak())
            case "code_inline":
                events.append(Code(child.content))
            case "em_open":
                events.append(Start(Emphasis()))
            case "em_close":
                events.append(End(Emphasis()))
            case "strong_open":
                events.append(Start(Strong()))
            case "strong_close":
                events.append(End(Strong()))
            case "s_open":
                events.append(Start(Strikethrough()))
            case "s_close":
                events.append(End(Strikethrough()))
            case "link_open":
                link = Link(str(child.attrGet("href") or ""), str(child.attrGet("title") or ""))
                links.append(link)
                events.append(Start(link))
            case "link_close":
                events.append(End(links.pop() if links else Link()))
            case "image":
                image = Image(str(child.attrGet("src") or ""), str(child.attrGet("title") or ""))
                events.append(Start(image))
                events.extend(_convert_inline(child.children or []))
                events.append(End(image))
            case "html_inline":
                if child.content.startswith(_TASK_CHECKBOX_PREFIX):
                    events.append(TaskListMarker('checked="checked"' in child.content))
                    after_task_marker = True
                else:
                    events.append(InlineHtml(child.content))
            case "footnote_ref":
                events.append(FootnoteReference(_footnote_label(child)))
            case _:
                logger.debug("Skipping unsupported inline token '%s'", child.type)

    if in_heading:
        _strip_heading_attributes(events)
    return events


def _strip_heading_attributes(events: list[Event]) -> None:
    if not events or not isinstance(events[-1], Text):
        return
    stripped = _HEADING_ATTRS_RE.sub("", events[-1].text)
    if stripped == events[-1].text:
        return
    if stripped:
        events[-1] = Text(stripped)
    else:
        events.pop()


def _heading_level(token: Token) -> int:
    try:
        return int(token.tag[1:])
    except ValueError:
        return 1


def _list_start(token: Token) -> int:
    start = token.attrGet("start")
    if start is None:
        return 1
    try:
        return int(start)
    except (TypeError, ValueError):
        return 1


def _footnote_label(token: Token) -> str:
    meta = token.meta or {}
    label = meta.get("label")
    if label:
        return str(label)
    return str(meta.get("id", 0) + 1)


def _table_alignments(tokens: list[Token], start: int) -> tuple[Alignment, ...]:
    """Column alignments taken from the header cells of the table at *start*."""
    alignments: list[Alignment] = []
    for token in tokens[start + 1 :]:
        if token.type == "th_open":
            found = _ALIGN_RE.search(str(token.attrGet("style") or ""))
            alignments.append(Alignment(found.group(1)) if found else Alignment.NONE)
        elif token.type in ("thead_close", "table_close"):
            break
    return tuple(alignments)
