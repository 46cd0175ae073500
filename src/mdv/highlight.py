"""Syntax catalogue, language labels and code highlighting.

The catalogue wraps Pygments' lexer registry. A :class:`SyntaxCatalog` is
built once per :class:`~mdv.renderer.TerminalRenderer` and handed to every
render pass, including nested ones.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from pygments import highlight
from pygments.formatters import TerminalTrueColorFormatter
from pygments.lexer import Lexer
from pygments.lexers import (
    find_lexer_class,
    find_lexer_class_by_name,
    find_lexer_class_for_filename,
    get_all_lexers,
    guess_lexer,
)
from pygments.lexers.special import TextLexer
from pygments.modeline import get_filetype_from_buffer
from pygments.style import Style
from pygments.styles import get_all_styles, get_style_by_name
from pygments.token import (
    Comment,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Token,
)
from pygments.util import ClassNotFound

from mdv.errors import SyntaxHighlightError
from mdv.markdown import detect_source_code

if TYPE_CHECKING:
    from mdv.terminal import Color
    from mdv.theme import Theme, ThemeManager

logger = logging.getLogger(__name__)

LexerClass = type[Lexer]

_LANGUAGE_SEPARATORS = re.compile(r"[ \t,;|]")
_HUMANIZE_SEPARATORS = re.compile(r"[-_/.]")

PLAIN_LANGUAGES = frozenset(
    {"text", "plain", "plaintext", "plain_text", "txt", "output", "nohighlight", "none"}
)

CUSTOM_LANGUAGE_LABELS: dict[str, str] = {
    "bash": "Bash",
    "shell": "Shell",
    "shell-session": "Shell",
    "console": "Shell",
    "sh": "Shell",
    "objective-c": "Objective-C",
}

# Analyse scores below this are not trusted when sniffing a first line
FIRST_LINE_CONFIDENCE = 0.5

# (spellings, candidates tried in order)
_ALIAS_GROUPS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (("rs", "rust"), ("rs", "rust", "Rust")),
    (("py", "python"), ("py", "python", "Python")),
    (("js", "javascript", "node", "nodejs", "ecmascript"), ("js", "javascript", "JavaScript")),
    (("jsx",), ("jsx", "react")),
    (("ts", "typescript"), ("ts", "typescript", "TypeScript")),
    (("tsx", "typescriptreact"), ("tsx", "typescript", "TypeScript")),
    (("c", "h"), ("c", "C")),
    (("cpp", "c++", "cxx", "hpp"), ("cpp", "c++", "C++", "cxx")),
    (("objc", "objective-c", "objectivec"), ("objective-c", "objc", "Objective-C")),
    (("objcpp", "objective-c++"), ("objective-c++", "Objective-C++", "objcpp")),
    (("cs", "csharp", "c#"), ("csharp", "cs", "C#")),
    (("go", "golang"), ("go", "Go")),
    (("java",), ("java", "Java")),
    (("kotlin", "kt"), ("kotlin", "kt", "Kotlin")),
    (("swift",), ("swift", "Swift")),
    (("scala",), ("scala", "Scala")),
    (("php",), ("php", "PHP")),
    (("rb", "ruby"), ("rb", "ruby", "Ruby")),
    (("perl", "pl"), ("perl", "pl", "Perl")),
    (("lua",), ("lua", "Lua")),
    (("r",), ("r", "splus", "S")),
    (("dart",), ("dart", "Dart")),
    (("haskell", "hs"), ("hs", "haskell", "Haskell")),
    (("clj", "clojure"), ("clj", "clojure", "Clojure")),
    (("elixir",), ("elixir", "Elixir")),
    (("erlang",), ("erlang", "Erlang")),
    (("fsharp", "fs", "f#"), ("fsharp", "F#", "fs")),
    (("sql", "sqlite", "postgres", "mysql"), ("sql", "SQL")),
    (("yaml", "yml"), ("yaml", "YAML", "yml")),
    (("json", "jsonc", "json5"), ("json", "JSON")),
    (("toml",), ("toml", "TOML")),
    (("ini", "cfg", "conf"), ("ini", "INI")),
    (("md", "markdown"), ("md", "markdown", "Markdown")),
    (("html", "htm", "xhtml"), ("html", "HTML")),
    (("xml",), ("xml", "XML")),
    (("css",), ("css", "CSS")),
    (("scss",), ("scss", "SCSS")),
    (("less",), ("less", "LESS")),
    (("bash", "sh", "shell", "zsh", "shell-session", "console"), ("bash", "Bash", "shell", "sh")),
    (("fish",), ("fish", "Fish")),
    (("powershell", "ps", "ps1"), ("powershell", "PowerShell", "ps1")),
    (("cmd", "batch", "bat"), ("batch", "Batchfile", "bat")),
    (("make", "makefile"), ("make", "Makefile")),
    (("cmake",), ("cmake", "CMake")),
    (("docker", "dockerfile"), ("docker", "Dockerfile")),
    (("graphql", "gql"), ("graphql", "GraphQL")),
    (("proto", "protobuf", "proto3"), ("protobuf", "proto", "Protocol Buffer")),
    (("diff", "patch", "gdiff"), ("diff", "Diff", "patch")),
    (("latex", "tex"), ("latex", "tex", "TeX")),
    (("rst", "restructuredtext"), ("rst", "reStructuredText")),
    (("adoc", "asciidoc"), ("asciidoc", "AsciiDoc")),
    (("matlab", "octave"), ("matlab", "Matlab", "octave")),
    (("vb", "visualbasic"), ("vb.net", "VB.net", "vbnet")),
    (("zig",), ("zig", "Zig")),
    (("nim",), ("nim", "Nim")),
    (("solidity", "sol"), ("solidity", "Solidity")),
    (("assembly", "asm"), ("nasm", "asm", "GAS")),
    (("wasm", "wat"), ("wast", "wat", "WebAssembly")),
)

_ALIASES: dict[str, tuple[str, ...]] = {
    spelling: candidates for spellings, candidates in _ALIAS_GROUPS for spelling in spellings
}


# ---------------------------------------------------------------------------
# Hint parsing and labels
# ---------------------------------------------------------------------------


def is_plain_language(token: str) -> bool:
    return token.lower() in PLAIN_LANGUAGES


def split_language_hint(hint: str) -> list[str]:
    """Split a fence hint into lowercase candidate tokens.

    ``"{.python title=x}"`` yields ``["python", "x"]``; ``key=value`` keeps the
    value and quotes, braces and dots around a token are dropped.
    """
    parts: list[str] = []
    trimmed = hint.strip()
    if not trimmed:
        return parts

    for fragment in _LANGUAGE_SEPARATORS.split(trimmed):
        piece = fragment.strip()
        if not piece:
            continue

        if "=" in piece:
            piece = piece.split("=", 1)[1].strip()

        if piece.startswith("{") and piece.endswith("}") and len(piece) > 2:
            piece = piece[1:-1]

        piece = piece.strip().strip("{}\"'`.!")
        if not piece:
            continue

        if piece.startswith("language-"):
            piece = piece[len("language-"):]

        normalized = piece.strip().lower()
        if normalized and normalized not in parts:
            parts.append(normalized)

    return parts


def expand_language_aliases(token: str) -> list[str]:
    """Candidates to try for *token*: itself, its lowercase form, then aliases."""
    candidates: list[str] = []

    def push(candidate: str) -> None:
        if candidate and not any(c.lower() == candidate.lower() for c in candidates):
            candidates.append(candidate)

    push(token)
    push(token.lower())
    for candidate in _ALIASES.get(token.lower(), ()):
        push(candidate)
    return candidates


def humanize_language_token(token: str) -> str:
    """Turn a raw hint into a label: ``"shell-session"`` -> ``"Shell Session"``, ``"ini"`` -> ``"INI"``."""
    if not token:
        return ""

    if _HUMANIZE_SEPARATORS.search(token):
        parts = [humanize_language_token(p) for p in _HUMANIZE_SEPARATORS.split(token) if p]
        return " ".join(p for p in parts if p)

    if len(token) <= 3 and token.isascii() and token.isalpha():
        return token.upper()

    return token[0].upper() + token[1:]


def _custom_label(key: str) -> str | None:
    return CUSTOM_LANGUAGE_LABELS.get(key.strip().lower())


def resolve_language_label(raw_hint: str, lexer: LexerClass) -> str:
    """Human readable label shown above a code block."""
    name = lexer.name.strip()

    label = _custom_label(name)
    if label is not None:
        return label
    for token in split_language_hint(raw_hint):
        label = _custom_label(token)
        if label is not None:
            return label

    if lexer is TextLexer:
        for token in split_language_hint(raw_hint):
            if is_plain_language(token):
                return "Text"
            label = humanize_language_token(token)
            if label:
                return label
        return "Text"

    return name


# ---------------------------------------------------------------------------
# SyntaxCatalog
# ---------------------------------------------------------------------------


class SyntaxCatalog:
    """Lookup of Pygments lexers by token, name or file extension."""

    plain_text: LexerClass = TextLexer

    def __init__(self) -> None:
        self._cache: dict[str, LexerClass | None] = {}
        self._names = {name.lower(): name for name, *_ in get_all_lexers()}

    def lookup(self, token: str) -> LexerClass | None:
        if not token:
            return None
        if token not in self._cache:
            self._cache[token] = self._find(token)
        return self._cache[token]

    def _find(self, token: str) -> LexerClass | None:
        try:
            return find_lexer_class_by_name(token)
        except ClassNotFound:
            pass

        name = self._names.get(token.lower())
        if name is not None:
            found = find_lexer_class(name)
            if found is not None:
                return found

        if token.isalnum():
            return find_lexer_class_for_filename(f"file.{token}")
        return None

    def find_by_first_line(self, code: str) -> LexerClass | None:
        """Lexer announced by the first line (shebang, modeline, XML prolog)."""
        first_line = code.split("\n", 1)[0]
        if not first_line.strip():
            return None

        filetype = get_filetype_from_buffer(first_line)
        if filetype:
            found = self.lookup(filetype)
            if found is not None:
                return found

        try:
            lexer = guess_lexer(first_line)
        except ClassNotFound:
            return None
        if isinstance(lexer, TextLexer):
            return None
        if type(lexer).analyse_text(first_line) < FIRST_LINE_CONFIDENCE:
            return None
        return type(lexer)

    def try_lookup(self, tokens: list[str], seen: list[str]) -> LexerClass | None:
        for token in tokens:
            if not token or token.lower() in seen:
                continue
            seen.append(token.lower())

            if is_plain_language(token):
                return self.plain_text

            for candidate in expand_language_aliases(token):
                found = self.lookup(candidate)
                if found is not None:
                    return found
        return None

    def resolve_syntax(self, hint: str | None, code: str, code_guessing: bool = True) -> LexerClass:
        """Pick a lexer from the hint, then (when guessing) from the code itself."""
        seen: list[str] = []

        if hint is not None:
            found = self.try_lookup(split_language_hint(hint), seen)
            if found is not None:
                return found

        if not code_guessing:
            return self.plain_text

        found = self.find_by_first_line(code)
        if found is not None:
            return found

        guessed = detect_source_code(code)
        if guessed is not None:
            found = self.try_lookup([guessed], seen)
            if found is not None:
                return found

        return self.plain_text


# ---------------------------------------------------------------------------
# Styles
# ---------------------------------------------------------------------------


def _hex(color: Color) -> str:
    rgb = color.to_rgb() or (255, 255, 255)
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def build_style(theme: Theme) -> type[Style]:
    """Build a Pygments style class from the theme's syntax colours."""
    syntax = theme.syntax
    styles = {
        Token: _hex(theme.text),
        Comment: f"italic {_hex(syntax.comment)}",
        Keyword: f"bold {_hex(syntax.keyword)}",
        Keyword.Constant: f"nobold {_hex(syntax.number)}",
        Keyword.Type: f"bold {_hex(syntax.type_name)}",
        Operator: _hex(syntax.operator),
        Operator.Word: f"bold {_hex(syntax.keyword)}",
        Punctuation: _hex(syntax.operator),
        String: _hex(syntax.string),
        String.Escape: _hex(syntax.string),
        Number: _hex(syntax.number),
        Name.Function: _hex(syntax.function),
        Name.Builtin: _hex(syntax.function),
        Name.Class: f"bold {_hex(syntax.type_name)}",
        Name.Variable: _hex(syntax.variable),
        Name.Attribute: _hex(syntax.variable),
    }
    attrs: dict[str, object] = {"styles": styles}
    if theme.background is not None:
        attrs["background_color"] = _hex(theme.background)
    return type(f"MdvStyle_{theme.name}", (Style,), attrs)


def resolve_code_style(
    requested: str | None,
    theme: Theme,
    manager: ThemeManager,
    custom_code_theme: str | None = None,
) -> type[Style]:
    """Pick the Pygments style used for code blocks.

    Tries a Pygments style name (case-insensitively), then an mdv theme name,
    then falls back to the main theme.
    """
    if custom_code_theme:
        if requested:
            logger.info(
                "Ignoring '--code-theme' because '--custom-code-theme' overrides are applied."
            )
        return build_style(theme)

    if not requested:
        return build_style(theme)

    for name in get_all_styles():
        if name.lower() == requested.lower():
            if name != requested:
                logger.info("Using syntax theme '%s' for '--code-theme %s'.", name, requested)
            return get_style_by_name(name)

    builtin = manager.find_theme(requested)
    if builtin is not None:
        if builtin.name.lower() != requested.lower():
            logger.info(
                "Using built-in theme '%s' for '--code-theme %s'.", builtin.name, requested
            )
        return build_style(builtin)

    logger.warning("Code theme '%s' not found; falling back to '%s'.", requested, theme.name)
    return build_style(theme)


def highlight_code(
    code: str,
    lexer_class: LexerClass,
    style: type[Style],
    no_colors: bool = False,
) -> str:
    """Highlight *code* with 24-bit colour escapes; each line ends with ``\\n``."""
    if no_colors:
        return code

    try:
        lexer = lexer_class(stripnl=False, ensurenl=True)
        result = highlight(code, lexer, TerminalTrueColorFormatter(style=style))
    except Exception as exc:
        raise SyntaxHighlightError(str(exc)) from exc

    if not result.endswith("\n"):
        result += "\n"
    return result
