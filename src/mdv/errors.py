"""Exception hierarchy for mdv.

Every error raised on purpose derives from :class:`MdvError`, so the CLI can
report it as a one-line message instead of a traceback.
"""

from __future__ import annotations


class MdvError(Exception):
    """Base class for all mdv errors."""

    prefix = ""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"{self.prefix}{message}")


class ConfigParseError(MdvError):
    prefix = "Configuration parse error: "


class ThemeError(MdvError):
    prefix = "Theme error: "


class InputError(MdvError):
    prefix = "IO error: "


class MarkdownError(MdvError):
    prefix = "Markdown parsing error: "


class MonitorError(MdvError):
    prefix = "Monitor error: "


class SyntaxHighlightError(MdvError):
    """The highlighter rejected a line of code."""

    prefix = "Syntax highlighting error: "
