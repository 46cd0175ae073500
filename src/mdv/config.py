"""Layered configuration: defaults < YAML file < environment < command line.

The config file is looked up in this order and the first one that parses wins:

1. ``--config-file`` / ``-F``
2. ``$MDV_CONFIG_PATH``
3. ``<user config dir>/mdv/config.yaml`` then ``config.yml``

Keys in the file are the :class:`Config` field names; enum values use their
command-line spellings (``wrap: word``, ``link_style: inline``).
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from mdv.errors import ConfigParseError
from mdv.terminal import terminal_width
from mdv.utils import WrapMode

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV = "MDV_CONFIG_PATH"
NO_COLOR_ENV = "MDV_NO_COLOR"

DEFAULT_TERMINAL_WIDTH = 80
MIN_DETECTED_WIDTH = 20


# --- Option enums ---


class _ChoiceEnum(str, Enum):
    """String enum that also accepts short aliases when parsed."""

    @classmethod
    def aliases(cls) -> dict[str, str]:
        return {}

    @classmethod
    def parse(cls, value: str) -> Any:
        raw = str(value).strip().lower()
        raw = cls.aliases().get(raw, raw)
        for member in cls:
            if member.value == raw:
                return member
        choices = ", ".join(m.value for m in cls)
        raise ValueError(f"invalid value '{value}' (choose from {choices})")

    @classmethod
    def choices(cls) -> list[str]:
        return [m.value for m in cls] + list(cls.aliases())


class LinkStyle(_ChoiceEnum):
    CLICKABLE = "clickable"
    CLICKABLE_FORCED = "fclickable"
    INLINE = "inline"
    INLINE_TABLE = "inlinetable"
    HIDE = "hide"

    @classmethod
    def aliases(cls) -> dict[str, str]:
        return {
            "c": "clickable",
            "fc": "fclickable",
            "i": "inline",
            "it": "inlinetable",
            "inline-table": "inlinetable",
            "h": "hide",
        }


class LinkTruncation(_ChoiceEnum):
    WRAP = "wrap"
    CUT = "cut"
    NONE = "none"


class TableWrapMode(_ChoiceEnum):
    FIT = "fit"
    WRAP = "wrap"
    NONE = "none"


class HeadingLayout(_ChoiceEnum):
    LEVEL = "level"
    CENTER = "center"
    FLAT = "flat"
    NONE = "none"


class CodeBlockStyle(_ChoiceEnum):
    SIMPLE = "simple"
    PRETTY = "pretty"


def parse_wrap_mode(value: str) -> WrapMode:
    raw = str(value).strip().lower()
    aliases = {"character": "char", "chars": "char", "words": "word"}
    return WrapMode(aliases.get(raw, raw))


_ENUM_FIELDS: dict[str, Any] = {
    "wrap": parse_wrap_mode,
    "table_wrap": TableWrapMode.parse,
    "heading_layout": HeadingLayout.parse,
    "code_block_style": CodeBlockStyle.parse,
    "link_style": LinkStyle.parse,
    "link_truncation": LinkTruncation.parse,
}


# --- Config ---


@dataclass
class Config:
    """Every option that affects parsing and rendering."""

    # Display options
    no_colors: bool = False
    cols: int | None = None
    cols_from_cli: bool = False
    tab_length: int = 4
    theme_info: bool = False
    wrap: WrapMode = WrapMode.CHAR
    table_wrap: TableWrapMode = TableWrapMode.FIT
    heading_layout: HeadingLayout = HeadingLayout.LEVEL
    smart_indent: bool = False
    hide_comments: bool = False
    show_empty_elements: bool = False
    no_code_language: bool = False
    code_guessing: bool = True
    code_block_style: CodeBlockStyle = CodeBlockStyle.PRETTY

    # Themes
    theme: str = "terminal"
    code_theme: str | None = None
    custom_theme: str | None = None
    custom_code_theme: str | None = None

    # Links
    link_style: LinkStyle = LinkStyle.CLICKABLE
    link_truncation: LinkTruncation = LinkTruncation.WRAP

    # Content filtering
    from_text: str | None = None

    config_file: Path | None = None

    # -- derived values ---------------------------------------------------

    def text_wrap_mode(self) -> WrapMode:
        return self.wrap

    def is_text_wrapping_enabled(self) -> bool:
        return self.wrap is not WrapMode.NONE

    def get_terminal_width(self) -> int:
        """Columns to render into.

        An explicit ``--cols`` wins; otherwise a detected terminal of at least
        20 columns; otherwise ``cols`` from the config file; otherwise 80.
        """
        if self.cols_from_cli and self.cols is not None:
            return self.cols

        detected = terminal_width()
        if detected is not None and detected >= MIN_DETECTED_WIDTH:
            return detected

        if self.cols is not None:
            return self.cols

        return DEFAULT_TERMINAL_WIDTH

    # -- loading ------------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> Config:
        """Build a config from a parsed YAML mapping, ignoring unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)} - {"cols_from_cli", "config_file"}
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = str(key).replace("-", "_")
            if name not in known:
                logger.warning("Ignoring unknown config key '%s'", key)
                continue
            if value is None:
                continue
            if name in _ENUM_FIELDS:
                value = _ENUM_FIELDS[name](value)
            values[name] = value
        return cls(**values)

    @classmethod
    def load_from_file(cls, path: Path) -> Config:
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
            if data is None:
                data = {}
            if not isinstance(data, dict):
                raise TypeError("top level must be a mapping")
            return cls.from_mapping(data)
        except (OSError, yaml.YAMLError, TypeError, ValueError) as exc:
            raise ConfigParseError(f"Failed to parse YAML config file: {path}") from exc

    def merge_with(self, other: Config) -> None:
        """Take every value from *other* that differs from the defaults."""
        defaults = Config()
        for f in dataclasses.fields(self):
            if f.name == "config_file":
                continue
            value = getattr(other, f.name)
            if value != getattr(defaults, f.name):
                setattr(self, f.name, value)

    @classmethod
    def from_files(cls, explicit_path: str | None = None, no_config: bool = False) -> Config:
        config = cls()
        if no_config:
            return config

        for path in config_paths(explicit_path):
            if not path.exists():
                continue
            try:
                file_config = cls.load_from_file(path)
            except ConfigParseError as exc:
                logger.warning("Failed to load config from %s: %s", path, exc)
                continue
            config.merge_with(file_config)
            config.config_file = path
            logger.debug("Loaded config from %s", path)
            break

        return config

    @classmethod
    def from_cli(cls, args: argparse.Namespace) -> Config:
        """Resolve the effective config for parsed command-line *args*.

        Options the user did not pass are ``None`` on *args* and leave the
        file/default value alone.
        """
        config = cls.from_files(args.config_file, args.no_config)

        no_color = no_color_override()
        if no_color is not None:
            config.no_colors = no_color

        if args.no_colors:
            config.no_colors = True

        if args.cols is not None:
            config.cols = args.cols
            config.cols_from_cli = True

        for name in ("tab_length", "theme", "code_theme", "custom_theme", "custom_code_theme"):
            value = getattr(args, name)
            if value is not None:
                setattr(config, name, value)

        if args.wrap is not None:
            config.wrap = args.wrap
        if args.table_wrap is not None:
            config.table_wrap = args.table_wrap
        if args.link_style is not None:
            config.link_style = args.link_style
        if args.link_truncation is not None:
            config.link_truncation = args.link_truncation
        if args.heading_layout is not None:
            config.heading_layout = args.heading_layout
        if args.style_code_block is not None:
            config.code_block_style = args.style_code_block
        if args.from_text is not None:
            config.from_text = args.from_text

        if args.theme_info is not None:
            config.theme_info = True
        if args.no_code_guessing:
            config.code_guessing = False
        if args.smart_indent:
            config.smart_indent = True
        if args.hide_comments:
            config.hide_comments = True
        if args.show_empty_elements:
            config.show_empty_elements = True
        if args.show_code_language:
            config.no_code_language = False
        if args.no_code_language:
            config.no_code_language = True

        return config


def config_paths(explicit_path: str | None = None) -> list[Path]:
    paths: list[Path] = []
    if explicit_path:
        paths.append(Path(explicit_path).expanduser())

    env_path = os.environ.get(CONFIG_FILE_ENV)
    if env_path:
        paths.append(Path(env_path).expanduser())

    mdv_dir = user_config_dir() / "mdv"
    paths.append(mdv_dir / "config.yaml")
    paths.append(mdv_dir / "config.yml")
    return paths


def user_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg)
    return Path.home() / ".config"


def no_color_override() -> bool | None:
    """Read ``MDV_NO_COLOR``: ``true``/``false`` (any case), else ``None``."""
    raw = os.environ.get(NO_COLOR_ENV, "").strip()
    if not raw:
        return None

    normalized = raw.lower()
    if normalized == "true":
        return True
    if normalized == "false":
        return False

    logger.warning(
        "Invalid value '%s' for environment variable %s. Use 'True' or 'False'.",
        raw,
        NO_COLOR_ENV,
    )
    return None
