"""CLI entry point for mdv, the terminal markdown viewer."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from mdv import __version__
from mdv.config import (
    CodeBlockStyle,
    Config,
    HeadingLayout,
    LinkStyle,
    LinkTruncation,
    TableWrapMode,
    parse_wrap_mode,
)
from mdv.errors import InputError, MdvError
from mdv.monitor import read_markdown, strip_bom, watch_file
from mdv.renderer import TerminalRenderer
from mdv.terminal import stdout_is_terminal
from mdv.theme import list_themes

logger = logging.getLogger(__name__)

_EPILOG = """\
Examples:
  mdv README.md                    # View a markdown file
  mdv -t monokai README.md         # Use monokai theme
  mdv -m README.md                 # Monitor file for changes
  mdv -H README.md                 # Output HTML instead of terminal formatting
  cat README.md | mdv              # Read from stdin
"""


def _choice(parse):
    """argparse ``type`` that reports enum parse failures as usage errors."""

    def convert(value: str):
        try:
            return parse(value)
        except ValueError as exc:
            raise argparse.ArgumentTypeError(str(exc)) from exc

    return convert


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdv",
        description="Terminal Markdown Viewer - render markdown with colours, wrapping and themes",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("filename", nargs="?", help="Path to markdown file (use '-' for stdin)")
    parser.add_argument("-F", "--config-file", metavar="CONFIG_PATH", help="Alternative config file path")
    parser.add_argument("-n", "--no-config", action="store_true", help="Skip loading configuration files")
    parser.add_argument("-A", "--no-colors", action="store_true", help="Strip all ANSI colors")
    parser.add_argument("-C", "--hide-comments", action="store_true", help="Hide Markdown comments from the rendered output")
    parser.add_argument("-H", "--html", dest="do_html", action="store_true", help="Print HTML version instead of terminal formatting")
    parser.add_argument("-t", "--theme", help="Set theme (default: terminal)")
    parser.add_argument("-T", "--code-theme", help="Theme for code block highlighting")
    parser.add_argument("-L", "--show-code-language", action="store_true", help="Show language label above code blocks")
    parser.add_argument("--no-code-language", action="store_true", help="Hide the language label of code blocks")
    parser.add_argument(
        "-e", "--show-empty-elements", action="store_true",
        help="Display empty Markdown elements such as blank code blocks and list items",
    )
    parser.add_argument("-g", "--no-code-guessing", action="store_true", help="Disable heuristic language detection for code blocks")
    parser.add_argument(
        "-s", "--style-code-block", type=_choice(CodeBlockStyle.parse), metavar="{simple,pretty}",
        help="Configure visual style for code blocks",
    )
    parser.add_argument(
        "-i", "--theme-info", nargs="?", const="", metavar="FILE",
        help="Show current theme and optionally display the contents of FILE when provided",
    )
    parser.add_argument("-b", "--tab-length", type=int, help="Set tab length (default: 4)")
    parser.add_argument("-c", "--cols", type=int, help="Fix columns to this width")
    parser.add_argument(
        "-W", "--wrap", type=_choice(parse_wrap_mode), metavar="{char,word,none}",
        help="Configure text wrapping mode",
    )
    parser.add_argument(
        "-w", "--table-wrap", type=_choice(TableWrapMode.parse), metavar="{fit,wrap,none}",
        help="Configure table wrapping behavior",
    )
    parser.add_argument("-f", "--from", dest="from_text", metavar="TEXT", help="Display from given substring of the file")
    parser.add_argument("-m", "--monitor", dest="monitor_file", action="store_true", help="Monitor file for changes and redisplay")
    parser.add_argument(
        "-y", "--custom-theme", metavar="PAIRS",
        help="Override colors of the selected theme (e.g. 'text=#ffffff;h1=187,154,247')",
    )
    parser.add_argument(
        "-Y", "--custom-code-theme", metavar="PAIRS",
        help="Override syntax highlighting colors (e.g. 'keyword=#ffffff;string=128,0,128')",
    )
    parser.add_argument(
        "-u", "--link-style", type=_choice(LinkStyle.parse),
        metavar="{clickable,fclickable,inline,inlinetable,hide}", help="Set link style",
    )
    parser.add_argument(
        "-l", "--link-truncation", type=_choice(LinkTruncation.parse), metavar="{wrap,cut,none}",
        help="Set link truncation style",
    )
    parser.add_argument(
        "-d", "--heading-layout", type=_choice(HeadingLayout.parse), metavar="{level,center,flat,none}",
        help="Set heading layout",
    )
    parser.add_argument(
        "-I", "--smart-indent", action="store_true",
        help="With '--heading-layout level', close gaps between heading levels when indenting",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def read_input(filename: str | None) -> str:
    if filename is None or filename == "-":
        return strip_bom(sys.stdin.read())

    path = Path(filename)
    if not path.exists():
        raise InputError(f"File not found: {filename}")
    return read_markdown(path)


def print_current_themes(config: Config) -> None:
    print()
    print(f"Current theme: {config.theme}")
    print(f"Current code theme: {config.code_theme or config.theme}")


def run(args: argparse.Namespace) -> None:
    config = Config.from_cli(args)

    filename = args.filename
    if args.theme_info:
        filename = filename or args.theme_info
    elif args.theme_info == "" and filename is None:
        print_current_themes(config)
        print()
        list_themes()
        return

    if args.monitor_file and filename not in (None, "-"):
        watch_file(filename, config)
        return

    content = read_input(filename)
    renderer = TerminalRenderer(config)

    if args.do_html:
        sys.stdout.write(renderer.to_html(content))
        return

    if config.theme_info or args.theme_info is not None:
        print_current_themes(config)

    if stdout_is_terminal():
        print()
    sys.stdout.write(renderer.render_markdown(content))


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    raw_args = sys.argv[1:] if argv is None else argv

    if not raw_args and sys.stdin.isatty():
        parser.print_help()
        return 0

    args = parser.parse_args(raw_args)
    setup_logging(args.verbose)

    try:
        run(args)
    except MdvError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
