import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import structlog

from interspaced import __version__
from interspaced.buffer import TextBuffer
from interspaced.config import DEFAULT_RULES, load_rules
from interspaced.diff import render_lines
from interspaced.engine import LineChange, SpacingEngine
from interspaced.errors import ConfigError
from interspaced.models import END_OF_LINE, OperationResult, SpacingRuleSet


def _configure_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def parse_position(value: str, allow_end: bool = False) -> Tuple[int, int]:
    """
    Parses 'LINE:COL'. With allow_end, 'LINE:$' means the end of that line.
    """
    line_part, sep, col_part = value.partition(":")
    if not sep:
        raise argparse.ArgumentTypeError(f"Expected LINE:COL, got '{value}'")
    try:
        line = int(line_part)
        if allow_end and col_part == "$":
            return line, END_OF_LINE
        return line, int(col_part)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected LINE:COL with integers, got '{value}'")


def _end_position(value: str) -> Tuple[int, int]:
    return parse_position(value, allow_end=True)


def _load_rules(path: Optional[Path]) -> SpacingRuleSet:
    if path is None:
        return DEFAULT_RULES
    try:
        return load_rules(path)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _read_buffer(path: Path) -> TextBuffer:
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    with open(path, "r", encoding="utf-8") as f:
        return TextBuffer.from_text(f.read())


def _finish(args, buffer: TextBuffer, result: OperationResult, change: Optional[LineChange]):
    if not result.success:
        print(f"Error: {result.error.value}: {result.detail}", file=sys.stderr)
        sys.exit(1)

    if change is None:
        print("Nothing to do.", file=sys.stderr)
        return

    if args.show or args.dry_run:
        print(render_lines(change.old_lines, change.new_lines))

    if args.dry_run:
        return

    output_path = args.output or args.input
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(buffer.to_text())
    print(f"✅ Saved to {output_path}", file=sys.stderr)


def handle_remove(args):
    buffer = _read_buffer(args.input)
    engine = SpacingEngine(buffer, rules=_load_rules(args.config))
    (start_line, start_col), (end_line, end_col) = args.start, args.end
    result, change = engine.run_remove(start_line, start_col, end_line, end_col, dry_run=args.dry_run)
    _finish(args, buffer, result, change)


def handle_insert(args):
    buffer = _read_buffer(args.input)
    engine = SpacingEngine(buffer, rules=_load_rules(args.config))
    line, col = args.position
    result, change = engine.run_insert(line, col, args.text, dry_run=args.dry_run)
    _finish(args, buffer, result, change)


def _add_common_arguments(p: argparse.ArgumentParser):
    p.add_argument("-c", "--config", type=Path, help="JSON file with spacing rule overrides")
    p.add_argument("-o", "--output", type=Path, help="Output file (default: edit input in place)")
    p.add_argument("--dry-run", action="store_true", help="Print the change without writing it")
    p.add_argument("--show", action="store_true", help="Print the change as CriticMarkup")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="interspaced", description="Interspaced: spacing-aware text edits")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", action="store_true", help="Log spacing decisions to stderr")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Subcommands")

    p_remove = subparsers.add_parser("remove", help="Remove a span and repair the spacing around it")
    p_remove.add_argument("input", type=Path, help="Text file to edit")
    p_remove.add_argument("start", type=parse_position, help="Start position LINE:COL (line 1-based, column 0-based)")
    p_remove.add_argument("end", type=_end_position, help="End position LINE:COL, or LINE:$ for end of line")
    _add_common_arguments(p_remove)
    p_remove.set_defaults(func=handle_remove)

    p_insert = subparsers.add_parser("insert", help="Insert text and space it correctly")
    p_insert.add_argument("input", type=Path, help="Text file to edit")
    p_insert.add_argument("position", type=parse_position, help="Insertion point LINE:COL")
    p_insert.add_argument("text", help="Text to insert")
    _add_common_arguments(p_insert)
    p_insert.set_defaults(func=handle_insert)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
