import logging
import sys
from pathlib import Path
from typing import Optional

import structlog
from mcp.server.fastmcp import FastMCP

from interspaced.buffer import TextBuffer
from interspaced.config import DEFAULT_RULES, load_rules
from interspaced.diff import render_lines
from interspaced.engine import LineChange, SpacingEngine
from interspaced.models import OperationResult

# --- LOGGING CONFIGURATION ---
# MCP communicates over stdio.
# All logs must go to stderr. Any print to stdout will break the JSON-RPC protocol.
logging.basicConfig(stream=sys.stderr, level=logging.INFO, force=True)

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
)

mcp = FastMCP("Interspaced Spacing Service")


def _read_buffer(path: str) -> TextBuffer:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with open(p, "r", encoding="utf-8") as f:
        return TextBuffer.from_text(f.read())


def _engine_for(buffer: TextBuffer, config_path: Optional[str]) -> SpacingEngine:
    rules = load_rules(config_path) if config_path else DEFAULT_RULES
    return SpacingEngine(buffer, rules=rules)


def _report(
    file_path: str,
    buffer: TextBuffer,
    result: OperationResult,
    change: Optional[LineChange],
    output_path: Optional[str],
) -> str:
    if not result.success:
        return f"Error: {result.error.value}: {result.detail}"
    if change is None:
        return "Nothing to do."

    output_path = output_path or file_path
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(buffer.to_text())

    return f"Saved to: {output_path}\n{render_lines(change.old_lines, change.new_lines)}"


@mcp.tool()
def remove_span(
    file_path: str,
    start_line: int,
    start_col: int,
    end_line: int,
    end_col: int,
    output_path: Optional[str] = None,
    config_path: Optional[str] = None,
) -> str:
    """
    Removes a span of text from a file and repairs the spacing around it
    (single spaces between words, no space before punctuation).

    Args:
        file_path: Absolute path to the text file.
        start_line: First line of the span (1-indexed).
        start_col: Column where the span starts (0-indexed).
        end_line: Last line of the span (1-indexed).
        end_col: Column where the span ends (0-indexed, exclusive). -1 means end of line.
        output_path: Optional. If not provided, the file is edited in place.
        config_path: Optional JSON file with spacing rule overrides.

    Returns:
        The saved path and the change in CriticMarkup ({--deleted--}{++added++}), or an error message.
    """
    try:
        buffer = _read_buffer(file_path)
        engine = _engine_for(buffer, config_path)
        result, change = engine.run_remove(start_line, start_col, end_line, end_col)
        return _report(file_path, buffer, result, change, output_path)
    except Exception as e:
        return f"Error removing text: {str(e)}"


@mcp.tool()
def insert_text(
    file_path: str,
    line: int,
    col: int,
    text: str,
    output_path: Optional[str] = None,
    config_path: Optional[str] = None,
) -> str:
    """
    Inserts text into a file at a position, adding or dropping the spaces
    around it so the line stays correctly spaced.

    Args:
        file_path: Absolute path to the text file.
        line: Line to insert into (1-indexed).
        col: Column to insert at (0-indexed).
        text: Text to insert. Surrounding spaces are handled by the tool.
        output_path: Optional. If not provided, the file is edited in place.
        config_path: Optional JSON file with spacing rule overrides.
    """
    try:
        buffer = _read_buffer(file_path)
        engine = _engine_for(buffer, config_path)
        result, change = engine.run_insert(line, col, text)
        return _report(file_path, buffer, result, change, output_path)
    except Exception as e:
        return f"Error inserting text: {str(e)}"


def main():
    mcp.run()


if __name__ == "__main__":
    main()
