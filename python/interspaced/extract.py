"""
Span extraction over a sequence of buffer lines.
Pure reads: the lines are always supplied by the caller.
"""

from typing import Sequence

import structlog

from interspaced.errors import OutOfBoundsError
from interspaced.models import END_OF_LINE, TextSpan

logger = structlog.get_logger(__name__)


def _resolve_column(line: str, column: int, line_no: int, allow_end_sentinel: bool) -> int:
    if column == END_OF_LINE and allow_end_sentinel:
        return len(line)
    if column < 0 or column > len(line):
        raise OutOfBoundsError(f"Column {column} out of bounds for line {line_no} (length {len(line)})")
    return column


def extract(source_lines: Sequence[str], span: TextSpan, first_line: int = 1) -> str:
    """
    Returns the exact text covered by span.

    Args:
        source_lines: Buffer lines, source_lines[0] being line number first_line.
        span: Range to extract. An end column of END_OF_LINE means "to the end of that line".
        first_line: Line number of source_lines[0]; lets callers pass only the lines they fetched.

    Multi-line spans yield the first line's suffix, the middle lines verbatim and the
    last line's prefix, joined with "\\n".
    """
    last_line = first_line + len(source_lines) - 1
    for line_no in (span.start.line, span.end.line):
        if line_no < first_line or line_no > last_line:
            raise OutOfBoundsError(f"Line {line_no} outside available lines {first_line}..{last_line}")

    start_text = source_lines[span.start.line - first_line]
    end_text = source_lines[span.end.line - first_line]
    start_col = _resolve_column(start_text, span.start.column, span.start.line, allow_end_sentinel=False)
    end_col = _resolve_column(end_text, span.end.column, span.end.line, allow_end_sentinel=True)

    if not span.is_multiline:
        return start_text[start_col:end_col]

    parts = [start_text[start_col:]]
    for line_no in range(span.start.line + 1, span.end.line):
        parts.append(source_lines[line_no - first_line])
    parts.append(end_text[:end_col])

    logger.debug("Extracted multi-line span", lines=span.end.line - span.start.line + 1)
    return "\n".join(parts)
