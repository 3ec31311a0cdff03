import time
from typing import Callable, List, NamedTuple, Optional, Tuple

import structlog
from pydantic import ValidationError

from interspaced.buffer import LineBuffer
from interspaced.config import DEFAULT_RULES
from interspaced.errors import (
    BufferWriteError,
    InvalidRangeError,
    OperationTimedOutError,
    OperationTooLargeError,
    OutOfBoundsError,
    SpacingError,
)
from interspaced.extract import extract
from interspaced.models import END_OF_LINE, ErrorKind, OperationResult, SpacingRuleSet, TextPosition, TextSpan
from interspaced.normalize import boundary_needs_space, join, normalize

logger = structlog.get_logger(__name__)


class LineChange(NamedTuple):
    """A planned replacement of lines first_line..last_line (inclusive)."""

    first_line: int
    last_line: int
    old_lines: List[str]
    new_lines: List[str]


class SpacingEngine:
    """
    Remove / Insert with spacing repair on a LineBuffer.

    The engine keeps no state between calls: every operation reads the lines it
    needs, decides the replacement and performs a single write. Errors are
    returned as OperationResult values and leave the buffer untouched.
    """

    def __init__(
        self,
        buffer: LineBuffer,
        rules: SpacingRuleSet = DEFAULT_RULES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.buffer = buffer
        self.rules = rules
        self.clock = clock

    # --- public operations ---------------------------------------------------

    def remove(self, start_line: int, start_col: int, end_line: int, end_col: int) -> OperationResult:
        """Removes the text in the span and re-spaces the joined line."""
        result, _ = self.run_remove(start_line, start_col, end_line, end_col)
        return result

    def insert(self, line: int, col: int, text: str) -> OperationResult:
        """Inserts text at the position with a single space on each side where the rules want one."""
        result, _ = self.run_insert(line, col, text)
        return result

    def run_remove(
        self, start_line: int, start_col: int, end_line: int, end_col: int, dry_run: bool = False
    ) -> Tuple[OperationResult, Optional[LineChange]]:
        """Like remove(), also returning the line change (None for a no-op or an error)."""
        return self._execute(
            "remove",
            lambda: self._plan_remove(start_line, start_col, end_line, end_col),
            dry_run,
        )

    def run_insert(
        self, line: int, col: int, text: str, dry_run: bool = False
    ) -> Tuple[OperationResult, Optional[LineChange]]:
        """Like insert(), also returning the line change (None for a no-op or an error)."""
        return self._execute("insert", lambda: self._plan_insert(line, col, text), dry_run)

    # --- orchestration -------------------------------------------------------

    def _execute(
        self, op: str, planner: Callable[[], Optional[LineChange]], dry_run: bool
    ) -> Tuple[OperationResult, Optional[LineChange]]:
        started = self.clock()

        try:
            revision = self._read_revision()
            change = planner()
            if change is None:
                logger.debug("No-op", op=op)
                return OperationResult.ok(), None

            self._check_deadline(started)
            if not dry_run:
                self._write(change, revision)
        except ValidationError as e:
            detail = "; ".join(err["msg"] for err in e.errors())
            logger.warning("Rejected operation", op=op, error=ErrorKind.INVALID_RANGE.value, detail=detail)
            return OperationResult.failed(ErrorKind.INVALID_RANGE, detail), None
        except SpacingError as e:
            logger.warning("Rejected operation", op=op, error=e.kind.value, detail=e.detail)
            return OperationResult.failed(e.kind, e.detail), None

        logger.info(f"Applied {op}", lines=f"{change.first_line}-{change.last_line}", dry_run=dry_run)
        return OperationResult.ok(), change

    def _check_deadline(self, started: float):
        elapsed_ms = (self.clock() - started) * 1000.0
        if elapsed_ms > self.rules.timeout_ms:
            raise OperationTimedOutError(f"Operation took {elapsed_ms:.1f}ms (limit {self.rules.timeout_ms}ms)")

    def _check_size(self, size: int):
        if size > self.rules.max_operation_size:
            raise OperationTooLargeError(
                f"Operation spans {size} characters (limit {self.rules.max_operation_size})"
            )

    def _read_revision(self) -> int:
        try:
            return self.buffer.revision
        except SpacingError:
            raise
        except Exception as e:
            raise BufferWriteError(f"Failed to read buffer revision: {e}") from e

    def _read_lines(self, first_line: int, last_line: int) -> List[str]:
        try:
            count = self.buffer.line_count()
        except SpacingError:
            raise
        except Exception as e:
            raise OutOfBoundsError(f"Failed to count buffer lines: {e}") from e
        if last_line > count:
            raise OutOfBoundsError(f"Line {last_line} beyond end of buffer ({count} lines)")
        try:
            return list(self.buffer.get_lines(first_line, last_line))
        except SpacingError:
            raise
        except Exception as e:
            raise OutOfBoundsError(f"Failed to read lines {first_line}..{last_line}: {e}") from e

    def _write(self, change: LineChange, revision: int):
        try:
            self.buffer.set_lines(change.first_line, change.last_line, change.new_lines, expected_revision=revision)
        except SpacingError:
            raise
        except Exception as e:
            raise BufferWriteError(f"Failed to replace text in buffer: {e}") from e

    # --- Remove ----------------------------------------------------------------

    def _plan_remove(self, start_line: int, start_col: int, end_line: int, end_col: int) -> Optional[LineChange]:
        span = TextSpan.from_coords(start_line, start_col, end_line, end_col)
        lines = self._read_lines(span.start.line, span.end.line)

        removed = extract(lines, span, first_line=span.start.line)
        if not removed:
            # start == end, possibly through the end-of-line sentinel
            return None
        self._check_size(len(removed))

        line_no = span.start.line
        before = extract(lines, TextSpan.from_coords(line_no, 0, line_no, span.start.column), first_line=line_no)
        # Everything in the end line after the removed text. Its start is where `removed` stopped.
        end_text = lines[-1]
        resume_col = len(end_text) if span.end.is_end_of_line else span.end.column
        after = extract(
            lines,
            TextSpan.from_coords(span.end.line, resume_col, span.end.line, END_OF_LINE),
            first_line=line_no,
        )

        decision = normalize(before, after, removed=removed, rules=self.rules)
        new_line = join(decision)

        logger.debug(
            "Planned removal",
            removed=removed[:50],
            needs_space=decision.needs_space,
            multiline=span.is_multiline,
        )
        return LineChange(span.start.line, span.end.line, lines, [new_line])

    # --- Insert ----------------------------------------------------------------

    def _plan_insert(self, line: int, col: int, text: str) -> Optional[LineChange]:
        position = TextPosition(line=line, column=col)
        if position.is_end_of_line:
            raise InvalidRangeError("Insert column must be a real column, not the end-of-line sentinel")

        fragment = text.strip() if self.rules.aggressive_spacing else text
        if not fragment:
            return None
        self._check_size(len(fragment))

        lines = self._read_lines(line, line)
        before = extract(lines, TextSpan.from_coords(line, 0, line, col), first_line=line)
        after = extract(lines, TextSpan.from_coords(line, col, line, END_OF_LINE), first_line=line)

        decision = normalize(before, after, inserted=fragment, rules=self.rules)
        # At a line edge the fragment's outer whitespace would become a leading/trailing space.
        if not decision.trimmed_before:
            fragment = fragment.lstrip()
        if not decision.trimmed_after:
            fragment = fragment.rstrip()
        if not fragment:
            return None
        new_text = self._place(decision.trimmed_before, fragment, decision.trimmed_after)

        logger.debug("Planned insertion", inserted=fragment[:50], baseline_space=decision.needs_space)
        return LineChange(line, line, lines, new_text.split("\n"))

    def _place(self, before: str, fragment: str, after: str) -> str:
        """
        Joins a non-empty fragment between the trimmed neighbours. Each side's space is decided
        on its own boundary; in the middle of a line two punctuation characters
        never get a space between them.
        """
        middle = bool(before and after)
        parts = []

        if before:
            parts.append(before)
            if boundary_needs_space(before[-1], fragment[0], self.rules, fuse_punctuation=middle):
                parts.append(" ")

        parts.append(fragment)

        if after:
            if boundary_needs_space(fragment[-1], after[0], self.rules, fuse_punctuation=middle):
                parts.append(" ")
            parts.append(after)

        return "".join(parts)
