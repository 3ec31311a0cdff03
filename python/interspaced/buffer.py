"""
The text-holding collaborator the engine reads from and writes back to.

Editor integrations implement LineBuffer over their own buffers; TextBuffer is
the in-memory implementation used by the CLI, the MCP server and the tests.
"""

import threading
from typing import List, Optional, Protocol, Sequence, runtime_checkable

import structlog

from interspaced.errors import BufferReadOnlyError, ConcurrentModificationError, OutOfBoundsError

logger = structlog.get_logger(__name__)


@runtime_checkable
class LineBuffer(Protocol):
    """Line numbers are 1-indexed and ranges inclusive on both ends."""

    @property
    def revision(self) -> int: ...

    def line_count(self) -> int: ...

    def get_lines(self, first_line: int, last_line: int) -> List[str]: ...

    def set_lines(
        self,
        first_line: int,
        last_line: int,
        replacement_lines: Sequence[str],
        expected_revision: Optional[int] = None,
    ) -> None: ...


class TextBuffer:
    def __init__(self, lines: Optional[Sequence[str]] = None, read_only: bool = False, trailing_newline: bool = False):
        self._lines: List[str] = list(lines) if lines else [""]
        self._lock = threading.Lock()
        self._revision = 0
        self.read_only = read_only
        self.trailing_newline = trailing_newline

    @classmethod
    def from_text(cls, text: str, read_only: bool = False) -> "TextBuffer":
        trailing = text.endswith("\n")
        if trailing:
            text = text[:-1]
        return cls(text.split("\n"), read_only=read_only, trailing_newline=trailing)

    def to_text(self) -> str:
        with self._lock:
            text = "\n".join(self._lines)
        return text + "\n" if self.trailing_newline else text

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def lines(self) -> List[str]:
        with self._lock:
            return list(self._lines)

    def line_count(self) -> int:
        return len(self._lines)

    def _check_range(self, first_line: int, last_line: int):
        count = len(self._lines)
        if first_line < 1 or last_line > count or first_line > last_line:
            raise OutOfBoundsError(f"Lines {first_line}..{last_line} outside buffer of {count} lines")

    def get_lines(self, first_line: int, last_line: int) -> List[str]:
        with self._lock:
            self._check_range(first_line, last_line)
            return self._lines[first_line - 1 : last_line]

    def set_lines(
        self,
        first_line: int,
        last_line: int,
        replacement_lines: Sequence[str],
        expected_revision: Optional[int] = None,
    ) -> None:
        """
        Replaces lines first_line..last_line with replacement_lines in one step.

        Raises:
            BufferReadOnlyError: the buffer refuses writes.
            ConcurrentModificationError: the buffer changed since expected_revision was read.
            OutOfBoundsError: the range is not inside the buffer.
        """
        if self.read_only:
            raise BufferReadOnlyError("Buffer is read-only")

        with self._lock:
            if expected_revision is not None and expected_revision != self._revision:
                raise ConcurrentModificationError(
                    f"Buffer changed (revision {self._revision}, expected {expected_revision})"
                )
            self._check_range(first_line, last_line)
            self._lines[first_line - 1 : last_line] = list(replacement_lines)
            if not self._lines:
                self._lines = [""]
            self._revision += 1

        logger.debug("Buffer lines replaced", first_line=first_line, last_line=last_line, revision=self._revision)
