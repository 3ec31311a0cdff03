from enum import Enum
from typing import FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Column sentinel for "end of that line" on a span's end position.
END_OF_LINE = -1


class ErrorKind(str, Enum):
    INVALID_RANGE = "InvalidRange"
    OUT_OF_BOUNDS = "OutOfBounds"
    BUFFER_READ_ONLY = "BufferReadOnly"
    CONCURRENT_MODIFICATION = "ConcurrentModification"
    OPERATION_TOO_LARGE = "OperationTooLarge"
    OPERATION_TIMED_OUT = "OperationTimedOut"
    BUFFER_WRITE_ERROR = "BufferWriteError"


class TextPosition(BaseModel):
    """A point in a buffer: 1-indexed line, 0-indexed column."""

    model_config = ConfigDict(frozen=True)

    line: int = Field(..., ge=1)
    column: int = Field(..., ge=END_OF_LINE)

    @property
    def is_end_of_line(self) -> bool:
        return self.column == END_OF_LINE


class TextSpan(BaseModel):
    """
    Ordered start/end pair. Half-open on columns, inclusive on the lines traversed.
    Only the end position may use the END_OF_LINE sentinel.
    """

    model_config = ConfigDict(frozen=True)

    start: TextPosition
    end: TextPosition

    @model_validator(mode="after")
    def _check_order(self) -> "TextSpan":
        if self.start.is_end_of_line:
            raise ValueError("start column cannot be the end-of-line sentinel")
        if self.start.line > self.end.line:
            raise ValueError("start line is after end line")
        if self.start.line == self.end.line and not self.end.is_end_of_line and self.start.column > self.end.column:
            raise ValueError("start column is after end column")
        return self

    @classmethod
    def from_coords(cls, start_line: int, start_col: int, end_line: int, end_col: int) -> "TextSpan":
        return cls(
            start=TextPosition(line=start_line, column=start_col),
            end=TextPosition(line=end_line, column=end_col),
        )

    @property
    def is_multiline(self) -> bool:
        return self.start.line != self.end.line


class SpacingRuleSet(BaseModel):
    """
    Immutable spacing configuration handed to every operation.
    Built once by interspaced.config from the defaults plus user overrides.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    aggressive_spacing: bool = Field(True, description="Collapse whitespace runs to a single space.")
    preserve_tabs: bool = Field(False, description="Leave tab characters out of the collapse.")
    no_space_after: FrozenSet[str] = frozenset()
    no_space_before: FrozenSet[str] = frozenset()
    always_space_after: FrozenSet[str] = frozenset()
    always_space_before: FrozenSet[str] = frozenset()
    max_operation_size: int = Field(100 * 1024, ge=0, description="Largest span (in characters) handled.")
    timeout_ms: int = Field(100, ge=0, description="Budget for one operation, in milliseconds.")

    @field_validator("no_space_after", "no_space_before", "always_space_after", "always_space_before")
    @classmethod
    def _single_characters(cls, value: FrozenSet[str]) -> FrozenSet[str]:
        bad = sorted(p for p in value if len(p) != 1)
        if bad:
            raise ValueError(f"punctuation entries must be single characters, got {bad}")
        return value

    @property
    def timeout(self) -> float:
        """Timeout in seconds."""
        return self.timeout_ms / 1000.0


class SpacingDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    trimmed_before: str
    trimmed_after: str
    needs_space: bool


class OperationResult(BaseModel):
    """Outcome of one Remove/Insert call. The engine never raises past this."""

    success: bool
    error: Optional[ErrorKind] = None
    detail: Optional[str] = None

    @classmethod
    def ok(cls) -> "OperationResult":
        return cls(success=True)

    @classmethod
    def failed(cls, kind: ErrorKind, detail: str) -> "OperationResult":
        return cls(success=False, error=kind, detail=detail)

    def as_tuple(self) -> Tuple[bool, Optional[str]]:
        if self.success:
            return True, None
        return False, f"{self.error.value}: {self.detail}"
