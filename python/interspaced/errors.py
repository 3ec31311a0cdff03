"""
Exceptions raised inside the engine. They never cross the public
remove/insert boundary: SpacingEngine turns them into OperationResult values.
"""

from interspaced.models import ErrorKind


class SpacingError(Exception):
    kind: ErrorKind = ErrorKind.INVALID_RANGE

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidRangeError(SpacingError):
    kind = ErrorKind.INVALID_RANGE


class OutOfBoundsError(SpacingError):
    kind = ErrorKind.OUT_OF_BOUNDS


class BufferReadOnlyError(SpacingError):
    kind = ErrorKind.BUFFER_READ_ONLY


class ConcurrentModificationError(SpacingError):
    kind = ErrorKind.CONCURRENT_MODIFICATION


class OperationTooLargeError(SpacingError):
    kind = ErrorKind.OPERATION_TOO_LARGE


class OperationTimedOutError(SpacingError):
    kind = ErrorKind.OPERATION_TIMED_OUT


class BufferWriteError(SpacingError):
    kind = ErrorKind.BUFFER_WRITE_ERROR


class ConfigError(ValueError):
    """Raised by interspaced.config when user overrides cannot be applied."""
