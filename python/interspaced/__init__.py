from importlib.metadata import PackageNotFoundError, version

from interspaced.buffer import LineBuffer, TextBuffer
from interspaced.config import DEFAULT_RULES, build_rules, load_rules
from interspaced.engine import SpacingEngine
from interspaced.models import ErrorKind, OperationResult, SpacingRuleSet, TextPosition, TextSpan
from interspaced.normalize import normalize

try:
    __version__ = version("interspaced")
except PackageNotFoundError:
    # Running from a source checkout without an install.
    __version__ = "0.0.0-dev"

__all__ = [
    "SpacingEngine",
    "SpacingRuleSet",
    "DEFAULT_RULES",
    "build_rules",
    "load_rules",
    "LineBuffer",
    "TextBuffer",
    "TextPosition",
    "TextSpan",
    "ErrorKind",
    "OperationResult",
    "normalize",
    "__version__",
]
