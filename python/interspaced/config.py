"""
Rule set construction: defaults merged with user overrides.

Overrides may give the four punctuation sets at top level or nested under
"punctuation_rules". Later values win ("force" merge); sets are replaced
wholesale, not unioned.
"""

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import structlog
from pydantic import ValidationError

from interspaced.errors import ConfigError
from interspaced.models import SpacingRuleSet

logger = structlog.get_logger(__name__)

PUNCTUATION_KEYS = ("no_space_after", "no_space_before", "always_space_after", "always_space_before")

DEFAULT_RULES = SpacingRuleSet(
    aggressive_spacing=True,
    preserve_tabs=False,
    max_operation_size=100 * 1024,  # 100KB
    timeout_ms=100,
    no_space_after=frozenset([",", ".", "!", "?", ";", ":", ")", "]", "}", "'", '"', "-", "_"]),
    no_space_before=frozenset([",", ".", "!", "?", ";", ":", "(", "[", "{", "'", '"', "-", "_"]),
    always_space_after=frozenset(["(", "[", "{"]),
    always_space_before=frozenset([")", "]", "}"]),
)


def _flatten_overrides(overrides: Mapping[str, Any]) -> Dict[str, Any]:
    flat = {k: v for k, v in overrides.items() if k != "punctuation_rules"}

    nested = overrides.get("punctuation_rules")
    if nested is None:
        return flat
    if not isinstance(nested, Mapping):
        raise ConfigError("punctuation_rules must be a mapping of rule name to characters")

    for key, value in nested.items():
        if key not in PUNCTUATION_KEYS:
            raise ConfigError(f"Unknown punctuation rule '{key}'. Expected one of: {', '.join(PUNCTUATION_KEYS)}")
        if key in flat:
            raise ConfigError(f"'{key}' given both at top level and under punctuation_rules")
        flat[key] = value
    return flat


def build_rules(overrides: Optional[Mapping[str, Any]] = None, base: SpacingRuleSet = DEFAULT_RULES) -> SpacingRuleSet:
    """
    Returns a new immutable rule set: `base` with `overrides` applied on top.

    Raises:
        ConfigError: unknown keys or values pydantic rejects.
    """
    if not overrides:
        return base

    flat = _flatten_overrides(overrides)
    for key in PUNCTUATION_KEYS:
        # A string such as ",.;" is shorthand for its characters.
        if isinstance(flat.get(key), str):
            flat[key] = list(flat[key])

    merged = base.model_dump()
    merged.update(flat)
    try:
        rules = SpacingRuleSet(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid spacing configuration: {e}") from e

    logger.debug("Built spacing rules", overridden=sorted(flat))
    return rules


def load_rules(path: Union[str, Path], base: SpacingRuleSet = DEFAULT_RULES) -> SpacingRuleSet:
    """Reads a JSON object of overrides from `path`."""
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")

    try:
        with open(p, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {p} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {p} must contain a JSON object")

    return build_rules(data, base=base)
