"""
Spacing decisions for the join between two text fragments.

Each side of a boundary produces its own verdict (force / forbid / neutral)
from the rule set; the two verdicts are then combined by consensus:
    1. if either side forbids a space, there is none;
    2. otherwise if either side forces a space, there is one;
    3. otherwise two adjacent punctuation characters stay fused;
    4. otherwise words get a single space.
On one side, an always_* rule takes precedence over the matching no_* rule.
"""

import re
from typing import Optional

import structlog

from interspaced.config import DEFAULT_RULES
from interspaced.models import SpacingDecision, SpacingRuleSet

logger = structlog.get_logger(__name__)

PUNCTUATION = frozenset(",.!?;:()[]{}'\"-_`~@#$%^&*+=|\\/<>")
WHITESPACE = frozenset(" \t\n\r")

_WS_RUN_RE = re.compile(r"\s+")
# Same as above minus the tab character.
_WS_RUN_NO_TAB_RE = re.compile(r"[^\S\t]+")

_FORCE = "force"
_FORBID = "forbid"
_NEUTRAL = "neutral"


def is_punctuation(char: str) -> bool:
    return char in PUNCTUATION


def is_whitespace(char: str) -> bool:
    return char in WHITESPACE


def collapse_whitespace(text: str, preserve_tabs: bool = False) -> str:
    """Replaces every maximal whitespace run with one space. Does not trim."""
    if preserve_tabs:
        return _WS_RUN_NO_TAB_RE.sub(" ", text)
    return _WS_RUN_RE.sub(" ", text)


def _left_verdict(char: str, rules: SpacingRuleSet) -> str:
    if char in rules.always_space_after:
        return _FORCE
    if char in rules.no_space_after:
        return _FORBID
    return _NEUTRAL


def _right_verdict(char: str, rules: SpacingRuleSet) -> str:
    if char in rules.always_space_before:
        return _FORCE
    if char in rules.no_space_before:
        return _FORBID
    return _NEUTRAL


def boundary_needs_space(left: str, right: str, rules: SpacingRuleSet, fuse_punctuation: bool = False) -> bool:
    """
    Decides whether a space separates the character `left` from the character `right`.

    Args:
        left: Last character of the left fragment.
        right: First character of the right fragment.
        rules: Active rule set.
        fuse_punctuation: If True, two punctuation characters never get a space,
                          whatever the always_* rules say (used around inserted text).
    """
    if not left or not right:
        return False
    # A separator is already present.
    if is_whitespace(left) or is_whitespace(right):
        return False

    if fuse_punctuation and is_punctuation(left) and is_punctuation(right):
        return False

    verdicts = (_left_verdict(left, rules), _right_verdict(right, rules))
    if _FORBID in verdicts:
        return False
    if _FORCE in verdicts:
        return True
    if is_punctuation(left) and is_punctuation(right):
        return False
    return True


def _prepare(text: str, rules: SpacingRuleSet) -> str:
    if rules.aggressive_spacing:
        text = collapse_whitespace(text, preserve_tabs=rules.preserve_tabs)
    return text.strip()


def normalize(
    before: str,
    after: str,
    removed: Optional[str] = None,
    inserted: Optional[str] = None,
    rules: Optional[SpacingRuleSet] = None,
) -> SpacingDecision:
    """
    Computes the trimmed fragments on each side of an edit point and whether
    a single space must join them.

    `removed` is the text a Remove deletes: if it carried surrounding whitespace,
    its neighbours were separate words and must stay separated.
    `inserted` does not influence the before/after join; the caller resolves the
    boundaries on each side of the new fragment itself.
    """
    if rules is None:
        rules = DEFAULT_RULES

    trimmed_before = _prepare(before, rules)
    trimmed_after = _prepare(after, rules)

    # Nothing to join, or one side abuts the line start/end.
    if not trimmed_before or not trimmed_after:
        return SpacingDecision(trimmed_before=trimmed_before, trimmed_after=trimmed_after, needs_space=False)

    needs_space = boundary_needs_space(trimmed_before[-1], trimmed_after[0], rules)

    if removed is not None and removed != removed.strip():
        needs_space = True

    logger.debug(
        "Spacing decision",
        left=trimmed_before[-1],
        right=trimmed_after[0],
        needs_space=needs_space,
        inserting=inserted is not None,
    )
    return SpacingDecision(trimmed_before=trimmed_before, trimmed_after=trimmed_after, needs_space=needs_space)


def join(decision: SpacingDecision) -> str:
    """Assembles a decision into text. Never emits a separator next to an empty side."""
    if decision.needs_space and decision.trimmed_before and decision.trimmed_after:
        return f"{decision.trimmed_before} {decision.trimmed_after}"
    return decision.trimmed_before + decision.trimmed_after
