"""
Word-level rendering of a line change as CriticMarkup, for showing what a
Remove/Insert did ({--deleted--}, {++added++}).
"""

import re
from typing import Dict, List, Sequence, Tuple

import structlog
from diff_match_patch import diff_match_patch

logger = structlog.get_logger(__name__)

_TOKEN_SPLIT = r"(\s+|\w+|[^\w\s])"


def _words_to_chars(text1: str, text2: str) -> Tuple[str, str, List[str]]:
    """
    Splits both texts into word / whitespace / punctuation tokens and encodes
    each distinct token as one character, so the diff runs per token.
    """
    token_array: List[str] = []
    token_hash: Dict[str, int] = {}

    def encode_text(text: str) -> str:
        tokens = [t for t in re.split(_TOKEN_SPLIT, text) if t]
        encoded_chars = []
        for token in tokens:
            if token not in token_hash:
                token_hash[token] = len(token_array)
                token_array.append(token)
            encoded_chars.append(chr(token_hash[token]))
        return "".join(encoded_chars)

    chars1 = encode_text(text1)
    chars2 = encode_text(text2)
    return chars1, chars2, token_array


def word_diff(old: str, new: str) -> List[Tuple[int, str]]:
    """Returns diff_match_patch style (op, text) tuples computed at token granularity."""
    dmp = diff_match_patch()
    chars1, chars2, token_array = _words_to_chars(old, new)
    diffs = dmp.diff_main(chars1, chars2, False)
    dmp.diff_cleanupSemantic(diffs)
    dmp.diff_charsToLines(diffs, token_array)
    logger.debug("Word diff", tokens=len(token_array), hunks=len(diffs))
    return diffs


def render_change(old: str, new: str) -> str:
    """Renders the change from old to new with inline CriticMarkup."""
    parts = []
    for op, text in word_diff(old, new):
        if op == 0:
            parts.append(text)
        elif op == -1:
            parts.append(f"{{--{text}--}}")
        else:
            parts.append(f"{{++{text}++}}")
    return "".join(parts)


def render_lines(old_lines: Sequence[str], new_lines: Sequence[str]) -> str:
    """Same as render_change over whole blocks of lines."""
    return render_change("\n".join(old_lines), "\n".join(new_lines))
