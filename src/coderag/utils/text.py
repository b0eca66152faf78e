"""Text helpers for approximate token accounting."""

from __future__ import annotations

import math
from typing import List

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Approximate token count: one token per four characters, rounded up."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def tokens_to_chars(tokens: int) -> int:
    return tokens * CHARS_PER_TOKEN


def truncate_to_token_limit(text: str, max_tokens: int) -> str:
    """Cut ``text`` so that it fits within ``max_tokens`` estimated tokens."""
    max_chars = tokens_to_chars(max_tokens)
    if len(text) <= max_chars:
        return text
    return text[:max_chars]


def split_lines(text: str) -> List[str]:
    """Split on ``\\n`` only, keeping a trailing empty line like the source does."""
    return text.split("\n")
