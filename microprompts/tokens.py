"""Tokenizer helpers shared by the prompt pool and the suggestion selector."""

from __future__ import annotations

import re
from collections.abc import Iterable

_WORD_PATTERN = re.compile(r"\w+")

# Tokens of this length or shorter never make two prompts redundant.
_MIN_IMPORTANT_TOKEN_LEN = 2


def tokenize(text: str | None) -> list[str]:
    """Lower-case *text* and split it into maximal runs of word characters."""
    if not text:
        return []
    return _WORD_PATTERN.findall(text.lower())


def shared_token_count(context_tokens: Iterable[str], prompt_tokens: Iterable[str]) -> int:
    """Count context tokens (with repeats) that also occur in *prompt_tokens*."""
    prompt_set = set(prompt_tokens)
    return sum(1 for token in context_tokens if token in prompt_set)


def important_tokens(text: str) -> set[str]:
    return {token for token in tokenize(text) if len(token) > _MIN_IMPORTANT_TOKEN_LEN}


def is_redundant(first: str, second: str) -> bool:
    """Return ``True`` when two prompts share any token longer than two characters."""
    return not important_tokens(first).isdisjoint(important_tokens(second))
