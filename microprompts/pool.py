"""
PromptPool: the catalog partitioned into unused and used prompts.

``unused`` keeps an order (shuffled at start and periodically afterwards)
that only matters for tie-breaks and fallbacks.  ``used`` records prompts the
user has effectively asked, either by picking a suggestion or by typing an
equivalent question.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable

from ._threading import CriticalSection
from .catalog import normalize_catalog
from .tokens import tokenize

logger = logging.getLogger("microprompts")


class PromptPool:
    """Tracks which catalog prompts are still available for suggestion.

    Invariant: ``unused`` and ``used`` are disjoint and together equal the
    catalog after every public call.
    """

    def __init__(self, catalog: Iterable[str], rng: random.Random | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()
        self._cs = CriticalSection()
        self._catalog: tuple[str, ...] = ()
        self._unused: list[str] = []
        self._used: set[str] = set()
        self.initialize(catalog)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, catalog: Iterable[str]) -> None:
        """Load *catalog* and mark every prompt unused."""
        with self._cs:
            self._catalog = normalize_catalog(catalog)
            self._fill()

    def reset(self) -> None:
        """Return every catalog prompt to ``unused`` in a fresh order."""
        with self._cs:
            self._fill()
        logger.info("[Microprompts Pool] Reset to %d prompts.", len(self._catalog))

    def _fill(self) -> None:
        unused = list(self._catalog)
        self._rng.shuffle(unused)
        self._unused = unused
        self._used = set()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def critical_section(self) -> CriticalSection:
        """Section guarding the partition; selectors hold it across scan and reshuffle."""
        return self._cs

    @property
    def catalog(self) -> tuple[str, ...]:
        return self._catalog

    @property
    def unused(self) -> tuple[str, ...]:
        """Unused prompts in their current order."""
        with self._cs:
            return tuple(self._unused)

    @property
    def used(self) -> frozenset[str]:
        with self._cs:
            return frozenset(self._used)

    def __contains__(self, prompt: object) -> bool:
        """Return ``True`` if *prompt* is still unused."""
        with self._cs:
            return prompt in self._unused

    def __len__(self) -> int:
        with self._cs:
            return len(self._unused)

    def __repr__(self) -> str:
        return f"PromptPool(unused={len(self._unused)}, used={len(self._used)})"

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def mark_used(self, prompt: str) -> bool:
        """Move *prompt* to ``used``.  Returns ``True`` if it moved."""
        if not prompt:
            return False
        with self._cs:
            if prompt in self._used or prompt not in self._unused:
                return False
            self._unused.remove(prompt)
            self._used.add(prompt)
        logger.debug("[Microprompts Pool] Marked used: %r", prompt)
        return True

    def mark_used_if_equivalent(self, free_text: str) -> list[str]:
        """
        Mark every unused prompt that *free_text* effectively asks.

        A prompt matches when any of these hold against the lower-cased text:

        1. the lower-cased prompt appears in it verbatim;
        2. every prompt token appears among the text's tokens;
        3. at least one token is shared.

        The third rule is loose: a single common word such as
        "skills" is enough.  Returns the prompts that moved, in pool order.
        """
        if not free_text:
            return []
        text = free_text.lower()
        text_tokens = set(tokenize(text))

        matched: list[str] = []
        with self._cs:
            remaining: list[str] = []
            for prompt in self._unused:
                prompt_lower = prompt.lower()
                prompt_tokens = tokenize(prompt_lower)
                phrase_match = prompt_lower in text
                all_tokens_in_text = all(token in text_tokens for token in prompt_tokens)
                some_overlap = not text_tokens.isdisjoint(prompt_tokens)
                if phrase_match or all_tokens_in_text or some_overlap:
                    self._used.add(prompt)
                    matched.append(prompt)
                else:
                    remaining.append(prompt)
            self._unused = remaining

        if matched:
            logger.debug(
                "[Microprompts Pool] Free text consumed %d prompt(s): %s",
                len(matched),
                ", ".join(matched),
            )
        return matched

    def reshuffle(self) -> None:
        """Reorder ``unused`` in place; membership is unchanged."""
        with self._cs:
            self._rng.shuffle(self._unused)
