"""
SuggestionSelector: picks up to three follow-up prompts after each answer.

Selection scores unused prompts by token overlap with the last question and
answer, keeps the trio free of near-duplicates, avoids re-showing a trio that
was already shown, and periodically reshuffles the pool so fallbacks vary.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from ._threading import AtomicCounter
from .pool import PromptPool
from .tokens import is_redundant, shared_token_count, tokenize

logger = logging.getLogger("microprompts")

MAX_SUGGESTIONS = 3
RESHUFFLE_EVERY = 6
TRIO_KEY_SEPARATOR = "||"


@dataclass
class _Candidate:
    prompt: str
    score: int = 0
    tiebreak: float = 0.0


def trio_key(prompts: list[str] | tuple[str, ...]) -> str:
    """Order-independent key for a suggestion subset."""
    return TRIO_KEY_SEPARATOR.join(sorted(prompts))


def _redundant_with_any(prompt: str, selected: list[str]) -> bool:
    return any(is_redundant(chosen, prompt) for chosen in selected)


class SuggestionSelector:
    """
    Stateful selector bound to one :class:`PromptPool`.

    Parameters
    ----------
    pool:
        The pool whose unused prompts are candidates.
    rng:
        Source of tie-break and fill randomness.  Pass a seeded
        ``random.Random`` for reproducible selections.
    max_suggestions:
        Upper bound on the returned sequence.
    reshuffle_every:
        Reorder the pool after every *n*-th selection.
    """

    def __init__(
        self,
        pool: PromptPool,
        rng: random.Random | None = None,
        *,
        max_suggestions: int = MAX_SUGGESTIONS,
        reshuffle_every: int = RESHUFFLE_EVERY,
    ) -> None:
        if max_suggestions < 1:
            raise ValueError("max_suggestions must be >= 1")
        if reshuffle_every < 1:
            raise ValueError("reshuffle_every must be >= 1")
        self.pool = pool
        self._rng = rng if rng is not None else random.Random()
        self._max = max_suggestions
        self._reshuffle_every = reshuffle_every
        self._shown_trios: set[str] = set()
        self._counter = AtomicCounter()

    # ------------------------------------------------------------------
    # State views
    # ------------------------------------------------------------------

    @property
    def trio_history(self) -> frozenset[str]:
        """Keys of every suggestion subset shown so far."""
        return frozenset(self._shown_trios)

    @property
    def selection_count(self) -> int:
        return self._counter.value

    def reset(self) -> None:
        """Forget shown trios and restart the selection counter."""
        with self.pool.critical_section:
            self._shown_trios.clear()
            self._counter.reset()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, last_question: str = "", last_answer: str = "") -> tuple[str, ...]:
        """Return up to ``max_suggestions`` prompts for the given context, in selection order."""
        with self.pool.critical_section:
            unused = list(self.pool.unused)
            if not unused:
                return ()

            selected = self._pick(unused, last_question, last_answer)
            key = trio_key(selected)

            if key in self._shown_trios:
                alternative = self._alternative(unused, selected)
                if alternative:
                    logger.debug(
                        "[Microprompts Selector] Trio %r already shown; using %r instead.",
                        key,
                        alternative,
                    )
                    selected = alternative
                    key = trio_key(selected)

            self._shown_trios.add(key)
            self._maybe_reshuffle()
            return tuple(selected)

    def _pick(self, unused: list[str], last_question: str, last_answer: str) -> list[str]:
        context_tokens = tokenize(f"{last_question or ''} {last_answer or ''}")
        candidates = [
            _Candidate(
                prompt=prompt,
                score=shared_token_count(context_tokens, tokenize(prompt)),
                tiebreak=self._rng.random(),
            )
            for prompt in unused
        ]
        candidates.sort(key=lambda c: (-c.score, c.tiebreak))

        selected: list[str] = []
        for candidate in candidates:
            if len(selected) >= self._max or candidate.score <= 0:
                break
            if not _redundant_with_any(candidate.prompt, selected):
                selected.append(candidate.prompt)

        if len(selected) < self._max:
            self._fill(unused, selected)

        if not selected:
            selected = unused[: self._max]
        return selected

    def _fill(self, unused: list[str], selected: list[str]) -> None:
        """Top up *selected* from a shuffled remainder, preferring non-redundant prompts."""
        remaining = [prompt for prompt in unused if prompt not in selected]
        self._rng.shuffle(remaining)
        while remaining and len(selected) < self._max:
            fresh = next((p for p in remaining if not _redundant_with_any(p, selected)), None)
            choice = fresh if fresh is not None else remaining[0]
            remaining.remove(choice)
            selected.append(choice)

    def _alternative(self, unused: list[str], first: list[str]) -> list[str]:
        """Build a replacement trio that excludes every prompt of *first*."""
        alt_pool = [prompt for prompt in unused if prompt not in first]
        self._rng.shuffle(alt_pool)
        allow_redundant = len(alt_pool) <= self._max

        alternative: list[str] = []
        for prompt in alt_pool:
            if len(alternative) >= self._max:
                break
            if allow_redundant or not _redundant_with_any(prompt, alternative):
                alternative.append(prompt)
        return alternative

    def _maybe_reshuffle(self) -> None:
        count = self._counter.increment()
        if count % self._reshuffle_every == 0:
            self.pool.reshuffle()
            logger.debug("[Microprompts Selector] Reshuffled pool after %d selections.", count)
