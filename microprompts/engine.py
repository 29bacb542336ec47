"""
SuggestionEngine: one conversation session.

Ties the prompt pool, the suggestion selector, the message store and the
stream controller together behind ``submit`` / ``stop`` /
``clear_conversation``.  All session state lives on the instance; nothing is
kept at module level.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Iterable
from typing import Any

from .catalog import DEFAULT_CATALOG, STARTER_PROMPTS
from .exceptions import TRANSPORT_FAILURE_TEXT, TransportFailure, extract_answer
from .messages import Message, MessageState, MessageStore, Role
from .pool import PromptPool
from .protocols import AnswerServiceProtocol, get_backend
from .selector import MAX_SUGGESTIONS, RESHUFFLE_EVERY, SuggestionSelector
from .streaming import REVEAL_INTERVAL_SECONDS, REVEAL_STEP_CHARS, Sleep, StreamController

logger = logging.getLogger("microprompts")

DEFAULT_SOURCE_TAG = "netlify"
DEFAULT_AUTH_TOKEN = "anonymous"


class SuggestionEngine:
    """
    Session-scoped conversation engine.

    Args:
        catalog: Canonical prompts offered as follow-ups.
        answer_service: Object satisfying :class:`AnswerServiceProtocol`.
            Defaults to the module backend from :func:`get_backend`.
        source_tag: Forwarded to the answer service as ``source``.
        auth_token: Forwarded to the answer service as ``token``.
        rng: Randomness for pool shuffles and tie-breaks.  Seed it for
            reproducible sessions.
        interval: Seconds between reveal ticks.
        step: Characters revealed per tick.
        sleep: Tick delay coroutine, replaceable in tests.
    """

    def __init__(
        self,
        catalog: Iterable[str] = DEFAULT_CATALOG,
        answer_service: AnswerServiceProtocol | None = None,
        *,
        source_tag: str = DEFAULT_SOURCE_TAG,
        auth_token: str = DEFAULT_AUTH_TOKEN,
        rng: random.Random | None = None,
        max_suggestions: int = MAX_SUGGESTIONS,
        reshuffle_every: int = RESHUFFLE_EVERY,
        interval: float = REVEAL_INTERVAL_SECONDS,
        step: int = REVEAL_STEP_CHARS,
        sleep: Sleep = asyncio.sleep,
        starter_prompts: Iterable[str] = STARTER_PROMPTS,
    ) -> None:
        self._rng = rng if rng is not None else random.Random()
        self._answer_service = answer_service
        self.source_tag = source_tag
        self.auth_token = auth_token
        self.starter_prompts: tuple[str, ...] = tuple(starter_prompts)

        self.pool = PromptPool(catalog, rng=self._rng)
        self.selector = SuggestionSelector(
            self.pool,
            rng=self._rng,
            max_suggestions=max_suggestions,
            reshuffle_every=reshuffle_every,
        )
        self.store = MessageStore()
        self.controller = StreamController(
            self.store,
            self.selector.select,
            interval=interval,
            step=step,
            sleep=sleep,
        )
        self.started = False

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def answer_service(self) -> AnswerServiceProtocol:
        if self._answer_service is None:
            return get_backend()
        return self._answer_service

    @property
    def messages(self) -> tuple[Message, ...]:
        return self.store.messages

    @property
    def unused_prompts(self) -> tuple[str, ...]:
        return self.pool.unused

    @property
    def streaming_message(self) -> Message | None:
        """The message currently revealing, if any."""
        return self.store.find_last(lambda m: m.state is MessageState.REVEALING)

    def last_user_message(self) -> Message | None:
        return self.store.find_last(lambda m: m.role is Role.USER)

    def suggestions_for(self, message_id: str) -> tuple[str, ...]:
        """Suggestions stored on a message; never computed on demand."""
        try:
            message = self.store.get(message_id)
        except KeyError:
            return ()
        return message.suggestions or ()

    def snapshot(self) -> dict[str, Any]:
        return {
            "started": self.started,
            "messages": self.store.snapshot(),
            "unused_prompts": list(self.pool.unused),
        }

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def mark_consumed(self, text: str) -> list[str]:
        """Mark the prompts *text* asks for as used.

        An exact unused catalog prompt is marked alone; any other text goes
        through the equivalence heuristics.
        """
        if text in self.pool:
            self.pool.mark_used(text)
            return [text]
        return self.pool.mark_used_if_equivalent(text)

    async def submit(self, text: str) -> str | None:
        """
        Ask *text* and start revealing the answer.

        Returns the id of the assistant message, or ``None`` for blank input
        and for answers that arrive after the conversation was cleared.  Any
        failure of the answer call finalizes the message with a fallback text
        and no suggestions; it is not raised.
        """
        question = (text or "").strip()
        if not question:
            return None

        self.mark_consumed(question)
        self.controller.cancel_active()
        self.started = True

        self.store.append(Message.user(question))
        placeholder = self.store.append(Message.placeholder(question))

        try:
            payload = await self.answer_service.ask(question, self.source_tag, self.auth_token)
        except TransportFailure as exc:
            logger.warning("[Microprompts Engine] %s", exc)
            return self._finalize_unreachable(placeholder.id)
        except Exception:
            logger.exception(
                "[Microprompts Engine] Answer service %s failed.",
                type(self.answer_service).__name__,
            )
            return self._finalize_unreachable(placeholder.id)

        if self._discarded(placeholder.id):
            logger.debug(
                "[Microprompts Engine] Dropping answer for %s; conversation was reset.",
                placeholder.id,
            )
            return None

        full_text = extract_answer(payload)
        self.controller.start(placeholder.id, full_text, question)
        return placeholder.id

    def stop(self, message_id: str | None = None) -> bool:
        """Stop the reveal of *message_id* (default: the one revealing now)."""
        return self.controller.stop(message_id)

    async def wait_for_reveal(self) -> None:
        await self.controller.wait()

    def clear_conversation(self) -> None:
        """Discard all messages and restore the pool and selector to their initial state."""
        self.controller.cancel_active()
        self.store.clear()
        self.pool.reset()
        self.selector.reset()
        self.started = False
        logger.info("[Microprompts Engine] Conversation cleared.")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _discarded(self, message_id: str) -> bool:
        try:
            message = self.store.get(message_id)
        except KeyError:
            return True
        return message.state is not MessageState.PENDING

    def _finalize_unreachable(self, message_id: str) -> str | None:
        """Complete *message_id* with the fallback text; ``None`` if it was discarded."""
        if self._discarded(message_id):
            return None
        self.store.replace(
            message_id,
            text=TRANSPORT_FAILURE_TEXT,
            revealed_length=len(TRANSPORT_FAILURE_TEXT),
            state=MessageState.COMPLETED,
        )
        return message_id
