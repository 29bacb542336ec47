"""
Simulated streaming of an answer whose full text is already known.

:class:`StreamController` reveals one assistant message at a time by growing
its ``revealed_length`` on a fixed tick, then finalizes it and attaches
suggestions.  Suggestions are computed exactly once per message, on the
``REVEALING -> COMPLETED`` or ``REVEALING -> STOPPED`` transition.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable, Iterator, Sequence

from .messages import MessageState, MessageStore

logger = logging.getLogger("microprompts")

REVEAL_INTERVAL_SECONDS = 0.008
REVEAL_STEP_CHARS = 2

Sleep = Callable[[float], Awaitable[object]]
SelectFn = Callable[[str, str], Sequence[str]]


def reveal_lengths(total: int, step: int) -> Iterator[int]:
    """Yield the revealed length after each tick: ``step, 2*step, ...`` clamped to *total*."""
    if step < 1:
        raise ValueError("step must be >= 1")
    revealed = 0
    while revealed < total:
        revealed = min(revealed + step, total)
        yield revealed


async def reveal_prefixes(
    text: str,
    *,
    step: int = REVEAL_STEP_CHARS,
    interval: float = REVEAL_INTERVAL_SECONDS,
    sleep: Sleep = asyncio.sleep,
) -> AsyncGenerator[str, None]:
    """Async generator yielding ever-longer prefixes of *text*, one per tick.

    Produces ``ceil(len(text) / step)`` prefixes, the last being *text*
    itself.  Each call starts from the beginning; there is no resume.
    """
    for length in reveal_lengths(len(text), step):
        await sleep(interval)
        yield text[:length]


class StreamController:
    """
    Drives the reveal of assistant messages held in a :class:`MessageStore`.

    Parameters
    ----------
    store:
        Owner of the messages being revealed.
    select:
        Called as ``select(question, revealed_text)`` when a message is
        finalized; its result is attached as the message's suggestions.
    interval:
        Seconds between ticks.
    step:
        Characters revealed per tick.
    sleep:
        Awaitable used for the tick delay.  Tests substitute a manual clock.
    """

    def __init__(
        self,
        store: MessageStore,
        select: SelectFn,
        *,
        interval: float = REVEAL_INTERVAL_SECONDS,
        step: int = REVEAL_STEP_CHARS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must be >= 0")
        if step < 1:
            raise ValueError("step must be >= 1")
        self._store = store
        self._select = select
        self._interval = interval
        self._step = step
        self._sleep = sleep
        self._active_id: str | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def active_id(self) -> str | None:
        """Id of the message currently revealing, if any."""
        return self._active_id

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(
        self, message_id: str, full_text: str, question: str | None = None
    ) -> asyncio.Task[None]:
        """Begin revealing *full_text* into *message_id*.

        Any reveal already running is superseded: its ticks stop and it is
        never finalized.  Must be called from a running event loop.
        """
        message = self._store.get(message_id)
        if message.state.is_terminal:
            raise ValueError(f"Message {message_id!r} is already {message.state.value}")

        self.cancel_active()
        if question is None:
            question = message.question

        self._store.replace(
            message_id,
            text=full_text,
            revealed_length=0,
            state=MessageState.REVEALING,
            question=question,
        )
        self._active_id = message_id
        self._task = asyncio.get_running_loop().create_task(
            self._run(message_id, full_text), name=f"reveal-{message_id}"
        )
        logger.debug(
            "[Microprompts Stream] Revealing %s (%d chars, step %d).",
            message_id,
            len(full_text),
            self._step,
        )
        return self._task

    def stop(self, message_id: str | None = None) -> bool:
        """Stop a reveal and finalize it with suggestions from the revealed prefix.

        Defaults to the active message.  Returns ``False`` when there is
        nothing revealing to stop.
        """
        target = message_id if message_id is not None else self._active_id
        if target is None:
            return False
        try:
            message = self._store.get(target)
        except KeyError:
            return False
        if message.state is not MessageState.REVEALING:
            return False

        if target == self._active_id:
            self._release()
        self._finalize(target, MessageState.STOPPED, message.revealed_text)
        logger.debug(
            "[Microprompts Stream] Stopped %s at %d/%d chars.",
            target,
            message.revealed_length,
            len(message.text or ""),
        )
        return True

    def cancel_active(self) -> str | None:
        """Abandon the active reveal without finalizing it.

        The message is marked ``SUPERSEDED`` and never receives suggestions.
        Returns its id, or ``None`` when nothing was revealing.
        """
        message_id = self._active_id
        if message_id is None:
            return None
        self._release()
        try:
            message = self._store.get(message_id)
        except KeyError:
            return message_id
        if message.state is MessageState.REVEALING:
            self._store.replace(message_id, state=MessageState.SUPERSEDED)
            logger.debug("[Microprompts Stream] Superseded %s.", message_id)
        return message_id

    async def wait(self) -> None:
        """Wait until the active reveal finishes, is stopped or is superseded."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(self, message_id: str, full_text: str) -> None:
        async for prefix in reveal_prefixes(
            full_text, step=self._step, interval=self._interval, sleep=self._sleep
        ):
            if self._active_id != message_id:
                return
            self._store.replace(message_id, revealed_length=len(prefix))

        if self._active_id != message_id:
            return
        self._active_id = None
        self._task = None
        self._finalize(message_id, MessageState.COMPLETED, full_text)

    def _release(self) -> None:
        """Drop the active handle and cancel its task synchronously."""
        task = self._task
        self._task = None
        self._active_id = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _finalize(self, message_id: str, state: MessageState, context_text: str) -> None:
        message = self._store.get(message_id)
        if message.state is not MessageState.REVEALING:
            return
        suggestions = tuple(self._select(message.question, context_text))
        self._store.replace(message_id, state=state, suggestions=suggestions)
