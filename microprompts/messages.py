"""
Conversation messages and the append-only store that owns them.
"""

from __future__ import annotations

import dataclasses
import enum
import itertools
import logging
import uuid
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger("microprompts")

__all__ = [
    "Message",
    "MessageState",
    "MessageStore",
    "Role",
    "new_message_id",
    "utc_now_iso",
]


class Role(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"


class MessageState(str, enum.Enum):
    """Lifecycle of a message.

    ``COMPLETED`` and ``STOPPED`` are the finalized states and carry
    suggestions.  ``SUPERSEDED`` marks a reveal abandoned because a newer one
    started; it is terminal but never finalized.
    """

    PENDING = "pending"
    REVEALING = "revealing"
    COMPLETED = "completed"
    STOPPED = "stopped"
    SUPERSEDED = "superseded"

    @property
    def is_terminal(self) -> bool:
        return self in (MessageState.COMPLETED, MessageState.STOPPED, MessageState.SUPERSEDED)


_sequence = itertools.count(1)


def new_message_id(role: Role) -> str:
    """Return a unique, roughly time-ordered message id."""
    return f"{role.value}_{next(_sequence)}_{uuid.uuid4().hex[:6]}"


def utc_now_iso() -> str:
    """Return a stable UTC timestamp string."""
    return datetime.now(UTC).replace(microsecond=0).isoformat()


@dataclass(frozen=True)
class Message:
    """One entry of the conversation log.

    ``text`` is ``None`` until an assistant answer resolves.  ``suggestions``
    stays ``None`` until the reveal finishes or is stopped, then holds the
    attached prompts (possibly empty).
    """

    id: str
    role: Role
    text: str | None = None
    revealed_length: int = 0
    state: MessageState = MessageState.PENDING
    suggestions: tuple[str, ...] | None = None
    question: str = ""
    created_at: str = dataclasses.field(default_factory=utc_now_iso)

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(
            id=new_message_id(Role.USER),
            role=Role.USER,
            text=text,
            revealed_length=len(text),
            state=MessageState.COMPLETED,
        )

    @classmethod
    def placeholder(cls, question: str) -> Message:
        return cls(id=new_message_id(Role.ASSISTANT), role=Role.ASSISTANT, question=question)

    @property
    def revealed_text(self) -> str:
        """The prefix of ``text`` disclosed so far."""
        return (self.text or "")[: self.revealed_length]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "text": self.text,
            "revealed_text": self.revealed_text,
            "revealed_length": self.revealed_length,
            "state": self.state.value,
            "suggestions": list(self.suggestions) if self.suggestions is not None else None,
            "created_at": self.created_at,
        }


Listener = Callable[[Message], Any]


class MessageStore:
    """Ordered log of messages for one session.

    Messages are frozen; :meth:`replace` swaps in an updated copy.  At most
    one message may be ``REVEALING`` at a time.
    """

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._index: dict[str, int] = {}
        self._listeners: list[Listener] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def append(self, message: Message) -> Message:
        if message.id in self._index:
            raise ValueError(f"Duplicate message id {message.id!r}")
        if message.state is MessageState.REVEALING:
            self._check_single_revealing(message.id)
        self._index[message.id] = len(self._messages)
        self._messages.append(message)
        self._notify(message)
        return message

    def get(self, message_id: str) -> Message:
        return self._messages[self._index[message_id]]

    def replace(self, message_id: str, **patch: Any) -> Message:
        """Merge *patch* into the message with *message_id* and return the new copy."""
        if "id" in patch:
            raise ValueError("Message ids are immutable; 'id' cannot be patched")
        position = self._index[message_id]
        updated = dataclasses.replace(self._messages[position], **patch)
        if updated.state is MessageState.REVEALING:
            self._check_single_revealing(message_id)
        self._messages[position] = updated
        self._notify(updated)
        return updated

    def find_last(self, predicate: Callable[[Message], bool]) -> Message | None:
        """Return the most recent message satisfying *predicate*."""
        for message in reversed(self._messages):
            if predicate(message):
                return message
        return None

    def clear(self) -> None:
        self._messages.clear()
        self._index.clear()

    def snapshot(self) -> list[dict[str, Any]]:
        """Plain-dict view of every message, in order, for renderers."""
        return [message.to_dict() for message in self._messages]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* with each appended or replaced message.

        Returns a callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _check_single_revealing(self, message_id: str) -> None:
        for other in self._messages:
            if other.id != message_id and other.state is MessageState.REVEALING:
                raise ValueError(
                    f"Message {other.id!r} is already revealing; cannot reveal {message_id!r}"
                )

    def _notify(self, message: Message) -> None:
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception as exc:
                logger.warning(
                    "[Microprompts Store] Listener %r failed for %s: %s",
                    listener,
                    message.id,
                    exc,
                )
