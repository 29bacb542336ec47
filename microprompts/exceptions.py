"""
Error taxonomy for the suggestion engine.

Answer-service failures are split into :class:`TransportFailure` (the call
never completed) and :class:`EmptyAnswer` (the service replied without answer
text).  Both are handled inside :meth:`SuggestionEngine.submit`; they only
escape when adapters are used directly.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, NoReturn

__all__ = [
    "EMPTY_ANSWER_TEXT",
    "TRANSPORT_FAILURE_TEXT",
    "CatalogError",
    "EmptyAnswer",
    "MicropromptsError",
    "TransportFailure",
    "extract_answer",
    "raise_transport_failure",
]

TRANSPORT_FAILURE_TEXT = "Unable to reach the server."
EMPTY_ANSWER_TEXT = "No answer available."


class MicropromptsError(RuntimeError):
    """Base class for errors raised by microprompts."""


class TransportFailure(MicropromptsError):
    """Raised when the answer service call did not complete."""


class EmptyAnswer(MicropromptsError):
    """Raised when the answer service responded but supplied no answer text."""


class CatalogError(MicropromptsError, ValueError):
    """Raised when a prompt catalog is empty or cannot be read."""


def raise_transport_failure(
    context: str,
    *,
    reason: str | None = None,
    exc: BaseException | None = None,
) -> NoReturn:
    """Raise :class:`TransportFailure` with a consistent message."""
    computed_reason = reason
    if computed_reason is None and exc is not None:
        computed_reason = f"{type(exc).__name__}: {exc}"

    label = context.strip() if context.strip() else "microprompts"
    message = f"[{label}] Answer service unreachable."
    if computed_reason:
        message += f" Reason: {computed_reason}"

    error = TransportFailure(message)
    if exc is not None:
        raise error from exc
    raise error


def extract_answer(payload: Any, *, strict: bool = False) -> str:
    """Pull the answer text out of a service payload.

    A missing, ``None`` or empty ``answer`` yields :data:`EMPTY_ANSWER_TEXT`,
    or raises :class:`EmptyAnswer` when *strict* is set.
    """
    answer = payload.get("answer") if isinstance(payload, Mapping) else None
    if answer:
        return str(answer)
    if strict:
        raise EmptyAnswer("Answer service returned no answer text.")
    return EMPTY_ANSWER_TEXT
