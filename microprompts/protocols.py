"""
Pluggable answer-service protocols.

The engine only needs something that turns a question into ``{"answer": str}``.
:class:`HTTPAnswerService` talks to a remote ``/ask`` endpoint over httpx;
:class:`StaticAnswerService` answers from memory and is handy offline and in
tests.

Usage:
    from microprompts.protocols import HTTPAnswerService, set_backend

    set_backend(HTTPAnswerService("https://answers.example.org"))
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

import httpx

from .exceptions import raise_transport_failure

logger = logging.getLogger("microprompts")

__all__ = [
    "DEFAULT_API_BASE",
    "AnswerServiceProtocol",
    "HTTPAnswerService",
    "StaticAnswerService",
    "get_backend",
    "set_backend",
]

DEFAULT_API_BASE = "http://127.0.0.1:8000"
DEFAULT_ASK_PATH = "/ask"


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class AnswerServiceProtocol(Protocol):
    """Structural interface for the service that answers a question."""

    async def ask(self, question: str, source_tag: str, auth_token: str) -> Mapping[str, Any]:
        """Return a payload carrying the answer under the ``"answer"`` key.

        Implementations raise :class:`~microprompts.exceptions.TransportFailure`
        when the call cannot complete.
        """
        ...


# ---------------------------------------------------------------------------
# Concrete services
# ---------------------------------------------------------------------------


class HTTPAnswerService:
    """POSTs ``{question, source, token}`` as JSON to ``<base_url>/ask``.

    The status code is not checked: any body that parses as JSON is the
    payload.  Network errors and unparseable bodies raise
    :class:`~microprompts.exceptions.TransportFailure`.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE,
        *,
        path: str = DEFAULT_ASK_PATH,
        timeout: float = 30.0,
        connect_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = base_url.rstrip("/") + "/" + path.lstrip("/")
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self._transport = transport

    def __repr__(self) -> str:
        return f"HTTPAnswerService(url={self.url!r})"

    async def ask(self, question: str, source_tag: str, auth_token: str) -> Mapping[str, Any]:
        payload = {"question": question, "source": source_tag, "token": auth_token}
        timeout = httpx.Timeout(self.timeout, connect=self.connect_timeout)

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=timeout) as client:
                resp = await client.post(self.url, json=payload)
                data = resp.json()
        except httpx.HTTPError as exc:
            raise_transport_failure("HTTPAnswerService", exc=exc)
        except ValueError as exc:
            raise_transport_failure("HTTPAnswerService", reason="invalid JSON response", exc=exc)

        if not isinstance(data, Mapping):
            logger.warning(
                "[Microprompts Answer] %s returned %s instead of an object.",
                self.url,
                type(data).__name__,
            )
            return {}
        return data


class StaticAnswerService:
    """Answers from a fixed mapping; unknown questions get *default*."""

    def __init__(self, answers: Mapping[str, str] | None = None, default: str | None = None):
        self.answers = dict(answers or {})
        self.default = default
        self.calls: list[tuple[str, str, str]] = []

    async def ask(self, question: str, source_tag: str, auth_token: str) -> Mapping[str, Any]:
        self.calls.append((question, source_tag, auth_token))
        answer = self.answers.get(question, self.default)
        return {} if answer is None else {"answer": answer}


# ---------------------------------------------------------------------------
# Module-level backend registry
# ---------------------------------------------------------------------------

_backend: Any = None


def set_backend(backend: Any) -> None:
    """Replace the process-wide default answer service."""
    global _backend
    if backend is not None and not isinstance(backend, AnswerServiceProtocol):
        raise TypeError(
            f"Answer service must provide an async ask(); got {type(backend).__name__}"
        )
    _backend = backend
    logger.info("[Microprompts] Answer service set to %s", type(backend).__name__)


def get_backend() -> Any:
    """Return the default answer service, creating an HTTP one on first use."""
    global _backend
    if _backend is None:
        _backend = HTTPAnswerService()
    return _backend
