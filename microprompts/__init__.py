"""
microprompts public API.

A session-scoped engine that suggests follow-up prompts after each answer and
reveals answers progressively with stop support.
"""

from __future__ import annotations

from .catalog import DEFAULT_CATALOG, STARTER_PROMPTS, load_catalog
from .engine import SuggestionEngine
from .exceptions import CatalogError, EmptyAnswer, MicropromptsError, TransportFailure
from .messages import Message, MessageState, MessageStore, Role
from .pool import PromptPool
from .protocols import (
    AnswerServiceProtocol,
    HTTPAnswerService,
    StaticAnswerService,
    get_backend,
    set_backend,
)
from .selector import SuggestionSelector
from .streaming import StreamController, reveal_prefixes

__all__ = [
    "DEFAULT_CATALOG",
    "STARTER_PROMPTS",
    "AnswerServiceProtocol",
    "CatalogError",
    "EmptyAnswer",
    "HTTPAnswerService",
    "Message",
    "MessageState",
    "MessageStore",
    "MicropromptsError",
    "PromptPool",
    "Role",
    "StaticAnswerService",
    "StreamController",
    "SuggestionEngine",
    "SuggestionSelector",
    "TransportFailure",
    "get_backend",
    "load_catalog",
    "reveal_prefixes",
    "set_backend",
]
