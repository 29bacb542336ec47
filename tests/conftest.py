"""
Shared fixtures and helpers for the microprompts test suite.

Reveal ticks are driven either by ``instant_sleep`` (every tick resolves on
the next loop iteration) or by :class:`ManualClock`, which holds each tick
until the test calls :meth:`ManualClock.tick`.  Nothing here sleeps for real.
"""

import asyncio
import random
from collections import deque
from unittest.mock import AsyncMock

import pytest

from microprompts.engine import SuggestionEngine
from microprompts.exceptions import TransportFailure
from microprompts.protocols import StaticAnswerService

SMALL_CATALOG = (
    "Python programming",
    "MATLAB proficiency",
    "Stellar observations",
    "CV summary",
    "BHU UET rank",
    "Critical thinking",
)


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks run up to their next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class CountingSleep:
    """Tick delay that never waits, but records every call."""

    def __init__(self):
        self.calls = 0
        self.delays = []

    async def __call__(self, delay):
        self.calls += 1
        self.delays.append(delay)
        await asyncio.sleep(0)


class ManualClock:
    """Tick delay that blocks until the test releases it."""

    def __init__(self):
        self.calls = 0
        self._waiters = deque()

    async def sleep(self, delay):
        self.calls += 1
        future = asyncio.get_running_loop().create_future()
        self._waiters.append(future)
        await future

    @property
    def pending(self):
        return sum(1 for future in self._waiters if not future.done())

    async def tick(self, count=1):
        for _ in range(count):
            for _ in range(50):
                while self._waiters and self._waiters[0].done():
                    self._waiters.popleft()
                if self._waiters:
                    break
                await asyncio.sleep(0)
            else:
                raise AssertionError("no reveal tick is waiting")
            self._waiters.popleft().set_result(None)
            await settle()


class GatedAnswerService:
    """Answer service that holds every call until ``release`` is set."""

    def __init__(self, answer="Gated answer."):
        self.answer = answer
        self.release = asyncio.Event()
        self.calls = []

    async def ask(self, question, source_tag, auth_token):
        self.calls.append(question)
        await self.release.wait()
        return {"answer": self.answer}


def make_failing_service(message="connection refused"):
    service = AsyncMock()
    service.ask.side_effect = TransportFailure(message)
    return service


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def instant_sleep():
    return CountingSleep()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def static_service():
    return StaticAnswerService(
        {
            "Python programming": "Rajit writes Python for scientific computing and data analysis.",
            "hello": "Hi there.",
        },
        default="Rajit worked on optical polarization at ISRO.",
    )


@pytest.fixture
def make_engine(rng, instant_sleep, static_service):
    """Factory for engines wired to an in-memory answer service."""

    def factory(**overrides):
        options = {
            "answer_service": static_service,
            "rng": rng,
            "sleep": instant_sleep,
            "interval": 0.0,
        }
        options.update(overrides)
        return SuggestionEngine(**options)

    return factory
