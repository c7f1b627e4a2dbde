"""Test fixtures for Advisor Orchestrator."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from advisor_orchestrator.core.models import AdvisorProfile, GenerationResult, TokenUsage
from advisor_orchestrator.personas.library import PersonaLibrary
from advisor_orchestrator.providers.base import LLMProvider, ProviderDescriptor, ResolvedCall
from advisor_orchestrator.providers.registry import ProviderRegistry

# Passes the default credential rule (no prefix, longer than 10 characters)
VALID_KEY = "test-credential-0001"

# Script item that makes a call hang until cancelled or timed out
STALL = object()


class ScriptedProvider(LLMProvider):
    """
    Provider that replays a script, one item per call.

    Items are strings (returned as content), exceptions (raised) or STALL.
    The last item repeats once the script runs out.
    """

    def __init__(self, name: str, script: list[Any] | None = None, delay: float = 0.0) -> None:
        super().__init__(name)
        self.script = list(script or ["ok"])
        self.delay = delay
        self.calls: list[ResolvedCall] = []
        self.active = 0
        self.max_active = 0
        self.cancelled = 0

    async def generate(self, call: ResolvedCall) -> GenerationResult:
        index = min(len(self.calls), len(self.script) - 1)
        self.calls.append(call)
        item = self.script[index]

        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if item is STALL:
                await asyncio.sleep(60)
            elif self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.active -= 1

        if isinstance(item, BaseException):
            raise item
        return GenerationResult(
            content=item,
            provider=self.name,
            model=call.model or "test-model",
            usage=TokenUsage(prompt_tokens=10, completion_tokens=20),
        )

    @property
    def call_count(self) -> int:
        return len(self.calls)


class RecordingSleep:
    """Awaitable sleep replacement that records delays and returns at once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class ManualClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_registry(*providers: LLMProvider, credential: str = VALID_KEY, timeout: float = 5.0) -> ProviderRegistry:
    """Registry with each provider registered under its own name, in order."""
    registry = ProviderRegistry()
    for provider in providers:
        registry.register(
            ProviderDescriptor(name=provider.name, credential=credential, timeout=timeout),
            provider,
        )
    return registry


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture(scope="session")
def persona_library() -> PersonaLibrary:
    """The bundled persona table."""
    return PersonaLibrary.default()


@pytest.fixture
def naturopath() -> AdvisorProfile:
    return AdvisorProfile(
        id="adv-naturopath",
        name="Dr. James Wilson",
        role="Naturopathic Medicine",
        expertise="Integrative nutrition",
    )


@pytest.fixture
def advisors() -> list[AdvisorProfile]:
    """Five advisors with no persona, so each gets a distinct role-labeled prompt."""
    return [
        AdvisorProfile(id=f"adv-{i}", name=f"Advisor {i}", role="Astronaut")
        for i in range(1, 6)
    ]
