"""Base class and descriptors for text-generation providers."""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable

from advisor_orchestrator.core.errors import EmptyResponseError, ProviderError
from advisor_orchestrator.core.models import (
    DEFAULT_ATTEMPT_TIMEOUT,
    GenerationRequest,
    GenerationResult,
)


@dataclass(frozen=True)
class ProviderDescriptor:
    """Registered configuration for one provider.

    ``available`` is computed at registration from the credential check and
    the provider's own capability flag.
    """

    name: str
    model: str = ""
    temperature: float = 0.7
    max_tokens: int = 800
    timeout: float = DEFAULT_ATTEMPT_TIMEOUT
    credential: str = ""
    available: bool = True

    def with_credential(self, credential: str, available: bool) -> "ProviderDescriptor":
        return replace(self, credential=credential, available=available)

    def __repr__(self) -> str:
        # Never print credential material
        return (
            f"ProviderDescriptor(name={self.name!r}, model={self.model!r}, "
            f"available={self.available})"
        )


@dataclass(frozen=True)
class ResolvedCall:
    """Effective parameters for a single provider call."""

    prompt: str
    model: str
    temperature: float
    max_tokens: int
    timeout: float
    credential: str

    @classmethod
    def build(cls, request: GenerationRequest, descriptor: ProviderDescriptor) -> "ResolvedCall":
        return cls(
            prompt=request.prompt,
            model=request.model or descriptor.model,
            temperature=(
                request.temperature if request.temperature is not None else descriptor.temperature
            ),
            max_tokens=(
                request.max_tokens if request.max_tokens is not None else descriptor.max_tokens
            ),
            timeout=request.timeout or descriptor.timeout,
            credential=descriptor.credential,
        )


class LLMProvider(ABC):
    """
    Abstract base class for providers.

    A provider turns a prompt into text. It signals failure by raising;
    ``ProviderError`` with a ``status_code`` gives the classifier the most
    to work with. Transport is entirely up to the implementation.
    """

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    async def generate(self, call: ResolvedCall) -> GenerationResult:
        """
        Generate text for one call.

        Args:
            call: Prompt and effective parameters, including the credential.

        Returns:
            GenerationResult with non-empty content.
        """

    @property
    def is_available(self) -> bool:
        """Whether this provider can be used at all in this process."""
        return True

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


GenerateFn = Callable[[ResolvedCall], Awaitable[Any] | Any]


class CallableProvider(LLMProvider):
    """
    Provider backed by a plain function.

    The function receives the ``ResolvedCall`` and returns either a string or
    a ``GenerationResult``; it may be sync or async. This is how a host wires
    its own HTTP client into the orchestrator.
    """

    def __init__(self, name: str, fn: GenerateFn) -> None:
        super().__init__(name)
        self._fn = fn

    async def generate(self, call: ResolvedCall) -> GenerationResult:
        value = self._fn(call)
        if inspect.isawaitable(value):
            value = await value

        if isinstance(value, GenerationResult):
            return value
        if isinstance(value, str):
            return GenerationResult(content=value, provider=self.name, model=call.model)
        if value is None:
            raise EmptyResponseError(f"{self.name} returned no content")
        raise ProviderError(
            f"Malformed response from {self.name}: {type(value).__name__}"
        )
