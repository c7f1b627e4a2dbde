"""Failover orchestration of one generation request across providers.

For each request the orchestrator:
1. Checks the response cache.
2. Walks the registry's failover order (preferred provider first).
3. Retries each provider per the retry policy, classifying every failure.
4. Returns the first successful result, or ``ProvidersExhausted`` carrying
   the most recent attempt outcome.

Provider exceptions never escape ``generate``. Only ``ConfigurationError``
(an unregistered provider hint) and cancellation propagate.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from advisor_orchestrator.core.errors import (
    AttemptOutcome,
    ErrorClassifier,
    ErrorKind,
)
from advisor_orchestrator.core.models import (
    GenerationRequest,
    GenerationResult,
    ProvidersExhausted,
)
from advisor_orchestrator.core.response_cache import ResponseCache, make_cache_key
from advisor_orchestrator.core.retry_utils import RetryPolicy, build_retrying
from advisor_orchestrator.metrics.observability import (
    Component,
    EventSink,
    GenerationEvent,
    LoggingEventSink,
    Timer,
)
from advisor_orchestrator.providers.base import LLMProvider, ResolvedCall
from advisor_orchestrator.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

GenerationOutcome = GenerationResult | ProvidersExhausted


class FailoverOrchestrator:
    """
    Drive one generation request across the registered providers.

    Stateless per request; safe to share between concurrent dispatches.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        cache: ResponseCache | None = None,
        retry_policy: RetryPolicy | None = None,
        classifier: ErrorClassifier | None = None,
        event_sink: EventSink | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        cache_enabled: bool = True,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            registry: Providers and their failover order.
            cache: Response cache, or None to disable caching.
            retry_policy: Backoff policy shared by all providers.
            classifier: Failure classifier.
            event_sink: Receiver for generation events.
            sleep: Awaitable sleep used between retries.
            cache_enabled: Runtime switch for the cache.
        """
        self.registry = registry
        self.cache = cache
        self.retry_policy = retry_policy or RetryPolicy()
        self.classifier = classifier or ErrorClassifier()
        self.event_sink = event_sink or LoggingEventSink()
        self.cache_enabled = cache_enabled
        self._sleep = sleep

    async def generate(self, request: GenerationRequest) -> GenerationOutcome:
        """
        Generate text for ``request``.

        Args:
            request: Prompt and optional overrides.

        Returns:
            GenerationResult on success, otherwise ProvidersExhausted.

        Raises:
            ConfigurationError: If ``request.provider_hint`` is not registered.
        """
        order = self.registry.order(request.provider_hint)
        preferred = order[0] if order else None

        key = self._cache_key(request, preferred)
        if key is not None:
            cached = self.cache.get(key)
            self._emit(Component.CACHE, "hit" if cached is not None else "miss", provider=preferred)
            if cached is not None:
                logger.debug("Cache hit for request on %s", preferred)
                return cached

        tried: list[str] = []
        last_outcome: AttemptOutcome | None = None

        with Timer() as timer:
            for name in order:
                descriptor, provider = self.registry.get(name)
                if not descriptor.available or provider is None:
                    logger.debug("Skipping unavailable provider %s", name)
                    continue

                tried.append(name)
                call = ResolvedCall.build(request, descriptor)
                outcome = await self._attempt_provider(name, provider, call)

                if isinstance(outcome, GenerationResult):
                    if key is not None:
                        self.cache.put(key, outcome)
                    self._emit(
                        Component.FAILOVER, "success",
                        latency=timer.elapsed, provider=name,
                        labels={"providers_tried": str(len(tried))},
                    )
                    return outcome

                last_outcome = outcome
                logger.info(
                    "Provider %s failed with %s, moving to next provider",
                    name, outcome.kind.value,
                )

        if last_outcome is None:
            last_outcome = AttemptOutcome(
                kind=ErrorKind.PROVIDER_UNAVAILABLE,
                message="No usable provider is registered",
                provider=preferred or "none",
                retryable=False,
            )

        logger.warning(
            "All providers exhausted (tried %s); last failure %s from %s",
            tried or "none", last_outcome.kind.value, last_outcome.provider,
        )
        self._emit(
            Component.FAILOVER, "exhausted",
            latency=timer.elapsed, provider=last_outcome.provider,
            labels={"kind": last_outcome.kind.value},
        )
        return ProvidersExhausted(last_outcome=last_outcome, providers_tried=tuple(tried))

    async def _attempt_provider(
        self,
        name: str,
        provider: LLMProvider,
        call: ResolvedCall,
    ) -> GenerationResult | AttemptOutcome:
        """Call one provider under the retry policy."""
        retrying = build_retrying(self.retry_policy, sleep=self._sleep)
        attempts = 0

        async def _attempt() -> GenerationResult | AttemptOutcome:
            nonlocal attempts
            attempts += 1
            return await self._call_once(name, provider, call, attempts)

        return await retrying(_attempt)

    async def _call_once(
        self,
        name: str,
        provider: LLMProvider,
        call: ResolvedCall,
        attempt: int,
    ) -> GenerationResult | AttemptOutcome:
        """One provider call, bounded by the per-attempt timeout."""
        outcome: AttemptOutcome | None = None
        result: GenerationResult | None = None

        with Timer() as timer:
            try:
                result = await asyncio.wait_for(provider.generate(call), timeout=call.timeout)
            except Exception as e:
                outcome = self.classifier.classify(e, name)

        if outcome is None and not _has_content(result):
            outcome = AttemptOutcome(
                kind=ErrorKind.EMPTY_RESPONSE,
                message=f"{name} returned empty content",
                provider=name,
                retryable=False,
            )

        self._emit(
            Component.PROVIDER,
            "success" if outcome is None else outcome.kind.value,
            latency=timer.elapsed,
            provider=name,
            attempt=attempt,
        )
        return outcome if outcome is not None else result

    def _cache_key(self, request: GenerationRequest, preferred: str | None) -> str | None:
        if self.cache is None or not self.cache_enabled or preferred is None:
            return None
        descriptor, _ = self.registry.get(preferred)
        call = ResolvedCall.build(request, descriptor)
        return make_cache_key(
            prompt=call.prompt,
            provider=preferred,
            model=call.model,
            temperature=call.temperature,
            max_tokens=call.max_tokens,
        )

    def _emit(
        self,
        component: Component,
        outcome: str,
        latency: float = 0.0,
        provider: str | None = None,
        attempt: int | None = None,
        labels: dict[str, str] | None = None,
    ) -> None:
        self.event_sink.emit(GenerationEvent(
            component=component,
            outcome=outcome,
            latency_seconds=latency,
            provider=provider,
            attempt=attempt,
            labels=labels or {},
        ))


def _has_content(result: GenerationResult | None) -> bool:
    return bool(
        isinstance(result, GenerationResult)
        and isinstance(result.content, str)
        and result.content.strip()
    )
