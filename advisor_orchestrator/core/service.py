"""Consultation service: wiring plus the administrative surface.

Everything is constructed explicitly from ``Settings``; there is no
process-wide instance. Hosts build one service at start-up and pass it
where it is needed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Mapping

from advisor_orchestrator.analysis.question_classifier import QuestionClassifier, QuestionInsight
from advisor_orchestrator.config.settings import Settings
from advisor_orchestrator.core.errors import ErrorClassifier
from advisor_orchestrator.core.failover import FailoverOrchestrator
from advisor_orchestrator.core.models import AdvisorProfile, AdvisorResponse
from advisor_orchestrator.core.response_cache import ResponseCache
from advisor_orchestrator.core.retry_utils import RetryPolicy
from advisor_orchestrator.dispatch.dispatcher import ConcurrentAdvisorDispatcher
from advisor_orchestrator.metrics.observability import EventSink, LoggingEventSink, Timer
from advisor_orchestrator.personas.library import PersonaLibrary
from advisor_orchestrator.personas.prompts import build_persona_prompt
from advisor_orchestrator.providers.base import LLMProvider, ProviderDescriptor
from advisor_orchestrator.providers.registry import ProviderRegistry
from advisor_orchestrator.responses.static_generator import StaticPath, StaticResponseGenerator

logger = logging.getLogger(__name__)

AdvisorInput = AdvisorProfile | Mapping[str, Any]


@dataclass
class ConsultationResult:
    """Responses for one question across all requested advisors."""

    question: str
    responses: list[AdvisorResponse]
    insight: QuestionInsight | None = None
    duration_seconds: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def live_count(self) -> int:
        return sum(1 for r in self.responses if r.is_live)

    @property
    def fallback_count(self) -> int:
        return len(self.responses) - self.live_count

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "question": self.question,
            "insight": self.insight.to_dict() if self.insight else None,
            "live_count": self.live_count,
            "fallback_count": self.fallback_count,
            "duration_seconds": self.duration_seconds,
            "timestamp": self.timestamp.isoformat(),
            "responses": [r.to_dict() for r in self.responses],
        }


class ConsultationService:
    """
    Facade over the generation pipeline.

    Holds the registry, cache, orchestrator and dispatcher built from one
    ``Settings`` object and exposes the runtime admin operations.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        cache: ResponseCache,
        orchestrator: FailoverOrchestrator,
        dispatcher: ConcurrentAdvisorDispatcher,
        classifier: QuestionClassifier,
        personas: PersonaLibrary,
        settings: Settings | None = None,
    ) -> None:
        self.registry = registry
        self.cache = cache
        self.orchestrator = orchestrator
        self.dispatcher = dispatcher
        self.classifier = classifier
        self.personas = personas
        self.settings = settings or Settings()

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        providers: Mapping[str, LLMProvider] | None = None,
        event_sink: EventSink | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> "ConsultationService":
        """
        Build a service from settings.

        Providers configured in settings but with no implementation are
        registered as unavailable. Implementations without settings are
        registered with default parameters and no credential.

        Args:
            settings: Configuration; environment defaults when None.
            providers: Implementations by provider name.
            event_sink: Receiver for generation events.
            sleep: Awaitable sleep used between retries.

        Returns:
            Wired ConsultationService.
        """
        settings = settings or Settings()
        providers = dict(providers or {})
        event_sink = event_sink or LoggingEventSink()

        registry = ProviderRegistry()
        for name, cfg in settings.providers.items():
            registry.register(
                ProviderDescriptor(
                    name=name,
                    model=cfg.model,
                    temperature=cfg.temperature,
                    max_tokens=cfg.max_tokens,
                    timeout=cfg.timeout,
                    credential=cfg.api_key,
                    available=cfg.enabled,
                ),
                providers.pop(name, None),
            )
        for name, provider in providers.items():
            registry.register(ProviderDescriptor(name=name), provider)

        if settings.default_provider in registry:
            registry.set_active(settings.default_provider)
        elif len(registry):
            logger.warning(
                "Default provider %s is not configured; using %s",
                settings.default_provider, registry.active,
            )

        cache = ResponseCache(
            ttl_seconds=settings.cache.ttl_seconds,
            sweep_threshold=settings.cache.sweep_threshold,
        )
        orchestrator = FailoverOrchestrator(
            registry=registry,
            cache=cache,
            retry_policy=RetryPolicy.from_settings(settings.retry),
            classifier=ErrorClassifier(),
            event_sink=event_sink,
            sleep=sleep,
            cache_enabled=settings.cache.enabled,
        )

        personas = (
            PersonaLibrary.from_yaml(Path(settings.persona_file))
            if settings.persona_file
            else PersonaLibrary.default()
        )
        classifier = QuestionClassifier()
        static_generator = StaticResponseGenerator(personas, classifier, event_sink)
        dispatcher = ConcurrentAdvisorDispatcher(
            orchestrator=orchestrator,
            static_generator=static_generator,
            personas=personas,
            classifier=classifier,
            event_sink=event_sink,
            max_concurrency=settings.dispatch.max_concurrency,
            advisor_timeout=settings.dispatch.advisor_timeout,
            skip_live_when_offline=settings.fallback_to_static,
        )

        return cls(
            registry=registry,
            cache=cache,
            orchestrator=orchestrator,
            dispatcher=dispatcher,
            classifier=classifier,
            personas=personas,
            settings=settings,
        )

    async def consult(
        self,
        question: str,
        advisors: Iterable[AdvisorInput],
        **overrides: Any,
    ) -> ConsultationResult:
        """
        Answer a question as each advisor.

        Args:
            question: The user's question.
            advisors: Profiles or mappings with at least an ``id``.
            **overrides: model, temperature, max_tokens, provider_hint, timeout.

        Returns:
            ConsultationResult with one response per advisor.

        Raises:
            ConfigurationError: If ``provider_hint`` is not registered.
        """
        profiles = [
            a if isinstance(a, AdvisorProfile) else AdvisorProfile.from_dict(dict(a))
            for a in advisors
        ]

        with Timer() as timer:
            responses = await self.dispatcher.dispatch(question, profiles, **overrides)

        insight = responses[0].insight if responses else self.classifier.classify(question)
        result = ConsultationResult(
            question=question,
            responses=responses,
            insight=insight,
            duration_seconds=timer.elapsed,
        )
        logger.info(
            "Consultation finished in %.2fs: %d live, %d fallback",
            result.duration_seconds, result.live_count, result.fallback_count,
        )
        return result

    def is_available(self) -> bool:
        """True when at least one registered provider is usable."""
        return self.registry.any_available()

    def provider_status(self) -> dict[str, bool]:
        """Availability of every registered provider."""
        return self.registry.status()

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_stats(self) -> dict[str, float]:
        """Response cache size, hits, misses and hit rate."""
        return self.cache.stats()

    def health_check(self) -> dict[str, Any]:
        """
        Check each part of the pipeline without calling any provider.

        The classifier, the persona prompt builder and the static generator
        are each run on a sample question. A failing part is reported as
        False and logged, never raised.

        Returns:
            Dict with ``providers`` (availability by name) and a bool per
            local component.
        """
        sample = AdvisorProfile(id="health-check", name="Health Check", role="General Advisor")
        question = "What should we consider before starting?"
        health: dict[str, Any] = {"providers": self.provider_status()}

        try:
            insight = self.classifier.classify(question)
            health["question_classifier"] = bool(insight.domain)
        except Exception as e:
            logger.warning("Question classifier health check failed: %s", e)
            insight = None
            health["question_classifier"] = False

        try:
            match = self.personas.resolve(sample)
            health["persona_prompts"] = bool(build_persona_prompt(sample, question, insight, match))
        except Exception as e:
            logger.warning("Persona prompt health check failed: %s", e)
            health["persona_prompts"] = False

        # Separate generator so the sample answer stays out of consultation metrics
        generator = StaticResponseGenerator(self.personas, self.classifier)
        response = generator.generate(sample, question, insight)
        health["static_generator"] = (
            bool(response.content)
            and response.metadata.get("static_path") != StaticPath.APOLOGY.value
        )

        health["healthy"] = all(
            health[part] for part in ("question_classifier", "persona_prompts", "static_generator")
        )
        logger.info("Health check: %s", health)
        return health

    def update_config(
        self,
        default_provider: str | None = None,
        enable_caching: bool | None = None,
    ) -> None:
        """
        Reconfigure at runtime.

        Switching the active provider clears the cache, since entries are
        keyed by the provider that was preferred when they were stored.

        Args:
            default_provider: Provider to make active.
            enable_caching: Turn the response cache on or off.

        Raises:
            ConfigurationError: If ``default_provider`` is not registered.
        """
        if default_provider is not None:
            previous = self.registry.active
            self.registry.set_active(default_provider)
            if default_provider != previous:
                self.cache.clear()
        if enable_caching is not None:
            self.orchestrator.cache_enabled = enable_caching
            if not enable_caching:
                self.cache.clear()
            logger.info("Response caching %s", "enabled" if enable_caching else "disabled")

    def rotate_credential(self, name: str, credential: str) -> bool:
        """
        Replace a provider credential and clear the cache.

        Answers cached while the provider was unusable came from another
        provider; clearing lets the next call reach this one.

        Returns:
            Whether the provider is available with the new credential.
        """
        available = self.registry.rotate_credential(name, credential).available
        self.cache.clear()
        return available
