"""Concurrent fan-out of one question to many advisors.

Every advisor gets exactly one response, in input order. A live attempt
that exhausts its providers, times out or raises is converted into a
static fallback for that advisor only; other advisors are unaffected.
"""

from __future__ import annotations

import asyncio
import logging

from advisor_orchestrator.analysis.question_classifier import QuestionClassifier, QuestionInsight
from advisor_orchestrator.core.errors import ConfigurationError, ErrorKind
from advisor_orchestrator.core.failover import FailoverOrchestrator
from advisor_orchestrator.core.models import (
    LIVE_CONFIDENCE,
    AdvisorProfile,
    AdvisorResponse,
    ErrorInfo,
    GenerationRequest,
    GenerationResult,
    ResponseKind,
)
from advisor_orchestrator.metrics.observability import (
    Component,
    EventSink,
    GenerationEvent,
    LoggingEventSink,
    Timer,
)
from advisor_orchestrator.personas.library import PersonaLibrary, select_frameworks
from advisor_orchestrator.personas.prompts import build_persona_prompt
from advisor_orchestrator.responses.static_generator import StaticResponseGenerator
from advisor_orchestrator.utils import truncate_with_marker

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 10


class ConcurrentAdvisorDispatcher:
    """
    Dispatch a question to advisors concurrently.

    Concurrency is bounded by a semaphore sized to the advisor count, capped
    at ``max_concurrency``. Cancelling ``dispatch`` cancels every in-flight
    advisor generation.
    """

    def __init__(
        self,
        orchestrator: FailoverOrchestrator,
        static_generator: StaticResponseGenerator,
        personas: PersonaLibrary,
        classifier: QuestionClassifier | None = None,
        event_sink: EventSink | None = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        advisor_timeout: float | None = None,
        skip_live_when_offline: bool = True,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            orchestrator: Live generation across providers.
            static_generator: Fallback response builder.
            personas: Persona lookup for live prompts.
            classifier: Question classifier.
            event_sink: Receiver for generation events.
            max_concurrency: Upper bound on concurrent advisor generations.
            advisor_timeout: Overall time limit per advisor, None for no limit.
            skip_live_when_offline: Go straight to fallback when no
                provider is usable.
        """
        self.orchestrator = orchestrator
        self.static_generator = static_generator
        self.personas = personas
        self.classifier = classifier or QuestionClassifier()
        self.event_sink = event_sink or LoggingEventSink()
        self.max_concurrency = max(1, max_concurrency)
        self.advisor_timeout = advisor_timeout
        self.skip_live_when_offline = skip_live_when_offline

    async def dispatch(
        self,
        question: str,
        advisors: list[AdvisorProfile],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        provider_hint: str | None = None,
        timeout: float | None = None,
    ) -> list[AdvisorResponse]:
        """
        Produce one response per advisor.

        Args:
            question: The user's question.
            advisors: Advisors to consult, in display order.
            model: Model override for live calls.
            temperature: Temperature override for live calls.
            max_tokens: Token limit override for live calls.
            provider_hint: Provider to try first.
            timeout: Per-attempt timeout override.

        Returns:
            Responses in the same order as ``advisors``.

        Raises:
            ConfigurationError: If ``provider_hint`` is not registered.
        """
        if not advisors:
            return []

        registry = self.orchestrator.registry
        if provider_hint is not None and provider_hint not in registry:
            raise ConfigurationError(
                f"Provider '{provider_hint}' is not registered. Registered: {registry.names()}"
            )

        insight = self.classifier.classify(question)
        offline = self.skip_live_when_offline and not registry.any_available()
        limit = min(len(advisors), self.max_concurrency)
        semaphore = asyncio.Semaphore(limit)

        logger.info(
            "Dispatching question to %d advisors (concurrency=%d, offline=%s): %s",
            len(advisors), limit, offline, truncate_with_marker(question, 80),
        )

        overrides = dict(
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            provider_hint=provider_hint,
            timeout=timeout,
        )

        async def advise(advisor: AdvisorProfile) -> AdvisorResponse:
            async with semaphore:
                if offline:
                    return self._fallback(advisor, question, insight, _offline_error())
                return await self._advise_with_timeout(advisor, question, insight, overrides)

        tasks = [advise(advisor) for advisor in advisors]

        # Parent cancellation cancels every child; exceptions come back in place
        results = await asyncio.gather(*tasks, return_exceptions=True)

        responses: list[AdvisorResponse] = []
        for advisor, result in zip(advisors, results):
            if isinstance(result, AdvisorResponse):
                responses.append(result)
                continue
            if isinstance(result, ConfigurationError) or not isinstance(result, Exception):
                raise result
            logger.warning(
                "Advisor %s raised during live generation: %s",
                advisor.id, result, exc_info=result,
            )
            responses.append(self._fallback(
                advisor, question, insight,
                ErrorInfo(
                    kind=ErrorKind.INTERNAL_ERROR.value,
                    message=str(result) or result.__class__.__name__,
                    provider=None,
                    retryable=False,
                ),
            ))

        live = sum(1 for r in responses if r.is_live)
        logger.info(
            "Dispatch complete: %d live, %d fallback", live, len(responses) - live
        )
        return responses

    async def _advise_with_timeout(
        self,
        advisor: AdvisorProfile,
        question: str,
        insight: QuestionInsight,
        overrides: dict,
    ) -> AdvisorResponse:
        if self.advisor_timeout is None:
            return await self._advise(advisor, question, insight, overrides)

        try:
            return await asyncio.wait_for(
                self._advise(advisor, question, insight, overrides),
                timeout=self.advisor_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Advisor %s timed out after %.1fs (per-advisor limit)",
                advisor.id, self.advisor_timeout,
            )
            return self._fallback(advisor, question, insight, ErrorInfo(
                kind=ErrorKind.TIMEOUT.value,
                message=f"Advisor timeout after {self.advisor_timeout}s",
                provider=None,
                retryable=True,
            ))

    async def _advise(
        self,
        advisor: AdvisorProfile,
        question: str,
        insight: QuestionInsight,
        overrides: dict,
    ) -> AdvisorResponse:
        """Live attempt for one advisor, falling back on exhaustion."""
        with Timer() as timer:
            match = self.personas.resolve(advisor)
            prompt = build_persona_prompt(advisor, question, insight, match)
            outcome = await self.orchestrator.generate(GenerationRequest(prompt=prompt, **overrides))

        if not isinstance(outcome, GenerationResult):
            return self._fallback(
                advisor, question, insight, ErrorInfo.from_outcome(outcome.last_outcome)
            )

        response = AdvisorResponse(
            advisor_id=advisor.id,
            advisor_name=advisor.name,
            content=outcome.content,
            kind=ResponseKind.LIVE,
            confidence=LIVE_CONFIDENCE,
            provider=outcome.provider,
            frameworks=tuple(select_frameworks(insight, match)),
            insight=insight,
            processing_seconds=timer.elapsed,
            metadata={
                "model": outcome.model,
                "persona_id": match.persona.id if match else None,
                "total_tokens": outcome.usage.total_tokens if outcome.usage else None,
            },
        )
        self._emit(response)
        return response

    def _fallback(
        self,
        advisor: AdvisorProfile,
        question: str,
        insight: QuestionInsight,
        error_info: ErrorInfo,
    ) -> AdvisorResponse:
        response = self.static_generator.generate(advisor, question, insight, error_info)
        self._emit(response)
        return response

    def _emit(self, response: AdvisorResponse) -> None:
        self.event_sink.emit(GenerationEvent(
            component=Component.DISPATCHER,
            outcome=response.kind.value,
            latency_seconds=response.processing_seconds,
            provider=response.provider,
            labels={
                "advisor": response.advisor_id,
                "error_kind": response.error_info.kind if response.error_info else "",
            },
        ))


def _offline_error() -> ErrorInfo:
    return ErrorInfo(
        kind=ErrorKind.PROVIDER_UNAVAILABLE.value,
        message="No usable provider is registered",
        provider=None,
        retryable=False,
    )
