"""Tests for concurrent advisor dispatch."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from advisor_orchestrator.core.errors import USER_MESSAGES, ConfigurationError, ErrorKind, ProviderError
from advisor_orchestrator.core.failover import FailoverOrchestrator
from advisor_orchestrator.core.models import LIVE_CONFIDENCE, LIVE_CONFIDENCE_FLOOR, ResponseKind
from advisor_orchestrator.core.retry_utils import RetryPolicy
from advisor_orchestrator.dispatch.dispatcher import ConcurrentAdvisorDispatcher
from advisor_orchestrator.metrics.observability import MetricsCollector
from advisor_orchestrator.providers import CallableProvider
from advisor_orchestrator.responses.static_generator import StaticResponseGenerator
from advisor_orchestrator.tests.conftest import STALL, RecordingSleep, ScriptedProvider, make_registry

QUESTION = "How should we plan the launch?"


def _dispatcher(registry, personas, **kwargs) -> ConcurrentAdvisorDispatcher:
    event_sink = kwargs.pop("event_sink", None)
    orchestrator = FailoverOrchestrator(
        registry=registry,
        retry_policy=RetryPolicy(max_retries=1),
        event_sink=event_sink,
        sleep=RecordingSleep(),
    )
    return ConcurrentAdvisorDispatcher(
        orchestrator=orchestrator,
        static_generator=StaticResponseGenerator(personas, event_sink=event_sink),
        personas=personas,
        event_sink=event_sink,
        **kwargs,
    )


class TestDispatch:
    """Tests for ConcurrentAdvisorDispatcher.dispatch."""

    @pytest.mark.asyncio
    async def test_empty_advisor_list(self, persona_library):
        p1 = ScriptedProvider("p1")
        dispatcher = _dispatcher(make_registry(p1), persona_library)

        assert await dispatcher.dispatch(QUESTION, []) == []
        assert p1.call_count == 0

    @pytest.mark.asyncio
    async def test_all_live_in_input_order(self, persona_library, advisors):
        p1 = ScriptedProvider("p1", ["live answer"])
        dispatcher = _dispatcher(make_registry(p1), persona_library)

        responses = await dispatcher.dispatch(QUESTION, advisors)

        assert [r.advisor_id for r in responses] == [a.id for a in advisors]
        assert all(r.kind == ResponseKind.LIVE for r in responses)
        assert all(r.confidence == LIVE_CONFIDENCE for r in responses)
        assert all(r.provider == "p1" for r in responses)
        assert p1.call_count == len(advisors)

    @pytest.mark.asyncio
    async def test_order_kept_when_completion_order_differs(self, persona_library, advisors):
        """Earlier advisors finishing last does not reorder the results."""

        async def slow_for_early_advisors(call):
            for index in range(1, 6):
                if f"Advisor {index}," in call.prompt:
                    await asyncio.sleep(0.01 * (6 - index))
                    return f"answer {index}"
            return "answer"

        registry = make_registry(CallableProvider("p1", slow_for_early_advisors))
        dispatcher = _dispatcher(registry, persona_library)

        responses = await dispatcher.dispatch(QUESTION, advisors)

        assert [r.content for r in responses] == [f"answer {i}" for i in range(1, 6)]

    @pytest.mark.asyncio
    async def test_one_failing_advisor_falls_back_alone(self, persona_library, advisors):
        """Advisor 3 exhausts its providers; the other four stay live."""

        def fail_for_third(call):
            if "Advisor 3," in call.prompt:
                raise ProviderError("Unauthorized", status_code=401)
            return "live answer"

        registry = make_registry(CallableProvider("p1", fail_for_third))
        dispatcher = _dispatcher(registry, persona_library)

        responses = await dispatcher.dispatch(QUESTION, advisors)

        assert len(responses) == 5
        kinds = [r.kind for r in responses]
        assert kinds == [
            ResponseKind.LIVE, ResponseKind.LIVE, ResponseKind.FALLBACK,
            ResponseKind.LIVE, ResponseKind.LIVE,
        ]
        fallback = responses[2]
        assert fallback.advisor_id == "adv-3"
        assert fallback.error_info.kind == "authentication_error"
        assert fallback.error_info.provider == "p1"
        assert fallback.confidence < LIVE_CONFIDENCE_FLOOR

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, persona_library, advisors):
        p1 = ScriptedProvider("p1", ["ok"], delay=0.02)
        dispatcher = _dispatcher(make_registry(p1), persona_library, max_concurrency=2)

        responses = await dispatcher.dispatch(QUESTION, advisors)

        assert len(responses) == 5
        assert p1.max_active == 2

    @pytest.mark.asyncio
    async def test_runs_concurrently(self, persona_library, advisors):
        p1 = ScriptedProvider("p1", ["ok"], delay=0.02)
        dispatcher = _dispatcher(make_registry(p1), persona_library)

        await dispatcher.dispatch(QUESTION, advisors)

        assert p1.max_active == len(advisors)

    @pytest.mark.asyncio
    async def test_advisor_timeout_falls_back(self, persona_library, advisors):
        p1 = ScriptedProvider("p1", [STALL])
        dispatcher = _dispatcher(make_registry(p1, timeout=30.0), persona_library, advisor_timeout=0.05)

        responses = await dispatcher.dispatch(QUESTION, advisors[:2])

        assert [r.kind for r in responses] == [ResponseKind.FALLBACK, ResponseKind.FALLBACK]
        assert all(r.error_info.kind == "timeout" for r in responses)
        assert p1.cancelled == 2

    @pytest.mark.asyncio
    async def test_offline_skips_live_generation(self, persona_library, advisors):
        p1 = ScriptedProvider("p1")
        dispatcher = _dispatcher(make_registry(p1, credential="bad"), persona_library)

        responses = await dispatcher.dispatch(QUESTION, advisors)

        assert all(r.kind == ResponseKind.FALLBACK for r in responses)
        assert all(r.error_info.kind == "provider_unavailable" for r in responses)
        assert responses[0].error_info.user_message == USER_MESSAGES[ErrorKind.PROVIDER_UNAVAILABLE]
        assert p1.call_count == 0

    @pytest.mark.asyncio
    async def test_unknown_provider_hint_raises(self, persona_library, advisors):
        p1 = ScriptedProvider("p1")
        dispatcher = _dispatcher(make_registry(p1), persona_library)

        with pytest.raises(ConfigurationError):
            await dispatcher.dispatch(QUESTION, advisors, provider_hint="nope")
        assert p1.call_count == 0

    @pytest.mark.asyncio
    async def test_overrides_reach_provider(self, persona_library, advisors):
        p1, p2 = ScriptedProvider("p1"), ScriptedProvider("p2")
        dispatcher = _dispatcher(make_registry(p1, p2), persona_library)

        await dispatcher.dispatch(
            QUESTION, advisors[:1],
            model="big-model", temperature=0.2, max_tokens=99, provider_hint="p2",
        )

        assert p1.call_count == 0
        call = p2.calls[0]
        assert (call.model, call.temperature, call.max_tokens) == ("big-model", 0.2, 99)

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_fallback(self, persona_library, advisors):
        dispatcher = _dispatcher(make_registry(ScriptedProvider("p1")), persona_library)

        with patch.object(
            dispatcher.orchestrator, "generate", AsyncMock(side_effect=RuntimeError("boom"))
        ):
            responses = await dispatcher.dispatch(QUESTION, advisors[:2])

        assert all(r.kind == ResponseKind.FALLBACK for r in responses)
        assert responses[0].error_info.kind == "internal_error"
        assert responses[0].error_info.retryable is False
        assert responses[0].error_info.message == "boom"
        assert responses[0].error_info.user_message == USER_MESSAGES[ErrorKind.INTERNAL_ERROR]
        assert "boom" not in responses[0].content

    @pytest.mark.asyncio
    async def test_configuration_error_propagates(self, persona_library, advisors):
        dispatcher = _dispatcher(make_registry(ScriptedProvider("p1")), persona_library)

        with patch.object(
            dispatcher.orchestrator, "generate",
            AsyncMock(side_effect=ConfigurationError("bad setup")),
        ):
            with pytest.raises(ConfigurationError, match="bad setup"):
                await dispatcher.dispatch(QUESTION, advisors[:2])

    @pytest.mark.asyncio
    async def test_cancellation_cancels_every_advisor(self, persona_library, advisors):
        p1 = ScriptedProvider("p1", [STALL])
        dispatcher = _dispatcher(make_registry(p1, timeout=30.0), persona_library)

        task = asyncio.create_task(dispatcher.dispatch(QUESTION, advisors))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert p1.cancelled == len(advisors)
        assert p1.active == 0


class TestDispatchDetails:
    """Response content and events."""

    @pytest.mark.asyncio
    async def test_live_response_metadata(self, persona_library, naturopath):
        p1 = ScriptedProvider("p1", ["As a naturopath..."])
        dispatcher = _dispatcher(make_registry(p1), persona_library)

        [response] = await dispatcher.dispatch(
            "Which is better for diabetic patients: rice or millet?", [naturopath]
        )

        assert response.metadata["persona_id"] == "james-wilson-wellness"
        assert response.metadata["total_tokens"] == 30
        assert response.insight.question_type == "comparative"
        assert "Functional Medicine Model" in response.frameworks
        assert "Dr. James Wilson" in p1.calls[0].prompt

    @pytest.mark.asyncio
    async def test_events(self, persona_library, advisors):
        collector = MetricsCollector()

        def fail_for_third(call):
            if "Advisor 3," in call.prompt:
                raise ProviderError("Unauthorized", status_code=401)
            return "live answer"

        registry = make_registry(CallableProvider("p1", fail_for_third))
        dispatcher = _dispatcher(registry, persona_library, event_sink=collector)

        await dispatcher.dispatch(QUESTION, advisors)

        assert collector.metrics.live_responses == 4
        assert collector.metrics.fallback_responses == 1
        assert collector.metrics.exhausted_requests == 1
        assert collector.metrics.static_paths == {"generic": 1}
