"""Tests for metrics and observability."""

import json
import logging
import time
from pathlib import Path

import pytest

from advisor_orchestrator.metrics.observability import (
    Component,
    ConsultationMetrics,
    EventSink,
    FanOutEventSink,
    GenerationEvent,
    LoggingEventSink,
    MetricsCollector,
    Timer,
)


class TestConsultationMetrics:
    """Tests for ConsultationMetrics dataclass."""

    def test_cache_hit_ratio(self):
        """Test cache hit ratio calculation."""
        metrics = ConsultationMetrics(cache_hits=80, cache_misses=20)
        assert metrics.cache_hit_ratio == pytest.approx(0.8)

    def test_cache_hit_ratio_zero_total(self):
        """Test cache hit ratio with no cache activity."""
        assert ConsultationMetrics().cache_hit_ratio == 0.0

    def test_provider_success_rate(self):
        """Test provider success rate calculation."""
        metrics = ConsultationMetrics()
        metrics.provider_attempts["openai"] = 10
        metrics.provider_successes["openai"] = 8
        metrics.provider_attempts["anthropic"] = 5
        metrics.provider_successes["anthropic"] = 5

        assert metrics.provider_success_rate == pytest.approx(13 / 15)

    def test_fallback_rate(self):
        metrics = ConsultationMetrics(live_responses=3, fallback_responses=1)
        assert metrics.fallback_rate == pytest.approx(0.25)

    def test_mean_latency(self):
        metrics = ConsultationMetrics()
        metrics.provider_latencies["openai"].extend([1.0, 3.0])

        assert metrics.mean_latency("openai") == pytest.approx(2.0)
        assert metrics.mean_latency("missing") == 0.0

    def test_to_dict(self):
        """Test conversion to dictionary."""
        metrics = ConsultationMetrics(cache_hits=5, cache_misses=5, exhausted_requests=2)
        data = metrics.to_dict()

        assert data["cache_hits"] == 5
        assert data["cache_hit_ratio"] == 0.5
        assert data["exhausted_requests"] == 2
        assert "started_at" in data

    def test_to_summary(self):
        """Test summary generation."""
        metrics = ConsultationMetrics(live_responses=4, fallback_responses=1)
        metrics.provider_attempts["openai"] = 5
        metrics.provider_successes["openai"] = 4
        metrics.failure_kinds["rate_limited"] = 1

        summary = metrics.to_summary()

        assert "CONSULTATION METRICS SUMMARY" in summary
        assert "openai: 4/5 successful" in summary
        assert "rate_limited: 1" in summary
        assert "Fallback: 1 (20.0%)" in summary


class TestMetricsCollector:
    """Tests for MetricsCollector class."""

    def test_is_event_sink(self):
        assert isinstance(MetricsCollector(), EventSink)

    def test_applies_events(self):
        collector = MetricsCollector()
        events = [
            GenerationEvent(Component.CACHE, "miss"),
            GenerationEvent(Component.CACHE, "hit"),
            GenerationEvent(Component.PROVIDER, "rate_limited", 0.5, provider="openai", attempt=1),
            GenerationEvent(Component.PROVIDER, "success", 1.5, provider="openai", attempt=2),
            GenerationEvent(Component.FAILOVER, "exhausted", provider="openai"),
            GenerationEvent(Component.STATIC_GENERATOR, "persona"),
            GenerationEvent(Component.DISPATCHER, "live"),
            GenerationEvent(Component.DISPATCHER, "fallback"),
        ]
        for event in events:
            collector.emit(event)

        m = collector.metrics
        assert (m.cache_hits, m.cache_misses) == (1, 1)
        assert m.provider_attempts["openai"] == 2
        assert m.provider_successes["openai"] == 1
        assert m.failure_kinds == {"rate_limited": 1}
        assert m.mean_latency("openai") == pytest.approx(1.0)
        assert m.exhausted_requests == 1
        assert m.static_paths == {"persona": 1}
        assert (m.live_responses, m.fallback_responses) == (1, 1)
        assert len(collector.events) == len(events)

    def test_save_metrics(self, tmp_path: Path):
        """Test saving metrics and events to files."""
        collector = MetricsCollector(output_dir=tmp_path)
        collector.emit(GenerationEvent(Component.CACHE, "hit"))

        path = collector.save("run1")

        assert path == tmp_path / "metrics_run1.json"
        assert json.loads(path.read_text())["cache_hits"] == 1
        lines = (tmp_path / "events_run1.jsonl").read_text().splitlines()
        assert json.loads(lines[0])["component"] == "cache"

    def test_save_without_output_dir(self):
        assert MetricsCollector().save() is None


class TestSinks:
    """Tests for event sinks."""

    def test_fan_out(self):
        first, second = MetricsCollector(), MetricsCollector()
        sink = FanOutEventSink(first, second)

        sink.emit(GenerationEvent(Component.CACHE, "hit"))

        assert first.metrics.cache_hits == 1
        assert second.metrics.cache_hits == 1

    def test_logging_sink(self, caplog):
        sink = LoggingEventSink(level=logging.INFO)

        with caplog.at_level(logging.INFO, logger="advisor_orchestrator.metrics.observability"):
            sink.emit(GenerationEvent(Component.PROVIDER, "timeout", provider="gemini", attempt=2))

        assert "provider timeout provider=gemini attempt=2" in caplog.text


class TestTimer:
    """Tests for Timer context manager."""

    def test_timer_measures_duration(self):
        with Timer() as timer:
            time.sleep(0.01)

        assert timer.elapsed >= 0.01

    def test_elapsed_while_running(self):
        with Timer() as timer:
            assert timer.elapsed >= 0.0
