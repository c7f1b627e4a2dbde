"""Observability and metrics tracking for response generation.

Components never log their own metrics. They emit ``GenerationEvent``
records to an injected ``EventSink``. ``LoggingEventSink`` is the default;
``MetricsCollector`` aggregates events for reporting.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class Component(str, Enum):
    """Component that emitted an event."""

    CACHE = "cache"
    PROVIDER = "provider"
    FAILOVER = "failover"
    STATIC_GENERATOR = "static_generator"
    DISPATCHER = "dispatcher"


@dataclass(frozen=True)
class GenerationEvent:
    """A single observation from the pipeline."""

    component: Component
    outcome: str
    latency_seconds: float = 0.0
    provider: str | None = None
    attempt: int | None = None
    labels: dict[str, str] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "component": self.component.value,
            "outcome": self.outcome,
            "latency_seconds": self.latency_seconds,
            "provider": self.provider,
            "attempt": self.attempt,
            "labels": self.labels,
            "timestamp": self.timestamp.isoformat(),
        }


@runtime_checkable
class EventSink(Protocol):
    """Receiver for pipeline events."""

    def emit(self, event: GenerationEvent) -> None: ...


class LoggingEventSink:
    """Write events to the standard logger."""

    def __init__(self, level: int = logging.DEBUG) -> None:
        self.level = level

    def emit(self, event: GenerationEvent) -> None:
        logger.log(
            self.level,
            "%s %s provider=%s attempt=%s latency=%.3fs %s",
            event.component.value,
            event.outcome,
            event.provider,
            event.attempt,
            event.latency_seconds,
            event.labels or "",
        )


class FanOutEventSink:
    """Forward each event to several sinks."""

    def __init__(self, *sinks: EventSink) -> None:
        self.sinks = list(sinks)

    def emit(self, event: GenerationEvent) -> None:
        for sink in self.sinks:
            sink.emit(event)


@dataclass
class ConsultationMetrics:
    """Aggregated metrics across consultations."""

    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    # Provider metrics
    provider_attempts: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    provider_successes: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    provider_failures: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    failure_kinds: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    provider_latencies: dict[str, list[float]] = field(default_factory=lambda: defaultdict(list))

    # Cache metrics
    cache_hits: int = 0
    cache_misses: int = 0

    # Response metrics
    live_responses: int = 0
    fallback_responses: int = 0
    exhausted_requests: int = 0
    static_paths: dict[str, int] = field(default_factory=lambda: defaultdict(int))

    @property
    def cache_hit_ratio(self) -> float:
        """Calculate cache hit ratio."""
        total = self.cache_hits + self.cache_misses
        return self.cache_hits / total if total > 0 else 0.0

    @property
    def provider_success_rate(self) -> float:
        """Calculate overall provider success rate."""
        total_success = sum(self.provider_successes.values())
        total_attempts = sum(self.provider_attempts.values())
        return total_success / total_attempts if total_attempts > 0 else 0.0

    @property
    def fallback_rate(self) -> float:
        total = self.live_responses + self.fallback_responses
        return self.fallback_responses / total if total > 0 else 0.0

    def mean_latency(self, provider: str) -> float:
        samples = self.provider_latencies.get(provider) or []
        return sum(samples) / len(samples) if samples else 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "started_at": self.started_at.isoformat(),
            "provider_attempts": dict(self.provider_attempts),
            "provider_successes": dict(self.provider_successes),
            "provider_failures": dict(self.provider_failures),
            "failure_kinds": dict(self.failure_kinds),
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "cache_hit_ratio": self.cache_hit_ratio,
            "provider_success_rate": self.provider_success_rate,
            "live_responses": self.live_responses,
            "fallback_responses": self.fallback_responses,
            "fallback_rate": self.fallback_rate,
            "exhausted_requests": self.exhausted_requests,
            "static_paths": dict(self.static_paths),
        }

    def to_summary(self) -> str:
        """Generate a human-readable summary."""
        lines = [
            "=" * 60,
            "CONSULTATION METRICS SUMMARY",
            "=" * 60,
            "Provider Performance:",
            f"  Total Attempts: {sum(self.provider_attempts.values())}",
            f"  Success Rate: {self.provider_success_rate:.1%}",
        ]

        for provider, count in self.provider_attempts.items():
            success = self.provider_successes.get(provider, 0)
            failure = self.provider_failures.get(provider, 0)
            lines.append(
                f"  {provider}: {success}/{count} successful ({failure} failed, "
                f"mean {self.mean_latency(provider):.2f}s)"
            )

        if self.failure_kinds:
            lines.append("")
            lines.append("Failures by Kind:")
            for kind, count in sorted(self.failure_kinds.items()):
                lines.append(f"  {kind}: {count}")

        lines.extend([
            "",
            "Responses:",
            f"  Live: {self.live_responses}",
            f"  Fallback: {self.fallback_responses} ({self.fallback_rate:.1%})",
            f"  Exhausted Requests: {self.exhausted_requests}",
            "",
            "Efficiency:",
            f"  Cache Hit Ratio: {self.cache_hit_ratio:.1%}",
        ])

        lines.append("=" * 60)
        return "\n".join(lines)


class MetricsCollector:
    """
    Collect pipeline events into ``ConsultationMetrics``.

    Safe to share between concurrent dispatches.
    """

    def __init__(self, output_dir: Path | None = None) -> None:
        """
        Initialize metrics collector.

        Args:
            output_dir: Directory to save metrics files.
        """
        self.metrics = ConsultationMetrics()
        self.output_dir = output_dir
        self._events: list[GenerationEvent] = []
        self._lock = threading.Lock()

    def emit(self, event: GenerationEvent) -> None:
        """Record one event."""
        with self._lock:
            self._events.append(event)
            self._apply(event)

    @property
    def events(self) -> list[GenerationEvent]:
        with self._lock:
            return list(self._events)

    def _apply(self, event: GenerationEvent) -> None:
        m = self.metrics

        if event.component == Component.CACHE:
            if event.outcome == "hit":
                m.cache_hits += 1
            else:
                m.cache_misses += 1

        elif event.component == Component.PROVIDER and event.provider:
            m.provider_attempts[event.provider] += 1
            m.provider_latencies[event.provider].append(event.latency_seconds)
            if event.outcome == "success":
                m.provider_successes[event.provider] += 1
            else:
                m.provider_failures[event.provider] += 1
                m.failure_kinds[event.outcome] += 1

        elif event.component == Component.FAILOVER:
            if event.outcome == "exhausted":
                m.exhausted_requests += 1

        elif event.component == Component.STATIC_GENERATOR:
            m.static_paths[event.outcome] += 1

        elif event.component == Component.DISPATCHER:
            if event.outcome == "live":
                m.live_responses += 1
            else:
                m.fallback_responses += 1

    def save(self, name: str = "consultation") -> Path | None:
        """Save metrics to file."""
        if not self.output_dir:
            return None

        self.output_dir.mkdir(parents=True, exist_ok=True)

        metrics_file = self.output_dir / f"metrics_{name}.json"
        with open(metrics_file, "w", encoding="utf-8") as f:
            json.dump(self.metrics.to_dict(), f, indent=2)

        events_file = self.output_dir / f"events_{name}.jsonl"
        with open(events_file, "w", encoding="utf-8") as f:
            for event in self.events:
                f.write(json.dumps(event.to_dict()) + "\n")

        logger.info("Metrics saved to %s", metrics_file)
        return metrics_file

    def print_summary(self) -> None:
        """Print metrics summary to console."""
        print(self.metrics.to_summary())


class Timer:
    """Context manager for timing operations."""

    def __init__(self) -> None:
        self._start_time: float = 0.0
        self._duration: float = 0.0

    def __enter__(self) -> "Timer":
        """Start the timer."""
        self._start_time = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Stop the timer."""
        self._duration = time.monotonic() - self._start_time

    @property
    def elapsed(self) -> float:
        """Seconds since start, or the final duration once stopped."""
        if self._duration:
            return self._duration
        return time.monotonic() - self._start_time if self._start_time else 0.0
