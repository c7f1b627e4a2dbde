"""Metrics and observability module."""

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

__all__ = [
    "Component",
    "ConsultationMetrics",
    "EventSink",
    "FanOutEventSink",
    "GenerationEvent",
    "LoggingEventSink",
    "MetricsCollector",
    "Timer",
]
