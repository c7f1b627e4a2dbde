"""Concurrent advisor dispatch."""

from advisor_orchestrator.dispatch.dispatcher import (
    DEFAULT_MAX_CONCURRENCY,
    ConcurrentAdvisorDispatcher,
)

__all__ = ["DEFAULT_MAX_CONCURRENCY", "ConcurrentAdvisorDispatcher"]
