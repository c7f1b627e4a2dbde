"""Tenacity-based retry policy for provider calls.

``RetryPolicy`` answers two questions for the failover loop: should a failed
attempt be retried, and how long to wait first. The policy is stateless and
shared across requests; ``build_retrying`` plugs it into tenacity so the loop
gets tenacity's attempt bookkeeping and logging.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    stop_after_attempt,
)

from advisor_orchestrator.core.errors import NON_RETRYABLE_KINDS, AttemptOutcome

if TYPE_CHECKING:
    from advisor_orchestrator.config.settings import RetrySettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff policy.

    delay = min(base_delay * multiplier ** attempt, max_delay)

    ``attempt`` is the zero-based index of the attempt that just failed.
    """

    max_retries: int = 2
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 10.0

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> "RetryPolicy":
        return cls(
            max_retries=settings.max_retries,
            base_delay=settings.base_delay,
            multiplier=settings.multiplier,
            max_delay=settings.max_delay,
        )

    def should_retry(self, attempt: int, outcome: AttemptOutcome | None) -> bool:
        """Whether to call the same provider again after ``attempt`` failed."""
        if outcome is None:
            return False
        if outcome.kind in NON_RETRYABLE_KINDS or not outcome.retryable:
            return False
        return attempt < self.max_retries

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before retrying after ``attempt`` failed."""
        return min(self.base_delay * (self.multiplier ** attempt), self.max_delay)


def log_retry_attempt(retry_state: RetryCallState) -> None:
    """Log retry attempts for debugging."""
    outcome = retry_state.outcome.result() if retry_state.outcome else None
    logger.warning(
        "Retrying %s after attempt %d (%s), sleeping %.2fs",
        getattr(outcome, "provider", "provider"),
        retry_state.attempt_number,
        getattr(getattr(outcome, "kind", None), "value", "unknown"),
        retry_state.next_action.sleep if retry_state.next_action else 0.0,
    )


def build_retrying(
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> AsyncRetrying:
    """
    Create a tenacity controller driven by ``policy``.

    The wrapped call returns either a success value or an ``AttemptOutcome``;
    only outcomes are considered for retry. Exceptions escaping the call are
    re-raised untouched, which keeps cancellation intact.

    Args:
        policy: Retry policy to apply.
        sleep: Awaitable sleep used between attempts.

    Returns:
        Configured AsyncRetrying instance.
    """

    def _retry(retry_state: RetryCallState) -> bool:
        if retry_state.outcome is None or retry_state.outcome.failed:
            return False
        result = retry_state.outcome.result()
        if not isinstance(result, AttemptOutcome):
            return False
        return policy.should_retry(retry_state.attempt_number - 1, result)

    def _wait(retry_state: RetryCallState) -> float:
        return policy.delay_for(retry_state.attempt_number - 1)

    def _give_up(retry_state: RetryCallState) -> Any:
        # Stop reached while still retryable; hand back the last outcome
        return retry_state.outcome.result() if retry_state.outcome else None

    return AsyncRetrying(
        stop=stop_after_attempt(policy.max_retries + 1),
        wait=_wait,
        retry=_retry,
        before_sleep=log_retry_attempt,
        retry_error_callback=_give_up,
        sleep=sleep,
        reraise=True,
    )
