"""Core data model, error taxonomy, retry policy and response cache.

The failover orchestrator and the consultation service live in
``advisor_orchestrator.core.failover`` and ``advisor_orchestrator.core.service``;
they are not imported here because they depend on the provider and persona
packages, which in turn depend on this one.
"""

from advisor_orchestrator.core.errors import (
    NON_RETRYABLE_KINDS,
    USER_MESSAGES,
    AttemptOutcome,
    ConfigurationError,
    EmptyResponseError,
    ErrorClassifier,
    ErrorKind,
    ProviderError,
    user_message_for,
)
from advisor_orchestrator.core.models import (
    LIVE_CONFIDENCE,
    LIVE_CONFIDENCE_FLOOR,
    AdvisorProfile,
    AdvisorResponse,
    ErrorInfo,
    GenerationRequest,
    GenerationResult,
    ProvidersExhausted,
    ResponseKind,
    TokenUsage,
)
from advisor_orchestrator.core.response_cache import CacheEntry, ResponseCache, make_cache_key
from advisor_orchestrator.core.retry_utils import RetryPolicy, build_retrying

__all__ = [
    # Errors
    "NON_RETRYABLE_KINDS",
    "USER_MESSAGES",
    "AttemptOutcome",
    "ConfigurationError",
    "EmptyResponseError",
    "ErrorClassifier",
    "ErrorKind",
    "ProviderError",
    "user_message_for",
    # Models
    "LIVE_CONFIDENCE",
    "LIVE_CONFIDENCE_FLOOR",
    "AdvisorProfile",
    "AdvisorResponse",
    "ErrorInfo",
    "GenerationRequest",
    "GenerationResult",
    "ProvidersExhausted",
    "ResponseKind",
    "TokenUsage",
    # Cache
    "CacheEntry",
    "ResponseCache",
    "make_cache_key",
    # Retry
    "RetryPolicy",
    "build_retrying",
]
