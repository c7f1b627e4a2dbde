"""Error taxonomy and classification of raw provider failures.

Providers fail by raising. The classifier turns whatever was raised into an
``AttemptOutcome`` using only the status code, the exception type and the
message, so the failover loop never branches on a specific vendor.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Kinds of generation failure."""

    NETWORK_ERROR = "network_error"
    AUTHENTICATION_ERROR = "authentication_error"  # Never retried
    RATE_LIMITED = "rate_limited"  # Retried with backoff
    QUOTA_EXCEEDED = "quota_exceeded"  # Never retried, unlike rate limits
    TIMEOUT = "timeout"
    PARSING_ERROR = "parsing_error"  # Provider bug
    EMPTY_RESPONSE = "empty_response"
    MODEL_OVERLOADED = "model_overloaded"
    CONFIGURATION_ERROR = "configuration_error"
    PROVIDER_UNAVAILABLE = "provider_unavailable"  # Nothing usable is registered
    INTERNAL_ERROR = "internal_error"  # Bug in our own code, not the provider


# Kinds that are never retried whatever the attempt count.
NON_RETRYABLE_KINDS = frozenset({
    ErrorKind.AUTHENTICATION_ERROR,
    ErrorKind.QUOTA_EXCEEDED,
    ErrorKind.PARSING_ERROR,
    ErrorKind.EMPTY_RESPONSE,
    ErrorKind.CONFIGURATION_ERROR,
    ErrorKind.PROVIDER_UNAVAILABLE,
    ErrorKind.INTERNAL_ERROR,
})

# Readable text per kind for the presentation layer. Raw provider text stays
# in the diagnostic message only.
USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NETWORK_ERROR: "Connection issue detected. This answer comes from the backup system.",
    ErrorKind.AUTHENTICATION_ERROR: "Authentication failed. Please check your API configuration.",
    ErrorKind.RATE_LIMITED: "We're experiencing high demand. Please wait a moment and try again.",
    ErrorKind.QUOTA_EXCEEDED: "API quota exceeded. Switched to the backup response system.",
    ErrorKind.TIMEOUT: "The AI service took longer than expected. Here is an alternative response.",
    ErrorKind.PARSING_ERROR: "Received an invalid response from the AI service. Using the backup system.",
    ErrorKind.EMPTY_RESPONSE: "The AI service returned no answer. Using the backup system.",
    ErrorKind.MODEL_OVERLOADED: "The AI model is overloaded right now. Using the backup system.",
    ErrorKind.CONFIGURATION_ERROR: "System configuration issue detected.",
    ErrorKind.PROVIDER_UNAVAILABLE: "The AI service is unavailable. This answer comes from the backup system.",
    ErrorKind.INTERNAL_ERROR: "An unexpected error occurred. This answer comes from the backup system.",
}


def user_message_for(kind: ErrorKind | str) -> str:
    """Readable message for an error kind; unknown kinds get the internal one."""
    try:
        return USER_MESSAGES[ErrorKind(kind)]
    except ValueError:
        return USER_MESSAGES[ErrorKind.INTERNAL_ERROR]


class ConfigurationError(Exception):
    """Setup defect, e.g. an unregistered provider was requested by name.

    This is the one failure that is raised to callers instead of being
    demoted to a fallback response.
    """

    kind = ErrorKind.CONFIGURATION_ERROR


class ProviderError(Exception):
    """Failure raised by a provider implementation."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmptyResponseError(ProviderError):
    """Provider answered with no content."""


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of classifying one failed provider call."""

    kind: ErrorKind
    message: str
    provider: str
    retryable: bool


_AUTH_PATTERN = re.compile(
    r"unauthori[sz]ed|invalid (api )?key|missing (api )?key|authenticat|invalid credential",
    re.I,
)
_QUOTA_PATTERN = re.compile(r"quota|insufficient|billing|credits", re.I)
_RATE_PATTERN = re.compile(r"rate.?limit|too many requests", re.I)
_OVERLOAD_PATTERN = re.compile(r"overload", re.I)
_EMPTY_PATTERN = re.compile(r"\bempty\b", re.I)
_PARSE_PATTERN = re.compile(r"malformed|unparsable|parse|invalid json|decode", re.I)


class ErrorClassifier:
    """Map raw failures onto ``ErrorKind`` values."""

    def classify(self, failure: BaseException, provider: str) -> AttemptOutcome:
        """
        Classify a failure raised by a provider call.

        Args:
            failure: The exception raised by the call.
            provider: Name of the provider that was called.

        Returns:
            AttemptOutcome with kind and retryability.
        """
        kind, retryable = self._classify(failure)
        message = str(failure) or failure.__class__.__name__

        logger.debug(
            "Classified %s failure from %s as %s (retryable=%s)",
            failure.__class__.__name__, provider, kind.value, retryable,
        )
        return AttemptOutcome(
            kind=kind,
            message=message,
            provider=provider,
            retryable=retryable,
        )

    def _classify(self, failure: BaseException) -> tuple[ErrorKind, bool]:
        if isinstance(failure, ConfigurationError):
            return ErrorKind.CONFIGURATION_ERROR, False

        if isinstance(failure, (TimeoutError, asyncio.TimeoutError)):
            return ErrorKind.TIMEOUT, True

        if isinstance(failure, EmptyResponseError):
            return ErrorKind.EMPTY_RESPONSE, False

        message = str(failure)
        status = self._status_of(failure)

        if status is not None:
            by_status = self._classify_status(status, message)
            if by_status is not None:
                return by_status

        # Transport failures, whatever their message says
        if isinstance(failure, OSError):
            return ErrorKind.NETWORK_ERROR, True

        if _AUTH_PATTERN.search(message):
            return ErrorKind.AUTHENTICATION_ERROR, False
        if _QUOTA_PATTERN.search(message):
            return ErrorKind.QUOTA_EXCEEDED, False
        if _RATE_PATTERN.search(message):
            return ErrorKind.RATE_LIMITED, True
        if _OVERLOAD_PATTERN.search(message):
            return ErrorKind.MODEL_OVERLOADED, True
        if _EMPTY_PATTERN.search(message):
            return ErrorKind.EMPTY_RESPONSE, False

        # JSONDecodeError is a ValueError
        if isinstance(failure, (ValueError, KeyError, TypeError)) or _PARSE_PATTERN.search(message):
            return ErrorKind.PARSING_ERROR, False

        return ErrorKind.NETWORK_ERROR, True

    def _classify_status(self, status: int, message: str) -> tuple[ErrorKind, bool] | None:
        if status == 401:
            return ErrorKind.AUTHENTICATION_ERROR, False
        if status in (402, 403):
            return ErrorKind.QUOTA_EXCEEDED, False
        if status == 429:
            if _QUOTA_PATTERN.search(message):
                return ErrorKind.QUOTA_EXCEEDED, False
            return ErrorKind.RATE_LIMITED, True
        if status == 529 or (status == 503 and _OVERLOAD_PATTERN.search(message)):
            return ErrorKind.MODEL_OVERLOADED, True
        if status == 408:
            return ErrorKind.TIMEOUT, True
        if 500 <= status < 600:
            return ErrorKind.NETWORK_ERROR, True
        if 400 <= status < 500:
            # Other client errors will not improve on retry
            return ErrorKind.NETWORK_ERROR, False
        return None

    @staticmethod
    def _status_of(failure: BaseException) -> int | None:
        for attr in ("status_code", "status"):
            value = getattr(failure, attr, None)
            if isinstance(value, int):
                return value
        response = getattr(failure, "response", None)
        value = getattr(response, "status_code", None)
        return value if isinstance(value, int) else None
