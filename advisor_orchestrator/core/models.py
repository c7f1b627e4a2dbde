"""Data model shared by the generation pipeline.

Requests and results flow from the dispatcher through the failover
orchestrator to providers and back. Everything here is immutable once built
except where noted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import TYPE_CHECKING, Any

from advisor_orchestrator.core.errors import user_message_for

if TYPE_CHECKING:
    from advisor_orchestrator.analysis.question_classifier import QuestionInsight
    from advisor_orchestrator.core.errors import AttemptOutcome


# Live answers are reported at or above this value; fallbacks always below it.
LIVE_CONFIDENCE_FLOOR = 0.8
LIVE_CONFIDENCE = 0.9

DEFAULT_ATTEMPT_TIMEOUT = 15.0


class ResponseKind(str, Enum):
    """Where an advisor response came from."""

    LIVE = "live"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class GenerationRequest:
    """One prompt to turn into text, with optional per-call overrides."""

    prompt: str
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    provider_hint: str | None = None
    timeout: float | None = None  # Per attempt; provider default when None


@dataclass(frozen=True)
class TokenUsage:
    """Token accounting reported by a provider."""

    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True)
class GenerationResult:
    """Text produced by a provider."""

    content: str
    provider: str
    model: str | None = None
    usage: TokenUsage | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class ProvidersExhausted:
    """Every eligible provider was tried and none produced a result.

    Carries the most recent attempt outcome so callers can report it.
    """

    last_outcome: AttemptOutcome
    providers_tried: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return False


@dataclass(frozen=True)
class AdvisorProfile:
    """An advisor supplied by the consultation layer. Read-only to this package."""

    id: str
    name: str
    role: str
    persona_id: str | None = None
    expertise: str = ""
    background: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AdvisorProfile":
        """Build a profile from a loosely shaped mapping (YAML/JSON)."""
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            role=str(data.get("role", data.get("expertise", ""))),
            persona_id=data.get("persona_id") or data.get("persona"),
            expertise=str(data.get("expertise", "")),
            background=str(data.get("background", "")),
        )


@dataclass(frozen=True)
class ErrorInfo:
    """Diagnostic metadata attached to a fallback response.

    ``message`` keeps the raw failure text for diagnostics. ``user_message``
    is the readable text for the error kind and is filled in from the kind
    when not given.
    """

    kind: str
    message: str
    provider: str | None
    retryable: bool
    fallback_used: bool = True
    user_message: str = ""

    def __post_init__(self) -> None:
        if not self.user_message:
            object.__setattr__(self, "user_message", user_message_for(self.kind))

    @classmethod
    def from_outcome(cls, outcome: AttemptOutcome) -> "ErrorInfo":
        return cls(
            kind=outcome.kind.value,
            message=outcome.message,
            provider=outcome.provider,
            retryable=outcome.retryable,
            user_message=user_message_for(outcome.kind),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "user_message": self.user_message,
            "provider": self.provider,
            "retryable": self.retryable,
            "fallback_used": self.fallback_used,
        }


@dataclass
class AdvisorResponse:
    """One answer for one (question, advisor) pair."""

    advisor_id: str
    advisor_name: str
    content: str
    kind: ResponseKind
    confidence: float
    provider: str | None = None
    error_info: ErrorInfo | None = None
    frameworks: tuple[str, ...] = ()
    insight: QuestionInsight | None = None
    processing_seconds: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_live(self) -> bool:
        return self.kind == ResponseKind.LIVE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "advisor_id": self.advisor_id,
            "advisor_name": self.advisor_name,
            "content": self.content,
            "kind": self.kind.value,
            "confidence": self.confidence,
            "provider": self.provider,
            "error_info": self.error_info.to_dict() if self.error_info else None,
            "frameworks": list(self.frameworks),
            "insight": self.insight.to_dict() if self.insight else None,
            "processing_seconds": self.processing_seconds,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }
