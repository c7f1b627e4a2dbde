"""Time-bounded memoization of generation results."""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from advisor_orchestrator.core.models import GenerationResult

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0  # 5 minutes
DEFAULT_SWEEP_THRESHOLD = 100


@dataclass(frozen=True)
class CacheEntry:
    """A cached result and when it was stored."""

    result: GenerationResult
    created_at: float


def make_cache_key(
    prompt: str,
    provider: str | None,
    model: str | None,
    temperature: float | None,
    max_tokens: int | None,
) -> str:
    """Deterministic key over the request parameters that affect output."""
    payload = json.dumps(
        {
            "prompt": prompt,
            "provider": provider,
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
        },
        sort_keys=True,
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ResponseCache:
    """
    TTL cache for successful generations.

    Expired entries are dropped lazily when read. When the entry count grows
    past ``sweep_threshold`` a write also removes every expired entry. There
    is no background task.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        sweep_threshold: int = DEFAULT_SWEEP_THRESHOLD,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.sweep_threshold = sweep_threshold
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    def get(self, key: str) -> GenerationResult | None:
        """Return the cached result for ``key``, or None on a miss."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_expired(entry, self._clock()):
                del self._entries[key]
                entry = None
            if entry is None:
                self._misses += 1
                return None
            self._hits += 1
            return entry.result

    def put(self, key: str, result: GenerationResult) -> None:
        """Store ``result`` under ``key``."""
        with self._lock:
            now = self._clock()
            self._entries[key] = CacheEntry(result=result, created_at=now)
            if len(self._entries) > self.sweep_threshold:
                self._sweep(now)

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
        logger.info("Response cache cleared")

    def stats(self) -> dict[str, float]:
        """Size and hit counters since creation or the last ``clear``."""
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self._hits / lookups if lookups else 0.0,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at >= self.ttl_seconds

    def _sweep(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Swept %d expired cache entries", len(expired))
