"""Process-scoped services for the assistant API: rate limiting and usage."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, replace
from typing import Callable

from mermaidpad.assistant import Assistant, OpenAIAssistant
from mermaidpad.config import ServerConfig
from mermaidpad.pipeline.models import TokenUsage, UsageStats

from .auth import AccessPolicy

Clock = Callable[[], int]

PRUNE_THRESHOLD = 1000


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass(slots=True)
class RateLimitEntry:
    """Request count for one identity inside its current window."""

    count: int
    reset_at: int


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    """Outcome of a rate limit check."""

    allowed: bool
    retry_after_ms: int | None = None

    @property
    def retry_after_seconds(self) -> int:
        if not self.retry_after_ms:
            return 60
        return math.ceil(self.retry_after_ms / 1000)


class RateLimiter:
    """Fixed-window limiter keyed by identity.

    State lives in this process only; several service instances need a
    shared store instead.
    """

    def __init__(
        self,
        *,
        window_ms: int = 60_000,
        max_requests: int = 20,
        clock: Clock = wall_clock_ms,
    ) -> None:
        self._window_ms = window_ms
        self._max_requests = max_requests
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}

    @property
    def window_ms(self) -> int:
        return self._window_ms

    @property
    def max_requests(self) -> int:
        return self._max_requests

    def check(self, identity: str) -> RateLimitDecision:
        """Count a request for the identity and decide whether it may proceed."""

        now = self._clock()
        if len(self._entries) > PRUNE_THRESHOLD:
            self._prune(now)
        entry = self._entries.get(identity)
        if entry is None or entry.reset_at <= now:
            self._entries[identity] = RateLimitEntry(count=1, reset_at=now + self._window_ms)
            return RateLimitDecision(allowed=True)
        entry.count += 1
        if entry.count <= self._max_requests:
            return RateLimitDecision(allowed=True)
        return RateLimitDecision(allowed=False, retry_after_ms=max(0, entry.reset_at - now))

    def entry(self, identity: str) -> RateLimitEntry | None:
        """Current window for the identity (read-only copy)."""

        entry = self._entries.get(identity)
        return replace(entry) if entry else None

    def _prune(self, now: int) -> None:
        for key, entry in tuple(self._entries.items()):
            if entry.reset_at <= now:
                del self._entries[key]


class UsageStore:
    """Additive per-identity token counters; cleared only by a restart."""

    SOURCES = ("gpt", "complete")

    def __init__(self, *, clock: Clock = wall_clock_ms) -> None:
        self._clock = clock
        self._stats: dict[str, UsageStats] = {}

    def record(self, identity: str, usage: TokenUsage, source: str) -> None:
        if source not in self.SOURCES:
            raise ValueError(f"Unknown usage source '{source}'.")
        stats = self._stats.get(identity)
        if stats is None:
            stats = UsageStats()
            self._stats[identity] = stats
        stats.total_tokens += usage.total_tokens
        stats.prompt_tokens += usage.prompt_tokens
        stats.completion_tokens += usage.completion_tokens
        stats.by_source[source] += usage.total_tokens
        stats.request_count[source] += 1
        stats.last_updated = self._clock()

    def get(self, identity: str) -> UsageStats | None:
        stats = self._stats.get(identity)
        if stats is None:
            return None
        return replace(
            stats,
            by_source=dict(stats.by_source),
            request_count=dict(stats.request_count),
        )


@dataclass(slots=True)
class ServiceContainer:
    """Services constructed once at startup and shared by every request."""

    config: ServerConfig
    access: AccessPolicy
    rate_limiter: RateLimiter
    usage: UsageStore
    assistant: Assistant | None = None

    @classmethod
    def from_config(cls, config: ServerConfig, *, assistant: Assistant | None = None) -> ServiceContainer:
        if assistant is None and config.openai_api_key:
            assistant = OpenAIAssistant(config.openai_api_key, model=config.model)
        return cls(
            config=config,
            access=AccessPolicy.from_setting(config.allowed_emails),
            rate_limiter=RateLimiter(
                window_ms=config.rate_limit_window_ms,
                max_requests=config.rate_limit_max_requests,
            ),
            usage=UsageStore(),
            assistant=assistant,
        )


__all__ = [
    "RateLimitDecision",
    "RateLimitEntry",
    "RateLimiter",
    "ServiceContainer",
    "UsageStore",
]
