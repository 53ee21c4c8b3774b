"""Tests for the rate limiter, usage store and access policy."""

from __future__ import annotations

import pytest

from mermaidpad.pipeline import TokenUsage
from mermaidpad.server import AccessPolicy, RateLimiter, UsageStore
from mermaidpad.server.services import RateLimitDecision


class _Clock:
    def __init__(self, now: int = 1_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


def test_rate_limiter_allows_window_quota_then_refuses() -> None:
    clock = _Clock()
    limiter = RateLimiter(window_ms=60_000, max_requests=20, clock=clock)

    decisions = [limiter.check("alice@example.com") for _ in range(20)]
    assert all(decision.allowed for decision in decisions)

    clock.now += 15_000
    refused = limiter.check("alice@example.com")

    assert refused.allowed is False
    assert refused.retry_after_ms == 45_000
    assert refused.retry_after_seconds == 45


def test_rate_limiter_resets_when_window_expires() -> None:
    clock = _Clock()
    limiter = RateLimiter(window_ms=60_000, max_requests=20, clock=clock)
    for _ in range(21):
        limiter.check("alice@example.com")

    clock.now += 60_000
    decision = limiter.check("alice@example.com")

    assert decision.allowed is True
    entry = limiter.entry("alice@example.com")
    assert entry is not None
    assert entry.count == 1
    assert entry.reset_at == clock.now + 60_000


def test_rate_limiter_tracks_identities_separately() -> None:
    clock = _Clock()
    limiter = RateLimiter(window_ms=1_000, max_requests=1, clock=clock)

    assert limiter.check("a@example.com").allowed
    assert not limiter.check("a@example.com").allowed
    assert limiter.check("b@example.com").allowed


def test_rate_limiter_prunes_expired_entries() -> None:
    clock = _Clock()
    limiter = RateLimiter(window_ms=10, max_requests=1, clock=clock)
    for idx in range(1_001):
        limiter.check(f"user{idx}@example.com")

    clock.now += 10
    limiter.check("user0@example.com")
    limiter.check("fresh@example.com")

    assert limiter.entry("user500@example.com") is None
    assert limiter.entry("fresh@example.com") is not None


def test_retry_after_defaults_to_a_minute() -> None:
    assert RateLimitDecision(allowed=False).retry_after_seconds == 60
    assert RateLimitDecision(allowed=False, retry_after_ms=1).retry_after_seconds == 1
    assert RateLimitDecision(allowed=False, retry_after_ms=1_001).retry_after_seconds == 2


def test_usage_store_accumulates_per_source() -> None:
    clock = _Clock(42)
    store = UsageStore(clock=clock)

    store.record("alice@example.com", TokenUsage(10, 5, 15), "gpt")
    store.record("alice@example.com", TokenUsage(3, 1, 4), "complete")
    clock.now = 99
    store.record("alice@example.com", TokenUsage(2, 2, 4), "complete")

    stats = store.get("alice@example.com")
    assert stats is not None
    assert stats.total_tokens == 23
    assert stats.prompt_tokens == 15
    assert stats.completion_tokens == 8
    assert stats.by_source == {"gpt": 15, "complete": 8}
    assert stats.request_count == {"gpt": 1, "complete": 2}
    assert stats.last_updated == 99
    assert store.get("bob@example.com") is None


def test_usage_store_returns_copies() -> None:
    store = UsageStore(clock=_Clock())
    store.record("alice@example.com", TokenUsage(1, 1, 2), "gpt")

    snapshot = store.get("alice@example.com")
    assert snapshot is not None
    snapshot.by_source["gpt"] = 1_000

    fresh = store.get("alice@example.com")
    assert fresh is not None and fresh.by_source["gpt"] == 2


def test_usage_store_rejects_unknown_source() -> None:
    store = UsageStore(clock=_Clock())

    with pytest.raises(ValueError):
        store.record("alice@example.com", TokenUsage(1, 1, 2), "embeddings")


@pytest.mark.parametrize("raw", ["", "  ", "*", None])
def test_access_policy_open_settings_allow_any_identity(raw: str | None) -> None:
    policy = AccessPolicy.from_setting(raw)

    assert policy.allow_all
    assert policy.is_allowed("someone@example.com")
    assert not policy.is_allowed(None)
    assert not policy.is_allowed("")


def test_access_policy_allow_list_is_case_insensitive() -> None:
    policy = AccessPolicy.from_setting("Alice@Example.com, bob@example.com,")

    assert policy.is_allowed("alice@example.com")
    assert policy.is_allowed("BOB@EXAMPLE.COM")
    assert not policy.is_allowed("mallory@example.com")
