"""Assistant service exports."""

from __future__ import annotations

from .app import create_app
from .auth import IDENTITY_HEADER, AccessPolicy
from .services import RateLimitDecision, RateLimiter, ServiceContainer, UsageStore

__all__ = [
    "AccessPolicy",
    "IDENTITY_HEADER",
    "RateLimitDecision",
    "RateLimiter",
    "ServiceContainer",
    "UsageStore",
    "create_app",
]
