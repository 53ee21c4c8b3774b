"""Core dataclasses shared by the input coordination pipeline."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SiteState(str, Enum):
    """Lifecycle of one input site (a text buffer or completion slot)."""

    IDLE = "idle"
    DEBOUNCING = "debouncing"
    IN_FLIGHT = "in_flight"
    APPLYING = "applying"


class RenderStatus(str, Enum):
    """Result categories published by the render trigger."""

    RENDERED = "rendered"
    CLEARED = "cleared"
    INVALID = "invalid"


class RenderErrorPolicy(str, Enum):
    """What a failed render does to the last good preview."""

    CLEAR = "clear"
    PRESERVE = "preserve"


class ChatMode(str, Enum):
    """Assistant modes exposed by the chat endpoint."""

    FIX = "fix"
    IMPROVE = "improve"
    GENERATE = "generate"


@dataclass(frozen=True, slots=True, order=True)
class RequestToken:
    """Opaque, comparable tag attached to a request when it is issued."""

    site: str
    sequence: int


@dataclass(frozen=True, slots=True)
class RenderRequest:
    """Snapshot of the buffer handed to the renderer."""

    content: str
    token: RequestToken

    @property
    def request_id(self) -> int:
        return self.token.sequence


@dataclass(frozen=True, slots=True)
class RenderOutcome:
    """What the render trigger published for a request."""

    status: RenderStatus
    request: RenderRequest | None = None
    svg: str | None = None
    error: str | None = None


@dataclass(slots=True)
class PendingCompletion:
    """The one outstanding completion call for a site."""

    prefix: str
    suffix: str
    token: RequestToken
    handle: asyncio.Task[Any] | None = None

    def cancel(self) -> None:
        if self.handle is not None and not self.handle.done():
            self.handle.cancel()


@dataclass(frozen=True, slots=True)
class ChatReply:
    """Assistant answer to a chat request."""

    explanation: str
    mermaid: str


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """Single entry of the chat transcript."""

    id: str
    role: str
    content: str
    timestamp: float
    mermaid: str | None = None
    is_error: bool = False


@dataclass(frozen=True, slots=True)
class TokenUsage:
    """Token counts reported by the model provider for one call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(slots=True)
class UsageStats:
    """Accumulated token usage for one identity."""

    total_tokens: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    by_source: dict[str, int] = field(default_factory=lambda: {"gpt": 0, "complete": 0})
    request_count: dict[str, int] = field(default_factory=lambda: {"gpt": 0, "complete": 0})
    last_updated: int = 0

    def as_payload(self) -> dict[str, object]:
        return {
            "totalTokens": self.total_tokens,
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "bySource": dict(self.by_source),
            "requestCount": dict(self.request_count),
            "lastUpdated": self.last_updated,
        }


__all__ = [
    "ChatMessage",
    "ChatMode",
    "ChatReply",
    "PendingCompletion",
    "RenderErrorPolicy",
    "RenderOutcome",
    "RenderRequest",
    "RenderStatus",
    "RequestToken",
    "SiteState",
    "TokenUsage",
    "UsageStats",
]
