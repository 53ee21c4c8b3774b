"""Input coordination pipeline: debounced renders, completions and chat."""

from __future__ import annotations

from .chat import MAX_DIAGRAM_CHARS, MAX_MESSAGE_CHARS, ChatSession, strip_mermaid_fences
from .completion import MAX_PREFIX, MAX_SUFFIX, MIN_PREFIX, CompletionController
from .debounce import Debouncer
from .models import (
    ChatMessage,
    ChatMode,
    ChatReply,
    PendingCompletion,
    RenderErrorPolicy,
    RenderOutcome,
    RenderRequest,
    RenderStatus,
    RequestToken,
    SiteState,
    TokenUsage,
    UsageStats,
)
from .render import RenderTrigger
from .tokens import RequestSequencer

__all__ = [
    "ChatMessage",
    "ChatMode",
    "ChatReply",
    "ChatSession",
    "CompletionController",
    "Debouncer",
    "MAX_DIAGRAM_CHARS",
    "MAX_MESSAGE_CHARS",
    "MAX_PREFIX",
    "MAX_SUFFIX",
    "MIN_PREFIX",
    "PendingCompletion",
    "RenderErrorPolicy",
    "RenderOutcome",
    "RenderRequest",
    "RenderStatus",
    "RenderTrigger",
    "RequestSequencer",
    "RequestToken",
    "SiteState",
    "TokenUsage",
    "UsageStats",
    "strip_mermaid_fences",
]
