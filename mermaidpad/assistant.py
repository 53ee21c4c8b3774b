"""OpenAI-backed diagram assistant used by the service."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol

import openai
from openai import AsyncOpenAI

from .errors import AssistantError, UpstreamBusyError, UpstreamUnavailableError
from .pipeline.chat import strip_mermaid_fences
from .pipeline.models import ChatMode, ChatReply, TokenUsage
from .prompts import COMPLETION_PROMPT, SYSTEM_PROMPTS, chat_user_prompt, completion_user_prompt

LOG = logging.getLogger(__name__)

_ANY_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*[ \t]*\n?|\n?\s*```\s*$")


class Assistant(Protocol):
    """Interface the service expects from a model backend."""

    async def chat(self, message: str, diagram: str, mode: ChatMode) -> tuple[ChatReply, TokenUsage | None]: ...

    async def complete(self, prefix: str, suffix: str) -> tuple[str, TokenUsage | None]: ...


class OpenAIAssistant:
    """Chat and inline completion on top of the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "gpt-4o-mini",
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self._client = client or AsyncOpenAI(api_key=api_key)

    async def chat(self, message: str, diagram: str, mode: ChatMode) -> tuple[ChatReply, TokenUsage | None]:
        """Answer a fix / improve / generate request with explanation + diagram."""

        response = await self._create(
            messages=[
                {"role": "system", "content": SYSTEM_PROMPTS[mode]},
                {"role": "user", "content": chat_user_prompt(message, diagram)},
            ],
            response_format={"type": "json_object"},
            temperature=0.3,
            max_tokens=2048,
        )
        raw = _first_content(response)
        if not raw:
            raise AssistantError("Empty response from OpenAI")
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise AssistantError("OpenAI returned malformed JSON") from exc
        if not isinstance(parsed, dict):
            raise AssistantError("OpenAI returned malformed JSON")
        explanation = parsed.get("explanation")
        mermaid = parsed.get("mermaid")
        reply = ChatReply(
            explanation=explanation if isinstance(explanation, str) else "",
            mermaid=strip_mermaid_fences(mermaid) if isinstance(mermaid, str) else "",
        )
        return reply, _usage(response)

    async def complete(self, prefix: str, suffix: str) -> tuple[str, TokenUsage | None]:
        """Return a short continuation for the cursor position."""

        response = await self._create(
            messages=[
                {"role": "system", "content": COMPLETION_PROMPT},
                {"role": "user", "content": completion_user_prompt(prefix, suffix)},
            ],
            temperature=0.2,
            max_tokens=128,
        )
        raw = _first_content(response) or ""
        return _ANY_FENCE.sub("", raw).rstrip(), _usage(response)

    async def _create(self, **kwargs: Any) -> Any:
        try:
            return await self._client.chat.completions.create(model=self.model, **kwargs)
        except openai.RateLimitError as exc:
            LOG.warning("OpenAI rate limit hit", extra={"model": self.model})
            raise UpstreamBusyError() from exc
        except openai.APIConnectionError as exc:
            LOG.warning("OpenAI unreachable", extra={"model": self.model})
            raise UpstreamUnavailableError() from exc
        except openai.APIStatusError as exc:
            if exc.status_code >= 500:
                raise UpstreamUnavailableError() from exc
            raise AssistantError(exc.message or f"OpenAI API error: {exc.status_code}") from exc


def _first_content(response: Any) -> str | None:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    return getattr(message, "content", None)


def _usage(response: Any) -> TokenUsage | None:
    usage = getattr(response, "usage", None)
    if usage is None:
        return None
    return TokenUsage(
        prompt_tokens=int(getattr(usage, "prompt_tokens", 0) or 0),
        completion_tokens=int(getattr(usage, "completion_tokens", 0) or 0),
        total_tokens=int(getattr(usage, "total_tokens", 0) or 0),
    )


__all__ = ["Assistant", "OpenAIAssistant"]
