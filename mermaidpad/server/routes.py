"""Assistant API routes: completion, chat, usage and health."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from mermaidpad.assistant import Assistant
from mermaidpad.errors import InputRejectedError
from mermaidpad.pipeline.chat import MAX_DIAGRAM_CHARS, MAX_MESSAGE_CHARS
from mermaidpad.pipeline.completion import MAX_PREFIX, MAX_SUFFIX
from mermaidpad.pipeline.models import ChatMode, UsageStats

from .deps import Services, configured_assistant, rate_limited_identity, signed_in_identity

LOG = logging.getLogger(__name__)

router = APIRouter()


class CompleteRequest(BaseModel):
    prefix: Any = None
    suffix: Any = None


class CompleteResponse(BaseModel):
    completion: str


class ChatRequest(BaseModel):
    message: Any = None
    mermaid: Any = None
    mode: Any = None


class ChatResponse(BaseModel):
    explanation: str
    mermaid: str


@router.get("/health")
async def health(services: Services) -> dict[str, bool]:
    return {"ok": True, "openaiConfigured": bool(services.config.openai_api_key)}


@router.post("/complete", response_model=CompleteResponse)
async def complete(
    payload: CompleteRequest,
    services: Services,
    identity: Annotated[str, Depends(rate_limited_identity)],
    assistant: Annotated[Assistant, Depends(configured_assistant)],
) -> CompleteResponse:
    prefix = payload.prefix[:MAX_PREFIX] if isinstance(payload.prefix, str) else ""
    suffix = payload.suffix[:MAX_SUFFIX] if isinstance(payload.suffix, str) else ""
    completion, usage = await assistant.complete(prefix, suffix)
    if usage is not None:
        services.usage.record(identity, usage, "complete")
    return CompleteResponse(completion=completion)


@router.post("/gpt", response_model=ChatResponse)
async def chat(
    payload: ChatRequest,
    services: Services,
    identity: Annotated[str, Depends(rate_limited_identity)],
    assistant: Annotated[Assistant, Depends(configured_assistant)],
) -> ChatResponse:
    message = payload.message if isinstance(payload.message, str) else ""
    diagram = payload.mermaid if isinstance(payload.mermaid, str) else ""
    mode = _parse_mode(payload.mode)
    if not message.strip():
        raise InputRejectedError("Message is required")
    if len(message) > MAX_MESSAGE_CHARS:
        raise InputRejectedError(f"Message must be at most {MAX_MESSAGE_CHARS} characters.")
    if len(diagram) > MAX_DIAGRAM_CHARS:
        raise InputRejectedError(f"Diagram must be at most {MAX_DIAGRAM_CHARS} characters.")
    reply, usage = await assistant.chat(message, diagram, mode)
    if usage is not None:
        services.usage.record(identity, usage, "gpt")
    LOG.info("Chat reply issued", extra={"mode": mode.value})
    return ChatResponse(explanation=reply.explanation, mermaid=reply.mermaid)


@router.get("/usage")
async def usage(
    services: Services,
    identity: Annotated[str, Depends(signed_in_identity)],
) -> dict[str, Any]:
    stats = services.usage.get(identity) or UsageStats()
    return stats.as_payload()


def _parse_mode(raw: object) -> ChatMode:
    if isinstance(raw, str) and raw in {mode.value for mode in ChatMode}:
        return ChatMode(raw)
    return ChatMode.IMPROVE


__all__ = ["router"]
