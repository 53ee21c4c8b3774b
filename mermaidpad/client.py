"""HTTP client the editor uses to reach the assistant service."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import ERRORS_BY_CODE, AssistantError, RateLimitedError, UpstreamUnavailableError
from .pipeline.models import ChatMode, ChatReply, UsageStats
from .server.auth import IDENTITY_HEADER

LOG = logging.getLogger(__name__)


class AssistantClient:
    """Async wrapper around the /complete, /gpt, /usage and /health endpoints.

    Every failure surfaces as an ``AssistantError`` subclass so callers only
    handle one exception family.
    """

    def __init__(
        self,
        base_url: str,
        *,
        identity: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {IDENTITY_HEADER: identity} if identity else {}
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def complete(self, prefix: str, suffix: str) -> str:
        data = await self._request("POST", "/complete", json={"prefix": prefix, "suffix": suffix})
        completion = data.get("completion")
        if not isinstance(completion, str):
            raise AssistantError("Malformed completion response")
        return completion

    async def chat(self, message: str, diagram: str, mode: ChatMode) -> ChatReply:
        data = await self._request(
            "POST",
            "/gpt",
            json={"message": message, "mermaid": diagram, "mode": mode.value},
        )
        explanation = data.get("explanation")
        mermaid = data.get("mermaid")
        return ChatReply(
            explanation=explanation if isinstance(explanation, str) else "",
            mermaid=mermaid if isinstance(mermaid, str) else "",
        )

    async def usage(self) -> UsageStats:
        data = await self._request("GET", "/usage")
        by_source = data.get("bySource") or {}
        request_count = data.get("requestCount") or {}
        return UsageStats(
            total_tokens=int(data.get("totalTokens", 0)),
            prompt_tokens=int(data.get("promptTokens", 0)),
            completion_tokens=int(data.get("completionTokens", 0)),
            by_source={"gpt": int(by_source.get("gpt", 0)), "complete": int(by_source.get("complete", 0))},
            request_count={
                "gpt": int(request_count.get("gpt", 0)),
                "complete": int(request_count.get("complete", 0)),
            },
            last_updated=int(data.get("lastUpdated", 0)),
        )

    async def health(self) -> bool:
        try:
            data = await self._request("GET", "/health")
        except AssistantError:
            return False
        return bool(data.get("ok"))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            LOG.debug("Assistant service unreachable", extra={"path": path, "error": str(exc)})
            raise UpstreamUnavailableError("Could not reach the assistant service.") from exc
        try:
            data = response.json()
        except ValueError:
            data = None
        if response.is_success:
            if not isinstance(data, dict):
                raise AssistantError("Malformed response from the assistant service.")
            return data
        raise _error_from_response(response, data)


def _error_from_response(response: httpx.Response, data: object) -> AssistantError:
    message = f"Request failed ({response.status_code})"
    code = None
    if isinstance(data, dict):
        message = str(data.get("error") or message)
        code = data.get("code")
    if code == RateLimitedError.code:
        retry_after = response.headers.get("Retry-After", "60")
        return RateLimitedError(int(retry_after) if retry_after.isdigit() else 60, message)
    error_cls = ERRORS_BY_CODE.get(code) if isinstance(code, str) else None
    if error_cls is None:
        error_cls = _fallback_class(response.status_code)
    return error_cls(message)


def _fallback_class(status_code: int) -> type[AssistantError]:
    for cls in ERRORS_BY_CODE.values():
        if cls is not AssistantError and cls is not RateLimitedError and cls.status_code == status_code:
            return cls
    return AssistantError


__all__ = ["AssistantClient"]
