"""Endpoint tests for the assistant service."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from mermaidpad.config import ServerConfig
from mermaidpad.errors import AssistantError, UpstreamBusyError, UpstreamUnavailableError
from mermaidpad.pipeline import ChatMode, ChatReply, TokenUsage
from mermaidpad.server import IDENTITY_HEADER, RateLimiter, create_app

ALICE = {IDENTITY_HEADER: "alice@example.com"}


class _StubAssistant:
    def __init__(self) -> None:
        self.completions: list[tuple[str, str]] = []
        self.chats: list[tuple[str, str, ChatMode]] = []
        self.error: Exception | None = None

    async def complete(self, prefix: str, suffix: str) -> tuple[str, TokenUsage | None]:
        if self.error is not None:
            raise self.error
        self.completions.append((prefix, suffix))
        return "  B --> C", TokenUsage(prompt_tokens=30, completion_tokens=5, total_tokens=35)

    async def chat(self, message: str, diagram: str, mode: ChatMode) -> tuple[ChatReply, TokenUsage | None]:
        if self.error is not None:
            raise self.error
        self.chats.append((message, diagram, mode))
        reply = ChatReply(explanation="Renamed the start node.", mermaid="flowchart TD\n  S[Begin]")
        return reply, TokenUsage(prompt_tokens=100, completion_tokens=20, total_tokens=120)


def _client(assistant: _StubAssistant | None = None, **settings: object) -> TestClient:
    config = ServerConfig(openai_api_key="sk-test", **settings)
    return TestClient(create_app(config, assistant=assistant or _StubAssistant()))


def test_health_reports_configuration() -> None:
    configured = _client().get("/health")
    missing = TestClient(create_app(ServerConfig())).get("/health")

    assert configured.json() == {"ok": True, "openaiConfigured": True}
    assert missing.json() == {"ok": True, "openaiConfigured": False}


def test_complete_returns_suggestion_and_records_usage() -> None:
    assistant = _StubAssistant()
    client = _client(assistant)

    response = client.post("/complete", json={"prefix": "flowchart TD\n  A --> B\n", "suffix": ""}, headers=ALICE)

    assert response.status_code == 200
    assert response.json() == {"completion": "  B --> C"}
    usage = client.get("/usage", headers=ALICE).json()
    assert usage["totalTokens"] == 35
    assert usage["bySource"] == {"gpt": 0, "complete": 35}
    assert usage["requestCount"] == {"gpt": 0, "complete": 1}


def test_complete_truncates_context() -> None:
    assistant = _StubAssistant()
    client = _client(assistant)

    client.post(
        "/complete",
        json={"prefix": "p" * 8_000 + "q" * 500, "suffix": "s" * 2_000 + "t" * 10},
        headers=ALICE,
    )

    prefix, suffix = assistant.completions[0]
    assert prefix == "p" * 8_000
    assert suffix == "s" * 2_000


def test_complete_treats_non_string_fields_as_empty() -> None:
    assistant = _StubAssistant()
    client = _client(assistant)

    response = client.post("/complete", json={"prefix": 12, "suffix": ["x"]}, headers=ALICE)

    assert response.status_code == 200
    assert assistant.completions == [("", "")]


@pytest.mark.parametrize("body", [b"not json", b'["prefix"]'])
def test_malformed_body_is_rejected_with_error_payload(body: bytes) -> None:
    assistant = _StubAssistant()
    client = _client(assistant)

    response = client.post(
        "/complete",
        content=body,
        headers={**ALICE, "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body", "code": "input_rejected"}
    assert assistant.completions == []


def test_identity_is_normalised_for_limits_and_usage() -> None:
    assistant = _StubAssistant()
    client = _client(assistant, rate_limit_max_requests=1)
    body = {"prefix": "flowchart TD\n  A", "suffix": ""}

    first = client.post("/complete", json=body, headers={IDENTITY_HEADER: "Alice@Example.com"})
    second = client.post("/complete", json=body, headers={IDENTITY_HEADER: " alice@example.com "})
    usage = client.get("/usage", headers={IDENTITY_HEADER: "ALICE@EXAMPLE.COM"}).json()

    assert first.status_code == 200
    assert second.status_code == 429
    assert usage["totalTokens"] == 35


def test_missing_identity_is_refused() -> None:
    client = _client()

    complete = client.post("/complete", json={"prefix": "flowchart TD", "suffix": ""})
    usage = client.get("/usage")

    assert complete.status_code == 403
    assert complete.json() == {
        "error": "Access denied. You are not allowed to use this app.",
        "code": "access_denied",
    }
    assert usage.status_code == 401
    assert usage.json()["code"] == "unauthenticated"


def test_identity_outside_allow_list_is_refused() -> None:
    assistant = _StubAssistant()
    client = _client(assistant, allowed_emails="alice@example.com")

    denied = client.post("/gpt", json={"message": "hi"}, headers={IDENTITY_HEADER: "mallory@example.com"})
    allowed = client.post("/gpt", json={"message": "hi"}, headers={IDENTITY_HEADER: "ALICE@example.com"})

    assert denied.status_code == 403
    assert allowed.status_code == 200
    assert len(assistant.chats) == 1


def test_twenty_first_request_in_window_is_rate_limited() -> None:
    client = _client()
    clock_ms = [5_000_000]
    services = client.app.state.services
    services.rate_limiter = RateLimiter(window_ms=60_000, max_requests=20, clock=lambda: clock_ms[0])
    body = {"prefix": "flowchart TD\n  A", "suffix": ""}

    statuses = [client.post("/complete", json=body, headers=ALICE).status_code for _ in range(20)]
    clock_ms[0] += 30_500
    limited = client.post("/complete", json=body, headers=ALICE)
    again = client.post("/complete", json=body, headers=ALICE)

    assert statuses == [200] * 20
    assert limited.status_code == 429
    assert limited.headers["Retry-After"] == "30"
    assert limited.json()["code"] == "rate_limited"
    assert again.status_code == 429


def test_rate_limit_is_checked_before_validation() -> None:
    assistant = _StubAssistant()
    client = _client(assistant, rate_limit_max_requests=1)

    first = client.post("/gpt", json={"message": ""}, headers=ALICE)
    second = client.post("/gpt", json={"message": "hello"}, headers=ALICE)

    assert first.status_code == 400
    assert second.status_code == 429
    assert assistant.chats == []


def test_chat_returns_reply_and_records_usage() -> None:
    assistant = _StubAssistant()
    client = _client(assistant)

    response = client.post(
        "/gpt",
        json={"message": "rename start", "mermaid": "flowchart TD\n  S[Start]", "mode": "fix"},
        headers=ALICE,
    )

    assert response.status_code == 200
    assert response.json() == {"explanation": "Renamed the start node.", "mermaid": "flowchart TD\n  S[Begin]"}
    assert assistant.chats == [("rename start", "flowchart TD\n  S[Start]", ChatMode.FIX)]
    usage = client.get("/usage", headers=ALICE).json()
    assert usage["bySource"]["gpt"] == 120
    assert usage["requestCount"]["gpt"] == 1


def test_chat_unknown_mode_falls_back_to_improve() -> None:
    assistant = _StubAssistant()
    client = _client(assistant)

    client.post("/gpt", json={"message": "polish", "mode": "rewrite-everything"}, headers=ALICE)

    assert assistant.chats[0][2] is ChatMode.IMPROVE


@pytest.mark.parametrize(
    ("body", "error"),
    [
        ({"message": "   "}, "Message is required"),
        ({"message": "m" * 4_500}, "Message must be at most 4000 characters."),
        ({"message": "ok", "mermaid": "d" * 20_001}, "Diagram must be at most 20000 characters."),
    ],
)
def test_chat_rejects_invalid_input(body: dict[str, object], error: str) -> None:
    assistant = _StubAssistant()
    client = _client(assistant)

    response = client.post("/gpt", json=body, headers=ALICE)

    assert response.status_code == 400
    assert response.json() == {"error": error, "code": "input_rejected"}
    assert assistant.chats == []


def test_missing_api_key_is_reported() -> None:
    client = TestClient(create_app(ServerConfig()))

    response = client.post("/complete", json={"prefix": "flowchart TD", "suffix": ""}, headers=ALICE)

    assert response.status_code == 500
    assert response.json() == {"error": "OPENAI_API_KEY is not configured", "code": "not_configured"}


@pytest.mark.parametrize(
    ("error", "status", "code"),
    [
        (UpstreamBusyError(), 429, "upstream_busy"),
        (UpstreamUnavailableError(), 503, "upstream_unavailable"),
        (AssistantError("OpenAI returned malformed JSON"), 500, "error"),
    ],
)
def test_upstream_failures_are_mapped(error: Exception, status: int, code: str) -> None:
    assistant = _StubAssistant()
    assistant.error = error
    client = _client(assistant)

    response = client.post("/gpt", json={"message": "hello"}, headers=ALICE)

    assert response.status_code == status
    assert response.json()["code"] == code
    assert "Retry-After" not in response.headers


def test_usage_is_zero_for_new_identity() -> None:
    response = _client().get("/usage", headers=ALICE)

    assert response.status_code == 200
    assert response.json() == {
        "totalTokens": 0,
        "promptTokens": 0,
        "completionTokens": 0,
        "bySource": {"gpt": 0, "complete": 0},
        "requestCount": {"gpt": 0, "complete": 0},
        "lastUpdated": 0,
    }
