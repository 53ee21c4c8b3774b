"""Chat session driving the assistant panel."""

from __future__ import annotations

import itertools
import logging
import re
import time
from typing import Awaitable, Callable

from mermaidpad.errors import AssistantError

from .models import ChatMessage, ChatMode, ChatReply, SiteState
from .tokens import RequestSequencer

LOG = logging.getLogger(__name__)

ChatSender = Callable[[str, str, ChatMode], Awaitable[ChatReply]]
ChatListener = Callable[["ChatSession"], None]

MAX_MESSAGE_CHARS = 4_000
MAX_DIAGRAM_CHARS = 20_000

_OPEN_FENCE = re.compile(r"^```(?:mermaid)?\s*\n*", re.IGNORECASE)
_CLOSE_FENCE = re.compile(r"\n*\s*```\s*$")


def strip_mermaid_fences(raw: str) -> str:
    """Remove Markdown code fences so the renderer only sees diagram code."""

    text = raw.strip()
    text = _OPEN_FENCE.sub("", text, count=1)
    text = _CLOSE_FENCE.sub("", text, count=1)
    return text.strip()


class ChatSession:
    """Conversation state for one chat panel.

    Failures become visible error messages; ``retry`` re-sends exactly the
    last failed input.
    """

    def __init__(
        self,
        send: ChatSender,
        *,
        current_diagram: Callable[[], str],
        on_change: ChatListener | None = None,
        mode: ChatMode = ChatMode.IMPROVE,
    ) -> None:
        self._send = send
        self._current_diagram = current_diagram
        self._on_change = on_change
        self._sequencer = RequestSequencer("chat")
        self._ids = itertools.count(1)
        self._messages: list[ChatMessage] = []
        self._pending_diagram: str | None = None
        self._failed_input: str | None = None
        self._state = SiteState.IDLE
        self.mode = mode

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def pending_diagram(self) -> str | None:
        """Diagram returned by the last reply that has not been applied yet."""

        return self._pending_diagram

    @property
    def loading(self) -> bool:
        return self._state is SiteState.IN_FLIGHT

    @property
    def can_retry(self) -> bool:
        return bool(self._failed_input) and bool(self._messages) and self._messages[-1].is_error

    async def send(self, text: str, mode: ChatMode | None = None) -> ChatMessage | None:
        """Send a message; returns the assistant entry appended, if any."""

        message = text.strip()
        if not message or self.loading:
            return None
        if mode is not None:
            self.mode = mode
        diagram = self._current_diagram()
        self._append("user", message)
        if len(message) > MAX_MESSAGE_CHARS:
            return self._fail(message, f"Message must be at most {MAX_MESSAGE_CHARS} characters.", retry=False)
        if len(diagram) > MAX_DIAGRAM_CHARS:
            return self._fail(message, f"Diagram must be at most {MAX_DIAGRAM_CHARS} characters.", retry=False)

        token = self._sequencer.issue()
        self._state = SiteState.IN_FLIGHT
        self._notify()
        try:
            reply = await self._send(message, diagram, self.mode)
        except AssistantError as exc:
            if not self._sequencer.is_current(token):
                return None
            self._state = SiteState.IDLE
            return self._fail(message, exc.message)
        if not self._sequencer.is_current(token):
            LOG.debug("Discarding stale chat reply", extra={"sequence": token.sequence})
            return None

        self._state = SiteState.APPLYING
        diagram_code = strip_mermaid_fences(reply.mermaid or "")
        self._pending_diagram = diagram_code or None
        self._failed_input = None
        entry = self._append("assistant", reply.explanation, mermaid=diagram_code or None)
        self._state = SiteState.IDLE
        self._notify()
        return entry

    async def retry(self) -> ChatMessage | None:
        """Re-issue the last failed input."""

        if not self.can_retry or self._failed_input is None:
            return None
        return await self.send(self._failed_input)

    def apply(self) -> str | None:
        """Hand over the pending diagram and clear it."""

        diagram = self._pending_diagram
        self._pending_diagram = None
        if diagram is not None:
            self._notify()
        return diagram

    def clear(self) -> None:
        """Drop the transcript; any reply still in flight is discarded."""

        self._sequencer.invalidate()
        self._messages.clear()
        self._pending_diagram = None
        self._failed_input = None
        self._state = SiteState.IDLE
        self._notify()

    def _fail(self, message: str, reason: str, *, retry: bool = True) -> ChatMessage:
        self._failed_input = message if retry else None
        entry = self._append("assistant", f"Error: {reason}", is_error=True)
        self._notify()
        return entry

    def _append(
        self,
        role: str,
        content: str,
        *,
        mermaid: str | None = None,
        is_error: bool = False,
    ) -> ChatMessage:
        prefix = "u" if role == "user" else "a"
        entry = ChatMessage(
            id=f"{prefix}-{next(self._ids)}",
            role=role,
            content=content,
            timestamp=time.time(),
            mermaid=mermaid,
            is_error=is_error,
        )
        self._messages.append(entry)
        return entry

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self)
        except Exception:
            LOG.exception("Chat listener failed")


__all__ = [
    "ChatSession",
    "MAX_DIAGRAM_CHARS",
    "MAX_MESSAGE_CHARS",
    "strip_mermaid_fences",
]
