"""Inline completion controller: one outstanding call per input site."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from mermaidpad.errors import AssistantError

from .models import PendingCompletion, SiteState
from .tokens import RequestSequencer

LOG = logging.getLogger(__name__)

CompletionFetcher = Callable[[str, str], Awaitable[str]]
SuggestionListener = Callable[[str], None]

MIN_PREFIX = 10
MAX_PREFIX = 8_000
MAX_SUFFIX = 2_000


class CompletionController:
    """Gates, debounces and cancels completion calls for a single input site.

    A call is checked for cancellation and staleness before it is issued,
    after the response returns, and once more before the suggestion is
    applied, so a superseded call never touches visible state.
    """

    def __init__(
        self,
        fetch: CompletionFetcher,
        *,
        delay: float = 0.5,
        min_prefix: int = MIN_PREFIX,
        max_prefix: int = MAX_PREFIX,
        max_suffix: int = MAX_SUFFIX,
        site: str = "editor",
        on_suggestion: SuggestionListener | None = None,
    ) -> None:
        self._fetch = fetch
        self._delay = delay
        self._min_prefix = min_prefix
        self._max_prefix = max_prefix
        self._max_suffix = max_suffix
        self._sequencer = RequestSequencer(site)
        self._on_suggestion = on_suggestion
        self._pending: PendingCompletion | None = None
        self._state = SiteState.IDLE

    @property
    def state(self) -> SiteState:
        return self._state

    @property
    def outstanding(self) -> int:
        """Number of completion calls currently in flight (0 or 1)."""

        pending = self._pending
        if pending is None or pending.handle is None or pending.handle.done():
            return 0
        return 1

    @property
    def pending(self) -> PendingCompletion | None:
        return self._pending

    async def request(self, prefix: str, suffix: str) -> str:
        """Return a suggestion for the cursor position, or "" when there is none."""

        if len(prefix) < self._min_prefix:
            return ""
        token = self._sequencer.issue()
        self._state = SiteState.DEBOUNCING
        await asyncio.sleep(self._delay)
        if not self._sequencer.is_current(token):
            return ""

        self._abort_pending()
        prefix = prefix[-self._max_prefix:]
        suffix = suffix[: self._max_suffix]
        handle = asyncio.ensure_future(self._fetch(prefix, suffix))
        self._pending = PendingCompletion(prefix=prefix, suffix=suffix, token=token, handle=handle)
        self._state = SiteState.IN_FLIGHT
        try:
            completion = await handle
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return ""
        except AssistantError as exc:
            if self._sequencer.is_current(token):
                self._state = SiteState.IDLE
            LOG.debug("Completion request failed", extra={"error": str(exc)})
            return ""
        finally:
            if self._pending is not None and self._pending.token == token:
                self._pending = None

        if not self._sequencer.is_current(token):
            LOG.debug("Discarding stale completion", extra={"sequence": token.sequence})
            return ""
        if not isinstance(completion, str):
            self._state = SiteState.IDLE
            return ""
        self._state = SiteState.APPLYING
        if self._sequencer.is_current(token) and self._on_suggestion is not None:
            try:
                self._on_suggestion(completion)
            except Exception:
                LOG.exception("Suggestion listener failed")
        self._state = SiteState.IDLE
        return completion

    def cancel(self) -> None:
        """Abort the outstanding call and make any waiting request stale."""

        self._sequencer.invalidate()
        self._abort_pending()
        self._state = SiteState.IDLE

    def _abort_pending(self) -> None:
        pending = self._pending
        if pending is None:
            return
        pending.cancel()
        self._pending = None


__all__ = ["CompletionController", "MAX_PREFIX", "MAX_SUFFIX", "MIN_PREFIX"]
