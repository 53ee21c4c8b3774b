"""Debounced render trigger feeding the preview pane."""

from __future__ import annotations

import logging
from typing import Callable

from mermaidpad.renderer import Renderer, RenderError

from .debounce import Debouncer
from .models import (
    RenderErrorPolicy,
    RenderOutcome,
    RenderRequest,
    RenderStatus,
    SiteState,
)
from .tokens import RequestSequencer

LOG = logging.getLogger(__name__)

OutcomeListener = Callable[[RenderOutcome], None]


class RenderTrigger:
    """Turns every buffer change into at most one render per quiet period."""

    def __init__(
        self,
        renderer: Renderer,
        *,
        delay: float = 0.3,
        error_policy: RenderErrorPolicy = RenderErrorPolicy.CLEAR,
        on_outcome: OutcomeListener | None = None,
        site: str = "preview",
    ) -> None:
        self._renderer = renderer
        self._debouncer = Debouncer(delay)
        self._sequencer = RequestSequencer(site)
        self._error_policy = error_policy
        self._on_outcome = on_outcome
        self._state = SiteState.IDLE
        self._svg: str | None = None
        self._error: str | None = None
        self._last_request: RenderRequest | None = None

    @property
    def state(self) -> SiteState:
        return self._state

    @property
    def svg(self) -> str | None:
        """Last successfully rendered SVG still on display."""

        return self._svg

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def last_request(self) -> RenderRequest | None:
        """Most recently issued render request."""

        return self._last_request

    def content_changed(self, content: str) -> None:
        """Record a buffer change; the render runs once the buffer is quiet."""

        if not content.strip():
            self._debouncer.cancel()
            self._sequencer.invalidate()
            self._svg = None
            self._error = None
            self._state = SiteState.IDLE
            self._publish(RenderOutcome(status=RenderStatus.CLEARED))
            return
        self._state = SiteState.DEBOUNCING
        self._debouncer.submit(lambda snapshot=content: self._render(snapshot))

    async def drain(self) -> None:
        """Wait for pending and in-flight renders (testing helper)."""

        await self._debouncer.drain()

    def close(self) -> None:
        self._debouncer.close()
        self._sequencer.invalidate()
        self._state = SiteState.IDLE

    async def _render(self, snapshot: str) -> None:
        request = RenderRequest(content=snapshot, token=self._sequencer.issue())
        self._last_request = request
        self._state = SiteState.IN_FLIGHT
        try:
            result = await self._renderer.render(
                snapshot.strip(),
                diagram_id=f"diagram-{request.request_id}",
            )
        except RenderError as exc:
            if not self._sequencer.is_current(request.token):
                LOG.debug("Discarding stale render failure", extra={"request_id": request.request_id})
                return
            self._state = SiteState.APPLYING
            self._error = str(exc) or "Failed to render diagram"
            if self._error_policy is RenderErrorPolicy.CLEAR:
                self._svg = None
            self._publish(
                RenderOutcome(status=RenderStatus.INVALID, request=request, svg=self._svg, error=self._error)
            )
            self._settle()
            return
        if not self._sequencer.is_current(request.token):
            LOG.debug("Discarding stale render result", extra={"request_id": request.request_id})
            return
        self._state = SiteState.APPLYING
        self._svg = result.svg
        self._error = None
        self._publish(RenderOutcome(status=RenderStatus.RENDERED, request=request, svg=result.svg))
        self._settle()

    def _settle(self) -> None:
        if self._state is SiteState.APPLYING:
            self._state = SiteState.DEBOUNCING if self._debouncer.pending else SiteState.IDLE

    def _publish(self, outcome: RenderOutcome) -> None:
        if self._on_outcome is None:
            return
        try:
            self._on_outcome(outcome)
        except Exception:
            LOG.exception("Render outcome listener failed", extra={"status": outcome.status.value})


__all__ = ["RenderTrigger"]
