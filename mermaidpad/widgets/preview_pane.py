"""Preview pane summarising the last rendered diagram."""

from __future__ import annotations

import html
import re
from typing import Callable

from textual.app import ComposeResult
from textual.containers import VerticalScroll
from textual.widgets import Static

from mermaidpad.pipeline import RenderStatus
from mermaidpad.session import DocumentSession, DocumentState

_TEXT_NODE = re.compile(r"<text[^>]*>([^<]*)</text>")


class PreviewPane(VerticalScroll):
    """Terminal stand-in for the SVG preview.

    Shows the render status, any render error and the labels extracted from
    the SVG. The SVG itself is kept on the session for export.
    """

    DEFAULT_CSS = """
    PreviewPane {
        border: round $secondary 40%;
        padding: 0 1;
        height: 1fr;
    }

    PreviewPane .panel-title {
        text-style: bold;
    }

    #preview-status {
        color: $text-muted;
    }

    #preview-error {
        color: $error;
    }
    """

    def __init__(self, session: DocumentSession) -> None:
        super().__init__(id="preview-pane")
        self._session = session
        self._unsubscribe: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        yield Static("Preview", classes="panel-title")
        yield Static("Waiting for first render…", id="preview-status")
        yield Static("", id="preview-error", markup=False)
        yield Static("", id="preview-body", markup=False)

    async def on_mount(self) -> None:
        self._unsubscribe = self._session.subscribe(self._handle_session_update)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_session_update(self, state: DocumentState) -> None:
        status = self.query_one("#preview-status", Static)
        error = self.query_one("#preview-error", Static)
        body = self.query_one("#preview-body", Static)
        if state.render_status is None:
            return
        if state.render_status is RenderStatus.CLEARED:
            status.update("Nothing to render.")
        elif state.render_status is RenderStatus.INVALID:
            status.update("Render failed" + (" (showing last good diagram)" if state.svg else ""))
        else:
            status.update(f"Rendered · {len(state.svg or '')} bytes of SVG")
        error.update(state.render_error or "")
        body.update(svg_outline(state.svg) if state.svg else "")


def svg_outline(svg: str) -> str:
    """Text labels of an SVG document, one per line."""

    labels = [html.unescape(label).strip() for label in _TEXT_NODE.findall(svg)]
    return "\n".join(label for label in labels if label) or "(diagram has no text labels)"


__all__ = ["PreviewPane", "svg_outline"]
