"""Status bar widget that mirrors the document session."""

from __future__ import annotations

from typing import Callable

from textual.widgets import Static

from mermaidpad.pipeline import RenderStatus
from mermaidpad.session import DocumentSession, DocumentState


class StatusBar(Static):
    """Compact status strip rendered above Textual's footer."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    def __init__(self, session: DocumentSession, *, renderer_label: Callable[[], str] | None = None) -> None:
        super().__init__("", id="status-bar", markup=False)
        self._session = session
        self._renderer_label = renderer_label or (lambda: "Kroki")
        self._assistant_label = "Assistant: unknown"
        self._usage_label: str | None = None
        self._unsubscribe: Callable[[], None] | None = None

    async def on_mount(self) -> None:
        self._unsubscribe = self._session.subscribe(self._handle_session_update)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def set_usage(self, total_tokens: int, identity: str | None = None) -> None:
        who = f"{identity} " if identity else ""
        self._usage_label = f"Usage: {who}{total_tokens} tokens"
        self._handle_session_update(self._session.state)

    def set_assistant_status(self, label: str) -> None:
        self._assistant_label = f"Assistant: {label}"
        self._handle_session_update(self._session.state)

    def _handle_session_update(self, state: DocumentState) -> None:
        title = state.title + (" *" if state.dirty else "")
        render = {
            RenderStatus.RENDERED: "Rendered",
            RenderStatus.CLEARED: "Empty",
            RenderStatus.INVALID: "Invalid",
        }.get(state.render_status, "Pending")
        edited = state.updated_at.astimezone().strftime("%H:%M:%S")
        parts = [
            f"Diagram: {title}",
            f"Preview: {render}",
            f"Renderer: {self._renderer_label()}",
            self._assistant_label,
            f"Updated: {edited}",
        ]
        if self._usage_label:
            parts.append(self._usage_label)
        if state.render_error:
            parts.append(f"Error: {state.render_error.splitlines()[0][:80]}")
        self.update(" | ".join(parts))


__all__ = ["StatusBar"]
