"""Diagram editor wired into the render trigger and inline completions."""

from __future__ import annotations

from typing import Callable

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.widgets import Static, TextArea

from mermaidpad.pipeline import CompletionController, RenderTrigger
from mermaidpad.session import DocumentSession, DocumentState


class EditorPane(Container):
    """Mermaid source editor with a ghost-suggestion line underneath."""

    DEFAULT_CSS = """
    EditorPane {
        layout: vertical;
        border: round $primary 40%;
        padding: 0 1;
        height: 1fr;
        background: $surface;
    }

    EditorPane .panel-title {
        text-style: bold;
    }

    EditorPane TextArea {
        height: 1fr;
    }

    #editor-suggestion {
        height: auto;
        min-height: 1;
        color: $text-muted;
        text-style: italic;
    }

    EditorPane:focus-within {
        border: round $primary;
    }
    """

    BINDINGS = Container.BINDINGS + [
        Binding("ctrl+l", "accept_suggestion", "Accept suggestion", priority=True),
        Binding("escape", "dismiss_suggestion", "Dismiss suggestion", show=False),
    ]

    def __init__(
        self,
        session: DocumentSession,
        render_trigger: RenderTrigger,
        completions: CompletionController | None = None,
    ) -> None:
        super().__init__(id="editor-pane")
        self._session = session
        self._render_trigger = render_trigger
        self._completions = completions
        self._editor: TextArea | None = None
        self._suggestion_line: Static | None = None
        self._suggestion = ""
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def suggestion(self) -> str:
        """Suggestion currently offered at the cursor."""

        return self._suggestion

    def compose(self) -> ComposeResult:
        yield Static("Diagram", classes="panel-title")
        yield TextArea(self._session.state.content, id="editor-text", show_line_numbers=True)
        yield Static("", id="editor-suggestion", markup=False)

    async def on_mount(self) -> None:
        self._editor = self.query_one("#editor-text", TextArea)
        self._suggestion_line = self.query_one("#editor-suggestion", Static)
        self._unsubscribe = self._session.subscribe(self._handle_session_update)
        self._render_trigger.content_changed(self._editor.text)

    def on_unmount(self) -> None:
        self._render_trigger.close()
        if self._completions:
            self._completions.cancel()
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        content = event.text_area.text
        self._show_suggestion("")
        self._session.update_content(content)
        self._render_trigger.content_changed(content)
        self._request_completion()

    def action_accept_suggestion(self) -> None:
        if not self._editor or not self._suggestion:
            return
        suggestion = self._suggestion
        self._show_suggestion("")
        self._editor.insert(suggestion)

    def action_dismiss_suggestion(self) -> None:
        if self._completions:
            self._completions.cancel()
        self._show_suggestion("")

    def apply_suggestion(self, suggestion: str) -> None:
        """Offer a suggestion returned by the completion controller."""

        self._show_suggestion(suggestion)

    def _request_completion(self) -> None:
        if not self._completions or not self._editor:
            return
        editor = self._editor
        cursor = editor.cursor_location
        prefix = editor.get_text_range((0, 0), cursor)
        suffix = editor.get_text_range(cursor, editor.document.end)
        self.run_worker(
            self._completions.request(prefix, suffix),
            group="completion",
            exclusive=True,
            exit_on_error=False,
        )

    def _show_suggestion(self, suggestion: str) -> None:
        self._suggestion = suggestion
        if not self._suggestion_line:
            return
        if suggestion:
            first_line = suggestion.strip().splitlines()[0] if suggestion.strip() else suggestion
            self._suggestion_line.update(f"Suggestion: {first_line}  (Ctrl+L to accept)")
        else:
            self._suggestion_line.update("")

    def _handle_session_update(self, state: DocumentState) -> None:
        editor = self._editor
        if editor is None or editor.text == state.content:
            return
        self._show_suggestion("")
        editor.load_text(state.content)
        self._render_trigger.content_changed(state.content)


__all__ = ["EditorPane"]
