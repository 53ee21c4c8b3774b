"""Assistant chat panel with a draggable width handle."""

from __future__ import annotations

from typing import Callable

from textual import events
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, VerticalScroll
from textual.widgets import Button, Input, Select, Static

from mermaidpad.pipeline import ChatMessage, ChatMode, ChatSession

MIN_WIDTH = 28
MAX_WIDTH = 80
DEFAULT_WIDTH = 40

MODE_LABELS: dict[ChatMode, str] = {
    ChatMode.FIX: "Fix errors",
    ChatMode.IMPROVE: "Improve",
    ChatMode.GENERATE: "Generate new",
}


class ChatPanel(Container):
    """Chat transcript, mode picker and Send / Retry / Apply actions."""

    DEFAULT_CSS = """
    ChatPanel {
        layout: horizontal;
        height: 1fr;
    }

    #chat-body {
        layout: vertical;
        width: 1fr;
        padding: 0 1;
    }

    #chat-transcript {
        height: 1fr;
        border: round $secondary 40%;
    }

    #chat-transcript .chat-user {
        color: $accent;
    }

    #chat-transcript .chat-error {
        color: $error;
    }

    ChatPanel .chat-actions {
        height: auto;
    }

    ChatPanel .chat-actions > Button {
        margin-right: 1;
        min-width: 8;
    }

    ChatResizeHandle {
        width: 1;
        height: 100%;
        background: $surface-darken-2;
    }

    ChatResizeHandle.dragging,
    ChatPanel.resizing ChatResizeHandle {
        background: $primary;
    }
    """

    def __init__(
        self,
        chat: ChatSession,
        *,
        on_apply: Callable[[str], None],
        initial_width: int | None = None,
        on_width_change: Callable[[int], None] | None = None,
    ) -> None:
        super().__init__(id="chat-panel")
        self._chat = chat
        self._on_apply = on_apply
        self._on_width_change = on_width_change or (lambda _: None)
        self._width = initial_width or DEFAULT_WIDTH
        self._resizing = False
        self._start_x = 0
        self._start_width = self._width

    @property
    def resizing(self) -> bool:
        return self._resizing

    @property
    def panel_width(self) -> int:
        return self._width

    def compose(self) -> ComposeResult:
        self._apply_width(self._width)
        yield ChatResizeHandle(self)
        with Container(id="chat-body"):
            yield Static("Assistant", classes="panel-title")
            yield Select(
                [(label, mode.value) for mode, label in MODE_LABELS.items()],
                value=self._chat.mode.value,
                allow_blank=False,
                id="chat-mode",
            )
            yield VerticalScroll(id="chat-transcript")
            yield Input(placeholder="Ask for a fix, an improvement or a new diagram", id="chat-input")
            yield Horizontal(
                Button("Send", id="chat-send", variant="primary"),
                Button("Retry", id="chat-retry", disabled=True),
                Button("Apply", id="chat-apply", variant="success", disabled=True),
                classes="chat-actions",
            )

    def on_mount(self) -> None:
        self.refresh_transcript()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "chat-input":
            return
        event.stop()
        self._send(event.value)

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id
        if button_id == "chat-send":
            self._send(self.query_one("#chat-input", Input).value)
        elif button_id == "chat-retry":
            self.run_worker(self._chat.retry(), group="chat", exit_on_error=False)
        elif button_id == "chat-apply":
            diagram = self._chat.apply()
            if diagram:
                self._on_apply(diagram)

    def on_select_changed(self, event: Select.Changed) -> None:
        if isinstance(event.value, str):
            self._chat.mode = ChatMode(event.value)

    def refresh_transcript(self) -> None:
        """Redraw the transcript and button states from the chat session."""

        if not self.is_mounted:
            return
        transcript = self.query_one("#chat-transcript", VerticalScroll)
        transcript.remove_children()
        messages = self._chat.messages
        if messages:
            transcript.mount_all(_message_widget(message) for message in messages)
        if self._chat.loading:
            transcript.mount(Static("Thinking…", classes="chat-loading"))
        transcript.scroll_end(animate=False)
        self.query_one("#chat-send", Button).disabled = self._chat.loading
        self.query_one("#chat-retry", Button).disabled = not self._chat.can_retry
        self.query_one("#chat-apply", Button).disabled = self._chat.pending_diagram is None

    def begin_resize(self, screen_x: int) -> None:
        self._resizing = True
        self.set_class(True, "resizing")
        self._start_x = screen_x
        self._start_width = self._width

    def update_resize(self, screen_x: int) -> None:
        if not self._resizing:
            return
        # The handle sits on the left edge, so dragging left widens the panel.
        delta = self._start_x - screen_x
        self._apply_width(max(MIN_WIDTH, min(MAX_WIDTH, self._start_width + delta)))

    def end_resize(self) -> None:
        if not self._resizing:
            return
        self._resizing = False
        self.set_class(False, "resizing")
        self._on_width_change(int(self._width))

    def _send(self, text: str) -> None:
        if not text.strip() or self._chat.loading:
            return
        self.query_one("#chat-input", Input).value = ""
        self.run_worker(self._chat.send(text), group="chat", exit_on_error=False)

    def _apply_width(self, width: int) -> None:
        self._width = width
        self.styles.width = width


class ChatResizeHandle(Static):
    """Drag handle on the chat panel's left edge."""

    def __init__(self, panel: ChatPanel) -> None:
        super().__init__("", id="chat-resize-handle")
        self._panel = panel

    def on_mouse_down(self, event: events.MouseDown) -> None:
        self.capture_mouse()
        self._panel.begin_resize(event.screen_x)
        self.set_class(True, "dragging")

    def on_mouse_move(self, event: events.MouseMove) -> None:
        if self._panel.resizing:
            self._panel.update_resize(event.screen_x)

    def on_mouse_up(self, event: events.MouseUp) -> None:
        self.release_mouse()
        self._panel.end_resize()
        self.set_class(False, "dragging")


def _message_widget(message: ChatMessage) -> Static:
    speaker = "You" if message.role == "user" else "Assistant"
    lines = [f"{speaker}: {message.content}"]
    if message.mermaid:
        lines.append(message.mermaid)
    classes = "chat-error" if message.is_error else f"chat-{message.role}"
    return Static("\n".join(lines), classes=classes, markup=False)


__all__ = ["ChatPanel", "MODE_LABELS"]
