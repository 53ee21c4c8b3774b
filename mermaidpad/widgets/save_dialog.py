"""Modal prompt asking for a project name."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Static


class SaveAsScreen(ModalScreen[str | None]):
    """Ask for a project name; dismisses with the name or None when cancelled."""

    DEFAULT_CSS = """
    SaveAsScreen {
        align: center middle;
    }

    #save-dialog {
        width: 50;
        height: auto;
        padding: 1 2;
        border: round $primary;
        background: $surface;
    }

    #save-dialog .save-actions {
        height: auto;
        margin-top: 1;
    }

    #save-dialog .save-actions > Button {
        margin-right: 1;
    }
    """

    BINDINGS = [("escape", "cancel", "Cancel")]

    def __init__(self, name: str = "") -> None:
        super().__init__()
        self._initial_name = name

    def compose(self) -> ComposeResult:
        with Vertical(id="save-dialog"):
            yield Static("Save project as", classes="panel-title")
            yield Input(value=self._initial_name, placeholder="Project name", id="save-name")
            yield Horizontal(
                Button("Save", id="save-confirm", variant="primary"),
                Button("Cancel", id="save-cancel"),
                classes="save-actions",
            )

    def on_mount(self) -> None:
        self.query_one("#save-name", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self._submit(event.value)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save-confirm":
            self._submit(self.query_one("#save-name", Input).value)
        else:
            self.dismiss(None)

    def action_cancel(self) -> None:
        self.dismiss(None)

    def _submit(self, value: str) -> None:
        name = value.strip()
        if not name:
            self.notify("Enter a project name.", severity="warning")
            return
        self.dismiss(name)


__all__ = ["SaveAsScreen"]
