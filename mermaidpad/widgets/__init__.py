"""Widget library for the Textual UI."""

from __future__ import annotations

from .chat_panel import ChatPanel
from .editor_pane import EditorPane
from .preview_pane import PreviewPane
from .save_dialog import SaveAsScreen
from .status_bar import StatusBar

__all__ = ["ChatPanel", "EditorPane", "PreviewPane", "SaveAsScreen", "StatusBar"]
