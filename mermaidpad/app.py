"""Textual application entry point for mermaidpad."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Footer, Header

from .client import AssistantClient
from .config import AppConfig, load_config, save_config
from .errors import AssistantError
from .pipeline import ChatSession, CompletionController, RenderOutcome, RenderTrigger
from .projects import ProjectStore
from .providers import ProjectDeleteProvider, ProjectOpenProvider, TemplateProvider
from .renderer import DemoRenderer, FallbackRenderer, KrokiRenderer, Renderer
from .session import DocumentSession
from .templates import TEMPLATE_LABELS
from .widgets import ChatPanel, EditorPane, PreviewPane, SaveAsScreen, StatusBar

LOG = logging.getLogger(__name__)

THEME_ALIASES = {"dark": "textual-dark", "light": "textual-light"}


def _load_app_config() -> AppConfig:
    """Load configuration with a small wrapper for test overrides."""

    return load_config()


def _project_store() -> ProjectStore:
    return ProjectStore()


def _build_renderer(config: AppConfig) -> Renderer:
    if config.renderer == "demo":
        return DemoRenderer()
    return FallbackRenderer(KrokiRenderer(config.kroki_url))


def _resolve_theme(name: str, available: Iterable[str]) -> str | None:
    """Map a configured theme to a registered Textual theme name."""

    resolved = THEME_ALIASES.get(name, name)
    return resolved if resolved in set(available) else None


class MermaidpadApp(App[None]):
    """Mermaid editor with live preview, inline completions and an assistant chat."""

    COMMANDS = App.COMMANDS | {TemplateProvider, ProjectOpenProvider, ProjectDeleteProvider}
    CSS = """
    Screen {
        layout: vertical;
    }
    #content {
        layout: horizontal;
        height: 1fr;
    }
    #main-column {
        layout: vertical;
        width: 1fr;
        height: 1fr;
    }
    #main-column EditorPane {
        height: 3fr;
    }
    #main-column PreviewPane {
        height: 2fr;
    }
    """

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
        ("ctrl+s", "save", "Save"),
        ("f2", "save_as", "Save As"),
        ("ctrl+e", "export", "Export SVG"),
        ("ctrl+n", "new", "New"),
        ("ctrl+u", "usage", "Usage"),
        ("ctrl+p", "command_palette", "Command Palette"),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._config = _load_app_config()
        self._store = _project_store()
        self._session = DocumentSession(self._store)
        self._renderer = _build_renderer(self._config)
        self._client = AssistantClient(self._config.server_url, identity=self._config.identity)
        pipeline = self._config.pipeline
        self._render_trigger = RenderTrigger(
            self._renderer,
            delay=pipeline.render_delay_ms / 1000,
            error_policy=self._config.render_error_policy,
            on_outcome=self._handle_render_outcome,
        )
        self._completions = CompletionController(
            self._client.complete,
            delay=pipeline.completion_delay_ms / 1000,
            min_prefix=pipeline.completion_min_prefix,
            on_suggestion=self._offer_suggestion,
        )
        self._chat = ChatSession(
            self._client.chat,
            current_diagram=lambda: self._session.state.content,
            on_change=lambda _: self._refresh_chat(),
        )
        self._editor: EditorPane | None = None
        self._chat_panel: ChatPanel | None = None
        self._status_bar: StatusBar | None = None
        self._pending_notifications: list[tuple[str, str]] = []
        self._using_fallback = False

    def compose(self) -> ComposeResult:
        """Compose the root layout."""

        yield Header(show_clock=True)
        self._editor = EditorPane(self._session, self._render_trigger, self._completions)
        self._chat_panel = ChatPanel(
            self._chat,
            on_apply=self.apply_diagram,
            initial_width=self._config.layout.chat_width,
            on_width_change=self.remember_chat_width,
        )
        main_column = Vertical(self._editor, PreviewPane(self._session), id="main-column")
        yield Horizontal(main_column, self._chat_panel, id="content")
        self._status_bar = StatusBar(self._session, renderer_label=self._renderer_label)
        yield self._status_bar
        yield Footer()

    async def on_mount(self) -> None:
        self._apply_theme()
        self._flush_pending_notifications()
        self.run_worker(self._check_assistant(), group="health", exit_on_error=False)

    @property
    def app_config(self) -> AppConfig:
        return self._config

    @property
    def document_session(self) -> DocumentSession:
        """Expose the document session for providers and tests."""

        return self._session

    @property
    def chat_session(self) -> ChatSession:
        return self._chat

    @property
    def render_trigger(self) -> RenderTrigger:
        return self._render_trigger

    @property
    def completions(self) -> CompletionController:
        return self._completions

    def action_save(self) -> None:
        if self._session.state.project_id is None:
            self.push_screen(SaveAsScreen(), self._save_named)
            return
        self.save_project()

    def action_save_as(self) -> None:
        self.push_screen(SaveAsScreen(self._session.state.name or ""), self._save_copy)

    def save_project(self, name: str | None = None, *, as_new: bool = False) -> None:
        """Save the buffer, optionally under a new name as a separate project."""

        project = self._session.save(name, as_new=as_new)
        self.notify(f"Saved '{project.name}'.", severity="information")

    def delete_project(self, project_id: int) -> None:
        """Remove a saved project from the store."""

        try:
            project = self._session.delete_project(project_id)
        except ValueError as exc:
            self.notify(str(exc), severity="error")
            return
        self.notify(f"Deleted project: {project.name}", severity="information")

    def action_export(self) -> None:
        target = Path.cwd() / f"{_slug(self._session.state.title)}.svg"
        try:
            self._session.export_svg(target)
        except (ValueError, OSError) as exc:
            self.notify(f"Export failed: {exc}", severity="error")
            return
        self.notify(f"Exported {target.name}", severity="information")

    def action_new(self) -> None:
        self._chat.clear()
        self._session.reset()

    def action_usage(self) -> None:
        self.run_worker(self._refresh_usage(), group="usage", exclusive=True, exit_on_error=False)

    def apply_template(self, key: str) -> None:
        try:
            self._session.apply_template(key)
        except ValueError as exc:
            self.notify(str(exc), severity="error")
            return
        self.notify(f"Loaded template: {TEMPLATE_LABELS.get(key, key)}", severity="information")

    def open_project(self, project_id: int) -> None:
        """Load a saved project into the editor."""

        try:
            state = self._session.open_project(project_id)
        except ValueError as exc:
            self.notify(str(exc), severity="error")
            return
        self.notify(f"Opened project: {state.title}", severity="information")

    def apply_diagram(self, diagram: str) -> None:
        """Replace the buffer with a diagram accepted from the chat panel."""

        self._session.update_content(diagram)

    def remember_chat_width(self, width: int) -> None:
        """Persist the chat panel width when it changes."""

        if self._config.layout.chat_width == width:
            return
        self._config = self._config.with_layout(chat_width=width)
        save_config(self._config)

    async def _shutdown(self) -> None:
        self._render_trigger.close()
        self._completions.cancel()
        await self._client.aclose()
        await super()._shutdown()

    async def _check_assistant(self) -> None:
        healthy = await self._client.health()
        if self._status_bar:
            self._status_bar.set_assistant_status("online" if healthy else "offline")
        if not healthy:
            self._safe_notify("Assistant service unreachable; completions and chat are unavailable.", severity="warning")

    async def _refresh_usage(self) -> None:
        try:
            stats = await self._client.usage()
        except AssistantError as exc:
            self._safe_notify(f"Usage unavailable: {exc.message}", severity="warning")
            return
        if self._status_bar:
            self._status_bar.set_usage(stats.total_tokens, self._config.identity)
        self._safe_notify(
            f"{stats.total_tokens} tokens · chat {stats.request_count['gpt']} · completions {stats.request_count['complete']}",
            severity="information",
        )

    def _save_named(self, name: str | None) -> None:
        if name:
            self.save_project(name)

    def _save_copy(self, name: str | None) -> None:
        if name:
            self.save_project(name, as_new=True)

    def _apply_theme(self) -> None:
        theme = _resolve_theme(self._config.theme, self.available_themes)
        if theme is None:
            LOG.warning("Unknown theme in config", extra={"theme": self._config.theme})
            return
        self.theme = theme

    def _handle_render_outcome(self, outcome: RenderOutcome) -> None:
        self._session.record_render(outcome)
        self._maybe_notify_fallback()

    def _offer_suggestion(self, suggestion: str) -> None:
        if self._editor:
            self._editor.apply_suggestion(suggestion)

    def _refresh_chat(self) -> None:
        if self._chat_panel:
            self._chat_panel.refresh_transcript()

    def _renderer_label(self) -> str:
        if isinstance(self._renderer, DemoRenderer):
            return "Demo"
        if isinstance(self._renderer, FallbackRenderer) and self._renderer.using_fallback:
            return "Demo fallback"
        return "Kroki"

    def _maybe_notify_fallback(self) -> None:
        renderer = self._renderer
        if not isinstance(renderer, FallbackRenderer):
            return
        if renderer.using_fallback and not self._using_fallback:
            reason = f" ({renderer.last_error.splitlines()[0][:120]})" if renderer.last_error else ""
            self._safe_notify(f"Kroki unavailable, using demo renderer{reason}.", severity="warning")
        elif self._using_fallback and not renderer.using_fallback:
            self._safe_notify("Reconnected to Kroki.", severity="information")
        self._using_fallback = renderer.using_fallback

    def _safe_notify(self, message: str, *, severity: str = "information") -> None:
        if self.is_running:
            try:
                self.notify(message, severity=severity)
            except Exception:
                LOG.exception("Failed to display notification", extra={"notice": message})
        else:
            self._pending_notifications.append((message, severity))

    def _flush_pending_notifications(self) -> None:
        if not self._pending_notifications:
            return
        pending = list(self._pending_notifications)
        self._pending_notifications.clear()
        for message, severity in pending:
            self._safe_notify(message, severity=severity)


def _slug(title: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "-", title).strip("-").lower()
    return slug or "diagram"


def main() -> None:
    """Invoke the Textual application."""

    MermaidpadApp().run()


if __name__ == "__main__":
    main()
