"""Document session wiring the buffer, saved projects and render output into the UI."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from .pipeline.models import RenderOutcome, RenderStatus
from .projects import DEFAULT_CODE, Project, ProjectStore
from .templates import TEMPLATES

SessionListener = Callable[["DocumentState"], None]


@dataclass(frozen=True, slots=True)
class DocumentState:
    """Current document snapshot (buffer + project + preview)."""

    content: str
    updated_at: datetime
    project_id: int | None = None
    name: str | None = None
    dirty: bool = False
    svg: str | None = None
    render_status: RenderStatus | None = None
    render_error: str | None = None

    @property
    def title(self) -> str:
        return self.name or "Untitled draft"


class DocumentSession:
    """Lightweight document orchestrator for the Textual app."""

    def __init__(self, store: ProjectStore, *, content: str | None = None) -> None:
        self._store = store
        self._listeners: set[SessionListener] = set()
        initial = content if content is not None else store.load_draft()
        self._state = DocumentState(content=initial, updated_at=_now())

    @property
    def state(self) -> DocumentState:
        return self._state

    @property
    def store(self) -> ProjectStore:
        return self._store

    @property
    def projects(self) -> tuple[Project, ...]:
        """Saved projects, most recently updated first."""

        return tuple(self._store.list_projects())

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Subscribe to document updates; returns an unsubscribe handle."""

        self._listeners.add(listener)
        listener(self._state)

        def _unsubscribe() -> None:
            self._listeners.discard(listener)

        return _unsubscribe

    def update_content(self, content: str) -> None:
        """Record an edit and autosave the draft."""

        if content == self._state.content:
            return
        self._store.save_draft(content)
        self._update(content=content, dirty=True)

    def open_project(self, project_id: int) -> DocumentState:
        project = self._store.get(project_id)
        if project is None:
            raise ValueError(f"Project '{project_id}' not found.")
        self._update(
            content=project.mermaid_code,
            project_id=project.id,
            name=project.name,
            dirty=False,
        )
        return self._state

    def apply_template(self, key: str) -> DocumentState:
        template = TEMPLATES.get(key)
        if template is None:
            raise ValueError(f"Template '{key}' not found.")
        self._update(content=template, project_id=None, name=None, dirty=False)
        return self._state

    def reset(self) -> None:
        self._update(content=DEFAULT_CODE, dirty=True)

    def save(self, name: str | None = None, *, as_new: bool = False) -> Project:
        """Save the buffer over the open project, or as a new one when none is open or `as_new`."""

        state = self._state
        project = self._store.save(
            name or state.name or "Untitled",
            state.content,
            project_id=None if as_new else state.project_id,
        )
        self._update(project_id=project.id, name=project.name, dirty=False)
        return project

    def delete_project(self, project_id: int) -> Project:
        """Delete a saved project; the buffer stays and becomes an unsaved draft if it was open."""

        project = self._store.get(project_id)
        if project is None:
            raise ValueError(f"Project '{project_id}' not found.")
        self._store.delete(project_id)
        if self._state.project_id == project_id:
            self._update(project_id=None, name=None, dirty=True)
        else:
            self._notify()
        return project

    def record_render(self, outcome: RenderOutcome) -> None:
        """Mirror the preview state published by the render trigger."""

        if outcome.status is RenderStatus.RENDERED:
            self._update(svg=outcome.svg, render_status=outcome.status, render_error=None)
        elif outcome.status is RenderStatus.CLEARED:
            self._update(svg=None, render_status=outcome.status, render_error=None)
        else:
            self._update(svg=outcome.svg, render_status=outcome.status, render_error=outcome.error)

    def export_svg(self, path: Path) -> Path:
        svg = self._state.svg
        if not svg:
            raise ValueError("Nothing rendered to export.")
        path.write_text(svg)
        return path

    def _update(self, **changes: object) -> None:
        self._state = replace(self._state, updated_at=_now(), **changes)  # type: ignore[arg-type]
        self._notify()

    def _notify(self) -> None:
        for listener in tuple(self._listeners):
            listener(self._state)


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


__all__ = ["DocumentSession", "DocumentState", "SessionListener"]
