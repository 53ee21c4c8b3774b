"""Command palette providers for core app features."""

from __future__ import annotations

from textual.command import DiscoveryHit, Hit, Hits, Provider
from textual.types import IgnoreReturnCallbackType

from .session import DocumentSession
from .templates import TEMPLATE_LABELS


class TemplateProvider(Provider):
    """Expose starter diagrams to the command palette."""

    async def search(self, query: str) -> Hits:
        if self._session is None:
            return
        matcher = self.matcher(query)
        for key, label in TEMPLATE_LABELS.items():
            text = f"New from template: {label}"
            match = matcher.match(text)
            if match > 0:
                yield Hit(
                    score=match,
                    match_display=matcher.highlight(text),
                    command=self._build_callback(key),
                    help="Replace the editor buffer with a starter diagram.",
                )

    async def discover(self) -> Hits:
        if self._session is None:
            return
        for key, label in TEMPLATE_LABELS.items():
            yield DiscoveryHit(
                display=f"New from template: {label}",
                command=self._build_callback(key),
                help="Replace the editor buffer with a starter diagram.",
            )

    @property
    def _session(self) -> DocumentSession | None:
        session = getattr(self.app, "document_session", None)
        if isinstance(session, DocumentSession):
            return session
        return None

    def _build_callback(self, key: str) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            apply_template = getattr(self.app, "apply_template", None)
            if apply_template is None:
                return
            apply_template(key)

        return _run


class ProjectOpenProvider(Provider):
    """Expose saved projects to the command palette."""

    async def search(self, query: str) -> Hits:
        session = self._session
        if session is None:
            return
        matcher = self.matcher(query)
        for project in session.projects:
            match = matcher.match(project.name)
            if match > 0:
                yield Hit(
                    score=match,
                    match_display=f"Open project: {matcher.highlight(project.name)}",
                    command=self._build_callback(project.id),
                    help=project.description or "Load a saved diagram.",
                )

    async def discover(self) -> Hits:
        session = self._session
        if session is None:
            return
        for project in session.projects:
            yield DiscoveryHit(
                display=f"Open project: {project.name}",
                command=self._build_callback(project.id),
                help=project.description or "Load a saved diagram.",
            )

    @property
    def _session(self) -> DocumentSession | None:
        session = getattr(self.app, "document_session", None)
        if isinstance(session, DocumentSession):
            return session
        return None

    def _build_callback(self, project_id: int) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            opener = getattr(self.app, "open_project", None)
            if opener is None:
                return
            opener(project_id)

        return _run


class ProjectDeleteProvider(Provider):
    """Expose project deletion to the command palette."""

    async def search(self, query: str) -> Hits:
        session = self._session
        if session is None:
            return
        matcher = self.matcher(query)
        for project in session.projects:
            text = f"Delete project: {project.name}"
            match = matcher.match(text)
            if match > 0:
                yield Hit(
                    score=match,
                    match_display=matcher.highlight(text),
                    command=self._build_callback(project.id),
                    help="Remove the saved project. The editor buffer is kept.",
                )

    async def discover(self) -> Hits:
        session = self._session
        if session is None:
            return
        for project in session.projects:
            yield DiscoveryHit(
                display=f"Delete project: {project.name}",
                command=self._build_callback(project.id),
                help="Remove the saved project. The editor buffer is kept.",
            )

    @property
    def _session(self) -> DocumentSession | None:
        session = getattr(self.app, "document_session", None)
        if isinstance(session, DocumentSession):
            return session
        return None

    def _build_callback(self, project_id: int) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            delete = getattr(self.app, "delete_project", None)
            if delete is None:
                return
            delete(project_id)

        return _run


__all__ = ["ProjectDeleteProvider", "ProjectOpenProvider", "TemplateProvider"]
