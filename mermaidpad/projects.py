"""Local project storage backed by a JSON file."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path

from pydantic import BaseModel, ValidationError

LOG = logging.getLogger(__name__)

DATA_DIR = Path.home() / ".local" / "share" / "mermaidpad"
PROJECTS_FILE = DATA_DIR / "projects.json"
DRAFT_FILE = DATA_DIR / "draft.mmd"

DEFAULT_CODE = """flowchart TD
  A[Start] --> B{Is it working?}
  B -->|Yes| C[Ship it]
  B -->|No| D[Ask the assistant]
  D --> B
"""


class Project(BaseModel):
    """Saved diagram."""

    id: int
    name: str
    mermaid_code: str
    created_at: int
    updated_at: int
    description: str | None = None


class ProjectStore:
    """CRUD helpers over the projects file."""

    def __init__(self, path: Path | None = None, *, draft_path: Path | None = None) -> None:
        self._path = path or PROJECTS_FILE
        self._draft_path = draft_path or DRAFT_FILE

    def list_projects(self) -> list[Project]:
        """Projects ordered by most recent update."""

        return sorted(self._read(), key=lambda project: project.updated_at, reverse=True)

    def get(self, project_id: int) -> Project | None:
        for project in self._read():
            if project.id == project_id:
                return project
        return None

    def save(
        self,
        name: str,
        mermaid_code: str,
        *,
        project_id: int | None = None,
        description: str | None = None,
    ) -> Project:
        """Create a project, or update it when ``project_id`` exists."""

        projects = self._read()
        now = int(time.time() * 1000)
        existing = next((item for item in projects if item.id == project_id), None)
        project = Project(
            id=existing.id if existing else max((item.id for item in projects), default=0) + 1,
            name=name.strip() or "Untitled",
            mermaid_code=mermaid_code,
            description=(description or "").strip() or None,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        if existing:
            projects = [project if item.id == existing.id else item for item in projects]
        else:
            projects.append(project)
        self._write(projects)
        return project

    def delete(self, project_id: int) -> None:
        projects = [item for item in self._read() if item.id != project_id]
        self._write(projects)

    def load_draft(self) -> str:
        """Last autosaved buffer, or the starter diagram."""

        try:
            draft = self._draft_path.read_text()
        except OSError:
            return DEFAULT_CODE
        return draft if draft.strip() else DEFAULT_CODE

    def save_draft(self, content: str) -> None:
        try:
            self._draft_path.parent.mkdir(parents=True, exist_ok=True)
            self._draft_path.write_text(content)
        except OSError:
            LOG.warning("Failed to autosave draft", extra={"path": str(self._draft_path)})

    def _read(self) -> list[Project]:
        try:
            raw = json.loads(self._path.read_text())
        except FileNotFoundError:
            return []
        except (OSError, json.JSONDecodeError):
            LOG.warning("Projects file unreadable, starting empty", extra={"path": str(self._path)})
            return []
        projects: list[Project] = []
        for entry in raw if isinstance(raw, list) else []:
            try:
                projects.append(Project.model_validate(entry))
            except ValidationError:
                continue
        return projects

    def _write(self, projects: list[Project]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = [project.model_dump() for project in projects]
        self._path.write_text(json.dumps(payload, indent=2))


__all__ = ["DEFAULT_CODE", "Project", "ProjectStore"]
