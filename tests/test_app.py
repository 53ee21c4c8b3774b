"""App-level tests for the Textual shell and palette providers."""

from __future__ import annotations

from pathlib import Path

import pytest

from mermaidpad.app import MermaidpadApp, _resolve_theme
from mermaidpad.config import AppConfig
from mermaidpad.pipeline import RenderErrorPolicy
from mermaidpad.projects import DEFAULT_CODE, ProjectStore
from mermaidpad.providers import ProjectDeleteProvider, ProjectOpenProvider, TemplateProvider
from mermaidpad.renderer import DemoRenderer
from mermaidpad.templates import TEMPLATES, TEMPLATE_LABELS
from mermaidpad.widgets import SaveAsScreen
from mermaidpad.widgets.preview_pane import svg_outline


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ProjectStore:
    project_store = ProjectStore(tmp_path / "projects.json", draft_path=tmp_path / "draft.mmd")
    monkeypatch.setattr("mermaidpad.app._project_store", lambda: project_store)
    return project_store


class _DummyScreen:
    """Minimal stub so providers can reference an app without a running screen stack."""

    def __init__(self, app: MermaidpadApp) -> None:
        self.app = app
        self.focused = None


def _demo_config(**updates: object) -> AppConfig:
    return AppConfig(renderer="demo", server_url="http://127.0.0.1:9", **updates)


@pytest.mark.anyio
async def test_app_wires_pipeline_from_config(store: ProjectStore, monkeypatch: pytest.MonkeyPatch) -> None:
    config = _demo_config(render_error_policy=RenderErrorPolicy.PRESERVE)
    monkeypatch.setattr("mermaidpad.app._load_app_config", lambda: config)

    app = MermaidpadApp()

    assert app.document_session.state.content == DEFAULT_CODE
    assert isinstance(app._renderer, DemoRenderer)
    app.render_trigger.content_changed("flowchart LR\n  A[Start] --> B")
    await app.render_trigger.drain()
    assert app.document_session.state.svg is not None
    assert "A[Start] --&gt; B" in app.document_session.state.svg
    app.render_trigger.close()


@pytest.mark.anyio
async def test_template_provider_loads_template(store: ProjectStore, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("mermaidpad.app._load_app_config", lambda: _demo_config())

    app = MermaidpadApp()

    provider = TemplateProvider(_DummyScreen(app))
    hits = [hit async for hit in provider.discover()]
    assert len(hits) == len(TEMPLATE_LABELS)
    target = next(hit for hit in hits if "Sequence diagram" in (hit.display or ""))
    await target.command()
    assert app.document_session.state.content == TEMPLATES["sequence"]


@pytest.mark.anyio
async def test_project_open_provider_opens_saved_project(
    store: ProjectStore,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    project = store.save("Billing", "erDiagram\n  A ||--o{ B : has")
    monkeypatch.setattr("mermaidpad.app._load_app_config", lambda: _demo_config())

    app = MermaidpadApp()

    provider = ProjectOpenProvider(_DummyScreen(app))
    hits = [hit async for hit in provider.discover()]
    assert [hit.display for hit in hits] == ["Open project: Billing"]
    await hits[0].command()
    assert app.document_session.state.project_id == project.id
    assert app.document_session.state.content == "erDiagram\n  A ||--o{ B : has"


@pytest.mark.anyio
async def test_chat_apply_replaces_buffer(store: ProjectStore, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("mermaidpad.app._load_app_config", lambda: _demo_config())

    app = MermaidpadApp()
    app.apply_diagram("graph TD\n  X-->Y")

    assert app.document_session.state.content == "graph TD\n  X-->Y"
    assert app.document_session.state.dirty is True


@pytest.mark.anyio
async def test_app_persists_chat_width(
    store: ProjectStore,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    config_path = tmp_path / "config.toml"
    monkeypatch.setattr("mermaidpad.config.CONFIG_FILE", config_path)
    monkeypatch.setattr("mermaidpad.app._load_app_config", lambda: _demo_config())

    app = MermaidpadApp()
    app.remember_chat_width(56)

    assert "chat_width = 56" in config_path.read_text()
    assert app.app_config.layout.chat_width == 56


def test_svg_outline_lists_text_labels() -> None:
    svg = '<svg><text x="1">Start</text><text>A &amp; B</text><text> </text></svg>'

    assert svg_outline(svg) == "Start\nA & B"
    assert svg_outline("<svg></svg>") == "(diagram has no text labels)"


@pytest.mark.anyio
async def test_first_save_prompts_for_name(store: ProjectStore, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("mermaidpad.app._load_app_config", lambda: _demo_config())
    app = MermaidpadApp()
    pushed: list[tuple[object, object]] = []
    monkeypatch.setattr(app, "push_screen", lambda screen, callback=None: pushed.append((screen, callback)))

    app.action_save()

    assert store.list_projects() == []
    screen, callback = pushed[0]
    assert isinstance(screen, SaveAsScreen)
    callback("Checkout flow")
    assert [project.name for project in store.list_projects()] == ["Checkout flow"]
    assert app.document_session.state.title == "Checkout flow"

    app.document_session.update_content("flowchart TD\n  A-->C")
    app.action_save()

    assert len(pushed) == 1
    assert store.list_projects()[0].mermaid_code == "flowchart TD\n  A-->C"


@pytest.mark.anyio
async def test_save_as_creates_separate_project(store: ProjectStore, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("mermaidpad.app._load_app_config", lambda: _demo_config())
    app = MermaidpadApp()
    app.save_project("Billing")
    pushed: list[tuple[object, object]] = []
    monkeypatch.setattr(app, "push_screen", lambda screen, callback=None: pushed.append((screen, callback)))

    app.action_save_as()
    _, callback = pushed[0]
    callback(None)
    assert len(store.list_projects()) == 1

    callback("Billing v2")
    assert sorted(project.name for project in store.list_projects()) == ["Billing", "Billing v2"]
    assert app.document_session.state.title == "Billing v2"


@pytest.mark.anyio
async def test_project_delete_provider_removes_project(
    store: ProjectStore,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    store.save("Billing", "erDiagram\n  A ||--o{ B : has")
    keep = store.save("Orders", "flowchart LR\n  A-->B")
    monkeypatch.setattr("mermaidpad.app._load_app_config", lambda: _demo_config())

    app = MermaidpadApp()

    provider = ProjectDeleteProvider(_DummyScreen(app))
    hits = [hit async for hit in provider.discover()]
    target = next(hit for hit in hits if hit.display == "Delete project: Billing")
    await target.command()
    assert [project.id for project in store.list_projects()] == [keep.id]


def test_configured_theme_resolves_to_textual_theme() -> None:
    available = ["textual-dark", "textual-light", "nord"]

    assert _resolve_theme("dark", available) == "textual-dark"
    assert _resolve_theme("light", available) == "textual-light"
    assert _resolve_theme("nord", available) == "nord"
    assert _resolve_theme("neon", available) is None
