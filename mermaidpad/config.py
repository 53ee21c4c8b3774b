"""App configuration loading helpers."""

from __future__ import annotations

import os
from pathlib import Path

import tomllib

from pydantic import BaseModel, Field

from .pipeline.models import RenderErrorPolicy

CONFIG_FILE = Path.home() / ".config" / "mermaidpad" / "config.toml"


class LayoutState(BaseModel):
    """Persisted layout hints for the TUI."""

    chat_width: int | None = None


class PipelineConfig(BaseModel):
    """Debounce windows and thresholds for the editor pipeline."""

    render_delay_ms: int = 300
    completion_delay_ms: int = 500
    completion_min_prefix: int = 10


class ServerConfig(BaseModel):
    """Settings for the assistant service."""

    host: str = "127.0.0.1"
    port: int = 8000
    model: str = "gpt-4o-mini"
    openai_api_key: str | None = None
    allowed_emails: str = ""
    rate_limit_window_ms: int = 60_000
    rate_limit_max_requests: int = 20
    log_level: str = "info"

    def with_env(self, environ: dict[str, str] | None = None) -> ServerConfig:
        """Return a copy with OPENAI_API_KEY / ALLOWED_EMAILS / OPENAI_MODEL applied."""

        env = os.environ if environ is None else environ
        updates: dict[str, object] = {}
        if env.get("OPENAI_API_KEY"):
            updates["openai_api_key"] = env["OPENAI_API_KEY"]
        if "ALLOWED_EMAILS" in env:
            updates["allowed_emails"] = env["ALLOWED_EMAILS"]
        if env.get("OPENAI_MODEL"):
            updates["model"] = env["OPENAI_MODEL"]
        return self.model_copy(update=updates)


class AppConfig(BaseModel):
    """Shape of the application configuration file."""

    theme: str = "dark"
    identity: str | None = None
    server_url: str = "http://127.0.0.1:8000"
    renderer: str = "kroki"
    kroki_url: str = "https://kroki.io"
    render_error_policy: RenderErrorPolicy = RenderErrorPolicy.CLEAR
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    layout: LayoutState = Field(default_factory=LayoutState)
    server: ServerConfig = Field(default_factory=ServerConfig)

    def with_layout(self, **updates: object) -> AppConfig:
        """Return a copy with layout state changes applied."""

        layout = self.layout.model_copy(update=updates)
        return self.model_copy(update={"layout": layout})


def load_config() -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file()
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return AppConfig()
    return AppConfig(**data)


def save_config(config: AppConfig) -> None:
    """Persist configuration to disk."""

    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [
        f'theme = "{config.theme}"',
        f'server_url = "{config.server_url}"',
        f'renderer = "{config.renderer}"',
        f'kroki_url = "{config.kroki_url}"',
        f'render_error_policy = "{config.render_error_policy.value}"',
    ]
    if config.identity:
        lines.append(f'identity = "{config.identity}"')
    lines.append("")
    lines.append("[pipeline]")
    lines.append(f"render_delay_ms = {config.pipeline.render_delay_ms}")
    lines.append(f"completion_delay_ms = {config.pipeline.completion_delay_ms}")
    lines.append(f"completion_min_prefix = {config.pipeline.completion_min_prefix}")
    if config.layout.chat_width is not None:
        lines.append("")
        lines.append("[layout]")
        lines.append(f"chat_width = {config.layout.chat_width}")
    server = config.server
    lines.append("")
    lines.append("[server]")
    lines.append(f'host = "{server.host}"')
    lines.append(f"port = {server.port}")
    lines.append(f'model = "{server.model}"')
    if server.openai_api_key:
        lines.append(f'openai_api_key = "{server.openai_api_key}"')
    lines.append(f'allowed_emails = "{server.allowed_emails}"')
    lines.append(f"rate_limit_window_ms = {server.rate_limit_window_ms}")
    lines.append(f"rate_limit_max_requests = {server.rate_limit_max_requests}")
    lines.append(f'log_level = "{server.log_level}"')
    CONFIG_FILE.write_text("\n".join(lines) + "\n")


def _read_config_file() -> dict[str, object]:
    with CONFIG_FILE.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    if not isinstance(raw, dict):
        return data
    for key in ("theme", "identity", "server_url", "renderer", "kroki_url"):
        value = raw.get(key)
        if isinstance(value, str):
            data[key] = value
    policy = raw.get("render_error_policy")
    if isinstance(policy, str) and policy in {item.value for item in RenderErrorPolicy}:
        data["render_error_policy"] = RenderErrorPolicy(policy)
    pipeline = raw.get("pipeline")
    if isinstance(pipeline, dict):
        data["pipeline"] = PipelineConfig(**_ints(pipeline, PipelineConfig.model_fields))
    layout = raw.get("layout")
    if isinstance(layout, dict):
        data["layout"] = LayoutState(**_ints(layout, LayoutState.model_fields))
    server = raw.get("server")
    if isinstance(server, dict):
        parsed: dict[str, object] = _ints(server, ServerConfig.model_fields)
        for key in ("host", "model", "allowed_emails", "log_level", "openai_api_key"):
            value = server.get(key)
            if isinstance(value, str):
                parsed[key] = value
        data["server"] = ServerConfig(**parsed)
    return data


def _ints(table: dict[str, object], fields: dict[str, object]) -> dict[str, object]:
    return {
        key: value
        for key, value in table.items()
        if key in fields and isinstance(value, int) and not isinstance(value, bool)
    }


__all__ = [
    "AppConfig",
    "CONFIG_FILE",
    "LayoutState",
    "PipelineConfig",
    "ServerConfig",
    "load_config",
    "save_config",
]
