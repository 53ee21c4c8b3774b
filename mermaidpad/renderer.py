"""Renderer backends turning Mermaid source into SVG."""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx

LOG = logging.getLogger(__name__)

DIAGRAM_KEYWORDS: tuple[str, ...] = (
    "flowchart",
    "graph",
    "sequenceDiagram",
    "classDiagram",
    "stateDiagram",
    "stateDiagram-v2",
    "erDiagram",
    "journey",
    "gantt",
    "pie",
    "mindmap",
    "timeline",
    "gitGraph",
    "quadrantChart",
    "requirementDiagram",
    "C4Context",
    "C4Container",
    "C4Component",
    "block-beta",
    "architecture-beta",
    "sankey-beta",
    "xychart-beta",
)


class RenderError(RuntimeError):
    """Raised when the diagram source cannot be rendered."""


class RenderUnavailableError(RenderError):
    """Raised when the renderer itself cannot be reached."""


@dataclass(frozen=True, slots=True)
class RenderResult:
    """SVG produced for one render call."""

    svg: str
    diagram_id: str


@runtime_checkable
class Renderer(Protocol):
    """Protocol implemented by render backends."""

    async def render(self, source: str, *, diagram_id: str) -> RenderResult:
        """Render the source; raise RenderError when it is invalid."""


class KrokiRenderer:
    """Renders Mermaid through a Kroki server (https://kroki.io or self-hosted)."""

    def __init__(
        self,
        base_url: str = "https://kroki.io",
        *,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = f"{base_url.rstrip('/')}/mermaid/svg"
        self._timeout = timeout
        self._transport = transport

    async def render(self, source: str, *, diagram_id: str) -> RenderResult:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._url,
                    content=source.encode("utf-8"),
                    headers={"Content-Type": "text/plain"},
                )
        except httpx.HTTPError as exc:
            raise RenderUnavailableError(f"Renderer unreachable: {exc}") from exc
        if response.status_code >= 500:
            raise RenderUnavailableError(f"Renderer failed with HTTP {response.status_code}")
        if response.status_code != 200:
            message = response.text[:500].strip() if response.text else f"HTTP {response.status_code}"
            raise RenderError(message)
        return RenderResult(svg=response.text, diagram_id=diagram_id)


class DemoRenderer:
    """Offline renderer that checks the diagram header and lists statements."""

    async def render(self, source: str, *, diagram_id: str) -> RenderResult:
        lines = [line.strip() for line in source.splitlines()]
        statements = [line for line in lines if line and not line.startswith("%%")]
        if not statements:
            raise RenderError("No diagram definition found.")
        header = statements[0].split(None, 1)[0]
        if header not in DIAGRAM_KEYWORDS:
            raise RenderError(f"Unknown diagram type: '{header}'.")
        if source.count("[") != source.count("]") or source.count("(") != source.count(")"):
            raise RenderError("Unbalanced brackets in diagram definition.")
        return RenderResult(svg=_statements_svg(diagram_id, statements), diagram_id=diagram_id)


class FallbackRenderer:
    """Uses the fallback renderer while the primary one is unreachable."""

    def __init__(self, primary: Renderer, fallback: Renderer | None = None) -> None:
        self._primary = primary
        self._fallback = fallback or DemoRenderer()
        self.using_fallback = False
        self.last_error: str | None = None

    async def render(self, source: str, *, diagram_id: str) -> RenderResult:
        try:
            result = await self._primary.render(source, diagram_id=diagram_id)
        except RenderUnavailableError as exc:
            if not self.using_fallback:
                LOG.warning("Primary renderer unavailable, using demo fallback", extra={"error": str(exc)})
            self.using_fallback = True
            self.last_error = str(exc)
            return await self._fallback.render(source, diagram_id=diagram_id)
        self.using_fallback = False
        self.last_error = None
        return result


def _statements_svg(diagram_id: str, statements: list[str]) -> str:
    line_height = 18
    height = line_height * (len(statements) + 1)
    width = max(200, 8 * max(len(statement) for statement in statements) + 20)
    rows = [
        f'<text x="10" y="{line_height * (idx + 1)}">{html.escape(statement)}</text>'
        for idx, statement in enumerate(statements)
    ]
    return (
        f'<svg id="{diagram_id}" xmlns="http://www.w3.org/2000/svg" '
        f'width="{width}" height="{height}" font-family="monospace" font-size="13">'
        + "".join(rows)
        + "</svg>"
    )


__all__ = [
    "DIAGRAM_KEYWORDS",
    "DemoRenderer",
    "FallbackRenderer",
    "KrokiRenderer",
    "RenderError",
    "RenderResult",
    "RenderUnavailableError",
    "Renderer",
]
