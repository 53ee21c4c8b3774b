"""Tests for the debounced render trigger."""

from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from mermaidpad.pipeline import RenderErrorPolicy, RenderOutcome, RenderStatus, RenderTrigger, SiteState
from mermaidpad.renderer import RenderError, RenderResult


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _RecordingRenderer:
    def __init__(self, *, fail_on: tuple[str, ...] = ()) -> None:
        self.calls: list[str] = []
        self.diagram_ids: list[str] = []
        self.gates: dict[str, asyncio.Event] = {}
        self._fail_on = fail_on

    async def render(self, source: str, *, diagram_id: str) -> RenderResult:
        self.calls.append(source)
        self.diagram_ids.append(diagram_id)
        gate = self.gates.get(source)
        if gate is not None:
            await gate.wait()
        if source in self._fail_on:
            raise RenderError(f"Parse error in {source!r}")
        return RenderResult(svg=f"<svg>{source}</svg>", diagram_id=diagram_id)


async def _eventually(predicate: Callable[[], bool]) -> None:
    for _ in range(200):
        if predicate():
            return
        await asyncio.sleep(0.005)
    raise AssertionError("condition not reached")


@pytest.mark.anyio
async def test_keystroke_burst_renders_final_buffer_once() -> None:
    renderer = _RecordingRenderer()
    outcomes: list[RenderOutcome] = []
    trigger = RenderTrigger(renderer, delay=0.05, on_outcome=outcomes.append)

    buffer = ""
    for char in "flowchart":
        buffer += char
        trigger.content_changed(buffer)
        await asyncio.sleep(0.005)
    assert trigger.state is SiteState.DEBOUNCING
    await trigger.drain()

    assert renderer.calls == ["flowchart"]
    assert [outcome.status for outcome in outcomes] == [RenderStatus.RENDERED]
    assert trigger.svg == "<svg>flowchart</svg>"
    assert trigger.state is SiteState.IDLE


@pytest.mark.anyio
async def test_render_uses_request_scoped_diagram_id() -> None:
    renderer = _RecordingRenderer()
    trigger = RenderTrigger(renderer, delay=0)

    trigger.content_changed("graph TD\n  A-->B")
    await trigger.drain()
    trigger.content_changed("graph TD\n  A-->C")
    await trigger.drain()

    assert renderer.diagram_ids == ["diagram-1", "diagram-2"]
    assert trigger.last_request is not None
    assert trigger.last_request.request_id == 2


@pytest.mark.anyio
async def test_stale_render_result_is_discarded() -> None:
    renderer = _RecordingRenderer()
    renderer.gates["flowchart A"] = asyncio.Event()
    outcomes: list[RenderOutcome] = []
    trigger = RenderTrigger(renderer, delay=0.01, on_outcome=outcomes.append)

    trigger.content_changed("flowchart A")
    await _eventually(lambda: renderer.calls == ["flowchart A"])
    trigger.content_changed("flowchart B")
    await _eventually(lambda: trigger.svg == "<svg>flowchart B</svg>")
    renderer.gates["flowchart A"].set()
    await trigger.drain()

    assert renderer.calls == ["flowchart A", "flowchart B"]
    assert [outcome.svg for outcome in outcomes] == ["<svg>flowchart B</svg>"]
    assert trigger.svg == "<svg>flowchart B</svg>"


@pytest.mark.anyio
async def test_stale_render_failure_is_discarded() -> None:
    renderer = _RecordingRenderer(fail_on=("flowchart ???",))
    renderer.gates["flowchart ???"] = asyncio.Event()
    outcomes: list[RenderOutcome] = []
    trigger = RenderTrigger(renderer, delay=0.01, on_outcome=outcomes.append)

    trigger.content_changed("flowchart ???")
    await _eventually(lambda: renderer.calls == ["flowchart ???"])
    trigger.content_changed("flowchart B")
    await _eventually(lambda: trigger.svg == "<svg>flowchart B</svg>")
    renderer.gates["flowchart ???"].set()
    await trigger.drain()

    assert [outcome.status for outcome in outcomes] == [RenderStatus.RENDERED]
    assert trigger.svg == "<svg>flowchart B</svg>"
    assert trigger.error is None


@pytest.mark.anyio
async def test_whitespace_buffer_clears_without_rendering() -> None:
    renderer = _RecordingRenderer()
    outcomes: list[RenderOutcome] = []
    trigger = RenderTrigger(renderer, delay=0.02, on_outcome=outcomes.append)

    trigger.content_changed("flowchart LR")
    trigger.content_changed("  \n\t ")
    await asyncio.sleep(0.05)
    await trigger.drain()

    assert renderer.calls == []
    assert [outcome.status for outcome in outcomes] == [RenderStatus.CLEARED]
    assert trigger.svg is None
    assert trigger.state is SiteState.IDLE


@pytest.mark.anyio
async def test_invalid_render_clears_preview_by_default() -> None:
    renderer = _RecordingRenderer(fail_on=("flowchart ???",))
    outcomes: list[RenderOutcome] = []
    trigger = RenderTrigger(renderer, delay=0, on_outcome=outcomes.append)

    trigger.content_changed("flowchart A")
    await trigger.drain()
    trigger.content_changed("flowchart ???")
    await trigger.drain()

    assert outcomes[-1].status is RenderStatus.INVALID
    assert outcomes[-1].svg is None
    assert trigger.svg is None
    assert trigger.error is not None and "Parse error" in trigger.error


@pytest.mark.anyio
async def test_invalid_render_can_preserve_last_good_preview() -> None:
    renderer = _RecordingRenderer(fail_on=("flowchart ???",))
    outcomes: list[RenderOutcome] = []
    trigger = RenderTrigger(
        renderer,
        delay=0,
        error_policy=RenderErrorPolicy.PRESERVE,
        on_outcome=outcomes.append,
    )

    trigger.content_changed("flowchart A")
    await trigger.drain()
    trigger.content_changed("flowchart ???")
    await trigger.drain()

    assert outcomes[-1].status is RenderStatus.INVALID
    assert outcomes[-1].svg == "<svg>flowchart A</svg>"
    assert trigger.svg == "<svg>flowchart A</svg>"

    trigger.content_changed("flowchart B")
    await trigger.drain()

    assert trigger.error is None
    assert trigger.svg == "<svg>flowchart B</svg>"


@pytest.mark.anyio
async def test_failing_listener_does_not_break_trigger() -> None:
    renderer = _RecordingRenderer()

    def _explode(outcome: RenderOutcome) -> None:
        raise RuntimeError("listener failed")

    trigger = RenderTrigger(renderer, delay=0, on_outcome=_explode)

    trigger.content_changed("pie title Pets")
    await trigger.drain()

    assert trigger.svg == "<svg>pie title Pets</svg>"
    assert trigger.state is SiteState.IDLE


@pytest.mark.anyio
async def test_close_discards_waiting_render() -> None:
    renderer = _RecordingRenderer()
    trigger = RenderTrigger(renderer, delay=0.02)

    trigger.content_changed("flowchart A")
    trigger.close()
    await asyncio.sleep(0.05)

    assert renderer.calls == []
    assert trigger.state is SiteState.IDLE
