"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest

from tree_sweep.engine import FsItem, ProgressEvent, RunSummary, Traversal, TraversalOptions


class EventLog:
    """Collects every notification of one traversal in arrival order."""

    def __init__(self, traversal: Traversal) -> None:
        self.events: list[tuple[str, object]] = []
        for event in ProgressEvent:
            traversal.on(event, self._recorder(event.value))

    def _recorder(self, kind: str) -> Callable[[object], None]:
        def _record(payload: object) -> None:
            self.events.append((kind, payload))

        return _record

    def payloads(self, kind: str) -> list[object]:
        return [payload for event, payload in self.events if event == kind]

    def names(self, kind: str) -> list[str]:
        return [payload.name for payload in self.payloads(kind)]  # type: ignore[attr-defined]


@pytest.fixture()
def sample_tree(tmp_path: Path) -> Path:
    root = tmp_path / "tree"
    (root / "c").mkdir(parents=True)
    (root / "a").write_text("a", "utf-8")
    (root / "b").write_text("b", "utf-8")
    (root / "c" / "d").write_text("d", "utf-8")
    return root


async def noop_processor(item: FsItem) -> None:
    return None


def run_traversal(
    options: TraversalOptions,
    setup: Callable[[Traversal], None] | None = None,
) -> tuple[RunSummary, EventLog, Traversal]:
    traversal = Traversal(options)
    log = EventLog(traversal)
    if setup is not None:
        setup(traversal)
    summary = asyncio.run(traversal.run())
    return summary, log, traversal
