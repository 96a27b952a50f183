"""Completion-order bookkeeping and resume-marker advancement."""

from __future__ import annotations

import logging
from collections import deque

from tree_sweep.engine.models import FsNode, NodeStatus, RunCounters, RunSummary
from tree_sweep.engine.progress import Progress, ProgressEvent

logger = logging.getLogger(__name__)


class Archiver:
    """Tracks unarchived entries in discovery order.

    The marker only moves past the longest prefix of entries that all reached
    a terminal status, so an entry that finishes early never lets the marker
    skip an earlier entry that is still pending or running.
    """

    def __init__(self, *, progress: Progress, counters: RunCounters) -> None:
        self._progress = progress
        self._counters = counters
        self._unarchived: deque[FsNode] = deque()
        self._discovery_finished = False
        self._ended = False
        self.marker: str | None = None

    def __len__(self) -> int:
        return len(self._unarchived)

    @property
    def ended(self) -> bool:
        return self._ended

    def track(self, node: FsNode) -> None:
        self._unarchived.append(node)

    def archive(self, node: FsNode, status: NodeStatus) -> None:
        if not status.is_terminal:
            raise ValueError(f"Cannot archive {node.name!r} as {status.value}")

        node.status = status
        self._counters.count_terminal(status)
        self._progress.emit(ProgressEvent(status.value), node.to_item())

        if not self._unarchived or self._unarchived[0] is not node:
            return

        last = self._unarchived.popleft()
        while self._unarchived and self._unarchived[0].status.is_terminal:
            last = self._unarchived.popleft()

        self.marker = last.name
        logger.debug("Marker moved to %s (%d unarchived)", last.name, len(self._unarchived))
        self._progress.emit(ProgressEvent.MOVEON, last.name)
        self.try_end()

    def finish_discovery(self) -> None:
        self._discovery_finished = True
        self.try_end()

    def try_end(self) -> None:
        if self._ended or not self._discovery_finished or self._unarchived:
            return
        if self._progress.dispatch_stopped:
            return
        self._ended = True
        summary = self.summary()
        logger.info(
            "Run finished: done=%d ignored=%d errors=%d",
            summary.done,
            summary.ignored,
            summary.errors,
        )
        self._progress.emit(ProgressEvent.END, summary)

    def summary(self) -> RunSummary:
        return RunSummary(
            registered=self._counters.registered,
            done=self._counters.done,
            ignored=self._counters.ignored,
            skipped=self._counters.skipped,
            errors=self._counters.errors,
            marker=self.marker,
            completed=self._ended,
        )
