"""Traversal facade wiring walker, dispatch queue and archiver."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from tree_sweep.engine.archiver import Archiver
from tree_sweep.engine.dispatch import DispatchQueue
from tree_sweep.engine.models import ControlState, RunCounters, RunSummary
from tree_sweep.engine.options import TraversalOptions
from tree_sweep.engine.progress import Progress, ProgressEvent
from tree_sweep.engine.walker import NameListWalker, TreeWalker

logger = logging.getLogger(__name__)


class Traversal:
    """One checkpointed run over a directory tree or an explicit name list."""

    def __init__(self, options: TraversalOptions) -> None:
        options.validate()
        self.options = options
        self.progress = Progress()
        self.counters = RunCounters()
        self._archiver = Archiver(progress=self.progress, counters=self.counters)
        self._queue = DispatchQueue(
            options=options,
            progress=self.progress,
            counters=self.counters,
            archiver=self._archiver,
        )
        self._walker: TreeWalker | NameListWalker
        if options.names is not None:
            self._walker = NameListWalker(
                root=options.path,
                names=options.names,
                queue=self._queue,
                progress=self.progress,
                max_waiting=options.max_waiting,
                poll_seconds=options.backpressure_poll_seconds,
            )
        else:
            self._walker = TreeWalker(
                root=options.path,
                queue=self._queue,
                progress=self.progress,
                max_waiting=options.max_waiting,
                poll_seconds=options.backpressure_poll_seconds,
                directory_first=options.directory_first,
                marker_pieces=options.marker_pieces,
            )
        self._started = False

    def on(self, event: ProgressEvent | str, handler: Callable[[Any], None]) -> Traversal:
        self.progress.on(event, handler)
        return self

    def quit(self) -> None:
        self.progress.quit()

    def abort(self) -> None:
        self.progress.abort()

    @property
    def state(self) -> ControlState:
        return self.progress.state

    @property
    def marker(self) -> str | None:
        return self._archiver.marker

    @property
    def pending_size(self) -> int:
        return self._queue.pending_size

    @property
    def unarchived_size(self) -> int:
        return len(self._archiver)

    async def run(self) -> RunSummary:
        """Walk, admit and process entries until the run ends or is stopped."""

        if self._started:
            raise RuntimeError("Traversal.run() can only be called once.")
        self._started = True

        logger.info(
            "Starting traversal of %s (marker=%s, directory_first=%s, names=%s)",
            self.options.path,
            self.options.marker or "-",
            self.options.directory_first,
            "-" if self.options.names is None else len(self.options.names),
        )
        await self._walker.walk()
        self._archiver.finish_discovery()
        await self._queue.drain()

        summary = self._archiver.summary()
        if not summary.completed:
            logger.warning(
                "Traversal stopped before completion: %d entries left unarchived",
                len(self._archiver),
            )
        return summary


def traverse(options: TraversalOptions) -> Traversal:
    """Create a traversal; subscribe with ``on`` and await ``run``."""

    return Traversal(options)
