"""Admission and bounded dispatch of discovered entries."""

from __future__ import annotations

import asyncio
import logging
from collections import deque

from tree_sweep.engine.archiver import Archiver
from tree_sweep.engine.models import FsNode, ItemFailure, NodeStatus, RunCounters
from tree_sweep.engine.options import TraversalOptions
from tree_sweep.engine.progress import Progress, ProgressEvent

logger = logging.getLogger(__name__)


class DispatchQueue:
    """Pending FIFO with a concurrency cap and head-of-queue retries."""

    def __init__(
        self,
        *,
        options: TraversalOptions,
        progress: Progress,
        counters: RunCounters,
        archiver: Archiver,
    ) -> None:
        self._options = options
        self._progress = progress
        self._counters = counters
        self._archiver = archiver
        self._pending: deque[FsNode] = deque()
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def pending_size(self) -> int:
        return len(self._pending)

    @property
    def inflight_size(self) -> int:
        return len(self._inflight)

    def register(self, node: FsNode) -> bool:
        """Admit a discovered entry unless the registration cap is reached."""

        if self._counters.registered >= self._options.max_done:
            self._progress.quit()
            return False

        node.status = NodeStatus.WAITING
        self._archiver.track(node)
        self._pending.append(node)
        self._counters.registered += 1
        self.next()
        return True

    def next(self) -> bool:
        """Start the head of the pending queue if a slot is free."""

        if self._progress.dispatch_stopped:
            return False
        if self._counters.doing >= self._options.max_doing:
            return False
        if not self._pending:
            return False

        node = self._pending.popleft()
        node.status = NodeStatus.DOING
        self._counters.doing += 1
        task = asyncio.get_running_loop().create_task(
            self._process(node),
            name=f"tree-sweep:{node.name}",
        )
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return True

    async def drain(self) -> None:
        """Wait until no processor call is in flight."""

        while self._inflight:
            done, _ = await asyncio.wait(tuple(self._inflight))
            for task in done:
                task.result()

    async def _process(self, node: FsNode) -> None:
        logger.debug("Processing %s (attempt %d)", node.name, node.retries + 1)
        try:
            await self._options.processor(node.to_item())
        except Exception as error:  # noqa: BLE001
            self._handle_failure(node, error)
        else:
            self._archiver.archive(node, NodeStatus.DONE)

        self._counters.doing -= 1
        self.next()

    def _handle_failure(self, node: FsNode, error: Exception) -> None:
        failure = ItemFailure(
            name=node.name,
            path=node.path,
            error=error,
            attempts=node.retries + 1,
        )
        if node.retries >= self._options.retry:
            self._archiver.archive(node, NodeStatus.IGNORED)
            self._progress.emit(ProgressEvent.ERROR, failure)
        else:
            node.retry()
            node.status = NodeStatus.WAITING
            self._pending.appendleft(node)
            self._progress.emit(ProgressEvent.WARNING, failure)

        self._counters.errors += 1
        if self._counters.errors >= self._options.max_errors:
            logger.error("Error limit reached (%d), aborting run", self._options.max_errors)
            self._progress.abort()
