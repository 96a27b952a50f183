"""Suspendable depth-first enumeration with marker-based resumption."""

from __future__ import annotations

import asyncio
import logging
import os
import stat
from pathlib import Path
from typing import NamedTuple

import aiofiles.os

from tree_sweep.engine.dispatch import DispatchQueue
from tree_sweep.engine.models import FsNode, ItemFailure, NoUtf8Name
from tree_sweep.engine.progress import Progress, ProgressEvent

logger = logging.getLogger(__name__)


class ResumeDecision(NamedTuple):
    register: bool
    descend: bool
    passed: bool


def resume_decision(
    pieces: tuple[str, ...],
    marker_pieces: tuple[str, ...],
    *,
    directory_first: bool,
) -> ResumeDecision:
    """Decide how an entry relates to the marker position.

    ``passed`` is true once the entry lies strictly after the marker, after
    which no further comparisons are needed for the rest of the walk.
    """

    depth = len(pieces)
    marker_depth = len(marker_pieces)
    for name, marker_name in zip(pieces, marker_pieces):
        if name < marker_name:
            return ResumeDecision(register=False, descend=False, passed=False)
        if name > marker_name:
            return ResumeDecision(register=True, descend=True, passed=True)

    if depth == marker_depth:
        # The entry is the marker itself; in directory-first order its
        # children had not been visited yet.
        return ResumeDecision(register=False, descend=directory_first, passed=False)
    if depth > marker_depth:
        return ResumeDecision(register=directory_first, descend=directory_first, passed=False)
    # Ancestor of the marker.
    return ResumeDecision(register=not directory_first, descend=True, passed=False)


class _Walker:
    def __init__(
        self,
        *,
        root: Path,
        queue: DispatchQueue,
        progress: Progress,
        max_waiting: int,
        poll_seconds: float,
    ) -> None:
        self.root = root
        self._queue = queue
        self._progress = progress
        self._max_waiting = max_waiting
        self._poll_seconds = poll_seconds

    async def walk(self) -> None:
        raise NotImplementedError

    async def _wait_for_room(self) -> bool:
        """Block discovery while the pending queue is full."""

        while self._queue.pending_size >= self._max_waiting:
            if self._progress.discovery_stopped:
                return False
            await asyncio.sleep(self._poll_seconds)
        return not self._progress.discovery_stopped


class TreeWalker(_Walker):
    """Walks the tree in byte order of names, registering entries."""

    def __init__(
        self,
        *,
        root: Path,
        queue: DispatchQueue,
        progress: Progress,
        max_waiting: int,
        poll_seconds: float,
        directory_first: bool = False,
        marker_pieces: tuple[str, ...] | None = None,
    ) -> None:
        super().__init__(
            root=root,
            queue=queue,
            progress=progress,
            max_waiting=max_waiting,
            poll_seconds=poll_seconds,
        )
        self._directory_first = directory_first
        self._marker_pieces = marker_pieces
        self._resumed = marker_pieces is None

    async def walk(self) -> None:
        await self._search(self.root, ())

    async def _search(self, dirpath: Path, parent_pieces: tuple[str, ...]) -> None:
        raw_names = await self._list_directory(dirpath, parent_pieces)
        if raw_names is None:
            return

        for raw_name in raw_names:
            if self._progress.discovery_stopped:
                return

            try:
                name = raw_name.decode("utf-8")
            except UnicodeDecodeError:
                self._progress.emit(
                    ProgressEvent.NO_UTF8_NAME,
                    NoUtf8Name(dirname="/".join(parent_pieces), name_bytes=raw_name),
                )
                continue

            pieces = (*parent_pieces, name)
            register, descend = self._decide(pieces)
            path = dirpath / name

            if descend and not self._directory_first:
                await self._search(path, pieces)

            if register:
                if not await self._wait_for_room():
                    return
                self._queue.register(FsNode(name="/".join(pieces), path=path))

            if descend and self._directory_first:
                await self._search(path, pieces)

    def _decide(self, pieces: tuple[str, ...]) -> tuple[bool, bool]:
        if self._resumed or self._marker_pieces is None:
            return True, True
        decision = resume_decision(
            pieces,
            self._marker_pieces,
            directory_first=self._directory_first,
        )
        if decision.passed:
            logger.info("Resumed after marker at %s", "/".join(pieces))
            self._resumed = True
        return decision.register, decision.descend

    async def _list_directory(
        self,
        dirpath: Path,
        pieces: tuple[str, ...],
    ) -> list[bytes] | None:
        # Only the root may be reached through a symlink; linked directories
        # below it are registered but never descended.
        try:
            stats = await aiofiles.os.stat(dirpath, follow_symlinks=not pieces)
            if not stat.S_ISDIR(stats.st_mode):
                return None
            raw_names = await aiofiles.os.listdir(os.fsencode(dirpath))
        except OSError as error:
            logger.warning("Cannot list %s: %s", dirpath, error)
            self._progress.emit(
                ProgressEvent.WARNING,
                ItemFailure(name="/".join(pieces), path=dirpath, error=error, attempts=0),
            )
            return None
        raw_names.sort()
        return raw_names


class NameListWalker(_Walker):
    """Registers an explicit list of names instead of walking the tree."""

    def __init__(
        self,
        *,
        root: Path,
        names: tuple[str, ...],
        queue: DispatchQueue,
        progress: Progress,
        max_waiting: int,
        poll_seconds: float,
    ) -> None:
        super().__init__(
            root=root,
            queue=queue,
            progress=progress,
            max_waiting=max_waiting,
            poll_seconds=poll_seconds,
        )
        self.names = sorted({name for name in names if name})

    async def walk(self) -> None:
        for name in self.names:
            if not await self._wait_for_room():
                return
            self._queue.register(FsNode(name=name, path=self.root / name))
            await asyncio.sleep(0)
