"""Domain models for the traversal engine."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class NodeStatus(str, Enum):
    """Lifecycle states of one discovered entry."""

    WAITING = "waiting"
    DOING = "doing"
    DONE = "done"
    IGNORED = "ignored"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = frozenset({NodeStatus.DONE, NodeStatus.IGNORED, NodeStatus.SKIPPED})


class ControlState(str, Enum):
    """Run control state driven by graceful-stop and hard-abort signals."""

    RUNNING = "running"
    DRAINING = "draining"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class FsItem:
    """Immutable view of an entry handed to processors and subscribers."""

    name: str
    path: Path


Processor = Callable[[FsItem], Awaitable[object]]


class FsNode:
    """One discovered filesystem entry owned by the queue and archiver."""

    __slots__ = ("_name", "_path", "_retries", "status")

    def __init__(self, *, name: str, path: Path) -> None:
        self._name = name
        self._path = path
        self._retries = 0
        self.status = NodeStatus.WAITING

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> Path:
        return self._path

    @property
    def retries(self) -> int:
        return self._retries

    def retry(self) -> None:
        self._retries += 1

    def to_item(self) -> FsItem:
        return FsItem(name=self._name, path=self._path)

    def __repr__(self) -> str:
        return f"FsNode(name={self._name!r}, status={self.status.value}, retries={self._retries})"


@dataclass(slots=True)
class RunCounters:
    """Counters for one traversal run; only ``doing`` ever decreases."""

    registered: int = 0
    doing: int = 0
    done: int = 0
    ignored: int = 0
    skipped: int = 0
    errors: int = 0

    def count_terminal(self, status: NodeStatus) -> None:
        if status is NodeStatus.DONE:
            self.done += 1
        elif status is NodeStatus.IGNORED:
            self.ignored += 1
        elif status is NodeStatus.SKIPPED:
            self.skipped += 1
        else:
            raise ValueError(f"Status is not terminal: {status.value}")


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Final counters of a run, also the ``end`` payload."""

    registered: int
    done: int
    ignored: int
    skipped: int
    errors: int
    marker: str | None
    completed: bool


@dataclass(frozen=True, slots=True)
class NoUtf8Name:
    """A directory entry whose raw name is not valid UTF-8."""

    dirname: str
    name_bytes: bytes

    @property
    def label(self) -> str:
        return f"{self.dirname}:{self.name_bytes.hex()}"


@dataclass(frozen=True, slots=True)
class ItemFailure:
    """Processor or filesystem failure attached to one entry."""

    name: str
    path: Path
    error: BaseException
    attempts: int

    @property
    def message(self) -> str:
        return f"{self.name}: {type(self.error).__name__}: {self.error}"
