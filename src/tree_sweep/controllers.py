"""Controllers for sweep CLI commands."""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from tree_sweep.config import Settings
from tree_sweep.engine import (
    ControlState,
    FsItem,
    ItemFailure,
    NoUtf8Name,
    ProgressEvent,
    RunSummary,
    Traversal,
    TraversalOptions,
)
from tree_sweep.processors import canonical_reference, load_processor
from tree_sweep.tasks import ItemKind, TaskIdentity, TaskRepository

logger = logging.getLogger(__name__)

Echo = Callable[[str], None]


@dataclass(slots=True)
class SweepRunCommand:
    """CLI input for one sweep run."""

    db_path: Path | None
    path: Path
    processor: str
    concurrency: int | None = None
    max_waiting: int | None = None
    max_done: int | None = None
    max_errors: int | None = None
    retry: int | None = None
    directory_first: bool = False
    start_over: bool = False
    fill: bool = False


@dataclass(slots=True)
class SweepTasksCommand:
    """CLI input for task listing."""

    db_path: Path | None


@dataclass(slots=True)
class SweepInspectCommand:
    """CLI input for task inspection."""

    db_path: Path | None
    task_id: str


@dataclass(slots=True)
class SweepRunResult:
    """Run report to render in CLI."""

    lines: list[str]
    summary: RunSummary | None
    aborted: bool


class SweepCliController:
    """Coordinates sweep runs and task inspection CLI operations."""

    def run(self, command: SweepRunCommand, echo: Echo) -> SweepRunResult:
        """Run a traversal, streaming one line per event through ``echo``."""

        if command.start_over and command.fill:
            raise ValueError("--start-over and --fill are mutually exclusive.")
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate()
        root = command.path.expanduser().resolve()
        if not root.is_dir():
            raise ValueError(f"Not a directory: {root}")
        processor = load_processor(command.processor)
        identity = TaskIdentity(
            path=str(root),
            processor=canonical_reference(command.processor),
            directory_first=command.directory_first,
        )

        with _repository(settings) as repository:
            task = repository.ensure_task(identity)
            names: list[str] | None = None
            marker: str | None = None
            if command.fill:
                names = repository.begin_refill(task.task_id)
                if not names:
                    return SweepRunResult(
                        lines=[f"Task {task.task_id}: nothing to refill."],
                        summary=None,
                        aborted=False,
                    )
            elif command.start_over:
                repository.save_marker(task.task_id, None)
            else:
                marker = task.marker

            sweep = settings.sweep
            options = TraversalOptions.build(
                path=root,
                processor=processor,
                names=names,
                marker=marker,
                max_doing=_first_set(command.concurrency, sweep.max_doing),
                max_waiting=_first_set(command.max_waiting, sweep.max_waiting),
                max_done=_first_set(command.max_done, sweep.max_done),
                max_errors=_first_set(command.max_errors, sweep.max_errors),
                retry=_first_set(command.retry, sweep.retry),
                directory_first=command.directory_first,
                backpressure_poll_seconds=sweep.backpressure_poll_seconds,
            )
            traversal = Traversal(options)
            _subscribe(
                traversal,
                repository=repository,
                task_id=task.task_id,
                echo=echo,
                save_markers=not command.fill,
            )
            echo(f"Task {task.task_id}: {_start_description(names=names, marker=marker)}")
            summary = asyncio.run(_run_with_signals(traversal))
            repository.record_run(task.task_id, summary)
            if command.fill and summary.completed:
                repository.finish_refill(task.task_id)

        aborted = not summary.completed and traversal.state is ControlState.ABORTED
        lines = [
            "Sweep summary: "
            f"registered={summary.registered} done={summary.done} "
            f"ignored={summary.ignored} skipped={summary.skipped} "
            f"errors={summary.errors}",
            f"Marker: {summary.marker or '-'}",
            f"Status: {'completed' if summary.completed else traversal.state.value}",
        ]
        return SweepRunResult(lines=lines, summary=summary, aborted=aborted)

    def tasks(self, command: SweepTasksCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            tasks = repository.list_tasks()

        lines = [f"Tasks: {len(tasks)}"]
        for task in tasks:
            lines.append(
                f"  {task.task_id} path={task.path} processor={task.processor} "
                f"marker={task.marker or '-'} status={task.last_status or '-'} "
                f"updated_at={task.updated_at.isoformat()}",
            )
        return lines

    def inspect(self, command: SweepInspectCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            task = repository.get_task(command.task_id)
            counts = repository.count_items(command.task_id) if task is not None else {}
        if task is None:
            return [f"Task not found: {command.task_id}"]

        lines = [
            f"Task: {task.task_id}",
            f"Path: {task.path}",
            f"Processor: {task.processor}",
            f"Directory first: {'yes' if task.directory_first else 'no'}",
            f"Marker: {task.marker or '-'}",
            f"Last status: {task.last_status or '-'}",
            f"Created: {task.created_at.isoformat()}",
            f"Updated: {task.updated_at.isoformat()}",
            "Items:",
        ]
        if not counts:
            lines.append("  none")
        for kind, count in counts.items():
            lines.append(f"  {kind}={count}")
        return lines


def format_event(label: str, text: str) -> str:
    """Render one progress line, e.g. ``[ DONE    ] a/b``."""

    return f"[ {label:<7} ] {text}"


def _subscribe(
    traversal: Traversal,
    *,
    repository: TaskRepository,
    task_id: str,
    echo: Echo,
    save_markers: bool,
) -> None:
    def _item(kind: ItemKind, label: str) -> Callable[[FsItem], None]:
        def _handler(item: FsItem) -> None:
            echo(format_event(label, item.name))
            repository.record_item(task_id, kind=kind, name=item.name)

        return _handler

    def _failure(kind: ItemKind, label: str) -> Callable[[ItemFailure], None]:
        def _handler(failure: ItemFailure) -> None:
            echo(format_event(label, failure.message))
            repository.record_item(
                task_id,
                kind=kind,
                name=failure.name,
                detail=f"attempts={failure.attempts} {failure.message}",
            )

        return _handler

    def _moveon(marker: str) -> None:
        echo(format_event("MOVEON", marker))
        if save_markers:
            repository.save_marker(task_id, marker)

    def _no_utf8(entry: NoUtf8Name) -> None:
        echo(format_event("NO-UTF8-NAME", entry.label))
        repository.record_item(task_id, kind=ItemKind.NO_UTF8_NAME, name=entry.label)

    (
        traversal.on(ProgressEvent.DONE, _item(ItemKind.DONE, "DONE"))
        .on(ProgressEvent.IGNORED, _item(ItemKind.IGNORED, "IGNORED"))
        .on(ProgressEvent.SKIPPED, _item(ItemKind.SKIPPED, "SKIPPED"))
        .on(ProgressEvent.MOVEON, _moveon)
        .on(ProgressEvent.NO_UTF8_NAME, _no_utf8)
        .on(ProgressEvent.WARNING, _failure(ItemKind.WARNING, "WARNING"))
        .on(ProgressEvent.ERROR, _failure(ItemKind.ERROR, "ERROR"))
    )


async def _run_with_signals(traversal: Traversal) -> RunSummary:
    with _signal_handlers(traversal):
        return await traversal.run()


@contextmanager
def _signal_handlers(traversal: Traversal) -> Iterator[None]:
    """First SIGINT/SIGTERM drains admitted work, the second aborts."""

    loop = asyncio.get_running_loop()

    def _handler(signum: int) -> None:
        name = signal.Signals(signum).name
        if traversal.state is ControlState.RUNNING:
            logger.info("Received %s, finishing admitted items", name)
            traversal.quit()
        else:
            logger.info("Received %s again, aborting", name)
            traversal.abort()

    installed: list[signal.Signals] = []
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, _handler, signum)
        except (NotImplementedError, RuntimeError, ValueError):
            # Not supported on this platform or outside the main thread.
            continue
        installed.append(signum)
    try:
        yield
    finally:
        for signum in installed:
            loop.remove_signal_handler(signum)


def _start_description(*, names: list[str] | None, marker: str | None) -> str:
    if names is not None:
        return f"refilling {len(names)} item(s)"
    if marker:
        return f"resuming after {marker}"
    return "starting from the beginning"


def _first_set(value: int | None, default: int) -> int:
    return default if value is None else value


@contextmanager
def _repository(settings: Settings) -> Iterator[TaskRepository]:
    repository = TaskRepository(db_path=settings.db_path)
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()
