"""CLI entrypoint for tree-sweep."""

import logging
from pathlib import Path

import rich_click as click

from tree_sweep import __version__
from tree_sweep.controllers import (
    SweepCliController,
    SweepInspectCommand,
    SweepRunCommand,
    SweepTasksCommand,
)

click.rich_click.USE_MARKDOWN = True
SWEEP_CONTROLLER = SweepCliController()
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"


@click.group()
@click.version_option(version=__version__, prog_name="tree-sweep")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level for diagnostic output on stderr.",
)
def tree_sweep(log_level: str) -> None:
    """Resumable batch processing over directory trees.

    Every entry under `--path` is handed to the processor once, in byte
    order. The resume marker is stored after each contiguous run of
    finished entries, so an interrupted sweep continues where it stopped.
    """

    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)


@tree_sweep.command("run")
@click.option(
    "--path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    required=True,
    help="Root directory to sweep.",
)
@click.option(
    "--processor",
    required=True,
    help="Processor reference: `file.py`, `file.py:attr` or `package.module:attr`.",
)
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Max items processed at once. Defaults to TREE_SWEEP_MAX_DOING.",
)
@click.option(
    "--max-waiting",
    type=click.IntRange(min=1),
    default=None,
    help="Max discovered items waiting for a slot. Defaults to TREE_SWEEP_MAX_WAITING.",
)
@click.option(
    "--max-done",
    type=click.IntRange(min=0),
    default=None,
    help="Stop discovering after this many registered items.",
)
@click.option(
    "--max-errors",
    type=click.IntRange(min=1),
    default=None,
    help="Abort the run after this many processor failures.",
)
@click.option(
    "--retry",
    type=click.IntRange(min=0),
    default=None,
    help="Retries per item before it is ignored. Defaults to TREE_SWEEP_RETRY.",
)
@click.option(
    "--directory-first/--children-first",
    default=False,
    show_default=True,
    help="Offer a directory before its children instead of after them.",
)
@click.option(
    "--start-over",
    is_flag=True,
    default=False,
    help="Ignore the stored marker and sweep from the beginning.",
)
@click.option(
    "--fill",
    is_flag=True,
    default=False,
    help="Re-process only the items ignored by previous runs.",
)
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def sweep_run(  # noqa: PLR0913
    path: Path,
    processor: str,
    concurrency: int | None,
    max_waiting: int | None,
    max_done: int | None,
    max_errors: int | None,
    retry: int | None,
    directory_first: bool,
    start_over: bool,
    fill: bool,
    db_path: Path | None,
) -> None:
    """Process every entry under a directory, resuming from the stored marker."""

    if start_over and fill:
        raise click.UsageError("--start-over and --fill are mutually exclusive.")
    try:
        result = SWEEP_CONTROLLER.run(
            SweepRunCommand(
                db_path=db_path,
                path=path,
                processor=processor,
                concurrency=concurrency,
                max_waiting=max_waiting,
                max_done=max_done,
                max_errors=max_errors,
                retry=retry,
                directory_first=directory_first,
                start_over=start_over,
                fill=fill,
            ),
            echo=click.echo,
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(result.lines)
    if result.aborted:
        raise click.ClickException("Sweep aborted before completion.")


@tree_sweep.command("tasks")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def sweep_tasks(db_path: Path | None) -> None:
    """List stored sweep tasks with their markers."""

    _emit_lines(SWEEP_CONTROLLER.tasks(SweepTasksCommand(db_path=db_path)))


@tree_sweep.command("inspect")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--task-id", required=True, help="Task id as printed by `tasks`.")
def sweep_inspect(db_path: Path | None, task_id: str) -> None:
    """Show one task and its per-kind item counts."""

    _emit_lines(SWEEP_CONTROLLER.inspect(SweepInspectCommand(db_path=db_path, task_id=task_id)))


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    tree_sweep()
