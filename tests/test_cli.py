from __future__ import annotations

from pathlib import Path

import allure
import pytest
from click.testing import CliRunner

from tree_sweep import __version__
from tree_sweep.main import tree_sweep
from tree_sweep.processors import canonical_reference
from tree_sweep.tasks import TaskIdentity

pytestmark = [
    allure.epic("Sweep CLI"),
    allure.feature("Run, Resume, Fill"),
]

PROCESSOR_SOURCE = """\
import os


def process(item):
    failing = set(filter(None, os.environ.get("SWEEP_TEST_FAIL", "").split(",")))
    if item.name in failing or "*" in failing:
        raise RuntimeError(f"cannot handle {item.name}")
"""


@pytest.fixture()
def processor_file(tmp_path: Path) -> Path:
    path = tmp_path / "processor.py"
    path.write_text(PROCESSOR_SOURCE, "utf-8")
    return path


def _run(db_path: Path, root: Path, processor: Path | str, *extra: str):
    return CliRunner().invoke(
        tree_sweep,
        [
            "run",
            "--path",
            str(root),
            "--processor",
            str(processor),
            "--db-path",
            str(db_path),
            "--concurrency",
            "1",
            *extra,
        ],
    )


def _task_id(root: Path, processor: Path) -> str:
    return TaskIdentity(
        path=str(root.resolve()),
        processor=canonical_reference(str(processor)),
        directory_first=False,
    ).task_id


def test_version_option() -> None:
    result = CliRunner().invoke(tree_sweep, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_run_prints_events_and_resumes_from_stored_marker(
    tmp_path: Path,
    sample_tree: Path,
    processor_file: Path,
    monkeypatch,
) -> None:
    monkeypatch.delenv("SWEEP_TEST_FAIL", raising=False)
    db_path = tmp_path / "sweep.db"

    first = _run(db_path, sample_tree, processor_file)

    assert first.exit_code == 0, first.output
    assert "starting from the beginning" in first.output
    for name in ("a", "b", "c/d", "c"):
        assert f"[ DONE    ] {name}\n" in first.output
    assert "[ MOVEON  ] c\n" in first.output
    assert "Sweep summary: registered=4 done=4 ignored=0 skipped=0 errors=0" in first.output
    assert "Status: completed" in first.output

    second = _run(db_path, sample_tree, processor_file)

    assert second.exit_code == 0, second.output
    assert "resuming after c" in second.output
    assert "[ DONE" not in second.output
    assert "registered=0" in second.output

    again = _run(db_path, sample_tree, processor_file, "--start-over")

    assert again.exit_code == 0, again.output
    assert "registered=4" in again.output


def test_fill_reprocesses_ignored_items_only(
    tmp_path: Path,
    sample_tree: Path,
    processor_file: Path,
    monkeypatch,
) -> None:
    db_path = tmp_path / "sweep.db"
    task_id = _task_id(sample_tree, processor_file)
    monkeypatch.setenv("SWEEP_TEST_FAIL", "b")

    first = _run(db_path, sample_tree, processor_file, "--retry", "0")

    assert first.exit_code == 0, first.output
    assert "[ IGNORED ] b\n" in first.output
    assert "[ ERROR   ] b: RuntimeError: cannot handle b\n" in first.output
    assert "[ MOVEON  ] c\n" in first.output

    monkeypatch.delenv("SWEEP_TEST_FAIL")
    fill = _run(db_path, sample_tree, processor_file, "--fill")

    assert fill.exit_code == 0, fill.output
    assert "refilling 1 item(s)" in fill.output
    assert "[ DONE    ] b\n" in fill.output
    assert "[ DONE    ] a\n" not in fill.output

    inspect = CliRunner().invoke(
        tree_sweep,
        ["inspect", "--db-path", str(db_path), "--task-id", task_id],
    )
    assert inspect.exit_code == 0, inspect.output
    assert "Marker: c\n" in inspect.output
    assert "  done=4\n" in inspect.output
    assert "  error=1\n" in inspect.output
    assert "ignored=" not in inspect.output

    nothing = _run(db_path, sample_tree, processor_file, "--fill")
    assert nothing.exit_code == 0, nothing.output
    assert "nothing to refill" in nothing.output


def test_error_limit_aborts_with_non_zero_exit(
    tmp_path: Path,
    sample_tree: Path,
    processor_file: Path,
    monkeypatch,
) -> None:
    monkeypatch.setenv("SWEEP_TEST_FAIL", "*")

    result = _run(
        tmp_path / "sweep.db",
        sample_tree,
        processor_file,
        "--retry",
        "0",
        "--max-errors",
        "1",
    )

    assert result.exit_code == 1
    assert "[ ERROR   ] a: RuntimeError" in result.output
    assert "Status: aborted" in result.output
    assert "Sweep aborted" in result.output


def test_max_done_stops_gracefully_and_stores_marker(
    tmp_path: Path,
    sample_tree: Path,
    processor_file: Path,
    monkeypatch,
) -> None:
    monkeypatch.delenv("SWEEP_TEST_FAIL", raising=False)
    db_path = tmp_path / "sweep.db"

    result = _run(db_path, sample_tree, processor_file, "--max-done", "2")

    assert result.exit_code == 0, result.output
    assert "Marker: b" in result.output
    listing = CliRunner().invoke(tree_sweep, ["tasks", "--db-path", str(db_path)])
    assert "Tasks: 1" in listing.output
    assert "marker=b status=completed" in listing.output


def test_start_over_and_fill_are_mutually_exclusive(
    tmp_path: Path,
    sample_tree: Path,
    processor_file: Path,
) -> None:
    result = _run(tmp_path / "sweep.db", sample_tree, processor_file, "--start-over", "--fill")

    assert result.exit_code == 2


def test_unknown_processor_is_reported(tmp_path: Path, sample_tree: Path) -> None:
    result = _run(tmp_path / "sweep.db", sample_tree, tmp_path / "missing.py")

    assert result.exit_code == 1
    assert "not found" in result.output


def test_inspect_unknown_task(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        tree_sweep,
        ["inspect", "--db-path", str(tmp_path / "sweep.db"), "--task-id", "nope"],
    )

    assert result.exit_code == 0
    assert "Task not found: nope" in result.output


def test_resume_finds_marker_when_processor_is_spelled_differently(
    tmp_path: Path,
    sample_tree: Path,
    processor_file: Path,
    monkeypatch,
) -> None:
    monkeypatch.delenv("SWEEP_TEST_FAIL", raising=False)
    db_path = tmp_path / "sweep.db"

    first = _run(db_path, sample_tree, processor_file.resolve(), "--max-done", "2")
    assert first.exit_code == 0, first.output
    assert "Marker: b" in first.output

    monkeypatch.chdir(processor_file.parent)
    second = _run(db_path, sample_tree, processor_file.name)

    assert second.exit_code == 0, second.output
    assert "resuming after b" in second.output
    assert "[ DONE    ] a\n" not in second.output
    assert "[ DONE    ] c/d\n" in second.output
    listing = CliRunner().invoke(tree_sweep, ["tasks", "--db-path", str(db_path)])
    assert "Tasks: 1" in listing.output


def test_same_relative_processor_name_in_other_directory_is_another_task(
    tmp_path: Path,
    sample_tree: Path,
    processor_file: Path,
    monkeypatch,
) -> None:
    monkeypatch.delenv("SWEEP_TEST_FAIL", raising=False)
    db_path = tmp_path / "sweep.db"
    other_dir = tmp_path / "other"
    other_dir.mkdir()
    (other_dir / processor_file.name).write_text(PROCESSOR_SOURCE, "utf-8")

    monkeypatch.chdir(processor_file.parent)
    assert _run(db_path, sample_tree, processor_file.name).exit_code == 0
    monkeypatch.chdir(other_dir)
    second = _run(db_path, sample_tree, processor_file.name)

    assert second.exit_code == 0, second.output
    assert "starting from the beginning" in second.output
    listing = CliRunner().invoke(tree_sweep, ["tasks", "--db-path", str(db_path)])
    assert "Tasks: 2" in listing.output


def test_error_limit_on_last_item_after_discovery_still_completes(
    tmp_path: Path,
    processor_file: Path,
    monkeypatch,
) -> None:
    root = tmp_path / "single"
    root.mkdir()
    (root / "only").write_text("x", "utf-8")
    monkeypatch.setenv("SWEEP_TEST_FAIL", "only")

    result = _run(
        tmp_path / "sweep.db",
        root,
        processor_file,
        "--retry",
        "0",
        "--max-errors",
        "1",
    )

    assert result.exit_code == 0, result.output
    assert "[ ERROR   ] only: RuntimeError" in result.output
    assert "Status: completed" in result.output
    assert "Sweep aborted" not in result.output
