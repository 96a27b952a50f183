from __future__ import annotations

from pathlib import Path

import allure
import pytest

from tree_sweep.engine import FsItem, FsNode, ItemFailure, NodeStatus, NoUtf8Name, RunCounters

pytestmark = [
    allure.epic("Traversal Engine"),
    allure.feature("Node Model"),
]


def test_new_node_is_waiting_with_no_retries() -> None:
    node = FsNode(name="c/d", path=Path("/data/c/d"))

    assert node.status is NodeStatus.WAITING
    assert node.retries == 0
    assert node.to_item() == FsItem(name="c/d", path=Path("/data/c/d"))


def test_retry_increments_retries_only() -> None:
    node = FsNode(name="a", path=Path("/data/a"))
    node.status = NodeStatus.DOING

    node.retry()
    node.retry()

    assert node.retries == 2
    assert node.status is NodeStatus.DOING


def test_terminal_statuses() -> None:
    assert {status for status in NodeStatus if status.is_terminal} == {
        NodeStatus.DONE,
        NodeStatus.IGNORED,
        NodeStatus.SKIPPED,
    }


def test_counters_reject_non_terminal_status() -> None:
    counters = RunCounters()
    counters.count_terminal(NodeStatus.DONE)
    counters.count_terminal(NodeStatus.SKIPPED)

    assert (counters.done, counters.ignored, counters.skipped) == (1, 0, 1)
    with pytest.raises(ValueError, match="not terminal"):
        counters.count_terminal(NodeStatus.DOING)


def test_payload_rendering() -> None:
    failure = ItemFailure(name="a", path=Path("/data/a"), error=OSError("boom"), attempts=2)

    assert NoUtf8Name(dirname="c", name_bytes=b"\xff\xfe").label == "c:fffe"
    assert failure.message == "a: OSError: boom"
