"""Checkpointed traversal engine."""

from tree_sweep.engine.models import (
    ControlState,
    FsItem,
    FsNode,
    ItemFailure,
    NodeStatus,
    NoUtf8Name,
    Processor,
    RunCounters,
    RunSummary,
)
from tree_sweep.engine.options import TraversalOptions
from tree_sweep.engine.progress import Progress, ProgressEvent
from tree_sweep.engine.traversal import Traversal, traverse

__all__ = [
    "ControlState",
    "FsItem",
    "FsNode",
    "ItemFailure",
    "NoUtf8Name",
    "NodeStatus",
    "Processor",
    "Progress",
    "ProgressEvent",
    "RunCounters",
    "RunSummary",
    "Traversal",
    "TraversalOptions",
    "traverse",
]
