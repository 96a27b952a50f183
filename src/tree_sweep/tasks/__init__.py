"""Persisted sweep tasks: identity, resume marker and item outcomes."""

from tree_sweep.tasks.identity import TaskIdentity
from tree_sweep.tasks.models import ItemKind, SweepTaskView
from tree_sweep.tasks.repository import TaskRepository

__all__ = ["ItemKind", "SweepTaskView", "TaskIdentity", "TaskRepository"]
