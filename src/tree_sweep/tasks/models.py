"""Views and enums for persisted sweep tasks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ItemKind(str, Enum):
    """Kinds of per-item rows kept in the outcome log."""

    DONE = "done"
    IGNORED = "ignored"
    SKIPPED = "skipped"
    REFILL = "refill"
    NO_UTF8_NAME = "no-utf8-name"
    WARNING = "warning"
    ERROR = "error"


@dataclass(slots=True)
class SweepTaskView:
    """Readable task view for CLI and controllers."""

    task_id: str
    path: str
    processor: str
    directory_first: bool
    marker: str | None
    last_status: str | None
    created_at: datetime
    updated_at: datetime
