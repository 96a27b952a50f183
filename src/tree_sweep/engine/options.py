"""Validated traversal options."""

from __future__ import annotations

import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from tree_sweep.engine.models import Processor

UNBOUNDED = sys.maxsize


@dataclass(slots=True)
class TraversalOptions:
    """Inputs of one traversal run.

    ``names`` switches the run to targeted retraversal of an explicit name
    list; ``marker`` is ignored in that mode.
    """

    path: Path
    processor: Processor
    names: tuple[str, ...] | None = None
    marker: str | None = None
    max_done: int = UNBOUNDED
    max_doing: int = 100
    max_waiting: int = 10_000
    max_errors: int = UNBOUNDED
    retry: int = 3
    directory_first: bool = False
    backpressure_poll_seconds: float = 1.0

    def __post_init__(self) -> None:
        self.path = Path(self.path).expanduser().resolve()

    @classmethod
    def build(cls, *, path: Path, processor: Processor, **overrides: Any) -> TraversalOptions:
        """Create options, letting ``None`` overrides fall back to defaults."""

        known = {item.name for item in fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown traversal options: {', '.join(unknown)}")
        values = {key: value for key, value in overrides.items() if value is not None}
        if "names" in values:
            values["names"] = tuple(values["names"])
        return cls(path=Path(path), processor=processor, **values)

    def validate(self) -> None:
        """Raise configuration error if any bound is out of range."""

        if not callable(self.processor):
            raise ValueError("Traversal processor must be callable.")
        if self.max_doing < 1:
            raise ValueError(f"max_doing must be >= 1, got {self.max_doing}")
        if self.max_waiting < 1:
            raise ValueError(f"max_waiting must be >= 1, got {self.max_waiting}")
        if self.max_errors < 1:
            raise ValueError(f"max_errors must be >= 1, got {self.max_errors}")
        if self.max_done < 0:
            raise ValueError(f"max_done must be >= 0, got {self.max_done}")
        if self.retry < 0:
            raise ValueError(f"retry must be >= 0, got {self.retry}")
        if self.backpressure_poll_seconds < 0:
            raise ValueError(
                f"backpressure_poll_seconds must be >= 0, got {self.backpressure_poll_seconds}",
            )

    @property
    def marker_pieces(self) -> tuple[str, ...] | None:
        if not self.marker:
            return None
        return tuple(self.marker.split("/"))
