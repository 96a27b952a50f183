"""Runtime configuration for tree-sweep."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from tree_sweep.engine.options import UNBOUNDED

DEFAULT_HOME = Path("~/.tree-sweep")


@dataclass(slots=True)
class SweepSettings:
    """Default traversal limits applied when CLI flags are omitted."""

    max_doing: int = 100
    max_waiting: int = 10_000
    max_done: int = UNBOUNDED
    max_errors: int = UNBOUNDED
    retry: int = 3
    backpressure_poll_seconds: float = 1.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    db_path: Path = field(default_factory=lambda: DEFAULT_HOME.expanduser() / "tasks.db")
    sweep: SweepSettings = field(default_factory=SweepSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with defaults for local use."""

        env_db_path = os.getenv("TREE_SWEEP_DB_PATH")
        if db_path is None:
            db_path = Path(env_db_path) if env_db_path else DEFAULT_HOME / "tasks.db"
        return cls(
            db_path=db_path.expanduser(),
            sweep=SweepSettings(
                max_doing=int(os.getenv("TREE_SWEEP_MAX_DOING", "100")),
                max_waiting=int(os.getenv("TREE_SWEEP_MAX_WAITING", "10000")),
                max_done=_env_limit("TREE_SWEEP_MAX_DONE"),
                max_errors=_env_limit("TREE_SWEEP_MAX_ERRORS"),
                retry=int(os.getenv("TREE_SWEEP_RETRY", "3")),
                backpressure_poll_seconds=float(
                    os.getenv("TREE_SWEEP_BACKPRESSURE_POLL_SECONDS", "1.0"),
                ),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if any default limit is out of range."""

        if self.sweep.max_doing < 1:
            raise ValueError("TREE_SWEEP_MAX_DOING must be >= 1.")
        if self.sweep.max_waiting < 1:
            raise ValueError("TREE_SWEEP_MAX_WAITING must be >= 1.")
        if self.sweep.max_done < 0:
            raise ValueError("TREE_SWEEP_MAX_DONE must be >= 0.")
        if self.sweep.max_errors < 1:
            raise ValueError("TREE_SWEEP_MAX_ERRORS must be >= 1.")
        if self.sweep.retry < 0:
            raise ValueError("TREE_SWEEP_RETRY must be >= 0.")
        if self.sweep.backpressure_poll_seconds < 0:
            raise ValueError("TREE_SWEEP_BACKPRESSURE_POLL_SECONDS must be >= 0.")


def _env_limit(name: str) -> int:
    """Parse an optional upper bound; an empty value means unbounded."""

    raw = os.getenv(name, "").strip()
    if not raw or raw.lower() in {"none", "unbounded"}:
        return UNBOUNDED
    try:
        return int(raw)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {raw!r}") from error
