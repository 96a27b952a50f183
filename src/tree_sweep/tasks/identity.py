"""Deterministic task identity for resumable runs."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TaskIdentity:
    """Parameters that change the result of a sweep, not just its pace.

    Two invocations with equal identities share one stored marker, so a run
    with a different root, processor or order starts from scratch.
    """

    path: str
    processor: str
    directory_first: bool

    def to_metadata(self) -> dict[str, object]:
        return {
            "path": self.path,
            "processor": self.processor,
            "directory-first": self.directory_first,
        }

    @property
    def task_id(self) -> str:
        payload = json.dumps(self.to_metadata(), sort_keys=True, separators=(",", ":"))
        return hashlib.md5(payload.encode("utf-8"), usedforsecurity=False).hexdigest()
