"""Notification channel and control signals for a traversal run."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any

from tree_sweep.engine.models import ControlState

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class ProgressEvent(str, Enum):
    """Notifications emitted by the engine."""

    DONE = "done"
    IGNORED = "ignored"
    SKIPPED = "skipped"
    MOVEON = "moveon"
    NO_UTF8_NAME = "no-utf8-name"
    WARNING = "warning"
    ERROR = "error"
    END = "end"


class Progress:
    """Observer registry plus the two-tier stop state of one run.

    Subscribers are called synchronously in subscription order. A subscriber
    that raises is logged and skipped so that item bookkeeping is never
    interrupted by an outer layer.
    """

    def __init__(self) -> None:
        self._handlers: defaultdict[ProgressEvent, list[Handler]] = defaultdict(list)
        self._state = ControlState.RUNNING

    def on(self, event: ProgressEvent | str, handler: Handler) -> None:
        self._handlers[ProgressEvent(event)].append(handler)

    def emit(self, event: ProgressEvent, payload: object) -> None:
        for handler in tuple(self._handlers.get(event, ())):
            try:
                handler(payload)
            except Exception:
                logger.exception("Subscriber for %r failed", event.value)

    @property
    def state(self) -> ControlState:
        return self._state

    @property
    def discovery_stopped(self) -> bool:
        return self._state is not ControlState.RUNNING

    @property
    def dispatch_stopped(self) -> bool:
        return self._state is ControlState.ABORTED

    def quit(self) -> None:
        """Stop discovering entries; admitted work keeps draining."""

        if self._state is ControlState.RUNNING:
            logger.info("Graceful stop requested")
            self._state = ControlState.DRAINING

    def abort(self) -> None:
        """Stop discovering and stop dispatching pending entries."""

        if self._state is not ControlState.ABORTED:
            logger.warning("Hard abort requested")
            self._state = ControlState.ABORTED
