"""Load user-supplied item processors."""

from __future__ import annotations

import asyncio
import functools
import importlib
import importlib.util
import inspect
import logging
from collections.abc import Callable
from pathlib import Path

from tree_sweep.engine.models import FsItem, Processor

logger = logging.getLogger(__name__)

DEFAULT_PROCESSOR_ATTRIBUTE = "process"


class ProcessorLoadError(ValueError):
    """Raised when a processor reference cannot be resolved."""


def as_async_processor(func: Callable[[FsItem], object]) -> Processor:
    """Return ``func`` as an awaitable processor.

    Synchronous callables run in the default thread pool so that blocking
    work does not stall the walker.
    """

    if not callable(func):
        raise ProcessorLoadError(f"Processor is not callable: {func!r}")
    if inspect.iscoroutinefunction(func) or inspect.iscoroutinefunction(
        getattr(func, "__call__", None),
    ):
        return func  # type: ignore[return-value]

    @functools.wraps(func)
    async def _run_in_thread(item: FsItem) -> object:
        return await asyncio.to_thread(func, item)

    return _run_in_thread


def split_reference(reference: str) -> tuple[str, str]:
    """Split ``target[:attribute]`` keeping Windows drive letters intact."""

    target, sep, attribute = reference.rpartition(":")
    if not sep or not attribute or "/" in attribute or "\\" in attribute or not target:
        return reference, DEFAULT_PROCESSOR_ATTRIBUTE
    return target, attribute


def canonical_reference(reference: str) -> str:
    """Return the reference with file targets resolved to an absolute path.

    Two spellings of the same processor file map to one string, and the same
    relative spelling used from different directories maps to different ones.
    """

    reference = reference.strip()
    target, attribute = split_reference(reference)
    if not target or not _looks_like_file(target):
        return reference
    return f"{Path(target).expanduser().resolve()}:{attribute}"


def load_processor(reference: str) -> Processor:
    """Resolve ``file.py``, ``file.py:attr`` or ``package.module:attr``."""

    target, attribute = split_reference(reference.strip())
    if not target:
        raise ProcessorLoadError("Processor reference is empty.")

    module = _load_file(Path(target)) if _looks_like_file(target) else _load_module(target)
    try:
        func = getattr(module, attribute)
    except AttributeError as error:
        raise ProcessorLoadError(
            f"Processor {reference!r} has no attribute {attribute!r}.",
        ) from error
    logger.debug("Loaded processor %s from %s", attribute, target)
    return as_async_processor(func)


def _looks_like_file(target: str) -> bool:
    return target.endswith(".py") or "/" in target or "\\" in target


def _load_file(path: Path) -> object:
    path = path.expanduser().resolve()
    if not path.is_file():
        raise ProcessorLoadError(f"Processor file not found: {path}")
    spec = importlib.util.spec_from_file_location(f"tree_sweep_processor_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise ProcessorLoadError(f"Cannot load processor file: {path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as error:
        raise ProcessorLoadError(f"Failed to load processor module {path}: {error}") from error
    return module


def _load_module(name: str) -> object:
    try:
        return importlib.import_module(name)
    except ImportError as error:
        raise ProcessorLoadError(f"Cannot import processor module {name!r}: {error}") from error
