"""Bounded waits around blocking store calls."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import TypeVar

from aura_quiz.core.errors import PersistenceError, PersistenceTimeoutError

T = TypeVar("T")

_EXECUTOR = ThreadPoolExecutor(max_workers=4, thread_name_prefix="AuraStoreCall")


def call_with_deadline(func: Callable[[], T], timeout_seconds: float | None, description: str) -> T:
    """Run ``func`` and wait at most ``timeout_seconds`` for it.

    ``OSError`` failures (sockets, files) are wrapped in ``PersistenceError`` so
    callers only need to handle one retryable error type. A call that times out
    keeps running on its worker thread; its result is discarded.
    """
    if timeout_seconds is None:
        return _run(func, description)
    future = _EXECUTOR.submit(_run, func, description)
    try:
        return future.result(timeout=timeout_seconds)
    except FutureTimeoutError as exc:
        raise PersistenceTimeoutError(
            f"{description} did not finish within {timeout_seconds:g}s"
        ) from exc


def _run(func: Callable[[], T], description: str) -> T:
    try:
        return func()
    except PersistenceError:
        raise
    except OSError as exc:
        raise PersistenceError(f"{description} failed: {exc}") from exc
