"""Coupling cleanup to the completion of a callback, sync or async.

run_with_release() calls a body and guarantees that a release callback runs
exactly once when the body is done: right away if it raised or (optionally)
returned a plain value, or when the awaitable it returned settles.

defer_until_scheduled_drained() is the deferral used for plain return values
when output redirection must outlive the call: the release waits until the
callbacks already queued on the running event loop have run. Work scheduled
further into the future (timers, I/O callbacks, later task steps) is not
covered by this window.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar
from weakref import WeakKeyDictionary

__all__ = ['defer_until_scheduled_drained', 'release_after_failure', 'run_with_release']

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _ScheduledDrain:
    """Batch of releases waiting for one pass over a loop's ready queue.

    Each new release re-queues the batch behind everything scheduled so far.
    Releases run in reverse order of registration, so overrides installed in
    the same turn are removed innermost first.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self._callbacks: list[Callable[[], Any]] = []
        self._handle: asyncio.Handle | None = None

    def add(self, callback: Callable[[], Any]) -> None:
        self._callbacks.append(callback)
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self._loop.call_soon(self._run)

    def _run(self) -> None:
        self._handle = None
        callbacks, self._callbacks = self._callbacks, []
        for callback in reversed(callbacks):
            try:
                callback()
            except Exception as exc:
                self._loop.call_exception_handler({
                    "message": "Deferred release failed",
                    "exception": exc,
                })


_drains: WeakKeyDictionary[asyncio.AbstractEventLoop, _ScheduledDrain] = WeakKeyDictionary()


def defer_until_scheduled_drained(callback: Callable[[], Any]) -> None:
    """Run callback once the running loop has run everything queued so far.

    Without a running event loop nothing can be queued, so callback runs
    immediately.

    Args:
        callback: Zero-argument callable; errors it raises in deferred mode
            go to the loop's exception handler.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        callback()
        return
    drain = _drains.get(loop)
    if drain is None:
        drain = _ScheduledDrain(loop)
        _drains[loop] = drain
    drain.add(callback)


def release_after_failure(release: Callable[[], Any]) -> None:
    """Release while another error is in flight; never mask that error."""
    try:
        release()
    except Exception:
        logger.warning("Cleanup failed after the callback raised; "
                       "re-raising the callback's error", exc_info=True)


async def _guarded(awaitable: Awaitable[T], release: Callable[[], Any]) -> T:
    try:
        result = await awaitable
    except BaseException:
        release_after_failure(release)
        raise
    release()
    return result


def run_with_release(body: Callable[[], T], release: Callable[[], Any], *,
                     defer_sync_release: bool = False) -> T | Awaitable[Any]:
    """Call body and run release exactly once when body is done.

    Args:
        body: Zero-argument callable.
        release: Cleanup to run once. If it fails while body's error is
            propagating, the failure is logged and body's error wins.
        defer_sync_release: If True, a plain return value releases via
            defer_until_scheduled_drained() instead of immediately.

    Returns:
        body's return value. If body returned an awaitable, a task (when an
        event loop is running) or a coroutine that settles to the same result
        after release has run.
    """
    try:
        result = body()
    except BaseException:
        release_after_failure(release)
        raise

    if inspect.isawaitable(result):
        guarded = _guarded(result, release)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return guarded
        return asyncio.ensure_future(guarded)

    if defer_sync_release:
        defer_until_scheduled_drained(release)
    else:
        release()
    return result
