"""Microtask scheduling — where deferred dispatches get queued.

A notifier never runs its listeners inline. When a write arms a dispatch,
the notifier hands a zero-argument callback to a scheduler, and the
scheduler decides when it runs.

The default scheduler uses the running asyncio loop's call_soon: the
callback runs once the current synchronous stack unwinds, before any I/O
or timer callbacks registered later. Without a running loop the callback
is parked here until flush() is called.

Tests inject a ManualScheduler to step the state machine deterministically.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Callable

Callback = Callable[[], None]
Scheduler = Callable[[Callback], None]

# Callbacks scheduled while no event loop was running, awaiting flush().
_parked: deque[Callback] = deque()

_scheduler: Scheduler | None = None


def default_scheduler(callback: Callback) -> None:
    """Queue callback on the running loop, or park it if there is none."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        _parked.append(callback)
    else:
        loop.call_soon(callback)


def set_scheduler(scheduler: Scheduler | None) -> None:
    """Set the ambient scheduler for notifiers created without one.

    Resolved each time a write arms a dispatch, so swapping it affects
    notifiers that already exist. Pass None to restore default_scheduler.

    Usage:
        asyncvalue.set_scheduler(app.call_later)
    """
    global _scheduler
    _scheduler = scheduler


def get_scheduler() -> Scheduler:
    return _scheduler if _scheduler is not None else default_scheduler


def flush() -> int:
    """Run parked callbacks, including ones parked while flushing.

    Returns how many ran.
    """
    count = 0
    while _parked:
        callback = _parked.popleft()
        callback()
        count += 1
    return count


def get_pending_count() -> int:
    """Number of parked callbacks. Useful for testing."""
    return len(_parked)


class ManualScheduler:
    """Deterministic scheduler that only runs callbacks when told to.

    Usage:
        scheduler = ManualScheduler()
        n = AsyncValueNotifier(0, scheduler=scheduler)
        n.value = 1
        assert len(scheduler) == 1
        scheduler.run_all()
    """

    def __init__(self) -> None:
        self._queue: deque[Callback] = deque()

    def __call__(self, callback: Callback) -> None:
        self._queue.append(callback)

    def __len__(self) -> int:
        return len(self._queue)

    def run_all(self) -> int:
        """Drain the queue, including callbacks queued while draining."""
        count = 0
        while self._queue:
            self._queue.popleft()()
            count += 1
        return count
