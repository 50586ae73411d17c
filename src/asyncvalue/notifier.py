"""AsyncValueNotifier — an observable value with coalesced, deferred notification.

Assigning .value stores the new value right away, but listeners are not
called inline. The first distinct write in a turn schedules one callback
("microtask") on the scheduler; later writes in the same turn only replace
the value. When the callback runs, listeners see the final value once.

This keeps a listener from mutating state underneath logic still running
further down the stack, and keeps UI hosts from seeing state change while
they are mid-render.

State machine:

    idle --write--> pending --microtask--> dispatching --loop done--> idle
                        \\--microtask, reverted--> idle
    any --dispose()--> disposed (terminal)
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Protocol, TypeVar

from asyncvalue import _errors
from asyncvalue._registry import Listener, ListenerRegistry, identity
from asyncvalue._scheduling import Scheduler, get_scheduler

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

logger = logging.getLogger("asyncvalue.notifier")


class ValueListenable(Protocol[T_co]):
    """What a host binder needs from an observable value."""

    @property
    def value(self) -> T_co: ...

    def add_listener(self, listener: Listener) -> None: ...

    def remove_listener(self, listener: Listener) -> None: ...


def default_equality(a: Any, b: Any) -> bool:
    """Value equality, except that two NaNs of the same type are equal.

    NaN != NaN would make every NaN write look like a change and defeat
    coalescing.
    """
    if a is b or a == b:
        return True
    # NaN is the only value unequal to itself (float, Decimal, numpy scalars).
    return type(a) is type(b) and a != a and b != b


class AsyncValueNotifier(Generic[T]):
    """A value whose listeners are notified once per burst of writes.

    Usage:
        n = AsyncValueNotifier(0)
        n.add_listener(lambda: print(n.value))

        n.value = 1
        n.value = 2
        n.value = 3
        # n.value == 3 already; nothing printed yet

        await asyncio.sleep(0)
        # prints 3, once

    Options:
        equality: replaces default_equality for no-op and revert checks.
        distinct: call a listener registered several times only once per dispatch.
        cancel_on_revert: skip the dispatch if the value is back to what it
            was when the burst started.
        weak_listeners: hold listeners by weak reference; reclaimed ones drop out.
        scheduler: where to queue the dispatch (defaults to get_scheduler()).
    """

    __slots__ = (
        "_value",
        "equality",
        "distinct",
        "cancel_on_revert",
        "_registry",
        "_scheduler",
        "_pending",
        "_dispatching",
        "_disposed",
    )

    def __init__(
        self,
        value: T,
        *,
        equality: Callable[[T, T], bool] | None = None,
        distinct: bool = False,
        cancel_on_revert: bool = False,
        weak_listeners: bool = False,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._value = value
        self.equality: Callable[[T, T], bool] = equality if equality is not None else default_equality
        self.distinct = distinct
        self.cancel_on_revert = cancel_on_revert
        self._registry = ListenerRegistry(weak=weak_listeners)
        self._scheduler = scheduler
        self._pending = False
        self._dispatching = False
        self._disposed = False

    # --- Value ---

    @property
    def value(self) -> T:
        return self._value

    @value.setter
    def value(self, new_value: T) -> None:
        if self._disposed or self.equality(self._value, new_value):
            return
        if not self._pending:
            self._pending = True
            old_value = self._value
            scheduler = self._scheduler if self._scheduler is not None else get_scheduler()
            scheduler(lambda: self._run(old_value))
        self._value = new_value

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self.value = value

    # --- State ---

    @property
    def pending(self) -> bool:
        """A dispatch is scheduled and has not run yet."""
        return self._pending

    @property
    def dispatching(self) -> bool:
        """Listeners are being called right now."""
        return self._dispatching

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def weak_listeners(self) -> bool:
        return self._registry.weak

    @property
    def listeners(self) -> list[Listener]:
        """Snapshot of the live listeners in registration order."""
        return self._registry.live(compact=not self._dispatching)

    @property
    def has_listeners(self) -> bool:
        return bool(self.listeners)

    # --- Listeners ---

    def add_listener(self, listener: Listener) -> None:
        """Register listener. During a dispatch, takes effect after it."""
        if self._disposed:
            return
        if self._dispatching:
            self._registry.defer_add(listener)
        else:
            self._registry.add(listener)

    def remove_listener(self, listener: Listener) -> None:
        """Remove one registration of listener. During a dispatch, takes effect after it."""
        if self._disposed:
            return
        if self._dispatching:
            self._registry.defer_remove(listener)
        else:
            self._registry.remove(listener)

    def dispose(self) -> None:
        """Drop all listeners and stop notifying. Safe to call repeatedly.

        Called from inside a listener, the current dispatch stops before the
        next listener and the registry is cleared when the loop exits.
        """
        if self._disposed:
            return
        self._disposed = True
        if not self._dispatching:
            self._registry.clear()
        logger.debug("Disposed %r", self)

    # --- Dispatch ---

    def _run(self, old_value: T) -> None:
        """The scheduled microtask: decide whether to dispatch, then do it."""
        self._pending = False
        if self._disposed:
            return
        if self.cancel_on_revert and self.equality(self._value, old_value):
            logger.debug("Skipped dispatch for %r: value reverted", self)
            return

        self._dispatching = True
        try:
            self._dispatch()
        finally:
            self._dispatching = False
            self._registry.reconcile(disposed=self._disposed)

    def _dispatch(self) -> None:
        seen: set | None = set() if self.distinct else None  # read once per dispatch
        for listener in self._registry.snapshot():
            if self._disposed:
                break
            if seen is not None:
                key = identity(listener)
                if key in seen:
                    continue
                seen.add(key)
            _errors.invoke(self, listener)

    def __repr__(self) -> str:
        return f"AsyncValueNotifier#{id(self) & 0xFFFFF:05x}({self._value!r})"
