"""Listener registry — ordered listeners, weak references, deferred mutation.

Entries are stored positionally: each add appends one entry, each remove
drops the first matching one, so the same callback may appear several times.

In weak mode every entry is a ListenerRef. One ref object is shared by all
registrations of the same callback and counts them in ref_count; the
registry never keeps the callback alive by itself.

While the owner is dispatching, the entry list is being iterated and must
not change. Adds and removes go into the pending log instead and are
applied by reconcile() once the dispatch loop has finished.
"""

from __future__ import annotations

import weakref
from collections import Counter
from types import ModuleType
from typing import Any, Callable, Hashable

Listener = Callable[[], Any]


def identity(listener: Listener) -> Hashable:
    """Key identifying a listener without holding a reference to it.

    Bound methods are rebuilt on each attribute access, so obj.method is
    keyed by its receiver and function rather than by the method object.
    """
    receiver = getattr(listener, "__self__", None)
    func = getattr(listener, "__func__", None)
    if receiver is not None and func is not None:
        return (id(receiver), id(func))
    # Builtin methods (lst.append) are rebuilt too but have no __func__.
    if receiver is not None and not isinstance(receiver, ModuleType):
        return (id(receiver), getattr(listener, "__name__", None))
    return id(listener)


class ListenerRef:
    """Weak reference to a listener plus its number of live registrations."""

    __slots__ = ("_ref", "key", "ref_count")

    def __init__(self, listener: Listener) -> None:
        self.key = identity(listener)
        self.ref_count = 0
        try:
            if hasattr(listener, "__self__") and hasattr(listener, "__func__"):
                self._ref = weakref.WeakMethod(listener)
            else:
                self._ref = weakref.ref(listener)
        except TypeError:
            # Builtins can't be weakly referenced; hold them strongly.
            self._ref = lambda: listener

    def __call__(self) -> Listener | None:
        """The listener, or None once it has been reclaimed."""
        return self._ref()

    def __repr__(self) -> str:
        target = self._ref()
        state = "dead" if target is None else repr(target)
        return f"ListenerRef({state}, ref_count={self.ref_count})"


class ListenerRegistry:
    """Ordered listener storage with a pending mutation log."""

    def __init__(self, weak: bool = False) -> None:
        self.weak = weak
        self._entries: list = []  # listeners, or ListenerRefs in weak mode
        self._refs: dict[Hashable, ListenerRef] = {}
        self._pending_adds: list[Listener] = []
        self._pending_removals: Counter = Counter()
        self._reclaimed = False  # a dead ref was seen during the last snapshot

    def __len__(self) -> int:
        return len(self._entries)

    def _target(self, entry) -> Listener | None:
        return entry() if self.weak else entry

    # --- Immediate mutation (not dispatching) ---

    def add(self, listener: Listener) -> None:
        if not self.weak:
            self._entries.append(listener)
            return
        key = identity(listener)
        ref = self._refs.get(key)
        # A dead ref under a reused id belongs to an earlier listener.
        if ref is None or ref() is None:
            ref = ListenerRef(listener)
            self._refs[key] = ref
        ref.ref_count += 1
        self._entries.append(ref)

    def remove(self, listener: Listener) -> None:
        key = identity(listener)
        for index, entry in enumerate(self._entries):
            target = self._target(entry)
            if target is not None and identity(target) == key:
                del self._entries[index]
                if self.weak:
                    entry.ref_count -= 1
                    if entry.ref_count <= 0 and self._refs.get(key) is entry:
                        del self._refs[key]
                return

    # --- Deferred mutation (dispatching) ---

    def defer_add(self, listener: Listener) -> None:
        self._pending_adds.append(listener)

    def defer_remove(self, listener: Listener) -> None:
        self._pending_removals[identity(listener)] += 1

    @property
    def has_pending(self) -> bool:
        return bool(self._pending_adds or self._pending_removals)

    # --- Reads ---

    def snapshot(self) -> list[Listener]:
        """Live listeners in registration order, for one dispatch.

        Reclaimed refs are skipped and remembered; the entry list itself is
        left alone until reconcile().
        """
        if not self.weak:
            return list(self._entries)
        live = []
        for ref in self._entries:
            target = ref()
            if target is None:
                self._reclaimed = True
            else:
                live.append(target)
        return live

    def live(self, compact: bool = True) -> list[Listener]:
        """Live listeners; drops reclaimed refs from storage if compact."""
        listeners = self.snapshot()
        if compact and self._reclaimed:
            self._rebuild(listeners)
            self._reclaimed = False
        return listeners

    # --- Post-dispatch ---

    def reconcile(self, disposed: bool) -> None:
        """Apply the pending log and drop reclaimed refs after a dispatch.

        Each pending removal consumes one matching occurrence, first among
        the existing entries, then among the pending adds, regardless of the
        order the add and remove were requested in.
        """
        if disposed:
            self.clear()
            return
        if not self._reclaimed and not self.has_pending:
            return

        removals = self._pending_removals
        kept: list[Listener] = []
        candidates = [self._target(entry) for entry in self._entries]
        candidates.extend(self._pending_adds)
        for listener in candidates:
            if listener is None:
                continue
            key = identity(listener)
            if removals[key] > 0:
                removals[key] -= 1
                continue
            kept.append(listener)

        self._rebuild(kept)
        self._pending_adds = []
        self._pending_removals = Counter()
        self._reclaimed = False

    def _rebuild(self, listeners: list[Listener]) -> None:
        """Replace storage with listeners, recomputing ref counts."""
        if not self.weak:
            self._entries = listeners
            return
        previous = self._refs
        self._entries = []
        self._refs = {}
        for listener in listeners:
            key = identity(listener)
            ref = self._refs.get(key)
            if ref is None:
                ref = previous.get(key)
                if ref is None or ref() is None:
                    ref = ListenerRef(listener)
                ref.ref_count = 0
                self._refs[key] = ref
            ref.ref_count += 1
            self._entries.append(ref)

    def clear(self) -> None:
        self._entries = []
        self._refs = {}
        self._pending_adds = []
        self._pending_removals = Counter()
        self._reclaimed = False
