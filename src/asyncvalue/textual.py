"""Textual integration for asyncvalue. Opt-in — requires textual.

bind() connects a notifier to widget updates. Notifications already arrive
after the current handler has unwound, so effects never run mid-compose;
what remains is guarding against a stopped app, a paused widget tree, and
widgets that are gone.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable

from textual.css.query import NoMatches

from asyncvalue.notifier import ValueListenable

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend bound effects during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


class Binding:
    """Handle for a bound effect. Keeps the listener alive until disposed."""

    __slots__ = ("_notifier", "_listener", "_disposed")

    def __init__(self, notifier: ValueListenable, listener: Callable[[], None]) -> None:
        self._notifier = notifier
        self._listener = listener
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        if not self._disposed:
            self._disposed = True
            self._notifier.remove_listener(self._listener)


def bind(
    app,
    notifier: ValueListenable,
    effect: Callable[[Any], None],
    *,
    fire_immediately: bool = False,
) -> Binding:
    """Call effect(notifier.value) whenever notifier dispatches.

    Skips while the app is paused or not running, and swallows NoMatches
    from widget queries. The returned Binding holds the listener, so this
    also works with weak_listeners=True as long as the Binding is kept.

    Usage:
        count = AsyncValueNotifier(0)
        self._binding = asyncvalue.textual.bind(self, count, lambda v: self.query_one("#count", Label).update(str(v)))
    """

    def _listener() -> None:
        if not is_safe(app):
            return
        try:
            effect(notifier.value)
        except NoMatches:
            pass

    notifier.add_listener(_listener)
    if fire_immediately:
        _listener()
    return Binding(notifier, _listener)
