"""Tests for asyncvalue.textual — Textual integration layer."""

import gc

import pytest
from textual.css.query import NoMatches

from asyncvalue import AsyncValueNotifier
from asyncvalue import textual as stx


class _MockApp:
    """Minimal mock matching the Textual App interface stx needs."""

    def __init__(self, *, is_running=True):
        self.is_running = is_running


class TestBind:
    def test_fires_when_safe(self, scheduler):
        app = _MockApp()
        n = AsyncValueNotifier(1, scheduler=scheduler)
        effects = []
        stx.bind(app, n, effects.append)

        n.value = 2
        n.value = 3
        scheduler.run_all()

        assert effects == [3]

    def test_fire_immediately(self, scheduler):
        app = _MockApp()
        n = AsyncValueNotifier("a", scheduler=scheduler)
        effects = []
        stx.bind(app, n, effects.append, fire_immediately=True)
        assert effects == ["a"]

    def test_skips_when_not_running(self, scheduler):
        app = _MockApp(is_running=False)
        n = AsyncValueNotifier(1, scheduler=scheduler)
        effects = []
        stx.bind(app, n, effects.append)

        n.value = 2
        scheduler.run_all()

        assert effects == []

    def test_skips_during_pause(self, scheduler):
        app = _MockApp()
        n = AsyncValueNotifier(1, scheduler=scheduler)
        effects = []
        stx.bind(app, n, effects.append)

        n.value = 2
        with stx.pause(app):
            scheduler.run_all()

        assert effects == []

    def test_catches_nomatch(self, scheduler, caplog):
        """NoMatches from widget queries is swallowed, not reported."""
        app = _MockApp()
        n = AsyncValueNotifier(1, scheduler=scheduler)

        def _raise_nomatch(v):
            raise NoMatches("StatusFooter")

        stx.bind(app, n, _raise_nomatch)
        n.value = 2
        scheduler.run_all()

        assert "NoMatches" not in caplog.text

    def test_real_errors_are_reported(self, scheduler, caplog):
        app = _MockApp()
        n = AsyncValueNotifier(1, scheduler=scheduler)
        effects = []

        def _raise_value_error(v):
            raise ValueError("boom")

        stx.bind(app, n, _raise_value_error)
        stx.bind(app, n, effects.append)
        n.value = 2
        scheduler.run_all()

        assert effects == [2]
        assert "ValueError" in caplog.text

    def test_dispose_stops_binding(self, scheduler):
        app = _MockApp()
        n = AsyncValueNotifier(1, scheduler=scheduler)
        effects = []
        binding = stx.bind(app, n, effects.append)

        n.value = 2
        scheduler.run_all()
        binding.dispose()
        binding.dispose()
        n.value = 3
        scheduler.run_all()

        assert effects == [2]
        assert binding.disposed
        assert n.listeners == []

    def test_binding_keeps_weak_listener_alive(self, scheduler):
        app = _MockApp()
        n = AsyncValueNotifier(1, weak_listeners=True, scheduler=scheduler)
        effects = []
        binding = stx.bind(app, n, effects.append)
        gc.collect()

        n.value = 2
        scheduler.run_all()

        assert effects == [2]
        binding.dispose()


class TestPause:
    def test_pause_restores_on_exception(self):
        app = _MockApp()
        assert stx.is_safe(app)

        with pytest.raises(RuntimeError):
            with stx.pause(app):
                assert not stx.is_safe(app)
                raise RuntimeError("oops")

        assert stx.is_safe(app)

    def test_multiple_apps_independent(self):
        app_a = _MockApp()
        app_b = _MockApp()
        with stx.pause(app_a):
            assert not stx.is_safe(app_a)
            assert stx.is_safe(app_b)
