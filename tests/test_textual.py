"""Tests for resignal.textual: Textual integration layer."""

import pytest
from textual.css.query import NoMatches

from resignal import signal
from resignal import textual as stx


class _MockApp:
    """Minimal mock matching the Textual App interface stx needs."""

    def __init__(self, *, is_running=True):
        self.is_running = is_running


class TestReaction:
    def test_fires_when_running(self):
        app = _MockApp()
        s = signal(1)
        effects = []
        dispose = stx.reaction(app, lambda: s.value, effects.append)
        s.value = 2
        assert effects == [2]
        dispose()

    def test_skips_when_not_running(self):
        app = _MockApp(is_running=False)
        s = signal(1)
        effects = []
        dispose = stx.reaction(app, lambda: s.value, effects.append)
        s.value = 2
        assert effects == []
        dispose()

    def test_skips_during_pause(self):
        app = _MockApp()
        s = signal(1)
        effects = []
        dispose = stx.reaction(app, lambda: s.value, effects.append)
        with stx.pause(app):
            s.value = 2
        assert effects == []
        s.value = 3
        assert effects == [3]
        dispose()

    def test_tracks_while_not_running(self):
        """Dependencies are captured even when the first update is skipped."""
        app = _MockApp(is_running=False)
        s = signal(1)
        effects = []
        dispose = stx.reaction(app, lambda: s.value, effects.append, fire_immediately=True)
        assert effects == []
        app.is_running = True
        s.value = 2
        assert effects == [2]
        dispose()

    def test_swallows_no_matches(self):
        app = _MockApp()
        s = signal(1)

        def apply(value):
            raise NoMatches("No nodes match '#missing'")

        dispose = stx.reaction(app, lambda: s.value, apply)
        s.value = 2  # does not raise
        dispose()

    def test_other_errors_propagate(self):
        app = _MockApp()
        s = signal(1)

        def apply(value):
            raise KeyError(value)

        dispose = stx.reaction(app, lambda: s.value, apply)
        with pytest.raises(KeyError):
            s.value = 2
        dispose()


class TestPause:
    def test_is_safe(self):
        app = _MockApp()
        assert stx.is_safe(app)
        with stx.pause(app):
            assert not stx.is_safe(app)
        assert stx.is_safe(app)

    def test_not_running_is_unsafe(self):
        assert not stx.is_safe(_MockApp(is_running=False))

    def test_pause_is_per_app(self):
        a = _MockApp()
        b = _MockApp()
        with stx.pause(a):
            assert stx.is_safe(b)

    def test_pause_restores_on_error(self):
        app = _MockApp()
        with pytest.raises(RuntimeError):
            with stx.pause(app):
                raise RuntimeError("boom")
        assert stx.is_safe(app)
