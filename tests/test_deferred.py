"""Tests for deferred effects and the scheduler hook."""

import asyncio

import pytest

from resignal import effect, set_scheduler, signal


@pytest.fixture
def manual_scheduler():
    """Collect scheduled callbacks instead of handing them to the event loop."""
    queue = []
    set_scheduler(queue.append)
    yield queue
    set_scheduler(None)


class TestDeferredEffect:
    @pytest.mark.asyncio
    async def test_first_run_is_deferred(self):
        s = signal(1)
        log = []
        dispose = effect(lambda: log.append(s.value), deferred=True)
        assert log == []
        await asyncio.sleep(0)
        assert log == [1]
        dispose()

    @pytest.mark.asyncio
    async def test_triggers_in_one_tick_collapse(self):
        s = signal(1)
        log = []
        dispose = effect(lambda: log.append(s.value), deferred=True)
        await asyncio.sleep(0)

        s.value = 2
        s.value = 3
        assert log == [1]  # nothing ran inside the writes
        await asyncio.sleep(0)
        assert log == [1, 3]
        dispose()

    @pytest.mark.asyncio
    async def test_stop_before_run(self):
        s = signal(1)
        log = []
        dispose = effect(lambda: log.append(s.value), deferred=True)
        await asyncio.sleep(0)

        s.value = 2
        dispose()
        await asyncio.sleep(0)
        assert log == [1]

    @pytest.mark.asyncio
    async def test_deferred_writes_flush_their_own_wave(self):
        s = signal(1)
        t = signal(0)
        log = []
        stop_log = effect(lambda: log.append(t.value))
        stop_copy = effect(lambda: setattr(t, "value", s.value * 10), deferred=True)
        await asyncio.sleep(0)
        assert log == [0, 10]

        s.value = 2
        await asyncio.sleep(0)
        assert log == [0, 10, 20]
        stop_copy()
        stop_log()

    def test_requires_running_loop(self):
        with pytest.raises(RuntimeError):
            effect(lambda: None, deferred=True)


class TestScheduler:
    def test_custom_scheduler(self, manual_scheduler):
        s = signal(1)
        log = []
        dispose = effect(lambda: log.append(s.value), deferred=True)
        assert log == []
        assert len(manual_scheduler) == 1

        manual_scheduler.pop()()
        assert log == [1]

        s.value = 2
        s.value = 3
        assert len(manual_scheduler) == 1
        manual_scheduler.pop()()
        assert log == [1, 3]
        dispose()

    def test_failure_is_not_retried(self, manual_scheduler):
        s = signal(1)
        log = []

        def body():
            if s.value == 0:
                raise ValueError("boom")
            log.append(s.value)

        dispose = effect(body, deferred=True)
        manual_scheduler.pop()()

        s.value = 0
        with pytest.raises(ValueError):
            manual_scheduler.pop()()
        assert manual_scheduler == []

        s.value = 4
        manual_scheduler.pop()()
        assert log == [1, 4]
        dispose()

    def test_synchronous_scheduler(self):
        set_scheduler(lambda callback: callback())
        try:
            s = signal(1)
            log = []
            dispose = effect(lambda: log.append(s.value), deferred=True)
            assert log == [1]
            s.value = 2
            s.value = 3
            assert log == [1, 2, 3]
            dispose()
        finally:
            set_scheduler(None)

    def test_scheduler_failure_allows_rescheduling(self, manual_scheduler):
        s = signal(1)
        log = []
        dispose = effect(lambda: log.append(s.value), deferred=True)
        manual_scheduler.pop()()

        def broken(callback):
            raise RuntimeError("no loop")

        set_scheduler(broken)
        with pytest.raises(RuntimeError):
            s.value = 2

        set_scheduler(manual_scheduler.append)
        s.value = 3
        assert len(manual_scheduler) == 1
        manual_scheduler.pop()()
        assert log == [1, 3]
        dispose()

    def test_reset_restores_default(self):
        set_scheduler(lambda callback: None)
        set_scheduler(None)
        with pytest.raises(RuntimeError):
            effect(lambda: None, deferred=True)
