"""Effects: side effects triggered by source changes.

Unlike a Computed (which is lazy and only evaluates on read), an Effect runs
as soon as it is created and again whenever a propagation wave marks it
dirty. Its return value is ignored; what it does while running is the point.

An Effect is either synchronous (runs inside the triggering write) or
deferred (scheduled on the event loop; several triggers within one tick
collapse into a single run).

Effects created while another effect is running become its children. A
child is identified by its position among the effects the parent creates,
so the parent must create them in the same order on every run.
"""

from __future__ import annotations

import asyncio
import contextvars
import logging
from typing import Callable, TypeVar

from resignal import _tracking
from resignal._tracking import NodeKind
from resignal.computed import Computed
from resignal.reactive import same_value

T = TypeVar("T")

Disposer = Callable[[], None]
Scheduler = Callable[[Callable[[], None]], object]

logger = logging.getLogger("resignal.effect")

_UNSET = object()


def _call_soon(callback: Callable[[], None]) -> None:
    asyncio.get_running_loop().call_soon(callback)


_scheduler: Scheduler = _call_soon


def set_scheduler(scheduler: Scheduler | None) -> None:
    """Set how deferred effects schedule their run.

    scheduler(callback) must arrange for callback() to be called later on the
    same thread. Pass None to restore the default, which uses call_soon on
    the running asyncio loop:

        resignal.set_scheduler(app.call_next)
    """
    global _scheduler
    _scheduler = scheduler if scheduler is not None else _call_soon


def _noop() -> None:
    return None


class Effect(Computed[None]):
    """A reactive side effect that reruns when its dependencies change."""

    __slots__ = ("_deferred", "_pending", "_stopped", "_child_index", "_children", "_code")

    kind = NodeKind.EFFECT

    def __init__(self, fn: Callable[[], object], deferred: bool = False) -> None:
        super().__init__(fn)
        self._deferred = deferred
        self._pending = False
        self._stopped = False
        self._child_index = 0
        self._children: list[Effect] = []
        self._code = getattr(fn, "__code__", None)

    @property
    def stopped(self) -> bool:
        return self._stopped

    def trigger(self) -> None:
        """Run now, or schedule a run if this effect is deferred."""
        if self._stopped:
            return
        if self._deferred:
            self._schedule()
        else:
            self._run()

    value = property(trigger, Computed._reject)

    def _run(self) -> None:
        if self._stopped:
            return
        with _tracking.running(self):
            self._child_index = 0
            try:
                self._read()
            finally:
                for child in self._children[self._child_index:]:
                    _tracking.release(child)

    def _schedule(self) -> None:
        if not self._pending:
            # Set first: the scheduler may call back synchronously.
            self._pending = True
            try:
                _scheduler(self._run_deferred)
            except BaseException:
                self._pending = False
                _tracking.release(self)
                raise

    def _run_deferred(self) -> None:
        self._pending = False
        # Scheduled callbacks may inherit the scheduling context; run clean.
        contextvars.Context().run(self._run)

    def _child(self, fn: Callable[[], object], deferred: bool) -> Effect:
        """Return the child effect at the next position, creating it on first use."""
        index = self._child_index
        self._child_index += 1
        if index < len(self._children):
            child = self._children[index]
            if child._code is not getattr(fn, "__code__", None):
                logger.warning(
                    "Nested effect %d of %r created from a different function; "
                    "nested effects must be created in the same order on every run",
                    index, self,
                )
            return child
        child = Effect(fn, deferred)
        self._children.append(child)
        return child

    def stop(self) -> None:
        """Stop this effect and every effect nested in it. Idempotent."""
        if self._stopped:
            return
        self._stopped = True
        self._ = _noop
        children = self._children[:]
        self._children.clear()
        for child in children:
            child.stop()
        logger.debug("Stopped %r with %d nested effects", self, len(children))

    def __repr__(self) -> str:
        name = getattr(self._code, "co_name", "effect")
        state = "stopped" if self._stopped else "active"
        return f"Effect({name}, {state})"


def effect(fn: Callable[[], object], deferred: bool = False) -> Disposer:
    """Run fn now, then again whenever any source it read changes.

    With deferred=True the runs, including the first one, are scheduled on
    the event loop instead of happening inside the triggering write.

    Returns a disposer; calling it stops the effect. Keep a reference to it:
    a top-level effect lives only as long as something references it.

    Usage:
        count = signal(0)
        log = []

        dispose = effect(lambda: log.append(count.value))
        # log == [0] (ran immediately)

        count.value = 1
        # log == [0, 1]

        dispose()
        count.value = 2
        # log == [0, 1] (stopped)
    """
    parent = _tracking.current_effect.get()
    if parent is not None:
        node = parent._child(fn, deferred)
    else:
        node = Effect(fn, deferred)
    node.trigger()
    return node.stop


def reaction(
    data_fn: Callable[[], T],
    effect_fn: Callable[[T], None],
    *,
    fire_immediately: bool = False,
    deferred: bool = False,
) -> Disposer:
    """Track data_fn; call effect_fn(value) when its result changes.

    Unlike effect(), effect_fn only runs when data_fn's *return value*
    changes, and its own reads are not tracked.

    Usage:
        first = signal("Alice")
        last = signal("Smith")

        names = []
        dispose = reaction(
            lambda: f"{first.value} {last.value}",
            names.append,
        )
        # names == []: data_fn ran to establish deps, effect_fn did not fire

        first.value = "Bob"
        # names == ["Bob Smith"]
    """
    data = Computed(data_fn)
    last = _UNSET

    def _react() -> None:
        nonlocal last
        value = data.value
        if last is not _UNSET and same_value(last, value):
            return
        primed = last is not _UNSET
        last = value
        if primed or fire_immediately:
            with _tracking.untracked():
                effect_fn(value)

    return effect(_react, deferred)
