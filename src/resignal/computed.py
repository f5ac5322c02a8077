"""Computed values: derived state with automatic dependency tracking.

A Computed wraps a function. The first read runs the function while
recording every source it reads, and subscribes the Computed to each of them.
The result is memoized in an inner Reactive, so other computeds and effects
can depend on a Computed exactly as they depend on a source.

Computed values are lazy: a dependency change only marks them dirty, and
they recompute on the next read.
"""

from __future__ import annotations

import weakref
from typing import Callable, TypeVar

from resignal import _tracking
from resignal._tracking import NodeKind
from resignal.errors import InvalidMutationError
from resignal.reactive import Reactive, Signal

T = TypeVar("T")


class Computed(Signal[T]):
    """A read-only derived value, memoized until one of its sources changes."""

    __slots__ = ("_dirty", "_stale", "_inner", "__weakref__")

    kind = NodeKind.DERIVED

    def __init__(self, fn: Callable[[], T]) -> None:
        super().__init__(fn)
        self._dirty = False
        # Set when the last recompute raised; the next read retries.
        self._stale = False
        self._inner: Reactive[T] | None = None

    def _read(self) -> T:
        if self._inner is None:
            with _tracking.collect() as sources:
                inner = Reactive(self._())
            self._inner = inner
            ref = weakref.ref(self)
            for source in sources:
                source._subscribe(ref)

        if self._dirty or self._stale:
            stale = True
            try:
                self._inner.value = self._()
                stale = False
            finally:
                self._dirty = False
                self._stale = stale

        return self._inner.value

    def _reject(self, value: object) -> None:
        raise InvalidMutationError(self)

    value = property(_read, _reject, doc="The memoized result. Read-only.")

    def __repr__(self) -> str:
        name = getattr(self._, "__name__", repr(self._))
        if self._inner is None or self._dirty or self._stale:
            return f"Computed({name}, dirty)"
        return f"Computed({name}, cached={self._inner.peek()!r})"


def computed(fn: Callable[[], T]) -> Computed[T]:
    """Decorator/factory to create a Computed from a function.

    Usage:
        count = signal(0)

        @computed
        def doubled():
            return count.value * 2

        doubled.value  # 0
        count.value = 5
        doubled.value  # 10
    """
    return Computed(fn)
