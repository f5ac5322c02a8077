"""Signals and writable sources.

When a Reactive is read while a Computed or Effect is being established, the
dependency is registered automatically. When the Reactive changes, every
dependent is marked dirty and the affected effects are flushed.

Sources hold their dependents through weak references only, so dropping a
Computed or Effect is enough to unsubscribe it.
"""

from __future__ import annotations

import math
import numbers
import weakref
from typing import Any, Generic, TypeVar

from resignal import _tracking
from resignal._tracking import NodeKind

T = TypeVar("T")


def same_value(a: object, b: object) -> bool:
    """Equality used to decide whether a write is a change.

    Identical objects are always equal. Floats compare NaN equal to NaN and
    tell 0.0 from -0.0. Values of different types are never equal, so
    writing True over 1 is a change.
    """
    if a is b:
        return True
    if type(a) is not type(b):
        return False
    if isinstance(a, float):
        if math.isnan(a) and math.isnan(b):
            return True
        return a == b and math.copysign(1.0, a) == math.copysign(1.0, b)
    return a == b


class Signal(Generic[T]):
    """Base value container. Subclasses decide how `value` is read and written."""

    __slots__ = ("_",)

    kind: NodeKind

    def __init__(self, value: Any) -> None:
        self._ = value

    @property
    def value(self) -> T:
        return self._

    def to_text(self) -> str:
        return str(self.value)

    def to_number(self) -> numbers.Number:
        value = self.value
        if isinstance(value, numbers.Number):
            return value
        return float(value)

    def to_json(self) -> T:
        return self.value


def json_default(obj: object) -> Any:
    """`default=` hook for json.dumps that serializes signals by value.

    Usage:
        count = signal(3)
        json.dumps({"count": count}, default=json_default)  # '{"count": 3}'
    """
    if isinstance(obj, Signal):
        return obj.to_json()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class Reactive(Signal[T]):
    """A writable source with automatic dependency tracking."""

    __slots__ = ("_subscribers",)

    kind = NodeKind.SOURCE

    def __init__(self, value: T) -> None:
        super().__init__(value)
        self._subscribers: set[weakref.ref] = set()

    @property
    def value(self) -> T:
        """Read the value. If a node is being established, registers the dependency."""
        _tracking.track(self)
        return self._

    @value.setter
    def value(self, value: T) -> None:
        if not same_value(value, self._):
            self._ = value
            _tracking.propagate(self._subscribers)

    def peek(self) -> T:
        """Read the value without registering a dependency."""
        return self._

    def _subscribe(self, ref: weakref.ref) -> None:
        self._subscribers.add(ref)

    def __repr__(self) -> str:
        return f"Reactive({self._!r})"


def signal(value: T) -> Reactive[T]:
    """Create a writable source.

    Usage:
        count = signal(0)
        count.value       # 0
        count.value = 5   # dependents are marked dirty, effects rerun
        count.peek()      # 5, without subscribing
    """
    return Reactive(value)
