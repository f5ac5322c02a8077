"""Batches, actions and transactions: deferred effect flushing.

Writes made inside batch(), an @action or `with transaction()` still mark
their dependents dirty right away, but the effects they schedule only run
once the outermost scope exits. An effect that is already waiting in the
queue stays dirty, so later writes do not queue it a second time.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, Iterator, ParamSpec, TypeVar

from resignal._tracking import batching

P = ParamSpec("P")
R = TypeVar("R")


def batch(fn: Callable[[], R]) -> R:
    """Run fn, deferring effects until the outermost batch completes.

    Returns whatever fn returns. If fn raises, the effects queued so far
    still run before the exception propagates.

    Usage:
        a, b = signal(0), signal(0)
        dispose = effect(lambda: print(a.value + b.value))  # prints 0

        def update():
            a.value = 1
            b.value = 2

        batch(update)  # prints 3 once, after update returns
    """
    with batching():
        return fn()


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: batch all writes made inside fn.

    Effects only run after fn returns, not during.

    Usage:
        a = signal(0)
        b = signal(0)

        @action
        def swap():
            a.value, b.value = b.peek(), a.peek()
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with batching():
            return fn(*args, **kwargs)

    return wrapper


@contextmanager
def transaction() -> Iterator[None]:
    """Context manager for batching writes.

    Usage:
        with transaction():
            a.value = 1
            b.value = 2
            # effects run here, after both are set
    """
    with batching():
        yield
