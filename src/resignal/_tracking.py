"""Dependency tracking engine: the heart of resignal.

Uses contextvars to hold the coordination state shared by every node:

- the set of sources read while a computed is being established,
- the effects marked during the current propagation wave,
- the effect whose body is currently running,
- the batch queue, when a batch is open.

Every helper that enters one of these scopes restores the previous value on
exit, including when user code raises.
"""

from __future__ import annotations

import contextvars
import enum
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterable, Iterator

if TYPE_CHECKING:
    import weakref

    from resignal.effect import Effect
    from resignal.reactive import Reactive

logger = logging.getLogger("resignal.tracking")


class NodeKind(enum.Enum):
    """What a graph node does when a propagation wave reaches it."""

    SOURCE = "source"
    DERIVED = "derived"
    EFFECT = "effect"


class FlushSet:
    """Insertion-ordered set of effects that tolerates growth while iterated.

    An effect leaves the set once iteration reaches it, so a write made later
    in the same flush can queue it again.
    """

    __slots__ = ("_members", "_order")

    def __init__(self) -> None:
        self._members: set[Effect] = set()
        self._order: list[Effect] = []

    def add(self, effect: Effect) -> None:
        if effect not in self._members:
            self._members.add(effect)
            self._order.append(effect)

    def __iter__(self) -> Iterator[Effect]:
        i = 0
        while i < len(self._order):
            effect = self._order[i]
            self._members.discard(effect)
            yield effect
            i += 1

    def __len__(self) -> int:
        return len(self._order)


# Sources read during the establishment of the current computed.
tracking: contextvars.ContextVar[set[Reactive] | None] = contextvars.ContextVar(
    "tracking", default=None
)

# Effects marked dirty during the open propagation wave.
flushing: contextvars.ContextVar[FlushSet | None] = contextvars.ContextVar(
    "flushing", default=None
)

# The effect whose body is running. Nested effects become its children.
current_effect: contextvars.ContextVar[Effect | None] = contextvars.ContextVar(
    "current_effect", default=None
)

# Queued effect runs. None when no batch is open.
batch_queue: contextvars.ContextVar[list[Callable[[], None]] | None] = contextvars.ContextVar(
    "batch_queue", default=None
)


def track(source: Reactive) -> None:
    """Register source as a dependency of the node being established, if any."""
    sources = tracking.get()
    if sources is not None:
        sources.add(source)


@contextmanager
def collect() -> Iterator[set[Reactive]]:
    """Open a fresh tracking set. Yields the set of sources read inside."""
    sources: set[Reactive] = set()
    token = tracking.set(sources)
    try:
        yield sources
    finally:
        tracking.reset(token)


@contextmanager
def untracked() -> Iterator[None]:
    """Reads inside this block register no dependencies."""
    token = tracking.set(None)
    try:
        yield
    finally:
        tracking.reset(token)


@contextmanager
def running(effect: Effect) -> Iterator[None]:
    """Make effect the parent of any effect created inside the block."""
    token = current_effect.set(effect)
    try:
        yield
    finally:
        current_effect.reset(token)


def is_batching() -> bool:
    """True while a batch is open."""
    return batch_queue.get() is not None


@contextmanager
def batching() -> Iterator[None]:
    """Defer effect runs until the outermost batching scope exits.

    Nested scopes share the outer queue. The queue is drained even if the
    body raises, since the writes it made before raising have happened.
    """
    if batch_queue.get() is not None:
        yield
        return

    queue: list[Callable[[], None]] = []
    token = batch_queue.set(queue)
    try:
        yield
    finally:
        try:
            if queue:
                logger.debug("Draining batch: %d queued effect runs", len(queue))
            # Runs appended while draining are picked up by the same loop.
            run_all(queue)
        finally:
            batch_queue.reset(token)


def run_all(runs: Iterable[Callable[[], None]]) -> None:
    """Call every run, then re-raise the first exception any of them raised.

    A failing effect must not leave the ones after it dirty and unrun.
    """
    error: Exception | None = None
    for run in runs:
        try:
            run()
        except Exception as exc:
            if error is None:
                error = exc
    if error is not None:
        raise error


def propagate(subscribers: set[weakref.ref]) -> None:
    """Mark everything downstream of a changed source and flush the effects.

    Only the call that opens the wave flushes. Writes performed by effects
    while flushing mark into the open wave and are run by the same loop.
    """
    if not subscribers:
        return

    outer = flushing.get()
    pending = outer if outer is not None else FlushSet()
    token = flushing.set(pending)
    try:
        _mark(subscribers, pending)
        if outer is None:
            queue = batch_queue.get()
            if queue is not None:
                queue.extend(effect.trigger for effect in pending)
            else:
                run_all(effect.trigger for effect in pending)
    finally:
        flushing.reset(token)


def _mark(subscribers: set[weakref.ref], pending: FlushSet) -> None:
    for ref in list(subscribers):
        node = ref()
        if node is None:
            subscribers.discard(ref)
            continue
        if node._dirty:
            continue
        node._dirty = True
        if node.kind is NodeKind.EFFECT:
            pending.add(node)
            _mark_children(node)
        else:
            _mark(node._inner._subscribers, pending)


def _mark_children(effect: Effect) -> None:
    for child in effect._children:
        child._dirty = True
        _mark_children(child)


def release(effect: Effect) -> None:
    """Turn a pending dirty mark into a retry request on effect and its children.

    Used for children their parent's run did not reach: they stay
    reachable by later waves and still rerun when next triggered.
    """
    if effect._dirty:
        effect._dirty = False
        effect._stale = True
    for child in effect._children:
        release(child)
