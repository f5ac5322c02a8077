"""Textual integration for resignal. Opt-in, requires textual.

Widget updates driven by reactions are skipped while the app is not running
or while its widget tree is being replaced (see pause()), and a widget query
that finds nothing is not treated as an error.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from textual.css.query import NoMatches

from resignal import reaction as _reaction
from resignal.effect import Disposer

T = TypeVar("T")

logger = logging.getLogger("resignal.textual")

# Keyed by id(app) so several apps can coexist in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app) -> Iterator[None]:
    """Suspend guarded reactions during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def reaction(
    app,
    data_fn: Callable[[], T],
    effect_fn: Callable[[T], None],
    *,
    fire_immediately: bool = False,
) -> Disposer:
    """reaction() that safely applies values to Textual widgets.

    data_fn is always evaluated, so its dependencies are tracked even while
    the app is paused. effect_fn is skipped when the app is not in a
    queryable state, and NoMatches from widget queries is ignored.
    """

    def _guarded(value: T) -> None:
        if not is_safe(app):
            logger.debug("Skipped update of %r: app not ready", value)
            return
        try:
            effect_fn(value)
        except NoMatches:
            logger.debug("Skipped update of %r: widget not mounted", value)

    return _reaction(data_fn, _guarded, fire_immediately=fire_immediately)
