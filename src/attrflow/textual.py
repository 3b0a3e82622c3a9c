"""Textual integration for attrflow. Opt-in, requires textual.

Lets a Textual app re-render from store notifications ("change:area", ...)
without worrying about the widget tree being mid-rebuild or not mounted yet.
Textual coupling stays in this module; the core never imports it.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

# Pause depth per app, keyed by id(app); absent means not paused.
_pause_depth: dict[int, int] = {}


@contextmanager
def pause(app):
    """Hold back guarded listeners while the widget tree is rebuilt.

    Pauses nest: delivery resumes when the outermost one exits.
    """
    key = id(app)
    _pause_depth[key] = _pause_depth.get(key, 0) + 1
    try:
        yield
    finally:
        depth = _pause_depth.pop(key) - 1
        if depth:
            _pause_depth[key] = depth


def is_safe(app) -> bool:
    """Can listeners query the widget tree right now?"""
    return app.is_running and id(app) not in _pause_depth


def listen(app, store, event, fn):
    """Subscribe fn to a store event, bridged safely to Textual widgets.

    Skips delivery while the app is paused or not running, swallows NoMatches
    from widget queries, and marshals cross-thread notifications via
    call_from_thread. The subscription ends by itself when the store is
    destroyed. Returns a disposer that ends it earlier.

    Usage:
        listen(app, rectangle, "change:area",
               lambda store, area: app.query_one("#area").update(f"Area = {area}"))
    """
    _main = threading.get_ident()

    def _guarded(*args):
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe, *args)
        else:
            _safe(*args)

    def _safe(*args):
        try:
            fn(*args)
        except NoMatches:
            pass

    disposers = [store.on(event, _guarded)]

    def dispose():
        while disposers:
            disposers.pop()()

    disposers.append(store.on("destroy", lambda *args: dispose()))
    return dispose
