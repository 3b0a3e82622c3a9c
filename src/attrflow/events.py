"""Named-event emitter used for per-key and generic change notifications.

Listeners are plain callables. subscribe-style calls return a Disposer that
removes exactly that registration, the same contract EventStream offers.
"""

from __future__ import annotations

from typing import Callable

Disposer = Callable[[], None]


class Events:
    """Maps event names to ordered listener lists."""

    __slots__ = ("_listeners",)

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable]] = {}

    def on(self, event: str, callback: Callable) -> Disposer:
        """Register callback for event. Returns a function that removes it."""
        self._listeners.setdefault(event, []).append(callback)

        def _unsubscribe() -> None:
            self.off(event, callback)

        return _unsubscribe

    def once(self, event: str, callback: Callable) -> Disposer:
        """Register callback for a single delivery of event."""
        disposer: Disposer

        def _wrapper(*args) -> None:
            disposer()
            callback(*args)

        disposer = self.on(event, _wrapper)
        return disposer

    def off(self, event: str | None = None, callback: Callable | None = None) -> None:
        """Remove listeners. No arguments clears everything."""
        if event is None:
            self._listeners.clear()
            return
        if callback is None:
            self._listeners.pop(event, None)
            return
        listeners = self._listeners.get(event)
        if not listeners:
            return
        try:
            listeners.remove(callback)
        except ValueError:
            pass  # already removed
        if not listeners:
            del self._listeners[event]

    def trigger(self, event: str, *args) -> None:
        """Call every listener of event with args, in registration order."""
        listeners = self._listeners.get(event)
        if not listeners:
            return
        # Listeners may unsubscribe while we iterate.
        for callback in list(listeners):
            callback(*args)

    def has_listeners(self, event: str) -> bool:
        return bool(self._listeners.get(event))

    def __repr__(self) -> str:
        counts = {name: len(cbs) for name, cbs in self._listeners.items()}
        return f"Events({counts!r})"
