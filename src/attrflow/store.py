"""Store: plain key-value container with change notifications.

This is the raw attribute layer computed attributes are built on. It knows
nothing about dependencies: set() applies values, reports which keys really
changed and fires "change:<key>" / "change" events.

A wrapper (see ComputedStore) can pass itself as ``owner`` so listeners receive
the wrapper rather than this inner object.
"""

from __future__ import annotations

import itertools
from collections.abc import Mapping
from typing import Any, Callable

from attrflow.events import Disposer, Events

_cid_counter = itertools.count(1)

_MISSING = object()


def new_cid() -> str:
    return f"s{next(_cid_counter)}"


class Store:
    """Key-value container that reports and announces its changes."""

    defaults: Mapping[str, Any] = {}

    def __init__(self, attributes: Mapping[str, Any] | None = None, *, owner: Any = None) -> None:
        self.cid = new_cid()
        self._owner = owner
        self._events = Events()
        self._attributes: dict[str, Any] = dict(self.defaults)
        if attributes:
            self._attributes.update(attributes)
        self._previous_attributes: dict[str, Any] | None = None
        self.changed: dict[str, Any] = {}

    @property
    def owner(self) -> Any:
        """The object handed to listeners as the event source."""
        return self._owner if self._owner is not None else self

    @owner.setter
    def owner(self, owner: Any) -> None:
        self._owner = owner

    # --- Reads ---

    def get(self, key: str) -> Any:
        return self._attributes.get(key)

    def has(self, key: str) -> bool:
        return self._attributes.get(key) is not None

    def to_dict(self) -> dict[str, Any]:
        return dict(self._attributes)

    def keys(self):
        return self._attributes.keys()

    # --- Writes ---

    def set(
        self,
        key: str | Mapping[str, Any],
        value: Any = None,
        *,
        silent: bool = False,
    ) -> dict[str, Any]:
        """Apply one value or a mapping of values.

        Returns the keys that actually changed, in the order given, mapped to
        their new values. Unchanged values fire nothing.
        """
        values = dict(key) if isinstance(key, Mapping) else {key: value}
        snapshot = dict(self._attributes)
        changes: dict[str, Any] = {}
        for name, new in values.items():
            old = self._attributes.get(name, _MISSING)
            if old is not _MISSING and (old is new or old == new):
                continue
            self._attributes[name] = new
            changes[name] = new

        self.changed = changes
        if changes:
            self._previous_attributes = snapshot
            if not silent:
                source = self.owner
                for name, new in changes.items():
                    self._events.trigger(f"change:{name}", source, new)
                self._events.trigger("change", source, changes)
        return changes

    # --- Previous values ---

    def previous(self, key: str | None) -> Any:
        """Value of key before the most recent change, or None."""
        if key is None or self._previous_attributes is None:
            return None
        return self._previous_attributes.get(key)

    def previous_attributes(self) -> dict[str, Any] | None:
        if self._previous_attributes is None:
            return None
        return dict(self._previous_attributes)

    def changed_attributes(self) -> dict[str, Any] | None:
        return dict(self.changed) if self.changed else None

    # --- Notifications ---

    def on(self, event: str, callback: Callable) -> Disposer:
        return self._events.on(event, callback)

    def once(self, event: str, callback: Callable) -> Disposer:
        return self._events.once(event, callback)

    def off(self, event: str | None = None, callback: Callable | None = None) -> None:
        self._events.off(event, callback)

    def trigger(self, event: str, *args) -> None:
        self._events.trigger(event, *args)

    def destroy(self) -> None:
        """Announce destruction. Listeners stay registered."""
        self._events.trigger("destroy", self.owner)

    def __repr__(self) -> str:
        return f"Store({self.cid}, {self._attributes!r})"
