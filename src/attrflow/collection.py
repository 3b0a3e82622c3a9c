"""Collections of stores, and computed attributes bound to their members.

A Collection announces membership changes ("add", "remove", "reset").
A CollectionAdapter keeps one computed attribute of an owner store bound to
some attributes of every current member, and recomputes it whenever the
membership itself changes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator

from attrflow.errors import BindingError
from attrflow.events import Disposer, Events
from attrflow.graph import check_edge, link, unlink
from attrflow.protocols import ObservableAttributeStore

if TYPE_CHECKING:
    from attrflow.bindings import CollectionBinding

logger = logging.getLogger("attrflow.collection")


def _as_list(members: Any) -> list:
    if isinstance(members, (list, tuple)):
        return list(members)
    return [members]


class Collection:
    """Ordered, identity-unique list of stores with membership events."""

    def __init__(self, models: Iterable[Any] | None = None) -> None:
        self._events = Events()
        self.models: list[Any] = []
        for model in models or ():
            if not self._contains(model):
                self.models.append(model)

    def _contains(self, model: Any) -> bool:
        return any(existing is model for existing in self.models)

    # --- Membership ---

    def add(self, models: Any, *, silent: bool = False) -> list[Any]:
        """Append members not already present. Returns the ones added."""
        added = []
        for model in _as_list(models):
            if self._contains(model):
                continue
            self.models.append(model)
            added.append(model)
            if not silent:
                self._events.trigger("add", model, self)
        return added

    def remove(self, models: Any, *, silent: bool = False) -> list[Any]:
        """Drop members. Returns the ones that were present."""
        removed = []
        for model in _as_list(models):
            for i, existing in enumerate(self.models):
                if existing is model:
                    del self.models[i]
                    removed.append(model)
                    if not silent:
                        self._events.trigger("remove", model, self)
                    break
        return removed

    def reset(self, models: Iterable[Any] | None = None, *, silent: bool = False) -> None:
        """Replace the whole membership, announcing it once."""
        previous_models = self.models
        self.models = []
        for model in models or ():
            if not self._contains(model):
                self.models.append(model)
        if not silent:
            self._events.trigger("reset", self, previous_models)

    # --- Reads ---

    def where(self, **attrs: Any) -> list[Any]:
        return [
            model for model in self.models
            if all(model.get(key) == value for key, value in attrs.items())
        ]

    def pluck(self, attr: str) -> list[Any]:
        return [model.get(attr) for model in self.models]

    def first(self) -> Any:
        return self.models[0] if self.models else None

    def at(self, index: int) -> Any:
        return self.models[index]

    def __len__(self) -> int:
        return len(self.models)

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self.models))

    def __contains__(self, model: Any) -> bool:
        return self._contains(model)

    # --- Notifications ---

    def on(self, event: str, callback: Callable) -> Disposer:
        return self._events.on(event, callback)

    def off(self, event: str | None = None, callback: Callable | None = None) -> None:
        self._events.off(event, callback)

    def trigger(self, event: str, *args) -> None:
        self._events.trigger(event, *args)

    def __repr__(self) -> str:
        return f"Collection({len(self.models)} models)"


class CollectionAdapter:
    """Binds owner.<name> to ``attributes`` of every member of a collection.

    Membership changes recompute and flush right away instead of waiting for
    an outer mutation, so each add/remove/reset is observable on its own
    (unless an atomic block is open, which defers the flush as usual).
    Members that leave the collection are unbound.
    """

    def __init__(self, owner: ObservableAttributeStore, name: str, binding: CollectionBinding) -> None:
        self.owner = owner
        self.name = name
        self.collection = binding.collection
        self.attributes = binding.attributes
        self._members: list[ObservableAttributeStore] = []
        self._disposers: list[Disposer] = []

    @property
    def members(self) -> list[ObservableAttributeStore]:
        return list(self._members)

    def connect(self) -> None:
        """Bind current members and start following membership events."""
        self._link(self.collection)
        self._disposers = [
            self.collection.on("add", self._on_add),
            self.collection.on("remove", self._on_remove),
            self.collection.on("reset", self._on_reset),
        ]

    def dispose(self) -> None:
        """Stop following the collection and unbind every member."""
        for dispose in self._disposers:
            dispose()
        self._disposers.clear()
        self._unlink(list(self._members))

    # --- Membership handlers ---

    def _on_add(self, member: Any, collection: Collection) -> None:
        self._link([member])
        self._recompute()

    def _on_remove(self, member: Any, collection: Collection) -> None:
        self._unlink([member])
        self._recompute()

    def _on_reset(self, collection: Collection, previous_models: list[Any]) -> None:
        current = list(collection)
        gone = [m for m in self._members if not any(m is c for c in current)]
        self._unlink(gone)
        self._link(current)
        self._recompute()

    # --- Edges ---

    def _is_member(self, store: Any) -> bool:
        return any(member is store for member in self._members)

    def _link(self, members: Iterable[Any]) -> None:
        fresh = [m for m in members if not self._is_member(m)]
        for member in fresh:
            if not isinstance(member, ObservableAttributeStore):
                raise BindingError(
                    f"Cannot bind {self.name!r} to collection member {member!r}: "
                    "it does not take part in dependency tracking"
                )
            if member.engine is not self.owner.engine:
                raise BindingError(
                    f"Cannot bind {self.name!r} to collection member {member!r}: "
                    "it runs on a different engine"
                )
            for attr in self.attributes:
                check_edge(self.owner, self.name, member, attr)
        for member in fresh:
            for attr in self.attributes:
                link(self.owner, self.name, member, attr)
            self._members.append(member)
        if fresh:
            logger.debug("Bound %s.%s to %d new member(s)", self.owner.cid, self.name, len(fresh))

    def _unlink(self, members: Iterable[Any]) -> None:
        for member in members:
            if not self._is_member(member):
                continue
            for attr in self.attributes:
                unlink(self.owner, self.name, member, attr)
            self._members = [m for m in self._members if m is not member]
            logger.debug("Unbound %s.%s from %s", self.owner.cid, self.name, member.cid)

    def _recompute(self) -> None:
        engine = self.owner.engine
        engine.invalidate(self.owner, self.name)
        engine.flush()

    def __repr__(self) -> str:
        return (
            f"CollectionAdapter({self.owner.cid}.{self.name} <- "
            f"{list(self.attributes)!r} of {len(self._members)} members)"
        )
