"""Computed attributes: derived values declared on a key-value store.

A ComputedStore wraps a plain Store. Besides raw attributes it holds computed
ones: a zero-argument evaluator plus the bindings it reads. Reads are lazy and
cached. When a bound attribute changes, the computed attribute is dirtied,
its store is queued on the Engine, and the flush recomputes it and fires
"change:<name>" / "change" exactly like a raw set would, but only if the value
really moved.

Usage:
    class Rectangle(ComputedStore):
        defaults = {"width": 0, "height": 0}

        @computed(bindings=[["width", "height"]])
        def area(self):
            return self.get("width") * self.get("height")

    r = Rectangle(width=10, height=5)
    r.get("area")          # 50
    r.set("height", 10)    # fires "change:area" with 100
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Iterable, TypeVar

from attrflow.bindings import collection_pairs, resolve_bindings
from attrflow.collection import CollectionAdapter
from attrflow.engine import Engine, default_engine
from attrflow.errors import ConfigurationError
from attrflow.events import Disposer
from attrflow.graph import DependencyGraph, check_edge, link, unlink
from attrflow.protocols import AttributeStore
from attrflow.store import Store

T = TypeVar("T", bound=Callable)

logger = logging.getLogger("attrflow.computed")

# Cache value of a computed attribute that has never been evaluated.
UNSET = object()


@dataclass(frozen=True)
class ComputedAttribute:
    name: str
    evaluator: Callable[[], Any]
    bindings: tuple = ()
    cache: bool = True


def computed(_fn=None, *, bindings=(), cache=True):
    """Mark a ComputedStore method as a computed attribute named after it.

    ``bindings`` is a sequence of binding shapes, or a callable taking the
    store and returning one (for bindings on stores created in initialize()).
    Redefining the method in a subclass replaces the inherited definition.
    """

    def decorator_computed(fn: T) -> T:
        fn.decorator = "computed"
        fn.bindings = bindings
        fn.cache = cache
        return fn

    if _fn is None:
        return decorator_computed
    return decorator_computed(_fn)


class ComputedStore:
    """Store wrapper that adds cached, dependency-tracked computed attributes."""

    defaults: Mapping[str, Any] = {}

    def __init__(
        self,
        store: AttributeStore | Mapping[str, Any] | None = None,
        *,
        engine: Engine | None = None,
        **attributes: Any,
    ) -> None:
        if store is None or isinstance(store, Mapping):
            initial = dict(self.defaults)
            initial.update(store or {})
            initial.update(attributes)
            store = Store(initial, owner=self)
        else:
            if isinstance(store, Store) and store.owner is store:
                store.owner = self
            if attributes:
                store.set(attributes, silent=True)
        self._store: AttributeStore = store
        self.cid = store.cid
        self.engine = engine if engine is not None else default_engine
        self.graph = DependencyGraph()

        self._computed: dict[str, ComputedAttribute] = {}
        self._cache: dict[str, Any] = {}
        self._dirty: set[str] = set()
        # Value each dirtied attribute had when it was first dirtied this cycle.
        self._pending: dict[str, Any] = {}
        self._previous_computed: dict[str, Any] | None = None
        self._adapters: dict[str, list[CollectionAdapter]] = {}
        self._recomputing = False
        self.changed: dict[str, Any] = {}

        self.initialize()
        self.register_declared_attributes()

    def initialize(self) -> None:
        """Hook for subclasses: build child stores, register computed attributes."""

    @property
    def store(self) -> AttributeStore:
        """The wrapped raw store."""
        return self._store

    # --- Registration ---

    def register_computed_attribute(
        self,
        name: str,
        evaluator: Callable[[], Any],
        bindings: Iterable[Any] = (),
        *,
        cache: bool = True,
    ) -> ComputedAttribute:
        """Declare name as computed by evaluator from bindings.

        Every binding is resolved and checked before the graph is touched, so
        a ConfigurationError leaves the store as it was. Registering a name
        again replaces the earlier definition and its edges.
        """
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"Computed attribute name must be a non-empty string: {name!r}")
        bindings = tuple(bindings)
        pairs, collections = resolve_bindings(bindings, self)
        for store, attr in pairs:
            check_edge(self, name, store, attr)
        for binding in collections:
            for store, attr in collection_pairs(binding):
                check_edge(self, name, store, attr)

        if name in self._computed:
            self._unbind(name)
        for store, attr in pairs:
            link(self, name, store, attr)

        spec = ComputedAttribute(name, evaluator, bindings, cache)
        self._computed[name] = spec
        # Evaluated on first read no matter what.
        self._dirty.add(name)

        for binding in collections:
            adapter = CollectionAdapter(self, name, binding)
            adapter.connect()
            self._adapters.setdefault(name, []).append(adapter)

        logger.debug(
            "Registered %s.%s (%d binding(s), cache=%s)", self.cid, name, len(bindings), cache
        )
        return spec

    def register_declared_attributes(self) -> list[ComputedAttribute]:
        """Register every @computed method of this store's class."""
        cls = type(self)
        registered = []
        for method_name in dir(cls):
            fn = getattr(cls, method_name, None)
            if getattr(fn, "decorator", None) != "computed":
                continue
            bindings = fn.bindings(self) if callable(fn.bindings) else fn.bindings
            registered.append(
                self.register_computed_attribute(
                    method_name, getattr(self, method_name), bindings or (), cache=fn.cache
                )
            )
        return registered

    def _unbind(self, name: str) -> None:
        for adapter in self._adapters.pop(name, []):
            adapter.dispose()
        for store, attr in list(self.graph.edges_for(name)):
            unlink(self, name, store, attr)

    # --- Introspection ---

    def is_computed(self, name: str) -> bool:
        return name in self._computed

    def is_dirty(self, name: str) -> bool:
        return name in self._dirty

    def computed_names(self) -> list[str]:
        return list(self._computed)

    def computed_attribute(self, name: str) -> ComputedAttribute | None:
        return self._computed.get(name)

    def adapters(self, name: str) -> list[CollectionAdapter]:
        return list(self._adapters.get(name, ()))

    # --- Reads ---

    def get(self, name: str) -> Any:
        """Read a computed (evaluating if stale) or raw attribute. Never notifies."""
        spec = self._computed.get(name)
        if spec is None:
            return self._store.get(name)
        if name in self._dirty or not spec.cache:
            self._cache[name] = spec.evaluator()
            self._dirty.discard(name)
        return self._cache[name]

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    def to_dict(self) -> dict[str, Any]:
        """Raw attributes merged with current computed values."""
        values = self._store.to_dict()
        for name in self._computed:
            values[name] = self.get(name)
        return values

    # --- Writes ---

    def set(
        self,
        key: str | Mapping[str, Any],
        value: Any = None,
        *,
        silent: bool = False,
    ) -> dict[str, Any]:
        """Set raw attributes, then recompute whatever depends on them.

        Only the outermost set() on this store flushes the engine.
        """
        keys = key.keys() if isinstance(key, Mapping) else (key,)
        for name in keys:
            if name in self._computed:
                raise ConfigurationError(f"Cannot set computed attribute {name!r}")

        recomputing = self._recomputing
        self._recomputing = True
        try:
            changes = self._store.set(key, value, silent=silent)
            if changes:
                self.engine.propagate(self, changes)
            if not recomputing:
                self.engine.flush()
        finally:
            self._recomputing = recomputing
        return changes

    # --- Engine callbacks ---

    def mark_dirty(self, name: str) -> bool:
        first = name not in self._pending
        if first:
            self._pending[name] = self._cache.get(name, UNSET)
        self._dirty.add(name)
        return first

    def flush_pending(self) -> None:
        """Recompute pending attributes; announce the ones whose value moved."""
        # Per pass: a listener may start a nested pass on this same store.
        changed: dict[str, Any] = {}
        self.changed = changed
        for name in list(self._pending):
            if name not in self._pending:
                continue
            old = self._pending.pop(name)
            try:
                new = self.get(name)
            except BaseException:
                # Siblings still pending are announced by the next flush.
                if self._pending:
                    self.engine.enqueue(self)
                raise
            if old is not new and old != new:
                if self._previous_computed is None:
                    self._previous_computed = {}
                self._previous_computed[name] = old
                changed[name] = new
                self._store.trigger(f"change:{name}", self, new)
        if changed:
            self._store.trigger("change", self, dict(changed))

    # --- Previous values ---

    def previous(self, name: str | None) -> Any:
        if name is None:
            return None
        if name in self._computed:
            if self._previous_computed is None:
                return None
            value = self._previous_computed.get(name)
            return None if value is UNSET else value
        return self._store.previous(name)

    def previous_attributes(self) -> dict[str, Any] | None:
        raw = self._store.previous_attributes()
        if raw is None and self._previous_computed is None:
            return None
        merged = dict(raw or {})
        for name, value in (self._previous_computed or {}).items():
            merged[name] = None if value is UNSET else value
        return merged

    def changed_attributes(self) -> dict[str, Any] | None:
        merged = dict(self._store.changed_attributes() or {})
        merged.update(self.changed)
        return merged or None

    # --- Notifications ---

    def on(self, event: str, callback: Callable) -> Disposer:
        return self._store.on(event, callback)

    def off(self, event: str | None = None, callback: Callable | None = None) -> None:
        self._store.off(event, callback)

    def trigger(self, event: str, *args) -> None:
        self._store.trigger(event, *args)

    # --- Teardown ---

    def teardown(self) -> None:
        """Detach from every store this one reads.

        Later changes on those stores no longer reach this one. A queued flush
        that already holds this store still runs.
        """
        for adapters in self._adapters.values():
            for adapter in adapters:
                adapter.dispose()
        self._adapters.clear()
        for record in list(self.graph.dependencies.values()):
            for attr in {attr for attr, _ in record.edges}:
                record.store.graph.discard_store(attr, self)
        self.graph.dependencies.clear()
        logger.debug("Tore down %s", self.cid)

    def destroy(self) -> None:
        self._store.destroy()
        self.teardown()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.cid}, computed={self.computed_names()!r})"
