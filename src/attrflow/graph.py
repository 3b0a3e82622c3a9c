"""Per-store dependency bookkeeping.

Every edge "dependent (store, name) reads dependency (store, attr)" is kept
twice:

- on the dependency's graph, in ``dependents[attr]``, so a change to attr can
  reach everything computed from it;
- on the dependent's graph, in ``dependencies[cid]``, so the dependent can
  remove itself from every store it reads when it is torn down.
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Iterator, NamedTuple

from attrflow.errors import DependencyCycleError, SelfDependencyError

if TYPE_CHECKING:
    from attrflow.protocols import ObservableAttributeStore


class Dependent(NamedTuple):
    store: ObservableAttributeStore
    name: str


class DependencyRecord(NamedTuple):
    store: ObservableAttributeStore
    edges: Counter  # (attr, dependent name) -> count


class DependencyGraph:
    """Reverse map and outgoing record of one store."""

    __slots__ = ("dependents", "dependencies")

    def __init__(self) -> None:
        self.dependents: dict[str, list[Dependent]] = {}
        self.dependencies: dict[str, DependencyRecord] = {}

    # --- Reverse map (this store is the dependency) ---

    def dependents_of(self, attr: str) -> list[Dependent]:
        return self.dependents.get(attr, [])

    def add_dependent(self, attr: str, dependent: Dependent) -> None:
        self.dependents.setdefault(attr, []).append(dependent)

    def remove_dependent(self, attr: str, dependent: Dependent) -> None:
        """Remove one occurrence of dependent from attr's list."""
        entries = self.dependents.get(attr)
        if not entries:
            return
        for i, entry in enumerate(entries):
            if entry.store is dependent.store and entry.name == dependent.name:
                del entries[i]
                break
        if not entries:
            del self.dependents[attr]

    def discard_store(self, attr: str, store: ObservableAttributeStore) -> None:
        """Remove every entry of attr's list that belongs to store."""
        entries = self.dependents.get(attr)
        if not entries:
            return
        retain = [entry for entry in entries if entry.store is not store]
        if retain:
            self.dependents[attr] = retain
        else:
            del self.dependents[attr]

    # --- Outgoing record (this store is the dependent) ---

    def record_dependency(self, store: ObservableAttributeStore, attr: str, name: str) -> None:
        record = self.dependencies.get(store.cid)
        if record is None:
            record = self.dependencies[store.cid] = DependencyRecord(store, Counter())
        record.edges[(attr, name)] += 1

    def forget_dependency(self, store: ObservableAttributeStore, attr: str, name: str) -> None:
        record = self.dependencies.get(store.cid)
        if record is None:
            return
        key = (attr, name)
        if record.edges[key] > 1:
            record.edges[key] -= 1
        else:
            record.edges.pop(key, None)
        if not record.edges:
            del self.dependencies[store.cid]

    def edges_for(self, name: str) -> Iterator[tuple[ObservableAttributeStore, str]]:
        """Yield (dependency store, attr) once per edge feeding computed name."""
        for record in list(self.dependencies.values()):
            for (attr, dependent_name), count in list(record.edges.items()):
                if dependent_name == name:
                    for _ in range(count):
                        yield record.store, attr

    def depends_on(self, store: ObservableAttributeStore, attr: str | None = None) -> bool:
        record = self.dependencies.get(store.cid)
        if record is None:
            return False
        if attr is None:
            return True
        return any(edge_attr == attr for edge_attr, _ in record.edges)

    def __repr__(self) -> str:
        return (
            f"DependencyGraph(dependents={sorted(self.dependents)!r}, "
            f"dependencies={sorted(self.dependencies)!r})"
        )


def find_path(
    source: ObservableAttributeStore,
    source_attr: str,
    target: ObservableAttributeStore,
    target_attr: str,
) -> list[tuple[ObservableAttributeStore, str]] | None:
    """Return the chain of edges leading from source_attr to target_attr, if any.

    Walks reverse maps depth-first. The returned list starts with
    (source, source_attr) and ends with (target, target_attr).
    """
    stack = [(source, source_attr, [(source, source_attr)])]
    seen: set[tuple[int, str]] = set()
    while stack:
        store, attr, path = stack.pop()
        if store is target and attr == target_attr:
            return path
        key = (id(store), attr)
        if key in seen:
            continue
        seen.add(key)
        for dependent in store.graph.dependents_of(attr):
            stack.append((dependent.store, dependent.name, path + [(dependent.store, dependent.name)]))
    return None


def check_edge(
    dependent: ObservableAttributeStore,
    name: str,
    store: ObservableAttributeStore,
    attr: str,
) -> None:
    """Refuse an edge from (store, attr) to (dependent, name) that would close a loop."""
    if store is dependent and attr == name:
        raise SelfDependencyError(
            f"Cannot create a computed attribute that depends on itself: {name!r}"
        )
    path = find_path(dependent, name, store, attr)
    if path is not None:
        chain = " -> ".join(f"{s.cid}.{a}" for s, a in path + [(dependent, name)])
        raise DependencyCycleError(f"Binding {name!r} to {store.cid}.{attr} creates a cycle: {chain}")


def link(dependent: ObservableAttributeStore, name: str, store: ObservableAttributeStore, attr: str) -> None:
    """Record the edge on both ends."""
    store.graph.add_dependent(attr, Dependent(dependent, name))
    dependent.graph.record_dependency(store, attr, name)


def unlink(dependent: ObservableAttributeStore, name: str, store: ObservableAttributeStore, attr: str) -> None:
    store.graph.remove_dependent(attr, Dependent(dependent, name))
    dependent.graph.forget_dependency(store, attr, name)
