"""Binding shapes and their resolution into (store, attribute) pairs.

A computed attribute lists what it reads. Accepted shapes:

    "width"                                  own attribute
    ["width", "height"]                      own attributes
    bind(other, "x", "y")                    attributes of another store
    {"store": other, "attribute": "x"}       same, mapping form
    {"store": other, "attributes": [...]}
    bind_collection(items, "height")         attribute of every member, now and later
    {"collection": items, "attribute": "height"}
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable

from attrflow.errors import BindingError
from attrflow.protocols import ObservableAttributeStore

if TYPE_CHECKING:
    from attrflow.collection import Collection

Pair = tuple[ObservableAttributeStore, str]


@dataclass(frozen=True, eq=False)
class StoreBinding:
    store: Any
    attributes: tuple[str, ...]


@dataclass(frozen=True, eq=False)
class CollectionBinding:
    collection: Collection
    attributes: tuple[str, ...]


def bind(store: ObservableAttributeStore, *attributes: str) -> StoreBinding:
    return StoreBinding(store, tuple(attributes))


def bind_collection(collection: Collection, *attributes: str) -> CollectionBinding:
    return CollectionBinding(collection, tuple(attributes))


def _attribute_names(value: Any, binding: Any) -> tuple[str, ...]:
    names = (value,) if isinstance(value, str) else tuple(value or ())
    if not names or not all(isinstance(name, str) and name for name in names):
        raise BindingError(f"Attribute binding not defined correctly: {binding!r}")
    return names


def normalize(binding: Any, owner: ObservableAttributeStore) -> StoreBinding | CollectionBinding:
    """Turn any accepted shape into a StoreBinding or CollectionBinding."""
    if isinstance(binding, (StoreBinding, CollectionBinding)):
        attrs = _attribute_names(binding.attributes, binding)
        if isinstance(binding, CollectionBinding):
            return CollectionBinding(binding.collection, attrs)
        return StoreBinding(binding.store, attrs)
    if isinstance(binding, str):
        return StoreBinding(owner, _attribute_names(binding, binding))
    if isinstance(binding, (list, tuple)):
        return StoreBinding(owner, _attribute_names(binding, binding))
    if isinstance(binding, Mapping):
        if "attribute" in binding:
            attrs = _attribute_names(binding["attribute"], binding)
        elif "attributes" in binding:
            attrs = _attribute_names(binding["attributes"], binding)
        else:
            raise BindingError(f"Attribute binding not defined correctly: {binding!r}")
        if binding.get("collection") is not None:
            return CollectionBinding(binding["collection"], attrs)
        store = binding.get("store")
        return StoreBinding(owner if store is None else store, attrs)
    raise BindingError(f"Attribute binding not defined correctly: {binding!r}")


def _check_collection(collection: Any, binding: Any) -> None:
    if not (hasattr(collection, "on") and hasattr(collection, "__iter__")):
        raise BindingError(f"Cannot bind to {collection!r}: not a collection (binding {binding!r})")


def _check_store(store: Any, binding: Any, owner: ObservableAttributeStore) -> None:
    if not isinstance(store, ObservableAttributeStore):
        raise BindingError(
            f"Cannot bind to {store!r}: it does not take part in dependency tracking "
            f"(binding {binding!r})"
        )
    if store.engine is not owner.engine:
        raise BindingError(
            f"Cannot bind to {store!r}: it runs on a different engine than {owner!r} "
            f"(binding {binding!r})"
        )


def resolve_bindings(
    bindings: Iterable[Any], owner: ObservableAttributeStore
) -> tuple[list[Pair], list[CollectionBinding]]:
    """Split bindings into fixed (store, attr) pairs and collection bindings.

    Collection members are checked here as well, but their pairs are left to
    the CollectionAdapter that will own them.
    """
    pairs: list[Pair] = []
    collections: list[CollectionBinding] = []
    for raw in bindings:
        binding = normalize(raw, owner)
        if isinstance(binding, CollectionBinding):
            _check_collection(binding.collection, raw)
            for member in binding.collection:
                _check_store(member, raw, owner)
            collections.append(binding)
            continue
        _check_store(binding.store, raw, owner)
        pairs.extend((binding.store, attr) for attr in binding.attributes)
    return pairs, collections


def collection_pairs(binding: CollectionBinding) -> list[Pair]:
    return [(member, attr) for member in binding.collection for attr in binding.attributes]
