"""attrflow: computed attributes for observable key-value stores."""

from importlib.metadata import version as _version

__version__ = _version("attrflow")

from attrflow.engine import Engine, default_engine, get_pending_count
from attrflow.errors import (
    AtomicNestingError,
    BindingError,
    ConfigurationError,
    DependencyCycleError,
    SelfDependencyError,
)
from attrflow.events import Events
from attrflow.store import Store
from attrflow.bindings import StoreBinding, CollectionBinding, bind, bind_collection
from attrflow.collection import Collection, CollectionAdapter
from attrflow.computed import ComputedAttribute, ComputedStore, computed
from attrflow.action import atomic, run_atomic, transaction
from attrflow.protocols import AttributeStore, ObservableAttributeStore
# textual is opt-in and not imported here

__all__ = [
    "Engine",
    "default_engine",
    "get_pending_count",
    "ConfigurationError",
    "SelfDependencyError",
    "DependencyCycleError",
    "BindingError",
    "AtomicNestingError",
    "Events",
    "Store",
    "StoreBinding",
    "CollectionBinding",
    "bind",
    "bind_collection",
    "Collection",
    "CollectionAdapter",
    "ComputedAttribute",
    "ComputedStore",
    "computed",
    "atomic",
    "run_atomic",
    "transaction",
    "AttributeStore",
    "ObservableAttributeStore",
]
