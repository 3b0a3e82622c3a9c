"""Interfaces the engine works against.

AttributeStore is the raw capability a computed layer composes over.
ObservableAttributeStore is what a store must offer to take part in the
dependency graph, either as a dependency or as a dependent.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, Protocol, runtime_checkable

from attrflow.events import Disposer

if TYPE_CHECKING:
    from attrflow.engine import Engine
    from attrflow.graph import DependencyGraph


@runtime_checkable
class AttributeStore(Protocol):
    cid: str

    def get(self, key: str) -> Any: ...

    def set(
        self, key: str | Mapping[str, Any], value: Any = None, *, silent: bool = False
    ) -> dict[str, Any]: ...

    def on(self, event: str, callback: Callable) -> Disposer: ...

    def off(self, event: str | None = None, callback: Callable | None = None) -> None: ...

    def trigger(self, event: str, *args) -> None: ...

    def previous(self, key: str | None) -> Any: ...

    def previous_attributes(self) -> dict[str, Any] | None: ...

    def changed_attributes(self) -> dict[str, Any] | None: ...

    def to_dict(self) -> dict[str, Any]: ...

    def destroy(self) -> None: ...


@runtime_checkable
class ObservableAttributeStore(AttributeStore, Protocol):
    graph: DependencyGraph
    engine: Engine

    def mark_dirty(self, name: str) -> bool:
        """Flag name stale. Returns True the first time it is marked this cycle."""
        ...

    def flush_pending(self) -> None:
        """Recompute pending attributes and fire notifications for real changes."""
        ...
