"""Change propagation engine: the heart of attrflow.

An Engine owns the change queue and the atomic flag shared by every store it
was injected into. A mutation dirties the computed attributes that read the
changed keys (recursively, through computed-on-computed chains) and queues
their stores. The outermost mutation then flushes: each queued store
recomputes what was dirtied and announces the attributes whose value really
moved.

Batching: inside ``atomic()`` mutations still dirty and queue, but nothing is
flushed until the block exits, so every attribute touched in the block is
announced at most once.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterable, ParamSpec, TypeVar

from attrflow.errors import AtomicNestingError

if TYPE_CHECKING:
    from attrflow.protocols import ObservableAttributeStore

P = ParamSpec("P")
R = TypeVar("R")

logger = logging.getLogger("attrflow.engine")


class Engine:
    """Change queue plus atomic flag for one graph of stores."""

    __slots__ = ("_queue", "_atomic")

    def __init__(self) -> None:
        # Stores that may hold changed computed attributes, newest last.
        self._queue: list[ObservableAttributeStore] = []
        self._atomic: bool = False

    @property
    def in_atomic(self) -> bool:
        return self._atomic

    @property
    def pending_count(self) -> int:
        """Number of stores waiting to be flushed. Useful for testing."""
        return len(self._queue)

    def is_queued(self, store: ObservableAttributeStore) -> bool:
        return any(queued is store for queued in self._queue)

    def enqueue(self, store: ObservableAttributeStore) -> None:
        if not self.is_queued(store):
            self._queue.append(store)

    # --- Propagation ---

    def invalidate(self, store: ObservableAttributeStore, name: str) -> None:
        """Mark one computed attribute stale and push the staleness downstream."""
        self.enqueue(store)
        store.mark_dirty(name)
        self.propagate(store, (name,))

    def propagate(self, store: ObservableAttributeStore, keys: Iterable[str]) -> None:
        """Invalidate everything computed from keys of store.

        Recurses through computed attributes that are themselves dependencies.
        Terminates because registration refuses cycles.
        """
        for key in keys:
            for dependent in list(store.graph.dependents_of(key)):
                self.invalidate(dependent.store, dependent.name)

    # --- Flush ---

    def flush(self) -> None:
        """Drain the queue, newest store first.

        A store queued late was reached through a longer chain and must be
        resolved before the stores queued ahead of it. Listener mutations
        during a flush queue more stores; the loop runs until nothing is left.
        An evaluator exception aborts the flush and leaves the remaining
        stores queued for the next one, including the failing store when it
        still has pending attributes.
        """
        if self._atomic or not self._queue:
            return
        logger.debug("Flushing %d queued store(s)", len(self._queue))
        while self._queue:
            store = self._queue.pop()
            store.flush_pending()

    # --- Atomic blocks ---

    def begin_atomic(self) -> None:
        if self._atomic:
            raise AtomicNestingError(
                "Computed attributes are already in atomic mode; they will not be "
                "updated until the block that entered it completes"
            )
        self._atomic = True

    def end_atomic(self) -> None:
        """Leave atomic mode and flush everything the block queued."""
        self._atomic = False
        self.flush()

    @contextmanager
    def atomic(self):
        """Context manager form of run_atomic.

        Usage:
            with engine.atomic():
                store.set("x", 4)
                store.set("y", 5)
            # "change:z" fires here, once
        """
        self.begin_atomic()
        try:
            yield self
        except BaseException:
            # Cleared and flushed on the error path too; the block's error wins.
            self._atomic = False
            try:
                self.flush()
            except Exception:
                logger.exception("Flush after a failed atomic block raised")
            raise
        else:
            self.end_atomic()

    def run_atomic(self, fn: Callable[P, R], *args: P.args, **kwargs: P.kwargs) -> R:
        """Call fn with flushing suspended, then flush once."""
        with self.atomic():
            return fn(*args, **kwargs)

    def reset(self) -> None:
        """Drop queued stores and leave atomic mode without flushing."""
        self._queue.clear()
        self._atomic = False

    def __repr__(self) -> str:
        state = "atomic" if self._atomic else "idle"
        return f"Engine({state}, queued={len(self._queue)})"


# Engine injected into stores created without an explicit one.
default_engine = Engine()


def get_pending_count() -> int:
    """Number of stores the default engine has yet to flush."""
    return default_engine.pending_count
