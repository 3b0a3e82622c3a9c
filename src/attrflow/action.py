"""Atomic blocks: batched mutations.

Wrapping mutations in ``@atomic``, ``with transaction()`` or ``run_atomic(fn)``
defers every recompute/notification until the block exits, so a computed
attribute touched several times is announced once, with its final value.
Blocks do not nest: entering one while another is open raises
AtomicNestingError.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, ParamSpec, TypeVar

from attrflow.engine import Engine, default_engine

P = ParamSpec("P")
R = TypeVar("R")


def run_atomic(fn: Callable[P, R], *args: P.args, **kwargs: P.kwargs) -> R:
    """Call fn inside an atomic block of the default engine.

    Usage:
        def update():
            store.set("x", 4)
            store.set("y", 5)

        run_atomic(update)   # "change:z" fires once, with 9
    """
    return default_engine.run_atomic(fn, *args, **kwargs)


def atomic(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: run every call of fn as one atomic block of the default engine."""

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        return default_engine.run_atomic(fn, *args, **kwargs)

    return wrapper


@contextmanager
def transaction(engine: Engine | None = None):
    """Context manager for an atomic block.

    Usage:
        with transaction():
            store.set("x", 4)
            store.set("y", 5)
            # nothing recomputed or announced yet
    """
    with (engine or default_engine).atomic():
        yield
