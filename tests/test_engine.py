"""Tests for Engine queue mechanics and the dependency graph."""

import logging

import pytest

from attrflow import AtomicNestingError, ComputedStore, Engine, bind
from attrflow.graph import Dependent, DependencyGraph, find_path, link, unlink


class _FakeStore:
    def __init__(self, name, log):
        self.name = name
        self.log = log
        self.graph = DependencyGraph()

    def flush_pending(self):
        self.log.append(self.name)


class TestQueue:
    def test_enqueue_is_deduplicated(self):
        engine = Engine()
        a = _FakeStore("a", [])
        engine.enqueue(a)
        engine.enqueue(a)
        assert engine.pending_count == 1
        assert engine.is_queued(a)

    def test_flush_is_last_in_first_out(self):
        engine = Engine()
        log = []
        for name in "abc":
            engine.enqueue(_FakeStore(name, log))
        engine.flush()
        assert log == ["c", "b", "a"]
        assert engine.pending_count == 0

    def test_flush_skipped_while_atomic(self):
        engine = Engine()
        log = []
        engine.enqueue(_FakeStore("a", log))
        engine.begin_atomic()
        engine.flush()
        assert log == []
        engine.end_atomic()
        assert log == ["a"]

    def test_begin_twice_raises(self):
        engine = Engine()
        engine.begin_atomic()
        with pytest.raises(AtomicNestingError):
            engine.begin_atomic()
        assert engine.in_atomic

    def test_reset(self):
        engine = Engine()
        engine.enqueue(_FakeStore("a", []))
        engine.begin_atomic()
        engine.reset()
        assert engine.pending_count == 0
        assert not engine.in_atomic

    def test_flush_logs(self, caplog):
        engine = Engine()
        engine.enqueue(_FakeStore("a", []))
        with caplog.at_level(logging.DEBUG, logger="attrflow.engine"):
            engine.flush()
        assert "Flushing 1 queued store(s)" in caplog.text

    def test_listener_enqueues_during_flush(self, engine):
        source = ComputedStore(a=1, engine=engine)
        follower = ComputedStore(b=1, engine=engine)
        mirror = ComputedStore(engine=engine)
        mirror.register_computed_attribute("a2", lambda: source.get("a") * 2, [bind(source, "a")])
        mirror.register_computed_attribute("b2", lambda: follower.get("b") * 2, [bind(follower, "b")])
        log = []
        mirror.on("change:a2", lambda s, v: follower.set("b", v))
        mirror.on("change:b2", lambda s, v: log.append(v))
        source.set("a", 5)
        assert log == [20]
        assert engine.pending_count == 0


class TestGraph:
    def test_link_records_both_ends(self):
        a, b = ComputedStore(x=1), ComputedStore()
        link(b, "y", a, "x")
        assert a.graph.dependents_of("x") == [Dependent(b, "y")]
        assert b.graph.depends_on(a, "x")
        assert list(b.graph.edges_for("y")) == [(a, "x")]

    def test_unlink_removes_one_occurrence(self):
        a, b = ComputedStore(x=1), ComputedStore()
        link(b, "y", a, "x")
        link(b, "y", a, "x")
        unlink(b, "y", a, "x")
        assert len(a.graph.dependents_of("x")) == 1
        assert b.graph.depends_on(a)
        unlink(b, "y", a, "x")
        assert a.graph.dependents == {}
        assert not b.graph.depends_on(a)

    def test_discard_store(self):
        a, b, c = ComputedStore(x=1), ComputedStore(), ComputedStore()
        link(b, "y", a, "x")
        link(c, "z", a, "x")
        link(b, "w", a, "x")
        a.graph.discard_store("x", b)
        assert a.graph.dependents_of("x") == [Dependent(c, "z")]

    def test_find_path(self):
        s = ComputedStore()
        s.register_computed_attribute("b", lambda: 0, ["a"])
        s.register_computed_attribute("c", lambda: 0, ["b"])
        assert find_path(s, "a", s, "c") == [(s, "a"), (s, "b"), (s, "c")]
        assert find_path(s, "c", s, "a") is None
