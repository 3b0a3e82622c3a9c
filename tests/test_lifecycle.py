"""Tests for teardown, previous values and evaluator failures."""

import logging

import pytest

from attrflow import ComputedStore, bind


class XYZ(ComputedStore):
    defaults = {"X": 1, "Y": 2}

    def initialize(self):
        self.register_computed_attribute(
            "Z",
            lambda: self.get("X") + self.get("Y"),
            [bind(self, "X"), bind(self, "Y")],
        )


class Pair(ComputedStore):
    def initialize(self):
        self.child1 = ComputedStore(A="A", B="B")
        self.register_computed_attribute(
            "C",
            lambda: self.child1.get("A") + self.child1.get("B"),
            [bind(self.child1, "A", "B")],
        )


class TestTeardown:
    def test_no_events_on_destroyed_store(self):
        s = Pair()
        child = s.child1
        log = []
        s.on("change:C", lambda source, value: log.append(value))
        s.destroy()
        child.set("B", "d")
        assert log == []

    def test_teardown_prunes_reverse_map(self):
        s = Pair()
        other = ComputedStore()
        other.register_computed_attribute("echo", lambda: s.child1.get("A"), [bind(s.child1, "A")])
        assert len(s.child1.graph.dependents_of("A")) == 2
        s.teardown()
        assert [d.store for d in s.child1.graph.dependents_of("A")] == [other]
        assert s.child1.graph.dependents_of("B") == []
        assert s.graph.dependencies == {}

    def test_destroy_announces(self):
        s = Pair()
        log = []
        s.on("destroy", lambda source: log.append(source))
        s.destroy()
        assert log == [s]

    def test_teardown_does_not_purge_queue(self, engine):
        source = ComputedStore(n=1, engine=engine)
        dependent = ComputedStore(engine=engine)
        dependent.register_computed_attribute("m", lambda: source.get("n"), [bind(source, "n")])
        log = []
        dependent.on("change:m", lambda s, v: log.append(v))
        with engine.atomic():
            source.set("n", 2)
            dependent.teardown()
            assert engine.is_queued(dependent)
        # already queued before teardown, so it is still flushed
        assert log == [2]
        source.set("n", 3)
        assert log == [2]

    def test_teardown_logs(self, caplog):
        s = Pair()
        with caplog.at_level(logging.DEBUG, logger="attrflow.computed"):
            s.teardown()
        assert f"Tore down {s.cid}" in caplog.text


class TestPrevious:
    def test_nothing_before_first_change(self):
        s = XYZ()
        assert s.previous("Z") is None
        assert s.previous("X") is None
        assert s.previous(None) is None
        assert s.previous_attributes() is None

    def test_after_change(self):
        s = XYZ()
        s.get("Z")
        s.set("X", 2)
        assert s.previous("Z") == 3
        assert s.previous("X") == 1
        assert s.previous_attributes() == {"X": 1, "Y": 2, "Z": 3}

    def test_never_evaluated_previous_is_none(self):
        s = XYZ()
        s.set("X", 2)
        assert s.previous("Z") is None
        assert s.previous_attributes() == {"X": 1, "Y": 2, "Z": None}

    def test_only_computed_previous(self):
        s = Pair()
        s.get("C")
        s.child1.set("A", "x")
        assert s.previous("C") == "AB"
        assert s.previous_attributes() == {"C": "AB"}

    def test_previous_tracks_most_recent_change(self):
        s = XYZ()
        s.get("Z")
        s.set("X", 2)
        s.set("X", 3)
        assert s.previous("Z") == 4

    def test_changed_attributes(self):
        s = XYZ()
        assert s.changed_attributes() is None
        s.set("X", 2)
        assert s.changed_attributes() == {"X": 2, "Z": 4}


class TestEvaluatorFailure:
    def build(self, engine):
        source = ComputedStore(a=1, engine=engine)
        ok = ComputedStore(engine=engine)
        ok.register_computed_attribute("c", lambda: source.get("a") * 2, [bind(source, "a")])
        broken = ComputedStore(engine=engine)

        def explode():
            if source.get("a") > 1:
                raise ZeroDivisionError("bad evaluator")
            return 0

        broken.register_computed_attribute("d", explode, [bind(source, "a")])
        return source, ok, broken

    def test_exception_reaches_mutator(self, engine):
        source, ok, broken = self.build(engine)
        with pytest.raises(ZeroDivisionError, match="bad evaluator"):
            source.set("a", 2)
        assert source.get("a") == 2

    def test_flush_aborts_and_keeps_remaining_stores_queued(self, engine):
        source, ok, broken = self.build(engine)
        log = []
        ok.on("change:c", lambda s, v: log.append(v))
        with pytest.raises(ZeroDivisionError):
            source.set("a", 2)
        # broken was queued last, so it ran first and aborted the pass
        assert log == []
        assert engine.pending_count == 1
        assert broken.is_dirty("d")

        engine.flush()
        assert log == [4]
        assert engine.pending_count == 0

    def test_store_keeps_flushing_after_failure(self, engine):
        source, ok, broken = self.build(engine)
        with pytest.raises(ZeroDivisionError):
            source.set("a", 2)
        broken.teardown()
        engine.reset()

        log = []
        ok.on("change:c", lambda s, v: log.append(v))
        source.set("a", 3)
        assert log == [6]

    def test_sibling_attribute_announced_by_next_flush(self, engine):
        source = ComputedStore(a=1, engine=engine)
        s = ComputedStore(engine=engine)

        def bad():
            if source.get("a") == 2:
                raise ZeroDivisionError("bad evaluator")
            return 0

        s.register_computed_attribute("bad", bad, [bind(source, "a")])
        s.register_computed_attribute("ok", lambda: source.get("a") * 10, [bind(source, "a")])
        log = []
        s.on("change:ok", lambda store, value: log.append(value))

        with pytest.raises(ZeroDivisionError):
            source.set("a", 2)
        assert log == []
        assert engine.is_queued(s)

        engine.flush()
        assert log == [20]
        assert s.is_dirty("bad")
        assert engine.pending_count == 0
