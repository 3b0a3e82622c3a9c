"""Tests for the Events emitter."""

from attrflow import Events


class TestEvents:
    def test_trigger_passes_args(self):
        events = Events()
        log = []
        events.on("change", lambda *args: log.append(args))
        events.trigger("change", 1, "two")
        assert log == [(1, "two")]

    def test_listeners_run_in_registration_order(self):
        events = Events()
        log = []
        events.on("x", lambda: log.append("a"))
        events.on("x", lambda: log.append("b"))
        events.trigger("x")
        assert log == ["a", "b"]

    def test_trigger_without_listeners_is_noop(self):
        Events().trigger("nothing", 1)

    def test_disposer_removes_listener(self):
        events = Events()
        log = []
        dispose = events.on("x", lambda v: log.append(v))
        events.trigger("x", 1)
        dispose()
        events.trigger("x", 2)
        assert log == [1]
        assert not events.has_listeners("x")

    def test_disposer_twice_is_safe(self):
        events = Events()
        dispose = events.on("x", lambda: None)
        dispose()
        dispose()  # already removed, no error

    def test_once(self):
        events = Events()
        log = []
        events.once("x", lambda v: log.append(v))
        events.trigger("x", 1)
        events.trigger("x", 2)
        assert log == [1]

    def test_off_event(self):
        events = Events()
        log = []
        events.on("x", lambda: log.append("x"))
        events.on("y", lambda: log.append("y"))
        events.off("x")
        events.trigger("x")
        events.trigger("y")
        assert log == ["y"]

    def test_off_everything(self):
        events = Events()
        events.on("x", lambda: None)
        events.on("y", lambda: None)
        events.off()
        assert not events.has_listeners("x")
        assert not events.has_listeners("y")

    def test_listener_can_unsubscribe_during_trigger(self):
        events = Events()
        log = []
        disposers = []

        def first():
            log.append("first")
            disposers[0]()

        disposers.append(events.on("x", first))
        events.on("x", lambda: log.append("second"))
        events.trigger("x")
        events.trigger("x")
        assert log == ["first", "second", "second"]
