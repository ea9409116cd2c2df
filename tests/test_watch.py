"""Tests for watch() — change-gated callbacks."""

from statebind import Watcher, watch, watch_many, wrap


class TestWatch:
    def test_change_gating(self):
        s = wrap({"x": 1})
        log = []
        watch(s, "x", lambda new, old: log.append((new, old)))
        s.x = 1  # same value
        assert log == []
        s.x = 2
        assert log == [(2, 1)]

    def test_does_not_fire_on_setup(self):
        s = wrap({"x": 1})
        log = []
        w = watch(s, "x", lambda new, old: log.append((new, old)))
        assert log == []
        assert isinstance(w, Watcher)
        assert w.value == 1

    def test_expression(self):
        s = wrap({"x": 1})
        log = []
        watch(s, lambda o: "big" if o.x > 5 else "small", lambda new, old: log.append((new, old)))
        s.x = 3  # still small
        assert log == []
        s.x = 10
        assert log == [("big", "small")]

    def test_nested_key_path_expression(self):
        s = wrap({"user": {"name": "a"}})
        log = []
        watch(s, lambda o: o.user.name, lambda new, old: log.append((new, old)))
        s.user.name = "b"
        assert log == [("b", "a")]

    def test_dispose(self):
        s = wrap({"x": 1})
        log = []
        w = watch(s, "x", lambda new, old: log.append(new))
        s.x = 2
        w.dispose()
        s.x = 3
        assert log == [2]

    def test_callback_reads_are_not_tracked(self):
        s = wrap({"x": 1, "y": 1})
        log = []
        watch(s, "x", lambda new, old: log.append((new, s.y)))
        s.y = 2
        assert log == []
        s.x = 2
        assert log == [(2, 2)]

    def test_composite_identity(self):
        s = wrap({"items": [1]})
        log = []
        watch(s, "items", lambda new, old: log.append(list(new)))
        s.items = [1]  # new list, same contents
        assert log == [[1]]


class TestWatchMany:
    def test_disposer_stops_all(self):
        s = wrap({"a": 1, "b": 1})
        log = []
        stop = watch_many(
            s,
            {
                "a": lambda new, old: log.append(("a", new)),
                "b": lambda new, old: log.append(("b", new)),
            },
        )
        s.a = 2
        s.b = 2
        stop()
        s.a = 3
        assert log == [("a", 2), ("b", 2)]
