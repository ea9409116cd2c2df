"""Tests for ReactiveRuntime: isolation, scheduling and error policy."""

import gc
import logging

import pytest

from statebind import (
    ReactiveRuntime,
    batch,
    effect,
    get_pending_count,
    get_runtime,
    release,
    use_runtime,
    wrap,
)


class TestActiveRuntime:
    def test_use_runtime_activates(self, runtime):
        assert get_runtime() is runtime
        with use_runtime() as inner:
            assert get_runtime() is inner
            assert inner is not runtime
        assert get_runtime() is runtime

    def test_use_runtime_with_explicit_runtime(self):
        rt = ReactiveRuntime()
        with use_runtime(rt) as active:
            assert active is rt
            assert wrap({"x": 1})._runtime is rt

    def test_runtimes_do_not_share_reactions(self):
        s = wrap({"x": 1})
        other = ReactiveRuntime()
        log = []
        effect(lambda: log.append(s.x), runtime=other)
        s.x = 2
        assert log == [1]

    def test_wrappers_are_per_runtime(self):
        raw = {"x": 1}
        a = wrap(raw)
        with use_runtime():
            b = wrap(raw)
        assert a is not b


class TestErrorPolicy:
    def test_initial_run_propagates(self):
        def fn():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            effect(fn)

    def test_scheduled_failure_is_logged(self, caplog):
        s = wrap({"x": 0})

        def fn():
            if s.x > 0:
                raise ValueError("boom")

        effect(fn)
        with caplog.at_level(logging.ERROR, logger="statebind.runtime"):
            s.x = 1  # does not raise
        assert "failed" in caplog.text
        assert "boom" in caplog.text

    def test_failure_does_not_stop_siblings(self):
        s = wrap({"x": 0})
        log = []

        def bad():
            if s.x > 0:
                raise RuntimeError("bad")

        effect(bad)
        effect(lambda: log.append(s.x))
        batch(lambda: s.__setitem__("x", 1))
        assert log == [0, 1]

    def test_unbatched_failure_does_not_stop_siblings(self):
        s = wrap({"x": 0})
        log = []

        def bad():
            if s.x > 0:
                raise RuntimeError("bad")

        effect(bad)
        effect(lambda: log.append(s.x))
        s.x = 1
        assert log == [0, 1]

    def test_on_error_hook(self):
        errors = []
        rt = ReactiveRuntime(on_error=lambda reaction, exc: errors.append(exc))
        with use_runtime(rt):
            s = wrap({"x": 0})

            def fn():
                if s.x:
                    raise KeyError("k")

            effect(fn)
            s.x = 1
        assert len(errors) == 1
        assert isinstance(errors[0], KeyError)


class TestScheduling:
    def test_pending_count_inside_batch(self):
        s = wrap({"x": 0})
        effect(lambda: s.x)
        counts = []

        def update():
            s.x = 1
            counts.append(get_pending_count())

        batch(update)
        assert counts == [1]
        assert get_pending_count() == 0

    def test_flush_order_is_enqueue_order(self):
        s = wrap({"a": 0, "b": 0})
        log = []
        effect(lambda: log.append(("a", s.a)))
        effect(lambda: log.append(("b", s.b)))
        log.clear()

        def update():
            s.b = 1
            s.a = 1

        batch(update)
        assert log == [("b", 1), ("a", 1)]

    def test_release_drops_dependents(self):
        s = wrap({"x": 0})
        log = []
        effect(lambda: log.append(s.x))
        release(s)
        s.x = 5
        assert log == [0]


class TestCellLifetime:
    def test_cells_are_released_with_the_wrapper(self, runtime):
        s = wrap({"x": 1})
        obs_id = s._id
        assert runtime.is_registered(obs_id)
        del s
        gc.collect()
        assert not runtime.is_registered(obs_id)

    def test_live_wrapper_keeps_its_cells(self, runtime):
        s = wrap({"x": 0})
        log = []
        effect(lambda: log.append(s.x))
        gc.collect()
        s.x = 1
        assert log == [0, 1]
