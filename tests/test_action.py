"""Tests for batch, action, transaction and pause/resume."""

import pytest

from statebind import action, batch, effect, get_pending_count, pause, resume, transaction, wrap


class TestBatch:
    def test_coalesces(self):
        s = wrap({"a": 0})
        log = []
        effect(lambda: log.append(s.a))

        def update():
            s.a = 1
            s.a = 2
            s.a = 3

        batch(update)
        assert log == [0, 3]

    def test_returns_result(self):
        assert batch(lambda: 42) == 42

    def test_nested_batches_flush_once(self):
        s = wrap({"a": 0})
        log = []
        effect(lambda: log.append(s.a))

        def inner():
            s.a = 2

        def outer():
            s.a = 1
            batch(inner)
            assert log == [0]  # still inside outer batch

        batch(outer)
        assert log == [0, 2]


class TestAction:
    def test_batches_updates(self):
        s = wrap({"a": 0, "b": 0})
        log = []
        effect(lambda: log.append((s.a, s.b)))

        @action
        def update_both():
            s.a = 1
            s.b = 2

        update_both()
        # Should see (1, 2) not intermediate (1, 0)
        assert log == [(0, 0), (1, 2)]

    def test_nested_actions(self):
        s = wrap({"a": 0})
        log = []
        effect(lambda: log.append(s.a))

        @action
        def inner():
            s.a = 2

        @action
        def outer():
            s.a = 1
            inner()
            s.a = 3

        outer()
        # Only fires after outermost action completes
        assert log == [0, 3]

    def test_preserves_return_and_name(self):
        @action
        def compute(x):
            return x * 2

        assert compute(21) == 42
        assert compute.__name__ == "compute"


class TestTransaction:
    def test_batches(self):
        s = wrap({"a": 0, "b": 0})
        log = []
        effect(lambda: log.append((s.a, s.b)))
        with transaction():
            s.a = 1
            s.b = 2
            assert log == [(0, 0)]
        assert log == [(0, 0), (1, 2)]

    def test_flushes_on_exception(self):
        s = wrap({"a": 0})
        log = []
        effect(lambda: log.append(s.a))
        with pytest.raises(RuntimeError):
            with transaction():
                s.a = 1
                raise RuntimeError("oops")
        assert log == [0, 1]


class TestPauseResume:
    def test_resume_with_flush(self):
        s = wrap({"a": 0})
        log = []
        effect(lambda: log.append(s.a))
        pause()
        s.a = 1
        assert log == [0]
        resume(flush=True)
        assert log == [0, 1]

    def test_resume_without_flush_keeps_pending(self):
        s = wrap({"a": 0})
        log = []
        effect(lambda: log.append(s.a))
        pause()
        s.a = 1
        resume()
        assert log == [0]
        assert get_pending_count() == 1
        s.a = 2  # the next flush drains everything
        assert log == [0, 2]
        assert get_pending_count() == 0
