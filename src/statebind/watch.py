"""watch() — call back with (new, old) when a tracked expression changes.

A Watcher is a Reaction whose body re-evaluates an expression and compares
the result with the previous one. The callback fires only when the value
actually changed (identity for composites, equality for scalars), so a
re-run caused by an unrelated write stays silent.

The callback runs untracked: reads inside it do not become dependencies.
"""

from __future__ import annotations

from typing import Any, Callable, Hashable, Mapping

from statebind._runtime import ReactiveRuntime
from statebind.observable import is_reactive, same_value
from statebind.reaction import Reaction

_UNSET = object()


class Watcher(Reaction):
    """Reaction with a change-detection gate in front of its callback."""

    __slots__ = ("_getter", "_callback", "_last_value")

    def __init__(
        self,
        getter: Callable[[], Any],
        callback: Callable[[Any, Any], None],
        *,
        runtime: ReactiveRuntime | None = None,
    ) -> None:
        super().__init__(self._check, runtime=runtime)
        self._getter = getter
        self._callback = callback
        # Seeded by the first run; nothing is evaluated before it.
        self._last_value: Any = _UNSET

    @property
    def value(self) -> Any:
        return None if self._last_value is _UNSET else self._last_value

    def _check(self) -> None:
        new_value = self._getter()
        if self._last_value is _UNSET:
            self._last_value = new_value
            return
        if same_value(new_value, self._last_value):
            return
        old_value, self._last_value = self._last_value, new_value
        self._runtime.untrack(lambda: self._callback(new_value, old_value))

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"Watcher({self.value!r}, {state})"


def watch(
    source: Any,
    key_or_fn: Hashable | Callable[[Any], Any],
    callback: Callable[[Any, Any], None],
    *,
    runtime: ReactiveRuntime | None = None,
) -> Watcher:
    """Watch one key of `source`, or an expression over it.

    A callable receives `source`. Returns the Watcher; call it (or
    .dispose()) to stop.

    Usage:
        state = wrap({"x": 1})
        log = []

        watch(state, "x", lambda new, old: log.append((new, old)))
        state.x = 1   # same value: nothing logged
        state.x = 2
        # log == [(2, 1)]

        watch(state, lambda s: s.x * 10, lambda new, old: log.append((new, old)))
    """
    if callable(key_or_fn):
        fn = key_or_fn

        def getter() -> Any:
            return fn(source)
    else:
        key = key_or_fn

        def getter() -> Any:
            return source[key]

    if runtime is None and is_reactive(source):
        runtime = source._runtime
    w = Watcher(getter, callback, runtime=runtime)
    w._run()  # Initial run to establish dependencies
    return w


def watch_many(
    source: Any,
    definitions: Mapping[Hashable, Callable[[Any, Any], None]],
) -> Callable[[], None]:
    """One watcher per {key: callback}. Returns a disposer that stops all of them."""
    watchers = [watch(source, key, callback) for key, callback in definitions.items()]

    def _dispose() -> None:
        for w in watchers:
            w.dispose()

    return _dispose
