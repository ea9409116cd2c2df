"""Reactions — side effects triggered by observable state changes.

A Reaction runs its function with itself as the runtime's current reaction,
so every observable read inside the function becomes a dependency edge.
When any of those cells is written, the reaction re-runs — unconditionally,
with no value-equality gate (that gate belongs to watch()).

Each run starts by dropping the edges of the previous run; whatever the
function reads this time is what it depends on next time.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Hashable, Iterable, Mapping

from statebind._runtime import ReactiveRuntime, get_runtime

if TYPE_CHECKING:
    from statebind._runtime import Cell


class Reaction:
    """A re-runnable unit of work with automatic dependency tracking.

    Calling the reaction (or its .dispose()) stops it.
    """

    __slots__ = ("_fn", "_runtime", "_dependencies", "_disposed", "on_dependency", "__weakref__")

    computing = False

    def __init__(
        self,
        fn: Callable[[], object],
        *,
        runtime: ReactiveRuntime | None = None,
        on_dependency: Callable[[Cell], None] | None = None,
    ) -> None:
        self._fn = fn
        self._runtime = runtime if runtime is not None else get_runtime()
        self._dependencies: set[tuple[int, Hashable]] = set()
        self._disposed = False
        self.on_dependency = on_dependency

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def dependencies(self) -> frozenset:
        """Cells read during the last run."""
        return frozenset(self._dependencies)

    def _run(self) -> None:
        """Re-evaluate the reaction function, re-tracking dependencies."""
        if self._disposed:
            return
        self._runtime.clear_dependencies(self)
        with self._runtime.running(self):
            self._fn()

    def dispose(self) -> None:
        """Stop this reaction. Disconnects from all dependencies."""
        self._disposed = True
        self._runtime.clear_dependencies(self)

    __call__ = dispose

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        name = getattr(self._fn, "__name__", type(self._fn).__name__)
        return f"Reaction({name}, {state})"


def effect(fn: Callable[[], object], *, runtime: ReactiveRuntime | None = None) -> Reaction:
    """Run fn immediately, then re-run whenever any observable it read changes.

    Returns the Reaction; call it (or .dispose()) to stop. An exception from the
    first run propagates to the caller.

    Usage:
        state = wrap({"count": 0})
        log = []

        stop = effect(lambda: log.append(state.count))
        # log == [0]: ran immediately

        state.count = 1
        # log == [0, 1]: re-ran because count changed

        stop()
        state.count = 2
        # log == [0, 1]: stopped
    """
    r = Reaction(fn, runtime=runtime)
    r._run()  # Initial run to establish dependencies
    return r


def effects(
    fns: Mapping[str, Callable[[], object]] | Iterable[Callable[[], object]],
    *,
    runtime: ReactiveRuntime | None = None,
) -> Callable[[], None]:
    """Create one effect per function. Returns a disposer that stops all of them."""
    if isinstance(fns, Mapping):
        fns = fns.values()
    reactions = [effect(fn, runtime=runtime) for fn in fns]

    def _dispose() -> None:
        for r in reactions:
            r.dispose()

    return _dispose
