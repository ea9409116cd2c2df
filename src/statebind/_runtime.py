"""Dependency tracking runtime — the heart of statebind.

A ReactiveRuntime owns every piece of mutable engine state: the cell index
(observable id -> key -> dependent reactions), the computed registry, the
currently-running reaction, and the batch queue. Observables, reactions and
computeds are thin handles that hold a reference to the runtime they were
created in.

Batching: writes inside batch(), @action or `with transaction()` accumulate
invalidations and flush them once at the end, ensuring glitch-free updates.
"""

from __future__ import annotations

import contextvars
import itertools
import logging
import weakref
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Hashable, Iterator

if TYPE_CHECKING:
    from statebind.computed import ComputedEntry
    from statebind.reaction import Reaction

    Cell = tuple[int, Hashable]

logger = logging.getLogger("statebind.runtime")


class ReactiveRuntime:
    """Owns the dependency graph, computed registry and batch queue.

    Multiple runtimes are fully independent; see use_runtime().
    """

    def __init__(self, *, on_error: Callable[[Reaction, Exception], None] | None = None) -> None:
        self._ids = itertools.count(1)
        self._current: contextvars.ContextVar[Reaction | None] = contextvars.ContextVar(
            "statebind_current_reaction", default=None
        )
        # obs_id -> key -> ordered set of reactions
        self._graphs: dict[int, dict[Hashable, dict[Reaction, None]]] = {}
        # obs_id -> key -> computed entry
        self._computeds: dict[int, dict[Hashable, ComputedEntry]] = {}
        # id(raw) -> wrapper, so the same backing value is only wrapped once
        self._wrappers: weakref.WeakValueDictionary[int, Any] = weakref.WeakValueDictionary()
        self._batch_depth = 0
        self._flushing = False
        self._pending: dict[Reaction, None] = {}
        self.on_error = on_error

    # ─── Cells ───────────────────────────────────────────────────────────────

    def new_id(self) -> int:
        return next(self._ids)

    def register(self, obs_id: int) -> None:
        self._graphs.setdefault(obs_id, {})
        self._computeds.setdefault(obs_id, {})

    def interned(self, raw: object) -> Any:
        return self._wrappers.get(id(raw))

    def intern(self, raw: object, wrapper: Any) -> None:
        self._wrappers[id(raw)] = wrapper

    def release(self, obs_id: int) -> None:
        """Destroy the cells of an observable and drop every edge into them."""
        graph = self._graphs.pop(obs_id, {})
        for key, reactions in graph.items():
            for reaction in list(reactions):
                reaction._dependencies.discard((obs_id, key))
        for entry in self._computeds.pop(obs_id, {}).values():
            entry.dispose()

    def is_registered(self, obs_id: int) -> bool:
        return obs_id in self._graphs

    # ─── Tracking ────────────────────────────────────────────────────────────

    @property
    def current_reaction(self) -> Reaction | None:
        return self._current.get()

    @contextmanager
    def running(self, reaction: Reaction | None) -> Iterator[None]:
        """Make `reaction` the current reaction for the duration of the block."""
        token = self._current.set(reaction)
        try:
            yield
        finally:
            self._current.reset(token)

    def untrack(self, fn: Callable[[], Any]) -> Any:
        with self.running(None):
            return fn()

    def track(self, obs_id: int, key: Hashable) -> None:
        """Record a read of `key` on behalf of the current reaction, if any."""
        reaction = self._current.get()
        if reaction is None:
            return
        graph = self._graphs.get(obs_id)
        if graph is None:
            return
        graph.setdefault(key, {})[reaction] = None
        cell = (obs_id, key)
        reaction._dependencies.add(cell)
        if reaction.on_dependency is not None:
            reaction.on_dependency(cell)

    def clear_dependencies(self, reaction: Reaction) -> None:
        """Remove every edge recorded for `reaction`. Called before each re-run."""
        for obs_id, key in list(reaction._dependencies):
            reactions = self._graphs.get(obs_id, {}).get(key)
            if reactions is not None:
                reactions.pop(reaction, None)
        reaction._dependencies.clear()

    def has_dependents(self, obs_id: int, key: Hashable) -> bool:
        return bool(self._graphs.get(obs_id, {}).get(key))

    # ─── Computed registry ───────────────────────────────────────────────────

    def computed_entry(self, obs_id: int, key: Hashable) -> ComputedEntry | None:
        entries = self._computeds.get(obs_id)
        if not entries:
            return None
        return entries.get(key)

    def computed_keys(self, obs_id: int) -> list[Hashable]:
        return list(self._computeds.get(obs_id, {}))

    def set_computed(self, obs_id: int, key: Hashable, entry: ComputedEntry) -> None:
        previous = self._computeds.setdefault(obs_id, {}).get(key)
        if previous is not None:
            previous.dispose()
        self._computeds[obs_id][key] = entry

    # ─── Notification ────────────────────────────────────────────────────────

    def trigger(self, obs_id: int, key: Hashable) -> None:
        """A write happened to (obs_id, key).

        Computeds that read the cell are marked dirty first (which transitively
        notifies readers of the computed key), then observing reactions are
        enqueued. Outside a batch they still run before this returns, each once.
        """
        reactions = self._graphs.get(obs_id, {}).get(key)
        if not reactions:
            return
        snapshot = list(reactions)
        with self.batching():
            for reaction in snapshot:
                if reaction.computing:
                    reaction.mark_stale()
            for reaction in snapshot:
                if not reaction.computing:
                    self.enqueue(reaction)

    def trigger_all(self, obs_id: int) -> None:
        """Notify every tracked key of an observable, as one batch."""
        graph = self._graphs.get(obs_id)
        if not graph:
            return
        with self.batching():
            for key in list(graph):
                self.trigger(obs_id, key)

    # ─── Batching ────────────────────────────────────────────────────────────

    @property
    def batch_depth(self) -> int:
        return self._batch_depth

    def begin_batch(self) -> None:
        """Enter a batching scope. Nested batches are supported."""
        self._batch_depth += 1

    def end_batch(self) -> None:
        """Exit a batching scope. When the outermost scope exits, flush pending reactions."""
        self._batch_depth -= 1
        if self._batch_depth == 0:
            self.flush()

    @contextmanager
    def batching(self) -> Iterator[None]:
        self.begin_batch()
        try:
            yield
        finally:
            self.end_batch()

    def pause(self) -> None:
        """Open a batch scope that is closed later by resume()."""
        self._batch_depth += 1

    def resume(self, flush: bool = False) -> None:
        self._batch_depth = max(0, self._batch_depth - 1)
        if flush and self._batch_depth == 0:
            self.flush()

    def enqueue(self, reaction: Reaction) -> None:
        """Schedule a reaction for re-execution.

        If inside a batch or a flush, defers. Otherwise, runs immediately.
        A reaction is never re-scheduled by its own writes.
        """
        if reaction is self._current.get():
            return
        if self._batch_depth > 0 or self._flushing:
            self._pending[reaction] = None
        else:
            self.execute(reaction)

    def flush(self) -> None:
        """Run all pending reactions. Handles reactions scheduled during flush."""
        if self._flushing:
            return
        self._flushing = True
        try:
            while self._pending:
                # Snapshot and clear: reactions may schedule new ones during run.
                batch = list(self._pending)
                self._pending.clear()
                for reaction in batch:
                    self.execute(reaction)
        finally:
            self._flushing = False

    def execute(self, reaction: Reaction) -> None:
        """Run one scheduled reaction; a failure never stops its siblings."""
        try:
            reaction._run()
        except Exception as exc:
            if self.on_error is not None:
                self.on_error(reaction, exc)
            else:
                logger.exception("Reaction %r failed", reaction)

    @property
    def pending_count(self) -> int:
        return len(self._pending)


# ─── Active runtime ──────────────────────────────────────────────────────────

_default_runtime = ReactiveRuntime()
_active_runtime: contextvars.ContextVar[ReactiveRuntime | None] = contextvars.ContextVar(
    "statebind_active_runtime", default=None
)


def get_runtime() -> ReactiveRuntime:
    """The runtime new observables and reactions attach to."""
    runtime = _active_runtime.get()
    return runtime if runtime is not None else _default_runtime


def set_runtime(runtime: ReactiveRuntime) -> None:
    """Replace the process-wide default runtime."""
    global _default_runtime
    _default_runtime = runtime


@contextmanager
def use_runtime(runtime: ReactiveRuntime | None = None) -> Iterator[ReactiveRuntime]:
    """Activate a runtime (a fresh one by default) for the current context.

    Usage:
        with use_runtime() as rt:
            state = wrap({"count": 0})
            ...
    """
    runtime = runtime if runtime is not None else ReactiveRuntime()
    token = _active_runtime.set(runtime)
    try:
        yield runtime
    finally:
        _active_runtime.reset(token)


def get_pending_count() -> int:
    """Number of reactions waiting to run. Useful for testing."""
    return get_runtime().pending_count
