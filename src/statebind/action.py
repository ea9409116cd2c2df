"""Batches, actions and transactions — coalesced state mutations.

Wrapping writes in batch(), an @action or `with transaction()` defers all
reaction re-runs until the outermost scope exits. Each affected reaction
then runs once, seeing the final values, instead of once per write.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, Iterator, ParamSpec, TypeVar

from statebind._runtime import ReactiveRuntime, get_runtime

P = ParamSpec("P")
R = TypeVar("R")


def batch(fn: Callable[[], R], *, runtime: ReactiveRuntime | None = None) -> R:
    """Run fn inside a batch and return its result.

    Usage:
        state = wrap({"a": 0})
        log = []
        effect(lambda: log.append(state.a))

        def update():
            state.a = 1
            state.a = 2
            return state.a

        batch(update)  # 2
        # log == [0, 2]: one re-run, final value
    """
    runtime = runtime if runtime is not None else get_runtime()
    runtime.begin_batch()
    try:
        return fn()
    finally:
        runtime.end_batch()


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: batch all observable writes inside fn.

    Reactions only fire after fn returns, not during.

    Usage:
        @action
        def swap(state):
            state.a, state.b = state.b, state.a
            # reactions see both changes at once, not one at a time
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        runtime = get_runtime()
        runtime.begin_batch()
        try:
            return fn(*args, **kwargs)
        finally:
            runtime.end_batch()

    return wrapper


@contextmanager
def transaction(runtime: ReactiveRuntime | None = None) -> Iterator[None]:
    """Context manager for batching writes.

    Usage:
        with transaction():
            state.a = 1
            state.b = 2
            # reactions fire here, after both are set
    """
    runtime = runtime if runtime is not None else get_runtime()
    runtime.begin_batch()
    try:
        yield
    finally:
        runtime.end_batch()


def pause(runtime: ReactiveRuntime | None = None) -> None:
    """Open a batch that stays open until resume(), e.g. across an await."""
    (runtime if runtime is not None else get_runtime()).pause()


def resume(flush: bool = False, *, runtime: ReactiveRuntime | None = None) -> None:
    """Close a batch opened by pause(). Pending reactions run only if flush is true."""
    (runtime if runtime is not None else get_runtime()).resume(flush)
