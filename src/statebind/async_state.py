"""Async state — data/loading/error around one awaited operation."""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable

from statebind.computed import computed
from statebind.observable import Reactive


class AsyncState(Reactive):
    """Usage:
        users = async_state([])
        effect(lambda: print("loading" if users.loading else users.data))
        await users.execute(fetch_users)
    """

    def __init__(self, initial: Any = None, **kwargs: Any) -> None:
        super().__init__({"data": initial, "loading": False, "error": None}, **kwargs)
        self._initial = initial
        computed(
            self,
            {
                "is_success": lambda s: not s.loading and s.error is None and s.data is not None,
                "is_error": lambda s: not s.loading and s.error is not None,
            },
        )

    async def execute(self, fn: Callable[[], Awaitable[Any] | Any]) -> Any:
        """Run fn, storing its result in `data` or its exception in `error`.

        The exception is re-raised after it is stored.
        """
        with self._runtime.batching():
            self.loading = True
            self.error = None
        try:
            result = fn()
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            with self._runtime.batching():
                self.error = exc
                self.loading = False
            raise
        with self._runtime.batching():
            self.data = result
            self.loading = False
        return result

    def reset(self) -> AsyncState:
        with self._runtime.batching():
            self.data = self._initial
            self.loading = False
            self.error = None
        return self


def async_state(initial: Any = None) -> AsyncState:
    return AsyncState(initial)
