"""Computed properties — derived keys with automatic dependency tracking.

define_computed() installs a read-only key on a Reactive. The first read
runs the compute function, recording every cell it reads (on this record or
any other observable) into the entry's own dependency set, and caches the
result. A write to any of those cells only marks the entry dirty and
notifies the readers of the computed key; recomputation waits for the next
read.

Computed values are lazy — they only recompute when read.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Hashable, Mapping

from statebind.observable import Reactive
from statebind.reaction import Reaction

if TYPE_CHECKING:
    from statebind._runtime import Cell

_UNSET = object()


class _ComputingReaction(Reaction):
    """Captures a computed's reads. Never re-run by a write; only marks stale."""

    __slots__ = ("_entry",)

    computing = True

    def __init__(self, entry: ComputedEntry) -> None:
        super().__init__(entry._evaluate, runtime=entry._owner._runtime, on_dependency=entry.dependencies.add)
        self._entry = entry

    def mark_stale(self) -> None:
        self._entry.invalidate()

    def __repr__(self) -> str:
        return f"_ComputingReaction({self._entry._key!r})"


class ComputedEntry:
    """A cached derived value attached to one key of a Reactive."""

    __slots__ = ("_owner", "_key", "_fn", "_value", "dirty", "dependencies", "_reaction")

    def __init__(self, owner: Reactive, key: Hashable, fn: Callable[[Any], Any]) -> None:
        self._owner = owner
        self._key = key
        self._fn = fn
        self._value: Any = _UNSET
        self.dirty = True
        self.dependencies: set[Cell] = set()
        self._reaction = _ComputingReaction(self)

    @property
    def key(self) -> Hashable:
        return self._key

    def get(self) -> Any:
        """Read the computed value. Recomputes if dirty."""
        if self.dirty:
            self._recompute()
        return self._value

    def _evaluate(self) -> None:
        self._value = self._fn(self._owner)

    def _recompute(self) -> None:
        """Re-evaluate the function, tracking dependencies."""
        self.dependencies.clear()
        self._reaction._run()
        self.dirty = False

    def invalidate(self) -> None:
        """An upstream cell changed: mark dirty and notify readers of this key.

        Readers are notified even when the entry is already dirty, so a reader
        left on a failed recompute re-runs once its inputs change.
        """
        self.dirty = True
        self._owner._runtime.trigger(self._owner._id, self._key)

    def dispose(self) -> None:
        """Disconnect from all dependencies. The entry becomes inert."""
        self._reaction.dispose()
        self.dependencies.clear()
        self.dirty = True
        self._value = _UNSET

    def __repr__(self) -> str:
        state = "dirty" if self.dirty else f"cached={self._value!r}"
        return f"ComputedEntry({self._key!r}, {state})"


def define_computed(observable: Reactive, key: Hashable, fn: Callable[[Any], Any]) -> Reactive:
    """Install a lazily-computed, read-only key on a Reactive.

    fn receives the observable. Returns the observable.

    Usage:
        cart = wrap({"items": [{"price": 1, "qty": 3}, {"price": 2, "qty": 1}]})
        define_computed(cart, "total", lambda c: sum(i.price * i.qty for i in c.items))

        cart.total  # 5
        cart.items[0].qty = 5
        cart.total  # 7
    """
    if not isinstance(observable, Reactive):
        raise TypeError(f"cannot add a computed property to non-reactive {type(observable).__name__}")
    runtime = observable._runtime
    runtime.set_computed(observable._id, key, ComputedEntry(observable, key, fn))
    if runtime.has_dependents(observable._id, key):
        runtime.trigger(observable._id, key)
    return observable


def computed(observable: Reactive, definitions: Mapping[Hashable, Callable[[Any], Any]]) -> Reactive:
    """Define several computed properties at once. Returns the observable."""
    for key, fn in definitions.items():
        define_computed(observable, key, fn)
    return observable
