"""Collections — a reactive record wrapping one `items` list.

The items list carries the sequence-mutation patch, so every operation,
whether it mutates in place or replaces the list, notifies readers of
`collection.items`. Mutating operations run in a batch and return the
collection so calls can be chained.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Hashable, Iterable, Iterator, Mapping

from statebind.arrays import patch_sequence
from statebind.computed import computed
from statebind.observable import Reactive
from statebind.reaction import Reaction, effect


def _batched(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._runtime.batching():
            return method(self, *args, **kwargs)

    return wrapper


class Collection(Reactive):
    """A reactive list with list-management helpers.

    Usage:
        todos = collection([{"title": "a", "done": False}])
        effect(lambda: print(len(todos)))
        todos.add({"title": "b", "done": False})   # prints 2
        todos.toggle(lambda t: t.title == "a")
    """

    def __init__(self, items: Iterable[Any] = (), **kwargs: Any) -> None:
        super().__init__({"items": list(items)}, **kwargs)
        self._patcher = patch_sequence(self, "items")
        self._sync: Reaction | None = None

    def _index_of(self, predicate_or_item: Any) -> int:
        items = self.items
        if callable(predicate_or_item):
            for i, item in enumerate(items):
                if predicate_or_item(item):
                    return i
            return -1
        try:
            return items.index(predicate_or_item)
        except ValueError:
            return -1

    # --- Mutations ---

    @_batched
    def add(self, item: Any) -> Collection:
        self.items.append(item)
        return self

    @_batched
    def extend(self, items: Iterable[Any]) -> Collection:
        self.items.extend(items)
        return self

    @_batched
    def insert(self, index: int, item: Any) -> Collection:
        self.items.insert(index, item)
        return self

    @_batched
    def remove(self, predicate_or_item: Any) -> Collection:
        """Remove the first matching item, if any."""
        index = self._index_of(predicate_or_item)
        if index != -1:
            self.items.pop(index)
        return self

    @_batched
    def pop(self, index: int = -1) -> Any:
        return self.items.pop(index)

    @_batched
    def update(self, predicate_or_item: Any, changes: Mapping[Hashable, Any]) -> Collection:
        """Assign `changes` onto the first matching item."""
        index = self._index_of(predicate_or_item)
        if index != -1:
            item = self.items[index]
            for key, value in changes.items():
                item[key] = value
        return self

    @_batched
    def update_where(self, predicate: Callable[[Any], bool], changes: Mapping[Hashable, Any]) -> Collection:
        for item in self.items:
            if predicate(item):
                for key, value in changes.items():
                    item[key] = value
        return self

    @_batched
    def remove_where(self, predicate: Callable[[Any], bool]) -> Collection:
        self.items = [item for item in self.items if not predicate(item)]
        return self

    @_batched
    def toggle(self, predicate_or_item: Any, field: Hashable = "done") -> Collection:
        """Flip a boolean field of the first matching item."""
        index = self._index_of(predicate_or_item)
        if index != -1:
            item = self.items[index]
            item[field] = not (item[field] if field in item else False)
        return self

    @_batched
    def clear(self) -> Collection:
        self.items.clear()
        return self

    @_batched
    def reset(self, items: Iterable[Any] = ()) -> Collection:
        self.items = list(items)
        return self

    @_batched
    def sort(self, key: Callable[[Any], Any] | None = None, reverse: bool = False) -> Collection:
        self.items.sort(key=key, reverse=reverse)
        return self

    @_batched
    def reverse(self) -> Collection:
        self.items.reverse()
        return self

    # --- Queries (tracked) ---

    def find(self, predicate_or_item: Any) -> Any:
        index = self._index_of(predicate_or_item)
        return self.items[index] if index != -1 else None

    def filter(self, predicate: Callable[[Any], bool]) -> list[Any]:
        return [item for item in self.items if predicate(item)]

    def map(self, fn: Callable[[Any], Any]) -> list[Any]:
        return [fn(item) for item in self.items]

    def index(self, item: Any) -> int:
        return self._index_of(item)

    def at(self, index: int) -> Any:
        items = self.items
        if -len(items) <= index < len(items):
            return items[index]
        return None

    @property
    def first(self) -> Any:
        return self.at(0)

    @property
    def last(self) -> Any:
        return self.at(-1)

    def to_list(self) -> list[Any]:
        return list(self.items)

    def is_empty(self) -> bool:
        return len(self.items) == 0

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __contains__(self, item: object) -> bool:
        return item in self.items

    def dispose(self) -> None:
        """Stop re-patching replaced item lists and any source sync."""
        if self._patcher is not None:
            self._patcher.dispose()
        if self._sync is not None:
            self._sync.dispose()

    def __repr__(self) -> str:
        return f"Collection({self._raw['items']!r})"


def collection(items: Iterable[Any] = ()) -> Collection:
    return Collection(items)


def collection_with_computed(
    items: Iterable[Any] = (),
    definitions: Mapping[Hashable, Callable[[Any], Any]] | None = None,
) -> Collection:
    """A collection with computed properties; each function receives the collection."""
    c = Collection(items)
    if definitions:
        computed(c, definitions)
    return c


def filtered(source: Collection, predicate: Callable[[Any], bool]) -> Collection:
    """A collection holding the items of `source` that match, kept in sync."""
    view = Collection()
    view._sync = effect(lambda: view.reset(source.filter(predicate)))
    return view
