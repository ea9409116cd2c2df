"""Observable records and sequences: keyed cells that remember who read them.

wrap() turns a plain dict into a Reactive and a plain list into a
ReactiveList. Reads performed while a reaction runs register a dependency
on the (observable, key) cell; writes notify every reaction registered on
that cell.

Nested dicts and lists are wrapped lazily, on first read, and the wrapper is
written back into the backing slot so repeated reads return the identical
object. Writes always store the un-wrapped form.

Keys that do not exist when a reaction reads them are not tracked: a
reaction that looked up a missing key is not re-run when the key is later
added. Enumerating keys (iteration, len(), `in`) is tracked separately and
is notified on additions and deletions.
"""

from __future__ import annotations

import weakref
from typing import Any, Callable, Hashable, Iterator, Mapping

from statebind._runtime import ReactiveRuntime, get_runtime

_MISSING = object()

# Synthetic keys
KEYS = "__keys__"  # key enumeration of a Reactive
LENGTH = "length"  # len() of a ReactiveList
ITEMS = "__items__"  # whole-sequence reads of a ReactiveList

_SCALARS = (str, bytes, int, float, complex, bool, type(None))


def is_reactive(value: object) -> bool:
    return isinstance(value, Observable)


def to_raw(value: Any) -> Any:
    """The backing dict/list of an observable; any other value unchanged."""
    if isinstance(value, Observable):
        return value._raw
    return value


def same_value(old: object, new: object) -> bool:
    """Identity for composites, value equality for same-typed scalars."""
    if old is new:
        return True
    if type(old) is type(new) and isinstance(old, _SCALARS):
        return old == new
    return False


def wrap(value: Any, *, runtime: ReactiveRuntime | None = None) -> Any:
    """Return an observable view of value, or value itself if it isn't a dict/list.

    Wrapping is idempotent: wrap(wrap(v)) is wrap(v), and wrapping the same
    backing object twice returns the same wrapper.
    """
    if isinstance(value, Observable):
        return value
    if not isinstance(value, (dict, list)):
        return value
    runtime = runtime if runtime is not None else get_runtime()
    existing = runtime.interned(value)
    if existing is not None:
        return existing
    if isinstance(value, dict):
        return Reactive(value, runtime=runtime)
    return ReactiveList(value, runtime=runtime)


def snapshot(value: Any) -> Any:
    """Deep plain copy of an observable graph, read without tracking."""
    raw = to_raw(value)
    if isinstance(raw, dict):
        return {k: snapshot(v) for k, v in raw.items()}
    if isinstance(raw, list):
        return [snapshot(v) for v in raw]
    return raw


class Observable:
    """Shared plumbing of Reactive and ReactiveList."""

    __slots__ = ("_id", "_raw", "_runtime", "__weakref__")

    def __init__(self, raw: Any, runtime: ReactiveRuntime | None = None) -> None:
        runtime = runtime if runtime is not None else get_runtime()
        object.__setattr__(self, "_raw", raw)
        object.__setattr__(self, "_runtime", runtime)
        object.__setattr__(self, "_id", runtime.new_id())
        runtime.register(self._id)
        runtime.intern(raw, self)
        # Cells die with the wrapper; release() only frees them earlier.
        weakref.finalize(self, runtime.release, self._id).atexit = False

    def _track(self, key: Hashable) -> None:
        self._runtime.track(self._id, key)

    def _trigger(self, key: Hashable) -> None:
        self._runtime.trigger(self._id, key)

    def _wrap_slot(self, key: Any, value: Any) -> Any:
        """Wrap a nested composite and cache the wrapper in the backing slot."""
        if isinstance(value, (dict, list)):
            value = wrap(value, runtime=self._runtime)
            self._raw[key] = value
        return value


class Reactive(Observable):
    """An observable record.

    Keys are reachable as attributes (`state.count`) and items
    (`state["count"]`). Names starting with an underscore are never keys.
    """

    __slots__ = ()

    def __init__(self, data: dict | None = None, *, runtime: ReactiveRuntime | None = None) -> None:
        super().__init__(data if data is not None else {}, runtime)

    # --- Read path ---

    def _read(self, key: Hashable) -> Any:
        entry = self._runtime.computed_entry(self._id, key)
        if entry is not None:
            self._track(key)
            return entry.get()
        if key not in self._raw:
            raise KeyError(key)
        self._track(key)
        return self._wrap_slot(key, self._raw[key])

    def __getitem__(self, key: Hashable) -> Any:
        return self._read(key)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._read(name)
        except KeyError:
            raise AttributeError(f"{type(self).__name__} has no key {name!r}") from None

    def __contains__(self, key: Hashable) -> bool:
        self._track(KEYS)
        return key in self._raw or self._runtime.computed_entry(self._id, key) is not None

    def __iter__(self) -> Iterator[Hashable]:
        self._track(KEYS)
        return iter(self._keys())

    def __len__(self) -> int:
        self._track(KEYS)
        return len(self._keys())

    def _keys(self) -> list[Hashable]:
        keys = list(self._raw)
        keys.extend(k for k in self._runtime.computed_keys(self._id) if k not in self._raw)
        return keys

    # --- Write path ---

    def _write(self, key: Hashable, value: Any) -> None:
        if self._runtime.computed_entry(self._id, key) is not None:
            raise AttributeError(f"computed property {key!r} is read-only")
        old = self._raw.get(key, _MISSING)
        if same_value(to_raw(old), to_raw(value)):
            return
        self._raw[key] = to_raw(value)
        if old is _MISSING:
            with self._runtime.batching():
                self._trigger(key)
                self._trigger(KEYS)
        else:
            self._trigger(key)

    def _delete(self, key: Hashable) -> None:
        del self._raw[key]
        with self._runtime.batching():
            self._trigger(key)
            self._trigger(KEYS)

    def __setitem__(self, key: Hashable, value: Any) -> None:
        self._write(key, value)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_") or hasattr(type(self), name):
            object.__setattr__(self, name, value)
        else:
            self._write(name, value)

    def __delitem__(self, key: Hashable) -> None:
        self._delete(key)

    def __delattr__(self, name: str) -> None:
        if name.startswith("_") or hasattr(type(self), name):
            object.__delattr__(self, name)
            return
        try:
            self._delete(name)
        except KeyError:
            raise AttributeError(name) from None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._raw!r})"


class ReactiveList(Observable):
    """An observable sequence.

    Index reads track the index, len() tracks `length`, and whole-sequence
    reads (iteration, membership, slicing) track the items key. Mutations
    notify every tracked key of the list.
    """

    # No __slots__: the sequence patch replaces mutators per instance.

    def __init__(self, items: list | None = None, *, runtime: ReactiveRuntime | None = None) -> None:
        super().__init__(items if items is not None else [], runtime)
        self._patched = False
        # (owner, key) once the sequence patch has claimed this list
        self._owner: tuple[Reactive, Hashable] | None = None

    def _changed(self) -> None:
        self._runtime.trigger_all(self._id)

    def _write_back(self) -> None:
        """Store a copy of the items in the owning slot, if the list has one."""
        if self._owner is not None:
            owner, key = self._owner
            owner[key] = list(self._raw)

    # --- Read operations (track) ---

    def __getitem__(self, index):
        if isinstance(index, slice):
            self._track(ITEMS)
            return [self._wrap_slot(i, self._raw[i]) for i in range(*index.indices(len(self._raw)))]
        position = index + len(self._raw) if index < 0 else index
        if index < 0:
            self._track(LENGTH)
        self._track(position)
        return self._wrap_slot(position, self._raw[index])

    def __len__(self) -> int:
        self._track(LENGTH)
        return len(self._raw)

    def __iter__(self) -> Iterator[Any]:
        self._track(ITEMS)
        for i in range(len(self._raw)):
            yield self._wrap_slot(i, self._raw[i])

    def _member(self, item: object) -> object:
        # The backing list may hold either the wrapper or its raw value.
        if is_reactive(item) and item not in self._raw:
            return item._raw
        return item

    def __contains__(self, item: object) -> bool:
        self._track(ITEMS)
        return self._member(item) in self._raw

    def __bool__(self) -> bool:
        self._track(LENGTH)
        return bool(self._raw)

    def index(self, item: object, *args) -> int:
        self._track(ITEMS)
        return self._raw.index(self._member(item), *args)

    def count(self, item: object) -> int:
        self._track(ITEMS)
        return self._raw.count(self._member(item))

    # --- Write operations (notify) ---

    # Dunders cannot be replaced per instance, so item assignment and deletion
    # reach the owning slot through _write_back() instead of the patch.

    def __setitem__(self, index, value) -> None:
        if isinstance(index, slice):
            with self._runtime.batching():
                self._raw[index] = [to_raw(v) for v in value]
                self._changed()
                self._write_back()
            return
        if same_value(self._raw[index], value):
            return
        position = index + len(self._raw) if index < 0 else index
        with self._runtime.batching():
            self._raw[index] = to_raw(value)
            self._trigger(position)
            self._trigger(ITEMS)
            self._write_back()

    def __delitem__(self, index) -> None:
        with self._runtime.batching():
            del self._raw[index]
            self._changed()
            self._write_back()

    def __iadd__(self, items):
        self.extend(items)
        return self

    def append(self, item: Any) -> None:
        self._raw.append(to_raw(item))
        self._changed()

    def extend(self, items) -> None:
        self._raw.extend(to_raw(v) for v in items)
        self._changed()

    def insert(self, index: int, item: Any) -> None:
        self._raw.insert(index, to_raw(item))
        self._changed()

    def pop(self, index: int = -1) -> Any:
        result = self._raw.pop(index)
        self._changed()
        return result

    def remove(self, item: Any) -> None:
        self._raw.remove(self._member(item))
        self._changed()

    def clear(self) -> None:
        self._raw.clear()
        self._changed()

    def sort(self, *, key: Callable[[Any], Any] | None = None, reverse: bool = False) -> None:
        self._raw.sort(key=key, reverse=reverse)
        self._changed()

    def reverse(self) -> None:
        self._raw.reverse()
        self._changed()

    def fill(self, value: Any, start: int = 0, end: int | None = None) -> ReactiveList:
        """Overwrite positions [start, end) with value."""
        for i in range(*slice(start, end).indices(len(self._raw))):
            self._raw[i] = to_raw(value)
        self._changed()
        return self

    def splice(self, start: int, delete_count: int | None = None, *items: Any) -> list:
        """Replace delete_count items from start (all the rest by default) with items.

        Returns the removed items. A negative start counts from the end.
        """
        size = len(self._raw)
        start = max(0, start + size) if start < 0 else min(start, size)
        end = size if delete_count is None else min(size, start + max(0, delete_count))
        removed = self._raw[start:end]
        self._raw[start:end] = [to_raw(v) for v in items]
        self._changed()
        return removed

    def copy_within(self, target: int, start: int = 0, end: int | None = None) -> ReactiveList:
        """Copy the items in [start, end) over the positions starting at target."""
        size = len(self._raw)
        chunk = self._raw[slice(start, end)]
        target = target + size if target < 0 else target
        for offset, item in enumerate(chunk[: max(0, size - target)]):
            self._raw[target + offset] = item
        self._changed()
        return self

    def __repr__(self) -> str:
        return f"ReactiveList({self._raw!r})"


# ─── Module-level helpers ────────────────────────────────────────────────────


def notify(observable: Observable, key: Hashable | None = None) -> None:
    """Force notification of one key, or of every tracked key."""
    if not is_reactive(observable):
        return
    if key is None:
        observable._runtime.trigger_all(observable._id)
    else:
        observable._trigger(key)


def release(observable: Observable) -> None:
    """Destroy an observable's cells. Reactions stop depending on it."""
    observable._runtime.release(observable._id)


def untrack(fn: Callable[[], Any], *, runtime: ReactiveRuntime | None = None) -> Any:
    """Run fn without recording any dependency."""
    runtime = runtime if runtime is not None else get_runtime()
    return runtime.untrack(fn)


def get_path(state: Any, path: str) -> Any:
    """Read a dotted key path; a missing segment yields None."""
    current = state
    for key in path.split("."):
        if current is None:
            return None
        try:
            current = current[key]
        except (KeyError, IndexError, TypeError):
            return None
    return current


def set_path(state: Any, path: str, value: Any) -> None:
    """Write a dotted key path, creating intermediate records as needed."""
    keys = path.split(".")
    current = state
    for key in keys[:-1]:
        child = current[key] if key in current else None
        if not isinstance(child, (dict, Reactive)):
            current[key] = {}
            child = current[key]
        current = child
    current[keys[-1]] = value


def _runtime_of(state: Any) -> ReactiveRuntime:
    return state._runtime if is_reactive(state) else get_runtime()


def update_state(state: Any, updates: Mapping[str, Any]) -> Any:
    """Assign every entry of updates in one batch. Dotted keys are paths."""
    with _runtime_of(state).batching():
        for key, value in updates.items():
            if isinstance(key, str) and "." in key:
                set_path(state, key, value)
            else:
                state[key] = value
    return state


def set_state(state: Any, updates: Mapping[str, Any]) -> Any:
    """Like update_state(), but a callable value receives the current value."""
    with _runtime_of(state).batching():
        for key, value in updates.items():
            dotted = isinstance(key, str) and "." in key
            if callable(value):
                current = get_path(state, key) if dotted else (state[key] if key in state else None)
                value = value(current)
            if dotted:
                set_path(state, key, value)
            else:
                state[key] = value
    return state
