"""Sequence-mutation patch — list mutators that notify the owning key.

A ReactiveList's own mutators notify readers of the list. Readers of the
*owning* slot (`state.items`) are not notified, because the slot still holds
the same list. patch_sequence() replaces the mutators of the list instance
held in a slot with wrappers that run the native operation, then write a
shallow copy of the result back into the slot — the ordinary write path,
so everything that depends on `state.items` re-runs. The native return value
is passed through unchanged. Item assignment and deletion (`xs[i] = v`,
`xs[a:b] = vs`, `del xs[i]`) on a patched list write back the same way.

Writing the copy replaces the list instance, and the new instance is not
patched. A watcher on the owning key re-applies the patch whenever the slot
is given a new list.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Hashable

from statebind.observable import Reactive, ReactiveList, to_raw, wrap
from statebind.watch import Watcher, watch

SEQUENCE_MUTATIONS = (
    "append",
    "extend",
    "insert",
    "pop",
    "remove",
    "clear",
    "sort",
    "reverse",
    "fill",
    "copy_within",
    "splice",
)


def _patched(owner: Reactive, seq: ReactiveList, original: Callable[..., Any]) -> Callable[..., Any]:
    @functools.wraps(original)
    def wrapper(*args, **kwargs):
        with owner._runtime.batching():
            result = original(*args, **kwargs)
            seq._write_back()
        return result

    return wrapper


def _patch_slot(owner: Reactive, key: Hashable) -> bool:
    if key not in owner._raw:
        return False
    seq = owner._runtime.untrack(lambda: owner[key])
    if not isinstance(seq, ReactiveList):
        return False
    if seq._patched:
        return True
    seq._patched = True
    seq._owner = (owner, key)
    for name in SEQUENCE_MUTATIONS:
        setattr(seq, name, _patched(owner, seq, getattr(seq, name)))
    return True


def patch_sequence(owner: Reactive, key: Hashable) -> Watcher | None:
    """Patch the list in owner[key] and keep patching its replacements.

    Returns the re-patching Watcher, or None when the slot does not hold a
    list (patching a non-sequence is a no-op).

    Usage:
        state = wrap({"xs": [1, 2]})
        patch_sequence(state, "xs")
        effect(lambda: print(len(state.xs)))  # 2
        state.xs.append(3)                      # 3: one re-run
    """
    if not isinstance(owner, Reactive) or not _patch_slot(owner, key):
        return None
    return watch(
        owner,
        lambda s: s[key] if key in s._raw else None,
        lambda new, old: _patch_slot(owner, key),
    )


def patch_sequences(state: Reactive) -> list[Watcher]:
    """Patch every list slot of a record, recursing into nested plain records."""
    watchers = []
    for key, value in list(state._raw.items()):
        raw = to_raw(value)
        if isinstance(raw, list):
            watcher = patch_sequence(state, key)
            if watcher is not None:
                watchers.append(watcher)
        elif isinstance(raw, dict):
            child = state._runtime.untrack(functools.partial(state.__getitem__, key))
            watchers.extend(patch_sequences(child))
    return watchers


def state(value: Any) -> Any:
    """wrap() with the sequence-mutation patch applied to every list slot."""
    wrapped = wrap(value)
    if isinstance(wrapped, Reactive):
        patch_sequences(wrapped)
    return wrapped
