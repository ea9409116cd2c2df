"""Store — a reactive record with getters, actions and owned reactions.

getters become computed properties, actions become batched callables that
receive the store first. Effects, watchers and bindings created through
the store are owned by it and torn down by dispose().

component() adds lifecycle hooks on top; reactive() is a fluent builder.

Keys named like a Store method (update, effect, watch, bind, dispose, ...)
are reachable with item access only: store["update"].
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Hashable, Mapping

from statebind.arrays import patch_sequences
from statebind.bindings import BindingGroup, TargetResolver, bind
from statebind.computed import computed
from statebind.observable import Reactive, update_state
from statebind.reaction import Reaction, effect
from statebind.watch import Watcher, watch


class Store(Reactive):
    """Usage:
        counter = store(
            {"count": 0},
            getters={"double": lambda s: s.count * 2},
            actions={"increment": lambda s, by=1: setattr(s, "count", s.count + by)},
        )
        counter.effect(lambda s: print(s.double))
        counter.increment(5)   # prints 10
        counter.dispose()
    """

    def __init__(
        self,
        initial: Mapping[Hashable, Any] | None = None,
        *,
        getters: Mapping[Hashable, Callable[[Any], Any]] | None = None,
        actions: Mapping[str, Callable[..., Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(dict(initial or {}), **kwargs)
        self._actions: dict[str, Callable[..., Any]] = {}
        self._disposers: list[Callable[[], None]] = list(patch_sequences(self))
        if getters:
            computed(self, getters)
        for name, fn in (actions or {}).items():
            self.add_action(name, fn)

    def __getattr__(self, name: str) -> Any:
        if not name.startswith("_") and name in self._actions:
            return self._actions[name]
        return super().__getattr__(name)

    # --- Actions ---

    def add_action(self, name: str, fn: Callable[..., Any]) -> Callable[..., Any]:
        """Register fn(store, *args) as store.<name>(*args), run in a batch."""

        @functools.wraps(fn)
        def bound(*args: Any, **kwargs: Any) -> Any:
            with self._runtime.batching():
                return fn(self, *args, **kwargs)

        self._actions[name] = bound
        return bound

    def get(self, key: Hashable, default: Any = None) -> Any:
        return self[key] if key in self else default

    def set(self, key: Hashable, value: Any) -> None:
        self[key] = value

    def update(self, values: Mapping[str, Any]) -> Store:
        """Assign every entry in one batch. Dotted keys are paths."""
        update_state(self, values)
        return self

    # --- Owned reactions ---

    def own(self, disposer: Callable[[], None]) -> Callable[[], None]:
        """Dispose `disposer` together with the store."""
        self._disposers.append(disposer)
        return disposer

    def effect(self, fn: Callable[[Store], object]) -> Reaction:
        return self.own(effect(lambda: fn(self), runtime=self._runtime))

    def watch(self, key_or_fn: Hashable | Callable[[Any], Any], callback: Callable[[Any, Any], None]) -> Watcher:
        return self.own(watch(self, key_or_fn, callback))

    def bind(self, definitions: Mapping[str, Any], *, resolver: TargetResolver | None = None) -> BindingGroup:
        return self.own(bind(self, definitions, resolver=resolver))

    def dispose(self) -> None:
        """Stop every effect, watcher and binding owned by the store."""
        disposers, self._disposers = self._disposers, []
        for disposer in disposers:
            disposer()

    destroy = dispose


def store(
    initial: Mapping[Hashable, Any] | None = None,
    getters: Mapping[Hashable, Callable[[Any], Any]] | None = None,
    actions: Mapping[str, Callable[..., Any]] | None = None,
) -> Store:
    return Store(initial, getters=getters, actions=actions)


class Component(Store):
    """A store assembled from one config mapping, with mount/unmount hooks.

    Config keys: state, computed, watch, effects, bindings, resolver,
    actions, mounted, unmounted. Every function receives the component.
    """

    def __init__(self, config: Mapping[str, Any], **kwargs: Any) -> None:
        super().__init__(config.get("state"), getters=config.get("computed"), actions=config.get("actions"), **kwargs)
        self._unmounted = config.get("unmounted")
        for key, callback in (config.get("watch") or {}).items():
            self.watch(key, callback)
        effects = config.get("effects") or ()
        for fn in effects.values() if isinstance(effects, Mapping) else effects:
            self.effect(fn)
        if config.get("bindings"):
            self.bind(config["bindings"], resolver=config.get("resolver"))
        mounted = config.get("mounted")
        if mounted is not None:
            mounted(self)

    def destroy(self) -> None:
        self.dispose()
        if self._unmounted is not None:
            self._unmounted(self)


def component(config: Mapping[str, Any]) -> Component:
    """Usage:
        c = component({
            "state": {"count": 0},
            "computed": {"label": lambda s: f"Count: {s.count}"},
            "bindings": {"#label": "label"},
            "resolver": registry,
        })
        c.count = 3     # #label shows "Count: 3"
        c.destroy()
    """
    return Component(config)


class Builder:
    """Fluent construction of a Store; build() returns it."""

    def __init__(self, initial: Mapping[Hashable, Any] | None = None) -> None:
        self.state = Store(initial)

    def computed(self, definitions: Mapping[Hashable, Callable[[Any], Any]]) -> Builder:
        computed(self.state, definitions)
        return self

    def watch(self, definitions: Mapping[Hashable, Callable[[Any, Any], None]]) -> Builder:
        for key, callback in definitions.items():
            self.state.watch(key, callback)
        return self

    def effect(self, fn: Callable[[Store], object]) -> Builder:
        self.state.effect(fn)
        return self

    def bind(self, definitions: Mapping[str, Any], *, resolver: TargetResolver | None = None) -> Builder:
        self.state.bind(definitions, resolver=resolver)
        return self

    def action(self, name: str, fn: Callable[..., Any]) -> Builder:
        self.state.add_action(name, fn)
        return self

    def actions(self, definitions: Mapping[str, Callable[..., Any]]) -> Builder:
        for name, fn in definitions.items():
            self.action(name, fn)
        return self

    def build(self) -> Store:
        return self.state

    def destroy(self) -> None:
        self.state.dispose()


def reactive(initial: Mapping[Hashable, Any] | None = None) -> Builder:
    return Builder(initial)
