"""Bindings — reactions that write produced values into external targets.

bindings({selector: producer | {property: producer}}) resolves each
selector to zero or more targets through a TargetResolver, then creates one
effect per (target, property) pair. The effect evaluates the producer and
applies the result with apply_value(), which walks a fixed, ranked list of
dispatch rules over the BindingTarget capabilities:

    None                         -> empty string
    scalar, no property / text   -> text
    scalar, known property       -> property
    scalar, unknown property     -> attribute
    sequence, class-like         -> class list
    sequence, otherwise          -> ", "-joined text, then the scalar rules
    mapping, style-like          -> style map
    mapping, data-like           -> data map
    mapping, no property         -> one level of style/data maps and known properties
    anything, known property     -> property

Producer and application failures are caught and logged per binding; one
bad binding never stops its siblings.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping, NamedTuple, Protocol, Sequence, runtime_checkable

from statebind._runtime import ReactiveRuntime, get_runtime
from statebind.arrays import state as make_state
from statebind.observable import Reactive, ReactiveList, get_path, is_reactive, set_path
from statebind.reaction import Reaction, effect

logger = logging.getLogger("statebind.bindings")

TEXT = "text"
STYLE_PROPERTIES = frozenset({"style"})
DATA_PROPERTIES = frozenset({"data", "dataset"})
CLASS_PROPERTIES = frozenset({"class_list", "classes", "class_name"})

_SCALARS = (str, int, float, bool)


class BindingError(TypeError):
    """No dispatch rule can apply a value to a target."""


@runtime_checkable
class BindingTarget(Protocol):
    """What a binding needs from an external target."""

    def has_property(self, name: str) -> bool: ...

    def set_property(self, name: str, value: Any) -> None: ...

    def set_attribute(self, name: str, value: str) -> None: ...

    def set_style_map(self, styles: Mapping[str, Any]) -> None: ...

    def set_data_map(self, data: Mapping[str, str]) -> None: ...

    def set_class_list(self, classes: Sequence[str]) -> None: ...


class TargetResolver(Protocol):
    """Selector lookup: zero or more stable target handles, in order."""

    def resolve(self, selector: str) -> Sequence[BindingTarget]: ...


# ─── Default resolver ────────────────────────────────────────────────────────
_resolver: TargetResolver | None = None


def set_resolver(resolver: TargetResolver | None) -> None:
    """Set the resolver used when bindings()/bind()/update_all() get none."""
    global _resolver
    _resolver = resolver


def get_resolver() -> TargetResolver | None:
    return _resolver


def _require_resolver(resolver: TargetResolver | None) -> TargetResolver:
    resolver = resolver if resolver is not None else _resolver
    if resolver is None:
        raise RuntimeError("no target resolver: pass resolver= or call set_resolver()")
    return resolver


# ─── Dispatch rules ──────────────────────────────────────────────────────────


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_scalar(value: Any) -> bool:
    return isinstance(value, _SCALARS)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, ReactiveList))


def _is_mapping(value: Any) -> bool:
    return isinstance(value, (Mapping, Reactive))


def _items(value: Any) -> list[tuple[Any, Any]]:
    if isinstance(value, Reactive):
        return [(k, value[k]) for k in Reactive.__iter__(value)]
    return list(value.items())


def _apply_empty(target: BindingTarget, prop: str | None, value: Any) -> None:
    target.set_property(prop or TEXT, "")


def _apply_text(target: BindingTarget, prop: str | None, value: Any) -> None:
    target.set_property(TEXT, _text(value))


def _apply_property(target: BindingTarget, prop: str | None, value: Any) -> None:
    target.set_property(prop, value)


def _apply_attribute(target: BindingTarget, prop: str | None, value: Any) -> None:
    target.set_attribute(prop, _text(value))


def _apply_class_list(target: BindingTarget, prop: str | None, value: Any) -> None:
    target.set_class_list([str(name) for name in value if name])


def _apply_joined(target: BindingTarget, prop: str | None, value: Any) -> None:
    apply_value(target, prop, ", ".join(_text(item) for item in value))


def _apply_style(target: BindingTarget, prop: str | None, value: Any) -> None:
    target.set_style_map(dict(_items(value)))


def _apply_data(target: BindingTarget, prop: str | None, value: Any) -> None:
    target.set_data_map({k: _text(v) for k, v in _items(value)})


def _apply_spread(target: BindingTarget, prop: str | None, value: Any) -> None:
    for key, item in _items(value):
        if (key in STYLE_PROPERTIES or key in DATA_PROPERTIES) and _is_mapping(item):
            apply_value(target, key, item)
        elif target.has_property(key):
            target.set_property(key, item)


class _Rule(NamedTuple):
    name: str
    matches: Callable[[BindingTarget, str | None, Any], bool]
    apply: Callable[[BindingTarget, str | None, Any], None]


RULES: tuple[_Rule, ...] = (
    _Rule("empty", lambda t, p, v: v is None, _apply_empty),
    _Rule("text", lambda t, p, v: _is_scalar(v) and (p is None or p == TEXT), _apply_text),
    _Rule("property", lambda t, p, v: _is_scalar(v) and t.has_property(p), _apply_property),
    _Rule("attribute", lambda t, p, v: _is_scalar(v), _apply_attribute),
    _Rule("class_list", lambda t, p, v: _is_sequence(v) and p in CLASS_PROPERTIES, _apply_class_list),
    _Rule("joined_text", lambda t, p, v: _is_sequence(v), _apply_joined),
    _Rule("style", lambda t, p, v: _is_mapping(v) and p in STYLE_PROPERTIES, _apply_style),
    _Rule("data", lambda t, p, v: _is_mapping(v) and p in DATA_PROPERTIES, _apply_data),
    _Rule("spread", lambda t, p, v: _is_mapping(v) and p is None, _apply_spread),
    _Rule("object_property", lambda t, p, v: p is not None and t.has_property(p), _apply_property),
)


def apply_value(target: BindingTarget, prop: str | None, value: Any) -> str:
    """Apply value to target[prop] (or the whole target) via the first matching rule.

    Returns the name of the rule used. Raises BindingError when none fits.
    """
    for rule in RULES:
        if rule.matches(target, prop, value):
            rule.apply(target, prop, value)
            return rule.name
    raise BindingError(f"cannot apply {type(value).__name__} to {prop or TEXT!r} of {target!r}")


# ─── Binding records ─────────────────────────────────────────────────────────

Applier = Callable[[BindingTarget, "str | None", Any], Any]


@dataclass(eq=False)
class Binding:
    """One (target, property) pair kept in sync with a producer."""

    target: BindingTarget
    prop: str | None
    producer: Callable[[], Any]
    selector: str = ""
    reaction: Reaction | None = field(default=None, repr=False)

    def update(self, applier: Applier = apply_value) -> None:
        """Evaluate the producer and apply the result, logging any failure."""
        label = f"{self.selector or self.target!r}.{self.prop or TEXT}"
        try:
            value = self.producer()
        except Exception:
            logger.exception("Binding %s: producer failed", label)
            return
        try:
            applier(self.target, self.prop, value)
        except Exception:
            logger.exception("Binding %s: cannot apply %r", label, value)

    def dispose(self) -> None:
        if self.reaction is not None:
            self.reaction.dispose()


class BindingGroup:
    """The bindings created by one bindings() call. Call it to tear them down."""

    def __init__(self) -> None:
        self._bindings: list[Binding] = []

    def add(self, binding: Binding) -> Binding:
        self._bindings.append(binding)
        return binding

    def extend(self, other: BindingGroup) -> None:
        self._bindings.extend(other)

    def dispose(self) -> None:
        for binding in self._bindings:
            binding.dispose()
        self._bindings.clear()

    __call__ = dispose

    def __iter__(self) -> Iterator[Binding]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return f"BindingGroup({len(self._bindings)} bindings)"


ReactionFactory = Callable[[Callable[[], None]], Reaction]


def bindings(
    definitions: Mapping[str, Callable[[], Any] | Mapping[str, Callable[[], Any]]],
    *,
    resolver: TargetResolver | None = None,
    applier: Applier = apply_value,
    runtime: ReactiveRuntime | None = None,
    reaction_factory: ReactionFactory | None = None,
) -> BindingGroup:
    """Bind producers to the targets each selector resolves to.

    reaction_factory(fn) creates and starts the reaction of one binding;
    the default is effect(). Integrations pass their own to guard runs.

    Usage:
        group = bindings({
            "#count": lambda: state.count,
            ".badge": {"classes": lambda: ["badge", "hot" if state.count > 9 else ""]},
        }, resolver=registry)
        ...
        group()  # tear down
    """
    resolver = _require_resolver(resolver)
    if reaction_factory is None:
        reaction_factory = functools.partial(effect, runtime=runtime)
    group = BindingGroup()

    def start(target: BindingTarget, prop: str | None, producer: Callable[[], Any], selector: str) -> None:
        binding = group.add(Binding(target, prop, producer, selector))
        binding.reaction = reaction_factory(functools.partial(binding.update, applier))

    for selector, definition in definitions.items():
        targets = list(resolver.resolve(selector))
        if not targets:
            logger.debug("Selector %r matched no targets", selector)
        for target in targets:
            if callable(definition):
                start(target, None, definition, selector)
            elif isinstance(definition, Mapping):
                for prop, producer in definition.items():
                    if callable(producer):
                        start(target, prop, producer, selector)
    return group


def _state_producer(state: Any, source: Any) -> Callable[[], Any] | None:
    if isinstance(source, str):
        return lambda: get_path(state, source)
    if callable(source):
        return lambda: source(state)
    return None


def bind(
    state: Any,
    definitions: Mapping[str, Any],
    *,
    resolver: TargetResolver | None = None,
    applier: Applier = apply_value,
) -> BindingGroup:
    """bindings() scoped to a state.

    A string is a (dotted) key path into the state; a callable receives the
    state; a mapping binds several properties.

    Usage:
        bind(state, {"#name": "user.name", "#total": {"text": lambda s: s.total}})
    """
    normalized: dict[str, Any] = {}
    for selector, definition in definitions.items():
        if isinstance(definition, Mapping):
            props = {}
            for prop, source in definition.items():
                producer = _state_producer(state, source)
                if producer is not None:
                    props[prop] = producer
            normalized[selector] = props
        else:
            producer = _state_producer(state, definition)
            if producer is not None:
                normalized[selector] = producer
    runtime = state._runtime if is_reactive(state) else get_runtime()
    return bindings(normalized, resolver=resolver, applier=applier, runtime=runtime)


def is_selector(key: Any) -> bool:
    return isinstance(key, str) and (key.startswith(("#", ".")) or "[" in key or ">" in key)


def update_all(state: Any, updates: Mapping[str, Any], *, resolver: TargetResolver | None = None) -> Any:
    """Apply state writes and target updates in one batch.

    Keys that look like selectors update the resolved targets directly,
    without creating bindings; every other key is a (dotted) state path.
    """
    runtime = state._runtime if is_reactive(state) else get_runtime()
    with runtime.batching():
        for key, value in updates.items():
            if is_selector(key):
                for target in _require_resolver(resolver).resolve(key):
                    if isinstance(value, Mapping):
                        for prop, item in value.items():
                            Binding(target, prop, lambda item=item: item, key).update()
                    else:
                        Binding(target, None, lambda: value, key).update()
            elif isinstance(key, str) and "." in key:
                set_path(state, key, value)
            else:
                state[key] = value
    return state


def create_state(
    initial: dict,
    definitions: Mapping[str, Any] | None = None,
    *,
    resolver: TargetResolver | None = None,
) -> Reactive:
    """state() plus bind() in one call."""
    s = make_state(initial)
    if definitions:
        bind(s, definitions, resolver=resolver)
    return s
