"""Textual integration for statebind. Needs the `textual` extra.

Widgets become binding targets (WidgetTarget) and the app's DOM query
becomes the selector resolver (AppResolver). The guarded effect(), watch()
and bindings() skip their runs while the app is not running or is paused,
and swallow NoMatches raised by widget queries inside them.

A guarded reaction that is skipped keeps the dependencies of its last run,
so the next write still reaches it. Reactions skipped during pause(app)
re-run once when the pause ends.
"""

from __future__ import annotations

import logging
import weakref
from contextlib import contextmanager
from typing import Any, Callable, Hashable, Iterator, Mapping, Sequence

from textual.css.query import NoMatches

from statebind.bindings import bindings as _bindings
from statebind.bindings import TEXT, BindingGroup
from statebind.observable import is_reactive
from statebind.reaction import Reaction
from statebind.watch import Watcher

logger = logging.getLogger("statebind.textual")

_FALSY_ATTRIBUTES = frozenset({"", "false", "0"})

# Module-owned pause state, keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()
# id(app) -> reactions skipped while paused, in skip order
_missed: dict[int, dict[Reaction, None]] = {}


@contextmanager
def pause(app) -> Iterator[None]:
    """Suspend guarded reactions during widget replacement."""
    key = id(app)
    if key in _paused_apps:
        yield
        return
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)
        missed = _missed.pop(key, {})
        for reaction in missed:
            if not reaction.disposed:
                reaction._runtime.execute(reaction)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


class _Guarded:
    """Run-time guard shared by the guarded reaction types."""

    __slots__ = ()

    def _run(self) -> None:
        app = self._app
        if not is_safe(app):
            if app.is_running:
                _missed.setdefault(id(app), {})[self] = None
            return
        try:
            super()._run()
        except NoMatches as exc:
            logger.debug("%r: no matching widget (%s)", self, exc)


class GuardedReaction(_Guarded, Reaction):
    __slots__ = ("_app",)

    def __init__(self, app, fn: Callable[[], object], **kwargs: Any) -> None:
        self._app = app
        super().__init__(fn, **kwargs)


class GuardedWatcher(_Guarded, Watcher):
    __slots__ = ("_app",)

    def __init__(self, app, getter: Callable[[], Any], callback: Callable[[Any, Any], None], **kwargs: Any) -> None:
        self._app = app
        super().__init__(getter, callback, **kwargs)


def effect(app, fn: Callable[[], object], *, runtime=None) -> GuardedReaction:
    """effect() that safely bridges to Textual widgets."""
    r = GuardedReaction(app, fn, runtime=runtime)
    r._run()
    return r


def watch(app, source: Any, key_or_fn: Hashable | Callable[[Any], Any], callback: Callable[[Any, Any], None]) -> GuardedWatcher:
    """watch() whose callback only runs while the widget tree is safe to query."""
    if callable(key_or_fn):
        fn = key_or_fn

        def getter() -> Any:
            return fn(source)
    else:
        key = key_or_fn

        def getter() -> Any:
            return source[key]

    runtime = source._runtime if is_reactive(source) else None
    w = GuardedWatcher(app, getter, callback, runtime=runtime)
    w._run()
    return w


# ─── Widgets as binding targets ──────────────────────────────────────────────


class WidgetTarget:
    """BindingTarget over a Textual widget.

    text           -> widget.update(str)
    properties     -> widget attributes (reactives included)
    attributes     -> CSS class toggles; "", "false" and "0" remove the class
    style map      -> widget.styles
    data map       -> kept on the target
    class list     -> widget.set_classes()
    """

    def __init__(self, widget) -> None:
        self.widget = widget
        self.data: dict[str, str] = {}

    def has_property(self, name: str) -> bool:
        if name == TEXT:
            return True
        return not name.startswith("_") and hasattr(self.widget, name)

    def set_property(self, name: str, value: Any) -> None:
        if name == TEXT and hasattr(self.widget, "update"):
            self.widget.update(str(value))
        else:
            setattr(self.widget, name, value)

    def set_attribute(self, name: str, value: str) -> None:
        self.widget.set_class(value not in _FALSY_ATTRIBUTES, name)

    def set_style_map(self, styles: Mapping[str, Any]) -> None:
        for name, value in styles.items():
            setattr(self.widget.styles, name, value)

    def set_data_map(self, data: Mapping[str, str]) -> None:
        self.data.update(data)

    def set_class_list(self, classes: Sequence[str]) -> None:
        self.widget.set_classes(list(classes))

    def __repr__(self) -> str:
        return f"WidgetTarget({self.widget!r})"


class AppResolver:
    """TargetResolver over app.query(). One WidgetTarget per widget."""

    def __init__(self, app) -> None:
        self.app = app
        self._targets: weakref.WeakKeyDictionary[Any, WidgetTarget] = weakref.WeakKeyDictionary()

    def resolve(self, selector: str) -> list[WidgetTarget]:
        targets = []
        for widget in self.app.query(selector):
            target = self._targets.get(widget)
            if target is None:
                target = self._targets[widget] = WidgetTarget(widget)
            targets.append(target)
        return targets


def bindings(app, definitions: Mapping[str, Any], *, resolver: AppResolver | None = None) -> BindingGroup:
    """bindings() against the app's widgets, with guarded reactions."""
    return _bindings(
        definitions,
        resolver=resolver if resolver is not None else AppResolver(app),
        reaction_factory=lambda fn: effect(app, fn),
    )
