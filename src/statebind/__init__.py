"""statebind: reactive state with dependency tracking and target bindings."""

from importlib.metadata import version as _version

__version__ = _version("statebind")

from statebind._runtime import ReactiveRuntime, get_pending_count, get_runtime, set_runtime, use_runtime
from statebind.observable import (
    Reactive,
    ReactiveList,
    get_path,
    is_reactive,
    notify,
    release,
    set_path,
    set_state,
    snapshot,
    to_raw,
    untrack,
    update_state,
    wrap,
)
from statebind.reaction import Reaction, effect, effects
from statebind.computed import ComputedEntry, computed, define_computed
from statebind.watch import Watcher, watch, watch_many
from statebind.action import action, batch, pause, resume, transaction
from statebind.arrays import patch_sequence, patch_sequences, state
from statebind.bindings import (
    Binding,
    BindingError,
    BindingGroup,
    BindingTarget,
    TargetResolver,
    apply_value,
    bind,
    bindings,
    create_state,
    set_resolver,
    update_all,
)
from statebind.elements import Element, ElementRegistry
from statebind.ref import Ref, ref, refs
from statebind.collection import Collection, collection, collection_with_computed, filtered
from statebind.forms import Form, form
from statebind import validators
from statebind.async_state import AsyncState, async_state
from statebind.store import Builder, Component, Store, component, reactive, store
# textual NOT auto-imported: opt-in only

__all__ = [
    "ReactiveRuntime",
    "get_runtime",
    "set_runtime",
    "use_runtime",
    "get_pending_count",
    "Reactive",
    "ReactiveList",
    "wrap",
    "state",
    "is_reactive",
    "to_raw",
    "snapshot",
    "notify",
    "release",
    "untrack",
    "get_path",
    "set_path",
    "update_state",
    "set_state",
    "Reaction",
    "effect",
    "effects",
    "ComputedEntry",
    "computed",
    "define_computed",
    "Watcher",
    "watch",
    "watch_many",
    "action",
    "batch",
    "transaction",
    "pause",
    "resume",
    "patch_sequence",
    "patch_sequences",
    "Binding",
    "BindingError",
    "BindingGroup",
    "BindingTarget",
    "TargetResolver",
    "apply_value",
    "bind",
    "bindings",
    "create_state",
    "set_resolver",
    "update_all",
    "Element",
    "ElementRegistry",
    "Ref",
    "ref",
    "refs",
    "Collection",
    "collection",
    "collection_with_computed",
    "filtered",
    "Form",
    "form",
    "validators",
    "AsyncState",
    "async_state",
    "Store",
    "store",
    "Component",
    "component",
    "Builder",
    "reactive",
]
