"""Refs — single-value reactive cells."""

from __future__ import annotations

from typing import Any, Mapping

from statebind.observable import Reactive


class Ref(Reactive):
    """A record with exactly one key, `value`.

    Usage:
        count = ref(0)
        effect(lambda: print(count.value))
        count.value += 1
    """

    def __init__(self, value: Any = None, **kwargs: Any) -> None:
        super().__init__({"value": value}, **kwargs)

    def __str__(self) -> str:
        return str(self.value)

    def __repr__(self) -> str:
        return f"Ref({self._raw['value']!r})"


def ref(value: Any = None) -> Ref:
    return Ref(value)


def refs(values: Mapping[str, Any]) -> dict[str, Ref]:
    """One Ref per entry."""
    return {name: Ref(value) for name, value in values.items()}
