"""Headless binding targets and selector lookup.

Element is an in-memory BindingTarget: a tag, an id, a class list, and
maps of properties, attributes, styles and data. ElementRegistry resolves
simple selectors against the elements added to it:

    "#id"           by id
    ".name"         by class
    "tag"           by tag
    "[attr]"        by attribute presence
    "[attr=value]"  by attribute value (quotes optional)
    "a, b"          union of several selectors, in registry order, no duplicates

The simple forms combine into compound selectors ("button.primary[role=tab]").
Elements are flat, so combinators such as ">" and descendant spaces match
nothing here; resolvers over a real tree (the Textual adapter) handle them.

Useful for tests, server-side rendering of state, and as the reference
implementation of the TargetResolver interface.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Iterator, Mapping, Sequence

from statebind.bindings import TEXT

_SIMPLE_SELECTOR = re.compile(
    r"""
    \#(?P<id>[\w-]+)
  | \.(?P<cls>[\w-]+)
  | \[\s*(?P<attr>[\w-]+)\s*(?:=\s*(?P<quote>["']?)(?P<value>[^\]"']*)(?P=quote)\s*)?\]
  | (?P<tag>[\w-]+|\*)
    """,
    re.VERBOSE,
)


class Element:
    """A plain-object binding target."""

    def __init__(
        self,
        tag: str = "div",
        *,
        id: str | None = None,
        classes: Iterable[str] = (),
        properties: Mapping[str, Any] | None = None,
    ) -> None:
        self.tag = tag
        self.id = id
        self.classes: list[str] = list(classes)
        self.attributes: dict[str, str] = {}
        self.style: dict[str, Any] = {}
        self.data: dict[str, str] = {}
        self.properties: dict[str, Any] = {TEXT: "", "value": "", "disabled": False, "hidden": False}
        if properties:
            self.properties.update(properties)

    @property
    def text(self) -> str:
        return self.properties[TEXT]

    # BindingTarget

    def has_property(self, name: str) -> bool:
        return name in self.properties

    def set_property(self, name: str, value: Any) -> None:
        self.properties[name] = value

    def set_attribute(self, name: str, value: str) -> None:
        self.attributes[name] = value

    def set_style_map(self, styles: Mapping[str, Any]) -> None:
        self.style.update(styles)

    def set_data_map(self, data: Mapping[str, str]) -> None:
        self.data.update(data)

    def set_class_list(self, classes: Sequence[str]) -> None:
        self.classes = list(classes)

    def matches(self, selector: str) -> bool:
        """Match one compound selector such as `div#main.card[role=tab]`."""
        selector = selector.strip()
        if not selector:
            return False
        position = 0
        while position < len(selector):
            match = _SIMPLE_SELECTOR.match(selector, position)
            if match is None or not self._matches_simple(match):
                return False
            position = match.end()
        return True

    def _matches_simple(self, match: re.Match) -> bool:
        if match["id"] is not None:
            return self.id == match["id"]
        if match["cls"] is not None:
            return match["cls"] in self.classes
        if match["attr"] is not None:
            if match["attr"] not in self.attributes:
                return False
            return match["value"] is None or self.attributes[match["attr"]] == match["value"]
        return match["tag"] == "*" or self.tag == match["tag"]

    def __repr__(self) -> str:
        ident = f"#{self.id}" if self.id else ""
        classes = "".join(f".{name}" for name in self.classes)
        return f"<{self.tag}{ident}{classes}>"


class ElementRegistry:
    """Ordered set of elements with selector lookup."""

    def __init__(self, elements: Iterable[Element] = ()) -> None:
        self._elements: list[Element] = []
        for element in elements:
            self.add(element)

    def add(self, element: Element) -> Element:
        if element not in self._elements:
            self._elements.append(element)
        return element

    def create(self, tag: str = "div", **kwargs: Any) -> Element:
        """Construct an Element and add it."""
        return self.add(Element(tag, **kwargs))

    def remove(self, element: Element) -> None:
        if element in self._elements:
            self._elements.remove(element)

    def resolve(self, selector: str) -> list[Element]:
        parts = [part for part in (p.strip() for p in selector.split(",")) if part]
        return [element for element in self._elements if any(element.matches(part) for part in parts)]

    def get(self, element_id: str) -> Element | None:
        found = self.resolve(f"#{element_id}")
        return found[0] if found else None

    def __iter__(self) -> Iterator[Element]:
        return iter(self._elements)

    def __len__(self) -> int:
        return len(self._elements)
