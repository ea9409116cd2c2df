"""Tests for bindings and the value dispatch rules."""

import logging

import pytest

from statebind import (
    BindingError,
    ElementRegistry,
    apply_value,
    bind,
    bindings,
    create_state,
    set_resolver,
    state,
    update_all,
    wrap,
)


@pytest.fixture
def registry():
    reg = ElementRegistry()
    reg.create("span", id="x")
    reg.create("li", id="one", classes=["item"])
    reg.create("li", id="two", classes=["item"])
    return reg


class TestApplyValue:
    def test_scalar_to_text(self, registry):
        el = registry.get("x")
        assert apply_value(el, None, 5) == "text"
        assert el.text == "5"

    def test_bool_text(self, registry):
        el = registry.get("x")
        apply_value(el, "text", True)
        assert el.text == "true"

    def test_none_clears(self, registry):
        el = registry.get("x")
        apply_value(el, None, "a")
        apply_value(el, None, None)
        assert el.text == ""

    def test_known_property(self, registry):
        el = registry.get("x")
        assert apply_value(el, "disabled", True) == "property"
        assert el.properties["disabled"] is True

    def test_attribute_fallback(self, registry):
        el = registry.get("x")
        assert apply_value(el, "aria-label", "hi") == "attribute"
        assert el.attributes == {"aria-label": "hi"}
        assert "aria-label" not in el.properties

    def test_class_list(self, registry):
        el = registry.get("x")
        assert apply_value(el, "classes", ["a", "", "b"]) == "class_list"
        assert el.classes == ["a", "b"]

    def test_joined_text(self, registry):
        el = registry.get("x")
        assert apply_value(el, "text", [1, 2]) == "joined_text"
        assert el.text == "1, 2"

    def test_style_map(self, registry):
        el = registry.get("x")
        assert apply_value(el, "style", {"color": "red"}) == "style"
        assert el.style == {"color": "red"}

    def test_data_map(self, registry):
        el = registry.get("x")
        assert apply_value(el, "data", {"id": 5}) == "data"
        assert el.data == {"id": "5"}

    def test_reactive_mapping(self, registry):
        el = registry.get("x")
        apply_value(el, "style", wrap({"width": 3}))
        assert el.style == {"width": 3}

    def test_spread(self, registry):
        el = registry.get("x")
        assert apply_value(el, None, {"style": {"color": "blue"}, "value": "v", "bogus": 1}) == "spread"
        assert el.style == {"color": "blue"}
        assert el.properties["value"] == "v"
        assert "bogus" not in el.properties

    def test_no_rule_raises(self, registry):
        el = registry.get("x")
        with pytest.raises(BindingError):
            apply_value(el, "nothing", {"a": 1})
        assert issubclass(BindingError, TypeError)


class TestBindings:
    def test_text_binding_updates_synchronously(self, registry):
        s = wrap({"count": 0})
        bindings({"#x": {"text": lambda: s.count}}, resolver=registry)
        s.count = 7
        assert registry.get("x").text == "7"

    def test_whole_value_binding(self, registry):
        s = wrap({"count": 1})
        bindings({"#x": lambda: s.count}, resolver=registry)
        assert registry.get("x").text == "1"

    def test_one_binding_per_target(self, registry):
        s = wrap({"label": "a"})
        group = bindings({".item": {"text": lambda: s.label}}, resolver=registry)
        assert len(group) == 2
        s.label = "b"
        assert [el.text for el in registry.resolve(".item")] == ["b", "b"]

    def test_teardown(self, registry):
        s = wrap({"count": 0})
        group = bindings({"#x": lambda: s.count}, resolver=registry)
        group()
        s.count = 9
        assert registry.get("x").text == "0"
        assert len(group) == 0

    def test_producer_error_is_logged(self, registry, caplog):
        s = wrap({"count": 0})

        def bad():
            raise ValueError("broken producer")

        with caplog.at_level(logging.ERROR, logger="statebind.bindings"):
            bindings({"#one": bad, "#two": lambda: s.count}, resolver=registry)
        assert "broken producer" in caplog.text
        assert registry.get("two").text == "0"

    def test_apply_error_is_logged(self, registry, caplog):
        with caplog.at_level(logging.ERROR, logger="statebind.bindings"):
            bindings({"#x": {"nothing": lambda: {"a": 1}}}, resolver=registry)
        assert "cannot apply" in caplog.text

    def test_unmatched_selector(self, registry, caplog):
        with caplog.at_level(logging.DEBUG, logger="statebind.bindings"):
            group = bindings({"#missing": lambda: 1}, resolver=registry)
        assert len(group) == 0
        assert "matched no targets" in caplog.text

    def test_requires_resolver(self):
        with pytest.raises(RuntimeError):
            bindings({"#x": lambda: 1})

    def test_default_resolver(self, registry):
        set_resolver(registry)
        bindings({"#x": lambda: "hi"})
        assert registry.get("x").text == "hi"

    def test_class_list_follows_list_mutations(self, registry):
        s = state({"tags": ["a"]})
        bindings({"#x": {"classes": lambda: s.tags}}, resolver=registry)
        s.tags.append("b")
        assert registry.get("x").classes == ["a", "b"]


class TestBind:
    def test_path_and_callable(self, registry):
        s = wrap({"user": {"name": "ann"}, "n": 2})
        bind(s, {"#one": "user.name", "#two": {"text": lambda st: st.n * 2}}, resolver=registry)
        assert registry.get("one").text == "ann"
        assert registry.get("two").text == "4"
        s.user.name = "bob"
        assert registry.get("one").text == "bob"

    def test_create_state(self, registry):
        s = create_state({"count": 3}, {"#x": "count"}, resolver=registry)
        assert registry.get("x").text == "3"
        s.count = 4
        assert registry.get("x").text == "4"


class TestUpdateAll:
    def test_mixed_updates(self, registry):
        s = wrap({"count": 0, "user": {}})
        update_all(s, {"count": 3, "user.name": "z", "#x": "hello", ".item": {"disabled": True}}, resolver=registry)
        assert s.count == 3
        assert s.user.name == "z"
        assert registry.get("x").text == "hello"
        assert all(el.properties["disabled"] for el in registry.resolve(".item"))

    def test_attribute_selector_keys(self, registry):
        registry.get("one").set_attribute("role", "tab")
        update_all(wrap({}), {"[role=tab]": "picked"}, resolver=registry)
        assert registry.get("one").text == "picked"
        assert registry.get("two").text == ""

    def test_single_batch(self, registry):
        s = wrap({"a": 0, "b": 0})
        log = []
        bindings({"#x": lambda: log.append((s.a, s.b))}, resolver=registry)
        update_all(s, {"a": 1, "b": 2}, resolver=registry)
        assert log == [(0, 0), (1, 2)]
