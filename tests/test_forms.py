"""Tests for forms and validators."""

import asyncio
import logging

from statebind import effect, form, validators as v


def _signup():
    return form(
        {"email": "", "password": "", "confirm": ""},
        validators={
            "email": [v.required(), v.email()],
            "password": v.min_length(8),
            "confirm": v.match("password", "Passwords differ"),
        },
    )


class TestFormState:
    def test_initial(self):
        f = _signup()
        assert f.is_valid
        assert not f.is_dirty
        assert not f.has_errors
        assert f.submit_count == 0
        assert f.get_value("email") == ""

    def test_set_value_validates(self):
        f = _signup()
        f.set_value("email", "nope")
        assert f.get_error("email") == "Invalid email address"
        assert not f.is_valid
        assert f.has_errors
        assert f.error_fields == ["email"]
        assert f.touched_fields == ["email"]
        assert f.should_show_error("email")
        f.set_value("email", "a@b.co")
        assert f.get_error("email") is None
        assert f.is_valid

    def test_set_values_batched(self):
        f = _signup()
        log = []
        effect(lambda: log.append((f.values.email, f.values.password)))
        f.set_values({"email": "a@b.co", "password": "longenough"})
        assert log == [("", ""), ("a@b.co", "longenough")]

    def test_is_valid_is_reactive(self):
        f = _signup()
        log = []
        effect(lambda: log.append(f.is_valid))
        f.set_value("password", "short")
        f.set_value("password", "long enough")
        assert log == [True, False, True]

    def test_errors(self):
        f = _signup()
        f.set_errors({"email": "taken", "password": None})
        assert f.has_error("email")
        assert not f.has_error("password")
        f.clear_error("email")
        assert not f.has_error("email")
        f.set_error("password", "weak")
        f.clear_errors()
        assert f.error_fields == []

    def test_touched(self):
        f = _signup()
        f.set_touched_fields(["email", "password"])
        assert f.is_touched("email")
        f.set_touched("email", False)
        assert not f.is_touched("email")
        f.touch_all()
        assert sorted(f.touched_fields) == ["confirm", "email", "password"]
        assert f.is_dirty

    def test_validate(self):
        f = _signup()
        assert not f.validate()
        assert f.get_error("email") == "This field is required"
        assert f.get_error("password") is None  # empty passes min_length
        f.set_values({"email": "a@b.co", "password": "longenough", "confirm": "other"})
        assert f.get_error("confirm") == "Passwords differ"
        f.set_value("confirm", "longenough")
        assert f.validate()

    def test_validate_field_without_validator(self):
        f = form({"x": 1})
        assert f.validate_field("x")

    def test_reset(self):
        f = _signup()
        f.set_value("email", "bad")
        f.reset()
        assert f.get_value("email") == ""
        assert f.is_valid
        assert not f.is_dirty
        f.reset({"email": "x@y.z"})
        assert f.get_value("email") == "x@y.z"

    def test_reset_field(self):
        f = _signup()
        f.set_value("email", "bad")
        f.reset_field("email")
        assert f.get_value("email") == ""
        assert not f.has_error("email")
        assert not f.is_touched("email")

    def test_to_dict(self):
        f = form({"a": 1})
        assert f.to_dict() == {
            "values": {"a": 1},
            "errors": {},
            "touched": {},
            "is_valid": True,
            "is_dirty": False,
            "is_submitting": False,
            "submit_count": 0,
        }


class TestSubmit:
    def test_success(self):
        calls = []

        async def save(values, f):
            calls.append((values, f.is_submitting))
            return "saved"

        f = form({"name": "ann"}, on_submit=save)
        result = asyncio.run(f.submit())
        assert result == {"success": True, "result": "saved"}
        assert calls == [({"name": "ann"}, True)]
        assert f.submit_count == 1
        assert not f.is_submitting

    def test_sync_handler(self):
        f = form({"name": "ann"})
        result = asyncio.run(f.submit(lambda values, form_: values["name"].upper()))
        assert result == {"success": True, "result": "ANN"}

    def test_invalid_skips_handler(self):
        calls = []
        f = _signup()
        result = asyncio.run(f.submit(lambda values, form_: calls.append(values)))
        assert result == {"success": False, "errors": {"email": "This field is required"}}
        assert calls == []
        assert f.is_touched("password")

    def test_handler_error(self, caplog):
        def fail(values, form_):
            raise RuntimeError("down")

        f = form({"a": 1})
        with caplog.at_level(logging.ERROR, logger="statebind.forms"):
            result = asyncio.run(f.submit(fail))
        assert result["success"] is False
        assert isinstance(result["error"], RuntimeError)
        assert not f.is_submitting
        assert f.submit_count == 0
        assert "submission failed" in caplog.text

    def test_no_handler(self, caplog):
        f = form({"a": 1})
        with caplog.at_level(logging.WARNING, logger="statebind.forms"):
            assert asyncio.run(f.submit()) is None
        assert "without a handler" in caplog.text


class TestValidators:
    def test_required(self):
        check = v.required()
        assert check("", {}) == "This field is required"
        assert check("   ", {}) == "This field is required"
        assert check(None, {}) == "This field is required"
        assert check("x", {}) is None

    def test_email(self):
        check = v.email()
        assert check("", {}) is None
        assert check("a@b.co", {}) is None
        assert check("a@b", {}) == "Invalid email address"

    def test_lengths(self):
        assert v.min_length(3)("ab", {}) == "Must be at least 3 characters"
        assert v.min_length(3)("abc", {}) is None
        assert v.max_length(2)("abc", {}) == "Must be no more than 2 characters"
        assert v.max_length(2, "too long")("abc", {}) == "too long"

    def test_pattern(self):
        check = v.pattern(r"^\d+$")
        assert check("123", {}) is None
        assert check("12a", {}) == "Invalid format"

    def test_numeric_bounds(self):
        assert v.min_value(5)("3", {}) == "Must be at least 5"
        assert v.min_value(5)(7, {}) is None
        assert v.max_value(5)(7, {}) == "Must be no more than 5"
        assert v.max_value(5)("abc", {}) == "Must be no more than 5"
        assert v.max_value(5)("", {}) is None

    def test_match(self):
        check = v.match("password")
        assert check("a", {"password": "a"}) is None
        assert check("a", {"password": "b"}) == "Must match password"

    def test_custom_and_combine(self):
        even = v.custom(lambda value, all_values: None if value % 2 == 0 else "odd")
        check = v.combine(v.required(), even)
        assert check(0, {}) == "This field is required"
        assert check(3, {}) == "odd"
        assert check(4, {}) is None
