"""Field validators for forms.

Each factory returns a function `(value, all_values) -> message | None`.
Apart from required() and match(), an empty value passes; combine them
with required() to make a field mandatory.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Mapping

Validator = Callable[[Any, Mapping[str, Any]], "str | None"]

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _empty(value: Any) -> bool:
    return value is None or value == ""


def required(message: str = "This field is required") -> Validator:
    def check(value: Any, all_values: Mapping[str, Any] | None = None) -> str | None:
        if not value or (isinstance(value, str) and not value.strip()):
            return message
        return None

    return check


def email(message: str = "Invalid email address") -> Validator:
    def check(value: Any, all_values: Mapping[str, Any] | None = None) -> str | None:
        if _empty(value):
            return None
        return None if _EMAIL.match(str(value)) else message

    return check


def min_length(minimum: int, message: str | None = None) -> Validator:
    message = message or f"Must be at least {minimum} characters"

    def check(value: Any, all_values: Mapping[str, Any] | None = None) -> str | None:
        if _empty(value):
            return None
        return None if len(value) >= minimum else message

    return check


def max_length(maximum: int, message: str | None = None) -> Validator:
    message = message or f"Must be no more than {maximum} characters"

    def check(value: Any, all_values: Mapping[str, Any] | None = None) -> str | None:
        if _empty(value):
            return None
        return None if len(value) <= maximum else message

    return check


def pattern(regex: str | re.Pattern[str], message: str = "Invalid format") -> Validator:
    compiled = re.compile(regex)

    def check(value: Any, all_values: Mapping[str, Any] | None = None) -> str | None:
        if _empty(value):
            return None
        return None if compiled.search(str(value)) else message

    return check


def min_value(minimum: float, message: str | None = None) -> Validator:
    message = message or f"Must be at least {minimum}"

    def check(value: Any, all_values: Mapping[str, Any] | None = None) -> str | None:
        if _empty(value):
            return None
        try:
            return None if float(value) >= minimum else message
        except (TypeError, ValueError):
            return message

    return check


def max_value(maximum: float, message: str | None = None) -> Validator:
    message = message or f"Must be no more than {maximum}"

    def check(value: Any, all_values: Mapping[str, Any] | None = None) -> str | None:
        if _empty(value):
            return None
        try:
            return None if float(value) <= maximum else message
        except (TypeError, ValueError):
            return message

    return check


def match(field: str, message: str | None = None) -> Validator:
    """The value must equal the value of another field."""
    message = message or f"Must match {field}"

    def check(value: Any, all_values: Mapping[str, Any] | None = None) -> str | None:
        other = all_values[field] if all_values is not None and field in all_values else None
        return None if value == other else message

    return check


def custom(fn: Validator) -> Validator:
    return fn


def combine(*validators: Validator) -> Validator:
    """First failing validator wins."""

    def check(value: Any, all_values: Mapping[str, Any] | None = None) -> str | None:
        for validator in validators:
            error = validator(value, all_values)
            if error:
                return error
        return None

    return check
