"""Reactive forms — values, errors and touched state with validation.

A Form is a Reactive record:

    values         field -> current value
    errors         field -> message, only for failing fields
    touched        field -> True, for fields the user has edited
    is_submitting  True while submit() awaits its handler
    submit_count   number of successful submissions

plus computed is_valid, is_dirty, has_errors, touched_fields and
error_fields, so effects and bindings can read any of them directly.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Mapping

from statebind.computed import computed
from statebind.observable import Reactive, snapshot
from statebind.validators import Validator, combine

logger = logging.getLogger("statebind.forms")

SubmitHandler = Callable[[dict, "Form"], "Any | Awaitable[Any]"]


class Form(Reactive):
    """Usage:
        f = form({"email": ""}, validators={"email": [required(), email()]})
        f.set_value("email", "a@b.co")
        f.is_valid  # True
        result = await f.submit(save)
    """

    def __init__(
        self,
        initial: Mapping[str, Any] | None = None,
        *,
        validators: Mapping[str, Validator | Iterable[Validator]] | None = None,
        on_submit: SubmitHandler | None = None,
        **kwargs: Any,
    ) -> None:
        initial = dict(initial or {})
        super().__init__(
            {
                "values": dict(initial),
                "errors": {},
                "touched": {},
                "is_submitting": False,
                "submit_count": 0,
            },
            **kwargs,
        )
        self._initial = initial
        self._validators: dict[str, Validator] = {}
        for name, validator in (validators or {}).items():
            self._validators[name] = validator if callable(validator) else combine(*validator)
        self._on_submit = on_submit
        computed(
            self,
            {
                "is_valid": lambda f: not any(f.errors[k] for k in f.errors),
                "is_dirty": lambda f: len(f.touched) > 0,
                "has_errors": lambda f: any(f.errors[k] for k in f.errors),
                "touched_fields": lambda f: list(f.touched),
                "error_fields": lambda f: [k for k in f.errors if f.errors[k]],
            },
        )

    # --- Values ---

    def set_value(self, field: str, value: Any) -> Form:
        with self._runtime.batching():
            self.values[field] = value
            self.touched[field] = True
            if field in self._validators:
                self.validate_field(field)
        return self

    def set_values(self, values: Mapping[str, Any]) -> Form:
        with self._runtime.batching():
            for field, value in values.items():
                self.set_value(field, value)
        return self

    def get_value(self, field: str) -> Any:
        values = self.values
        return values[field] if field in values else None

    # --- Errors ---

    def set_error(self, field: str, error: str | None) -> Form:
        if error:
            self.errors[field] = error
        else:
            self.clear_error(field)
        return self

    def set_errors(self, errors: Mapping[str, str | None]) -> Form:
        with self._runtime.batching():
            for field, error in errors.items():
                self.set_error(field, error)
        return self

    def clear_error(self, field: str) -> Form:
        errors = self.errors
        if field in errors:
            del errors[field]
        return self

    def clear_errors(self) -> Form:
        self.errors = {}
        return self

    def has_error(self, field: str) -> bool:
        return bool(self.get_error(field))

    def get_error(self, field: str) -> str | None:
        errors = self.errors
        return (errors[field] or None) if field in errors else None

    # --- Touched ---

    def set_touched(self, field: str, touched: bool = True) -> Form:
        if touched:
            self.touched[field] = True
        elif field in self.touched:
            del self.touched[field]
        return self

    def set_touched_fields(self, fields: Iterable[str]) -> Form:
        with self._runtime.batching():
            for field in fields:
                self.set_touched(field)
        return self

    def touch_all(self) -> Form:
        with self._runtime.batching():
            for field in list(self.values):
                self.touched[field] = True
        return self

    def is_touched(self, field: str) -> bool:
        touched = self.touched
        return bool(touched[field]) if field in touched else False

    def should_show_error(self, field: str) -> bool:
        return self.is_touched(field) and self.has_error(field)

    # --- Validation ---

    def validate_field(self, field: str) -> bool:
        """Run the field's validator, recording or clearing its error."""
        validator = self._validators.get(field)
        if validator is None:
            return True
        all_values = snapshot(self.values)
        error = validator(all_values.get(field), all_values)
        self.set_error(field, error)
        return not error

    def validate(self) -> bool:
        with self._runtime.batching():
            results = [self.validate_field(field) for field in self._validators]
        return all(results)

    # --- Lifecycle ---

    def reset(self, values: Mapping[str, Any] | None = None) -> Form:
        with self._runtime.batching():
            self.values = dict(self._initial if values is None else values)
            self.errors = {}
            self.touched = {}
            self.is_submitting = False
        return self

    def reset_field(self, field: str) -> Form:
        with self._runtime.batching():
            self.values[field] = self._initial.get(field)
            self.clear_error(field)
            self.set_touched(field, False)
        return self

    async def submit(self, handler: SubmitHandler | None = None) -> dict | None:
        """Touch and validate every field, then call the handler.

        Returns {"success": True, "result": ...} on success,
        {"success": False, "errors": {...}} when validation fails, and
        {"success": False, "error": exc} when the handler raises.
        """
        handler = handler or self._on_submit
        if handler is None:
            logger.warning("Form submitted without a handler")
            return None
        self.touch_all()
        if not self.validate():
            return {"success": False, "errors": snapshot(self.errors)}
        self.is_submitting = True
        try:
            result = handler(snapshot(self.values), self)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            self.is_submitting = False
            logger.exception("Form submission failed")
            return {"success": False, "error": exc}
        with self._runtime.batching():
            self.submit_count += 1
            self.is_submitting = False
        return {"success": True, "result": result}

    def to_dict(self) -> dict[str, Any]:
        return {
            "values": snapshot(self.values),
            "errors": snapshot(self.errors),
            "touched": snapshot(self.touched),
            "is_valid": self.is_valid,
            "is_dirty": self.is_dirty,
            "is_submitting": self.is_submitting,
            "submit_count": self.submit_count,
        }


def form(
    initial: Mapping[str, Any] | None = None,
    validators: Mapping[str, Validator | Iterable[Validator]] | None = None,
    on_submit: SubmitHandler | None = None,
) -> Form:
    return Form(initial, validators=validators, on_submit=on_submit)
